"""
Decorators for RPC read utilities.
"""

import functools
import logging
import time
from typing import Any, Callable

import requests


def retry_rpc(logger: logging.Logger, max_retries: int = 3, delay: float = 2) -> Callable:
    """
    Decorator to retry a read-only RPC call on transport errors.

    web3's HTTPProvider surfaces connection problems as requests exceptions.
    The last failure is re-raised so callers can tell an unreachable node
    from an empty result.

    Args:
        logger: Logger instance for retry logging.
        max_retries: Maximum number of attempts.
        delay: Delay between attempts in seconds.

    Returns:
        Decorated function with retry logic.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(1, max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except requests.RequestException as e:
                    if attempt == max_retries:
                        logger.error("RPC call %s failed after %s attempts: %s", func.__name__, max_retries, e)
                        raise

                    logger.warning(
                        "RPC call %s failed, waiting %s seconds before retrying. Attempt %s/%s: %s",
                        func.__name__, delay, attempt, max_retries, e,
                    )
                    time.sleep(delay)

        return wrapper

    return decorator
