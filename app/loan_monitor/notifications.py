"""
Slack notification functions for the loan monitor bot.
"""

import time
from typing import List, Optional

from apprise import Apprise

from .config_loader import ChainConfig
from .logging_config import setup_logger
from .models import QUOTE_DECIMALS, LiquidationEconomics, LiquidationResult, WarningState

logger = setup_logger()


def setup_apprise_notification_object(config: ChainConfig) -> Apprise:
    """Set up the Apprise notification engine."""
    apprise = Apprise()
    if config.NOTIFICATION_URL:
        apprise.add(config.NOTIFICATION_URL)
    return apprise


def _usd(amount: int) -> str:
    return f"${amount / 10**QUOTE_DECIMALS:,.2f}"


def _tx_link(tx_hash: Optional[str], config: ChainConfig) -> str:
    return f"<{config.EXPLORER_URL}/tx/{tx_hash}|View Transaction on Explorer>"


def _footer(config: ChainConfig) -> str:
    return f"Time: {time.strftime('%Y-%m-%d %H:%M:%S')}\nNetwork: `{config.CHAIN_NAME}`"


def post_warning_issued_notification(
    borrower: str,
    warning_state: WarningState,
    health_factor: float,
    warnings_issued: int,
    tx_hash: Optional[str],
    config: ChainConfig,
) -> bool:
    """Post a notification about a warning issued on chain."""
    message = (
        ":warning: *Loan Warning Issued* :warning:\n\n"
        f"*Borrower*: `{borrower}`\n"
        f"*Warning*: `{warning_state.name}` ({warnings_issued + 1} of {config.risk_parameters.max_warnings})\n"
        f"*Health Factor*: `{health_factor:.4f}`\n"
        f"• Warning Transaction: {_tx_link(tx_hash, config)}\n"
        f"{_footer(config)}"
    )
    logger.info("Warning issued notification:\n%s", message)

    apprise = setup_apprise_notification_object(config)
    return apprise.notify(body=message, title="Loan Warning Issued")


def post_liquidation_result_notification(
    borrower: str,
    health_factor: float,
    economics: LiquidationEconomics,
    result: LiquidationResult,
    config: ChainConfig,
) -> bool:
    """Post a notification about a completed liquidation."""
    message = (
        ":moneybag: *Liquidation Completed* :moneybag:\n\n"
        f"*Borrower*: `{borrower}`\n"
        f"*Health Factor*: `{health_factor:.4f}`\n"
        f"*Liquidation Details:*\n"
        f"• Collateral Value: {_usd(economics.collateral_value)}\n"
        f"• Reward: {_usd(result.reward)} (expected {_usd(economics.liquidator_reward)})\n"
        f"• Estimated Gas: {_usd(economics.gas_cost)}\n"
        f"• Liquidation Transaction: {_tx_link(result.tx_hash, config)}\n"
        f"{_footer(config)}"
    )
    logger.info("Liquidation result notification:\n%s", message)

    apprise = setup_apprise_notification_object(config)
    return apprise.notify(body=message, title="Liquidation Completed")


def post_action_failed_notification(borrower: str, action: str, error: str, config: ChainConfig) -> bool:
    """Post a notification about a warning or liquidation that did not go through."""
    message = (
        f":x: *{action.capitalize()} Failed* :x:\n\n"
        f"*Borrower*: `{borrower}`\n"
        f"*Error*: `{error}`\n"
        f"{_footer(config)}"
    )
    logger.info("Action failed notification:\n%s", message)

    apprise = setup_apprise_notification_object(config)
    return apprise.notify(body=message, title=f"{action.capitalize()} Failed")


def post_health_check_notification(problems: List[str], config: ChainConfig) -> bool:
    """Post the problems found by the periodic self-health check."""
    lines = "\n".join(f"• {p}" for p in problems)
    message = f":stethoscope: *Loan Monitor Health Check* :stethoscope:\n\n{lines}\n{_footer(config)}"
    logger.info("Health check notification:\n%s", message)

    apprise = setup_apprise_notification_object(config)
    return apprise.notify(body=message, title="Loan Monitor Health Check")


def post_error_notification(message: str, config: ChainConfig) -> bool:
    """Post an error notification to Slack."""
    error_message = f":rotating_light: *Error Notification* :rotating_light:\n\n{message}\n\n{_footer(config)}"

    logger.info("Error notification:\n%s", error_message)

    apprise = setup_apprise_notification_object(config)
    return apprise.notify(body=error_message, title="Error Notification")
