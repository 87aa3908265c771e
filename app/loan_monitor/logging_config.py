"""
Logging configuration for the loan monitor bot.
"""

import logging
import os
import traceback
from pathlib import Path
from typing import Any

LOGGER_NAME = "loan_monitor"
LOGS_PATH = os.environ.get("LOGS_PATH", "logs/loan_monitor.log")


class DetailedExceptionFormatter(logging.Formatter):
    """Formatter that appends the full traceback to ERROR and above."""

    def __init__(self) -> None:
        super().__init__()
        self._detailed = logging.Formatter("%(asctime)s - %(levelname)s - [%(module)s] %(message)s\n%(exc_text)s")
        self._standard = logging.Formatter("%(asctime)s - %(levelname)s - [%(module)s] %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno >= logging.ERROR and record.exc_info:
            record.exc_text = "".join(traceback.format_exception(*record.exc_info)).rstrip()
            return self._detailed.format(record)
        return self._standard.format(record)


def setup_logger() -> logging.Logger:
    """
    Set up and configure the loan monitor logger.

    Returns:
        Configured logger instance with console and file handlers.
    """
    logger = logging.getLogger(LOGGER_NAME)

    if logger.handlers:
        return logger

    logger.setLevel(os.environ.get("LOG_LEVEL", "DEBUG").upper())

    formatter = DetailedExceptionFormatter()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    Path(LOGS_PATH).parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.FileHandler(LOGS_PATH, mode="a")
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    return logger


def global_exception_handler(exctype: type, value: BaseException, tb: Any) -> None:
    """
    Log uncaught exceptions through the bot logger. Install as ``sys.excepthook``.

    Args:
        exctype: The type of the exception.
        value: The exception instance.
        tb: A traceback object encapsulating the call stack.
    """
    logger = logging.getLogger(LOGGER_NAME)
    trace_str = "".join(traceback.format_exception(exctype, value, tb))
    logger.critical("Uncaught exception:\n %s", trace_str)
