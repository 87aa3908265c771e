"""
Start point for running the loan monitor bot
"""
import signal
import sys

from dotenv import load_dotenv

load_dotenv()

from app import create_bot
from app.loan_monitor.logging_config import global_exception_handler, setup_logger

logger = setup_logger()


def main():
    sys.excepthook = global_exception_handler

    bot = create_bot()

    def handle_shutdown(signum, frame):
        logger.info("Shutdown signal %s received, draining in-flight cycles...", signum)
        bot.stop(timeout=60)

    signal.signal(signal.SIGINT, handle_shutdown)
    signal.signal(signal.SIGTERM, handle_shutdown)

    bot.start()
    bot.wait()
    logger.info("Loan monitor stopped")


if __name__ == "__main__":
    main()
