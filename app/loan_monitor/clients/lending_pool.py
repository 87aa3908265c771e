"""
Lending pool contract reader.
"""

from typing import Optional

from web3 import Web3

from app.loan_monitor.clients.base import LoanRepository
from app.loan_monitor.config_loader import ChainConfig
from app.loan_monitor.decorators import retry_rpc
from app.loan_monitor.exceptions import LoanFetchError
from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.models import Loan

logger = setup_logger()


class Web3LoanRepository(LoanRepository):
    """Reads loans with ``getLoan(borrower)``. The pool returns an all-zero struct for unknown borrowers."""

    def __init__(self, config: ChainConfig):
        self.config = config
        self.instance = config.lending_pool
        self._get_loan = retry_rpc(logger, config.RPC_RETRIES, config.RPC_RETRY_DELAY)(self._read_loan)

    def _read_loan(self, borrower: str):
        return self.instance.functions.getLoan(Web3.to_checksum_address(borrower)).call()

    def get_loan(self, borrower: str) -> Optional[Loan]:
        try:
            (
                collateral_amount,
                outstanding_debt,
                penalties,
                last_payment_time,
                warnings_issued,
                last_warning_time,
            ) = self._get_loan(borrower)
        except Exception as ex:
            raise LoanFetchError(f"Failed to read loan for {borrower}: {ex}") from ex

        if not any((collateral_amount, outstanding_debt, penalties, last_payment_time)):
            return None

        return Loan(
            collateral_amount=int(collateral_amount),
            outstanding_debt=int(outstanding_debt),
            penalties=int(penalties),
            last_payment_time=int(last_payment_time),
            warnings_issued=int(warnings_issued),
            last_warning_time=int(last_warning_time),
        )
