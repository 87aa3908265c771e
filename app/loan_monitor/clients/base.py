"""
Abstract contracts for the data sources the monitor reads from.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from app.loan_monitor.models import Loan, PriceSnapshot


class PriceOracle(ABC):
    """Source of collateral prices."""

    @abstractmethod
    def get_price(self, asset: str) -> PriceSnapshot:
        """
        Return the latest published price of an asset.

        Raises:
            PriceUnavailableError: If no usable price could be read. Staleness
                is not checked here, the caller compares the timestamp.
        """


class LoanRepository(ABC):
    """Read access to loans held by the lending pool."""

    @abstractmethod
    def get_loan(self, borrower: str) -> Optional[Loan]:
        """
        Return a fresh snapshot of a borrower's loan.

        Returns None when the borrower has no loan.

        Raises:
            LoanFetchError: If the loan could not be read (transient failure).
        """


class BorrowerRegistry(ABC):
    """Source of the borrowers to monitor."""

    @abstractmethod
    def get_active_borrowers(self) -> List[str]:
        """
        Return borrowers with outstanding debt, in a stable order.

        Raises:
            RegistryError: If the list cannot be produced.
        """
