"""
Borrower registry persisted as a JSON list of addresses.
"""

import json
import os
from pathlib import Path
from typing import List

from app.loan_monitor.clients.base import BorrowerRegistry, LoanRepository
from app.loan_monitor.exceptions import LoanFetchError, RegistryError
from app.loan_monitor.logging_config import setup_logger

logger = setup_logger()


class FileBorrowerRegistry(BorrowerRegistry):
    """
    Keeps known borrowers in a JSON file and filters them down to those with
    outstanding debt using the loan repository.

    The bot never adds borrowers itself: the operator fills the file (or calls
    ``add``). Repaid and liquidated loans drop out through the debt filter, so
    they need no ``remove``.

    Filtering reads every loan once, and the monitor reads each active loan
    again when it evaluates it, so a cycle costs about two ``getLoan`` calls
    per borrower.
    """

    def __init__(self, path: str, loan_repository: LoanRepository):
        self.path = path
        self.loan_repository = loan_repository
        self.borrowers: List[str] = []

    def load(self) -> None:
        if not os.path.exists(self.path):
            logger.info("BorrowerRegistry: No borrower file at %s, starting empty.", self.path)
            self.borrowers = []
            return

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, IOError) as ex:
            logger.error("BorrowerRegistry: Corrupt borrower file %s, starting empty: %s", self.path, ex)
            self.borrowers = []
            return

        if not isinstance(data, list):
            logger.error("BorrowerRegistry: Expected a list in %s, got %s", self.path, type(data).__name__)
            self.borrowers = []
            return

        # de-duplicate, keep first-seen order
        self.borrowers = list(dict.fromkeys(str(b) for b in data))
        logger.info("BorrowerRegistry: Loaded %s borrowers from %s", len(self.borrowers), self.path)

    def save(self) -> None:
        try:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(self.borrowers, f, indent=2)
        except OSError as ex:
            raise RegistryError(f"Failed to save borrowers to {self.path}: {ex}") from ex

    def add(self, borrower: str) -> bool:
        if borrower in self.borrowers:
            return False
        self.borrowers.append(borrower)
        self.save()
        logger.info("BorrowerRegistry: Added %s", borrower)
        return True

    def remove(self, borrower: str) -> bool:
        if borrower not in self.borrowers:
            return False
        self.borrowers.remove(borrower)
        self.save()
        logger.info("BorrowerRegistry: Removed %s", borrower)
        return True

    def get_active_borrowers(self) -> List[str]:
        active = []
        for borrower in self.borrowers:
            try:
                loan = self.loan_repository.get_loan(borrower)
            except LoanFetchError as ex:
                # keep it so the cycle records the failure against the borrower
                logger.warning("BorrowerRegistry: Could not check loan for %s: %s", borrower, ex)
                active.append(borrower)
                continue

            if loan and loan.outstanding_debt > 0:
                active.append(borrower)

        return active
