"""
Custom exceptions for the loan monitor bot.
"""


class LoanMonitorError(Exception):
    """Base exception for all loan monitor errors."""


class ConfigError(LoanMonitorError):
    """Raised for configuration-related errors."""


class StalePriceError(LoanMonitorError):
    """Raised when an oracle price is older than the staleness window."""

    def __init__(self, age: float, max_age: int):
        super().__init__(f"Oracle price is stale ({age:.0f}s old, max {max_age}s)")
        self.age = age
        self.max_age = max_age


class PriceUnavailableError(LoanMonitorError):
    """Raised when the price oracle cannot be read."""


class BorrowerEvaluationError(LoanMonitorError):
    """Raised when a single borrower cannot be evaluated."""


class LoanFetchError(BorrowerEvaluationError):
    """Raised when a loan read fails for a transient reason (not when the loan is absent)."""


class RegistryError(LoanMonitorError):
    """Raised when the active borrower list cannot be produced."""


class ExecutorError(LoanMonitorError):
    """Raised for errors while submitting a warning or liquidation transaction."""


class SimulationError(ExecutorError):
    """Raised when the transaction simulation is rejected."""


class SubmissionError(ExecutorError):
    """Raised when building, signing or sending the transaction fails."""


class ConfirmationTimeoutError(ExecutorError):
    """Raised when no receipt shows up within the confirmation attempt cap."""
