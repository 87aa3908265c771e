"""
Data classes for loans, prices and the decisions made about them.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Optional

COLLATERAL_DECIMALS = 18
QUOTE_DECIMALS = 6


@dataclass(frozen=True)
class Loan:
    """Snapshot of a loan as read from the lending pool. Amounts are in smallest units."""

    collateral_amount: int
    outstanding_debt: int
    penalties: int
    last_payment_time: int
    warnings_issued: int
    last_warning_time: int

    @property
    def total_debt(self) -> int:
        return self.outstanding_debt + self.penalties


@dataclass(frozen=True)
class PriceSnapshot:
    """Collateral price in 6-decimal quote units per whole collateral unit."""

    price: int
    timestamp: int

    def age(self, now: float) -> float:
        return now - self.timestamp


@dataclass(frozen=True)
class HealthResult:
    """Health of a single loan against a single price snapshot."""

    borrower: str
    collateral_amount: int
    collateral_value: int
    outstanding_debt: int
    penalties: int
    total_debt: int
    health_factor: float
    price: int
    is_healthy: bool
    needs_warning: bool
    needs_liquidation: bool


class WarningState(IntEnum):
    """Graduated warning levels, ordered by severity."""

    HEALTHY = 0
    WARNING_1 = 1
    WARNING_2 = 2
    WARNING_3 = 3
    LIQUIDATABLE = 4


@dataclass(frozen=True)
class LiquidationEconomics:
    """Expected reward and profit of liquidating a loan."""

    collateral_value: int
    liquidator_reward: int
    gas_cost: int
    profit: int
    is_profitable: bool


@dataclass
class SubmissionResult:
    """Outcome of submitting a lending pool transaction."""

    success: bool
    tx_hash: Optional[str] = None
    detail: Optional[str] = None
    return_value: Any = None


@dataclass
class LiquidationResult:
    borrower: str
    success: bool
    reward: int
    tx_hash: Optional[str] = None


@dataclass
class CycleResult:
    """What happened to one borrower during one monitoring cycle."""

    borrower: str
    success: bool
    healthy: bool
    health_factor: Optional[float] = None
    warning_issued: bool = False
    warning_state: Optional[WarningState] = None
    liquidated: bool = False
    reward: int = 0
    tx_hash: Optional[str] = None
    skipped_unprofitable: bool = False
    error: Optional[str] = None


class CyclePhase(Enum):
    IDLE = "idle"
    FETCHING_PRICE = "fetching_price"
    ABORTED = "aborted"
    ITERATING_BORROWERS = "iterating_borrowers"
    REPORTING = "reporting"


@dataclass
class CycleReport:
    """Aggregated counts for one monitoring cycle."""

    borrowers_checked: int = 0
    warnings_issued: int = 0
    liquidations_executed: int = 0
    skipped_unprofitable: int = 0
    errors: int = 0
    elapsed: float = 0.0
    aborted: bool = False
    abort_reason: Optional[str] = None
    results: List[CycleResult] = field(default_factory=list)

    @classmethod
    def from_results(cls, results: List[CycleResult], elapsed: float) -> "CycleReport":
        return cls(
            borrowers_checked=len(results),
            warnings_issued=sum(1 for r in results if r.warning_issued),
            liquidations_executed=sum(1 for r in results if r.liquidated and r.success),
            skipped_unprofitable=sum(1 for r in results if r.skipped_unprofitable),
            errors=sum(1 for r in results if not r.success),
            elapsed=elapsed,
            results=list(results),
        )

    @classmethod
    def aborted_cycle(cls, reason: str, elapsed: float) -> "CycleReport":
        return cls(elapsed=elapsed, aborted=True, abort_reason=reason)


@dataclass(frozen=True)
class RiskParameters:
    """
    Tunable thresholds and limits for the decision engine.

    Amounts are in 6-decimal quote units, times in seconds.
    """

    monitoring_interval: float = 15
    healthy_threshold: float = 1.5
    warning1_threshold: float = 1.5
    warning2_threshold: float = 1.2
    warning3_threshold: float = 1.1
    liquidation_threshold: float = 1.1
    warning_interval: int = 14 * 24 * 3600
    max_warnings: int = 3
    reward_percent: int = 10
    min_profit_threshold: int = 1 * 10**QUOTE_DECIMALS
    gas_cost_estimate: int = 5 * 10**QUOTE_DECIMALS
    price_staleness_window: int = 24 * 3600
    min_debt: int = 1 * 10**QUOTE_DECIMALS
    confirmation_poll_interval: float = 1
    confirmation_max_attempts: int = 20
    health_check_interval: float = 60
