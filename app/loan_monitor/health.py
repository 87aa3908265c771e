"""
Health factor calculation for a loan against a price snapshot.
"""

import math
import time
from typing import Optional

from app.loan_monitor.exceptions import StalePriceError
from app.loan_monitor.models import COLLATERAL_DECIMALS, HealthResult, Loan, RiskParameters


class HealthEvaluator:
    """
    Turns a loan and a collateral price into a health classification.

    The collateral amount carries 18 decimals and the price 6, so the
    collateral value comes out in 6-decimal quote units like the debt.
    """

    def __init__(self, params: RiskParameters):
        self.params = params

    def check_price_freshness(self, price_timestamp: int, now: Optional[float] = None) -> None:
        """Raise StalePriceError if the price is older than the staleness window."""
        if now is None:
            now = time.time()
        age = now - price_timestamp
        if age > self.params.price_staleness_window:
            raise StalePriceError(age, self.params.price_staleness_window)

    def evaluate(
        self, borrower: str, loan: Loan, price: int, price_timestamp: int, now: Optional[float] = None
    ) -> HealthResult:
        """
        Compute the health factor of a loan.

        Args:
            borrower: Borrower address, carried through to the result.
            loan: Loan snapshot.
            price: Collateral price in quote units per whole collateral unit.
            price_timestamp: Unix time at which the price was published.
            now: Evaluation time, defaults to the current time.

        Returns:
            HealthResult with exactly one of is_healthy, needs_warning,
            needs_liquidation set.

        Raises:
            StalePriceError: If the price is older than the staleness window.
        """
        self.check_price_freshness(price_timestamp, now)

        collateral_value = loan.collateral_amount * price // 10**COLLATERAL_DECIMALS
        total_debt = loan.total_debt

        if total_debt == 0:
            health_factor = math.inf
        elif total_debt < self.params.min_debt:
            # dust is never liquidated
            health_factor = math.inf
        else:
            health_factor = collateral_value / total_debt

        is_healthy = health_factor >= self.params.healthy_threshold
        needs_liquidation = health_factor <= self.params.liquidation_threshold

        return HealthResult(
            borrower=borrower,
            collateral_amount=loan.collateral_amount,
            collateral_value=collateral_value,
            outstanding_debt=loan.outstanding_debt,
            penalties=loan.penalties,
            total_debt=total_debt,
            health_factor=health_factor,
            price=price,
            is_healthy=is_healthy,
            needs_warning=not is_healthy and not needs_liquidation,
            needs_liquidation=needs_liquidation,
        )
