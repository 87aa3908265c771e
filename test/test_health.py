"""
Tests for health factor calculation.
"""

import math

import pytest

from app.loan_monitor.exceptions import StalePriceError
from app.loan_monitor.health import HealthEvaluator
from app.loan_monitor.models import Loan, RiskParameters

from fakes import BORROWER_A, DAY, NOW, USDC, make_loan

PRICE = 1 * USDC
FRESH = NOW - 60


def evaluate(loan: Loan, price: int = PRICE, timestamp: int = FRESH, params: RiskParameters = None):
    return HealthEvaluator(params or RiskParameters()).evaluate(BORROWER_A, loan, price, timestamp, NOW)


def test_well_collateralized_loan_is_healthy():
    result = evaluate(make_loan(collateral=200, debt=100))

    assert result.collateral_value == 200 * USDC
    assert result.total_debt == 100 * USDC
    assert result.health_factor == 2.0
    assert result.is_healthy
    assert not result.needs_warning
    assert not result.needs_liquidation


def test_loan_between_thresholds_needs_warning():
    result = evaluate(make_loan(collateral=200, debt=150))

    assert result.health_factor == pytest.approx(1.3333, abs=1e-4)
    assert result.needs_warning
    assert not result.is_healthy
    assert not result.needs_liquidation


def test_loan_below_liquidation_threshold_needs_liquidation():
    result = evaluate(make_loan(collateral=200, debt=182))

    assert result.health_factor == pytest.approx(1.0989, abs=1e-4)
    assert result.needs_liquidation
    assert not result.is_healthy
    assert not result.needs_warning


def test_stale_price_raises():
    evaluator = HealthEvaluator(RiskParameters())

    with pytest.raises(StalePriceError) as excinfo:
        evaluator.evaluate(BORROWER_A, make_loan(), PRICE, NOW - 90_000, NOW)

    assert excinfo.value.age == 90_000
    assert "stale" in str(excinfo.value)


def test_price_exactly_at_staleness_window_is_accepted():
    """Only prices strictly older than the window are stale."""
    result = evaluate(make_loan(), timestamp=NOW - DAY)

    assert result.is_healthy


def test_zero_debt_is_infinitely_healthy():
    result = evaluate(make_loan(collateral=0, debt=0))

    assert result.health_factor == math.inf
    assert result.is_healthy


def test_dust_debt_is_never_liquidatable():
    loan = Loan(
        collateral_amount=0,
        outstanding_debt=USDC - 1,
        penalties=0,
        last_payment_time=NOW,
        warnings_issued=0,
        last_warning_time=0,
    )
    result = evaluate(loan)

    assert result.health_factor == math.inf
    assert result.is_healthy
    assert not result.needs_liquidation


def test_penalties_count_towards_total_debt():
    result = evaluate(make_loan(collateral=200, debt=100, penalties=60))

    assert result.total_debt == 160 * USDC
    assert result.health_factor == pytest.approx(1.25)
    assert result.needs_warning


def test_boundary_at_liquidation_threshold_liquidates():
    result = evaluate(make_loan(collateral=110, debt=100))

    assert result.needs_liquidation
    assert not result.needs_warning


def test_boundary_at_healthy_threshold_is_healthy():
    result = evaluate(make_loan(collateral=150, debt=100))

    assert result.health_factor == 1.5
    assert result.is_healthy


def test_collateral_value_truncates_fractional_quote_units():
    loan = Loan(
        collateral_amount=10**18 + 1,
        outstanding_debt=100 * USDC,
        penalties=0,
        last_payment_time=NOW,
        warnings_issued=0,
        last_warning_time=0,
    )
    result = evaluate(loan, price=3)

    assert result.collateral_value == 3


def test_exactly_one_classification_flag_is_set():
    for debt in range(1, 400, 7):
        result = evaluate(make_loan(collateral=200, debt=debt))
        flags = [result.is_healthy, result.needs_warning, result.needs_liquidation]
        assert flags.count(True) == 1, f"debt={debt} gave flags {flags}"


def test_health_factor_is_monotonic():
    """More collateral never lowers the health factor and more debt never raises it."""
    by_collateral = [evaluate(make_loan(collateral=c, debt=100)).health_factor for c in range(50, 400, 25)]
    by_debt = [evaluate(make_loan(collateral=200, debt=d)).health_factor for d in range(50, 400, 25)]

    assert by_collateral == sorted(by_collateral)
    assert by_debt == sorted(by_debt, reverse=True)
