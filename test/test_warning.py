"""
Tests for the graduated warning classifier.
"""

import logging

import pytest

from app.loan_monitor.models import HealthResult, RiskParameters, WarningState
from app.loan_monitor.warning import WarningClassifier

from fakes import BORROWER_A, DAY, NOW, make_loan

WEEK = 7 * DAY


def health_with(health_factor: float, params: RiskParameters = RiskParameters()) -> HealthResult:
    is_healthy = health_factor >= params.healthy_threshold
    needs_liquidation = health_factor <= params.liquidation_threshold
    return HealthResult(
        borrower=BORROWER_A,
        collateral_amount=0,
        collateral_value=0,
        outstanding_debt=0,
        penalties=0,
        total_debt=0,
        health_factor=health_factor,
        price=0,
        is_healthy=is_healthy,
        needs_warning=not is_healthy and not needs_liquidation,
        needs_liquidation=needs_liquidation,
    )


@pytest.fixture()
def classifier(params):
    return WarningClassifier(params)


def test_liquidatable_wins_over_warning_3(classifier):
    """With the default thresholds WARNING_3 and LIQUIDATABLE share a boundary and LIQUIDATABLE is checked first."""
    assert classifier.classify(health_with(1.1), make_loan(), NOW) == WarningState.LIQUIDATABLE
    assert classifier.classify(health_with(1.05), make_loan(), NOW) == WarningState.LIQUIDATABLE


def test_unreachable_warning_3_is_logged(params, caplog):
    with caplog.at_level(logging.WARNING):
        WarningClassifier(params)

    assert "WARNING_3 is unreachable" in caplog.text


def test_warning_3_band_when_threshold_raised():
    params = RiskParameters(warning3_threshold=1.15)
    classifier = WarningClassifier(params)

    assert classifier.classify(health_with(1.12, params), make_loan(), NOW) == WarningState.WARNING_3
    assert classifier.classify(health_with(1.15, params), make_loan(), NOW) == WarningState.WARNING_3
    assert classifier.classify(health_with(1.16, params), make_loan(), NOW) == WarningState.WARNING_2


def test_health_factor_bands(classifier):
    recent = make_loan(last_payment_time=NOW - DAY)

    assert classifier.classify(health_with(1.19), recent, NOW) == WarningState.WARNING_2
    assert classifier.classify(health_with(1.2), recent, NOW) == WarningState.WARNING_2
    assert classifier.classify(health_with(1.33), recent, NOW) == WarningState.WARNING_1
    assert classifier.classify(health_with(2.0), recent, NOW) == WarningState.HEALTHY


def test_health_factor_at_healthy_threshold_still_warns(classifier):
    """1.5 is healthy to the evaluator but inside the first warning band here."""
    assert classifier.classify(health_with(1.5), make_loan(), NOW) == WarningState.WARNING_1


def test_missed_payment_triggers_first_warning(classifier):
    loan = make_loan(last_payment_time=NOW - 15 * DAY)

    assert classifier.classify(health_with(2.0), loan, NOW) == WarningState.WARNING_1


def test_second_missed_interval_escalates_after_first_warning(classifier):
    warned = make_loan(last_payment_time=NOW - 29 * DAY, warnings_issued=1)
    never_warned = make_loan(last_payment_time=NOW - 29 * DAY, warnings_issued=0)

    assert classifier.classify(health_with(2.0), warned, NOW) == WarningState.WARNING_2
    assert classifier.classify(health_with(2.0), never_warned, NOW) == WarningState.WARNING_1


def test_first_warning_issued_immediately(classifier):
    loan = make_loan(warnings_issued=0, last_warning_time=NOW)

    assert classifier.should_issue_warning(WarningState.WARNING_1, loan, NOW)


def test_first_warning_not_repeated(classifier):
    loan = make_loan(warnings_issued=1, last_warning_time=NOW - 30 * DAY)

    assert not classifier.should_issue_warning(WarningState.WARNING_1, loan, NOW)


def test_second_warning_waits_for_interval(classifier):
    too_soon = make_loan(warnings_issued=1, last_warning_time=NOW - WEEK)
    due = make_loan(warnings_issued=1, last_warning_time=NOW - 2 * WEEK)

    assert not classifier.should_issue_warning(WarningState.WARNING_2, too_soon, NOW)
    assert classifier.should_issue_warning(WarningState.WARNING_2, due, NOW)


def test_second_warning_needs_first(classifier):
    loan = make_loan(warnings_issued=0, last_warning_time=0)

    assert not classifier.should_issue_warning(WarningState.WARNING_2, loan, NOW)


def test_third_warning_needs_two_earlier_warnings(classifier):
    due = make_loan(warnings_issued=2, last_warning_time=NOW - 3 * WEEK)
    early = make_loan(warnings_issued=1, last_warning_time=NOW - 3 * WEEK)

    assert classifier.should_issue_warning(WarningState.WARNING_3, due, NOW)
    assert not classifier.should_issue_warning(WarningState.WARNING_3, early, NOW)


def test_nothing_issued_past_max_warnings(classifier):
    loan = make_loan(warnings_issued=3, last_warning_time=0)

    for state in WarningState:
        assert not classifier.should_issue_warning(state, loan, NOW), state


def test_healthy_and_liquidatable_never_issue(classifier):
    loan = make_loan(warnings_issued=0)

    assert not classifier.should_issue_warning(WarningState.HEALTHY, loan, NOW)
    assert not classifier.should_issue_warning(WarningState.LIQUIDATABLE, loan, NOW)


def test_classification_is_deterministic(classifier):
    loan = make_loan(last_payment_time=NOW - 20 * DAY, warnings_issued=1, last_warning_time=NOW - 15 * DAY)
    health = health_with(1.3)

    states = {classifier.classify(health, loan, NOW) for _ in range(5)}
    decisions = {classifier.should_issue_warning(WarningState.WARNING_2, loan, NOW) for _ in range(5)}

    assert len(states) == 1
    assert len(decisions) == 1
