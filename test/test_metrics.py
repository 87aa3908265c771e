"""
Tests for the metrics collector and its self-health check.
"""

import math

from app.loan_monitor.metrics import MetricsCollector
from app.loan_monitor.models import CycleReport, CycleResult

from fakes import BORROWER_A, BORROWER_B, USDC


def test_starts_empty(metrics):
    m = metrics.get_metrics()

    assert m["total_cycles"] == 0
    assert m["lowest_health_factor"] == math.inf
    assert m["lowest_health_borrower"] is None


def test_cycle_counts():
    metrics = MetricsCollector()
    results = [
        CycleResult(borrower=BORROWER_A, success=True, healthy=True),
        CycleResult(borrower=BORROWER_B, success=True, healthy=False, skipped_unprofitable=True),
    ]

    metrics.record_cycle(CycleReport.from_results(results, elapsed=1.0))
    metrics.record_cycle(CycleReport.from_results(results, elapsed=3.0))
    metrics.record_cycle(CycleReport.aborted_cycle("stale price", elapsed=0.1))

    m = metrics.get_metrics()
    assert m["total_cycles"] == 3
    assert m["aborted_cycles"] == 1
    assert m["borrowers_checked"] == 4
    assert m["skipped_unprofitable"] == 2
    assert m["average_check_time"] == 1.0


def test_warnings_counted_by_level(metrics):
    for count in (1, 1, 2, 3):
        metrics.record_warning(count)

    m = metrics.get_metrics()
    assert m["total_warnings_issued"] == 4
    assert (m["warning1_count"], m["warning2_count"], m["warning3_count"]) == (2, 1, 1)


def test_liquidation_profit_accounting(metrics):
    metrics.record_liquidation(True, 20 * USDC, 5 * USDC)
    metrics.record_liquidation(True, 10 * USDC, 5 * USDC)
    metrics.record_liquidation(False, 0, 5 * USDC)

    m = metrics.get_metrics()
    assert m["total_liquidations"] == 3
    assert m["successful_liquidations"] == 2
    assert m["failed_liquidations"] == 1
    assert m["total_rewards_earned"] == 30 * USDC
    assert m["total_gas_spent"] == 15 * USDC
    assert m["total_profit"] == 15 * USDC
    assert m["average_reward_per_liquidation"] == 15 * USDC


def test_lowest_health_factor_tracked(metrics):
    metrics.record_health_factor(BORROWER_A, 1.4)
    metrics.record_health_factor(BORROWER_B, 1.2)
    metrics.record_health_factor(BORROWER_A, 1.3)

    m = metrics.get_metrics()
    assert m["lowest_health_factor"] == 1.2
    assert m["lowest_health_borrower"] == BORROWER_B


def test_get_metrics_returns_a_copy(metrics):
    metrics.get_metrics()["total_cycles"] = 99

    assert metrics.get_metrics()["total_cycles"] == 0


def test_health_check_passes_after_recent_cycle(metrics):
    metrics.record_cycle(CycleReport())

    assert metrics.check_health() == []


def test_health_check_flags_stale_monitor():
    metrics = MetricsCollector(stale_cycle_seconds=60)
    metrics.record_cycle(CycleReport())
    last = metrics.get_metrics()["last_cycle_time"]

    problems = metrics.check_health(now=last + 120)

    assert len(problems) == 1
    assert "hasn't completed a cycle" in problems[0]


def test_health_check_flags_low_success_rate(metrics):
    metrics.record_cycle(CycleReport())
    for _ in range(9):
        metrics.record_liquidation(True, 20 * USDC, 5 * USDC)
    metrics.record_liquidation(False, 0, 5 * USDC)

    problems = metrics.check_health()

    assert len(problems) == 1
    assert "success rate" in problems[0]


def test_health_check_flags_losses(metrics):
    metrics.record_cycle(CycleReport())
    metrics.record_liquidation(True, 1 * USDC, 5 * USDC)

    problems = metrics.check_health()

    assert any("losing money" in p for p in problems)


def test_health_check_flags_monitor_that_only_aborts():
    metrics = MetricsCollector(stale_cycle_seconds=60)
    for _ in range(5):
        metrics.record_cycle(CycleReport.aborted_cycle("Oracle price is stale", elapsed=0.1))

    problems = metrics.check_health(now=metrics.start_time + 120)

    assert metrics.get_metrics()["aborted_cycles"] == 5
    assert any("hasn't completed a cycle" in p for p in problems)


def test_aborted_cycle_does_not_refresh_last_cycle_time(metrics):
    metrics.record_cycle(CycleReport())
    completed_at = metrics.get_metrics()["last_cycle_time"]

    metrics.record_cycle(CycleReport.aborted_cycle("Failed to fetch oracle price", elapsed=0.1))

    assert metrics.get_metrics()["last_cycle_time"] == completed_at
