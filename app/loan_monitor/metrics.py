"""
In-process metrics for the loan monitor and a periodic self-health check.
"""

import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.models import CycleReport

logger = setup_logger()


class ObservabilitySink(ABC):
    """Receives cycle and action events. Results are never used for decisions."""

    @abstractmethod
    def record_cycle(self, report: CycleReport) -> None:
        pass

    @abstractmethod
    def record_warning(self, warning_count: int) -> None:
        pass

    @abstractmethod
    def record_liquidation(self, success: bool, reward: int, gas_cost: int) -> None:
        pass

    @abstractmethod
    def record_health_factor(self, borrower: str, health_factor: float) -> None:
        pass


@dataclass
class LiquidationMetrics:
    total_cycles: int = 0
    aborted_cycles: int = 0
    borrowers_checked: int = 0
    average_check_time: float = 0.0  # seconds per borrower

    total_warnings_issued: int = 0
    warning1_count: int = 0
    warning2_count: int = 0
    warning3_count: int = 0

    total_liquidations: int = 0
    successful_liquidations: int = 0
    failed_liquidations: int = 0
    skipped_unprofitable: int = 0

    total_rewards_earned: int = 0
    total_gas_spent: int = 0
    total_profit: int = 0
    average_reward_per_liquidation: int = 0

    lowest_health_factor: float = math.inf
    lowest_health_borrower: Optional[str] = None

    last_cycle_time: float = 0.0
    cycles_per_hour: float = 0.0


class MetricsCollector(ObservabilitySink):
    """
    Accumulates counters across cycles.

    Written by the scheduler thread and read by the health check thread,
    so every access goes through a lock.
    """

    def __init__(self, stale_cycle_seconds: float = 60, min_success_rate: float = 0.95):
        self.stale_cycle_seconds = stale_cycle_seconds
        self.min_success_rate = min_success_rate
        self.start_time = time.time()
        self._metrics = LiquidationMetrics()
        self._measured_cycles = 0
        self._lock = threading.Lock()

    def record_cycle(self, report: CycleReport) -> None:
        with self._lock:
            m = self._metrics
            m.total_cycles += 1
            if report.aborted:
                m.aborted_cycles += 1
            else:
                # only completed cycles count towards staleness
                m.last_cycle_time = time.time()

            m.skipped_unprofitable += report.skipped_unprofitable

            if report.borrowers_checked:
                per_borrower = report.elapsed / report.borrowers_checked
                self._measured_cycles += 1
                m.average_check_time += (per_borrower - m.average_check_time) / self._measured_cycles
                m.borrowers_checked += report.borrowers_checked

            hours_running = (time.time() - self.start_time) / 3600
            if hours_running > 0:
                m.cycles_per_hour = m.total_cycles / hours_running

    def record_warning(self, warning_count: int) -> None:
        with self._lock:
            m = self._metrics
            m.total_warnings_issued += 1
            if warning_count == 1:
                m.warning1_count += 1
            elif warning_count == 2:
                m.warning2_count += 1
            elif warning_count == 3:
                m.warning3_count += 1

    def record_liquidation(self, success: bool, reward: int, gas_cost: int) -> None:
        with self._lock:
            m = self._metrics
            m.total_liquidations += 1
            # gas is spent whether or not the liquidation went through
            m.total_gas_spent += gas_cost

            if success:
                m.successful_liquidations += 1
                m.total_rewards_earned += reward
                m.total_profit += reward - gas_cost
                m.average_reward_per_liquidation = m.total_rewards_earned // m.successful_liquidations
            else:
                m.failed_liquidations += 1
                m.total_profit -= gas_cost

    def record_health_factor(self, borrower: str, health_factor: float) -> None:
        with self._lock:
            if health_factor < self._metrics.lowest_health_factor:
                self._metrics.lowest_health_factor = health_factor
                self._metrics.lowest_health_borrower = borrower

    def get_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return asdict(self._metrics)

    def check_health(self, now: Optional[float] = None) -> List[str]:
        """
        Look for signs that the bot is not doing its job.

        Returns:
            Human readable problems, empty when everything looks fine.
        """
        if now is None:
            now = time.time()
        m = self.get_metrics()
        problems = []

        since_last_cycle = now - (m["last_cycle_time"] or self.start_time)
        if since_last_cycle > self.stale_cycle_seconds:
            problems.append(f"Loan monitor hasn't completed a cycle in {since_last_cycle:.0f}s")
            logger.warning("Metrics: %s", problems[-1])

        if m["total_liquidations"] > 0:
            success_rate = m["successful_liquidations"] / m["total_liquidations"]
            if success_rate < self.min_success_rate:
                problems.append(f"Liquidation success rate low: {success_rate * 100:.1f}%")
                logger.warning("Metrics: %s", problems[-1])

        if m["successful_liquidations"] > 0 and m["total_profit"] < 0:
            problems.append(f"Bot is losing money on liquidations: total profit {m['total_profit']}")
            logger.error("Metrics: %s", problems[-1])

        return problems
