"""
LoanMonitor - runs one monitoring cycle over all active borrowers.
"""

import math
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional

from app.loan_monitor.clients.base import BorrowerRegistry, LoanRepository, PriceOracle
from app.loan_monitor.config_loader import ChainConfig
from app.loan_monitor.economics import EconomicsAnalyzer
from app.loan_monitor.exceptions import SimulationError, StalePriceError, SubmissionError
from app.loan_monitor.executor import LiquidationExecutor, WarningExecutor
from app.loan_monitor.health import HealthEvaluator
from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.metrics import ObservabilitySink
from app.loan_monitor.models import (
    CyclePhase,
    CycleReport,
    CycleResult,
    HealthResult,
    Loan,
    PriceSnapshot,
    RiskParameters,
)
from app.loan_monitor.notifications import (
    post_action_failed_notification,
    post_error_notification,
    post_liquidation_result_notification,
    post_warning_issued_notification,
)
from app.loan_monitor.warning import WarningClassifier

logger = setup_logger()


@dataclass
class CycleContext:
    """State owned by a single cycle. Discarded once the cycle is reported."""

    now: float
    started_at: float = field(default_factory=time.monotonic)
    phase: CyclePhase = CyclePhase.IDLE
    snapshot: Optional[PriceSnapshot] = None
    results: List[CycleResult] = field(default_factory=list)

    def elapsed(self) -> float:
        return time.monotonic() - self.started_at


class LoanMonitor:
    """
    Primary class of the loan monitor bot.

    Each cycle reads one price snapshot and judges every active borrower
    against it, one borrower at a time. Borrowers that need it get a
    warning or are liquidated. A failure with one borrower is recorded and
    the cycle moves on; only a stale or missing price aborts the cycle.
    """

    def __init__(
        self,
        params: RiskParameters,
        collateral_asset: str,
        oracle: PriceOracle,
        loans: LoanRepository,
        registry: BorrowerRegistry,
        warning_executor: WarningExecutor,
        liquidation_executor: LiquidationExecutor,
        sink: ObservabilitySink,
        config: Optional[ChainConfig] = None,
        notify: bool = False,
        execute_actions: bool = True,
        clock: Callable[[], float] = time.time,
    ):
        self.params = params
        self.collateral_asset = collateral_asset
        self.oracle = oracle
        self.loans = loans
        self.registry = registry
        self.warning_executor = warning_executor
        self.liquidation_executor = liquidation_executor
        self.sink = sink
        self.config = config
        self.notify = notify and config is not None
        self.execute_actions = execute_actions
        self._clock = clock

        self.health_evaluator = HealthEvaluator(params)
        self.warning_classifier = WarningClassifier(params)
        self.economics = EconomicsAnalyzer(params)

        self.context: Optional[CycleContext] = None
        self._stop_requested = threading.Event()

    @property
    def phase(self) -> CyclePhase:
        return self.context.phase if self.context else CyclePhase.IDLE

    def request_stop(self) -> None:
        """Stop the running cycle at the next borrower boundary."""
        self._stop_requested.set()

    def clear_stop(self) -> None:
        self._stop_requested.clear()

    def run_cycle(self) -> CycleReport:
        """
        Run one full monitoring cycle.

        Never raises for collaborator failures: a stale or unreadable price
        and an unreadable borrower list abort the cycle, anything else is
        recorded against the borrower it happened to.
        """
        ctx = CycleContext(now=self._clock())
        self.context = ctx

        ctx.phase = CyclePhase.FETCHING_PRICE
        try:
            snapshot = self.oracle.get_price(self.collateral_asset)
            self.health_evaluator.check_price_freshness(snapshot.timestamp, ctx.now)
        except StalePriceError as ex:
            return self._abort(ctx, f"{ex}, skipping cycle")
        except Exception as ex:
            return self._abort(ctx, f"Failed to fetch oracle price: {ex}")
        ctx.snapshot = snapshot

        ctx.phase = CyclePhase.ITERATING_BORROWERS
        try:
            borrowers = self.registry.get_active_borrowers()
        except Exception as ex:
            return self._abort(ctx, f"Failed to load active borrowers: {ex}")

        logger.info(
            "LoanMonitor: Monitoring %s loans at price %s (published %ss ago)",
            len(borrowers), snapshot.price, int(snapshot.age(ctx.now)),
        )

        for index, borrower in enumerate(borrowers):
            if self._stop_requested.is_set():
                logger.warning(
                    "LoanMonitor: Stop requested, ending cycle after %s of %s borrowers", index, len(borrowers)
                )
                break
            ctx.results.append(self._process_borrower(borrower, snapshot))

        return self._report(ctx)

    def _abort(self, ctx: CycleContext, reason: str) -> CycleReport:
        ctx.phase = CyclePhase.ABORTED
        logger.error("LoanMonitor: Cycle aborted: %s", reason)

        report = CycleReport.aborted_cycle(reason, ctx.elapsed())
        self._record(self.sink.record_cycle, report)
        self._notify(post_error_notification, f"Monitoring cycle aborted: {reason}")

        ctx.phase = CyclePhase.IDLE
        return report

    def _report(self, ctx: CycleContext) -> CycleReport:
        ctx.phase = CyclePhase.REPORTING
        report = CycleReport.from_results(ctx.results, ctx.elapsed())
        self._record(self.sink.record_cycle, report)

        logger.info(
            "LoanMonitor: Cycle completed: borrowers=%s, warnings=%s, liquidations=%s, skipped=%s, errors=%s, "
            "time=%.2fs",
            report.borrowers_checked, report.warnings_issued, report.liquidations_executed,
            report.skipped_unprofitable, report.errors, report.elapsed,
        )
        ctx.phase = CyclePhase.IDLE
        return report

    def _process_borrower(self, borrower: str, snapshot: PriceSnapshot) -> CycleResult:
        try:
            return self.monitor_loan(borrower, snapshot, self._clock())
        except Exception as ex:
            logger.error("LoanMonitor: Failed to monitor loan for %s: %s", borrower, ex, exc_info=True)
            return CycleResult(borrower=borrower, success=False, healthy=False, error=str(ex))

    def monitor_loan(self, borrower: str, snapshot: PriceSnapshot, now: float) -> CycleResult:
        """
        Evaluate one borrower and act on the outcome.

        Loan reads and health evaluation may raise; executor failures are
        caught here so they can be counted against the action.
        """
        loan = self.loans.get_loan(borrower)
        if loan is None or loan.total_debt == 0:
            return CycleResult(borrower=borrower, success=True, healthy=True, health_factor=math.inf)

        health = self.health_evaluator.evaluate(borrower, loan, snapshot.price, snapshot.timestamp, now)
        self._record(self.sink.record_health_factor, borrower, health.health_factor)

        if health.needs_liquidation:
            return self._handle_liquidation(borrower, health)

        return self._handle_warning(borrower, health, loan, now)

    def _handle_liquidation(self, borrower: str, health: HealthResult) -> CycleResult:
        economics = self.economics.analyze(health)
        hf = health.health_factor

        if not self.economics.should_liquidate(economics):
            logger.warning(
                "LoanMonitor: %s is liquidatable (hf=%.4f) but not profitable, skipping. reward=%s, gas=%s, profit=%s",
                borrower, hf, economics.liquidator_reward, economics.gas_cost, economics.profit,
            )
            return CycleResult(
                borrower=borrower, success=True, healthy=False, health_factor=hf, skipped_unprofitable=True
            )

        logger.warning(
            "LoanMonitor: Liquidating %s (hf=%.4f, collateral value=%s, reward=%s, profit=%s)",
            borrower, hf, economics.collateral_value, economics.liquidator_reward, economics.profit,
        )
        if not self.execute_actions:
            logger.info("LoanMonitor: Dry run, not liquidating %s", borrower)
            return CycleResult(borrower=borrower, success=True, healthy=False, health_factor=hf)

        try:
            result = self.liquidation_executor.liquidate(borrower)
        except Exception as ex:
            logger.error("LoanMonitor: Liquidation of %s failed: %s", borrower, ex, exc_info=True)
            # nothing reached the chain, so no gas was spent
            gas_spent = 0 if isinstance(ex, (SimulationError, SubmissionError)) else economics.gas_cost
            self._record(self.sink.record_liquidation, False, 0, gas_spent)
            self._notify(post_action_failed_notification, borrower, "liquidation", str(ex))
            return CycleResult(borrower=borrower, success=False, healthy=False, health_factor=hf, error=str(ex))

        self._record(self.sink.record_liquidation, result.success, result.reward, economics.gas_cost)
        if result.success:
            logger.info("LoanMonitor: %s liquidated, reward %s, tx %s", borrower, result.reward, result.tx_hash)
            self._notify(post_liquidation_result_notification, borrower, hf, economics, result)

        return CycleResult(
            borrower=borrower,
            success=result.success,
            healthy=False,
            health_factor=hf,
            liquidated=result.success,
            reward=result.reward,
            tx_hash=result.tx_hash,
            error=None if result.success else "Liquidation executor reported failure",
        )

    def _handle_warning(self, borrower: str, health: HealthResult, loan: Loan, now: float) -> CycleResult:
        state = self.warning_classifier.classify(health, loan, now)
        hf = health.health_factor

        if not self.warning_classifier.should_issue_warning(state, loan, now):
            return CycleResult(
                borrower=borrower, success=True, healthy=health.is_healthy, health_factor=hf, warning_state=state
            )

        logger.warning(
            "LoanMonitor: Issuing %s to %s (hf=%.4f, warnings issued=%s)",
            state.name, borrower, hf, loan.warnings_issued,
        )
        if not self.execute_actions:
            logger.info("LoanMonitor: Dry run, not issuing warning to %s", borrower)
            return CycleResult(borrower=borrower, success=True, healthy=False, health_factor=hf, warning_state=state)

        try:
            tx_hash = self.warning_executor.issue_warning(borrower)
        except Exception as ex:
            logger.error("LoanMonitor: Warning for %s failed: %s", borrower, ex, exc_info=True)
            self._notify(post_action_failed_notification, borrower, "warning", str(ex))
            return CycleResult(
                borrower=borrower, success=False, healthy=False, health_factor=hf, warning_state=state, error=str(ex)
            )

        self._record(self.sink.record_warning, loan.warnings_issued + 1)
        self._notify(post_warning_issued_notification, borrower, state, hf, loan.warnings_issued, tx_hash)

        return CycleResult(
            borrower=borrower,
            success=True,
            healthy=False,
            health_factor=hf,
            warning_issued=True,
            warning_state=state,
            tx_hash=tx_hash,
        )

    def _record(self, method: Callable[..., Any], *args: Any) -> None:
        try:
            method(*args)
        except Exception as ex:
            name = getattr(method, "__name__", method)
            logger.error("LoanMonitor: Metrics call %s failed: %s", name, ex, exc_info=True)

    def _notify(self, post: Callable[..., bool], *args: Any) -> None:
        if not self.notify:
            return
        try:
            post(*args, self.config)
        except Exception as ex:
            name = getattr(post, "__name__", post)
            logger.error("LoanMonitor: Failed to post notification %s: %s", name, ex, exc_info=True)
