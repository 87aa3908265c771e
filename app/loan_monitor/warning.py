"""
Graduated warning classification for loans that are not (yet) liquidatable.
"""

from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.models import HealthResult, Loan, RiskParameters, WarningState

logger = setup_logger()


class WarningClassifier:
    """
    Maps a loan's health and payment history to a WarningState and decides
    whether the next on-chain warning should be issued now.

    The state is recomputed from scratch every cycle; only warnings_issued and
    last_warning_time persist on chain.
    """

    def __init__(self, params: RiskParameters):
        self.params = params

        if params.warning3_threshold <= params.liquidation_threshold:
            logger.warning(
                "WarningClassifier: warning3 threshold %s <= liquidation threshold %s, WARNING_3 is unreachable",
                params.warning3_threshold, params.liquidation_threshold,
            )

    def classify(self, health: HealthResult, loan: Loan, now: float) -> WarningState:
        """Return the most severe matching state, checked top-down."""
        hf = health.health_factor
        since_payment = now - loan.last_payment_time
        interval = self.params.warning_interval

        if hf <= self.params.liquidation_threshold:
            return WarningState.LIQUIDATABLE

        if hf <= self.params.warning3_threshold:
            return WarningState.WARNING_3

        if hf <= self.params.warning2_threshold or (loan.warnings_issued >= 1 and since_payment >= 2 * interval):
            return WarningState.WARNING_2

        if hf <= self.params.warning1_threshold or since_payment >= interval:
            return WarningState.WARNING_1

        return WarningState.HEALTHY

    def should_issue_warning(self, state: WarningState, loan: Loan, now: float) -> bool:
        """
        Gate actual issuance of a warning for the given state.

        The first warning fires as soon as WARNING_1 is reached. The second and
        third need the matching count of earlier warnings plus a full warning
        interval since the last one. Nothing is issued past max_warnings.
        """
        if loan.warnings_issued >= self.params.max_warnings:
            return False

        since_warning = now - loan.last_warning_time
        interval_elapsed = since_warning >= self.params.warning_interval

        if state == WarningState.WARNING_1:
            return loan.warnings_issued == 0
        if state == WarningState.WARNING_2:
            return loan.warnings_issued == 1 and interval_elapsed
        if state == WarningState.WARNING_3:
            return loan.warnings_issued == 2 and interval_elapsed
        return False
