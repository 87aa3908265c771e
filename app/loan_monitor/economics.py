"""
Liquidation profitability analysis.
"""

from app.loan_monitor.models import HealthResult, LiquidationEconomics, RiskParameters


class EconomicsAnalyzer:
    """Estimates what the bot earns by liquidating a loan."""

    def __init__(self, params: RiskParameters):
        self.params = params

    def analyze(self, health: HealthResult) -> LiquidationEconomics:
        liquidator_reward = health.collateral_value * self.params.reward_percent // 100
        # flat estimate until gas is priced per transaction
        gas_cost = self.params.gas_cost_estimate
        profit = liquidator_reward - gas_cost

        return LiquidationEconomics(
            collateral_value=health.collateral_value,
            liquidator_reward=liquidator_reward,
            gas_cost=gas_cost,
            profit=profit,
            is_profitable=profit > 0,
        )

    def should_liquidate(self, economics: LiquidationEconomics) -> bool:
        """Only liquidate when profit clears the minimum profit threshold."""
        return economics.profit >= self.params.min_profit_threshold
