from typing import Dict, List, Optional

import pytest
from dotenv import load_dotenv

from app.loan_monitor.config_loader import ChainConfig, load_chain_config
from app.loan_monitor.metrics import MetricsCollector
from app.loan_monitor.models import Loan, RiskParameters
from app.loan_monitor.monitor import LoanMonitor

from fakes import (
    COLLATERAL_ASSET,
    ENV_EXAMPLE_PATH,
    NOW,
    TEST_CHAIN_ID,
    FakeLiquidationExecutor,
    FakeLoanRepository,
    FakeOracle,
    FakeRegistry,
    FakeWarningExecutor,
)


@pytest.fixture()
def config() -> ChainConfig:
    load_dotenv(dotenv_path=ENV_EXAMPLE_PATH)
    return load_chain_config(TEST_CHAIN_ID)


@pytest.fixture()
def params() -> RiskParameters:
    return RiskParameters()


@pytest.fixture()
def metrics() -> MetricsCollector:
    return MetricsCollector()


@pytest.fixture()
def build_monitor(params, metrics):
    """Factory for a LoanMonitor wired to fakes, with a fixed clock unless one is passed."""

    def _build(loans: Dict[str, Loan], /, borrowers: Optional[List[str]] = None, **overrides) -> LoanMonitor:
        risk = overrides.pop("params", params)
        execute_actions = overrides.pop("execute_actions", True)
        clock = overrides.pop("clock", lambda: NOW)
        components = {
            "oracle": FakeOracle(),
            "loans": FakeLoanRepository(loans),
            "registry": FakeRegistry(list(loans) if borrowers is None else borrowers),
            "warning_executor": FakeWarningExecutor(),
            "liquidation_executor": FakeLiquidationExecutor(),
            "sink": metrics,
        }
        components.update(overrides)
        return LoanMonitor(
            params=risk,
            collateral_asset=COLLATERAL_ASSET,
            oracle=components["oracle"],
            loans=components["loans"],
            registry=components["registry"],
            warning_executor=components["warning_executor"],
            liquidation_executor=components["liquidation_executor"],
            sink=components["sink"],
            execute_actions=execute_actions,
            clock=clock,
        )

    return _build
