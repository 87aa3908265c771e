from typing import Dict, List, Optional

from .clients.lending_pool import Web3LoanRepository
from .clients.oracle import Web3PriceOracle
from .clients.registry import FileBorrowerRegistry
from .config_loader import ChainConfig, load_chain_config
from .executor import LiquidationExecutor, TransactionSubmitter, WarningExecutor
from .logging_config import setup_logger
from .metrics import MetricsCollector
from .monitor import LoanMonitor
from .notifications import post_health_check_notification
from .scheduler import MonitorScheduler

logger = setup_logger()


def create_loan_monitor(
    config: ChainConfig, metrics: MetricsCollector, notify: bool = True, execute_actions: bool = True
) -> LoanMonitor:
    """Wire a LoanMonitor to the chain's contracts and the borrower file."""
    loans = Web3LoanRepository(config)
    registry = FileBorrowerRegistry(config.BORROWERS_PATH, loans)
    registry.load()

    submitter = TransactionSubmitter(config)

    return LoanMonitor(
        params=config.risk_parameters,
        collateral_asset=config.COLLATERAL_TOKEN,
        oracle=Web3PriceOracle(config),
        loans=loans,
        registry=registry,
        warning_executor=WarningExecutor(submitter),
        liquidation_executor=LiquidationExecutor(submitter, config.BOT_EOA),
        sink=metrics,
        config=config,
        notify=notify,
        execute_actions=execute_actions,
    )


class ChainManager:
    """Manages one loan monitor and its schedulers per chain"""

    def __init__(self, chain_ids: List[int], notify: bool = True, execute_actions: bool = True):
        self.chain_ids = chain_ids
        self.notify = notify
        self.execute_actions = execute_actions

        self.configs: Dict[int, ChainConfig] = {}
        self.metrics: Dict[int, MetricsCollector] = {}
        self.monitors: Dict[int, LoanMonitor] = {}
        self.schedulers: Dict[int, MonitorScheduler] = {}
        self.health_checks: Dict[int, MonitorScheduler] = {}

        self._initialize_chains()

    def _initialize_chains(self):
        """Initialize components for each chain"""
        logger.info("Initializing chains: %s", self.chain_ids)
        for chain_id in self.chain_ids:
            config = load_chain_config(chain_id)
            self.configs[chain_id] = config
            params = config.risk_parameters

            metrics = MetricsCollector(
                stale_cycle_seconds=max(config.STALE_CYCLE_SECONDS, 4 * params.monitoring_interval),
                min_success_rate=config.MIN_LIQUIDATION_SUCCESS_RATE,
            )
            self.metrics[chain_id] = metrics

            monitor = create_loan_monitor(config, metrics, self.notify, self.execute_actions)
            self.monitors[chain_id] = monitor

            self.schedulers[chain_id] = MonitorScheduler(
                monitor.run_cycle,
                params.monitoring_interval,
                on_stop=monitor.request_stop,
                name=f"{config.CHAIN_NAME}-monitor",
            )
            self.health_checks[chain_id] = MonitorScheduler(
                lambda chain_id=chain_id: self._check_health(chain_id),
                params.health_check_interval,
                name=f"{config.CHAIN_NAME}-health",
            )

    def _check_health(self, chain_id: int) -> List[str]:
        problems = self.metrics[chain_id].check_health()
        if problems and self.notify:
            try:
                post_health_check_notification(problems, self.configs[chain_id])
            except Exception as ex:
                logger.error("Failed to post health check notification: %s", ex, exc_info=True)
        return problems

    def start(self):
        """Start all chain monitors and health checks"""
        for chain_id in self.chain_ids:
            self.monitors[chain_id].clear_stop()
            self.schedulers[chain_id].start()
            self.health_checks[chain_id].start()

    def wait(self, poll_interval: float = 1.0):
        """Block while any chain monitor is running"""
        while any(s.running for s in self.schedulers.values()):
            for scheduler in self.schedulers.values():
                scheduler.join(poll_interval)

    def stop(self, timeout: Optional[float] = None):
        """Stop all chain instances, letting in-flight cycles finish"""
        for chain_id in self.chain_ids:
            self.health_checks[chain_id].stop(timeout)
            self.schedulers[chain_id].stop(timeout)
