"""
Price oracle contract reader.
"""

from web3 import Web3

from app.loan_monitor.clients.base import PriceOracle
from app.loan_monitor.config_loader import ChainConfig
from app.loan_monitor.decorators import retry_rpc
from app.loan_monitor.exceptions import PriceUnavailableError
from app.loan_monitor.logging_config import setup_logger
from app.loan_monitor.models import PriceSnapshot

logger = setup_logger()


class Web3PriceOracle(PriceOracle):
    """Reads ``lastPrice(asset) -> (price, timestamp)`` from the on-chain oracle."""

    def __init__(self, config: ChainConfig):
        self.config = config
        self.instance = config.price_oracle
        self._last_price = retry_rpc(logger, config.RPC_RETRIES, config.RPC_RETRY_DELAY)(self._read_last_price)

    def _read_last_price(self, asset: str):
        return self.instance.functions.lastPrice(Web3.to_checksum_address(asset)).call()

    def get_price(self, asset: str) -> PriceSnapshot:
        try:
            price, timestamp = self._last_price(asset)
        except Exception as ex:
            raise PriceUnavailableError(f"Failed to read oracle price for {asset}: {ex}") from ex

        if price <= 0:
            raise PriceUnavailableError(f"Oracle returned no price for {asset}")

        logger.debug("Oracle: %s price %s at %s", asset, price, timestamp)
        return PriceSnapshot(price=int(price), timestamp=int(timestamp))
