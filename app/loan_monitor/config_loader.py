"""
Config Loader module - YAML settings per chain plus secrets from the environment
"""

import dataclasses
import os
from typing import Any, Dict, Optional

import yaml
from web3 import Web3

from .contracts import create_contract_instance
from .exceptions import ConfigError
from .models import RiskParameters

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "config.yaml")


class Web3Singleton:
    """
    Singleton class to manage w3 object creation per RPC URL
    """

    _instances = {}

    @staticmethod
    def get_instance(rpc_url: Optional[str] = None):
        """
        Return the Web3 instance for an RPC URL, creating it on first use.
        """

        if rpc_url not in Web3Singleton._instances:
            Web3Singleton._instances[rpc_url] = Web3(Web3.HTTPProvider(rpc_url))

        return Web3Singleton._instances[rpc_url]


def setup_w3(rpc_url: Optional[str] = None) -> Web3:
    """
    Get the Web3 instance from the singleton class

    Args:
        rpc_url (Optional[str]): RPC URL of the chain

    Returns:
        Web3: Web3 instance.
    """
    return Web3Singleton.get_instance(rpc_url)


def build_risk_parameters(values: Dict[str, Any]) -> RiskParameters:
    """
    Build RiskParameters from a config mapping, rejecting unknown keys and
    thresholds that would make the health predicates overlap.
    """
    known = {f.name for f in dataclasses.fields(RiskParameters)}
    unknown = set(values) - known
    if unknown:
        raise ConfigError(f"Unknown risk parameters: {', '.join(sorted(unknown))}")

    params = RiskParameters(**values)

    if params.liquidation_threshold >= params.healthy_threshold:
        raise ConfigError(
            f"liquidation_threshold ({params.liquidation_threshold}) must be below "
            f"healthy_threshold ({params.healthy_threshold})"
        )
    if not params.warning2_threshold <= params.warning1_threshold:
        raise ConfigError("warning2_threshold must not exceed warning1_threshold")
    if params.max_warnings < 0 or params.warning_interval <= 0:
        raise ConfigError("max_warnings must be >= 0 and warning_interval > 0")
    if params.confirmation_max_attempts < 1 or params.monitoring_interval <= 0:
        raise ConfigError("confirmation_max_attempts must be >= 1 and monitoring_interval > 0")

    return params


class ChainConfig:
    """
    Chain Config object to access config variables
    """

    required_env_vars = [
        "BOT_EOA",
        "BOT_PRIVATE_KEY",
        # "NOTIFICATION_URL",  # Optional
    ]

    def __init__(self, chain_id: int, global_config: Dict[str, Any], chain_config: Dict[str, Any]):
        self.CHAIN_ID = chain_id
        self.CHAIN_NAME = chain_config["name"]
        self._global = global_config
        self._chain = chain_config

        # validate env
        self.validate()

        self.BOT_EOA = Web3.to_checksum_address(os.environ["BOT_EOA"])
        self.BOT_PRIVATE_KEY = os.environ["BOT_PRIVATE_KEY"]
        self.NOTIFICATION_URL = os.environ.get("NOTIFICATION_URL", "")

        # Load chain-specific RPC from env using RPC_NAME from config
        self.RPC_URL = os.environ.get(self._chain["RPC_NAME"], "")
        if not self.RPC_URL:
            raise EnvironmentError(
                f"Missing RPC URL for {self.CHAIN_NAME}. Env var {self._chain['RPC_NAME']} not found"
            )

        self.w3 = setup_w3(self.RPC_URL)

        self.BORROWERS_PATH = f"{self._global['STATE_PATH']}/{self.CHAIN_NAME}_borrowers.json"

        self.COLLATERAL_TOKEN = Web3.to_checksum_address(self._chain["contracts"]["COLLATERAL_TOKEN"])
        self.lending_pool = create_contract_instance(
            self.w3, self._chain["contracts"]["LENDING_POOL"], self._global["LENDING_POOL_ABI_PATH"]
        )
        self.price_oracle = create_contract_instance(
            self.w3, self._chain["contracts"]["PRICE_ORACLE"], self._global["PRICE_ORACLE_ABI_PATH"]
        )

        self.risk_parameters = build_risk_parameters(
            {**self._global.get("risk", {}), **self._chain.get("risk", {})}
        )

    def __getattr__(self, name: str) -> Any:
        """Look up config values in chain-specific, then contracts, then global config."""
        if name.startswith("_"):
            raise AttributeError(name)
        if name in self._chain:
            return self._chain[name]
        if name in self._chain.get("contracts", {}):
            return self._chain["contracts"][name]
        if name in self._global:
            return self._global[name]
        raise AttributeError(f"Config has no attribute '{name}'")

    def validate(self) -> None:
        """
        Validates that all required environment variables are set.
        Raises an error if any are missing.
        """
        missing_keys = [key for key in self.required_env_vars if not os.getenv(key)]
        if missing_keys:
            raise EnvironmentError(f"Missing required environment variables: {', '.join(missing_keys)}")


def load_chain_config(chain_id: int, config_path: str = DEFAULT_CONFIG_PATH) -> ChainConfig:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = yaml.safe_load(f)
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Config file not found at {config_path}") from exc
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML file: {e}") from e

    if chain_id not in config["chains"]:
        raise ValueError(f"No configuration found for chain ID {chain_id}")

    return ChainConfig(chain_id=chain_id, global_config=config["global"], chain_config=config["chains"][chain_id])
