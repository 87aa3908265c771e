"""
Contract instance creation utilities.
"""

import json
import os
from typing import Any, Dict, List

from web3 import Web3
from web3.contract import Contract

APP_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def resolve_abi_path(abi_path: str) -> str:
    """Resolve an ABI path relative to the app package unless it is absolute."""
    if os.path.isabs(abi_path):
        return abi_path
    return os.path.join(APP_DIR, abi_path)


def load_abi(abi_path: str) -> List[Dict[str, Any]]:
    with open(resolve_abi_path(abi_path), "r", encoding="utf-8") as file:
        interface = json.load(file)
    return interface["abi"]


def create_contract_instance(w3: Web3, address: str, abi_path: str) -> Contract:
    """
    Create and return a Web3 contract instance.

    Args:
        w3: Web3 instance bound to the chain's RPC.
        address: The address of the contract, checksummed here.
        abi_path: Path to the ABI JSON file.

    Returns:
        Web3 contract instance.
    """
    return w3.eth.contract(address=Web3.to_checksum_address(address), abi=load_abi(abi_path))
