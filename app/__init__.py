"""
Creates and returns the loan monitor bot
"""

import os
from typing import List, Optional

from .loan_monitor.bot_manager import ChainManager


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def create_bot(chain_ids: Optional[List[int]] = None) -> ChainManager:
    """Create the chain manager for the configured chain IDs"""
    if chain_ids is None:
        raw = os.environ.get("CHAIN_IDS", os.environ.get("CHAIN_ID", "84532"))
        chain_ids = [int(c) for c in raw.split(",") if c.strip()]

    return ChainManager(
        chain_ids,
        notify=_env_flag("NOTIFY", True),
        execute_actions=not _env_flag("DRY_RUN", False),
    )
