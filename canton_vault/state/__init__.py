"""
State package.

This package contains the in-memory demo store used when the ledger is
unreachable, and its storage adapter.
"""

from canton_vault.state.demo_backend import DemoVaultStorage
from canton_vault.state.demo_store import DEFAULT_STARTING_BALANCES, DemoStateStore, default_seed

__all__ = [
    "DemoVaultStorage",
    "DemoStateStore",
    "DEFAULT_STARTING_BALANCES",
    "default_seed",
]
