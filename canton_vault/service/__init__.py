"""
Service package.

This package contains the vault accounting core and the storage protocol
its two backends implement.
"""

from canton_vault.service.storage import VaultStorage
from canton_vault.service.vault_service import DEMO_MODE, LEDGER_MODE, VaultService

__all__ = [
    "VaultStorage",
    "VaultService",
    "DEMO_MODE",
    "LEDGER_MODE",
]
