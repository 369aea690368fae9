"""
Ledger package.

This package maps Canton contract records into vault views and implements
the ledger-backed storage variant.
"""

from canton_vault.ledger.contract_mapper import TemplateIds
from canton_vault.ledger.ledger_backend import LedgerVaultStorage

__all__ = [
    "TemplateIds",
    "LedgerVaultStorage",
]
