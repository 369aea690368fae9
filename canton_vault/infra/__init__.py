"""
Infrastructure package.

This package contains the ledger gateway, logging configuration and the
per-vault lock registry.
"""

from canton_vault.infra.ledger_gateway import LedgerGateway
from canton_vault.infra.locks import KeyedLocks
from canton_vault.infra.logging_cfg import build_logger, log_event

__all__ = [
    "LedgerGateway",
    "KeyedLocks",
    "build_logger",
    "log_event",
]
