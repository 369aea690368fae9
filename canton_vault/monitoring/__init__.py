"""
Monitoring package.

This package contains the Prometheus metrics for vault operations.
"""

from canton_vault.monitoring.metrics import VaultMetrics

__all__ = ["VaultMetrics"]
