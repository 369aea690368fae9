"""
Prometheus metrics for vault operations.

Organized into: operations, vault state, ledger connectivity.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram

from canton_vault.core.models import Vault


class VaultMetrics:
    """Counters and gauges for the accounting core."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()
        reg = self.registry

        # === Operation Metrics ===
        self.operations = Counter(
            'vault_operations_total',
            'Vault operations by outcome',
            labelnames=['op', 'mode', 'outcome'],
            registry=reg
        )
        self.operation_latency_ms = Histogram(
            'vault_operation_latency_ms',
            'Deposit/redeem latency including ledger round trips (milliseconds)',
            labelnames=['op', 'mode'],
            buckets=[1, 5, 10, 50, 100, 250, 500, 1000, 5000, 10000],
            registry=reg
        )

        # === Vault State ===
        self.total_assets = Gauge(
            'vault_total_assets',
            'Vault total assets after the last observed operation',
            labelnames=['vault'],
            registry=reg
        )
        self.total_shares = Gauge(
            'vault_total_shares',
            'Vault total shares after the last observed operation',
            labelnames=['vault'],
            registry=reg
        )
        self.share_price = Gauge(
            'vault_share_price',
            'Vault share price after the last observed operation',
            labelnames=['vault'],
            registry=reg
        )

        # === Connectivity ===
        self.ledger_available = Gauge(
            'ledger_available',
            '1 if the process resolved to ledger mode, 0 for demo mode',
            registry=reg
        )

    def record_operation(self, op: str, mode: str, outcome: str, latency_ms: Optional[float] = None) -> None:
        self.operations.labels(op=op, mode=mode, outcome=outcome).inc()
        if latency_ms is not None:
            self.operation_latency_ms.labels(op=op, mode=mode).observe(latency_ms)

    def observe_vault(self, vault: Vault) -> None:
        self.total_assets.labels(vault=vault.vault_id).set(float(vault.total_assets))
        self.total_shares.labels(vault=vault.vault_id).set(float(vault.total_shares))
        self.share_price.labels(vault=vault.vault_id).set(float(vault.share_price))

    def set_mode(self, mode: str) -> None:
        self.ledger_available.set(1 if mode == "ledger" else 0)

    def value(self, name: str, **labels) -> Optional[float]:
        """Current sample value, for status output and tests."""
        return self.registry.get_sample_value(name, labels or None)
