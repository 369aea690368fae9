"""
Pytest configuration and fixtures.
Adds the repo root to sys.path so tests can import canton_vault without installing.
"""

import sys
from decimal import Decimal
from pathlib import Path

import pytest

repo_root = Path(__file__).parent.parent
if str(repo_root) not in sys.path:
    sys.path.insert(0, str(repo_root))

from canton_vault.core.models import DemoSeed, ShareHolding, Vault  # noqa: E402
from canton_vault.state.demo_store import DemoStateStore  # noqa: E402


def make_vault(
    vault_id: str = "vault-1",
    total_assets: str = "1000000",
    total_shares: str = "1000000",
    underlying: str = "USDC",
    **kwargs,
) -> Vault:
    return Vault(
        vault_id=vault_id,
        name=kwargs.pop("name", vault_id),
        admin=kwargs.pop("admin", "vault-admin"),
        underlying_asset=underlying,
        share_instrument=kwargs.pop("share_instrument", f"cv{underlying}"),
        total_assets=Decimal(total_assets),
        total_shares=Decimal(total_shares),
        contract_id=kwargs.pop("contract_id", f"demo-{vault_id}"),
        **kwargs,
    )


@pytest.fixture
def premium_seed() -> DemoSeed:
    """Vault priced above 1.0 (500 assets / 475 shares) with a holder of 100 shares."""
    return DemoSeed(
        vaults=[make_vault("vault-p", total_assets="500", total_shares="475")],
        share_holdings=[ShareHolding(owner="alice", vault_id="vault-p", amount=Decimal("100"))],
        starting_balances={"USDC": Decimal("10000"), "USDT": Decimal("5000")},
    )


@pytest.fixture
def demo_store() -> DemoStateStore:
    """Fresh store with the built-in seed."""
    return DemoStateStore()
