"""Async adapter exposing DemoStateStore as a VaultStorage."""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from canton_vault.core.models import (
    DepositRequest,
    RedeemRequest,
    ShareHolding,
    UnderlyingHolding,
    Vault,
)
from canton_vault.state.demo_store import DemoStateStore


class DemoVaultStorage:
    mode = "demo"

    def __init__(self, store: DemoStateStore) -> None:
        self.store = store

    async def list_vaults(self) -> List[Vault]:
        return self.store.list_vaults()

    async def find_vault(self, ref: str) -> Optional[Vault]:
        return self.store.find_vault(ref)

    async def share_holdings(self, vault: Vault, party: str) -> List[ShareHolding]:
        holding = self.store.share_holding(vault.vault_id, party)
        return [holding] if holding is not None else []

    async def underlying_holdings(self, party: str, instrument: Optional[str] = None) -> List[UnderlyingHolding]:
        self.store.ensure_initialized(party)
        return self.store.underlying_holdings(party, instrument)

    async def apply_deposit(self, vault: Vault, request: DepositRequest, shares: Decimal) -> Optional[str]:
        self.store.apply_deposit(
            vault.vault_id,
            request.party,
            request.amount,
            shares,
            receiver=request.beneficiary,
            holding_cid=request.underlying_holding_cid,
        )
        return None

    async def apply_redeem(self, vault: Vault, request: RedeemRequest, assets: Decimal) -> Optional[str]:
        self.store.apply_redeem(
            vault.vault_id,
            request.party,
            request.shares,
            assets,
            receiver=request.beneficiary,
        )
        return None
