"""
Storage capability behind the accounting core.

Two variants implement it: LedgerVaultStorage (authoritative contract ledger)
and DemoVaultStorage (in-memory fallback). The core is written once against
this protocol and never branches on which variant it holds.
"""

from __future__ import annotations

from decimal import Decimal
from typing import List, Optional, Protocol, runtime_checkable

from canton_vault.core.models import (
    DepositRequest,
    RedeemRequest,
    ShareHolding,
    UnderlyingHolding,
    Vault,
)


@runtime_checkable
class VaultStorage(Protocol):
    """Resolve vaults and holdings, apply deposit and redeem transitions."""

    mode: str

    async def list_vaults(self) -> List[Vault]: ...

    async def find_vault(self, ref: str) -> Optional[Vault]: ...

    async def share_holdings(self, vault: Vault, party: str) -> List[ShareHolding]: ...

    async def underlying_holdings(
        self, party: str, instrument: Optional[str] = None
    ) -> List[UnderlyingHolding]: ...

    async def apply_deposit(
        self, vault: Vault, request: DepositRequest, shares: Decimal
    ) -> Optional[str]: ...

    async def apply_redeem(
        self, vault: Vault, request: RedeemRequest, assets: Decimal
    ) -> Optional[str]: ...
