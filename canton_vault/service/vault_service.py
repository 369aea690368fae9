"""
VaultService: the vault accounting core.

Single entry point for request handlers:
- Mode resolution (ledger vs demo), probed once and cached for the process
- Vault and holdings resolution
- Share/asset conversion and previews
- Deposit and redeem as serialized read-compute-write transitions

Architecture:
    VaultService is written once against the VaultStorage protocol. The only
    place that knows about two storages is resolve_mode(); every other method
    works on whichever variant it returned.

Concurrency:
    Deposit and redeem hold a per-vault asyncio.Lock from the pre-state read
    until the transition is applied, so two deposits into the same vault never
    price against the same stale totals. Different vaults proceed concurrently.
    In ledger mode the ledger's contract versioning is the final guard; a stale
    reference surfaces as ConflictError and is not retried here.
"""

from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from canton_vault.core.amounts import ZERO
from canton_vault.core.conversion import (
    assets_for_redeem,
    assets_to_shares,
    holding_value,
    shares_for_deposit,
    shares_to_assets,
)
from canton_vault.core.errors import InvalidArgumentError, VaultError, VaultNotFoundError, describe
from canton_vault.core.models import (
    ConversionPreview,
    DepositRequest,
    DepositResult,
    RedeemRequest,
    RedeemResult,
    ShareBalance,
    UnderlyingHolding,
    Vault,
    request_amount,
)
from canton_vault.infra.ledger_gateway import LedgerGateway
from canton_vault.infra.locks import KeyedLocks
from canton_vault.infra.logging_cfg import LOGGER_NAME, log_event
from canton_vault.ledger.contract_mapper import TemplateIds
from canton_vault.ledger.ledger_backend import LedgerVaultStorage
from canton_vault.monitoring.metrics import VaultMetrics
from canton_vault.service.storage import VaultStorage
from canton_vault.state.demo_backend import DemoVaultStorage
from canton_vault.state.demo_store import DemoStateStore

log = logging.getLogger(LOGGER_NAME)

LEDGER_MODE = "ledger"
DEMO_MODE = "demo"


class VaultService:
    """
    Vault accounting core.

    Mode is sticky: the first operation probes the ledger once and the answer
    holds for the life of the process. There is no fallback to demo mid-session
    and no promotion back to ledger mode, because the two storages are never
    reconciled.
    """

    def __init__(
        self,
        gateway: Optional[LedgerGateway],
        demo_store: Optional[DemoStateStore] = None,
        templates: Optional[TemplateIds] = None,
        metrics: Optional[VaultMetrics] = None,
        ledger_enabled: bool = True,
    ) -> None:
        """
        Initialize VaultService.

        Args:
            gateway: Ledger transport (None runs demo-only)
            demo_store: In-memory fallback store (fresh default seed if omitted)
            templates: Daml template identifiers for ledger queries
            metrics: Optional Prometheus metrics
            ledger_enabled: False skips the probe and pins demo mode
        """
        self.gateway = gateway
        self.demo_store = demo_store if demo_store is not None else DemoStateStore()
        self.metrics = metrics
        self._ledger_enabled = ledger_enabled and gateway is not None
        self._ledger_storage: Optional[VaultStorage] = (
            LedgerVaultStorage(gateway, templates) if gateway is not None else None
        )
        self._demo_storage: VaultStorage = DemoVaultStorage(self.demo_store)
        self._storage: Optional[VaultStorage] = None
        self._resolve_lock = asyncio.Lock()
        self._vault_locks = KeyedLocks()

    # ========== Mode Resolution ==========

    @property
    def mode(self) -> Optional[str]:
        """'ledger', 'demo', or None before the first operation."""
        return self._storage.mode if self._storage is not None else None

    async def resolve_mode(self) -> VaultStorage:
        """Probe the ledger once; cache the chosen storage for the process."""
        if self._storage is not None:
            return self._storage
        async with self._resolve_lock:
            if self._storage is None:
                available = False
                if self._ledger_enabled:
                    available = await self.gateway.is_available()
                self._storage = self._ledger_storage if available else self._demo_storage
                log_event(
                    log,
                    "vault_mode_resolved",
                    level=logging.INFO if available else logging.WARNING,
                    mode=self._storage.mode,
                    probed=self._ledger_enabled,
                )
                if self.metrics:
                    self.metrics.set_mode(self._storage.mode)
        return self._storage

    # ========== Vault Resolution ==========

    async def list_vaults(self) -> List[Vault]:
        storage = await self.resolve_mode()
        return await storage.list_vaults()

    async def get_vault(self, vault_id: str) -> Optional[Vault]:
        """Vault by name / id or contract id; None when absent."""
        storage = await self.resolve_mode()
        return await storage.find_vault(vault_id)

    async def _require_vault(self, storage: VaultStorage, vault_id: str) -> Vault:
        vault = await storage.find_vault(vault_id)
        if vault is None:
            raise VaultNotFoundError(vault_id)
        return vault

    # ========== Holdings Resolution ==========

    async def get_share_holdings(self, vault_id: str, party: str) -> ShareBalance:
        """Sum of a party's share fragments in a vault, valued at the current price."""
        storage = await self.resolve_mode()
        vault = await self._require_vault(storage, vault_id)
        fragments = await storage.share_holdings(vault, party)
        shares = sum((h.amount for h in fragments), ZERO)
        return ShareBalance(
            party=party,
            vault_id=vault.vault_id,
            shares=shares,
            value=holding_value(vault, shares),
            locked=any(h.locked for h in fragments),
            contract_id=fragments[0].contract_id if fragments else None,
            fragments=len(fragments),
        )

    async def get_underlying_holdings(self, party: str, instrument: Optional[str] = None) -> List[UnderlyingHolding]:
        storage = await self.resolve_mode()
        return await storage.underlying_holdings(party, instrument)

    # ========== Previews ==========

    async def preview_deposit(self, vault_id: str, assets: Any) -> ConversionPreview:
        """Shares a deposit of `assets` would mint right now."""
        amount = self._non_negative(assets, "assets")
        vault = await self._require_vault(await self.resolve_mode(), vault_id)
        return ConversionPreview(assets=amount, shares=assets_to_shares(vault, amount), share_price=vault.share_price)

    async def preview_redeem(self, vault_id: str, shares: Any) -> ConversionPreview:
        """Assets a redemption of `shares` would release right now."""
        amount = self._non_negative(shares, "shares")
        vault = await self._require_vault(await self.resolve_mode(), vault_id)
        return ConversionPreview(assets=shares_to_assets(vault, amount), shares=amount, share_price=vault.share_price)

    @staticmethod
    def _non_negative(value: Any, label: str) -> Decimal:
        amount = request_amount(value, label)
        if amount < ZERO:
            raise InvalidArgumentError(f"{label} must not be negative", **{label: value})
        return amount

    # ========== Deposit ==========

    async def deposit(self, vault_id: str, request: Union[DepositRequest, Dict[str, Any]]) -> DepositResult:
        """
        Deposit underlying into a vault and mint shares.

        shares = amount                              if totalShares == 0
               = amount * totalShares / totalAssets  otherwise
        computed from the totals read under the vault lock.
        """
        if not isinstance(request, DepositRequest):
            request = DepositRequest.from_dict(request)
        storage = await self.resolve_mode()
        started = time.perf_counter()
        try:
            if request.amount <= ZERO:
                raise InvalidArgumentError("amount must be positive", amount=request.amount)
            vault = await self._require_vault(storage, vault_id)
            lock = await self._vault_locks.get_lock(vault.vault_id)
            async with lock:
                vault = await self._require_vault(storage, vault.vault_id)
                self._check_deposit_bounds(vault, request.amount)
                shares = shares_for_deposit(vault.total_assets, vault.total_shares, request.amount)
                if shares <= ZERO:
                    raise InvalidArgumentError("amount too small to mint shares", amount=request.amount)
                tx_id = await storage.apply_deposit(vault, request, shares)
        except VaultError as exc:
            self._record("deposit", storage.mode, exc.code, started)
            log_event(log, "vault_deposit_rejected", level=logging.WARNING, vault=vault_id,
                      party=request.party, amount=request.amount, **describe(exc))
            raise

        self._record("deposit", storage.mode, "accepted", started)
        await self._observe(storage, vault.vault_id)
        log_event(log, "vault_deposit", vault=vault.vault_id, party=request.party, mode=storage.mode,
                  amount=request.amount, shares=shares, tx=tx_id)
        return DepositResult(
            vault_id=vault.vault_id,
            party=request.party,
            amount=request.amount,
            shares=shares,
            tx_id=tx_id,
        )

    @staticmethod
    def _check_deposit_bounds(vault: Vault, amount: Decimal) -> None:
        if amount < vault.min_deposit:
            raise InvalidArgumentError(
                "amount below vault minimum deposit",
                amount=amount,
                min_deposit=vault.min_deposit,
            )
        if vault.deposit_limit is not None and vault.total_assets + amount > vault.deposit_limit:
            raise InvalidArgumentError(
                "deposit would exceed vault deposit limit",
                amount=amount,
                deposit_limit=vault.deposit_limit,
                total_assets=vault.total_assets,
            )

    # ========== Redeem ==========

    async def redeem(self, vault_id: str, request: Union[RedeemRequest, Dict[str, Any]]) -> RedeemResult:
        """
        Burn shares for a proportional share of vault assets.

        assets = shares                              if totalAssets == 0
               = shares * totalAssets / totalShares  otherwise
        computed from the totals read under the vault lock.
        """
        if not isinstance(request, RedeemRequest):
            request = RedeemRequest.from_dict(request)
        storage = await self.resolve_mode()
        started = time.perf_counter()
        try:
            if request.shares <= ZERO:
                raise InvalidArgumentError("shares must be positive", shares=request.shares)
            vault = await self._require_vault(storage, vault_id)
            lock = await self._vault_locks.get_lock(vault.vault_id)
            async with lock:
                vault = await self._require_vault(storage, vault.vault_id)
                assets = assets_for_redeem(vault.total_assets, vault.total_shares, request.shares)
                tx_id = await storage.apply_redeem(vault, request, assets)
        except VaultError as exc:
            self._record("redeem", storage.mode, exc.code, started)
            log_event(log, "vault_redeem_rejected", level=logging.WARNING, vault=vault_id,
                      party=request.party, shares=request.shares, **describe(exc))
            raise

        self._record("redeem", storage.mode, "accepted", started)
        await self._observe(storage, vault.vault_id)
        log_event(log, "vault_redeem", vault=vault.vault_id, party=request.party, mode=storage.mode,
                  shares=request.shares, assets=assets, tx=tx_id)
        return RedeemResult(
            vault_id=vault.vault_id,
            party=request.party,
            shares=request.shares,
            assets=assets,
            tx_id=tx_id,
        )

    # ========== Metrics ==========

    def _record(self, op: str, mode: str, outcome: str, started: float) -> None:
        if self.metrics:
            self.metrics.record_operation(op, mode, outcome, (time.perf_counter() - started) * 1000.0)

    async def _observe(self, storage: VaultStorage, vault_id: str) -> None:
        # Demo post-state is local; ledger post-state would cost another query
        if self.metrics and storage.mode == DEMO_MODE:
            vault = await storage.find_vault(vault_id)
            if vault is not None:
                self.metrics.observe_vault(vault)
