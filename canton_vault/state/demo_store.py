"""
Demo State Store: in-memory substitute for the ledger.

Holds the same logical entities as the ledger (vaults, share holdings,
underlying holdings) for the life of the process. One store object is built
at startup and passed into the accounting core, so tests get a fresh store
each time instead of shared module-level maps.

State transitions (apply_deposit / apply_redeem) check every precondition
before touching any map, so a rejected operation never leaves partial state.
Callers serialize transitions per vault; the store itself takes no locks.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import replace
from decimal import Decimal
from typing import Dict, List, Optional, Set, Tuple

from canton_vault.core.amounts import ZERO, to_amount
from canton_vault.core.errors import (
    InsufficientBalanceError,
    InsufficientSharesError,
    NotFoundError,
    VaultNotFoundError,
)
from canton_vault.core.models import DemoSeed, ShareHolding, UnderlyingHolding, Vault
from canton_vault.infra.logging_cfg import LOGGER_NAME, log_event

log = logging.getLogger(LOGGER_NAME)

DEFAULT_STARTING_BALANCES: Dict[str, Decimal] = {
    "USDC": Decimal("10000"),
    "USDT": Decimal("5000"),
    "CC": Decimal("1000"),
}


def default_seed() -> DemoSeed:
    """One USDC vault at price 1.0 with a single pre-existing holder."""
    vault = Vault(
        vault_id="vault-1",
        name="Canton USD Vault",
        admin="vault-admin",
        underlying_asset="USDC",
        share_instrument="cvUSDC",
        total_assets=Decimal("1000000"),
        total_shares=Decimal("1000000"),
        min_deposit=Decimal("1"),
        contract_id="demo-vault-1",
        description="USDC yield vault (demo)",
    )
    return DemoSeed(
        vaults=[vault],
        share_holdings=[ShareHolding(owner="party-1", vault_id="vault-1", amount=Decimal("1000"))],
        starting_balances=dict(DEFAULT_STARTING_BALANCES),
    )


def _share_cid(vault_id: str, party: str) -> str:
    return f"demo-share-{vault_id}-{party}"


class DemoStateStore:
    """
    Process-lifetime vault state keyed by vault id and party.

    - vaults: vault_id -> Vault snapshot
    - share holdings: (vault_id, party) -> one aggregate ShareHolding
    - underlying holdings: party -> list of UnderlyingHolding (several per instrument allowed)
    """

    def __init__(self, seed: Optional[DemoSeed] = None) -> None:
        self._seed = seed if seed is not None else default_seed()
        self._vaults: Dict[str, Vault] = {}
        self._shares: Dict[Tuple[str, str], ShareHolding] = {}
        self._underlying: Dict[str, List[UnderlyingHolding]] = {}
        self._initialized: Set[str] = set()
        self._next_holding = 0
        self.reset()

    def reset(self) -> None:
        """Restore the seed state."""
        seed = copy.deepcopy(self._seed)
        self._vaults = {v.vault_id: v for v in seed.vaults}
        self._shares = {}
        for h in seed.share_holdings:
            key = (h.vault_id, h.owner)
            prior = self._shares.get(key)
            total = h.amount + (prior.amount if prior else ZERO)
            self._shares[key] = ShareHolding(
                owner=h.owner,
                vault_id=h.vault_id,
                amount=total,
                locked=h.locked or bool(prior and prior.locked),
                contract_id=_share_cid(h.vault_id, h.owner),
            )
        self._underlying = {}
        self._initialized = set()
        self._next_holding = 0

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list_vaults(self) -> List[Vault]:
        return list(self._vaults.values())

    def find_vault(self, ref: str) -> Optional[Vault]:
        """Resolve by vault id / name first, then by contract id."""
        vault = self._vaults.get(ref)
        if vault is not None:
            return vault
        for v in self._vaults.values():
            if v.name == ref:
                return v
        for v in self._vaults.values():
            if v.contract_id == ref:
                return v
        return None

    def share_holding(self, vault_id: str, party: str) -> Optional[ShareHolding]:
        return self._shares.get((vault_id, party))

    def underlying_holdings(self, party: str, instrument: Optional[str] = None) -> List[UnderlyingHolding]:
        holdings = self._underlying.get(party, [])
        if instrument is not None:
            holdings = [h for h in holdings if h.instrument == instrument]
        return list(holdings)

    # -------------------------------------------------------------------------
    # Seeding
    # -------------------------------------------------------------------------

    def ensure_initialized(self, party: str) -> bool:
        """
        Give a party its starting underlying balances the first time it is seen.

        Idempotent. Returns True only on the call that seeded the party.
        """
        if party in self._initialized:
            return False
        self._initialized.add(party)
        holdings = self._underlying.setdefault(party, [])
        for instrument, amount in self._seed.starting_balances.items():
            holdings.append(self._new_holding(party, instrument, to_amount(amount)))
        log_event(log, "demo_party_seeded", level=logging.DEBUG, party=party, instruments=len(holdings))
        return True

    def _new_holding(self, party: str, instrument: str, amount: Decimal) -> UnderlyingHolding:
        self._next_holding += 1
        return UnderlyingHolding(
            contract_id=f"demo-holding-{self._next_holding}",
            owner=party,
            instrument=instrument,
            amount=amount,
        )

    def _select_holding(
        self,
        party: str,
        instrument: str,
        amount: Decimal,
        holding_cid: Optional[str],
    ) -> int:
        """Index of the holding that covers `amount`. No splitting across holdings."""
        holdings = self._underlying.get(party, [])
        if holding_cid is not None:
            for idx, h in enumerate(holdings):
                if h.contract_id == holding_cid:
                    if h.instrument != instrument or h.locked or h.amount < amount:
                        raise InsufficientBalanceError(
                            "Insufficient balance in referenced holding",
                            holding=holding_cid,
                            available=h.amount,
                            requested=amount,
                        )
                    return idx
            raise NotFoundError(f"Holding not found: {holding_cid}", holding=holding_cid, party=party)

        for idx, h in enumerate(holdings):
            if h.instrument == instrument and not h.locked and h.amount >= amount:
                return idx
        available = sum((h.amount for h in holdings if h.instrument == instrument and not h.locked), ZERO)
        raise InsufficientBalanceError(
            f"Insufficient {instrument} balance",
            party=party,
            available=available,
            requested=amount,
        )

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def apply_deposit(
        self,
        vault_id: str,
        party: str,
        amount: Decimal,
        shares: Decimal,
        receiver: Optional[str] = None,
        holding_cid: Optional[str] = None,
    ) -> Vault:
        """Debit the depositor's underlying, credit receiver shares, grow vault totals."""
        vault = self._vaults.get(vault_id)
        if vault is None:
            raise VaultNotFoundError(vault_id)
        receiver = receiver or party
        self.ensure_initialized(party)
        idx = self._select_holding(party, vault.underlying_asset, amount, holding_cid)

        # all checks passed; mutate
        holdings = self._underlying[party]
        holdings[idx] = replace(holdings[idx], amount=holdings[idx].amount - amount)

        key = (vault_id, receiver)
        current = self._shares.get(key)
        if current is None:
            current = ShareHolding(owner=receiver, vault_id=vault_id, amount=ZERO, contract_id=_share_cid(vault_id, receiver))
        self._shares[key] = replace(current, amount=current.amount + shares)

        updated = vault.with_totals(vault.total_assets + amount, vault.total_shares + shares)
        self._vaults[vault_id] = updated
        return updated

    def apply_redeem(
        self,
        vault_id: str,
        party: str,
        shares: Decimal,
        assets: Decimal,
        receiver: Optional[str] = None,
    ) -> Vault:
        """Burn the party's shares, credit receiver underlying, shrink vault totals."""
        vault = self._vaults.get(vault_id)
        if vault is None:
            raise VaultNotFoundError(vault_id)
        receiver = receiver or party
        key = (vault_id, party)
        current = self._shares.get(key)
        balance = current.amount if current else ZERO
        if current is None or balance < shares:
            raise InsufficientSharesError(
                "Insufficient shares",
                party=party,
                available=balance,
                requested=shares,
            )
        if current.locked:
            raise InsufficientSharesError("Share holding is locked", party=party, vault=vault_id)
        if shares > vault.total_shares or assets > vault.total_assets:
            raise InsufficientBalanceError(
                "Vault holds insufficient assets for redemption",
                vault=vault_id,
                total_assets=vault.total_assets,
                requested=assets,
            )

        # all checks passed; mutate
        remaining = balance - shares
        if remaining == ZERO:
            del self._shares[key]
        else:
            self._shares[key] = replace(current, amount=remaining)

        self.ensure_initialized(receiver)
        holdings = self._underlying.setdefault(receiver, [])
        for idx, h in enumerate(holdings):
            if h.instrument == vault.underlying_asset and not h.locked:
                holdings[idx] = replace(h, amount=h.amount + assets)
                break
        else:
            holdings.append(self._new_holding(receiver, vault.underlying_asset, assets))

        updated = vault.with_totals(vault.total_assets - assets, vault.total_shares - shares)
        self._vaults[vault_id] = updated
        return updated
