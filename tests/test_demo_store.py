"""
Tests for DemoStateStore - the in-memory fallback for ledger state.

Tests cover:
- Default seed contents
- Idempotent per-party seeding
- Deposit / redeem transitions and vault totals
- Rejections leave every balance untouched
- Vault lookup by id, name and contract id
- reset() restoring the seed
"""

from dataclasses import replace
from decimal import Decimal

import pytest

from canton_vault.core.errors import (
    InsufficientBalanceError,
    InsufficientSharesError,
    NotFoundError,
    VaultNotFoundError,
)
from canton_vault.core.models import ShareHolding, UnderlyingHolding
from canton_vault.state.demo_store import DEFAULT_STARTING_BALANCES, DemoStateStore


def _balance(store: DemoStateStore, party: str, instrument: str) -> Decimal:
    return sum((h.amount for h in store.underlying_holdings(party, instrument)), Decimal("0"))


class TestSeed:
    def test_default_vault(self, demo_store):
        vaults = demo_store.list_vaults()
        assert [v.vault_id for v in vaults] == ["vault-1"]
        assert vaults[0].total_assets == Decimal("1000000")
        assert vaults[0].share_price == Decimal("1")

    def test_default_share_holder(self, demo_store):
        holding = demo_store.share_holding("vault-1", "party-1")
        assert holding is not None
        assert holding.amount == Decimal("1000")

    def test_find_vault_by_name_and_contract_id(self, demo_store):
        assert demo_store.find_vault("Canton USD Vault").vault_id == "vault-1"
        assert demo_store.find_vault("demo-vault-1").vault_id == "vault-1"
        assert demo_store.find_vault("nope") is None


class TestEnsureInitialized:
    def test_seeds_once(self, demo_store):
        assert demo_store.ensure_initialized("bob") is True
        assert demo_store.ensure_initialized("bob") is False
        holdings = demo_store.underlying_holdings("bob")
        assert len(holdings) == len(DEFAULT_STARTING_BALANCES)
        assert _balance(demo_store, "bob", "USDC") == Decimal("10000")

    def test_unseen_party_has_nothing(self, demo_store):
        assert demo_store.underlying_holdings("carol") == []

    def test_instrument_filter(self, demo_store):
        demo_store.ensure_initialized("bob")
        usdt = demo_store.underlying_holdings("bob", "USDT")
        assert [h.instrument for h in usdt] == ["USDT"]

    def test_holding_ids_are_unique(self, demo_store):
        demo_store.ensure_initialized("bob")
        demo_store.ensure_initialized("carol")
        ids = [h.contract_id for p in ("bob", "carol") for h in demo_store.underlying_holdings(p)]
        assert len(ids) == len(set(ids))


class TestApplyDeposit:
    def test_updates_all_three_records(self, demo_store):
        vault = demo_store.apply_deposit("vault-1", "bob", Decimal("100"), Decimal("100"))
        assert vault.total_assets == Decimal("1000100")
        assert vault.total_shares == Decimal("1000100")
        assert demo_store.find_vault("vault-1") == vault
        assert demo_store.share_holding("vault-1", "bob").amount == Decimal("100")
        assert _balance(demo_store, "bob", "USDC") == Decimal("9900")

    def test_credits_receiver(self, demo_store):
        demo_store.apply_deposit("vault-1", "bob", Decimal("50"), Decimal("50"), receiver="carol")
        assert demo_store.share_holding("vault-1", "bob") is None
        assert demo_store.share_holding("vault-1", "carol").amount == Decimal("50")

    def test_insufficient_balance_leaves_state(self, demo_store):
        demo_store.ensure_initialized("bob")
        with pytest.raises(InsufficientBalanceError):
            demo_store.apply_deposit("vault-1", "bob", Decimal("10001"), Decimal("10001"))
        assert _balance(demo_store, "bob", "USDC") == Decimal("10000")
        assert demo_store.share_holding("vault-1", "bob") is None
        assert demo_store.find_vault("vault-1").total_assets == Decimal("1000000")

    def test_no_aggregation_across_holdings(self, demo_store):
        # 10,000 + 500 USDC in two holdings never combine to cover 10,200
        demo_store.ensure_initialized("bob")
        demo_store._underlying["bob"].append(UnderlyingHolding(
            contract_id="extra", owner="bob", instrument="USDC", amount=Decimal("500"),
        ))
        with pytest.raises(InsufficientBalanceError):
            demo_store.apply_deposit("vault-1", "bob", Decimal("10200"), Decimal("10200"))

    def test_explicit_holding_reference(self, demo_store):
        demo_store.ensure_initialized("bob")
        usdc = demo_store.underlying_holdings("bob", "USDC")[0]
        demo_store.apply_deposit("vault-1", "bob", Decimal("10"), Decimal("10"), holding_cid=usdc.contract_id)
        assert _balance(demo_store, "bob", "USDC") == Decimal("9990")

    def test_unknown_holding_reference(self, demo_store):
        with pytest.raises(NotFoundError):
            demo_store.apply_deposit("vault-1", "bob", Decimal("10"), Decimal("10"), holding_cid="missing")

    def test_wrong_instrument_reference(self, demo_store):
        demo_store.ensure_initialized("bob")
        usdt = demo_store.underlying_holdings("bob", "USDT")[0]
        with pytest.raises(InsufficientBalanceError):
            demo_store.apply_deposit("vault-1", "bob", Decimal("10"), Decimal("10"), holding_cid=usdt.contract_id)

    def test_skips_locked_holding(self, demo_store):
        demo_store.ensure_initialized("bob")
        holdings = demo_store._underlying["bob"]
        idx = next(i for i, h in enumerate(holdings) if h.instrument == "USDC")
        holdings[idx] = replace(holdings[idx], locked=True)
        holdings.append(UnderlyingHolding(
            contract_id="spare", owner="bob", instrument="USDC", amount=Decimal("50"),
        ))
        with pytest.raises(InsufficientBalanceError):
            demo_store.apply_deposit("vault-1", "bob", Decimal("100"), Decimal("100"))
        assert [h.amount for h in demo_store.underlying_holdings("bob", "USDC")] == [Decimal("10000"), Decimal("50")]
        assert demo_store.share_holding("vault-1", "bob") is None
        assert demo_store.find_vault("vault-1").total_assets == Decimal("1000000")

        # a smaller deposit passes over the locked holding to the unlocked one
        demo_store.apply_deposit("vault-1", "bob", Decimal("40"), Decimal("40"))
        assert [h.amount for h in demo_store.underlying_holdings("bob", "USDC")] == [Decimal("10000"), Decimal("10")]

    def test_unknown_vault(self, demo_store):
        with pytest.raises(VaultNotFoundError):
            demo_store.apply_deposit("vault-x", "bob", Decimal("1"), Decimal("1"))


class TestApplyRedeem:
    def test_burns_shares_and_credits_underlying(self, demo_store):
        vault = demo_store.apply_redeem("vault-1", "party-1", Decimal("400"), Decimal("400"))
        assert vault.total_assets == Decimal("999600")
        assert vault.total_shares == Decimal("999600")
        assert demo_store.share_holding("vault-1", "party-1").amount == Decimal("600")
        assert _balance(demo_store, "party-1", "USDC") == Decimal("10400")

    def test_full_redeem_deletes_record(self, demo_store):
        demo_store.apply_redeem("vault-1", "party-1", Decimal("1000"), Decimal("1000"))
        assert demo_store.share_holding("vault-1", "party-1") is None

    def test_insufficient_shares_leaves_state(self, demo_store):
        with pytest.raises(InsufficientSharesError):
            demo_store.apply_redeem("vault-1", "party-1", Decimal("1000.5"), Decimal("1000.5"))
        assert demo_store.share_holding("vault-1", "party-1").amount == Decimal("1000")
        assert demo_store.find_vault("vault-1").total_shares == Decimal("1000000")
        assert demo_store.underlying_holdings("party-1") == []

    def test_no_holding(self, demo_store):
        with pytest.raises(InsufficientSharesError):
            demo_store.apply_redeem("vault-1", "nobody", Decimal("1"), Decimal("1"))

    def test_locked_share_holding_cannot_be_redeemed(self, premium_seed):
        premium_seed.share_holdings = [
            ShareHolding(owner="alice", vault_id="vault-p", amount=Decimal("100"), locked=True),
        ]
        store = DemoStateStore(premium_seed)
        with pytest.raises(InsufficientSharesError):
            store.apply_redeem("vault-p", "alice", Decimal("10"), Decimal("10.5263157895"))
        holding = store.share_holding("vault-p", "alice")
        assert holding.amount == Decimal("100")
        assert holding.locked is True
        vault = store.find_vault("vault-p")
        assert (vault.total_assets, vault.total_shares) == (Decimal("500"), Decimal("475"))
        assert store.underlying_holdings("alice") == []

    def test_creates_holding_for_new_instrument(self, premium_seed):
        premium_seed.starting_balances = {"USDT": Decimal("5")}
        store = DemoStateStore(premium_seed)
        store.apply_redeem("vault-p", "alice", Decimal("10"), Decimal("10.5263157895"))
        usdc = store.underlying_holdings("alice", "USDC")
        assert len(usdc) == 1
        assert usdc[0].amount == Decimal("10.5263157895")


class TestReset:
    def test_reset_restores_seed(self, demo_store):
        demo_store.apply_deposit("vault-1", "bob", Decimal("100"), Decimal("100"))
        demo_store.reset()
        assert demo_store.find_vault("vault-1").total_assets == Decimal("1000000")
        assert demo_store.share_holding("vault-1", "bob") is None
        assert demo_store.underlying_holdings("bob") == []

    def test_stores_are_isolated(self):
        a, b = DemoStateStore(), DemoStateStore()
        a.apply_deposit("vault-1", "bob", Decimal("100"), Decimal("100"))
        assert b.find_vault("vault-1").total_assets == Decimal("1000000")
