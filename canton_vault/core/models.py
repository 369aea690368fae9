"""
Typed views over vault state.

The same records are produced by the contract mapper (ledger mode) and the
demo state store (demo mode), so callers never see which storage served them.
Snapshots are frozen; state transitions produce new records.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Any, Dict, List, Optional

from canton_vault.core.amounts import ZERO, as_number, quantize, to_amount
from canton_vault.core.conversion import share_price
from canton_vault.core.errors import InvalidArgumentError


def _optional_number(value: Optional[Decimal]) -> Optional[float]:
    return None if value is None else as_number(value)


@dataclass(frozen=True)
class Vault:
    """Snapshot of a vault. `vault_id` is the stable identity (the vault name)."""
    vault_id: str
    name: str
    admin: str
    underlying_asset: str
    share_instrument: str
    total_assets: Decimal
    total_shares: Decimal
    deposit_limit: Optional[Decimal] = None
    min_deposit: Decimal = ZERO
    contract_id: Optional[str] = None
    description: Optional[str] = None

    @property
    def share_price(self) -> Decimal:
        return share_price(self.total_assets, self.total_shares)

    def matches(self, ref: str) -> bool:
        return ref == self.vault_id or ref == self.name or (
            self.contract_id is not None and ref == self.contract_id
        )

    def with_totals(self, total_assets: Decimal, total_shares: Decimal) -> "Vault":
        return replace(self, total_assets=total_assets, total_shares=total_shares)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.vault_id,
            "name": self.name,
            "admin": self.admin,
            "symbol": self.share_instrument,
            "underlyingAsset": self.underlying_asset,
            "totalAssets": as_number(self.total_assets),
            "totalShares": as_number(self.total_shares),
            "sharePrice": as_number(self.share_price),
            "depositLimit": _optional_number(self.deposit_limit),
            "minDeposit": as_number(self.min_deposit),
            "contractId": self.contract_id,
            "description": self.description,
        }


@dataclass(frozen=True)
class ShareHolding:
    """One share holding record (a ledger fragment, or the demo aggregate)."""
    owner: str
    vault_id: str
    amount: Decimal
    locked: bool = False
    contract_id: Optional[str] = None


@dataclass(frozen=True)
class ShareBalance:
    """
    Externally visible share position of a party in a vault.

    `shares` is the sum over all fragments, `locked` is True if any fragment is
    locked and `contract_id` is the first fragment's reference (a redemption hint).
    """
    party: str
    vault_id: str
    shares: Decimal
    value: Decimal
    locked: bool = False
    contract_id: Optional[str] = None
    fragments: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "party": self.party,
            "vaultId": self.vault_id,
            "shares": as_number(self.shares),
            "value": as_number(self.value),
            "locked": self.locked,
            "contractId": self.contract_id,
        }


@dataclass(frozen=True)
class UnderlyingHolding:
    """A party's balance record of a deposit-eligible instrument."""
    contract_id: str
    owner: str
    instrument: str
    amount: Decimal
    locked: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "contractId": self.contract_id,
            "owner": self.owner,
            "instrument": self.instrument,
            "amount": as_number(self.amount),
            "locked": self.locked,
        }


def request_amount(value: Any, label: str) -> Decimal:
    """Parse a caller-supplied amount and bring it to ledger scale."""
    try:
        amount = to_amount(value)
    except ValueError as exc:
        raise InvalidArgumentError(f"{label} must be a ledger decimal", reason=exc, **{label: value}) from exc
    return quantize(amount)


@dataclass
class DepositRequest:
    """Deposit `amount` of the vault's underlying asset. Accepts str or number amounts."""
    party: str
    amount: Decimal
    underlying_holding_cid: Optional[str] = None
    receiver: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.party:
            raise InvalidArgumentError("party is required")
        self.amount = request_amount(self.amount, "amount")

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "DepositRequest":
        """Build from a request body ({party, amount, underlyingHoldingCid?, receiver?})."""
        if not isinstance(body, dict) or "amount" not in body:
            raise InvalidArgumentError("party and amount are required")
        return cls(
            party=body.get("party") or "",
            amount=body["amount"],
            underlying_holding_cid=body.get("underlyingHoldingCid"),
            receiver=body.get("receiver"),
        )

    @property
    def beneficiary(self) -> str:
        return self.receiver or self.party


@dataclass
class RedeemRequest:
    """Burn `shares` for a proportional claim on the vault's assets."""
    party: str
    shares: Decimal
    share_holding_cid: Optional[str] = None
    receiver: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.party:
            raise InvalidArgumentError("party is required")
        self.shares = request_amount(self.shares, "shares")

    @classmethod
    def from_dict(cls, body: Dict[str, Any]) -> "RedeemRequest":
        """Build from a request body ({party, shares, shareHoldingCid?, receiver?})."""
        if not isinstance(body, dict) or "shares" not in body:
            raise InvalidArgumentError("party and shares are required")
        return cls(
            party=body.get("party") or "",
            shares=body["shares"],
            share_holding_cid=body.get("shareHoldingCid"),
            receiver=body.get("receiver"),
        )

    @property
    def beneficiary(self) -> str:
        return self.receiver or self.party


@dataclass(frozen=True)
class DepositResult:
    vault_id: str
    party: str
    amount: Decimal
    shares: Decimal
    tx_id: Optional[str] = None
    status: str = "accepted"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "vaultId": self.vault_id,
            "party": self.party,
            "amount": as_number(self.amount),
            "shares": as_number(self.shares),
        }
        if self.tx_id is not None:
            payload["txId"] = self.tx_id
        return payload


@dataclass(frozen=True)
class RedeemResult:
    vault_id: str
    party: str
    shares: Decimal
    assets: Decimal
    tx_id: Optional[str] = None
    status: str = "accepted"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "status": self.status,
            "vaultId": self.vault_id,
            "party": self.party,
            "shares": as_number(self.shares),
            "assets": as_number(self.assets),
        }
        if self.tx_id is not None:
            payload["txId"] = self.tx_id
        return payload


@dataclass(frozen=True)
class ConversionPreview:
    """Result of a convert-to-shares / convert-to-assets preview."""
    assets: Decimal
    shares: Decimal
    share_price: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assets": as_number(self.assets),
            "shares": as_number(self.shares),
            "sharePrice": as_number(self.share_price),
        }


@dataclass
class DemoSeed:
    """Initial contents of the demo state store."""
    vaults: List[Vault] = field(default_factory=list)
    share_holdings: List[ShareHolding] = field(default_factory=list)
    starting_balances: Dict[str, Decimal] = field(default_factory=dict)
