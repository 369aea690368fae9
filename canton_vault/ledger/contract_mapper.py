"""
Contract Mapper: raw ledger contract records -> typed vault views.

Accepts the record shapes the JSON Ledger API returns:
- {"contractId": ..., "payload": {...}}
- {"contractId": ..., "createArgument": {...}}
- either of the above wrapped in {"created": ...} or {"createdEvent": ...}

Anything else is a FatalError: the ledger answered with a shape we cannot
interpret and retrying will not help.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from canton_vault.core.amounts import ZERO, to_amount
from canton_vault.core.errors import FatalError
from canton_vault.core.models import ShareHolding, UnderlyingHolding, Vault


@dataclass(frozen=True)
class TemplateIds:
    """Daml template identifiers queried by the ledger backend."""
    vault: str = "CantonVault:Vault"
    share_holding: str = "CantonVault:ShareHolding"
    holding: str = "Holding:Holding"


def unwrap(raw: Any) -> Tuple[str, Dict[str, Any]]:
    """Return (contract_id, payload) for a raw contract record."""
    if not isinstance(raw, dict):
        raise FatalError("Contract record is not an object", record=raw)
    for wrapper in ("created", "createdEvent"):
        if isinstance(raw.get(wrapper), dict):
            raw = raw[wrapper]
            break
    contract_id = raw.get("contractId")
    payload = raw.get("payload")
    if payload is None:
        payload = raw.get("createArgument")
    if not contract_id or not isinstance(payload, dict):
        raise FatalError("Contract record missing contractId or payload", record=raw)
    return str(contract_id), payload


def _identifier(value: Any) -> Optional[str]:
    # Instruments and vault references appear either as plain strings or {"id": ...}/{"name": ...}
    if value is None:
        return None
    if isinstance(value, dict):
        for key in ("id", "name", "symbol"):
            if value.get(key):
                return str(value[key])
        return None
    return str(value)


def _amount(payload: Dict[str, Any], key: str, contract_id: str, default: Optional[Decimal] = None) -> Decimal:
    raw = payload.get(key)
    if raw is None:
        if default is not None:
            return default
        raise FatalError(f"Contract field '{key}' missing", contract_id=contract_id)
    try:
        value = to_amount(raw)
    except ValueError as exc:
        raise FatalError(
            f"Contract field '{key}' is not a ledger decimal", contract_id=contract_id, value=raw, reason=exc
        ) from exc
    if value < ZERO:
        raise FatalError(f"Contract field '{key}' is negative", contract_id=contract_id, value=raw)
    return value


def _locked(payload: Dict[str, Any]) -> bool:
    # Daml Optional lock: None/absent means unlocked, any record means locked
    lock = payload.get("lock")
    if isinstance(lock, bool):
        return lock
    return lock not in (None, {}, "")


def _require(payload: Dict[str, Any], key: str, contract_id: str) -> str:
    value = payload.get(key)
    if not value:
        raise FatalError(f"Contract field '{key}' missing", contract_id=contract_id)
    return str(value)


def to_vault(raw: Any) -> Vault:
    contract_id, payload = unwrap(raw)
    name = _require(payload, "name", contract_id)
    underlying = _identifier(payload.get("underlyingInstrument") or payload.get("underlyingAsset"))
    if not underlying:
        raise FatalError("Vault contract has no underlying instrument", contract_id=contract_id)
    share_instrument = _identifier(payload.get("shareInstrument") or payload.get("shareSymbol")) or name
    deposit_limit = payload.get("depositLimit")
    return Vault(
        vault_id=name,
        name=name,
        admin=_require(payload, "admin", contract_id),
        underlying_asset=underlying,
        share_instrument=share_instrument,
        total_assets=_amount(payload, "totalAssets", contract_id),
        total_shares=_amount(payload, "totalShares", contract_id),
        deposit_limit=None if deposit_limit is None else _amount(payload, "depositLimit", contract_id),
        min_deposit=_amount(payload, "minDeposit", contract_id, default=ZERO),
        contract_id=contract_id,
        description=payload.get("description"),
    )


def to_share_holding(raw: Any) -> ShareHolding:
    contract_id, payload = unwrap(raw)
    vault_ref = _identifier(payload.get("vault"))
    if not vault_ref:
        raise FatalError("Share holding has no vault reference", contract_id=contract_id)
    return ShareHolding(
        owner=_require(payload, "owner", contract_id),
        vault_id=vault_ref,
        amount=_amount(payload, "amount", contract_id),
        locked=_locked(payload),
        contract_id=contract_id,
    )


def to_underlying_holding(raw: Any) -> UnderlyingHolding:
    contract_id, payload = unwrap(raw)
    instrument = _identifier(payload.get("instrument"))
    if not instrument:
        raise FatalError("Holding has no instrument", contract_id=contract_id)
    return UnderlyingHolding(
        contract_id=contract_id,
        owner=_require(payload, "owner", contract_id),
        instrument=instrument,
        amount=_amount(payload, "amount", contract_id),
        locked=_locked(payload),
    )


def map_all(records: Iterable[Any], mapper) -> List[Any]:
    return [mapper(r) for r in records]
