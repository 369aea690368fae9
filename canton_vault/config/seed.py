"""Load the demo store seed from YAML.

Optional file path via env `VAULT_DEMO_SEED`, default `configs/demo_seed.yaml`.
A missing file means the built-in seed. Sections left out of the file fall
back to the built-in seed for that section.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from canton_vault.core.amounts import ZERO, to_amount
from canton_vault.core.models import DemoSeed, ShareHolding, Vault
from canton_vault.state.demo_store import default_seed


def _amount(entry: Dict[str, Any], key: str, where: str, default=None):
    raw = entry.get(key)
    if raw is None:
        if default is not None:
            return default
        raise ValueError(f"{where}: '{key}' is required")
    try:
        value = to_amount(raw)
    except ValueError as exc:
        raise ValueError(f"{where}: '{key}' is not a number") from exc
    if value < ZERO:
        raise ValueError(f"{where}: '{key}' must be >= 0")
    return value


def _vault(entry: Dict[str, Any], idx: int) -> Vault:
    where = f"vaults[{idx}]"
    vault_id = entry.get("id") or entry.get("name")
    if not vault_id or not entry.get("underlying"):
        raise ValueError(f"{where}: 'id' and 'underlying' are required")
    limit = entry.get("deposit_limit")
    return Vault(
        vault_id=str(vault_id),
        name=str(entry.get("name", vault_id)),
        admin=str(entry.get("admin", "vault-admin")),
        underlying_asset=str(entry["underlying"]),
        share_instrument=str(entry.get("symbol", vault_id)),
        total_assets=_amount(entry, "total_assets", where, default=ZERO),
        total_shares=_amount(entry, "total_shares", where, default=ZERO),
        deposit_limit=None if limit is None else _amount(entry, "deposit_limit", where),
        min_deposit=_amount(entry, "min_deposit", where, default=ZERO),
        contract_id=str(entry.get("contract_id", f"demo-{vault_id}")),
        description=entry.get("description"),
    )


def _share_holding(entry: Dict[str, Any], idx: int) -> ShareHolding:
    where = f"share_holdings[{idx}]"
    if not entry.get("vault") or not entry.get("owner"):
        raise ValueError(f"{where}: 'vault' and 'owner' are required")
    return ShareHolding(
        owner=str(entry["owner"]),
        vault_id=str(entry["vault"]),
        amount=_amount(entry, "amount", where),
        locked=bool(entry.get("locked", False)),
    )


def _entries(data: Dict[str, Any], key: str) -> Optional[List[Dict[str, Any]]]:
    if key not in data:
        return None
    items = data[key] or []
    if not isinstance(items, list) or not all(isinstance(i, dict) for i in items):
        raise ValueError(f"demo seed '{key}' must be a list of mappings")
    return items


def load_demo_seed(path: Optional[str] = None) -> DemoSeed:
    if path is None:
        path = os.getenv("VAULT_DEMO_SEED", "configs/demo_seed.yaml")
    p = Path(path)
    seed = default_seed()
    if not p.exists():
        return seed
    with p.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"demo seed {path} must be a mapping")

    vaults = _entries(data, "vaults")
    if vaults is not None:
        seed.vaults = [_vault(v, i) for i, v in enumerate(vaults)]
        # built-in holdings reference built-in vaults
        seed.share_holdings = []
    holdings = _entries(data, "share_holdings")
    if holdings is not None:
        seed.share_holdings = [_share_holding(h, i) for i, h in enumerate(holdings)]
    known = {v.vault_id for v in seed.vaults}
    for h in seed.share_holdings:
        if h.vault_id not in known:
            raise ValueError(f"demo seed share holding references unknown vault '{h.vault_id}'")

    balances = data.get("starting_balances")
    if balances is not None:
        if not isinstance(balances, dict):
            raise ValueError("demo seed 'starting_balances' must be a mapping")
        seed.starting_balances = {
            str(k): _amount(balances, k, "starting_balances") for k in balances
        }
    return seed
