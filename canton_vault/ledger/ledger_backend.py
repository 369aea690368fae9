"""
Ledger-backed vault storage.

Reads are contract queries mapped through contract_mapper; deposit and redeem
are exercises of the vault contract's Deposit / Redeem choices acting as the
depositor / redeemer. The ledger owns the post-state: nothing is cached here,
and a stale contract reference comes back from the gateway as ConflictError
for the caller to refresh and retry.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from canton_vault.core.amounts import ZERO, format_amount
from canton_vault.core.errors import InsufficientSharesError, MissingReferenceError
from canton_vault.core.models import (
    DepositRequest,
    RedeemRequest,
    ShareHolding,
    UnderlyingHolding,
    Vault,
)
from canton_vault.infra.ledger_gateway import LedgerGateway
from canton_vault.infra.logging_cfg import LOGGER_NAME, log_event
from canton_vault.ledger import contract_mapper
from canton_vault.ledger.contract_mapper import TemplateIds

log = logging.getLogger(LOGGER_NAME)

DEPOSIT_CHOICE = "Deposit"
REDEEM_CHOICE = "Redeem"


class LedgerVaultStorage:
    mode = "ledger"

    def __init__(self, gateway: LedgerGateway, templates: Optional[TemplateIds] = None) -> None:
        self.gateway = gateway
        self.templates = templates or TemplateIds()

    # ========== Reads ==========

    async def list_vaults(self) -> List[Vault]:
        records = await self.gateway.query_contracts(self.templates.vault)
        return contract_mapper.map_all(records, contract_mapper.to_vault)

    async def find_vault(self, ref: str) -> Optional[Vault]:
        """Filtered query by name first, then match on contract id."""
        records = await self.gateway.query_contracts(self.templates.vault, filter={"name": ref})
        vaults = [v for v in contract_mapper.map_all(records, contract_mapper.to_vault) if v.name == ref]
        if vaults:
            return vaults[0]
        for vault in await self.list_vaults():
            if vault.contract_id == ref:
                return vault
        return None

    async def share_holdings(self, vault: Vault, party: str) -> List[ShareHolding]:
        records = await self.gateway.query_contracts(
            self.templates.share_holding,
            filter={"owner": party},
            readers=[party],
        )
        holdings = contract_mapper.map_all(records, contract_mapper.to_share_holding)
        return [h for h in holdings if h.owner == party and vault.matches(h.vault_id)]

    async def underlying_holdings(self, party: str, instrument: Optional[str] = None) -> List[UnderlyingHolding]:
        records = await self.gateway.query_contracts(
            self.templates.holding,
            filter={"owner": party},
            readers=[party],
        )
        holdings = contract_mapper.map_all(records, contract_mapper.to_underlying_holding)
        return [
            h for h in holdings
            if h.owner == party and (instrument is None or h.instrument == instrument)
        ]

    # ========== Transitions ==========

    def _exercise(self, vault: Vault, choice: str, argument: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "ExerciseCommand": {
                "templateId": self.templates.vault,
                "contractId": vault.contract_id,
                "choice": choice,
                "choiceArgument": argument,
            }
        }

    async def apply_deposit(self, vault: Vault, request: DepositRequest, shares: Decimal) -> Optional[str]:
        if not request.underlying_holding_cid:
            raise MissingReferenceError(
                "underlyingHoldingCid is required when depositing against the ledger",
                vault=vault.vault_id,
            )
        command = self._exercise(vault, DEPOSIT_CHOICE, {
            "depositor": request.party,
            "receiver": request.beneficiary,
            "holdingCid": request.underlying_holding_cid,
            "amount": format_amount(request.amount),
        })
        result = await self.gateway.submit(request.party, command)
        return result["completionOffset"]

    async def _resolve_share_holding(self, vault: Vault, party: str, shares: Decimal) -> str:
        """First unlocked fragment covering `shares`."""
        fragments = await self.share_holdings(vault, party)
        total = sum((h.amount for h in fragments), ZERO)
        if total < shares:
            raise InsufficientSharesError("Insufficient shares", party=party, available=total, requested=shares)
        for h in fragments:
            if not h.locked and h.amount >= shares and h.contract_id:
                return h.contract_id
        # TODO: merge fragments on-ledger before redeeming when no single one covers the request
        raise InsufficientSharesError(
            "No single unlocked share holding covers the request",
            party=party,
            available=total,
            requested=shares,
        )

    async def apply_redeem(self, vault: Vault, request: RedeemRequest, assets: Decimal) -> Optional[str]:
        holding_cid = request.share_holding_cid
        if not holding_cid:
            holding_cid = await self._resolve_share_holding(vault, request.party, request.shares)
            log_event(log, "ledger_share_holding_resolved", level=logging.DEBUG,
                      vault=vault.vault_id, party=request.party, holding=holding_cid)
        command = self._exercise(vault, REDEEM_CHOICE, {
            "redeemer": request.party,
            "receiver": request.beneficiary,
            "shareHoldingCid": holding_cid,
            "shares": format_amount(request.shares),
        })
        result = await self.gateway.submit(request.party, command)
        return result["completionOffset"]
