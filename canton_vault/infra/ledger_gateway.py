"""
Async HTTP client for the Canton JSON Ledger API.

Generic transport only: query contracts, submit commands, probe liveness.
Vault semantics live in canton_vault.ledger. Transport failures are
classified into the vault error taxonomy and never retried here.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional, Union

import httpx

from canton_vault.core.errors import (
    ConflictError,
    FatalError,
    InvalidArgumentError,
    NotFoundError,
    TransientError,
    VaultError,
)
from canton_vault.infra.logging_cfg import LOGGER_NAME, log_event

log = logging.getLogger(LOGGER_NAME)

DEFAULT_BASE_URL = "http://localhost:6201/v2"
DEFAULT_SUBMIT_PATH = "/command/submit"
DEFAULT_TIMEOUT = 10.0

# Ledger rejections caused by a stale contract reference
_CONFLICT_MARKERS = (
    "CONTRACT_NOT_FOUND",
    "CONTRACT_NOT_ACTIVE",
    "INCONSISTENT",
    "LOCAL_VERDICT_LOCKED_CONTRACTS",
    "contract not active",
)


class LedgerGateway:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        access_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        submit_path: str = DEFAULT_SUBMIT_PATH,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.submit_path = submit_path if submit_path.startswith("/") else f"/{submit_path}"
        self._headers: Dict[str, str] = {"Content-Type": "application/json"}
        if access_token:
            self._headers["Authorization"] = f"Bearer {access_token}"
        # If a shared client is passed in, we won't close it in close(); otherwise we own the client.
        if client is not None:
            self.client = client
            self._owns_client = False
        else:
            self.client = httpx.AsyncClient(timeout=timeout)
            self._owns_client = True

    async def close(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "LedgerGateway":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ========== Raw transport ==========

    async def get(self, path: str) -> Any:
        return await self._request("GET", path)

    async def post(self, path: str, body: Any) -> Any:
        return await self._request("POST", path, body)

    async def _request(self, method: str, path: str, body: Any = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = await self.client.request(method, url, json=body, headers=self._headers)
        except httpx.TimeoutException as exc:
            raise TransientError(f"Ledger request timed out: {method} {path}", path=path) from exc
        except httpx.RequestError as exc:
            raise TransientError(f"Ledger unreachable: {exc}", path=path) from exc

        if resp.status_code >= 400:
            raise self._classify(resp, path)
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise FatalError(f"Ledger returned non-JSON body for {path}", status=resp.status_code) from exc

    @staticmethod
    def _classify(resp: httpx.Response, path: str) -> VaultError:
        status = resp.status_code
        text = resp.text[:500]
        detail = {"path": path, "status": status, "body": text}
        if status == 409 or any(marker in text for marker in _CONFLICT_MARKERS):
            return ConflictError("Ledger rejected a stale contract reference", **detail)
        if status == 429 or status >= 500:
            return TransientError(f"Ledger error {status}", **detail)
        if status == 404:
            return NotFoundError(f"Ledger resource not found: {path}", **detail)
        return InvalidArgumentError(f"Ledger rejected request ({status})", **detail)

    # ========== Ledger API helpers ==========

    async def list_parties(self) -> Any:
        return await self.get("/parties")

    async def query_contracts(
        self,
        template_id: str,
        filter: Optional[Dict[str, Any]] = None,
        readers: Optional[Iterable[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Active contracts of `template_id`, optionally filtered by payload fields."""
        body: Dict[str, Any] = {"templateIds": [template_id]}
        if filter:
            body["query"] = filter
        if readers:
            body["readers"] = list(readers)
        data = await self.post("/query", body)
        # unwrap {status: 200, result: [...]}
        if isinstance(data, dict):
            data = data.get("result")
        if not isinstance(data, list):
            raise FatalError("Unexpected query response shape", template_id=template_id)
        return data

    async def submit(
        self,
        act_as: str,
        commands: Union[Dict[str, Any], List[Dict[str, Any]]],
    ) -> Dict[str, str]:
        """Submit commands acting as `act_as`; returns the completion offset."""
        if isinstance(commands, dict):
            commands = [commands]
        body = {
            "actAs": [act_as],
            "commandId": f"vault-{uuid.uuid4().hex}",
            "commands": commands,
        }
        data = await self.post(self.submit_path, body)
        offset = None
        if isinstance(data, dict):
            offset = data.get("completionOffset")
            if offset is None and isinstance(data.get("result"), dict):
                offset = data["result"].get("completionOffset")
        if offset is None:
            raise FatalError("Submit response carried no completion offset", act_as=act_as)
        return {"completionOffset": str(offset)}

    async def is_available(self) -> bool:
        """Single liveness probe. Never raises."""
        try:
            await self.list_parties()
        except VaultError as exc:
            log_event(log, "ledger_unavailable", level=logging.WARNING, url=self.base_url, err=str(exc))
            return False
        return True
