"""
Tests for LedgerGateway - generic JSON Ledger API transport.

Tests cover:
- Query and submit request shapes
- Response unwrapping
- Bearer token header
- Error classification (conflict, transient, not found, fatal)
- Liveness probe never raising
- Shared client ownership
"""

import json

import httpx
import pytest

from canton_vault.core.errors import (
    ConflictError,
    FatalError,
    InvalidArgumentError,
    NotFoundError,
    TransientError,
)
from canton_vault.infra.ledger_gateway import LedgerGateway

BASE = "http://ledger.test/v2"


class Recorder:
    """MockTransport handler returning canned responses and keeping requests."""

    def __init__(self, responder):
        self.requests = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)

    @property
    def last_body(self):
        return json.loads(self.requests[-1].content)


def make_gateway(responder, **kwargs):
    recorder = Recorder(responder)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return LedgerGateway(BASE, client=client, **kwargs), recorder, client


class TestQuery:
    @pytest.mark.asyncio
    async def test_query_shape_and_unwrap(self):
        gw, rec, client = make_gateway(lambda r: httpx.Response(200, json={"result": [{"contractId": "#1"}]}))
        result = await gw.query_contracts("T:Vault", filter={"name": "v"}, readers=["alice"])
        assert result == [{"contractId": "#1"}]
        assert rec.requests[-1].url == httpx.URL(f"{BASE}/query")
        assert rec.last_body == {"templateIds": ["T:Vault"], "query": {"name": "v"}, "readers": ["alice"]}
        await client.aclose()

    @pytest.mark.asyncio
    async def test_bare_list_response(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(200, json=[]))
        assert await gw.query_contracts("T:Vault") == []
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_shape_is_fatal(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(200, json={"status": 200}))
        with pytest.raises(FatalError):
            await gw.query_contracts("T:Vault")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_non_json_is_fatal(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(200, text="<html>"))
        with pytest.raises(FatalError):
            await gw.query_contracts("T:Vault")
        await client.aclose()

    @pytest.mark.asyncio
    async def test_bearer_token(self):
        gw, rec, client = make_gateway(lambda r: httpx.Response(200, json=[]), access_token="tok")
        await gw.query_contracts("T:Vault")
        assert rec.requests[-1].headers["Authorization"] == "Bearer tok"
        await client.aclose()


class TestSubmit:
    @pytest.mark.asyncio
    async def test_submit_shape(self):
        gw, rec, client = make_gateway(lambda r: httpx.Response(200, json={"completionOffset": 42}))
        cmd = {"ExerciseCommand": {"choice": "Deposit"}}
        result = await gw.submit("alice", cmd)
        assert result == {"completionOffset": "42"}
        body = rec.last_body
        assert body["actAs"] == ["alice"]
        assert body["commands"] == [cmd]
        assert body["commandId"].startswith("vault-")
        assert rec.requests[-1].url.path == "/v2/command/submit"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_custom_submit_path_and_nested_offset(self):
        gw, rec, client = make_gateway(
            lambda r: httpx.Response(200, json={"result": {"completionOffset": "000a"}}),
            submit_path="commands/submit-and-wait",
        )
        result = await gw.submit("alice", [{"x": 1}])
        assert result["completionOffset"] == "000a"
        assert rec.requests[-1].url.path == "/v2/commands/submit-and-wait"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_missing_offset_is_fatal(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(200, json={"ok": True}))
        with pytest.raises(FatalError):
            await gw.submit("alice", {"x": 1})
        await client.aclose()


class TestClassification:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,body,expected", [
        (409, "duplicate", ConflictError),
        (404, "CONTRACT_NOT_FOUND: #vault:1", ConflictError),
        (400, "INCONSISTENT_CONTRACTS", ConflictError),
        (503, "down", TransientError),
        (429, "slow down", TransientError),
        (404, "no such path", NotFoundError),
        (400, "bad request", InvalidArgumentError),
    ])
    async def test_status_mapping(self, status, body, expected):
        gw, _, client = make_gateway(lambda r: httpx.Response(status, text=body))
        with pytest.raises(expected):
            await gw.submit("alice", {"x": 1})
        await client.aclose()

    @pytest.mark.asyncio
    async def test_timeout_is_transient(self):
        def boom(request):
            raise httpx.ReadTimeout("timed out", request=request)

        gw, _, client = make_gateway(boom)
        with pytest.raises(TransientError) as excinfo:
            await gw.query_contracts("T:Vault")
        assert excinfo.value.retryable
        await client.aclose()

    @pytest.mark.asyncio
    async def test_connect_error_is_transient(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        gw, _, client = make_gateway(boom)
        with pytest.raises(TransientError):
            await gw.list_parties()
        await client.aclose()


class TestAvailability:
    @pytest.mark.asyncio
    async def test_available(self):
        gw, rec, client = make_gateway(lambda r: httpx.Response(200, json=["alice::1"]))
        assert await gw.is_available() is True
        assert rec.requests[-1].url.path == "/v2/parties"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def boom(request):
            raise httpx.ConnectError("refused", request=request)

        gw, _, client = make_gateway(boom)
        assert await gw.is_available() is False
        await client.aclose()

    @pytest.mark.asyncio
    async def test_server_error(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(500))
        assert await gw.is_available() is False
        await client.aclose()


class TestOwnership:
    @pytest.mark.asyncio
    async def test_shared_client_left_open(self):
        gw, _, client = make_gateway(lambda r: httpx.Response(200, json=[]))
        await gw.close()
        assert not client.is_closed
        await client.aclose()

    @pytest.mark.asyncio
    async def test_owned_client_closed(self):
        async with LedgerGateway(BASE) as gw:
            client = gw.client
        assert client.is_closed
