"""Tests for the REST ledger client against a local aiohttp node."""

from __future__ import annotations

import asyncio
import json
from typing import Any, Awaitable, Callable

import aiohttp
import pytest
from aiohttp import test_utils, web

from roomchain.errors import PermanentLedgerError, TransientLedgerError
from roomchain.ledger.rest import AleoRestClient

TX_JSON = {
    "type": "execute",
    "id": "at1known",
    "execution": {
        "transitions": [{
            "id": "au1t",
            "program": "room_manager.aleo",
            "function": "rm_join_room",
            "outputs": [{"type": "future", "id": "1", "value": "1u32"}],
        }],
    },
}


class FakeNode:
    """Serves the three endpoints the client uses."""

    def __init__(self) -> None:
        self.transactions: dict[str, Any] = {"at1known": TX_JSON}
        self.mappings: dict[str, Any] = {"rooms/1u32": "{ seats: 4u8 }"}
        self.broadcast_result: Any = "at1new"
        self.status: int | None = None
        self.raw_body: str | None = None
        self.delay = 0.0
        self.received: list[str] = []

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/testnet/transaction/broadcast", self.broadcast)
        app.router.add_get("/testnet/transaction/{tx_id}", self.transaction)
        app.router.add_get(
            "/testnet/program/{program}/mapping/{mapping}/{key}", self.mapping,
        )
        return app

    def _override(self) -> web.Response | None:
        if self.status is not None:
            return web.Response(status=self.status, text="node says no")
        if self.raw_body is not None:
            return web.Response(text=self.raw_body)
        return None

    async def broadcast(self, request: web.Request) -> web.Response:
        self.received.append(await request.text())
        override = self._override()
        if override is not None:
            return override
        return web.json_response(self.broadcast_result)

    async def transaction(self, request: web.Request) -> web.Response:
        if self.delay:
            await asyncio.sleep(self.delay)
        override = self._override()
        if override is not None:
            return override
        tx = self.transactions.get(request.match_info["tx_id"])
        if tx is None:
            return web.Response(status=404, text="Transaction not found")
        return web.json_response(tx)

    async def mapping(self, request: web.Request) -> web.Response:
        override = self._override()
        if override is not None:
            return override
        key = f"{request.match_info['mapping']}/{request.match_info['key']}"
        if key not in self.mappings:
            return web.Response(status=404, text="Mapping not found")
        return web.json_response(self.mappings[key])


def _run(node: FakeNode, fn: Callable[[AleoRestClient], Awaitable[Any]],
         timeout: float = 5.0) -> Any:
    async def go() -> Any:
        server = test_utils.TestServer(node.app())
        await server.start_server()
        try:
            async with AleoRestClient(str(server.make_url("/")), timeout=timeout) as client:
                return await fn(client)
        finally:
            await server.close()

    return asyncio.run(go())


class TestBroadcast:
    def test_submit_json_text(self) -> None:
        node = FakeNode()
        assert _run(node, lambda c: c.submit_transaction('{"id": "at1new"}')) == "at1new"
        assert node.received == ['{"id": "at1new"}']

    def test_submit_mapping(self) -> None:
        node = FakeNode()
        _run(node, lambda c: c.submit_transaction({"id": "at1new", "type": "execute"}))
        assert json.loads(node.received[0]) == {"id": "at1new", "type": "execute"}

    def test_submit_unsupported_object(self) -> None:
        with pytest.raises(TypeError):
            _run(FakeNode(), lambda c: c.submit_transaction(object()))

    @pytest.mark.parametrize("result", ["", None, {"id": "at1new"}])
    def test_missing_transaction_id(self, result: Any) -> None:
        node = FakeNode()
        node.broadcast_result = result
        with pytest.raises(PermanentLedgerError, match="no transaction id"):
            _run(node, lambda c: c.submit_transaction("{}"))


class TestReads:
    def test_get_transaction(self) -> None:
        tx = _run(FakeNode(), lambda c: c.get_transaction("at1known"))
        assert tx.id == "at1known"
        assert tx.is_confirmed
        assert tx.transitions[0].outputs[0].value == "1u32"

    def test_get_transaction_not_found(self) -> None:
        assert _run(FakeNode(), lambda c: c.get_transaction("at1unknown")) is None

    def test_get_transaction_null(self) -> None:
        node = FakeNode()
        node.transactions["at1null"] = None
        assert _run(node, lambda c: c.get_transaction("at1null")) is None

    def test_mapping_value(self) -> None:
        value = _run(
            FakeNode(),
            lambda c: c.get_program_mapping_value("room_manager.aleo", "rooms", "1u32"),
        )
        assert value == "{ seats: 4u8 }"

    def test_mapping_value_absent(self) -> None:
        value = _run(
            FakeNode(),
            lambda c: c.get_program_mapping_value("room_manager.aleo", "rooms", "2u32"),
        )
        assert value is None

    def test_mapping_value_null(self) -> None:
        node = FakeNode()
        node.mappings["rooms/3u32"] = None
        value = _run(node, lambda c: c.get_program_mapping_value("p.aleo", "rooms", "3u32"))
        assert value is None

    def test_mapping_value_not_a_string(self) -> None:
        node = FakeNode()
        node.mappings["rooms/3u32"] = {"seats": 4}
        with pytest.raises(PermanentLedgerError):
            _run(node, lambda c: c.get_program_mapping_value("p.aleo", "rooms", "3u32"))


class TestFailureClassification:
    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_transient_statuses(self, status: int) -> None:
        node = FakeNode()
        node.status = status
        with pytest.raises(TransientLedgerError) as exc_info:
            _run(node, lambda c: c.get_transaction("at1known"))
        assert exc_info.value.status == status

    @pytest.mark.parametrize("status", [400, 401, 422])
    def test_permanent_statuses(self, status: int) -> None:
        node = FakeNode()
        node.status = status
        with pytest.raises(PermanentLedgerError) as exc_info:
            _run(node, lambda c: c.submit_transaction("{}"))
        assert exc_info.value.status == status
        assert "node says no" in str(exc_info.value)

    def test_404_on_broadcast_is_permanent(self) -> None:
        node = FakeNode()
        node.status = 404
        with pytest.raises(PermanentLedgerError):
            _run(node, lambda c: c.submit_transaction("{}"))

    def test_invalid_json(self) -> None:
        node = FakeNode()
        node.raw_body = "<html>oops</html>"
        with pytest.raises(PermanentLedgerError, match="invalid JSON"):
            _run(node, lambda c: c.get_transaction("at1known"))

    def test_timeout_is_transient(self) -> None:
        node = FakeNode()
        node.delay = 1.0
        with pytest.raises(TransientLedgerError):
            _run(node, lambda c: c.get_transaction("at1known"), timeout=0.1)

    def test_connection_refused_is_transient(self) -> None:
        async def go() -> None:
            server = test_utils.TestServer(web.Application())
            await server.start_server()
            url = str(server.make_url("/"))
            await server.close()
            async with AleoRestClient(url, timeout=2.0) as client:
                await client.get_transaction("at1known")

        with pytest.raises(TransientLedgerError):
            asyncio.run(go())


class TestSession:
    def test_base_url(self) -> None:
        client = AleoRestClient("http://node:3030/", "mainnet")
        assert client.base_url == "http://node:3030/mainnet"

    def test_borrowed_session_left_open(self) -> None:
        node = FakeNode()

        async def go() -> bool:
            server = test_utils.TestServer(node.app())
            await server.start_server()
            try:
                async with aiohttp.ClientSession() as session:
                    client = AleoRestClient(str(server.make_url("/")), session=session)
                    await client.get_transaction("at1known")
                    await client.close()
                    return session.closed
            finally:
                await server.close()

        assert asyncio.run(go()) is False
