"""Ledger node REST client.

Talks to a node's public REST API over aiohttp:

    POST {url}/{network}/transaction/broadcast
    GET  {url}/{network}/transaction/{id}
    GET  {url}/{network}/program/{program}/mapping/{mapping}/{key}

Failures are classified here, at the boundary, so the retry engine can act
on ErrorKind alone:

    connection errors, timeouts, 429, 5xx  → TransientLedgerError
    other 4xx, unreadable bodies           → PermanentLedgerError
    404 on a transaction or mapping read   → None (not an error)
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Mapping, Optional

import aiohttp

from roomchain.errors import PermanentLedgerError, TransientLedgerError
from roomchain.ledger.types import Transaction

logger = logging.getLogger(__name__)

_MISSING = object()


class AleoRestClient:
    """LedgerClient backed by a node's REST endpoints.

    Usage:
        async with AleoRestClient("http://localhost:3030") as client:
            value = await client.get_program_mapping_value(
                "room_manager.aleo", "rooms", "1u32",
            )

    A session passed in is borrowed and left open on close().
    """

    def __init__(
        self,
        base_url: str,
        network: str = "testnet",
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 30.0,
    ) -> None:
        self._base = f"{base_url.rstrip('/')}/{network}"
        self._session = session
        self._owns_session = session is None
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    @property
    def base_url(self) -> str:
        return self._base

    async def __aenter__(self) -> AleoRestClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._owns_session and self._session is not None:
            await self._session.close()
            self._session = None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Optional[str] = None,
        missing_ok: bool = False,
    ) -> Any:
        url = self._base + path
        headers = {"Content-Type": "application/json"} if body is not None else None
        try:
            async with self._get_session().request(
                method, url, data=body, headers=headers,
            ) as response:
                status = response.status
                text = await response.text()
        except asyncio.TimeoutError as exc:
            raise TransientLedgerError(f"{method} {url} timed out") from exc
        except aiohttp.ClientError as exc:
            raise TransientLedgerError(f"{method} {url} failed: {exc}") from exc

        if status == 404 and missing_ok:
            return _MISSING
        if status == 429 or status >= 500:
            raise TransientLedgerError(f"{method} {url} returned {status}: {text}", status)
        if status >= 400:
            raise PermanentLedgerError(f"{method} {url} returned {status}: {text}", status)
        if not text:
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise PermanentLedgerError(f"{method} {url} returned invalid JSON") from exc

    async def submit_transaction(self, transaction: Any) -> str:
        """Broadcast a transaction given as JSON text or a mapping."""
        if isinstance(transaction, str):
            body = transaction
        elif isinstance(transaction, Mapping):
            body = json.dumps(dict(transaction))
        else:
            raise TypeError(
                f"Cannot broadcast {type(transaction).__name__}; expected JSON text or mapping"
            )
        result = await self._request("POST", "/transaction/broadcast", body=body)
        if not isinstance(result, str) or not result:
            raise PermanentLedgerError(f"Broadcast returned no transaction id: {result!r}")
        logger.debug(f"Broadcast accepted: {result}")
        return result

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        result = await self._request(
            "GET", f"/transaction/{transaction_id}", missing_ok=True,
        )
        if result is _MISSING or result is None:
            return None
        return Transaction.from_json(result)

    async def get_program_mapping_value(
        self, program_id: str, mapping_name: str, key: str,
    ) -> Optional[str]:
        result = await self._request(
            "GET", f"/program/{program_id}/mapping/{mapping_name}/{key}", missing_ok=True,
        )
        if result is _MISSING or result is None:
            return None
        if not isinstance(result, str):
            raise PermanentLedgerError(
                f"Mapping {program_id}/{mapping_name}[{key}] returned {type(result).__name__}"
            )
        return result
