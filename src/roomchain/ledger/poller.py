"""Confirmation poller: waits until a submitted transaction has outputs.

Each attempt is one get_transaction() call. A missing record and a record
without outputs both count as "not yet confirmed" and are retried through
the shared retry engine. When the attempts run out the caller gets a
ConfirmationTimeoutError; it cannot tell a rejected transaction from a
slow one.
"""

from __future__ import annotations

import asyncio
import logging

from roomchain.errors import ConfirmationTimeoutError, TransactionNotConfirmed
from roomchain.ledger.types import LedgerClient, Transaction
from roomchain.retry import POLL_POLICY, RetryPolicy, Sleep, retry

logger = logging.getLogger(__name__)


class ConfirmationPoller:
    """Polls a ledger client until a transaction is confirmed.

    Usage:
        poller = ConfirmationPoller(client)
        tx = await poller.await_confirmation(tx_id)
    """

    def __init__(
        self,
        client: LedgerClient,
        policy: RetryPolicy = POLL_POLICY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._policy = policy
        self._sleep = sleep

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def await_confirmation(self, transaction_id: str) -> Transaction:
        """Return the confirmed transaction or raise.

        Raises ConfirmationTimeoutError when every attempt found the
        transaction unconfirmed or hit a retryable error. Non-retryable
        errors from the client propagate unchanged.
        """
        attempts = 0

        async def fetch() -> Transaction:
            nonlocal attempts
            attempts += 1
            tx = await self._client.get_transaction(transaction_id)
            if tx is None or not tx.is_confirmed:
                raise TransactionNotConfirmed(transaction_id, seen=tx is not None)
            return tx

        try:
            tx = await retry(fetch, self._policy, self._sleep)
        except Exception as exc:
            if not self._policy.should_retry(exc):
                raise
            last_seen = "unknown"
            if isinstance(exc, TransactionNotConfirmed) and exc.seen:
                last_seen = "pending"
            elif not isinstance(exc, TransactionNotConfirmed):
                last_seen = "error"
            raise ConfirmationTimeoutError(transaction_id, attempts, last_seen) from exc

        logger.debug(f"Transaction {transaction_id} confirmed after {attempts} attempt(s)")
        return tx
