"""Ledger access: collaborator protocols, REST client, in-memory ledger, poller."""

from roomchain.ledger.memory import InMemoryLedger
from roomchain.ledger.poller import ConfirmationPoller
from roomchain.ledger.rest import AleoRestClient
from roomchain.ledger.types import (
    ExecutionRequest,
    LedgerClient,
    Transaction,
    TransactionBuilder,
)

__all__ = [
    "AleoRestClient",
    "ConfirmationPoller",
    "ExecutionRequest",
    "InMemoryLedger",
    "LedgerClient",
    "Transaction",
    "TransactionBuilder",
]
