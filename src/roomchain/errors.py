"""Error taxonomy for ledger interactions and room operations.

Every error raised by roomchain derives from RoomchainError and carries an
ErrorKind. The kind is assigned where the error is created (usually at the
ledger client boundary) so retry predicates never have to inspect free-form
messages:

    TRANSIENT  - the node was unreachable or busy; trying again may succeed.
    PERMANENT  - the request or response is wrong; trying again cannot help.
    UNKNOWN    - anything not produced by roomchain itself.
"""

from __future__ import annotations

import enum
from typing import Optional


class ErrorKind(str, enum.Enum):
    """Retry classification of a failure."""
    TRANSIENT = "transient"
    PERMANENT = "permanent"
    UNKNOWN = "unknown"


class OutputDefect(str, enum.Enum):
    """Ways a confirmed transaction can fail to have the expected outputs."""
    NO_TRANSITIONS = "no_transitions"
    TOO_FEW_OUTPUTS = "too_few_outputs"
    TOO_MANY_OUTPUTS = "too_many_outputs"
    MISSING_VALUE = "missing_value"
    MALFORMED_PAYLOAD = "malformed_payload"


class RoomchainError(Exception):
    """Base class for all roomchain errors."""

    kind: ErrorKind = ErrorKind.PERMANENT


class LedgerError(RoomchainError):
    """A request to the ledger node failed."""


class TransientLedgerError(LedgerError):
    """The node could not be reached or asked us to back off."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class PermanentLedgerError(LedgerError):
    """The node rejected the request."""

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class TransactionNotConfirmed(LedgerError):
    """The transaction has no execution outputs yet."""

    kind = ErrorKind.TRANSIENT

    def __init__(self, transaction_id: str, seen: bool) -> None:
        state = "pending" if seen else "unknown"
        super().__init__(f"Transaction {transaction_id} not yet confirmed ({state})")
        self.transaction_id = transaction_id
        self.seen = seen


class ConfirmationTimeoutError(LedgerError):
    """Polling gave up before the transaction showed outputs.

    ``last_seen`` is "pending" when the node returned a record without
    outputs on the final attempt, "unknown" when it had no record, and
    "error" when the final attempt failed at the transport level. A
    rejected transaction and a slow one look the same from here.
    """

    def __init__(self, transaction_id: str, attempts: int, last_seen: str) -> None:
        super().__init__(
            f"Transaction {transaction_id} not confirmed after "
            f"{attempts} attempts (last seen: {last_seen})"
        )
        self.transaction_id = transaction_id
        self.attempts = attempts
        self.last_seen = last_seen


class MalformedResponseError(LedgerError):
    """A transaction payload or its outputs do not have the expected shape."""

    def __init__(self, defect: OutputDefect, message: str) -> None:
        super().__init__(message)
        self.defect = defect


class DecodeError(RoomchainError, ValueError):
    """A wire payload could not be parsed into the expected structure."""


class RoomRuleError(RoomchainError):
    """A client-side room rule rejected the operation before submission."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class ScenarioError(RoomchainError):
    """A scenario check did not hold."""


def classify(error: BaseException) -> ErrorKind:
    """Return the retry classification of an exception."""
    if isinstance(error, RoomchainError):
        return error.kind
    return ErrorKind.UNKNOWN
