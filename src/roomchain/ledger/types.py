"""Ledger collaborator contracts and the transaction view the core reads.

The orchestrator never talks to a node or an SDK directly. It talks to two
Protocols:

    TransactionBuilder  builds (and proves) an execution transaction.
    LedgerClient        submits it, fetches it back, reads mappings.

Any pair of implementations can be plugged in: AleoRestClient for a real
node, InMemoryLedger for local runs and tests.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional, Protocol, runtime_checkable

from roomchain.errors import MalformedResponseError, OutputDefect


def _expect(value: Any, kind: type, where: str) -> Any:
    if not isinstance(value, kind):
        raise MalformedResponseError(
            OutputDefect.MALFORMED_PAYLOAD,
            f"Transaction {where} is {type(value).__name__}, expected {kind.__name__}",
        )
    return value


@dataclass(frozen=True)
class TransitionOutput:
    """One output of a transition. ``value`` is opaque for records."""
    type: str
    id: str
    value: Optional[str]


@dataclass(frozen=True)
class Transition:
    """A single program function call inside a transaction."""
    id: str
    program: str
    function: str
    outputs: tuple[TransitionOutput, ...] = ()


@dataclass(frozen=True)
class Transaction:
    """Parsed view of a transaction as returned by the node."""
    id: str
    type: str
    transitions: tuple[Transition, ...] = ()
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def is_confirmed(self) -> bool:
        """True once the first transition carries at least one output."""
        return bool(self.transitions) and bool(self.transitions[0].outputs)

    @classmethod
    def from_json(cls, data: Any) -> Transaction:
        """Build from node JSON. A missing ``execution`` means no transitions."""
        if not isinstance(data, dict):
            raise MalformedResponseError(
                OutputDefect.NO_TRANSITIONS,
                f"Transaction payload is {type(data).__name__}, expected object",
            )
        execution = _expect(data.get("execution") or {}, dict, "execution")
        transitions = []
        raw_transitions = _expect(execution.get("transitions") or [], list, "transitions")
        for i, t in enumerate(raw_transitions):
            t = _expect(t, dict, f"transitions[{i}]")
            raw_outputs = _expect(t.get("outputs") or [], list, f"transitions[{i}].outputs")
            outputs = []
            for j, o in enumerate(raw_outputs):
                o = _expect(o, dict, f"transitions[{i}].outputs[{j}]")
                value = o.get("value")
                if value is not None and not isinstance(value, str):
                    raise MalformedResponseError(
                        OutputDefect.MALFORMED_PAYLOAD,
                        f"transitions[{i}].outputs[{j}].value is "
                        f"{type(value).__name__}, expected string",
                    )
                outputs.append(TransitionOutput(
                    type=str(o.get("type", "")),
                    id=str(o.get("id", "")),
                    value=value,
                ))
            transitions.append(Transition(
                id=str(t.get("id", "")),
                program=str(t.get("program", "")),
                function=str(t.get("function", "")),
                outputs=tuple(outputs),
            ))
        return cls(
            id=str(data.get("id", "")),
            type=str(data.get("type", "")),
            transitions=tuple(transitions),
            raw=data,
        )


@dataclass(frozen=True)
class OutputCheck:
    """Outputs of the first transition, or the reason they are unusable."""
    outputs: tuple[TransitionOutput, ...] = ()
    defect: Optional[OutputDefect] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.defect is None


def inspect_outputs(
    transaction: Transaction,
    expected: int,
    exact: bool = False,
) -> OutputCheck:
    """Check that the first transition has ``expected`` valued outputs.

    Extra outputs are ignored unless ``exact`` is set, in which case they
    are a TOO_MANY_OUTPUTS defect.

    Returns the defect as data instead of raising, so callers can branch
    on ``check.defect``.
    """
    if not transaction.transitions:
        return OutputCheck(
            defect=OutputDefect.NO_TRANSITIONS,
            detail=f"Transaction {transaction.id} has no transitions",
        )
    outputs = transaction.transitions[0].outputs
    if len(outputs) < expected:
        return OutputCheck(
            outputs=outputs,
            defect=OutputDefect.TOO_FEW_OUTPUTS,
            detail=f"Transaction {transaction.id} has {len(outputs)} outputs, expected {expected}",
        )
    if exact and len(outputs) > expected:
        return OutputCheck(
            outputs=outputs,
            defect=OutputDefect.TOO_MANY_OUTPUTS,
            detail=f"Transaction {transaction.id} has {len(outputs)} outputs, expected exactly {expected}",
        )
    for index, output in enumerate(outputs[:expected]):
        if not output.value:
            return OutputCheck(
                outputs=outputs,
                defect=OutputDefect.MISSING_VALUE,
                detail=f"Transaction {transaction.id} output {index} has no value",
            )
    return OutputCheck(outputs=outputs[:expected])


def require_outputs(
    transaction: Transaction,
    expected: int,
    exact: bool = False,
) -> tuple[TransitionOutput, ...]:
    """Like inspect_outputs() but raises MalformedResponseError on a defect."""
    check = inspect_outputs(transaction, expected, exact)
    if check.defect is not None:
        raise MalformedResponseError(check.defect, check.detail)
    return check.outputs


@dataclass(frozen=True)
class ExecutionRequest:
    """Everything a builder needs to produce an execution transaction."""
    program_id: str
    function_name: str
    inputs: tuple[str, ...]
    fee: Decimal
    private_fee: bool
    private_key: str = field(repr=False)


@runtime_checkable
class TransactionBuilder(Protocol):
    """Builds a signed, proven execution transaction."""

    async def build_execution_transaction(self, request: ExecutionRequest) -> Any:
        ...


@runtime_checkable
class LedgerClient(Protocol):
    """Read/write access to a ledger node."""

    async def submit_transaction(self, transaction: Any) -> str:
        """Broadcast a built transaction. Returns its id."""
        ...

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        """Fetch a transaction, or None if the node does not have it."""
        ...

    async def get_program_mapping_value(
        self, program_id: str, mapping_name: str, key: str,
    ) -> Optional[str]:
        """Read one mapping entry as plaintext, or None if absent."""
        ...
