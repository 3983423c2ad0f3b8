"""Tests for the transaction view, output inspection and error classification."""

import pytest

from roomchain.errors import (
    ConfirmationTimeoutError,
    DecodeError,
    ErrorKind,
    MalformedResponseError,
    OutputDefect,
    PermanentLedgerError,
    RoomRuleError,
    TransactionNotConfirmed,
    TransientLedgerError,
    classify,
)
from roomchain.ledger.types import (
    LedgerClient,
    Transaction,
    TransactionBuilder,
    Transition,
    TransitionOutput,
    inspect_outputs,
    require_outputs,
)
from roomchain.ledger.memory import InMemoryLedger


def _node_json(outputs: list[dict]) -> dict:
    return {
        "type": "execute",
        "id": "at1abc",
        "execution": {
            "transitions": [{
                "id": "au1xyz",
                "program": "room_manager.aleo",
                "function": "rm_create_room",
                "inputs": [],
                "outputs": outputs,
            }],
        },
    }


def _tx(*values) -> Transaction:
    outputs = tuple(TransitionOutput("record", f"o{i}", v) for i, v in enumerate(values))
    return Transaction("at1abc", "execute", (Transition("au1", "p.aleo", "f", outputs),))


class TestTransactionFromJson:
    def test_parses_transitions(self) -> None:
        tx = Transaction.from_json(_node_json([{"type": "public", "id": "1", "value": "5u8"}]))
        assert tx.id == "at1abc"
        assert tx.type == "execute"
        assert tx.transitions[0].function == "rm_create_room"
        assert tx.transitions[0].outputs == (TransitionOutput("public", "1", "5u8"),)
        assert tx.is_confirmed

    def test_keeps_raw_payload(self) -> None:
        data = _node_json([])
        assert Transaction.from_json(data).raw is data

    def test_no_outputs_is_unconfirmed(self) -> None:
        assert not Transaction.from_json(_node_json([])).is_confirmed

    def test_missing_execution_means_no_transitions(self) -> None:
        tx = Transaction.from_json({"type": "fee", "id": "at1abc"})
        assert tx.transitions == ()
        assert not tx.is_confirmed

    def test_non_object_payload(self) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            Transaction.from_json(["at1abc"])
        assert exc_info.value.defect == OutputDefect.NO_TRANSITIONS

    def test_output_without_value(self) -> None:
        tx = Transaction.from_json(_node_json([{"type": "future", "id": "1"}]))
        assert tx.transitions[0].outputs[0].value is None

    @pytest.mark.parametrize("payload", [
        {"id": "at1", "execution": ["not", "an", "object"]},
        {"id": "at1", "execution": {"transitions": {"id": "au1"}}},
        {"id": "at1", "execution": {"transitions": ["au1"]}},
        {"id": "at1", "execution": {"transitions": [{"outputs": "record1"}]}},
        {"id": "at1", "execution": {"transitions": [{"outputs": ["x"]}]}},
        {"id": "at1", "execution": {"transitions": [{"outputs": [{"value": 5}]}]}},
    ])
    def test_nested_shape_errors(self, payload: dict) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            Transaction.from_json(payload)
        assert exc_info.value.defect == OutputDefect.MALFORMED_PAYLOAD
        assert classify(exc_info.value) == ErrorKind.PERMANENT


class TestInspectOutputs:
    def test_ok(self) -> None:
        check = inspect_outputs(_tx("record1a", "record1b"), 2)
        assert check.ok
        assert [o.value for o in check.outputs] == ["record1a", "record1b"]

    def test_extra_outputs_trimmed(self) -> None:
        check = inspect_outputs(_tx("a", "b", "c"), 2)
        assert check.ok
        assert len(check.outputs) == 2

    def test_no_transitions(self) -> None:
        check = inspect_outputs(Transaction("at1", "fee"), 1)
        assert check.defect == OutputDefect.NO_TRANSITIONS
        assert not check.ok

    def test_too_few_outputs(self) -> None:
        check = inspect_outputs(_tx("record1a"), 2)
        assert check.defect == OutputDefect.TOO_FEW_OUTPUTS
        assert "has 1 outputs, expected 2" in check.detail

    @pytest.mark.parametrize("value", [None, ""])
    def test_missing_value(self, value) -> None:
        check = inspect_outputs(_tx("record1a", value), 2)
        assert check.defect == OutputDefect.MISSING_VALUE
        assert "output 1" in check.detail

    def test_exact_rejects_extra_outputs(self) -> None:
        check = inspect_outputs(_tx("a", "b", "c"), 2, exact=True)
        assert check.defect == OutputDefect.TOO_MANY_OUTPUTS
        assert "expected exactly 2" in check.detail

    def test_exact_accepts_matching_count(self) -> None:
        assert inspect_outputs(_tx("a", "b"), 2, exact=True).ok

    def test_require_outputs_raises_with_defect(self) -> None:
        with pytest.raises(MalformedResponseError) as exc_info:
            require_outputs(_tx("record1a"), 2)
        assert exc_info.value.defect == OutputDefect.TOO_FEW_OUTPUTS

    def test_require_outputs_returns_expected_count(self) -> None:
        (only,) = require_outputs(_tx("a", "b"), 1)
        assert only.value == "a"


class TestClassify:
    @pytest.mark.parametrize("error,kind", [
        (TransientLedgerError("x"), ErrorKind.TRANSIENT),
        (TransactionNotConfirmed("at1", seen=True), ErrorKind.TRANSIENT),
        (PermanentLedgerError("x", 400), ErrorKind.PERMANENT),
        (MalformedResponseError(OutputDefect.MISSING_VALUE, "x"), ErrorKind.PERMANENT),
        (ConfirmationTimeoutError("at1", 5, "pending"), ErrorKind.PERMANENT),
        (DecodeError("x"), ErrorKind.PERMANENT),
        (RoomRuleError(["x"]), ErrorKind.PERMANENT),
        (OSError("x"), ErrorKind.UNKNOWN),
    ])
    def test_kinds(self, error, kind) -> None:
        assert classify(error) == kind

    def test_not_confirmed_message(self) -> None:
        assert "(pending)" in str(TransactionNotConfirmed("at1", seen=True))
        assert "(unknown)" in str(TransactionNotConfirmed("at1", seen=False))

    def test_timeout_message(self) -> None:
        error = ConfirmationTimeoutError("at1", 5, "unknown")
        assert str(error) == "Transaction at1 not confirmed after 5 attempts (last seen: unknown)"

    def test_rule_error_joins_messages(self) -> None:
        error = RoomRuleError(["a", "b"])
        assert str(error) == "a; b"
        assert error.errors == ["a", "b"]


class TestProtocols:
    def test_in_memory_ledger_satisfies_both(self) -> None:
        ledger = InMemoryLedger()
        assert isinstance(ledger, LedgerClient)
        assert isinstance(ledger, TransactionBuilder)

    def test_plain_object_is_not_a_client(self) -> None:
        assert not isinstance(object(), LedgerClient)
