"""In-memory ledger: a local stand-in for a node plus a transaction builder.

Executes the room manager functions and credits transfers against plain
Python state so the whole room lifecycle can run without a network.
Behaviour mirrors what a client observes from a real node:

- A submitted transaction is first visible without outputs for
  ``pending_polls`` fetches, then confirmed.
- An execution the program would reject is recorded as a fee-only
  transaction that never shows outputs.
- Record outputs carry opaque ``record1...`` ciphertexts.

Pure bookkeeping: no signing, no proofs.
"""

from __future__ import annotations

import secrets
from dataclasses import dataclass, replace
from decimal import Decimal
from typing import Any, Optional

from roomchain.codec.plaintext import is_address, parse_integer
from roomchain.codec.room import decode_room_config, encode_room_config
from roomchain.constants import (
    ACCOUNT_MAPPING,
    CREATE_ROOM,
    CREDITS_PROGRAM,
    JOIN_ROOM,
    REQUEST_GAME_CREATION,
    ROOM_MANAGER_PROGRAM,
    ROOMS_MAPPING,
    TRANSFER_PRIVATE,
    TRANSFER_PRIVATE_TO_PUBLIC,
    TRANSFER_PUBLIC,
    TRANSFER_PUBLIC_TO_PRIVATE,
)
from roomchain.errors import DecodeError, PermanentLedgerError
from roomchain.ledger.types import ExecutionRequest, Transaction, Transition, TransitionOutput
from roomchain.models.room import Identity, PlayerRoomConfig, RoomConfig

_BECH32 = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"


def _random_bech32(prefix: str, length: int) -> str:
    return prefix + "".join(secrets.choice(_BECH32) for _ in range(length))


class _Rejected(Exception):
    """Execution failed inside the program."""


@dataclass(frozen=True)
class SimulatedTransaction:
    """A built transaction waiting to be submitted to an InMemoryLedger."""
    id: str
    program_id: str
    function_name: str
    inputs: tuple[str, ...]
    caller: str
    fee: Decimal


@dataclass
class _Entry:
    transaction: Transaction
    pending_polls: int


@dataclass
class LedgerCalls:
    """Call counters, for assertions in tests."""
    built: int = 0
    submitted: int = 0
    get_transaction: int = 0
    mapping_reads: int = 0


class InMemoryLedger:
    """LedgerClient and TransactionBuilder over local state.

    Usage:
        ledger = InMemoryLedger()
        alice = ledger.new_identity()
        orchestrator = RoomOrchestrator(ledger, ledger)
    """

    def __init__(
        self,
        pending_polls: int = 0,
        room_program: str = ROOM_MANAGER_PROGRAM,
    ) -> None:
        self.pending_polls = pending_polls
        self.room_program = room_program
        self.calls = LedgerCalls()
        self.game_state_manager_address = _random_bech32("aleo1", 58)
        self._keys: dict[str, str] = {}
        self._rooms: dict[int, RoomConfig] = {}
        self._requested: set[int] = set()
        self._next_room_id = 1
        self._entries: dict[str, _Entry] = {}
        self._public: dict[str, int] = {}
        self._private: dict[str, int] = {}
        self._failures: dict[str, list[Exception]] = {}

    # ------------------------------------------------------------------
    # Test hooks
    # ------------------------------------------------------------------

    def new_identity(self) -> Identity:
        """Create an identity whose key this ledger will accept."""
        identity = Identity(
            address=_random_bech32("aleo1", 58),
            private_key=_random_bech32("APrivateKey1zkp", 44),
        )
        self._keys[identity.private_key] = identity.address
        return identity

    def mint(self, address: str, amount: int, private: bool = False) -> None:
        """Credit microcredits to an address out of thin air."""
        balances = self._private if private else self._public
        balances[address] = balances.get(address, 0) + amount

    def private_balance(self, address: str) -> int:
        return self._private.get(address, 0)

    def inject_failure(self, operation: str, error: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls of ``operation`` raise ``error``.

        ``operation`` is a method name: "submit_transaction",
        "get_transaction" or "get_program_mapping_value".
        """
        self._failures.setdefault(operation, []).extend([error] * times)

    def room(self, room_id: int) -> Optional[RoomConfig]:
        return self._rooms.get(room_id)

    def _maybe_fail(self, operation: str) -> None:
        queue = self._failures.get(operation)
        if queue:
            raise queue.pop(0)

    # ------------------------------------------------------------------
    # TransactionBuilder
    # ------------------------------------------------------------------

    async def build_execution_transaction(self, request: ExecutionRequest) -> SimulatedTransaction:
        caller = self._keys.get(request.private_key)
        if caller is None:
            raise PermanentLedgerError("Unknown signing key")
        self.calls.built += 1
        return SimulatedTransaction(
            id=_random_bech32("at1", 58),
            program_id=request.program_id,
            function_name=request.function_name,
            inputs=tuple(request.inputs),
            caller=caller,
            fee=request.fee,
        )

    # ------------------------------------------------------------------
    # LedgerClient
    # ------------------------------------------------------------------

    async def submit_transaction(self, transaction: Any) -> str:
        self._maybe_fail("submit_transaction")
        if not isinstance(transaction, SimulatedTransaction):
            raise PermanentLedgerError(
                f"Cannot submit {type(transaction).__name__} to an in-memory ledger"
            )
        if transaction.id in self._entries:
            raise PermanentLedgerError(f"Transaction {transaction.id} already exists")
        self.calls.submitted += 1
        try:
            outputs = self._execute(transaction)
            confirmed = Transaction(
                id=transaction.id,
                type="execute",
                transitions=(Transition(
                    id=_random_bech32("au1", 58),
                    program=transaction.program_id,
                    function=transaction.function_name,
                    outputs=outputs,
                ),),
            )
        except _Rejected:
            confirmed = Transaction(id=transaction.id, type="fee")
        self._entries[transaction.id] = _Entry(confirmed, self.pending_polls)
        return transaction.id

    async def get_transaction(self, transaction_id: str) -> Optional[Transaction]:
        self.calls.get_transaction += 1
        self._maybe_fail("get_transaction")
        entry = self._entries.get(transaction_id)
        if entry is None:
            return None
        if entry.pending_polls > 0:
            entry.pending_polls -= 1
            tx = entry.transaction
            pending = tuple(
                Transition(t.id, t.program, t.function) for t in tx.transitions
            )
            return Transaction(id=tx.id, type=tx.type, transitions=pending)
        return entry.transaction

    async def get_program_mapping_value(
        self, program_id: str, mapping_name: str, key: str,
    ) -> Optional[str]:
        self.calls.mapping_reads += 1
        self._maybe_fail("get_program_mapping_value")
        if program_id == self.room_program and mapping_name == ROOMS_MAPPING:
            room = self._rooms.get(parse_integer(key, "u32"))
            return encode_room_config(room) if room is not None else None
        if program_id == CREDITS_PROGRAM and mapping_name == ACCOUNT_MAPPING:
            if key not in self._public:
                return None
            return f"{self._public[key]}u64"
        raise PermanentLedgerError(f"Unknown mapping {program_id}/{mapping_name}")

    # ------------------------------------------------------------------
    # Program execution
    # ------------------------------------------------------------------

    def _execute(self, tx: SimulatedTransaction) -> tuple[TransitionOutput, ...]:
        handlers = {
            (self.room_program, CREATE_ROOM): self._create_room,
            (self.room_program, JOIN_ROOM): self._join_room,
            (self.room_program, REQUEST_GAME_CREATION): self._request_game_creation,
            (CREDITS_PROGRAM, TRANSFER_PUBLIC): self._transfer,
            (CREDITS_PROGRAM, TRANSFER_PRIVATE): self._transfer,
            (CREDITS_PROGRAM, TRANSFER_PUBLIC_TO_PRIVATE): self._transfer,
            (CREDITS_PROGRAM, TRANSFER_PRIVATE_TO_PUBLIC): self._transfer,
        }
        handler = handlers.get((tx.program_id, tx.function_name))
        if handler is None:
            raise PermanentLedgerError(
                f"Unknown function {tx.program_id}/{tx.function_name}"
            )
        try:
            return handler(tx)
        except (DecodeError, ValueError, IndexError) as exc:
            raise _Rejected(str(exc)) from exc

    @staticmethod
    def _record() -> TransitionOutput:
        return TransitionOutput(
            type="record",
            id=_random_bech32("", 76),
            value=_random_bech32("record1", 120),
        )

    def _create_room(self, tx: SimulatedTransaction) -> tuple[TransitionOutput, ...]:
        big_blind = parse_integer(tx.inputs[0], "u64")
        small_blind = parse_integer(tx.inputs[1], "u64")
        min_stack = parse_integer(tx.inputs[2], "u64")
        seats = parse_integer(tx.inputs[3], "u8")
        bet = parse_integer(tx.inputs[4], "u64")
        if seats < 1:
            raise _Rejected("A room needs at least one seat")
        room = RoomConfig(
            big_blind=big_blind,
            big_blind_seat=2 % seats,
            small_blind=small_blind,
            small_blind_seat=1 % seats,
            dealer_seat=0,
            min_stack=min_stack,
            seats=seats,
            room_id=self._next_room_id,
            joined_users=(PlayerRoomConfig(tx.caller, bet),),
            num_joined_users=1,
            game_state_manager_address=self.game_state_manager_address,
        )
        self._next_room_id += 1
        self._rooms[room.room_id] = room
        return (TransitionOutput(
            type="public",
            id=_random_bech32("", 76),
            value=encode_room_config(room),
        ),)

    def _join_room(self, tx: SimulatedTransaction) -> tuple[TransitionOutput, ...]:
        room_id = parse_integer(tx.inputs[0], "u32")
        bet = parse_integer(tx.inputs[1], "u64")
        room = self._rooms.get(room_id)
        if room is None:
            raise _Rejected(f"Room {room_id} does not exist")
        if room.is_full or room_id in self._requested:
            raise _Rejected(f"Room {room_id} is not open")
        if room.has_player(tx.caller):
            raise _Rejected(f"{tx.caller} already joined room {room_id}")
        self._rooms[room_id] = replace(
            room,
            joined_users=room.joined_users + (PlayerRoomConfig(tx.caller, bet),),
            num_joined_users=room.num_joined_users + 1,
        )
        # The join finalizes on-chain; the transition itself returns a future.
        return (TransitionOutput(type="future", id=_random_bech32("", 76), value=f"{room_id}u32"),)

    def _request_game_creation(self, tx: SimulatedTransaction) -> tuple[TransitionOutput, ...]:
        room_id = parse_integer(tx.inputs[0], "u32")
        snapshot = decode_room_config(tx.inputs[1])
        dealer = tx.inputs[2]
        if not is_address(dealer):
            raise _Rejected(f"Not an address: {dealer}")
        room = self._rooms.get(room_id)
        if room is None or room != snapshot:
            raise _Rejected(f"Snapshot does not match room {room_id}")
        if not room.is_full or room_id in self._requested:
            raise _Rejected(f"Room {room_id} is not ready for a game")
        self._requested.add(room_id)
        return (self._record(), self._record())

    def _transfer(self, tx: SimulatedTransaction) -> tuple[TransitionOutput, ...]:
        recipient = tx.inputs[0]
        amount = parse_integer(tx.inputs[1], "u64")
        if not is_address(recipient):
            raise _Rejected(f"Not an address: {recipient}")
        source = self._private if tx.function_name.startswith("transfer_private") else self._public
        target = self._public if tx.function_name.endswith("public") else self._private
        if source.get(tx.caller, 0) < amount:
            raise _Rejected(f"Insufficient balance for {tx.caller}")
        source[tx.caller] = source.get(tx.caller, 0) - amount
        target[recipient] = target.get(recipient, 0) + amount
        return (self._record(),)
