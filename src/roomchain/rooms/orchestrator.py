"""Room lifecycle orchestrator: create, join, request a game, read a room.

Every write operation follows the same path:

    build inputs → builder.build_execution_transaction()
                 → client.submit_transaction()
                 → poller.await_confirmation()
                 → decode outputs

The signing identity is an argument of each call. The orchestrator holds
no per-caller state, so one instance can serve concurrent callers.

Operations are all-or-nothing: any error is logged and re-raised
unchanged, and no partial result is ever returned.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Optional

from roomchain.codec.plaintext import is_address, u8, u32, u64
from roomchain.codec.room import decode_room_config, encode_room_config
from roomchain.constants import (
    CREATE_ROOM,
    JOIN_ROOM,
    REQUEST_GAME_CREATION,
    ROOM_MANAGER_PROGRAM,
    ROOMS_MAPPING,
)
from roomchain.errors import RoomRuleError
from roomchain.ledger.poller import ConfirmationPoller
from roomchain.ledger.types import (
    ExecutionRequest,
    LedgerClient,
    Transaction,
    TransactionBuilder,
    require_outputs,
)
from roomchain.models.room import (
    DeckCreationRequest,
    GameCreation,
    Identity,
    RecordWithCiphertext,
    RoomConfig,
    RoomConfigRequest,
    RoomState,
)
from roomchain.retry import QUERY_POLICY, RetryPolicy, Sleep, retry
from roomchain.rooms.state_machine import BetRule, RoomStateMachine

logger = logging.getLogger(__name__)

DEFAULT_FEE = Decimal("0.02")


class RoomOrchestrator:
    """Issues room operations against a ledger and waits for their outcome.

    Usage:
        orchestrator = RoomOrchestrator(client, builder)
        room = await orchestrator.create_room(alice, 100, 50, 1000, 4, 200)
        await orchestrator.join_room(bob, room.room_id, 200)
        room = await orchestrator.get_room(room.room_id)
        game = await orchestrator.request_game_creation(
            alice, room.room_id, room, dealer.address,
        )

    With ``check_preconditions`` or a bet rule other than ANY, joins and
    game requests read the room first and raise RoomRuleError before
    submitting anything the program would reject.
    """

    def __init__(
        self,
        client: LedgerClient,
        builder: Optional[TransactionBuilder],
        poller: Optional[ConfirmationPoller] = None,
        *,
        program_id: str = ROOM_MANAGER_PROGRAM,
        default_fee: Decimal = DEFAULT_FEE,
        private_fee: bool = False,
        query_policy: RetryPolicy = QUERY_POLICY,
        bet_rule: BetRule = BetRule.ANY,
        check_preconditions: bool = False,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._client = client
        self._builder = builder
        self._poller = poller or ConfirmationPoller(client)
        self._program_id = program_id
        self._default_fee = default_fee
        self._private_fee = private_fee
        self._query_policy = query_policy
        self._rules = RoomStateMachine(bet_rule)
        self._check_preconditions = check_preconditions
        self._sleep = sleep

    @property
    def program_id(self) -> str:
        return self._program_id

    async def _execute(
        self,
        identity: Identity,
        function_name: str,
        inputs: list[str],
        fee: Optional[Decimal],
    ) -> Transaction:
        if self._builder is None:
            raise ValueError("No transaction builder configured")
        request = ExecutionRequest(
            program_id=self._program_id,
            function_name=function_name,
            inputs=tuple(inputs),
            fee=self._default_fee if fee is None else fee,
            private_fee=self._private_fee,
            private_key=identity.private_key,
        )
        transaction = await self._builder.build_execution_transaction(request)
        tx_id = await self._client.submit_transaction(transaction)
        logger.info(f"{function_name} transaction ID: {tx_id}")
        return await self._poller.await_confirmation(tx_id)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_room(
        self,
        identity: Identity,
        big_blind: int,
        small_blind: int,
        min_stack: int,
        seats: int,
        host_bet: int,
        fee: Optional[Decimal] = None,
    ) -> RoomConfig:
        """Create a room with ``identity`` as host. Returns the new room."""
        inputs = [u64(big_blind), u64(small_blind), u64(min_stack), u8(seats), u64(host_bet)]
        if seats < 1:
            raise ValueError("A room needs at least one seat")
        try:
            tx = await self._execute(identity, CREATE_ROOM, inputs, fee)
            (output,) = require_outputs(tx, 1)
            room = decode_room_config(output.value)
        except Exception as exc:
            logger.error(f"Failed to create room: {exc}")
            raise
        logger.info(
            f"Room {room.room_id}: {RoomState.UNCREATED.value} → {room.state.value} "
            f"({room.num_joined_users}/{room.seats})"
        )
        return room

    async def join_room(
        self,
        identity: Identity,
        room_id: int,
        bet: int,
        fee: Optional[Decimal] = None,
    ) -> None:
        """Join a room. Re-read it with get_room() to see the new member."""
        inputs = [u32(room_id), u64(bet)]
        try:
            if self._check_preconditions or self._rules.bet_rule != BetRule.ANY:
                room = await self.get_room(room_id)
                if self._check_preconditions:
                    errors = self._rules.check_join(room, room_id, identity.address, bet)
                elif room is not None:
                    errors = self._rules.check_bet(room, bet)
                else:
                    errors = []
                if errors:
                    raise RoomRuleError(errors)
            await self._execute(identity, JOIN_ROOM, inputs, fee)
        except Exception as exc:
            logger.error(f"Failed to join room {room_id}: {exc}")
            raise
        logger.info(f"{identity.address} joined room {room_id}")

    async def request_game_creation(
        self,
        identity: Identity,
        room_id: int,
        room_config: RoomConfig,
        dealer_address: str,
        fee: Optional[Decimal] = None,
    ) -> GameCreation:
        """Ask the dealer to start a game for a full room.

        The confirmed transaction must have exactly two valued outputs:
        the room config request record, then the deck creation request
        record. Any other shape raises MalformedResponseError. Their
        payloads are rebuilt from the inputs; the ciphertexts are kept as
        returned.
        """
        if not is_address(dealer_address):
            raise ValueError(f"Not an address: {dealer_address!r}")
        inputs = [u32(room_id), encode_room_config(room_config), dealer_address]
        try:
            if self._check_preconditions:
                room = await self.get_room(room_id)
                errors = self._rules.check_game_request(room, room_id, room_config)
                if errors:
                    raise RoomRuleError(errors)
            tx = await self._execute(identity, REQUEST_GAME_CREATION, inputs, fee)
            config_output, deck_output = require_outputs(tx, 2, exact=True)
        except Exception as exc:
            logger.error(f"Failed to request game creation for room {room_id}: {exc}")
            raise

        logger.info(
            f"Room {room_id}: {RoomState.FULL.value} → {RoomState.GAME_REQUESTED.value}"
        )
        return GameCreation(
            room_config_request=RecordWithCiphertext(
                data=RoomConfigRequest(
                    room_id=room_id,
                    room_config=room_config,
                    owner=dealer_address,
                ),
                ciphertext=config_output.value,
            ),
            deck_request=RecordWithCiphertext(
                data=DeckCreationRequest(
                    owner=dealer_address,
                    room_id=room_id,
                    player_addresses=tuple(room_config.player_addresses),
                ),
                ciphertext=deck_output.value,
            ),
            transaction=tx,
        )

    async def get_room(self, room_id: int) -> Optional[RoomConfig]:
        """Read a room from the ``rooms`` mapping. None if it does not exist."""
        key = u32(room_id)
        try:
            value = await retry(
                lambda: self._client.get_program_mapping_value(
                    self._program_id, ROOMS_MAPPING, key,
                ),
                self._query_policy,
                self._sleep,
            )
            if value is None:
                return None
            return decode_room_config(value)
        except Exception as exc:
            logger.error(f"Failed to get room {room_id}: {exc}")
            raise
