"""End-to-end room scenario: one host creates a room, others join, game requested.

After every step the room is re-read from the ledger and checked: member
count, join order and bets. Any mismatch raises ScenarioError.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from roomchain.errors import ScenarioError
from roomchain.models.room import GameCreation, Identity, RoomConfig
from roomchain.rooms.orchestrator import RoomOrchestrator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScenarioParams:
    big_blind: int = 100
    small_blind: int = 50
    min_stack: int = 1000
    seats: int = 4
    player_bet: int = 200


@dataclass(frozen=True)
class ScenarioResult:
    room_id: int
    final_state: RoomConfig
    game_creation: GameCreation


def _check(condition: bool, message: str) -> None:
    if not condition:
        raise ScenarioError(message)


async def _expect_members(
    orchestrator: RoomOrchestrator,
    room_id: int,
    players: Sequence[Identity],
    bet: int,
) -> RoomConfig:
    room = await orchestrator.get_room(room_id)
    _check(room is not None, f"Room {room_id} missing after {len(players)} player(s)")
    _check(
        room.num_joined_users == len(players),
        f"Room should have exactly {len(players)} player(s), has {room.num_joined_users}",
    )
    _check(
        room.player_addresses == [p.address for p in players],
        f"Room {room_id} members out of join order: {room.player_addresses}",
    )
    for index, user in enumerate(room.joined_users):
        _check(user.bet == bet, f"Player {index} should have bet {bet}, has {user.bet}")
    return room


async def simulate_room_joining(
    orchestrator: RoomOrchestrator,
    host: Identity,
    joiners: Sequence[Identity],
    dealer_address: str,
    params: ScenarioParams = ScenarioParams(),
) -> ScenarioResult:
    """Run create → join × N → request game, verifying state at each step."""
    _check(
        len(joiners) + 1 == params.seats,
        f"{len(joiners) + 1} players cannot fill {params.seats} seats",
    )

    logger.info("Host creating room...")
    created = await orchestrator.create_room(
        host,
        params.big_blind,
        params.small_blind,
        params.min_stack,
        params.seats,
        params.player_bet,
    )
    room_id = created.room_id
    logger.info(f"Room created with ID: {room_id}")

    players = [host]
    room = await _expect_members(orchestrator, room_id, players, params.player_bet)

    for player in joiners:
        logger.info(f"{player.address} joining room {room_id}...")
        await orchestrator.join_room(player, room_id, params.player_bet)
        players.append(player)
        room = await _expect_members(orchestrator, room_id, players, params.player_bet)

    _check(room.is_full, f"Room {room_id} should be full")

    logger.info("Requesting game creation...")
    game = await orchestrator.request_game_creation(host, room_id, room, dealer_address)
    request = game.room_config_request.data
    _check(request.room_id == room_id, "Game creation request has the wrong room id")
    _check(request.owner == dealer_address, "Game creation request has the wrong owner")
    _check(
        list(game.deck_request.data.player_addresses) == room.player_addresses,
        "Deck request players differ from room members",
    )
    logger.info(f"Game creation completed, transaction {game.transaction.id}")

    return ScenarioResult(room_id=room_id, final_state=room, game_creation=game)
