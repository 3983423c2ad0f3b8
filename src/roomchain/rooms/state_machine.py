"""Room state machine: legal lifecycle transitions and client-side rules.

Room lifecycle:
    UNCREATED → OPEN → FULL → GAME_REQUESTED
    UNCREATED → FULL              (single-seat room)
    OPEN → OPEN                   (a player joins, seats remain)

The program enforces these rules on-chain. Checking them client-side is
optional and off by default: a rejected execution otherwise surfaces only
as a confirmation timeout. Checks return a list of errors; empty means OK.
"""

from __future__ import annotations

import enum
from typing import Optional

from roomchain.models.room import RoomConfig, RoomState


_TRANSITIONS: dict[RoomState, set[RoomState]] = {
    RoomState.UNCREATED: {RoomState.OPEN, RoomState.FULL},
    RoomState.OPEN: {RoomState.OPEN, RoomState.FULL},
    RoomState.FULL: {RoomState.GAME_REQUESTED},
    # Terminal
    RoomState.GAME_REQUESTED: set(),
}


class BetRule(str, enum.Enum):
    """How a joining player's bet relates to the room."""
    ANY = "any"
    MATCH_HOST = "match_host"


def room_state(room: Optional[RoomConfig]) -> RoomState:
    """State of a room as read from the ``rooms`` mapping."""
    if room is None:
        return RoomState.UNCREATED
    return room.state


class RoomStateMachine:
    """Validates room transitions and the rules guarding them.

    Pure computation. The orchestrator decides whether to apply the
    checks and turns errors into RoomRuleError.
    """

    def __init__(self, bet_rule: BetRule = BetRule.ANY) -> None:
        self._bet_rule = bet_rule

    @property
    def bet_rule(self) -> BetRule:
        return self._bet_rule

    @staticmethod
    def validate_transition(current: RoomState, target: RoomState) -> list[str]:
        if target not in _TRANSITIONS.get(current, set()):
            return [f"Invalid room transition: {current.value} → {target.value}"]
        return []

    @staticmethod
    def is_terminal(state: RoomState) -> bool:
        return not _TRANSITIONS.get(state)

    @staticmethod
    def state_after_join(room: RoomConfig) -> RoomState:
        if room.num_joined_users + 1 >= room.seats:
            return RoomState.FULL
        return RoomState.OPEN

    def check_bet(self, room: RoomConfig, bet: int) -> list[str]:
        if self._bet_rule == BetRule.MATCH_HOST and room.joined_users:
            host_bet = room.joined_users[0].bet
            if bet != host_bet:
                return [f"Room {room.room_id}: bet {bet} must match host bet {host_bet}"]
        return []

    def check_join(
        self,
        room: Optional[RoomConfig],
        room_id: int,
        address: str,
        bet: int,
    ) -> list[str]:
        """Errors that would make a join fail, empty if it can proceed."""
        if room is None:
            return [f"Room {room_id} does not exist"]
        errors = self.validate_transition(room.state, self.state_after_join(room))
        if room.is_full:
            errors = [f"Room {room_id} is full ({room.num_joined_users}/{room.seats})"]
        if room.has_player(address):
            errors.append(f"Room {room_id}: {address} already joined")
        errors.extend(self.check_bet(room, bet))
        return errors

    def check_game_request(
        self,
        room: Optional[RoomConfig],
        room_id: int,
        snapshot: RoomConfig,
    ) -> list[str]:
        """Errors that would make a game-creation request fail."""
        if room is None:
            return [f"Room {room_id} does not exist"]
        errors = self.validate_transition(room.state, RoomState.GAME_REQUESTED)
        if errors:
            errors = [f"Room {room_id} is not full ({room.num_joined_users}/{room.seats})"]
        if snapshot != room:
            errors.append(f"Room {room_id}: snapshot differs from current room state")
        return errors
