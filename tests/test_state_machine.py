"""Tests for room lifecycle transitions and client-side join rules."""

from dataclasses import replace

import pytest

from roomchain.models.room import PlayerRoomConfig, RoomConfig, RoomState
from roomchain.rooms.state_machine import BetRule, RoomStateMachine, room_state

HOST = "aleo1" + "h" * 58
GUEST = "aleo1" + "g" * 58
OTHER = "aleo1" + "o" * 58


def _room(players=((HOST, 200),), seats: int = 3) -> RoomConfig:
    users = tuple(PlayerRoomConfig(a, b) for a, b in players)
    return RoomConfig(
        big_blind=100, big_blind_seat=2 % seats, small_blind=50, small_blind_seat=1 % seats,
        dealer_seat=0, min_stack=1000, seats=seats, room_id=1,
        joined_users=users, num_joined_users=len(users),
        game_state_manager_address="aleo1" + "m" * 58,
    )


class TestTransitions:
    @pytest.mark.parametrize("current,target", [
        (RoomState.UNCREATED, RoomState.OPEN),
        (RoomState.UNCREATED, RoomState.FULL),
        (RoomState.OPEN, RoomState.OPEN),
        (RoomState.OPEN, RoomState.FULL),
        (RoomState.FULL, RoomState.GAME_REQUESTED),
    ])
    def test_valid(self, current: RoomState, target: RoomState) -> None:
        assert RoomStateMachine.validate_transition(current, target) == []

    @pytest.mark.parametrize("current,target", [
        (RoomState.UNCREATED, RoomState.GAME_REQUESTED),
        (RoomState.OPEN, RoomState.GAME_REQUESTED),
        (RoomState.FULL, RoomState.OPEN),
        (RoomState.FULL, RoomState.FULL),
        (RoomState.GAME_REQUESTED, RoomState.OPEN),
    ])
    def test_invalid(self, current: RoomState, target: RoomState) -> None:
        errors = RoomStateMachine.validate_transition(current, target)
        assert len(errors) == 1
        assert "Invalid room transition" in errors[0]

    def test_terminal(self) -> None:
        assert RoomStateMachine.is_terminal(RoomState.GAME_REQUESTED)
        assert not RoomStateMachine.is_terminal(RoomState.FULL)

    def test_room_state(self) -> None:
        assert room_state(None) == RoomState.UNCREATED
        assert room_state(_room()) == RoomState.OPEN
        assert room_state(_room(((HOST, 200), (GUEST, 200), (OTHER, 200)))) == RoomState.FULL

    def test_state_after_join(self) -> None:
        assert RoomStateMachine.state_after_join(_room()) == RoomState.OPEN
        two = _room(((HOST, 200), (GUEST, 200)))
        assert RoomStateMachine.state_after_join(two) == RoomState.FULL


class TestCheckJoin:
    def test_open_room_accepts(self) -> None:
        assert RoomStateMachine().check_join(_room(), 1, GUEST, 500) == []

    def test_missing_room(self) -> None:
        errors = RoomStateMachine().check_join(None, 4, GUEST, 200)
        assert errors == ["Room 4 does not exist"]

    def test_full_room(self) -> None:
        room = _room(((HOST, 200), (GUEST, 200), (OTHER, 200)))
        errors = RoomStateMachine().check_join(room, 1, "aleo1" + "x" * 58, 200)
        assert len(errors) == 1
        assert "is full (3/3)" in errors[0]

    def test_already_joined(self) -> None:
        errors = RoomStateMachine().check_join(_room(), 1, HOST, 200)
        assert any("already joined" in e for e in errors)

    def test_match_host_rule(self) -> None:
        rules = RoomStateMachine(BetRule.MATCH_HOST)
        assert rules.check_join(_room(), 1, GUEST, 200) == []
        errors = rules.check_join(_room(), 1, GUEST, 150)
        assert errors == ["Room 1: bet 150 must match host bet 200"]

    def test_any_rule_ignores_bet(self) -> None:
        assert RoomStateMachine(BetRule.ANY).check_bet(_room(), 1) == []


class TestCheckGameRequest:
    def test_full_room_with_matching_snapshot(self) -> None:
        room = _room(((HOST, 200), (GUEST, 200), (OTHER, 200)))
        assert RoomStateMachine().check_game_request(room, 1, room) == []

    def test_open_room(self) -> None:
        room = _room()
        errors = RoomStateMachine().check_game_request(room, 1, room)
        assert errors == ["Room 1 is not full (1/3)"]

    def test_stale_snapshot(self) -> None:
        room = _room(((HOST, 200), (GUEST, 200), (OTHER, 200)))
        stale = replace(room, big_blind=200)
        errors = RoomStateMachine().check_game_request(room, 1, stale)
        assert errors == ["Room 1: snapshot differs from current room state"]

    def test_missing_room(self) -> None:
        assert RoomStateMachine().check_game_request(None, 2, _room()) == [
            "Room 2 does not exist"
        ]
