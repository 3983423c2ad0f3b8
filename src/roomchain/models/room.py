"""Room models: the on-chain room record and the requests derived from it.

A room is created with its host as the only joined user. Players are
appended in join order until ``seats`` is reached. Once a game-creation
request succeeds the room is terminal.

State machine:
    UNCREATED → OPEN (1..seats-1 joined) → FULL (seats joined) → GAME_REQUESTED
    UNCREATED → FULL                     (single-seat room)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class RoomState(str, enum.Enum):
    """Lifecycle state of a room."""
    UNCREATED = "uncreated"
    OPEN = "open"
    FULL = "full"
    GAME_REQUESTED = "game_requested"


@dataclass(frozen=True)
class Identity:
    """A participant able to sign transactions.

    The private key is handed to the transaction builder per call and is
    never included in repr or logs.
    """
    address: str
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class PlayerRoomConfig:
    """One seat taken in a room."""
    player_address: str
    bet: int


@dataclass(frozen=True)
class RoomConfig:
    """Snapshot of a room record as stored in the ``rooms`` mapping."""
    big_blind: int
    big_blind_seat: int
    small_blind: int
    small_blind_seat: int
    dealer_seat: int
    min_stack: int
    seats: int
    room_id: int
    joined_users: tuple[PlayerRoomConfig, ...]
    num_joined_users: int
    game_state_manager_address: str

    @property
    def player_addresses(self) -> list[str]:
        """Joined player addresses in join order."""
        return [u.player_address for u in self.joined_users]

    @property
    def is_full(self) -> bool:
        return self.num_joined_users >= self.seats

    @property
    def state(self) -> RoomState:
        return RoomState.FULL if self.is_full else RoomState.OPEN

    def has_player(self, address: str) -> bool:
        return any(u.player_address == address for u in self.joined_users)

    def bet_of(self, address: str) -> int | None:
        for user in self.joined_users:
            if user.player_address == address:
                return user.bet
        return None


@dataclass(frozen=True)
class RoomConfigRequest:
    """Record handed to the dealer to set up the game for a room."""
    room_id: int
    room_config: RoomConfig
    owner: str


@dataclass(frozen=True)
class DeckCreationRequest:
    """Record asking the dealer to create a deck for the listed players."""
    owner: str
    room_id: int
    player_addresses: tuple[str, ...]


@dataclass(frozen=True)
class RecordWithCiphertext(Generic[T]):
    """A record payload rebuilt client-side, paired with its opaque ciphertext."""
    data: T
    ciphertext: str


@dataclass(frozen=True)
class GameCreation:
    """Result of a successful game-creation request."""
    room_config_request: RecordWithCiphertext[RoomConfigRequest]
    deck_request: RecordWithCiphertext[DeckCreationRequest]
    transaction: Any
    state: RoomState = RoomState.GAME_REQUESTED
