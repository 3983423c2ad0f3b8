"""Core data models for roomchain."""

from roomchain.models.room import (
    DeckCreationRequest,
    GameCreation,
    Identity,
    PlayerRoomConfig,
    RecordWithCiphertext,
    RoomConfig,
    RoomConfigRequest,
    RoomState,
)

__all__ = [
    "DeckCreationRequest",
    "GameCreation",
    "Identity",
    "PlayerRoomConfig",
    "RecordWithCiphertext",
    "RoomConfig",
    "RoomConfigRequest",
    "RoomState",
]
