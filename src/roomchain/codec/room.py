"""Room config codec: RoomConfig to and from its plaintext struct form.

Field order and integer widths follow the ``RoomConfig`` struct of the
room manager program. Decoding is strict: every member must be present,
no extra members are allowed, and each integer must carry the declared
width. Nothing is coerced.
"""

from __future__ import annotations

from roomchain.codec.plaintext import (
    IntegerLiteral,
    format_plaintext,
    is_address,
    parse_plaintext,
)
from roomchain.errors import DecodeError
from roomchain.models.room import PlayerRoomConfig, RoomConfig


# (member name, integer type or "address" / "players")
ROOM_CONFIG_FIELDS: tuple[tuple[str, str], ...] = (
    ("big_blind", "u64"),
    ("big_blind_seat", "u8"),
    ("small_blind", "u64"),
    ("small_blind_seat", "u8"),
    ("dealer_seat", "u8"),
    ("min_stack", "u64"),
    ("seats", "u8"),
    ("room_id", "u32"),
    ("joined_users", "players"),
    ("num_joined_users", "u8"),
    ("game_state_manager_address", "address"),
)

PLAYER_FIELDS: tuple[tuple[str, str], ...] = (
    ("player_address", "address"),
    ("bet", "u64"),
)


def _encode_member(value: object, kind: str) -> object:
    if kind == "address":
        if not is_address(value):
            raise ValueError(f"Not an address: {value!r}")
        return value
    if kind == "players":
        return [_encode_struct(p, PLAYER_FIELDS) for p in value]  # type: ignore[attr-defined]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected int for {kind}, got {value!r}")
    return IntegerLiteral(value, kind)


def _encode_struct(obj: object, fields: tuple[tuple[str, str], ...]) -> dict:
    return {name: _encode_member(getattr(obj, name), kind) for name, kind in fields}


def encode_room_config(config: RoomConfig) -> str:
    """Serialize a RoomConfig as a plaintext struct literal."""
    if config.num_joined_users != len(config.joined_users):
        raise ValueError(
            f"num_joined_users={config.num_joined_users} but "
            f"{len(config.joined_users)} joined users"
        )
    return format_plaintext(_encode_struct(config, ROOM_CONFIG_FIELDS))


def _decode_member(name: str, value: object, kind: str) -> object:
    if kind == "address":
        if not is_address(value):
            raise DecodeError(f"{name}: expected address, got {value!r}")
        return value
    if kind == "players":
        if not isinstance(value, list):
            raise DecodeError(f"{name}: expected array")
        return tuple(
            PlayerRoomConfig(**_decode_struct(item, PLAYER_FIELDS, f"{name}[{i}]"))
            for i, item in enumerate(value)
        )
    if not isinstance(value, IntegerLiteral) or value.type != kind:
        raise DecodeError(f"{name}: expected {kind}, got {value!r}")
    return value.value


def _decode_struct(
    members: object,
    fields: tuple[tuple[str, str], ...],
    where: str,
) -> dict:
    if not isinstance(members, dict):
        raise DecodeError(f"{where}: expected struct")
    expected = [name for name, _ in fields]
    missing = [name for name in expected if name not in members]
    if missing:
        raise DecodeError(f"{where}: missing {', '.join(missing)}")
    extra = [name for name in members if name not in expected]
    if extra:
        raise DecodeError(f"{where}: unexpected {', '.join(extra)}")
    return {
        name: _decode_member(f"{where}.{name}", members[name], kind)
        for name, kind in fields
    }


def decode_room_config(text: str) -> RoomConfig:
    """Parse a plaintext struct literal into a RoomConfig.

    Raises DecodeError on any malformed or inconsistent input.
    """
    values = _decode_struct(parse_plaintext(text), ROOM_CONFIG_FIELDS, "room_config")
    if values["num_joined_users"] != len(values["joined_users"]):
        raise DecodeError(
            f"num_joined_users={values['num_joined_users']} but "
            f"{len(values['joined_users'])} joined users"
        )
    return RoomConfig(**values)
