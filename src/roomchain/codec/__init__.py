"""Wire codecs: plaintext literals and the room config struct."""

from roomchain.codec.plaintext import format_plaintext, parse_plaintext
from roomchain.codec.room import decode_room_config, encode_room_config

__all__ = [
    "decode_room_config",
    "encode_room_config",
    "format_plaintext",
    "parse_plaintext",
]
