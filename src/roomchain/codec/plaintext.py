"""Ledger plaintext values: parsing and formatting.

Program inputs and mapping values travel as plaintext literals:

    100u64                      integer with a width/sign suffix
    aleo1qy...                  address
    true                        boolean
    { big_blind: 100u64, ... }  struct (ordered members)
    [ 1u8, 2u8 ]                array

Record outputs may carry a visibility suffix (``100u64.private``); it is
stripped on parse. Integers are kept as Python ints with their declared
type so 64- and 128-bit values survive untouched.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from roomchain.errors import DecodeError


INTEGER_TYPES: dict[str, tuple[int, int]] = {
    "u8": (0, 2**8 - 1),
    "u16": (0, 2**16 - 1),
    "u32": (0, 2**32 - 1),
    "u64": (0, 2**64 - 1),
    "u128": (0, 2**128 - 1),
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
    "i128": (-(2**127), 2**127 - 1),
}

_VISIBILITY = (".public", ".private", ".constant")

_TOKEN = re.compile(r"\s*(?:([{}\[\]:,])|([A-Za-z0-9_.\-]+))")
_INTEGER = re.compile(r"^(-?\d+)(u8|u16|u32|u64|u128|i8|i16|i32|i64|i128)$")
_ADDRESS = re.compile(r"^aleo1[a-z0-9]+$")
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass(frozen=True)
class IntegerLiteral:
    """An integer together with its declared type."""
    value: int
    type: str

    def __str__(self) -> str:
        return f"{self.value}{self.type}"


Plaintext = Union[IntegerLiteral, bool, str, dict, list]


def _check_range(value: int, type_: str) -> None:
    low, high = INTEGER_TYPES[type_]
    if not low <= value <= high:
        raise ValueError(f"{value} out of range for {type_}")


def integer(value: int, type_: str) -> str:
    """Render ``value`` as a typed integer input, e.g. ``42u32``."""
    if type_ not in INTEGER_TYPES:
        raise ValueError(f"Unknown integer type: {type_}")
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Expected int for {type_}, got {type(value).__name__}")
    _check_range(value, type_)
    return f"{value}{type_}"


def u8(value: int) -> str:
    return integer(value, "u8")


def u32(value: int) -> str:
    return integer(value, "u32")


def u64(value: int) -> str:
    return integer(value, "u64")


def parse_integer(text: str, type_: str) -> int:
    """Parse ``100u64`` (or ``100u64.public``) expecting type ``type_``."""
    literal = _parse_literal(text.strip())
    if not isinstance(literal, IntegerLiteral) or literal.type != type_:
        raise DecodeError(f"Expected {type_} literal, got {text!r}")
    return literal.value


def is_address(value: Any) -> bool:
    return isinstance(value, str) and bool(_ADDRESS.match(value))


# ------------------------------------------------------------------
# Parsing
# ------------------------------------------------------------------

def _tokenize(text: str) -> list[str]:
    tokens: list[str] = []
    pos = 0
    stripped = text.rstrip()
    while pos < len(stripped):
        match = _TOKEN.match(stripped, pos)
        if match is None:
            raise DecodeError(f"Unexpected character at offset {pos}: {stripped[pos]!r}")
        tokens.append(match.group(1) or match.group(2))
        pos = match.end()
    return tokens


def _parse_literal(token: str) -> Plaintext:
    for suffix in _VISIBILITY:
        if token.endswith(suffix):
            token = token[: -len(suffix)]
            break
    match = _INTEGER.match(token)
    if match:
        value, type_ = int(match.group(1)), match.group(2)
        try:
            _check_range(value, type_)
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc
        return IntegerLiteral(value, type_)
    if token == "true":
        return True
    if token == "false":
        return False
    if not token or token[0] in ".-":
        raise DecodeError(f"Invalid literal: {token!r}")
    if token[0].isdigit() and not token.endswith(("field", "group", "scalar")):
        raise DecodeError(f"Invalid literal: {token!r}")
    # Addresses, fields, groups and scalars stay as their text form.
    return token


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self._tokens = tokens
        self._pos = 0

    def _peek(self) -> str | None:
        if self._pos < len(self._tokens):
            return self._tokens[self._pos]
        return None

    def _next(self) -> str:
        token = self._peek()
        if token is None:
            raise DecodeError("Unexpected end of input")
        self._pos += 1
        return token

    def _expect(self, token: str) -> None:
        got = self._next()
        if got != token:
            raise DecodeError(f"Expected {token!r}, got {got!r}")

    def parse(self) -> Plaintext:
        value = self._value()
        if self._peek() is not None:
            raise DecodeError(f"Trailing input: {self._peek()!r}")
        return value

    def _value(self) -> Plaintext:
        token = self._next()
        if token == "{":
            return self._struct()
        if token == "[":
            return self._array()
        if token in ("}", "]", ":", ","):
            raise DecodeError(f"Unexpected {token!r}")
        return _parse_literal(token)

    def _struct(self) -> dict:
        members: dict[str, Plaintext] = {}
        if self._peek() == "}":
            self._next()
            return members
        while True:
            name = self._next()
            if not _IDENTIFIER.match(name):
                raise DecodeError(f"Invalid member name: {name!r}")
            if name in members:
                raise DecodeError(f"Duplicate member: {name}")
            self._expect(":")
            members[name] = self._value()
            token = self._next()
            if token == "}":
                return members
            if token != ",":
                raise DecodeError(f"Expected ',' or '}}', got {token!r}")

    def _array(self) -> list:
        items: list[Plaintext] = []
        if self._peek() == "]":
            self._next()
            return items
        while True:
            items.append(self._value())
            token = self._next()
            if token == "]":
                return items
            if token != ",":
                raise DecodeError(f"Expected ',' or ']', got {token!r}")


def parse_plaintext(text: str) -> Plaintext:
    """Parse a plaintext value into ints, strings, bools, dicts and lists."""
    if not isinstance(text, str) or not text.strip():
        raise DecodeError("Empty plaintext value")
    return _Parser(_tokenize(text)).parse()


# ------------------------------------------------------------------
# Formatting
# ------------------------------------------------------------------

def format_plaintext(value: Plaintext) -> str:
    """Render a parsed value back into plaintext syntax."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, IntegerLiteral):
        _check_range(value.value, value.type)
        return str(value)
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        if not value:
            return "{}"
        members = ", ".join(f"{k}: {format_plaintext(v)}" for k, v in value.items())
        return "{ " + members + " }"
    if isinstance(value, list):
        if not value:
            return "[]"
        return "[ " + ", ".join(format_plaintext(v) for v in value) + " ]"
    raise ValueError(f"Cannot format {type(value).__name__} as plaintext")
