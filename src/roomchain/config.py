"""Runtime configuration loaded from the environment and an optional .env file.

Every value has a default except the signing key and its address, which
write commands need and read commands do not. The private key never
appears in repr() or in logs.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Callable, Optional, TypeVar

from dotenv import load_dotenv

from roomchain.constants import ROOM_MANAGER_PROGRAM
from roomchain.retry import RetryPolicy
from roomchain.rooms.state_machine import BetRule

T = TypeVar("T")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _read(name: str, default: T, parse: Callable[[str], T]) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return parse(raw.strip())
    except (ValueError, InvalidOperation) as exc:
        raise ValueError(f"Invalid value for {name}: {raw!r}") from exc


def _parse_bool(raw: str) -> bool:
    lowered = raw.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(raw)


def _parse_decimal(raw: str) -> Decimal:
    value = Decimal(raw)
    if not value.is_finite() or value < 0:
        raise ValueError(raw)
    return value


@dataclass(frozen=True)
class Settings:
    """Network endpoint, signing key, fees, game defaults and retry tuning."""

    network_url: str = "http://localhost:3030"
    network: str = "testnet"
    master_private_key: Optional[str] = field(default=None, repr=False)
    master_address: Optional[str] = None
    program_id: str = ROOM_MANAGER_PROGRAM

    default_fee: Decimal = Decimal("0.02")
    private_fee: bool = False

    default_big_blind: int = 100
    default_small_blind: int = 50
    default_min_stack: int = 1000
    default_seats: int = 4
    default_player_bet: int = 200
    default_funding_amount: int = 1000

    bet_rule: BetRule = BetRule.ANY
    check_preconditions: bool = False

    poll_max_attempts: int = 5
    poll_initial_delay: float = 1.0
    poll_max_delay: float = 30.0
    poll_backoff_factor: float = 2.0
    query_max_attempts: int = 5
    query_initial_delay: float = 1.0
    query_max_delay: float = 30.0
    query_backoff_factor: float = 2.0

    tx_builder: Optional[str] = None

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> Settings:
        """Load settings from ``env_file`` (default ./.env) and os.environ.

        Variables already set in the environment win over the file.
        """
        load_dotenv(env_file or Path.cwd() / ".env")
        d = cls()
        return cls(
            network_url=_read("ALEO_NETWORK_URL", d.network_url, str),
            network=_read("ALEO_NETWORK", d.network, str),
            master_private_key=_read("MASTER_PRIVATE_KEY", None, str),
            master_address=_read("MASTER_ADDRESS", None, str),
            program_id=_read("ROOM_MANAGER_PROGRAM", d.program_id, str),
            default_fee=_read("DEFAULT_FEE", d.default_fee, _parse_decimal),
            private_fee=_read("PRIVATE_FEE", d.private_fee, _parse_bool),
            default_big_blind=_read("DEFAULT_BIG_BLIND", d.default_big_blind, int),
            default_small_blind=_read("DEFAULT_SMALL_BLIND", d.default_small_blind, int),
            default_min_stack=_read("DEFAULT_MIN_STACK", d.default_min_stack, int),
            default_seats=_read("DEFAULT_SEATS", d.default_seats, int),
            default_player_bet=_read("DEFAULT_PLAYER_BET", d.default_player_bet, int),
            default_funding_amount=_read(
                "DEFAULT_FUNDING_AMOUNT", d.default_funding_amount, int,
            ),
            bet_rule=_read("BET_RULE", d.bet_rule, BetRule),
            check_preconditions=_read(
                "CHECK_PRECONDITIONS", d.check_preconditions, _parse_bool,
            ),
            poll_max_attempts=_read("POLL_MAX_ATTEMPTS", d.poll_max_attempts, int),
            poll_initial_delay=_read("POLL_INITIAL_DELAY", d.poll_initial_delay, float),
            poll_max_delay=_read("POLL_MAX_DELAY", d.poll_max_delay, float),
            poll_backoff_factor=_read("POLL_BACKOFF_FACTOR", d.poll_backoff_factor, float),
            query_max_attempts=_read("QUERY_MAX_ATTEMPTS", d.query_max_attempts, int),
            query_initial_delay=_read("QUERY_INITIAL_DELAY", d.query_initial_delay, float),
            query_max_delay=_read("QUERY_MAX_DELAY", d.query_max_delay, float),
            query_backoff_factor=_read("QUERY_BACKOFF_FACTOR", d.query_backoff_factor, float),
            tx_builder=_read("TX_BUILDER", None, str),
        )

    def poll_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.poll_max_attempts,
            initial_delay=self.poll_initial_delay,
            max_delay=self.poll_max_delay,
            backoff_factor=self.poll_backoff_factor,
        )

    def query_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.query_max_attempts,
            initial_delay=self.query_initial_delay,
            max_delay=self.query_max_delay,
            backoff_factor=self.query_backoff_factor,
        )
