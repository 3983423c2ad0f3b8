"""roomchain CLI: room operations against a ledger node.

Usage:
    python -m roomchain.cli get-room --room-id 1
    python -m roomchain.cli create-room --seats 4 --bet 200
    python -m roomchain.cli join-room --room-id 1 --bet 200
    python -m roomchain.cli request-game --room-id 1 --dealer aleo1...
    python -m roomchain.cli balance --address aleo1...
    python -m roomchain.cli fund --recipient alice=aleo1... --amount 1000
    python -m roomchain.cli simulate --local

Write commands sign with MASTER_PRIVATE_KEY / MASTER_ADDRESS and need a
transaction builder, named as ``module:factory`` via TX_BUILDER or
--builder. The factory is called with the Settings and must return an
object with ``build_execution_transaction``.
"""

from __future__ import annotations

import argparse
import asyncio
import importlib
import json
import logging
import sys
from dataclasses import asdict
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Optional

from roomchain.config import Settings
from roomchain.constants import TRANSFER_TYPES, TRANSFER_PRIVATE
from roomchain.errors import RoomchainError
from roomchain.ledger.memory import InMemoryLedger
from roomchain.ledger.poller import ConfirmationPoller
from roomchain.ledger.rest import AleoRestClient
from roomchain.ledger.types import LedgerClient, TransactionBuilder
from roomchain.models.room import Identity
from roomchain.rooms.orchestrator import RoomOrchestrator
from roomchain.scenario import ScenarioParams, simulate_room_joining
from roomchain.wallet import fund_wallets, get_public_balance

logger = logging.getLogger("roomchain")


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _load_builder(path: str | None, settings: Settings) -> TransactionBuilder:
    """Import ``module:factory`` and call it with the settings."""
    if not path:
        raise ValueError("No transaction builder configured (set TX_BUILDER or --builder)")
    module_name, _, attr = path.partition(":")
    if not attr:
        raise ValueError(f"Builder must be given as module:factory, got {path!r}")
    try:
        factory = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as exc:
        raise ValueError(f"Cannot load builder {path!r}: {exc}") from exc
    builder = factory(settings)
    if not isinstance(builder, TransactionBuilder):
        raise ValueError(f"{path} did not return a transaction builder")
    return builder


def _signer(settings: Settings) -> Identity:
    if not settings.master_private_key or not settings.master_address:
        raise ValueError("MASTER_PRIVATE_KEY and MASTER_ADDRESS are required")
    return Identity(address=settings.master_address, private_key=settings.master_private_key)


def _make_orchestrator(
    settings: Settings,
    client: LedgerClient,
    builder: Optional[TransactionBuilder],
) -> RoomOrchestrator:
    return RoomOrchestrator(
        client,
        builder,
        ConfirmationPoller(client, settings.poll_policy()),
        program_id=settings.program_id,
        default_fee=settings.default_fee,
        private_fee=settings.private_fee,
        query_policy=settings.query_policy(),
        bet_rule=settings.bet_rule,
        check_preconditions=settings.check_preconditions,
    )


def _client(settings: Settings) -> AleoRestClient:
    return AleoRestClient(settings.network_url, settings.network)


def _builder(args: argparse.Namespace, settings: Settings) -> TransactionBuilder:
    return _load_builder(args.builder or settings.tx_builder, settings)


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------

async def _get_room(args: argparse.Namespace, settings: Settings) -> int:
    async with _client(settings) as client:
        orchestrator = _make_orchestrator(settings, client, None)
        room = await orchestrator.get_room(args.room_id)
    if room is None:
        print(f"Room {args.room_id} not found", file=sys.stderr)
        return 1
    _print_json(asdict(room))
    return 0


async def _create_room(args: argparse.Namespace, settings: Settings) -> int:
    builder = _builder(args, settings)
    async with _client(settings) as client:
        room = await _make_orchestrator(settings, client, builder).create_room(
            _signer(settings),
            args.big_blind if args.big_blind is not None else settings.default_big_blind,
            args.small_blind if args.small_blind is not None else settings.default_small_blind,
            args.min_stack if args.min_stack is not None else settings.default_min_stack,
            args.seats if args.seats is not None else settings.default_seats,
            args.bet if args.bet is not None else settings.default_player_bet,
        )
    _print_json(asdict(room))
    return 0


async def _join_room(args: argparse.Namespace, settings: Settings) -> int:
    builder = _builder(args, settings)
    async with _client(settings) as client:
        await _make_orchestrator(settings, client, builder).join_room(
            _signer(settings),
            args.room_id,
            args.bet if args.bet is not None else settings.default_player_bet,
        )
    print(f"Joined room {args.room_id}")
    return 0


async def _request_game(args: argparse.Namespace, settings: Settings) -> int:
    builder = _builder(args, settings)
    async with _client(settings) as client:
        orchestrator = _make_orchestrator(settings, client, builder)
        room = await orchestrator.get_room(args.room_id)
        if room is None:
            print(f"Room {args.room_id} not found", file=sys.stderr)
            return 1
        game = await orchestrator.request_game_creation(
            _signer(settings), args.room_id, room, args.dealer,
        )
    _print_json({
        "transaction_id": game.transaction.id,
        "room_config_request": asdict(game.room_config_request),
        "deck_request": asdict(game.deck_request),
    })
    return 0


async def _balance(args: argparse.Namespace, settings: Settings) -> int:
    async with _client(settings) as client:
        balance = await get_public_balance(client, args.address)
    _print_json({"address": args.address, "microcredits": balance})
    return 0


async def _fund(args: argparse.Namespace, settings: Settings) -> int:
    recipients: dict[str, str] = {}
    for entry in args.recipient:
        name, sep, address = entry.partition("=")
        if not sep or not name or not address:
            raise ValueError(f"Recipient must be name=address, got {entry!r}")
        recipients[name] = address
    builder = _builder(args, settings)
    amount = Decimal(args.amount) if args.amount else Decimal(settings.default_funding_amount)
    async with _client(settings) as client:
        sent = await fund_wallets(
            client,
            builder,
            _signer(settings),
            recipients,
            amount,
            transfer_type=args.transfer_type,
            fee=settings.default_fee,
            private_fee=settings.private_fee,
        )
    _print_json(sent)
    return 0


async def _simulate(args: argparse.Namespace, settings: Settings) -> int:
    seats = args.seats if args.seats is not None else settings.default_seats
    params = ScenarioParams(
        big_blind=settings.default_big_blind,
        small_blind=settings.default_small_blind,
        min_stack=settings.default_min_stack,
        seats=seats,
        player_bet=settings.default_player_bet,
    )
    if args.local:
        ledger = InMemoryLedger()
        orchestrator = _make_orchestrator(settings, ledger, ledger)
        host = ledger.new_identity()
        joiners = [ledger.new_identity() for _ in range(seats - 1)]
        dealer = ledger.new_identity().address
        result = await simulate_room_joining(orchestrator, host, joiners, dealer, params)
    else:
        if not args.dealer:
            raise ValueError("--dealer is required unless --local is given")
        joiners = []
        for entry in args.player:
            address, sep, key = entry.partition(":")
            if not sep:
                raise ValueError(f"Player must be address:private_key, got {entry!r}")
            joiners.append(Identity(address=address, private_key=key))
        builder = _builder(args, settings)
        async with _client(settings) as client:
            orchestrator = _make_orchestrator(settings, client, builder)
            result = await simulate_room_joining(
                orchestrator, _signer(settings), joiners, args.dealer, params,
            )
    _print_json({
        "room_id": result.room_id,
        "final_state": asdict(result.final_state),
        "transaction_id": result.game_creation.transaction.id,
    })
    return 0


_COMMANDS = {
    "get-room": _get_room,
    "create-room": _create_room,
    "join-room": _join_room,
    "request-game": _request_game,
    "balance": _balance,
    "fund": _fund,
    "simulate": _simulate,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="roomchain",
        description="Room lifecycle operations on a ledger",
    )
    parser.add_argument("--env-file", type=Path, help="Path to .env (default: ./.env)")
    parser.add_argument("--builder", help="Transaction builder factory as module:factory")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    sub = parser.add_subparsers(dest="command")

    p_get = sub.add_parser("get-room", help="Show a room")
    p_get.add_argument("--room-id", type=int, required=True)

    p_create = sub.add_parser("create-room", help="Create a room as the master account")
    p_create.add_argument("--big-blind", type=int)
    p_create.add_argument("--small-blind", type=int)
    p_create.add_argument("--min-stack", type=int)
    p_create.add_argument("--seats", type=int)
    p_create.add_argument("--bet", type=int, help="Host bet")

    p_join = sub.add_parser("join-room", help="Join a room as the master account")
    p_join.add_argument("--room-id", type=int, required=True)
    p_join.add_argument("--bet", type=int)

    p_req = sub.add_parser("request-game", help="Request game creation for a full room")
    p_req.add_argument("--room-id", type=int, required=True)
    p_req.add_argument("--dealer", required=True, help="Dealer address")

    p_bal = sub.add_parser("balance", help="Show a public credits balance")
    p_bal.add_argument("--address", required=True)

    p_fund = sub.add_parser("fund", help="Fund wallets from the master account")
    p_fund.add_argument(
        "--recipient", action="append", required=True, help="name=address (repeatable)",
    )
    p_fund.add_argument("--amount", help="Credits per wallet (default: DEFAULT_FUNDING_AMOUNT)")
    p_fund.add_argument(
        "--transfer-type", default=TRANSFER_PRIVATE, choices=list(TRANSFER_TYPES),
    )

    p_sim = sub.add_parser("simulate", help="Create, fill and start a room end to end")
    p_sim.add_argument("--local", action="store_true", help="Use an in-memory ledger")
    p_sim.add_argument("--seats", type=int)
    p_sim.add_argument(
        "--player", action="append", default=[], help="address:private_key (repeatable)",
    )
    p_sim.add_argument("--dealer", help="Dealer address")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    handler = _COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}", file=sys.stderr)
        return 1

    try:
        settings = Settings.from_env(args.env_file)
        return asyncio.run(handler(args, settings))
    except (RoomchainError, ValueError, InvalidOperation) as exc:
        logger.debug("Command failed", exc_info=True)
        print(f"Failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
