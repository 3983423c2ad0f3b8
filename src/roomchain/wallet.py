"""Wallet bootstrap: public balance lookup and sequential funding transfers.

Funding sits outside the room operations' failure contract. Transfers are
sent one at a time with a pause between them, are not retried, and are not
polled for confirmation. The first failure stops the run.
"""

from __future__ import annotations

import asyncio
import logging
from decimal import Decimal
from typing import Mapping

from roomchain.codec.plaintext import parse_integer, u64
from roomchain.constants import (
    ACCOUNT_MAPPING,
    CREDITS_PROGRAM,
    MICROCREDITS_PER_CREDIT,
    TRANSFER_PRIVATE,
    TRANSFER_TYPES,
)
from roomchain.ledger.types import ExecutionRequest, LedgerClient, TransactionBuilder
from roomchain.models.room import Identity
from roomchain.retry import Sleep

logger = logging.getLogger(__name__)


def credits_to_microcredits(amount: Decimal) -> int:
    """Convert whole credits to microcredits. Rejects sub-microcredit amounts."""
    micro = Decimal(amount) * MICROCREDITS_PER_CREDIT
    if micro != micro.to_integral_value() or micro < 0:
        raise ValueError(f"Cannot express {amount} credits in microcredits")
    return int(micro)


async def get_public_balance(client: LedgerClient, address: str) -> int:
    """Public balance of ``address`` in microcredits. 0 if it has none."""
    value = await client.get_program_mapping_value(CREDITS_PROGRAM, ACCOUNT_MAPPING, address)
    if value is None:
        return 0
    return parse_integer(value, "u64")


async def fund_wallets(
    client: LedgerClient,
    builder: TransactionBuilder,
    funder: Identity,
    recipients: Mapping[str, str],
    amount: Decimal,
    transfer_type: str = TRANSFER_PRIVATE,
    fee: Decimal = Decimal("0.02"),
    private_fee: bool = False,
    pause: float = 2.0,
    sleep: Sleep = asyncio.sleep,
) -> dict[str, str]:
    """Send ``amount`` credits from ``funder`` to each named recipient.

    Returns {name: transaction_id} in the order transfers were sent.
    """
    if transfer_type not in TRANSFER_TYPES:
        raise ValueError(f"Unknown transfer type: {transfer_type}")
    microcredits = u64(credits_to_microcredits(amount))

    balance = await get_public_balance(client, funder.address)
    logger.info(f"Funder {funder.address} public balance: {balance} microcredits")

    sent: dict[str, str] = {}
    for index, (name, address) in enumerate(recipients.items()):
        if index:
            await sleep(pause)
        try:
            request = ExecutionRequest(
                program_id=CREDITS_PROGRAM,
                function_name=transfer_type,
                inputs=(address, microcredits),
                fee=fee,
                private_fee=private_fee,
                private_key=funder.private_key,
            )
            transaction = await builder.build_execution_transaction(request)
            tx_id = await client.submit_transaction(transaction)
        except Exception as exc:
            logger.error(f"Failed to fund {name} wallet: {exc}")
            raise
        logger.info(f"Funded {name} wallet with {amount} credits. Transaction ID: {tx_id}")
        sent[name] = tx_id
    return sent
