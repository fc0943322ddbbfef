"""Statistics over recent blocks: gas prices, throughput and overviews."""

from __future__ import annotations

import math
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from fractions import Fraction

from .address import ZERO_ADDRESS, to_checksum_address
from .errors import CommandError

OVERVIEW_HEADER = "Block\t Gas used/Gas limit\tBlock time\t\tGap\tCoinbase"
_TIME_FORMAT = "%y/%m/%d %H:%M:%S"


@dataclass(frozen=True)
class Block:
    """The parts of a block that the statistics look at.

    ``gas_prices`` holds the gas price of each transaction in the block.
    """

    number: int
    timestamp: int
    gas_used: int = 0
    gas_limit: int = 0
    coinbase: bytes = ZERO_ADDRESS
    gas_prices: tuple[int, ...] = ()
    hash: bytes = bytes(32)
    transaction_hashes: tuple[bytes, ...] = ()

    @property
    def transaction_count(self) -> int:
        """The number of transactions in the block."""
        if self.transaction_hashes:
            return len(self.transaction_hashes)
        return len(self.gas_prices)


def _valid_prices(gas_prices: Sequence[int]) -> list[int]:
    """Non-zero gas prices, highest first."""
    return sorted((price for price in gas_prices if price != 0), reverse=True)


def _ninth_decile(gas_prices: Sequence[int]) -> list[int]:
    valid = _valid_prices(gas_prices)
    count = len(valid)
    return valid[(count * 8) // 10 : (count * 9) // 10 + 1]


def block_gas_price(gas_prices: Sequence[int]) -> int | None:
    """Expected inclusion price for one block.

    This is the average price of the ninth decile of the block's non-zero
    prices, ordered highest first; None if the block has no such prices.
    """
    decile = _ninth_decile(gas_prices)
    if not decile:
        return None
    return sum(decile) // len(decile)


def lowest_gas_price(gas_prices: Sequence[int]) -> int | None:
    """Lowest non-zero gas price in a block, or None if there is none."""
    valid = _valid_prices(gas_prices)
    return valid[-1] if valid else None


def estimate_gas_price(blocks: Sequence[Block], lowest: bool = False) -> int:
    """Estimate a gas price for inclusion from recent blocks.

    With ``lowest`` this is the lowest non-zero price seen in any block (0 if
    none was seen).  Otherwise it is the average over the ninth-decile
    transactions of every block.
    """
    if lowest:
        found = [
            price
            for price in (lowest_gas_price(block.gas_prices) for block in blocks)
            if price is not None
        ]
        return min(found) if found else 0

    total = 0
    count = 0
    for block in blocks:
        decile = _ninth_decile(block.gas_prices)
        total += sum(decile)
        count += len(decile)
    if count == 0:
        raise CommandError("No transactions with a gas price in the blocks")
    return total // count


def _intervals(blocks: Sequence[Block], amount_of) -> Iterator[tuple[int, int, int]]:
    """Yield (block number, amount, seconds) for each block after its parent."""
    ordered = list(blocks)
    for newer, older in zip(ordered, ordered[1:]):
        yield newer.number, amount_of(newer), newer.timestamp - older.timestamp


def _rate(amount: int, duration: int) -> float:
    if duration == 0:
        if amount == 0:
            return math.nan
        return math.inf if amount > 0 else -math.inf
    return amount / duration


def gas_per_second(blocks: Sequence[Block], now: datetime | None = None) -> float:
    """Gas used per second over blocks given newest first.

    Only whole intervals between consecutive blocks count, so the oldest
    block supplies a start time but not its gas.  ``now`` marks when
    sampling began and does not change the result.
    """
    gas = 0
    duration = 0
    for _, used, seconds in _intervals(blocks, lambda block: block.gas_used):
        gas += used
        duration += seconds
    return _rate(gas, duration)


def transactions_per_second(blocks: Sequence[Block], now: datetime | None = None) -> float:
    """Transactions per second over blocks given newest first.

    Only whole intervals between consecutive blocks count, so the oldest
    block supplies a start time but not its transactions.  ``now`` marks
    when sampling began and does not change the result.
    """
    transactions = 0
    duration = 0
    for _, count, seconds in _intervals(blocks, lambda block: block.transaction_count):
        transactions += count
        duration += seconds
    return _rate(transactions, duration)


def gas_used_percentage(gas_used: int, gas_limit: int) -> str:
    """Gas used as a percentage of the limit, with two decimal places."""
    if gas_limit == 0:
        if gas_used == 0:
            raise ValueError("gas used and gas limit are both zero")
        return "+Inf" if gas_used > 0 else "-Inf"
    hundredths = round(Fraction(100 * gas_used * 100, gas_limit))
    sign = "-" if hundredths < 0 else ""
    hundredths = abs(hundredths)
    return f"{sign}{hundredths // 100}.{hundredths % 100:02d}"


def _format_duration(seconds: int) -> str:
    if seconds == 0:
        return "0s"
    sign = "-" if seconds < 0 else ""
    seconds = abs(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def overview_lines(blocks: Sequence[Block]) -> list[str]:
    """One tab-separated line per block, newest first, with the gap to the previous line."""
    lines = []
    last_time: int | None = None
    for block in blocks:
        block_time = datetime.fromtimestamp(block.timestamp).strftime(_TIME_FORMAT)
        gap = "" if last_time is None else _format_duration(last_time - block.timestamp)
        lines.append(
            f"{block.number}\t{block.gas_used:9d}/{block.gas_limit:9d}\t"
            f"{block_time}\t{gap}\t{to_checksum_address(block.coinbase)}"
        )
        last_time = block.timestamp
    return lines