import re

import pytest

from ethereal.errors import CommandError
from ethereal.stats import (
    OVERVIEW_HEADER,
    Block,
    block_gas_price,
    estimate_gas_price,
    gas_per_second,
    gas_used_percentage,
    lowest_gas_price,
    overview_lines,
    transactions_per_second,
)


def _chain(count, spacing, gas_used=0, prices=()):
    """Blocks newest first, evenly spaced in time."""
    start = 1_600_000_000
    return [
        Block(
            number=1000 - i,
            timestamp=start - i * spacing,
            gas_used=gas_used,
            gas_limit=8_000_000,
            gas_prices=tuple(prices),
        )
        for i in range(count)
    ]


def test_block_gas_price_single_transaction():
    assert block_gas_price([10]) == 10


def test_block_gas_price_ignores_zero_prices():
    assert block_gas_price([0, 0, 0]) is None
    assert block_gas_price([0, 6, 0]) == 6


def test_block_gas_price_uniform_prices():
    assert block_gas_price([7] * 20) == 7


def test_block_gas_price_within_range():
    prices = [5, 100, 20, 1, 0, 60, 45, 2, 8, 33, 71]
    result = block_gas_price(prices)
    nonzero = [p for p in prices if p]
    assert min(nonzero) <= result <= max(nonzero)


def test_block_gas_price_is_order_independent():
    prices = [5, 100, 20, 1, 60, 45, 2, 8, 33, 71]
    assert block_gas_price(prices) == block_gas_price(list(reversed(prices)))


def test_lowest_gas_price():
    assert lowest_gas_price([0, 5, 3]) == 3
    assert lowest_gas_price([]) is None
    assert lowest_gas_price([0]) is None


def test_estimate_lowest_across_blocks():
    blocks = [
        Block(number=2, timestamp=20, gas_prices=(5, 9)),
        Block(number=1, timestamp=10, gas_prices=(3, 0)),
    ]
    assert estimate_gas_price(blocks, lowest=True) == 3


def test_estimate_lowest_without_transactions_is_zero():
    blocks = [Block(number=1, timestamp=10)]
    assert estimate_gas_price(blocks, lowest=True) == 0


def test_estimate_average_uniform():
    blocks = _chain(4, 15, prices=[4, 4, 4])
    assert estimate_gas_price(blocks) == 4


def test_estimate_average_across_blocks():
    blocks = [
        Block(number=2, timestamp=20, gas_prices=(2,)),
        Block(number=1, timestamp=10, gas_prices=(4,)),
    ]
    assert estimate_gas_price(blocks) == 3


def test_estimate_average_without_transactions_fails():
    with pytest.raises(CommandError):
        estimate_gas_price(_chain(3, 15))


def test_gas_per_second_uniform():
    blocks = _chain(6, 15, gas_used=30)
    assert gas_per_second(blocks) * 15 == pytest.approx(30)


def test_gas_per_second_ignores_oldest_block_gas():
    blocks = _chain(4, 12, gas_used=600)
    changed = blocks[:-1] + [
        Block(number=blocks[-1].number, timestamp=blocks[-1].timestamp, gas_used=999_999)
    ]
    assert gas_per_second(changed) == gas_per_second(blocks)


def test_gas_per_second_scales_with_gas():
    assert gas_per_second(_chain(5, 10, gas_used=200)) == pytest.approx(
        2 * gas_per_second(_chain(5, 10, gas_used=100))
    )


def test_gas_per_second_single_block_is_nan():
    result = gas_per_second(_chain(1, 15, gas_used=100))
    assert str(result) == "nan"


def test_transactions_per_second_uniform():
    blocks = _chain(6, 20, prices=[1, 2, 3, 4])
    assert transactions_per_second(blocks) * 20 == pytest.approx(4)


def test_transactions_per_second_no_transactions():
    assert transactions_per_second(_chain(5, 10)) == 0


def test_block_transaction_count_prefers_hashes():
    block = Block(number=1, timestamp=1, gas_prices=(1,), transaction_hashes=(b"a", b"b"))
    assert block.transaction_count == 2


def test_gas_used_percentage_half():
    assert gas_used_percentage(1, 2) == "50.00"


def test_gas_used_percentage_format_and_value():
    result = gas_used_percentage(1234567, 8000000)
    assert re.fullmatch(r"\d+\.\d{2}", result)
    assert float(result) * 8000000 / 100 == pytest.approx(1234567, rel=1e-4)


def test_gas_used_percentage_zero_limit():
    assert gas_used_percentage(5, 0) == "+Inf"
    with pytest.raises(ValueError):
        gas_used_percentage(0, 0)


def test_overview_lines_structure():
    blocks = _chain(3, 15, gas_used=21000)
    lines = overview_lines(blocks)
    assert len(lines) == len(blocks)
    for line, block in zip(lines, blocks):
        fields = line.split("\t")
        assert fields[0] == str(block.number)
        assert fields[1].replace(" ", "") == f"{block.gas_used}/{block.gas_limit}"
        assert re.fullmatch(r"\d{2}/\d{2}/\d{2} \d{2}:\d{2}:\d{2}", fields[2])
        assert fields[4] == "0x" + "0" * 40


def test_overview_lines_gaps():
    lines = overview_lines(_chain(3, 15))
    assert lines[0].split("\t")[3] == ""
    assert lines[1].split("\t")[3] == "15s"
    assert lines[2].split("\t")[3] == lines[1].split("\t")[3]


def test_overview_header_columns_match_lines():
    lines = overview_lines(_chain(2, 15))
    assert len(OVERVIEW_HEADER.split("\t")) == len(lines[0].split("\t")) + 1
    assert overview_lines([]) == []