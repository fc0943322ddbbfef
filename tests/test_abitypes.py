import json

import pytest

from ethereal.abitypes import (
    AbiKind,
    AbiType,
    ContractAbi,
    load_abi,
    parse_invocation,
    parse_type,
    string_to_value,
    value_to_string,
)
from ethereal.errors import CommandError

CHECKSUMMED = "0x5FfC014343cd971B7eb70732021E26C35B744cc4"

ERC20_ABI = [
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "to", "type": "address"},
            {"name": "value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "type": "function",
    },
    {
        "inputs": [{"name": "supply", "type": "uint256"}],
        "type": "constructor",
    },
    {"anonymous": False, "inputs": [], "name": "Evt", "type": "event"},
]


@pytest.mark.parametrize("text", ["uint256", "int8", "bool", "string", "address", "bytes", "bytes32", "uint256[]", "address[3]"])
def test_parse_type_round_trips_canonical_names(text):
    assert str(parse_type(text)) == text


def test_parse_type_defaults_integer_size():
    assert parse_type("uint") == parse_type("uint256")
    assert parse_type("int") == parse_type("int256")


def test_parse_type_nested_arrays():
    parsed = parse_type("uint8[2][]")
    assert parsed.kind is AbiKind.SLICE
    assert parsed.elem.kind is AbiKind.ARRAY
    assert parsed.elem.length == 2
    assert parsed.elem.elem == parse_type("uint8")


@pytest.mark.parametrize("text", ["uint7", "uint264", "bytes33", "bytes0", "foo", "bool8", "uint[x]"])
def test_parse_type_rejects_invalid(text):
    with pytest.raises(ValueError):
        parse_type(text)


def test_is_dynamic():
    assert parse_type("string").is_dynamic
    assert parse_type("uint256[]").is_dynamic
    assert parse_type("bytes[2]").is_dynamic
    assert not parse_type("uint256[2]").is_dynamic
    assert not parse_type("bytes32").is_dynamic


def test_string_to_value_integers():
    uint256 = parse_type("uint256")
    assert string_to_value(uint256, " 12345 ") == 12345
    big = str(2**200)
    assert string_to_value(uint256, big) == 2**200
    assert string_to_value(parse_type("int256"), "-7") == -7


@pytest.mark.parametrize("text", ["uint8", "uint16", "uint32", "uint64"])
def test_string_to_value_small_uint_stays_in_range(text):
    abi_type = parse_type(text)
    value = string_to_value(abi_type, str(2**abi_type.size + 3))
    assert 0 <= value < 2**abi_type.size
    assert string_to_value(abi_type, "3") == 3


@pytest.mark.parametrize("text", ["int8", "int16", "int32", "int64"])
def test_string_to_value_small_int_stays_in_range(text):
    abi_type = parse_type(text)
    value = string_to_value(abi_type, str(2**abi_type.size))
    half = 2 ** (abi_type.size - 1)
    assert -half <= value < half
    assert string_to_value(abi_type, "-3") == -3


@pytest.mark.parametrize("text", ["", "abc", "1.5", "0x10"])
def test_string_to_value_bad_integer(text):
    with pytest.raises(ValueError, match="Bad integer"):
        string_to_value(parse_type("uint256"), text)


@pytest.mark.parametrize("text,expected", [("true", True), ("True", True), ("1", True), ("false", False), ("yes", False)])
def test_string_to_value_bool(text, expected):
    assert string_to_value(parse_type("bool"), text) is expected


def test_string_to_value_string_strips_spaces():
    assert string_to_value(parse_type("string"), "  hello world ") == "hello world"


def test_address_round_trip():
    address_type = parse_type("address")
    value = string_to_value(address_type, CHECKSUMMED.lower())
    assert len(value) == 20
    assert value_to_string(address_type, value) == CHECKSUMMED


def test_fixed_bytes_right_aligned():
    value = string_to_value(parse_type("bytes4"), "0x0102")
    assert len(value) == 4
    assert value.endswith(b"\x01\x02")
    assert value[:2] == bytes(2)


def test_fixed_bytes_invalid_hex_is_zero():
    assert string_to_value(parse_type("bytes8"), "zz") == bytes(8)


def test_fixed_bytes_too_long():
    with pytest.raises(ValueError):
        string_to_value(parse_type("bytes2"), "0x010203")


def test_bytes_round_trip():
    bytes_type = parse_type("bytes")
    value = string_to_value(bytes_type, "0xdeadbeef")
    assert value == bytes.fromhex("deadbeef")
    assert value_to_string(bytes_type, value) == "0xdeadbeef"


def test_bytes_odd_length_rejected():
    with pytest.raises(ValueError):
        string_to_value(parse_type("bytes"), "0xabc")


def test_hash_left_padded():
    value = string_to_value(parse_type("hash"), "0x01")
    assert len(value) == 32
    assert value[-1] == 1
    assert value[:31] == bytes(31)


@pytest.mark.parametrize("text", ["uint256[]", "uint256[2]", "function", "fixed128x18"])
def test_string_to_value_unhandled(text):
    with pytest.raises(ValueError, match="Unhandled type"):
        string_to_value(parse_type(text), "1")


def test_value_to_string_scalars():
    assert value_to_string(parse_type("uint256"), 42) == "42"
    assert value_to_string(parse_type("bool"), True) == "true"
    assert value_to_string(parse_type("bool"), False) == "false"
    assert value_to_string(parse_type("string"), "text") == "text"


def test_value_to_string_arrays():
    assert value_to_string(parse_type("uint8[]"), [1, 2, 3]) == "[1,2,3]"
    assert value_to_string(parse_type("bool[2]"), [True, False]) == "[true,false]"
    assert value_to_string(parse_type("uint8[]"), []) == "[]"


def test_value_to_string_fixed_bytes_from_ints():
    assert value_to_string(parse_type("bytes2"), [0xAB, 0x01]) == "0xab01"


def test_value_to_string_unhandled():
    with pytest.raises(ValueError, match="Unhandled type"):
        value_to_string(parse_type("function"), b"")


def test_parse_invocation_no_arguments():
    assert parse_invocation("totalSupply()") == ("totalSupply", [])


def test_parse_invocation_with_arguments():
    name, args = parse_invocation(f"transfer({CHECKSUMMED}, 10)")
    assert name == "transfer"
    assert args == [CHECKSUMMED, " 10"]


def test_parse_invocation_quoted_argument():
    name, args = parse_invocation('setName("a,b",2)')
    assert name == "setName"
    assert args == ["a,b", "2"]


def test_parse_invocation_missing_open():
    with pytest.raises(CommandError, match="Missing open bracket in call totalSupply"):
        parse_invocation("totalSupply")


def test_parse_invocation_missing_close():
    with pytest.raises(CommandError, match=r"Missing close bracket in call totalSupply\("):
        parse_invocation("totalSupply(")


def test_load_abi_from_text():
    abi = load_abi(json.dumps(ERC20_ABI))
    assert set(abi.methods) == {"totalSupply", "transfer"}
    transfer = abi.method("transfer")
    assert transfer.inputs == (parse_type("address"), parse_type("uint256"))
    assert transfer.input_names == ("to", "value")
    assert transfer.outputs == (parse_type("bool"),)
    assert abi.method("totalSupply").constant is True
    assert abi.method("").inputs == (parse_type("uint256"),)


def test_load_abi_from_file(tmp_path):
    path = tmp_path / "erc20.abi"
    path.write_text(json.dumps(ERC20_ABI), encoding="utf-8")
    abi = load_abi(str(path))
    assert abi.method("totalSupply").outputs == (parse_type("uint256"),)


def test_load_abi_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_abi(str(tmp_path / "missing.abi"))


def test_method_signature_and_selector():
    abi = load_abi(json.dumps(ERC20_ABI))
    transfer = abi.method("transfer")
    assert transfer.signature == "transfer(address,uint256)"
    assert transfer.selector.hex() == "a9059cbb"


def test_unknown_method():
    abi = load_abi(json.dumps(ERC20_ABI))
    with pytest.raises(CommandError, match="Method approve is unknown"):
        abi.method("approve")


def test_missing_constructor_has_no_inputs():
    assert ContractAbi().method("").inputs == ()


def test_convert_arguments():
    abi = load_abi(json.dumps(ERC20_ABI))
    name, args = parse_invocation(f"transfer({CHECKSUMMED}, 10)")
    to, amount = abi.convert_arguments(name, args)
    assert value_to_string(parse_type("address"), to) == CHECKSUMMED
    assert amount == 10


def test_convert_arguments_count_mismatch():
    abi = load_abi(json.dumps(ERC20_ABI))
    with pytest.raises(CommandError, match=r"transfer expects 2 parameter\(s\), found 1"):
        abi.convert_arguments("transfer", ["10"])


def test_convert_arguments_bad_value():
    abi = load_abi(json.dumps(ERC20_ABI))
    with pytest.raises(CommandError, match="Failed to decode argument"):
        abi.convert_arguments("transfer", [CHECKSUMMED, "ten"])


def test_abitype_constructed_directly_matches_parsed():
    assert AbiType(AbiKind.UINT, size=256) == parse_type("uint256")