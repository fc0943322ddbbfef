"""Contract ABI types, method descriptions and string conversions."""

from __future__ import annotations

import csv
import io
import json
import re
import string
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from .address import hex_to_address, keccak256, to_checksum_address
from .errors import CommandError, ensure

_TYPE_PATTERN = re.compile(r"^([a-z]+)(?:(\d+)(?:x(\d+))?)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")
_SMALL_INT_SIZES = (8, 16, 32, 64)


class AbiKind(Enum):
    """The families of ABI types."""

    INT = "int"
    UINT = "uint"
    BOOL = "bool"
    STRING = "string"
    SLICE = "slice"
    ARRAY = "array"
    ADDRESS = "address"
    FIXED_BYTES = "fixed bytes"
    BYTES = "bytes"
    HASH = "hash"
    FIXED_POINT = "fixed point"
    FUNCTION = "function"


@dataclass(frozen=True)
class AbiType:
    """A single ABI type such as ``uint256``, ``bytes32`` or ``address[]``."""

    kind: AbiKind
    size: int = 0
    elem: AbiType | None = None
    length: int = 0
    decimals: int = 0
    signed: bool = True

    def __str__(self) -> str:
        kind = self.kind
        if kind is AbiKind.INT:
            return f"int{self.size}"
        if kind is AbiKind.UINT:
            return f"uint{self.size}"
        if kind is AbiKind.FIXED_BYTES:
            return f"bytes{self.size}"
        if kind is AbiKind.SLICE:
            return f"{self.elem}[]"
        if kind is AbiKind.ARRAY:
            return f"{self.elem}[{self.length}]"
        if kind is AbiKind.FIXED_POINT:
            prefix = "fixed" if self.signed else "ufixed"
            return f"{prefix}{self.size}x{self.decimals}"
        return {
            AbiKind.BOOL: "bool",
            AbiKind.STRING: "string",
            AbiKind.ADDRESS: "address",
            AbiKind.BYTES: "bytes",
            AbiKind.HASH: "hash",
            AbiKind.FUNCTION: "function",
        }[kind]

    @property
    def is_dynamic(self) -> bool:
        """Whether values of this type are encoded out of line."""
        if self.kind in (AbiKind.STRING, AbiKind.BYTES, AbiKind.SLICE):
            return True
        if self.kind is AbiKind.ARRAY and self.elem is not None:
            return self.elem.is_dynamic
        return False


def parse_type(text: str) -> AbiType:
    """Parse a Solidity type name into an AbiType; raise ValueError if unknown."""
    text = text.strip()
    if text.endswith("]"):
        open_pos = text.rfind("[")
        if open_pos <= 0:
            raise ValueError(f"invalid arg type in abi: {text}")
        inner = text[open_pos + 1 : -1]
        elem = parse_type(text[:open_pos])
        if inner == "":
            return AbiType(AbiKind.SLICE, elem=elem)
        if inner.isdigit() and inner.isascii():
            return AbiType(AbiKind.ARRAY, elem=elem, length=int(inner))
        raise ValueError(f"invalid arg type in abi: {text}")

    match = _TYPE_PATTERN.match(text)
    if match is None:
        raise ValueError(f"invalid type {text!r}")
    base, size_text, decimals_text = match.groups()
    size = int(size_text) if size_text else None
    if decimals_text is not None and base not in ("fixed", "ufixed"):
        raise ValueError(f"invalid type {text!r}")

    if base in ("int", "uint"):
        bits = 256 if size is None else size
        if bits < 8 or bits > 256 or bits % 8:
            raise ValueError(f"invalid integer size in {text!r}")
        return AbiType(AbiKind.INT if base == "int" else AbiKind.UINT, size=bits)
    if base == "bytes":
        if size is None:
            return AbiType(AbiKind.BYTES)
        if not 1 <= size <= 32:
            raise ValueError(f"invalid byte size in {text!r}")
        return AbiType(AbiKind.FIXED_BYTES, size=size)
    if base in ("fixed", "ufixed"):
        bits = 128 if size is None else size
        decimals = 18 if decimals_text is None else int(decimals_text)
        if size is not None and decimals_text is None:
            raise ValueError(f"invalid fixed point type {text!r}")
        return AbiType(
            AbiKind.FIXED_POINT, size=bits, decimals=decimals, signed=base == "fixed"
        )
    if size is not None:
        raise ValueError(f"invalid type {text!r}")
    simple = {
        "bool": AbiType(AbiKind.BOOL),
        "string": AbiType(AbiKind.STRING),
        "address": AbiType(AbiKind.ADDRESS, size=20),
        "hash": AbiType(AbiKind.HASH, size=32),
        "function": AbiType(AbiKind.FUNCTION, size=24),
    }
    if base in simple:
        return simple[base]
    raise ValueError(f"unsupported arg type: {text}")


def _decode_hex(text: str) -> bytes:
    digits = text[2:] if text.startswith("0x") else text
    if len(digits) % 2 or any(c not in string.hexdigits for c in digits):
        raise ValueError(f"invalid hex string {text!r}")
    return bytes.fromhex(digits)


def _hex_to_hash(text: str) -> bytes:
    digits = text[2:] if text[:2] in ("0x", "0X") else text
    if len(digits) % 2:
        digits = "0" + digits
    raw = _decode_hex(digits)
    return raw[-32:].rjust(32, b"\x00")


def _parse_integer(text: str) -> int:
    if not _INTEGER_PATTERN.match(text):
        raise ValueError(f"Bad integer {text}")
    return int(text, 10)


def string_to_value(abi_type: AbiType, value: str) -> Any:
    """Convert a command-line string into a value of ``abi_type``."""
    value = value.strip(" ")
    kind = abi_type.kind
    if kind in (AbiKind.INT, AbiKind.UINT):
        number = _parse_integer(value)
        if abi_type.size in _SMALL_INT_SIZES:
            modulus = 1 << abi_type.size
            number %= modulus
            if kind is AbiKind.INT and number >= modulus >> 1:
                number -= modulus
        return number
    if kind is AbiKind.BOOL:
        return value in ("true", "True", "1")
    if kind is AbiKind.STRING:
        return value
    if kind is AbiKind.SLICE:
        raise ValueError(f"Unhandled type slice ({abi_type})")
    if kind is AbiKind.ARRAY:
        raise ValueError(f"Unhandled type array ({abi_type})")
    if kind is AbiKind.ADDRESS:
        return hex_to_address(value)
    if kind is AbiKind.FIXED_BYTES:
        size = abi_type.size
        if not 1 <= size <= 32:
            raise ValueError(f"Invalid byte size {size}")
        try:
            decoded = _decode_hex(value)
        except ValueError:
            return bytes(size)
        if len(decoded) > size:
            raise ValueError(f"Value {value} too long for {abi_type}")
        return decoded.rjust(size, b"\x00")
    if kind is AbiKind.BYTES:
        return _decode_hex(value)
    if kind is AbiKind.HASH:
        return _hex_to_hash(value)
    if kind in (AbiKind.FIXED_POINT, AbiKind.FUNCTION):
        raise ValueError(f"Unhandled type {abi_type}")
    raise ValueError(f"Unknown type {abi_type}")


def value_to_string(abi_type: AbiType, value: Any) -> str:
    """Render a decoded value of ``abi_type`` for display."""
    kind = abi_type.kind
    if kind in (AbiKind.INT, AbiKind.UINT):
        return str(int(value))
    if kind is AbiKind.BOOL:
        return "true" if value is True else "false"
    if kind is AbiKind.STRING:
        return str(value)
    if kind in (AbiKind.SLICE, AbiKind.ARRAY):
        assert abi_type.elem is not None
        return "[" + ",".join(value_to_string(abi_type.elem, item) for item in value) + "]"
    if kind is AbiKind.ADDRESS:
        return to_checksum_address(bytes(value))
    if kind in (AbiKind.FIXED_BYTES, AbiKind.BYTES, AbiKind.HASH):
        return "0x" + bytes(value).hex()
    if kind in (AbiKind.FIXED_POINT, AbiKind.FUNCTION):
        raise ValueError(f"Unhandled type {abi_type}")
    raise ValueError(f"Unknown type {abi_type}")


def parse_invocation(call: str) -> tuple[str, list[str]]:
    """Split ``name(arg1,arg2)`` into the name and its comma-separated arguments."""
    open_pos = call.find("(")
    ensure(open_pos != -1, f"Missing open bracket in call {call}")
    close_pos = call.rfind(")")
    ensure(close_pos != -1, f"Missing close bracket in call {call}")
    ensure(close_pos > open_pos, f"Missing close bracket in call {call}")
    name = call[:open_pos]
    if open_pos + 1 == close_pos:
        return name, []
    inner = call[open_pos + 1 : close_pos]
    try:
        rows = [row for row in csv.reader(io.StringIO(inner), strict=True) if row]
    except csv.Error as exc:
        raise CommandError(f"Failed to parse arguments for {call}") from exc
    ensure(rows, f"Failed to parse arguments for {call}")
    return name, rows[0]


@dataclass(frozen=True)
class AbiMethod:
    """A contract function or constructor with its argument and result types."""

    name: str
    inputs: tuple[AbiType, ...] = ()
    outputs: tuple[AbiType, ...] = ()
    input_names: tuple[str, ...] = ()
    output_names: tuple[str, ...] = ()
    constant: bool = False

    @property
    def signature(self) -> str:
        """The canonical signature, e.g. ``transfer(address,uint256)``."""
        return f"{self.name}({','.join(str(t) for t in self.inputs)})"

    @property
    def selector(self) -> bytes:
        """The four-byte function selector."""
        return keccak256(self.signature.encode("ascii"))[:4]


@dataclass
class ContractAbi:
    """The callable interface of a contract."""

    methods: dict[str, AbiMethod] = field(default_factory=dict)
    constructor: AbiMethod | None = None

    def method(self, name: str) -> AbiMethod:
        """Return the named method; the empty name is the constructor."""
        if name == "":
            return self.constructor if self.constructor is not None else AbiMethod("")
        found = self.methods.get(name)
        ensure(found is not None, f"Method {name} is unknown")
        assert found is not None
        return found

    def convert_arguments(self, name: str, arguments: list[str]) -> list[Any]:
        """Convert string arguments into values for the named method's inputs."""
        method = self.method(name)
        ensure(
            len(method.inputs) == len(arguments),
            f"{name} expects {len(method.inputs)} parameter(s), found {len(arguments)}",
        )
        values = []
        for abi_type, argument in zip(method.inputs, arguments):
            try:
                values.append(string_to_value(abi_type, argument))
            except ValueError as exc:
                raise CommandError("Failed to decode argument") from exc
        return values


def _parse_params(entries: Any) -> tuple[tuple[AbiType, ...], tuple[str, ...]]:
    if entries is None:
        return (), ()
    if not isinstance(entries, list):
        raise ValueError("ABI parameters must be a list")
    types = tuple(parse_type(entry["type"]) for entry in entries)
    names = tuple(str(entry.get("name", "")) for entry in entries)
    return types, names


def load_abi(source: str) -> ContractAbi:
    """Load an ABI from JSON text (starting with ``[``) or from a file path."""
    text = source if source.startswith("[") else Path(source).read_text(encoding="utf-8")
    entries = json.loads(text)
    if not isinstance(entries, list):
        raise ValueError("ABI must be a JSON list")
    abi = ContractAbi()
    for entry in entries:
        if not isinstance(entry, dict):
            raise ValueError("ABI entries must be objects")
        entry_type = entry.get("type", "function")
        if entry_type not in ("function", "constructor"):
            continue
        inputs, input_names = _parse_params(entry.get("inputs"))
        outputs, output_names = _parse_params(entry.get("outputs"))
        method = AbiMethod(
            name=str(entry.get("name", "")) if entry_type == "function" else "",
            inputs=inputs,
            outputs=outputs,
            input_names=input_names,
            output_names=output_names,
            constant=bool(entry.get("constant", False)),
        )
        if entry_type == "constructor":
            abi.constructor = method
        else:
            abi.methods[method.name] = method
    return abi