"""Standard and packed encoding of values for contract ABI types."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from .abitypes import AbiKind, AbiType, parse_type

WORD = 32


def _as_type(abi_type: AbiType | str) -> AbiType:
    return abi_type if isinstance(abi_type, AbiType) else parse_type(abi_type)


def _as_types(types: Sequence[AbiType | str]) -> list[AbiType]:
    return [_as_type(t) for t in types]


def _pad_right(data: bytes) -> bytes:
    remainder = len(data) % WORD
    return data if remainder == 0 else data + bytes(WORD - remainder)


def _uint_word(value: int) -> bytes:
    return value.to_bytes(WORD, "big")


def _head_size(abi_type: AbiType) -> int:
    if abi_type.is_dynamic:
        return WORD
    if abi_type.kind is AbiKind.ARRAY and abi_type.elem is not None:
        return abi_type.length * _head_size(abi_type.elem)
    return WORD


def _require_bytes(abi_type: AbiType, value: Any, length: int | None = None) -> bytes:
    if not isinstance(value, (bytes, bytearray)):
        raise ValueError(f"value for {abi_type} must be bytes")
    raw = bytes(value)
    if length is not None and len(raw) != length:
        raise ValueError(f"value for {abi_type} must be {length} bytes, got {len(raw)}")
    return raw


def _encode_integer(abi_type: AbiType, value: Any) -> bytes:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"value for {abi_type} must be an integer")
    bits = abi_type.size
    if abi_type.kind is AbiKind.UINT:
        if not 0 <= value < 1 << bits:
            raise ValueError(f"value {value} out of range for {abi_type}")
    elif not -(1 << (bits - 1)) <= value < 1 << (bits - 1):
        raise ValueError(f"value {value} out of range for {abi_type}")
    return _uint_word(value % (1 << 256))


def _encode_value(abi_type: AbiType, value: Any) -> bytes:
    kind = abi_type.kind
    if kind in (AbiKind.INT, AbiKind.UINT):
        return _encode_integer(abi_type, value)
    if kind is AbiKind.BOOL:
        if not isinstance(value, bool):
            raise ValueError(f"value for {abi_type} must be a bool")
        return _uint_word(int(value))
    if kind is AbiKind.ADDRESS:
        return _require_bytes(abi_type, value, 20).rjust(WORD, b"\x00")
    if kind is AbiKind.FIXED_BYTES:
        return _require_bytes(abi_type, value, abi_type.size).ljust(WORD, b"\x00")
    if kind is AbiKind.HASH:
        return _require_bytes(abi_type, value, WORD)
    if kind is AbiKind.FUNCTION:
        return _require_bytes(abi_type, value, 24).ljust(WORD, b"\x00")
    if kind is AbiKind.BYTES:
        raw = _require_bytes(abi_type, value)
        return _uint_word(len(raw)) + _pad_right(raw)
    if kind is AbiKind.STRING:
        if not isinstance(value, str):
            raise ValueError(f"value for {abi_type} must be a string")
        raw = value.encode("utf-8")
        return _uint_word(len(raw)) + _pad_right(raw)
    if kind is AbiKind.SLICE:
        assert abi_type.elem is not None
        items = list(value)
        return _uint_word(len(items)) + _encode_tuple([abi_type.elem] * len(items), items)
    if kind is AbiKind.ARRAY:
        assert abi_type.elem is not None
        items = list(value)
        if len(items) != abi_type.length:
            raise ValueError(
                f"{abi_type} needs {abi_type.length} elements, got {len(items)}"
            )
        return _encode_tuple([abi_type.elem] * len(items), items)
    raise ValueError(f"Unhandled type {abi_type}")


def _encode_tuple(types: Sequence[AbiType], values: Sequence[Any]) -> bytes:
    head_size = sum(_head_size(t) for t in types)
    heads: list[bytes] = []
    tails: list[bytes] = []
    tail_length = 0
    for abi_type, value in zip(types, values):
        encoded = _encode_value(abi_type, value)
        if abi_type.is_dynamic:
            heads.append(_uint_word(head_size + tail_length))
            tails.append(encoded)
            tail_length += len(encoded)
        else:
            heads.append(encoded)
    return b"".join(heads) + b"".join(tails)


def encode(types: Sequence[AbiType | str], values: Sequence[Any]) -> bytes:
    """Encode ``values`` with the standard contract ABI encoding."""
    abi_types = _as_types(types)
    if len(abi_types) != len(values):
        raise ValueError(
            f"argument count mismatch: {len(values)} for {len(abi_types)}"
        )
    return _encode_tuple(abi_types, list(values))


def encode_packed(types: Sequence[AbiType | str], values: Sequence[Any]) -> bytes:
    """Encode ``values`` with the tightly packed (non-standard) encoding."""
    abi_types = _as_types(types)
    if len(abi_types) != len(values):
        raise ValueError(
            f"argument count mismatch: {len(values)} for {len(abi_types)}"
        )
    digits: list[str] = []
    for abi_type, value in zip(abi_types, values):
        kind = abi_type.kind
        if kind in (AbiKind.INT, AbiKind.UINT):
            number = int(value)
            if number < 0:
                raise ValueError(f"cannot pack negative value {number}")
            digits.append(f"{number:0{abi_type.size // 4}x}")
        elif kind is AbiKind.BOOL:
            digits.append("01" if value else "00")
        elif kind is AbiKind.STRING:
            digits.append(str(value).encode("utf-8").hex())
        elif kind is AbiKind.FIXED_BYTES:
            digits.append(bytes(value).hex().rjust(abi_type.size * 2, "0"))
        elif kind is AbiKind.BYTES:
            digits.append(bytes(value).hex())
        elif kind is AbiKind.ADDRESS:
            digits.append(bytes(value).hex().rjust(40, "0"))
        else:
            raise ValueError(f"Unhandled type {abi_type}")
    text = "".join(digits)
    if len(text) % 2:
        raise ValueError("packed data has an odd number of hex digits")
    return bytes.fromhex(text)


def _word(data: bytes, position: int) -> bytes:
    if position < 0 or position + WORD > len(data):
        raise ValueError("abi: data too short")
    return data[position : position + WORD]


def _read_length(data: bytes, position: int) -> int:
    length = int.from_bytes(_word(data, position), "big")
    if length > len(data):
        raise ValueError("abi: length larger than data")
    return length


def _decode_static(abi_type: AbiType, data: bytes, position: int) -> Any:
    kind = abi_type.kind
    if kind is AbiKind.ARRAY:
        assert abi_type.elem is not None
        return _decode_tuple([abi_type.elem] * abi_type.length, data, position)
    word = _word(data, position)
    if kind is AbiKind.UINT:
        return int.from_bytes(word, "big")
    if kind is AbiKind.INT:
        return int.from_bytes(word, "big", signed=True)
    if kind is AbiKind.BOOL:
        number = int.from_bytes(word, "big")
        if number > 1:
            raise ValueError("abi: improperly encoded boolean value")
        return number == 1
    if kind is AbiKind.ADDRESS:
        return word[12:]
    if kind is AbiKind.FIXED_BYTES:
        return word[: abi_type.size]
    if kind is AbiKind.HASH:
        return word
    if kind is AbiKind.FUNCTION:
        return word[:24]
    raise ValueError(f"Unhandled type {abi_type}")


def _decode_dynamic(abi_type: AbiType, data: bytes, start: int) -> Any:
    kind = abi_type.kind
    if kind in (AbiKind.BYTES, AbiKind.STRING):
        length = _read_length(data, start)
        end = start + WORD + length
        if end > len(data):
            raise ValueError("abi: data too short")
        raw = data[start + WORD : end]
        return raw.decode("utf-8") if kind is AbiKind.STRING else raw
    assert abi_type.elem is not None
    if kind is AbiKind.SLICE:
        count = _read_length(data, start)
        if start + WORD + count * _head_size(abi_type.elem) > len(data):
            raise ValueError("abi: data too short")
        return _decode_tuple([abi_type.elem] * count, data, start + WORD)
    return _decode_tuple([abi_type.elem] * abi_type.length, data, start)


def _decode_tuple(types: Sequence[AbiType], data: bytes, base: int) -> list[Any]:
    values: list[Any] = []
    position = base
    for abi_type in types:
        if abi_type.is_dynamic:
            offset = int.from_bytes(_word(data, position), "big")
            if offset > len(data):
                raise ValueError("abi: offset larger than data")
            values.append(_decode_dynamic(abi_type, data, base + offset))
        else:
            values.append(_decode_static(abi_type, data, position))
        position += _head_size(abi_type)
    return values


def decode(types: Sequence[AbiType | str], data: bytes) -> list[Any]:
    """Decode standard ABI-encoded ``data`` into a list of values."""
    return _decode_tuple(_as_types(types), bytes(data), 0)