"""Prepare, sign and recover the signer of Ethereum signed messages."""

from __future__ import annotations

import csv
import io
import string

from . import secp256k1
from .abiencode import encode, encode_packed
from .abitypes import parse_type, string_to_value
from .address import keccak256
from .errors import CommandError, ensure

_MESSAGE_PREFIX = "\x19Ethereum Signed Message:\n"


def _strict_hex(text: str) -> bytes | None:
    digits = text[2:] if text.startswith("0x") else text
    if len(digits) % 2 or any(c not in string.hexdigits for c in digits):
        return None
    return bytes.fromhex(digits)


def _first_csv_row(text: str, message: str) -> list[str]:
    try:
        row = next(csv.reader(io.StringIO(text), strict=True), None)
    except csv.Error as exc:
        raise CommandError(message) from exc
    if row is None:
        raise CommandError(message)
    return row


def prepare_data(data: str, types: str = "", packed: bool = False) -> tuple[bytes, bool]:
    """Turn the data argument into bytes; also say whether to hash them by default.

    Without types, hex data is used as bytes (hashed by default) and anything
    else as text (not hashed).  With types, the comma-separated values are
    encoded for the comma-separated types and hashed by default.
    """
    if types == "":
        decoded = _strict_hex(data)
        if decoded is None:
            return data.encode("utf-8"), False
        return decoded, True

    items = _first_csv_row(data, "Failed to parse data")
    type_names = _first_csv_row(types, "Failed to parse data types")
    ensure(
        len(items) == len(type_names),
        "Mismatch between number of data elements and number of data types",
    )
    abi_types = []
    values = []
    for type_name, item in zip(type_names, items):
        try:
            abi_type = parse_type(type_name)
        except ValueError as exc:
            raise CommandError(f"Unknown data type {type_name}") from exc
        try:
            values.append(string_to_value(abi_type, item))
        except ValueError as exc:
            raise CommandError(f"Failed to decode argument {item}") from exc
        abi_types.append(abi_type)
    try:
        encoded = encode_packed(abi_types, values) if packed else encode(abi_types, values)
    except ValueError as exc:
        raise CommandError("Failed to pack data") from exc
    return encoded, True


def message_hash(
    data: str,
    types: str = "",
    hash_override: str | bool | None = None,
    packed: bool = False,
) -> bytes:
    """Return the 32-byte hash that is signed for ``data``.

    ``hash_override`` forces hashing of the data on or off; a string counts
    as on only when it is ``"true"`` in any case.
    """
    ensure(data != "", "--data is required")
    payload, hash_data = prepare_data(data, types, packed)
    if isinstance(hash_override, bool):
        hash_data = hash_override
    elif hash_override:
        hash_data = hash_override.lower() == "true"
    if hash_data:
        payload = keccak256(payload)
    prefix = f"{_MESSAGE_PREFIX}{len(payload)}".encode("utf-8")
    return keccak256(prefix + payload)


def sign_message(
    data: str,
    private_key: str | int,
    types: str = "",
    hash_override: str | bool | None = None,
    packed: bool = False,
) -> bytes:
    """Sign ``data`` with a private key (hex string or integer); return 65 bytes."""
    digest = message_hash(data, types, hash_override, packed)
    if private_key == "" or private_key is None:
        raise CommandError("no passphrase or private key; cannot sign")
    try:
        key = (
            private_key
            if isinstance(private_key, int)
            else secp256k1.private_key_from_hex(private_key)
        )
        return secp256k1.sign(digest, key)
    except ValueError as exc:
        raise CommandError("Invalid private key") from exc


def recover_signer(
    data: str,
    signature: str | bytes,
    types: str = "",
    hash_override: str | bool | None = None,
    packed: bool = False,
) -> bytes:
    """Return the 20-byte address that produced ``signature`` over ``data``."""
    digest = message_hash(data, types, hash_override, packed)
    raw = _strict_hex(signature) if isinstance(signature, str) else bytes(signature)
    if raw is None:
        raise CommandError("Invalid signature")
    try:
        public_key = secp256k1.recover_public_key(digest, raw)
    except ValueError as exc:
        raise CommandError("Failed to obtain signer of signature") from exc
    return secp256k1.public_key_to_address(public_key)