"""Deterministic ECDSA signing and public-key recovery on secp256k1."""

from __future__ import annotations

import hashlib
import hmac
import string
from collections.abc import Iterator

from .address import keccak256

FIELD_PRIME = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEFFFFFC2F
CURVE_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141
GENERATOR = (
    0x79BE667EF9DCBBAC55A06295CE870B07029BFCDB2DCE28D959F2815B16F81798,
    0x483ADA7726A3C4655DA4FBFC0E1108A8FD17B448A68554199C47D08FFB10D4B8,
)

Point = "tuple[int, int] | None"


def _add(a: tuple[int, int] | None, b: tuple[int, int] | None) -> tuple[int, int] | None:
    if a is None:
        return b
    if b is None:
        return a
    x1, y1 = a
    x2, y2 = b
    if x1 == x2:
        if (y1 + y2) % FIELD_PRIME == 0:
            return None
        slope = 3 * x1 * x1 * pow(2 * y1, -1, FIELD_PRIME) % FIELD_PRIME
    else:
        slope = (y2 - y1) * pow(x2 - x1, -1, FIELD_PRIME) % FIELD_PRIME
    x3 = (slope * slope - x1 - x2) % FIELD_PRIME
    y3 = (slope * (x1 - x3) - y1) % FIELD_PRIME
    return x3, y3


def _multiply(scalar: int, point: tuple[int, int] | None) -> tuple[int, int] | None:
    result = None
    addend = point
    scalar %= CURVE_ORDER
    while scalar:
        if scalar & 1:
            result = _add(result, addend)
        addend = _add(addend, addend)
        scalar >>= 1
    return result


def _check_hash(message_hash: bytes) -> int:
    if len(message_hash) != 32:
        raise ValueError(
            f"hash is required to be exactly 32 bytes ({len(message_hash)})"
        )
    return int.from_bytes(message_hash, "big")


def private_key_from_hex(text: str) -> int:
    """Parse a 32-byte hex private key, with or without a ``0x`` prefix."""
    digits = text[2:] if text.startswith("0x") else text
    if len(digits) % 2 or any(c not in string.hexdigits for c in digits):
        raise ValueError("invalid hex string")
    raw = bytes.fromhex(digits)
    if len(raw) != 32:
        raise ValueError("invalid length, need 256 bits")
    key = int.from_bytes(raw, "big")
    if not 0 < key < CURVE_ORDER:
        raise ValueError("invalid private key")
    return key


def _nonces(message_hash: bytes, private_key: int) -> Iterator[int]:
    """Yield candidate nonces as described by RFC 6979 with HMAC-SHA256."""
    key_bytes = private_key.to_bytes(32, "big")
    hash_bytes = (int.from_bytes(message_hash, "big") % CURVE_ORDER).to_bytes(32, "big")

    def mac(k: bytes, data: bytes) -> bytes:
        return hmac.new(k, data, hashlib.sha256).digest()

    v = b"\x01" * 32
    k = b"\x00" * 32
    k = mac(k, v + b"\x00" + key_bytes + hash_bytes)
    v = mac(k, v)
    k = mac(k, v + b"\x01" + key_bytes + hash_bytes)
    v = mac(k, v)
    while True:
        v = mac(k, v)
        candidate = int.from_bytes(v, "big")
        if 0 < candidate < CURVE_ORDER:
            yield candidate
        k = mac(k, v + b"\x00")
        v = mac(k, v)


def sign(message_hash: bytes, private_key: int) -> bytes:
    """Sign a 32-byte hash; return 65 bytes of r, s and a recovery id of 0 or 1."""
    e = _check_hash(message_hash)
    if not 0 < private_key < CURVE_ORDER:
        raise ValueError("invalid private key")
    for nonce in _nonces(message_hash, private_key):
        point = _multiply(nonce, GENERATOR)
        assert point is not None
        rx, ry = point
        r = rx % CURVE_ORDER
        if r == 0:
            continue
        s = pow(nonce, -1, CURVE_ORDER) * (e + r * private_key) % CURVE_ORDER
        if s == 0:
            continue
        recovery_id = (ry & 1) | (2 if rx >= CURVE_ORDER else 0)
        if s > CURVE_ORDER // 2:
            s = CURVE_ORDER - s
            recovery_id ^= 1
        return r.to_bytes(32, "big") + s.to_bytes(32, "big") + bytes([recovery_id])
    raise AssertionError("nonce generation is unbounded")


def recover_public_key(message_hash: bytes, signature: bytes) -> bytes:
    """Recover the uncompressed public key (``0x04`` prefixed) from a signature."""
    e = _check_hash(message_hash)
    if len(signature) != 65:
        raise ValueError("invalid signature length")
    r = int.from_bytes(signature[:32], "big")
    s = int.from_bytes(signature[32:64], "big")
    recovery_id = signature[64]
    if recovery_id >= 4:
        raise ValueError("invalid signature recovery id")
    if not (0 < r < CURVE_ORDER and 0 < s < CURVE_ORDER):
        raise ValueError("invalid signature values")
    x = r + (recovery_id >> 1) * CURVE_ORDER
    if x >= FIELD_PRIME:
        raise ValueError("invalid signature")
    alpha = (pow(x, 3, FIELD_PRIME) + 7) % FIELD_PRIME
    beta = pow(alpha, (FIELD_PRIME + 1) // 4, FIELD_PRIME)
    if beta * beta % FIELD_PRIME != alpha:
        raise ValueError("invalid signature")
    y = beta if beta % 2 == (recovery_id & 1) else FIELD_PRIME - beta
    r_inverse = pow(r, -1, CURVE_ORDER)
    u1 = (-e * r_inverse) % CURVE_ORDER
    u2 = s * r_inverse % CURVE_ORDER
    public = _add(_multiply(u1, GENERATOR), _multiply(u2, (x, y)))
    if public is None:
        raise ValueError("invalid signature")
    qx, qy = public
    return b"\x04" + qx.to_bytes(32, "big") + qy.to_bytes(32, "big")


def public_key_to_address(public_key: bytes) -> bytes:
    """Return the 20-byte address of an uncompressed public key."""
    if len(public_key) == 65 and public_key[0] == 4:
        body = public_key[1:]
    elif len(public_key) == 64:
        body = public_key
    else:
        raise ValueError("invalid public key")
    return keccak256(body)[12:]