"""Ethereum addresses: parsing, hashing and mixed-case checksums."""

from __future__ import annotations

from Crypto.Hash import keccak

from .errors import CommandError, ensure

ADDRESS_LENGTH = 20
ZERO_ADDRESS = bytes(ADDRESS_LENGTH)


def keccak256(data: bytes) -> bytes:
    """Return the Keccak-256 digest of ``data``."""
    return keccak.new(digest_bits=256, data=bytes(data)).digest()


def _strip_prefix(text: str) -> str:
    if text[:2] in ("0x", "0X"):
        return text[2:]
    return text


def hex_to_address(text: str) -> bytes:
    """Parse a hex string into a 20-byte address.

    Shorter values are left-padded with zeros; longer values keep their
    last 20 bytes.  Raises ValueError if the text is not hex.
    """
    digits = _strip_prefix(text)
    if len(digits) % 2 == 1:
        digits = "0" + digits
    raw = bytes.fromhex(digits)
    if any(c.isspace() for c in digits):
        raise ValueError(f"invalid hex string {text!r}")
    return raw[-ADDRESS_LENGTH:].rjust(ADDRESS_LENGTH, b"\x00")


def to_checksum_address(address: bytes) -> str:
    """Return the mixed-case checksummed hex form of a 20-byte address."""
    if len(address) != ADDRESS_LENGTH:
        raise ValueError(f"address must be {ADDRESS_LENGTH} bytes, got {len(address)}")
    lower = address.hex()
    digest = keccak256(lower.encode("ascii")).hex()
    chars = (
        ch.upper() if ch.isalpha() and int(nibble, 16) >= 8 else ch
        for ch, nibble in zip(lower, digest)
    )
    return "0x" + "".join(chars)


def checksum_address(text: str) -> str:
    """Validate a full ``0x`` address string and return its checksummed form."""
    ensure(text != "", "--address is required")
    ensure(text.startswith("0x"), "address does not start with 0x")
    ensure(len(text) == 42, "address of incorrect length")
    try:
        address = hex_to_address(text)
    except ValueError as exc:
        raise CommandError("could not parse address") from exc
    ensure(address != ZERO_ADDRESS, "could not parse address")
    return to_checksum_address(address)


def is_checksummed(text: str) -> bool:
    """Return whether ``text`` is a correctly checksummed address."""
    return text == checksum_address(text)