"""Chain helpers: nonce tracking, signature V values and command paths."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from .address import to_checksum_address
from .errors import CommandError

_UINT64 = 1 << 64
ROOT_COMMAND = "ethereal"


def _describe(address: object) -> str:
    if isinstance(address, (bytes, bytearray)) and len(address) == 20:
        return to_checksum_address(bytes(address))
    return str(address)


class NonceTracker:
    """Track the nonce used for outgoing transactions.

    A nonce of -1 means it is fetched from the node on first use.
    """

    def __init__(self, fetch: Callable[[object], int], nonce: int = -1) -> None:
        self._fetch = fetch
        self.nonce = nonce

    def current(self, address: object) -> int:
        """Return the nonce to use for the next transaction from ``address``."""
        if self.nonce == -1:
            try:
                fetched = self._fetch(address)
            except Exception as exc:
                raise CommandError(
                    f"failed to obtain nonce for {_describe(address)}: {exc}"
                ) from exc
            self.nonce = int(fetched)
        return self.nonce % _UINT64

    def next(self, address: object) -> int:
        """Advance past the current nonce and return the new value."""
        if self.nonce == -1:
            self.current(address)
        self.nonce += 1
        return self.nonce % _UINT64


def derive_chain_id(v: int) -> int:
    """Return the chain ID encoded in a signature's V value."""
    if v.bit_length() <= 64:
        value = v % _UINT64
        if value in (27, 28):
            return 0
        return ((value - 35) % _UINT64) // 2
    return (v - 35) // 2


def is_protected_v(v: int) -> bool:
    """Return whether V carries replay protection."""
    if v.bit_length() <= 8:
        return abs(v) not in (27, 28)
    return True


def command_path(names: Sequence[str]) -> str:
    """Join command names from the root down, omitting the program name."""
    if not names:
        raise ValueError("command path needs at least one name")
    parts = [names[-1]]
    for index in range(len(names) - 1, 0, -1):
        if names[index - 1] == ROOT_COMMAND:
            break
        parts.append(names[index - 1])
    return ":".join(reversed(parts))