"""A small JSON-RPC client for talking to an Ethereum node."""

from __future__ import annotations

import itertools
import json
import socket
import urllib.error
import urllib.request
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .stats import Block

Transport = Callable[[dict], Any]


class RpcError(Exception):
    """The node could not be reached or answered with an error."""

    def __init__(self, message: str, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


@dataclass(frozen=True)
class _DetailedBlock(Block):
    """A block as returned by the node, with the fields only displays need."""

    extra: bytes = b""
    difficulty: int = 0
    uncles: tuple[tuple[int, bytes], ...] = ()


def _quantity(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return value
    return int(value, 16)


def _data(value: Any) -> bytes:
    if not value:
        return b""
    digits = value[2:] if value[:2] in ("0x", "0X") else value
    return bytes.fromhex(digits)


def _hex(value: bytes | str) -> str:
    if isinstance(value, str):
        return value if value.startswith("0x") else "0x" + value
    return "0x" + bytes(value).hex()


class Client:
    """JSON-RPC client over HTTP(S) or a local IPC socket.

    ``transport`` may replace the network layer: it receives the request
    object and returns the decoded response object.
    """

    def __init__(
        self, url: str, timeout: float = 30.0, transport: Transport | None = None
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._ids = itertools.count(1)
        if transport is not None:
            self._transport = transport
        elif url.startswith(("http://", "https://")):
            self._transport = self._http
        else:
            self._transport = self._ipc

    def _http(self, payload: dict) -> Any:
        request = urllib.request.Request(
            self.url,
            data=json.dumps(payload).encode("utf-8"),
            headers={"Content-Type": "application/json"},
        )
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                return json.loads(response.read().decode("utf-8"))
        except (OSError, ValueError) as exc:
            raise RpcError(str(exc)) from exc

    def _ipc(self, payload: dict) -> Any:
        family = getattr(socket, "AF_UNIX", None)
        if family is None:
            raise RpcError("IPC connections are not supported on this platform")
        try:
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.settimeout(self.timeout)
                sock.connect(self.url)
                sock.sendall(json.dumps(payload).encode("utf-8"))
                buffer = b""
                while chunk := sock.recv(65536):
                    buffer += chunk
                    try:
                        return json.loads(buffer.decode("utf-8"))
                    except ValueError:
                        continue
        except OSError as exc:
            raise RpcError(str(exc)) from exc
        raise RpcError("connection closed before a response arrived")

    def call(self, method: str, *args: Any) -> Any:
        """Invoke ``method`` with ``args`` and return its result."""
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": list(args),
        }
        reply = self._transport(payload)
        if not isinstance(reply, dict):
            raise RpcError("invalid response from node")
        error = reply.get("error")
        if error is not None:
            if isinstance(error, dict):
                raise RpcError(str(error.get("message", error)), error.get("code"))
            raise RpcError(str(error))
        if "result" not in reply:
            raise RpcError("response carries no result")
        return reply["result"]

    def _block(self, result: Any) -> _DetailedBlock:
        if result is None:
            raise RpcError("not found")
        prices = []
        hashes = []
        for tx in result.get("transactions", []):
            if isinstance(tx, dict):
                prices.append(_quantity(tx.get("gasPrice")))
                hashes.append(_data(tx.get("hash")))
            else:
                hashes.append(_data(tx))
        uncles = []
        for index, _ in enumerate(result.get("uncles", [])):
            header = self.call(
                "eth_getUncleByBlockHashAndIndex", result.get("hash"), hex(index)
            )
            if header is None:
                raise RpcError("not found")
            uncles.append((_quantity(header.get("number")), _data(header.get("hash"))))
        miner = _data(result.get("miner")) or bytes(20)
        return _DetailedBlock(
            number=_quantity(result.get("number")),
            timestamp=_quantity(result.get("timestamp")),
            gas_used=_quantity(result.get("gasUsed")),
            gas_limit=_quantity(result.get("gasLimit")),
            coinbase=miner[-20:].rjust(20, b"\x00"),
            gas_prices=tuple(prices),
            hash=_data(result.get("hash")) or bytes(32),
            transaction_hashes=tuple(hashes),
            extra=_data(result.get("extraData")),
            difficulty=_quantity(result.get("difficulty")),
            uncles=tuple(uncles),
        )

    def block_by_number(self, number: int | None) -> Block:
        """Fetch a block by number; None fetches the latest block."""
        tag = "latest" if number is None else hex(number)
        return self._block(self.call("eth_getBlockByNumber", tag, True))

    def block_by_hash(self, block_hash: bytes | str) -> Block:
        """Fetch a block by its hash."""
        return self._block(self.call("eth_getBlockByHash", _hex(block_hash), True))

    def network_id(self) -> int:
        """Return the network ID of the chain the node follows."""
        result = self.call("net_version")
        if isinstance(result, int):
            return result
        return int(result, 0) if str(result).startswith("0x") else int(result)

    def pending_nonce_at(self, address: bytes | str) -> int:
        """Return the next nonce for ``address``, counting pending transactions."""
        return _quantity(self.call("eth_getTransactionCount", _hex(address), "pending"))