"""Tools for common Ethereum tasks: address checksums, ABI values, message signatures and chain statistics."""

__version__ = "1.0.0"

__all__ = [
    "abiencode",
    "abitypes",
    "address",
    "chain",
    "cli",
    "errors",
    "rpc",
    "secp256k1",
    "signature",
    "stats",
]