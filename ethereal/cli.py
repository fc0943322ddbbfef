"""The ethereal command line."""

from __future__ import annotations

import argparse
import math
import re
import sys
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal, localcontext

from . import stats
from .abiencode import decode, encode
from .abitypes import ContractAbi, load_abi, parse_invocation, value_to_string
from .address import checksum_address, hex_to_address, to_checksum_address
from .chain import command_path
from .errors import CommandError, ensure, fail
from .rpc import Client, RpcError
from .signature import message_hash, recover_signer, sign_message

PROGRAM = "ethereal"
DEFAULT_CONNECTION = "http://localhost:8545/"
DEFAULT_TIMEOUT = 30.0
OFFLINE_COMMANDS = frozenset(
    {"account:checksum", "signature:sign", "signature:signer", "signature:verify"}
)

_BLOCK_NUMBER = re.compile(r"^[0-9]+$")
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS = {"ns": 1e-9, "us": 1e-6, "µs": 1e-6, "ms": 1e-3, "s": 1.0, "m": 60.0, "h": 3600.0}
_TIME_FORMAT = "%y/%m/%d %H:%M:%S"


@dataclass
class _Context:
    quiet: bool
    verbose: bool
    offline: bool
    chain_id: int
    client: Client | None

    @property
    def rpc(self) -> Client:
        ensure(self.client is not None, "Offline mode not supported at current with this command")
        assert self.client is not None
        return self.client

    def say(self, condition: bool, message: str) -> None:
        if condition:
            print(message)


@contextmanager
def _failing(message: str) -> Iterator[None]:
    """Turn lower-level failures into a CommandError carrying ``message``."""
    try:
        yield
    except (RpcError, ValueError, OSError, KeyError, TypeError) as exc:
        raise CommandError(f"{message}: {exc}") from exc


def _parse_duration(text: str) -> float:
    text = text.strip()
    if text == "0":
        return 0.0
    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    if position == 0 or position != len(text):
        raise argparse.ArgumentTypeError(f"invalid duration {text!r}")
    return total


def _parse_hash(text: str) -> bytes:
    digits = text[2:] if text[:2] in ("0x", "0X") else text
    if len(digits) % 2:
        digits = "0" + digits
    raw = bytes.fromhex(digits)
    return raw[-32:].rjust(32, b"\x00")


def _go_time(timestamp: int) -> str:
    moment = datetime.fromtimestamp(timestamp).astimezone()
    return moment.strftime("%Y-%m-%d %H:%M:%S %z ") + (moment.tzname() or "")


def _format_float(value: float, digits: int) -> str:
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    return f"{value:.{digits}f}"


def _wei_to_string(wei: int) -> str:
    if wei == 0:
        return "0"
    magnitude = abs(wei)
    if magnitude < 10**6:
        return f"{wei} Wei"
    scale, unit = (10**9, "GWei") if magnitude < 10**15 else (10**18, "Ether")
    with localcontext() as context:
        context.prec = 100
        text = format(Decimal(wei) / Decimal(scale), "f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return f"{text} {unit}"


def block_info_lines(block: stats.Block, verbose: bool = False, transactions: bool = False) -> list[str]:
    """The lines that describe a block, as shown by ``block info``."""
    lines = [
        f"Number:\t\t\t{block.number}",
        f"Hash:\t\t\t0x{block.hash.hex()}",
        f"Block time:\t\t{block.timestamp} ({_go_time(block.timestamp)})",
    ]
    if verbose:
        extra = getattr(block, "extra", b"")
        lines.append(f"Mined by:\t\t{to_checksum_address(block.coinbase)}")
        lines.append(f"Extra:\t\t\t{extra.decode('utf-8', errors='replace')}")
        lines.append(f"Difficulty:\t\t{getattr(block, 'difficulty', 0)}")
    lines.append(f"Gas limit:\t\t{block.gas_limit}")
    percentage = stats.gas_used_percentage(block.gas_used, block.gas_limit)
    lines.append(f"Gas used:\t\t{block.gas_used} ({percentage}%)")
    uncles = getattr(block, "uncles", ())
    if verbose:
        if uncles:
            lines.append("Uncles:")
            for index, (number, uncle_hash) in enumerate(uncles):
                lines.append(f"\t{index}:\tblock:\t{number} ({number - block.number})")
                lines.append(f"\t\thash:\t0x{uncle_hash.hex()}")
    else:
        lines.append(f"Uncles:\t\t\t{len(uncles)}")
    hashes = block.transaction_hashes
    if transactions:
        if hashes:
            lines.append("Transactions:")
            lines.extend(f"\t{index:4d}: 0x{tx_hash.hex()}" for index, tx_hash in enumerate(hashes))
    else:
        lines.append(f"Transactions:\t\t{block.transaction_count}")
    return lines


def _fetch_block(client: Client, text: str, message: str) -> stats.Block:
    with _failing(message):
        if text == "latest":
            return client.block_by_number(None)
        if _BLOCK_NUMBER.match(text):
            return client.block_by_number(int(text))
        return client.block_by_hash(_parse_hash(text))


def _recent_blocks(client: Client, count: int, message: str) -> Iterator[stats.Block]:
    """Yield ``count`` blocks, latest first."""
    number = None
    for _ in range(count):
        with _failing(message):
            block = client.block_by_number(number)
        yield block
        number = block.number - 1


def _account_checksum(ctx: _Context, args: argparse.Namespace) -> int:
    text = args.address
    checksummed = checksum_address(text)
    if args.check or ctx.quiet:
        ensure(text == checksummed, "checksum is incorrect")
        ctx.say(not ctx.quiet, "Checksum is correct")
        return 0
    print(checksummed)
    return 0


def _block_info(ctx: _Context, args: argparse.Namespace) -> int:
    ensure(args.block != "", "--block is required")
    block = _fetch_block(ctx.rpc, args.block, f"Failed to obtain block {args.block}")
    if ctx.quiet:
        return 0
    with _failing("Failed to describe block"):
        lines = block_info_lines(block, ctx.verbose, args.transactions)
    for line in lines:
        print(line)
    return 0


def _block_overview(ctx: _Context, args: argparse.Namespace) -> int:
    ctx.say(ctx.verbose, stats.OVERVIEW_HEADER)
    seen: list[stats.Block] = []
    for block in _recent_blocks(ctx.rpc, args.blocks, "Failed to obtain information about latest block"):
        seen.append(block)
        if not ctx.quiet:
            print(stats.overview_lines(seen)[-1])
    return 0


def _decile_size(count: int) -> int:
    return len(range(count)[(count * 8) // 10 : (count * 9) // 10 + 1])


def _gas_price(ctx: _Context, args: argparse.Namespace) -> int:
    ensure(args.blocks > 0, "--blocks must be greater than 0")
    blocks = []
    for block in _recent_blocks(ctx.rpc, args.blocks, "Failed to obtain information about latest block"):
        blocks.append(block)
        when = datetime.fromtimestamp(block.timestamp).strftime(_TIME_FORMAT)
        if args.lowest:
            price = stats.lowest_gas_price(block.gas_prices)
            if price is not None:
                ctx.say(
                    ctx.verbose,
                    f"Lowest inclusion price for block {block.number} ({when}) is {_wei_to_string(price)}",
                )
        else:
            price = stats.block_gas_price(block.gas_prices)
            if price is not None:
                count = _decile_size(sum(1 for p in block.gas_prices if p != 0))
                ctx.say(
                    ctx.verbose,
                    f"Expected inclusion price for block {block.number} ({when}) over "
                    f"{count} transactions is {_wei_to_string(price)}",
                )
    final = stats.estimate_gas_price(blocks, args.lowest)
    if ctx.quiet:
        return 0
    print(str(final) if args.wei else _wei_to_string(final))
    return 0


def _network_rate(ctx: _Context, args: argparse.Namespace, gas: bool) -> int:
    blocks = list(_recent_blocks(ctx.rpc, args.blocks + 1, "Failed to obtain information about block"))
    for newer, older in zip(blocks, blocks[1:]):
        seconds = newer.timestamp - older.timestamp
        if gas:
            ctx.say(ctx.verbose, f"Block {newer.number} used {newer.gas_used} gas in {seconds} seconds")
        else:
            ctx.say(
                ctx.verbose,
                f"Block {newer.number} processed {newer.transaction_count} transactions in {seconds} seconds",
            )
    measured = blocks[:-1]
    total = sum(b.gas_used if gas else b.transaction_count for b in measured)
    if ctx.quiet:
        return 1 if total == 0 else 0
    if gas:
        print(_format_float(stats.gas_per_second(blocks), 0))
    else:
        print(_format_float(stats.transactions_per_second(blocks), 2))
    return 0


def _network_gps(ctx: _Context, args: argparse.Namespace) -> int:
    return _network_rate(ctx, args, gas=True)


def _network_tps(ctx: _Context, args: argparse.Namespace) -> int:
    return _network_rate(ctx, args, gas=False)


def _contract_call(ctx: _Context, args: argparse.Namespace) -> int:
    ensure(args.from_address != "", "--from is required")
    with _failing(f"Failed to resolve from address {args.from_address}"):
        from_address = hex_to_address(args.from_address)
    ensure(args.call != "", "--call is required")
    abi = ContractAbi()
    if args.abi:
        with _failing(f"Failed to parse ABI {args.abi}"):
            abi = load_abi(args.abi)
    name, arguments = parse_invocation(args.call)
    method = abi.method(name)
    values = abi.convert_arguments(name, arguments)
    for index, value in enumerate(values):
        ctx.say(ctx.verbose, f"input {index} is {value} ({type(value).__name__})")
    with _failing("Failed to convert arguments"):
        data = method.selector + encode(method.inputs, values)
    ctx.say(ctx.verbose, f"Data is {data.hex()}")

    ensure(args.contract != "", "--contract is required")
    with _failing(f"Failed to resolve contract address {args.contract}"):
        contract_address = hex_to_address(args.contract)
    message = {
        "from": "0x" + from_address.hex(),
        "to": "0x" + contract_address.hex(),
        "data": "0x" + data.hex(),
    }
    with _failing(f"Failed to call contract {name}"):
        result = ctx.rpc.call("eth_call", message, "latest") or ""
        raw = bytes.fromhex(result[2:] if result.startswith("0x") else result)
    ensure(raw, f"Call to {name} did not return any data")
    if ctx.quiet:
        return 0

    ctx.say(ctx.verbose, f"Result is {raw.hex()}")
    with _failing(f"Invalid ABI for {name} in ABI"):
        decoded = decode(method.outputs, raw)
    results = []
    for abi_type, value in zip(method.outputs, decoded):
        with _failing(f"Failed to turn value {value} in to suitable output"):
            results.append(value_to_string(abi_type, value))
    print(",".join(results))
    return 0


def _signature_sign(ctx: _Context, args: argparse.Namespace) -> int:
    ensure(args.data != "", "--data is required")
    if args.passphrase:
        message_hash(args.data, args.types, args.hash, args.packed)
        fail("passphrase not supported")
    signature = sign_message(args.data, args.privatekey, args.types, args.hash, args.packed)
    if ctx.quiet:
        return 0
    print(signature.hex())
    return 0


def _signature_signer(ctx: _Context, args: argparse.Namespace) -> int:
    ensure(args.data != "", "--data is required")
    address = recover_signer(args.data, args.signature, args.types, args.hash, args.packed)
    if ctx.quiet:
        return 0
    print(address.hex())
    return 0


def _common_options() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    suppress = argparse.SUPPRESS
    common.add_argument(
        "--quiet",
        action="store_true",
        default=suppress,
        help="do not generate any output, but return a 0 exit code on success and 1 on failure",
    )
    common.add_argument(
        "--verbose", action="store_true", default=suppress, help="generate additional output where appropriate"
    )
    common.add_argument(
        "--offline", action="store_true", default=suppress, help="print the transaction a hex string and do not send it"
    )
    common.add_argument(
        "--connection", default=suppress, help="the IPC or RPC path to an Ethereum node"
    )
    common.add_argument(
        "--timeout",
        type=_parse_duration,
        default=suppress,
        help="the time after which a network request will be deemed to have failed",
    )
    common.add_argument(
        "--chainid", type=int, default=suppress, help="the chain ID of the network (only required when offline)"
    )
    return common


def _build_parser() -> argparse.ArgumentParser:
    common = _common_options()
    parser = argparse.ArgumentParser(
        prog=PROGRAM,
        description="Manage common Ethereum tasks from the command line.",
        parents=[common],
    )
    groups = parser.add_subparsers(dest="group")

    def group(name: str, summary: str, aliases: Sequence[str] = ()) -> argparse._SubParsersAction:
        sub = groups.add_parser(name, aliases=list(aliases), help=summary, description=summary, parents=[common])
        sub.set_defaults(help_parser=sub)
        return sub.add_subparsers(dest="command")

    def command(subs, group_name: str, name: str, summary: str, handler, aliases: Sequence[str] = ()):
        sub = subs.add_parser(name, aliases=list(aliases), help=summary, description=summary, parents=[common])
        sub.set_defaults(
            handler=handler, path=command_path([PROGRAM, group_name, name]), help_parser=sub
        )
        return sub

    account = group("account", "Manage accounts", aliases=["acc"])
    checksum = command(account, "account", "checksum", "Generate or verify the checksum for an account", _account_checksum)
    checksum.add_argument("--address", default="", help="Address of the account for which to verify the checksum")
    checksum.add_argument("--check", action="store_true", help="Check only; do not print the correctly-checksummed address")

    block = group("block", "Manage blocks")
    info = command(block, "block", "info", "Obtain information about a block", _block_info)
    info.add_argument("--block", default="", help="block hash or number, or 'latest'")
    info.add_argument("--transactions", action="store_true", help="Display hashes of all block transactions")
    overview = command(block, "block", "overview", "Obtain overview about recent blocks", _block_overview)
    overview.add_argument("--blocks", type=int, default=5, help="Number of blocks to show")
    overview.add_argument("--block", default="", help="block hash or number, or 'latest'")

    contract = group("contract", "Manage contracts")
    call = command(contract, "contract", "call", "Call a contract method", _contract_call)
    call.add_argument("--contract", default="", help="address of the contract")
    call.add_argument("--abi", default="", help="ABI, or path to ABI, for the contract")
    call.add_argument("--name", default="", help="Name of the contract")
    call.add_argument("--from", dest="from_address", default="", help="Address from which to call the contract method")
    call.add_argument("--call", default="", help="Contract method to call")
    call.add_argument("--returns", default="", help="Comma-separated return types")

    gas = group("gas", "Manage gas")
    price = command(gas, "gas", "price", "Calculate an expected gas price", _gas_price)
    price.add_argument("--wei", action="store_true", help="Display output in number of Wei")
    price.add_argument("--blocks", type=int, default=5, help="Number of blocks to go back to average gas price")
    price.add_argument("--lowest", action="store_true", help="Lowest inclusion price over the blocks")

    network = group("network", "Network information")
    for name, summary, handler in (
        ("gps", "Obtain gas-per-second", _network_gps),
        ("tps", "Obtain transactions-per-second", _network_tps),
    ):
        sub = command(network, "network", name, summary, handler)
        sub.add_argument("--blocks", type=int, default=5, help="Number of blocks to use")
        sub.add_argument("--network", default="", help="network hash or number")

    signature = group("signature", "Manage signatures", aliases=["sig"])
    for name, summary, handler in (
        ("sign", "Sign data", _signature_sign),
        ("signer", "Signer of a signature", _signature_signer),
        ("verify", "Verify a signature", _signature_signer),
    ):
        sub = command(signature, "signature", name, summary, handler)
        sub.add_argument("--data", default="", help="the data")
        sub.add_argument("--types", default="", help="Comma-separated list of data types")
        sub.add_argument("--hash", default="", help="hash the message prior to signing")
        sub.add_argument("--packed", action="store_true", help="use Solidity packed encoding")
        if name == "sign":
            sub.add_argument("--signer", default="", help="Address of the account to sign the data")
            sub.add_argument("--privatekey", default="", help="Private key to sign the data")
            sub.add_argument("--passphrase", default="", help="passphrase for the signing account")
        else:
            sub.add_argument("--signature", default="", help="Hex string signature from which to obtain the signer")
    return parser


def _context(args: argparse.Namespace) -> _Context:
    quiet = getattr(args, "quiet", False)
    verbose = getattr(args, "verbose", False)
    offline = getattr(args, "offline", False) or args.path in OFFLINE_COMMANDS
    if quiet and verbose:
        fail("Cannot supply both quiet and verbose flags")
    chain_id = getattr(args, "chainid", 0)
    client = None
    if not offline:
        client = Client(
            getattr(args, "connection", DEFAULT_CONNECTION),
            timeout=getattr(args, "timeout", DEFAULT_TIMEOUT),
        )
        with _failing("Failed to obtain chain ID"):
            chain_id = client.network_id()
    return _Context(quiet, verbose, offline, chain_id, client)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    handler = getattr(args, "handler", None)
    if handler is None:
        getattr(args, "help_parser", parser).print_help()
        return 0
    quiet = getattr(args, "quiet", False)
    try:
        return handler(_context(args), args)
    except CommandError as exc:
        if not quiet:
            print(exc.message, file=sys.stderr)
        return exc.exit_code


if __name__ == "__main__":
    sys.exit(main())