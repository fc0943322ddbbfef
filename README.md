# ethereal

Common Ethereum tasks from the command line, or from Python.

`ethereal` reads chain data from an Ethereum node over JSON-RPC to inspect
blocks, estimate gas prices, measure network throughput and call contract
methods. It works entirely offline for address checksums and for signing
messages and recovering their signers.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Command line

Run

```
ethereal --help
```

to list the command groups, and `ethereal <group> --help` or
`ethereal <group> <command> --help` for the options of each.

| Command | What it does |
| --- | --- |
| `account checksum` (alias `acc`) | Print the checksummed form of `--address`; with `--check` only verify it |
| `block info` | Describe the block given by `--block` (a number, a hash or `latest`); `--transactions` lists transaction hashes |
| `block overview` | One line per recent block (`--blocks`, default 5): gas used/limit, time, gap to the next block, coinbase |
| `contract call` | Call a contract method without sending a transaction: `--contract`, `--from`, `--abi` (JSON text or a path to a JSON file) and `--call`, e.g. `--call="totalSupply()"` |
| `gas price` | Expected inclusion gas price over `--blocks` recent blocks; `--lowest` takes the lowest price instead, `--wei` prints plain Wei |
| `network gps` | Gas used per second over `--blocks` recent blocks |
| `network tps` | Transactions per second over `--blocks` recent blocks |
| `signature sign` (alias `sig`) | Sign `--data` with `--privatekey` and print the 65-byte signature as hex |
| `signature signer`, `signature verify` | Print the address that produced `--signature` over `--data` |

The signature commands also take `--types` (a comma-separated list of
Solidity types for comma-separated `--data` values), `--packed` for packed
encoding, and `--hash=true` or `--hash=false` to force hashing of the data on
or off. `account checksum` and the signature commands never connect to a node.

Options that apply to every command:

- `--quiet` prints nothing and reports the outcome through the exit code
  alone: 0 on success, 1 on failure. For `network gps` and `network tps` a
  network that processed nothing counts as failure.
- `--verbose` prints additional detail where a command has any. `--quiet`
  and `--verbose` cannot be used together.
- `--connection` names the node: an `http://` or `https://` URL, or the path
  of a local IPC socket. The default is `http://localhost:8545/`.
- `--timeout` is how long a request may take, as a duration such as `30s`,
  `1m` or `1m30s`; the default is 30 seconds.
- `--offline` runs without connecting to a node, and `--chainid` gives the
  chain ID to use when offline.

Errors are written to standard error and the command exits with status 1.

## Library

### Addresses

```python
from ethereal.address import checksum_address, is_checksummed, keccak256

checksum_address("0x5ffc014343cd971b7eb70732021e26c35b744cc4")
# '0x5FfC014343cd971B7eb70732021E26C35B744cc4'

is_checksummed("0x5FfC014343cd971B7eb70732021E26C35B744cc4")
# True

keccak256(b"").hex()
# 'c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470'
```

`hex_to_address` parses hex text into 20 bytes and `to_checksum_address`
renders 20 bytes in mixed-case checksummed form.

### ABI values

`ethereal.abitypes` parses Solidity type names and converts between the
command-line text form of a value and its Python form:

```python
from ethereal.abitypes import parse_type, string_to_value, value_to_string

uint = parse_type("uint256")
value = string_to_value(uint, "42")
value_to_string(uint, value)
# '42'
```

`load_abi` reads a contract ABI, given as JSON text or as a path to a JSON
file, into a `ContractAbi` of `AbiMethod` entries. `ContractAbi.method`
looks a method up by name and `ContractAbi.convert_arguments` turns string
arguments into values for it. `parse_invocation` splits a call such as
`transfer(0x..., 10)` into its method name and arguments.

`ethereal.abiencode` provides `encode` (standard ABI encoding),
`encode_packed` (tight packing) and `decode` (standard decoding of return
data). Types may be given as `AbiType` values or as type names.

### Signatures

`ethereal.signature` follows the Ethereum signed-message convention:

- data given with a list of types is encoded as ABI values (packed on
  request) and hashed;
- data that is a hex string is decoded and hashed;
- any other data is used as plain text and is not hashed;
- the hashing choice can be forced either way with `hash_override`;
- the result is prefixed with `"\x19Ethereum Signed Message:\n"` and its
  length, then hashed again to give the digest that is signed.

`prepare_data` and `message_hash` expose these steps. `sign_message`
produces a 65-byte recoverable signature (r, s and a recovery id of 0 or 1)
and `recover_signer` returns the 20-byte address that produced a signature.
`ethereal.secp256k1` holds the curve operations: `private_key_from_hex`,
`sign` (deterministic nonces), `recover_public_key` and
`public_key_to_address`.

### Chain statistics

`ethereal.stats` works on `Block` records, so it can be fed from a node or
from test data:

- `block_gas_price` averages the ninth decile of a block's non-zero gas
  prices, and `lowest_gas_price` picks its lowest non-zero price;
- `estimate_gas_price` combines these over several blocks;
- `gas_per_second` and `transactions_per_second` measure throughput across
  consecutive blocks given newest first;
- `gas_used_percentage` formats gas used against the limit;
- `overview_lines` renders the rows of `block overview`.

### Chain helpers

`ethereal.chain.NonceTracker` keeps the nonce for outgoing transactions,
fetching it on first use. `derive_chain_id` and `is_protected_v` interpret
the V value of a transaction signature, and `command_path` joins command
names into paths such as `account:checksum`.

### Node access

`ethereal.rpc.Client` is a small JSON-RPC client over HTTP(S) or an IPC
socket, with `call` for any method and helpers `block_by_number`,
`block_by_hash`, `network_id` and `pending_nonce_at`. Failures, and errors
reported by the node, raise `RpcError`.

### Errors

Command failures raise `ethereal.errors.CommandError`, whose message is what
the command line shows; `ensure` and `fail` raise it.

## What it does not do

- It does not create or send transactions: there is no Ether transfer,
  contract deployment or state-changing contract call.
- It does not manage wallets or keystores. Accounts cannot be listed, and
  signing takes a private key only; `signature sign` rejects `--passphrase`.
- It does not resolve names: addresses must be given as hex. There is no
  name-service or DNS record support.
- It has no token commands and no account balance or nonce commands.