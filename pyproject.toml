[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ethereal"
version = "1.0.0"
description = "Command-line tool and library for common Ethereum tasks: address checksums, ABI values, message signatures and chain statistics"
requires-python = ">=3.10"
keywords = [
    "ethereum",
    "cli",
    "abi",
    "checksum",
    "signature",
    "secp256k1",
    "keccak",
    "gas",
    "json-rpc",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial",
    "Topic :: Security :: Cryptography",
    "Topic :: Utilities",
]
dependencies = [
    "pycryptodome",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
ethereal = "ethereal.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["ethereal"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
