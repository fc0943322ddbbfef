import pytest

from ethereal.chain import NonceTracker, command_path, derive_chain_id, is_protected_v
from ethereal.errors import CommandError


class _Fetcher:
    def __init__(self, value):
        self.value = value
        self.calls = []

    def __call__(self, address):
        self.calls.append(address)
        return self.value


def test_current_fetches_once_and_caches():
    fetcher = _Fetcher(5)
    tracker = NonceTracker(fetcher)
    assert tracker.current("a") == 5
    assert tracker.current("a") == 5
    assert fetcher.calls == ["a"]


def test_explicit_nonce_skips_fetch():
    fetcher = _Fetcher(99)
    tracker = NonceTracker(fetcher, nonce=3)
    assert tracker.current("a") == 3
    assert fetcher.calls == []


def test_next_increments_after_fetch():
    fetcher = _Fetcher(5)
    tracker = NonceTracker(fetcher)
    first = tracker.next("a")
    second = tracker.next("a")
    assert first == 6
    assert second == first + 1
    assert tracker.current("a") == second
    assert len(fetcher.calls) == 1


def test_fetch_failure_is_reported():
    def broken(address):
        raise OSError("down")

    tracker = NonceTracker(broken)
    with pytest.raises(CommandError, match="failed to obtain nonce for acct: down"):
        tracker.current("acct")
    assert tracker.nonce == -1


def test_fetch_failure_formats_address_bytes():
    def broken(address):
        raise OSError("down")

    tracker = NonceTracker(broken)
    with pytest.raises(CommandError) as info:
        tracker.next(bytes.fromhex("5ffc014343cd971b7eb70732021e26c35b744cc4"))
    assert "0x5FfC014343cd971B7eb70732021E26C35B744cc4" in info.value.message


@pytest.mark.parametrize("v", [27, 28])
def test_unprotected_v_has_no_chain_id(v):
    assert derive_chain_id(v) == 0
    assert not is_protected_v(v)


@pytest.mark.parametrize("chain_id", [1, 3, 4, 1337, 2**40, 2**64, 2**80])
def test_chain_id_round_trip(chain_id):
    for parity in (0, 1):
        v = chain_id * 2 + 35 + parity
        assert derive_chain_id(v) == chain_id
        assert is_protected_v(v)


def test_other_small_v_is_protected():
    assert is_protected_v(0)
    assert is_protected_v(255)
    assert is_protected_v(256)


def test_command_path_drops_program_name():
    assert command_path(["ethereal", "account", "checksum"]) == "account:checksum"
    assert command_path(["ethereal", "signature", "sign"]) == "signature:sign"


def test_command_path_single_level():
    assert command_path(["ethereal", "account"]) == "account"
    assert command_path(["ethereal"]) == "ethereal"


def test_command_path_other_root_kept():
    assert command_path(["root", "a", "b"]) == "root:a:b"


def test_command_path_empty():
    with pytest.raises(ValueError):
        command_path([])