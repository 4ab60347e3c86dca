"""Unit tests for the dense byte replicas."""

from __future__ import annotations

import pytest

from pymsxview.replica import (
    REPLICA_CAPACITY,
    ByteReplica,
    PatchError,
    PatchFormatError,
    PatchRangeError,
    parse_patch,
)


def test_replica_starts_zero_filled() -> None:
    replica = ByteReplica("memory")

    assert len(replica) == REPLICA_CAPACITY
    assert replica.snapshot() == bytes(REPLICA_CAPACITY)


def test_apply_delta_writes_only_addressed_bytes() -> None:
    replica = ByteReplica("memory")

    changed = replica.apply_delta({0x10: 0xFF, 0x20: 0x41})

    assert changed == 2
    assert replica[0x10] == 0xFF
    assert replica[0x20] == 0x41
    expected = bytearray(REPLICA_CAPACITY)
    expected[0x10] = 0xFF
    expected[0x20] = 0x41
    assert replica.snapshot() == bytes(expected)


def test_apply_delta_accepts_json_string_keys() -> None:
    replica = ByteReplica("memory")

    replica.apply_delta({"16": 255, "65535": 1})

    assert replica[16] == 255
    assert replica[0xFFFF] == 1


def test_empty_patch_is_a_noop() -> None:
    replica = ByteReplica("memory")
    replica.apply_delta({0: 1, 1: 2})
    before = replica.snapshot()

    assert replica.apply_delta({}) == 0
    assert replica.snapshot() == before


def test_out_of_range_patch_is_atomic() -> None:
    replica = ByteReplica("memory")
    before = replica.snapshot()

    with pytest.raises(PatchRangeError):
        replica.apply_delta({0x0001: 0x12, REPLICA_CAPACITY: 0x34})

    assert replica.snapshot() == before


def test_negative_address_is_a_range_error() -> None:
    replica = ByteReplica("memory")

    with pytest.raises(PatchRangeError):
        replica.apply_delta({"-1": 0})
    with pytest.raises(IndexError):
        replica.apply_delta({-5: 0})


@pytest.mark.parametrize(
    "patch",
    [
        {"abc": 1},
        {1: 256},
        {1: -1},
        {1: "x"},
        {1: True},
        {1.5: 2},
        {"\u00b2": 1},
        {"\u0663": 1},
        {1: "\u00b9"},
        {"-": 1},
    ],
)
def test_malformed_patch_is_rejected_without_mutation(patch) -> None:
    replica = ByteReplica("memory")
    replica.apply_delta({1: 7})
    before = replica.snapshot()

    with pytest.raises(PatchFormatError):
        replica.apply_delta({0: 9, **patch})

    assert replica.snapshot() == before


def test_patch_errors_share_a_base_class() -> None:
    assert issubclass(PatchFormatError, PatchError)
    assert issubclass(PatchRangeError, PatchError)
    assert issubclass(PatchError, ValueError)


def test_parse_patch_rejects_non_mapping() -> None:
    with pytest.raises(PatchFormatError):
        parse_patch([1, 2, 3])  # type: ignore[arg-type]


def test_apply_full_pads_and_truncates() -> None:
    replica = ByteReplica("vram", capacity=8)

    assert replica.apply_full([1, 2, 3]) == 3
    assert replica.snapshot() == bytes([1, 2, 3, 0, 0, 0, 0, 0])

    replica.apply_full(bytes(range(10)))
    assert replica.snapshot() == bytes(range(8))


def test_apply_full_rejects_bad_values() -> None:
    replica = ByteReplica("memory", capacity=4)
    replica.apply_full([1, 1, 1, 1])

    with pytest.raises(PatchFormatError):
        replica.apply_full([1, 300])

    assert replica.snapshot() == bytes([1, 1, 1, 1])


def test_fingerprint_tracks_contents() -> None:
    replica = ByteReplica("memory")
    empty = replica.fingerprint()

    replica.apply_delta({0: 1})
    assert replica.fingerprint() != empty

    replica.apply_delta({0: 0})
    assert replica.fingerprint() == empty


def test_snapshot_is_a_copy() -> None:
    replica = ByteReplica("memory", capacity=4)
    snapshot = replica.snapshot()

    replica.apply_delta({0: 5})

    assert snapshot == bytes(4)
    assert replica.read(0, 2) == bytes([5, 0])
