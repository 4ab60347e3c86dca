"""Unit tests for server-side patch computation."""

from __future__ import annotations

import pytest

from pymsxview.remote import DeltaTracker, diff_patch
from pymsxview.replica import ByteReplica, fingerprint


def test_unchanged_buffer_yields_empty_patch() -> None:
    tracker = DeltaTracker()
    replica = ByteReplica("memory")

    assert tracker.delta(replica.fingerprint(), bytes(0x10000)) == {}


def test_known_fingerprint_gets_only_changed_addresses() -> None:
    tracker = DeltaTracker()
    replica = ByteReplica("memory")
    current = bytearray(0x10000)
    current[0x10] = 0xFF
    current[0x20] = 0x41

    patch = tracker.delta(replica.fingerprint(), bytes(current))

    assert patch == {"16": 0xFF, "32": 0x41}
    replica.apply_delta(patch)
    assert replica.snapshot() == bytes(current)
    assert tracker.delta(replica.fingerprint(), bytes(current)) == {}


def test_unknown_fingerprint_gets_full_buffer() -> None:
    tracker = DeltaTracker(capacity=16)
    current = bytes(range(16))

    patch = tracker.delta("12345", current)

    assert len(patch) == 16
    assert patch["15"] == 15


def test_missing_fingerprint_uses_last_sent_buffer() -> None:
    tracker = DeltaTracker(capacity=4)
    tracker.delta(None, bytes([1, 0, 0, 0]))

    patch = tracker.delta(None, bytes([1, 2, 0, 0]))

    assert patch == {"1": 2}
    assert tracker.last_sent == fingerprint(bytes([1, 2, 0, 0]))


def test_history_is_bounded() -> None:
    tracker = DeltaTracker(capacity=4, history=2)
    first = fingerprint(bytes(4))
    tracker.delta(first, bytes([1, 0, 0, 0]))
    tracker.delta(None, bytes([2, 0, 0, 0]))

    patch = tracker.delta(first, bytes([3, 0, 0, 0]))

    assert len(patch) == 4


def test_short_buffers_are_zero_padded() -> None:
    tracker = DeltaTracker(capacity=8)
    replica = ByteReplica("vram", capacity=8)

    patch = tracker.delta(replica.fingerprint(), bytes([0, 7]))
    replica.apply_delta(patch)

    assert patch == {"1": 7}
    assert tracker.last_sent == replica.fingerprint()


def test_forget_restarts_from_zero_buffer() -> None:
    tracker = DeltaTracker(capacity=4)
    tracker.delta(None, bytes([5, 5, 5, 5]))

    tracker.forget()

    assert tracker.last_sent == fingerprint(bytes(4))


def test_diff_patch() -> None:
    assert diff_patch(bytes([1, 2, 3]), bytes([1, 9, 3, 4])) == {"1": 9, "3": 4}


def test_history_must_be_positive() -> None:
    with pytest.raises(ValueError):
        DeltaTracker(history=0)
