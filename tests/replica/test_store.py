"""Unit tests for the replica store."""

from __future__ import annotations

import dataclasses

import pytest

from pymsxview.replica import (
    MEMORY,
    VIDEO,
    PatchRangeError,
    ProgramEntry,
    Register,
    ReplicaStore,
    Status,
)


def _status(pc: int) -> Status:
    return Status(pc, (Register("pc", pc), Register("a", 0x12)))


def test_memory_and_video_are_independent() -> None:
    store = ReplicaStore()

    store.apply_delta(MEMORY, {0x10: 0xFF})

    assert store.memory[0x10] == 0xFF
    assert store.video[0x10] == 0x00
    assert store.current_fingerprint(MEMORY) != store.current_fingerprint(VIDEO)


def test_status_events_report_program_counter_changes() -> None:
    store = ReplicaStore()
    events = []
    store.subscribe(events.append)

    store.apply_status(_status(0x4000))
    store.apply_status(_status(0x4000))
    store.apply_status(_status(0x4001))

    assert [event.pc_changed for event in events] == [True, False, True]
    assert events[0].previous_pc is None
    assert events[2].previous_pc == 0x4000


def test_unsubscribe_stops_notifications() -> None:
    store = ReplicaStore()
    events = []
    unsubscribe = store.subscribe(events.append)

    unsubscribe()
    store.apply_delta(MEMORY, {0: 1})

    assert events == []


def test_program_is_sorted_and_immutable() -> None:
    store = ReplicaStore()

    store.apply_program(
        [
            ProgramEntry(0x4002, "c9", "ret"),
            ProgramEntry(0x4000, "3e 01", "ld a,1"),
        ]
    )

    program = store.snapshot_program()
    assert [entry.address for entry in program] == [0x4000, 0x4002]
    assert isinstance(program, tuple)
    with pytest.raises(dataclasses.FrozenInstanceError):
        program[0].address = 0  # type: ignore[misc]


def test_rejected_delta_is_recorded_and_reraised() -> None:
    store = ReplicaStore()
    events = []
    store.subscribe(events.append)

    with pytest.raises(PatchRangeError):
        store.apply_delta(MEMORY, {0: 1, 0x10000: 2})

    assert store.memory[0] == 0
    assert events == []
    last = store.recorder.last_entry()
    assert last is not None
    assert not last.accepted
    assert last.note == "PatchRangeError"


def test_delta_records_changed_count_and_fingerprint() -> None:
    store = ReplicaStore()

    changed = store.apply_delta(MEMORY, {0: 1, 1: 0})

    assert changed == 1
    last = store.recorder.last_entry()
    assert last is not None
    assert last.entries == 2
    assert last.changed == 1
    assert last.fingerprint == store.current_fingerprint(MEMORY)


def test_sticky_error_until_cleared() -> None:
    store = ReplicaStore()
    store.apply_delta(MEMORY, {0: 1})

    store.set_error("GET /api/memory failed")
    store.apply_delta(MEMORY, {1: 2})

    assert store.error == "GET /api/memory failed"
    assert store.memory[0] == 1
    store.clear_error()
    assert store.error is None


def test_reset_replicas_zeroes_both_buffers() -> None:
    store = ReplicaStore()
    store.apply_delta(MEMORY, {0: 1})
    store.apply_delta(VIDEO, {0: 2})

    store.reset_replicas()

    assert store.snapshot(MEMORY) == bytes(0x10000)
    assert store.snapshot(VIDEO) == bytes(0x10000)


def test_unknown_region_is_rejected() -> None:
    store = ReplicaStore()

    with pytest.raises(ValueError):
        store.apply_delta("rom", {0: 1})


def test_status_from_json_round_trip() -> None:
    payload = {"pc": 0x4010, "registers": [{"name": "pc", "value": 0x4010}, {"name": "sp", "value": 0xF380}]}

    status = Status.from_json(payload)

    assert status.program_counter == 0x4010
    assert status.register("SP") == 0xF380
    assert status.to_json() == payload


def test_regions_report_their_first_sync() -> None:
    store = ReplicaStore()
    assert not store.is_synced(MEMORY)

    with pytest.raises(PatchRangeError):
        store.apply_delta(MEMORY, {0x10000: 1})
    assert not store.is_synced(MEMORY)

    store.apply_delta(MEMORY, {})
    store.apply_full(VIDEO, [1])
    assert store.is_synced(MEMORY)
    assert store.is_synced(VIDEO)

    store.reset_replicas()
    assert not store.is_synced(MEMORY)
    assert not store.is_synced(VIDEO)
    with pytest.raises(ValueError):
        store.is_synced("palette")
