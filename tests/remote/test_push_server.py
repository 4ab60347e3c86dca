"""End-to-end tests for the push server and the push transport."""

from __future__ import annotations

import json
import socket

import pytest

from pymsxview.remote import PushServer, RemoteSession
from pymsxview.replica import ReplicaStore
from pymsxview.transport import PushTransport
from tests.machine_fixtures import SCRATCH_BASE, FakeMachine, pump_until


@pytest.fixture
def machine():
    return FakeMachine()


@pytest.fixture
def session(machine):
    return RemoteSession(machine)


@pytest.fixture
def server(session):
    server = PushServer(("127.0.0.1", 0), session)
    server.start_background()
    yield server
    server.shutdown()
    server.server_close()


@pytest.fixture
def store():
    return ReplicaStore()


@pytest.fixture
def transport(server, store):
    host, port = server.server_address[:2]
    transport = PushTransport.connect(store, host, port)
    yield transport
    transport.close()


def _raw_exchange(server, payload: bytes) -> dict:
    with socket.create_connection(server.server_address[:2], timeout=2.0) as channel:
        channel.sendall(payload)
        return json.loads(channel.makefile("rb").readline())


def test_refresh_loads_every_structure(transport, store, machine) -> None:
    machine.memory_data[0x10] = 0xFF
    machine.vram_data[0x20] = 0x41

    transport.refresh()

    assert pump_until(transport, lambda: store.video[0x20] == 0x41 and store.memory[0x10] == 0xFF)
    assert store.status.program_counter == 0x4000
    assert [entry.mnemonic for entry in store.program] == ["nop", "ret"]


def test_step_pushes_status_and_memory_follows(transport, store) -> None:
    transport.refresh()
    assert pump_until(transport, lambda: store.status is not None and len(store.program) == 2)

    transport.send_step()

    assert pump_until(transport, lambda: store.memory[SCRATCH_BASE + 1] == 1)
    assert store.status.program_counter == 0x4001


def test_reset_is_broadcast_to_connected_clients(transport, store, session) -> None:
    transport.request_status()
    assert pump_until(transport, lambda: store.status is not None)

    session.reset()

    assert pump_until(transport, lambda: store.status.program_counter == 0)


def test_reconnect_rebuilds_replicas(transport, store, machine) -> None:
    store.apply_delta("memory", {"5": 5})
    machine.memory_data[0x30] = 0x30

    transport.reconnect()

    assert pump_until(transport, lambda: store.memory[0x30] == 0x30)
    assert store.memory[5] == 0
    assert store.error is None


def test_unknown_request_type(server) -> None:
    reply = _raw_exchange(server, b'{"type": "warp"}\n')

    assert reply == {"type": "error", "data": "unknown_type:warp"}


def test_invalid_json_request(server) -> None:
    assert _raw_exchange(server, b"{oops\n") == {"type": "error", "data": "invalid_json"}
    assert _raw_exchange(server, b"[1, 2]\n") == {"type": "error", "data": "invalid_request"}


def test_machine_error_becomes_error_event(server, machine) -> None:
    machine.fail = True

    reply = _raw_exchange(server, b'{"type": "status"}\n')

    assert reply == {"type": "error", "data": "machine unavailable"}


def test_vram_without_hash_uses_last_pushed_state(server, machine) -> None:
    machine.vram_data[1] = 0x11
    with socket.create_connection(server.server_address[:2], timeout=2.0) as channel:
        reader = channel.makefile("rb")
        channel.sendall(b'{"type": "vram"}\n')
        first = json.loads(reader.readline())
        channel.sendall(b'{"type": "vram"}\n')
        second = json.loads(reader.readline())

    assert first == {"type": "vram", "data": {"1": 0x11}}
    assert second == {"type": "vram", "data": {}}
