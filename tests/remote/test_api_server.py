"""HTTP endpoint tests for the remote bridge."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from pymsxview.remote import RemoteSession, create_api_server
from pymsxview.replica import ByteReplica
from tests.machine_fixtures import SCRATCH_BASE, FakeMachine


@pytest.fixture
def machine():
    return FakeMachine()


@pytest.fixture
def test_client(machine):
    return TestClient(create_api_server(RemoteSession(machine)))


def test_status(test_client) -> None:
    response = test_client.get("/api/status")

    assert response.status_code == 200
    assert response.json() == {
        "pc": 0x4000,
        "registers": [{"name": "pc", "value": 0x4000}, {"name": "a", "value": 0}],
    }


def test_program_uses_wire_keys(test_client) -> None:
    response = test_client.get("/api/program")

    assert response.json()[0] == {"address": 0x4001, "hexcontents": "c9", "instruction": "ret"}


def test_memory_unchanged_returns_empty_patch(test_client) -> None:
    replica = ByteReplica("memory")

    response = test_client.get("/api/memory", params={"hash": replica.fingerprint()})

    assert response.json() == {}


def test_step_then_memory_returns_changed_bytes(test_client) -> None:
    replica = ByteReplica("memory")

    status = test_client.post("/api/step").json()
    patch = test_client.get("/api/memory", params={"hash": replica.fingerprint()}).json()

    assert status["pc"] == 0x4001
    assert patch == {str(SCRATCH_BASE + 1): 1}


def test_unknown_hash_returns_full_buffer(test_client) -> None:
    patch = test_client.get("/api/memory", params={"hash": "1"}).json()

    assert len(patch) == 0x10000


def test_vram_is_tracked_separately(test_client, machine) -> None:
    machine.vram_data[3] = 0x20
    replica = ByteReplica("vram")

    patch = test_client.get("/api/vram", params={"hash": replica.fingerprint()}).json()

    assert patch == {"3": 0x20}
    assert test_client.get("/api/memory", params={"hash": replica.fingerprint()}).json() == {}


def test_reset(test_client, machine) -> None:
    test_client.post("/api/step")

    status = test_client.post("/api/reset").json()

    assert status["pc"] == 0
    assert machine.resets == 1


def test_machine_error_maps_to_502(test_client, machine) -> None:
    machine.fail = True

    response = test_client.get("/api/status")

    assert response.status_code == 502
    assert response.json() == {"detail": "machine unavailable"}
