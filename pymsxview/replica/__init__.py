"""Client-side replica of the remote machine state."""

from __future__ import annotations

from .buffer import (
    REPLICA_CAPACITY,
    ByteReplica,
    PatchError,
    PatchFormatError,
    PatchRangeError,
    parse_patch,
)
from .hashing import fingerprint, fingerprint_int
from .model import (
    ModelFormatError,
    ProgramEntry,
    Register,
    Status,
    program_from_json,
    program_to_json,
    sort_program,
)
from .store import MEMORY, REGIONS, VIDEO, ReplicaStore, StoreEvent

__all__ = [
    "REPLICA_CAPACITY",
    "MEMORY",
    "REGIONS",
    "VIDEO",
    "ByteReplica",
    "ModelFormatError",
    "PatchError",
    "PatchFormatError",
    "PatchRangeError",
    "ProgramEntry",
    "Register",
    "ReplicaStore",
    "Status",
    "StoreEvent",
    "fingerprint",
    "fingerprint_int",
    "parse_patch",
    "program_from_json",
    "program_to_json",
    "sort_program",
]
