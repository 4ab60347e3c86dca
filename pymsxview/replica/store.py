"""Replica store: the single owner of the client-side mirror of the remote."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Mapping, Tuple

from pymsxview.utils import SyncRecorder, debug_log

from .buffer import REPLICA_CAPACITY, ByteReplica, PatchError
from .model import ProgramEntry, Status, sort_program

MEMORY = "memory"
VIDEO = "vram"
REGIONS = (MEMORY, VIDEO)


@dataclass(frozen=True)
class StoreEvent:
    """Notification delivered to subscribers after a successful mutation."""

    kind: str
    changed: int = 0
    previous_pc: int | None = None
    pc: int | None = None

    @property
    def pc_changed(self) -> bool:
        return self.kind == "status" and self.previous_pc != self.pc


StoreListener = Callable[[StoreEvent], None]


class ReplicaStore:
    """Holds status, program listing and the memory/video replicas.

    Readers get immutable snapshots; mutation goes through ``apply_*`` only.
    """

    def __init__(self, capacity: int = REPLICA_CAPACITY, *, recorder: SyncRecorder | None = None) -> None:
        self._replicas = {
            MEMORY: ByteReplica(MEMORY, capacity),
            VIDEO: ByteReplica(VIDEO, capacity),
        }
        self._status: Status | None = None
        self._program: Tuple[ProgramEntry, ...] = ()
        self._listeners: List[StoreListener] = []
        self._error: str | None = None
        self._synced: set[str] = set()
        self.recorder = recorder if recorder is not None else SyncRecorder(512)

    # ------------------------------------------------------------------
    # Read access

    @property
    def memory(self) -> ByteReplica:
        return self._replicas[MEMORY]

    @property
    def video(self) -> ByteReplica:
        return self._replicas[VIDEO]

    @property
    def status(self) -> Status | None:
        return self._status

    @property
    def program(self) -> Tuple[ProgramEntry, ...]:
        return self._program

    @property
    def error(self) -> str | None:
        return self._error

    def replica(self, region: str) -> ByteReplica:
        try:
            return self._replicas[region]
        except KeyError:
            raise ValueError(f"unknown replica region {region!r}") from None

    def snapshot_status(self) -> Status | None:
        return self._status

    def snapshot_program(self) -> Tuple[ProgramEntry, ...]:
        return self._program

    def snapshot(self, region: str) -> bytes:
        return self.replica(region).snapshot()

    def current_fingerprint(self, region: str = MEMORY) -> str:
        return self.replica(region).fingerprint()

    def is_synced(self, region: str) -> bool:
        """True once ``region`` has taken a sync since creation or the last reset."""

        self.replica(region)
        return region in self._synced

    # ------------------------------------------------------------------
    # Mutation

    def apply_status(self, status: Status) -> None:
        previous = self._status
        self._status = status
        previous_pc = None if previous is None else previous.program_counter
        self.recorder.record("status", "cpu", pc=status.program_counter)
        debug_log("sync", "status pc=%04X previous=%s", status.program_counter, previous_pc)
        self._notify(StoreEvent("status", previous_pc=previous_pc, pc=status.program_counter))

    def apply_program(self, entries: Iterable[ProgramEntry]) -> None:
        self._program = sort_program(entries)
        self.recorder.record("program", "cpu", entries=len(self._program), pc=self._current_pc())
        debug_log("sync", "program entries=%d", len(self._program))
        self._notify(StoreEvent("program", changed=len(self._program), pc=self._current_pc()))

    def apply_full(self, region: str, buffer: bytes | bytearray | Iterable[int]) -> int:
        replica = self.replica(region)
        try:
            changed = replica.apply_full(buffer)
        except PatchError as exc:
            self._reject("full", region, exc)
            raise
        self._synced.add(region)
        self.recorder.record(
            "full",
            region,
            entries=replica.capacity,
            changed=changed,
            pc=self._current_pc(),
            fingerprint=replica.fingerprint(),
        )
        debug_log("sync", "%s full changed=%d", region, changed)
        self._notify(StoreEvent(region, changed=changed, pc=self._current_pc()))
        return changed

    def apply_delta(self, region: str, patch: Mapping[Any, Any]) -> int:
        replica = self.replica(region)
        try:
            changed = replica.apply_delta(patch)
        except PatchError as exc:
            self._reject("delta", region, exc, entries=len(patch) if isinstance(patch, Mapping) else 0)
            raise
        self._synced.add(region)
        self.recorder.record(
            "delta",
            region,
            entries=len(patch),
            changed=changed,
            pc=self._current_pc(),
            fingerprint=replica.fingerprint(),
        )
        debug_log("sync", "%s delta entries=%d changed=%d", region, len(patch), changed)
        self._notify(StoreEvent(region, changed=changed, pc=self._current_pc()))
        return changed

    def reset_replicas(self) -> None:
        """Zero both replicas so the next sync rebuilds them from scratch."""

        for replica in self._replicas.values():
            replica.clear()
        self._synced.clear()
        self.recorder.record("clear", "all", pc=self._current_pc())

    def set_error(self, message: str) -> None:
        self._error = message
        debug_log("sync", "sticky error: %s", message)
        self._notify(StoreEvent("error"))

    def clear_error(self) -> None:
        if self._error is None:
            return
        self._error = None
        self._notify(StoreEvent("error"))

    # ------------------------------------------------------------------
    # Subscriptions

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, event: StoreEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    def _reject(self, kind: str, region: str, exc: Exception, *, entries: int = 0) -> None:
        debug_log("sync", "%s %s rejected: %s", region, kind, exc)
        self.recorder.record(
            kind,
            region,
            entries=entries,
            pc=self._current_pc(),
            accepted=False,
            note=type(exc).__name__,
        )

    def _current_pc(self) -> int | None:
        return None if self._status is None else self._status.program_counter


__all__ = ["MEMORY", "REGIONS", "VIDEO", "ReplicaStore", "StoreEvent", "StoreListener"]
