"""Serialised access to one machine shared by the HTTP and push front ends."""

from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List

from pymsxview.replica import REPLICA_CAPACITY, program_to_json
from pymsxview.utils import debug_log

from .delta import DeltaTracker
from .machine import Machine, MachineError

StatusListener = Callable[[Dict[str, Any]], None]


class RemoteSession:
    """Wraps a :class:`Machine` with a lock and per-region delta trackers."""

    def __init__(self, machine: Machine, *, capacity: int = REPLICA_CAPACITY) -> None:
        self._machine = machine
        self._capacity = capacity
        self._lock = threading.RLock()
        self._listeners: List[StatusListener] = []
        self.memory_tracker = DeltaTracker(capacity)
        self.vram_tracker = DeltaTracker(capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def new_trackers(self) -> tuple[DeltaTracker, DeltaTracker]:
        return DeltaTracker(self._capacity), DeltaTracker(self._capacity)

    def status(self) -> Dict[str, Any]:
        with self._lock:
            return self._call(lambda: self._machine.status().to_json())

    def program(self) -> List[Dict[str, Any]]:
        with self._lock:
            return self._call(lambda: program_to_json(self._machine.program()))

    def memory_delta(self, client_fingerprint: str | None, tracker: DeltaTracker | None = None) -> Dict[str, int]:
        tracker = tracker if tracker is not None else self.memory_tracker
        with self._lock:
            current = self._call(self._machine.memory)
            return tracker.delta(client_fingerprint, current)

    def vram_delta(self, client_fingerprint: str | None, tracker: DeltaTracker | None = None) -> Dict[str, int]:
        tracker = tracker if tracker is not None else self.vram_tracker
        with self._lock:
            current = self._call(self._machine.vram)
            return tracker.delta(client_fingerprint, current)

    def step(self) -> Dict[str, Any]:
        with self._lock:
            self._call(self._machine.step)
            status = self._call(lambda: self._machine.status().to_json())
        debug_log("remote", "step pc=%04X", status["pc"])
        return status

    def reset(self) -> Dict[str, Any]:
        with self._lock:
            self._call(self._machine.reset)
            status = self._call(lambda: self._machine.status().to_json())
        debug_log("remote", "reset pc=%04X", status["pc"])
        self._broadcast(status)
        return status

    def add_status_listener(self, listener: StatusListener) -> Callable[[], None]:
        with self._lock:
            self._listeners.append(listener)

        def remove() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return remove

    def _broadcast(self, status: Dict[str, Any]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(status)
            except (OSError, ValueError) as exc:
                debug_log("remote", "status push failed: %s", exc)

    def _call(self, func: Callable[[], Any]) -> Any:
        try:
            return func()
        except MachineError:
            raise
        except (OSError, ValueError) as exc:
            raise MachineError(str(exc)) from exc


__all__ = ["RemoteSession", "StatusListener"]
