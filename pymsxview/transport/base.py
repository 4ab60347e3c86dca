"""Transport interface shared by the polling and push strategies."""

from __future__ import annotations

from typing import Any, Callable

from pymsxview.replica import (
    MEMORY,
    VIDEO,
    ModelFormatError,
    PatchError,
    ReplicaStore,
    Status,
    StoreEvent,
    program_from_json,
)
from pymsxview.utils import debug_log


class TransportError(RuntimeError):
    """Raised when a request fails, times out or the channel is gone."""


class ProtocolError(ValueError):
    """Raised for messages with an unknown type or a malformed payload."""


EVENT_TYPES = ("status", "program", MEMORY, VIDEO)


def apply_event(store: ReplicaStore, kind: str, data: Any) -> None:
    """Turn one decoded wire event into exactly one store mutation."""

    try:
        if kind == "status":
            store.apply_status(Status.from_json(data))
        elif kind == "program":
            store.apply_program(program_from_json(data))
        elif kind in (MEMORY, VIDEO):
            if isinstance(data, list):
                store.apply_full(kind, data)
            elif isinstance(data, dict):
                store.apply_delta(kind, data)
            else:
                raise ProtocolError(f"{kind} payload must be an object or a list, got {type(data).__name__}")
        else:
            raise ProtocolError(f"unknown event type {kind!r}")
    except (ModelFormatError, PatchError) as exc:
        raise ProtocolError(f"malformed {kind} payload: {exc}") from exc


class Transport:
    """Turns replica intents into wire messages and responses into mutations.

    Results are only applied inside :meth:`pump`, which the owner calls from
    its event loop, so every store mutation happens on one thread.
    """

    name = "transport"

    def __init__(self, store: ReplicaStore, *, follow_program_counter: bool = True) -> None:
        self._store = store
        self._closed = False
        self._unsubscribe: Callable[[], None] | None = None
        if follow_program_counter:
            self._unsubscribe = store.subscribe(self._on_store_event)

    @property
    def store(self) -> ReplicaStore:
        return self._store

    @property
    def closed(self) -> bool:
        return self._closed

    def request_status(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def request_program(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def request_memory_sync(self, fingerprint: str | None = None) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def request_video_sync(self, fingerprint: str | None = None) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def send_step(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def send_reset(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    def pump(self, timeout: float = 0.0) -> int:  # pragma: no cover - interface
        raise NotImplementedError

    def refresh(self) -> None:
        """Clear the sticky error and re-request every tracked structure."""

        self._store.clear_error()
        self.request_status()
        self.request_program()
        self.request_memory_sync()
        self.request_video_sync()

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._closed = True

    def _dispatch(self, kind: str, data: Any) -> bool:
        """Apply one event; protocol violations are logged and dropped."""

        try:
            apply_event(self._store, kind, data)
        except ProtocolError as exc:
            debug_log("transport", "%s: dropped %s event: %s", self.name, kind, exc)
            return False
        return True

    def _fail(self, message: str) -> None:
        debug_log("transport", "%s: %s", self.name, message)
        self._store.set_error(message)

    def _on_store_event(self, event: StoreEvent) -> None:
        if event.pc_changed and not self._closed:
            debug_log("transport", "%s: pc %s -> %s, syncing memory", self.name, event.previous_pc, event.pc)
            self.request_memory_sync()


__all__ = ["EVENT_TYPES", "ProtocolError", "Transport", "TransportError", "apply_event"]
