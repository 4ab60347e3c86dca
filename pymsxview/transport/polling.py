"""Request/response transport gated by content fingerprints."""

from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from pymsxview.replica import MEMORY, VIDEO, ReplicaStore
from pymsxview.utils import debug_log

from .base import Transport, TransportError

DEFAULT_TIMEOUT = 5.0


@dataclass
class _Request:
    kind: str
    method: str
    path: str
    params: Optional[Dict[str, str]] = None


class PollingTransport(Transport):
    """One HTTP exchange per capability against the ``/api`` endpoints.

    Requests run on a single worker thread unless ``background`` is false, in
    which case they run inline. Either way responses are queued and only
    applied to the store by :meth:`pump`.
    """

    name = "polling"

    def __init__(
        self,
        store: ReplicaStore,
        base_url: str,
        *,
        session: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        background: bool = True,
        follow_program_counter: bool = True,
    ) -> None:
        super().__init__(store, follow_program_counter=follow_program_counter)
        self._base_url = base_url.rstrip("/")
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._results: "queue.Queue[tuple[str, Any]]" = queue.Queue()
        self._jobs: "queue.Queue[_Request | None]" = queue.Queue()
        self._worker: threading.Thread | None = None
        if background:
            self._worker = threading.Thread(target=self._run_worker, name="pymsxview-polling", daemon=True)
            self._worker.start()

    # ------------------------------------------------------------------
    # Capabilities

    def request_status(self) -> None:
        self._submit(_Request("status", "GET", "/api/status"))

    def request_program(self) -> None:
        self._submit(_Request("program", "GET", "/api/program"))

    def request_memory_sync(self, fingerprint: str | None = None) -> None:
        token = fingerprint if fingerprint is not None else self._store.current_fingerprint(MEMORY)
        self._submit(_Request(MEMORY, "GET", "/api/memory", {"hash": token}))

    def request_video_sync(self, fingerprint: str | None = None) -> None:
        token = fingerprint if fingerprint is not None else self._store.current_fingerprint(VIDEO)
        self._submit(_Request(VIDEO, "GET", "/api/vram", {"hash": token}))

    def send_step(self) -> None:
        self._submit(_Request("status", "POST", "/api/step"))

    def send_reset(self) -> None:
        self._submit(_Request("status", "POST", "/api/reset"))

    # ------------------------------------------------------------------
    # Event loop integration

    def pump(self, timeout: float = 0.0) -> int:
        applied = 0
        block = timeout > 0
        while True:
            try:
                kind, data = self._results.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                return applied
            block = False
            if kind == "error":
                self._fail(data)
                continue
            if self._dispatch(kind, data):
                applied += 1

    def close(self) -> None:
        super().close()
        if self._worker is not None:
            self._jobs.put(None)
            self._worker.join(timeout=1.0)
            self._worker = None
        if isinstance(self._session, requests.Session):
            self._session.close()

    # ------------------------------------------------------------------
    # Internals

    def _submit(self, request: _Request) -> None:
        if self._closed:
            self._fail(f"{request.method} {request.path}: transport closed")
            return
        if self._worker is None:
            self._execute(request)
        else:
            self._jobs.put(request)

    def _run_worker(self) -> None:
        while True:
            request = self._jobs.get()
            if request is None:
                break
            self._execute(request)

    def _execute(self, request: _Request) -> None:
        try:
            payload = self._exchange(request)
        except TransportError as exc:
            self._results.put(("error", str(exc)))
            return
        self._results.put((request.kind, payload))

    def _exchange(self, request: _Request) -> Any:
        url = f"{self._base_url}{request.path}"
        debug_log("transport", "%s %s params=%s", request.method, url, request.params)
        try:
            if request.method == "GET":
                response = self._session.get(url, params=request.params, timeout=self._timeout)
            else:
                response = self._session.post(url, timeout=self._timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise TransportError(f"{request.method} {request.path} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"{request.method} {request.path} returned invalid JSON: {exc}") from exc


__all__ = ["DEFAULT_TIMEOUT", "PollingTransport"]
