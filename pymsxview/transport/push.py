"""Persistent push channel transport (newline-delimited JSON over TCP)."""

from __future__ import annotations

import json
import queue
import selectors
import socket
import threading
from typing import Any, Dict, List, Optional

import requests

from pymsxview.replica import MEMORY, VIDEO, ReplicaStore
from pymsxview.utils import debug_log

from .base import Transport, TransportError
from .polling import DEFAULT_TIMEOUT

_RECV_CHUNK = 65536
MAX_LINE_BYTES = 8 * 1024 * 1024


def encode_message(kind: str, data: Any = None) -> bytes:
    message: Dict[str, Any] = {"type": kind}
    if data is not None:
        message["data"] = data
    return json.dumps(message, separators=(",", ":")).encode("utf-8") + b"\n"


class PushTransport(Transport):
    """Typed intents out, typed events in, over one long-lived channel.

    The channel is read without blocking from :meth:`pump` only, so events
    are applied on the caller's thread strictly in arrival order. A closed
    channel is reported through the store's sticky error and is not retried;
    :meth:`reconnect` opens a fresh one and resynchronises everything.
    """

    name = "push"

    def __init__(
        self,
        store: ReplicaStore,
        channel: socket.socket,
        *,
        base_url: str | None = None,
        address: tuple[str, int] | None = None,
        session: Any = None,
        timeout: float = DEFAULT_TIMEOUT,
        follow_program_counter: bool = True,
    ) -> None:
        super().__init__(store, follow_program_counter=follow_program_counter)
        self._base_url = None if base_url is None else base_url.rstrip("/")
        self._address = address
        self._session = session
        self._timeout = timeout
        self._channel: Optional[socket.socket] = None
        self._selector: Optional[selectors.BaseSelector] = None
        self._buffer = bytearray()
        self._results: "queue.Queue[tuple[str, Any]]" = queue.Queue()
        self._reset_worker: threading.Thread | None = None
        self._attach(channel)

    @classmethod
    def connect(
        cls,
        store: ReplicaStore,
        host: str,
        port: int,
        *,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
        **kwargs: Any,
    ) -> "PushTransport":
        channel = _open_channel((host, port), timeout)
        return cls(store, channel, base_url=base_url, address=(host, port), timeout=timeout, **kwargs)

    # ------------------------------------------------------------------
    # Capabilities

    def request_status(self) -> None:
        self._send("status")

    def request_program(self) -> None:
        self._send("program")

    def request_memory_sync(self, fingerprint: str | None = None) -> None:
        token = fingerprint if fingerprint is not None else self._store.current_fingerprint(MEMORY)
        self._send(MEMORY, {"hash": token})

    def request_video_sync(self, fingerprint: str | None = None) -> None:
        # The remote tracks what it already pushed on this channel; an explicit
        # fingerprint is only sent when the caller supplies one.
        self._send(VIDEO, None if fingerprint is None else {"hash": fingerprint})

    def send_step(self) -> None:
        self._send("step")

    def send_reset(self) -> None:
        """Reset is a one-shot HTTP request run off the caller's thread.

        Its status reply is queued and applied by :meth:`pump` like any
        pushed event.
        """

        if self._base_url is None:
            self._fail("reset unavailable: no HTTP endpoint configured")
            return
        if self._session is None:
            self._session = requests.Session()
        self._reset_worker = threading.Thread(target=self._reset_exchange, name="pymsxview-reset", daemon=True)
        self._reset_worker.start()

    def _reset_exchange(self) -> None:
        url = f"{self._base_url}/api/reset"
        try:
            response = self._session.post(url, timeout=self._timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            self._results.put(("error", f"POST /api/reset failed: {exc}"))
            return
        except ValueError as exc:
            self._results.put(("error", f"POST /api/reset returned invalid JSON: {exc}"))
            return
        self._results.put(("status", payload))

    # ------------------------------------------------------------------
    # Event loop integration

    def pump(self, timeout: float = 0.0) -> int:
        applied = self._drain_results()
        if self._channel is None or self._selector is None:
            return applied
        wait = max(timeout, 0.0)
        while self._channel is not None and self._selector.select(wait):
            wait = 0.0
            try:
                chunk = self._channel.recv(_RECV_CHUNK)
            except BlockingIOError:
                break
            except OSError as exc:
                self._lose_channel(f"push channel error: {exc}")
                break
            if not chunk:
                self._lose_channel("push channel closed by remote")
                break
            self._buffer.extend(chunk)
            if len(self._buffer) > MAX_LINE_BYTES and b"\n" not in self._buffer:
                self._buffer.clear()
                debug_log("push", "dropped oversized message")
            for line in self._drain_lines():
                if self._handle_line(line):
                    applied += 1
        return applied

    def reconnect(self) -> None:
        """Open a new channel and rebuild every replica from scratch."""

        if self._address is None:
            raise TransportError("reconnect needs the remote address")
        self._detach()
        self._attach(_open_channel(self._address, self._timeout))
        self._closed = False
        self._store.reset_replicas()
        self._store.clear_error()
        self.request_status()
        self.request_program()
        self.request_memory_sync()
        self.request_video_sync()

    def close(self) -> None:
        super().close()
        self._detach()
        if self._reset_worker is not None:
            self._reset_worker.join(timeout=1.0)
            self._reset_worker = None
        if isinstance(self._session, requests.Session):
            self._session.close()

    # ------------------------------------------------------------------
    # Internals

    def _attach(self, channel: socket.socket) -> None:
        channel.setblocking(False)
        selector = selectors.DefaultSelector()
        selector.register(channel, selectors.EVENT_READ)
        self._channel = channel
        self._selector = selector
        self._buffer.clear()

    def _detach(self) -> None:
        if self._selector is not None:
            self._selector.close()
            self._selector = None
        if self._channel is not None:
            try:
                self._channel.close()
            except OSError as exc:
                debug_log("push", "close failed: %s", exc)
            self._channel = None

    def _lose_channel(self, message: str) -> None:
        self._detach()
        self._fail(message)

    def _send(self, kind: str, data: Any = None) -> None:
        if self._channel is None:
            self._fail(f"cannot send {kind}: push channel is closed")
            return
        payload = encode_message(kind, data)
        debug_log("push", "send %s", payload[:120])
        try:
            self._channel.settimeout(self._timeout)
            self._channel.sendall(payload)
        except OSError as exc:
            self._lose_channel(f"push channel send failed: {exc}")
            return
        finally:
            if self._channel is not None:
                self._channel.setblocking(False)

    def _drain_results(self) -> int:
        applied = 0
        while True:
            try:
                kind, data = self._results.get_nowait()
            except queue.Empty:
                return applied
            if kind == "error":
                self._fail(data)
            elif self._dispatch(kind, data):
                applied += 1

    def _drain_lines(self) -> List[bytes]:
        lines: List[bytes] = []
        while True:
            index = self._buffer.find(b"\n")
            if index < 0:
                return lines
            line = bytes(self._buffer[:index])
            del self._buffer[: index + 1]
            if line.strip():
                lines.append(line)

    def _handle_line(self, line: bytes) -> bool:
        try:
            message = json.loads(line.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            debug_log("push", "dropped undecodable message: %s", exc)
            return False
        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            debug_log("push", "dropped message without a type: %r", message)
            return False
        kind = message["type"]
        data = message.get("data")
        if kind == "error":
            self._fail(f"remote error: {data}")
            return False
        return self._dispatch(kind, data)


def _open_channel(address: tuple[str, int], timeout: float) -> socket.socket:
    try:
        return socket.create_connection(address, timeout=timeout)
    except OSError as exc:
        raise TransportError(f"cannot open push channel to {address[0]}:{address[1]}: {exc}") from exc


__all__ = ["MAX_LINE_BYTES", "PushTransport", "encode_message"]
