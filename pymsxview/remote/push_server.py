"""Push channel server: newline-delimited JSON over TCP."""

from __future__ import annotations

import json
import socketserver
import threading
from typing import Any, Dict

from pymsxview.utils import debug_log

from .machine import MachineError
from .session import RemoteSession


class _PushHandler(socketserver.StreamRequestHandler):
    server: "PushServer"

    def setup(self) -> None:
        super().setup()
        self._write_lock = threading.Lock()
        self._memory_tracker, self._vram_tracker = self.server.session.new_trackers()
        self._remove_listener = self.server.session.add_status_listener(self._push_status)

    def handle(self) -> None:
        while True:
            line = self.rfile.readline()
            if not line:
                break
            if not line.strip():
                continue
            try:
                request = json.loads(line.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError):
                self._send("error", "invalid_json")
                continue
            if not isinstance(request, dict):
                self._send("error", "invalid_request")
                continue
            try:
                self._dispatch(request)
            except MachineError as exc:
                debug_log("remote", "push request %s failed: %s", request.get("type"), exc)
                self._send("error", str(exc))

    def finish(self) -> None:
        self._remove_listener()
        super().finish()

    def _dispatch(self, request: Dict[str, Any]) -> None:
        session = self.server.session
        kind = request.get("type")
        data = request.get("data")
        debug_log("remote", "push request %s", kind)
        if kind == "status":
            self._send("status", session.status())
        elif kind == "program":
            self._send("program", session.program())
        elif kind == "memory":
            token = _hash_of(data, request)
            self._send("memory", session.memory_delta(token, self._memory_tracker))
        elif kind == "vram":
            token = _hash_of(data, request)
            self._send("vram", session.vram_delta(token, self._vram_tracker))
        elif kind == "step":
            self._send("status", session.step())
        else:
            self._send("error", f"unknown_type:{kind}")

    def _push_status(self, status: Dict[str, Any]) -> None:
        self._send("status", status)

    def _send(self, kind: str, data: Any) -> None:
        payload = json.dumps({"type": kind, "data": data}, separators=(",", ":")).encode("utf-8") + b"\n"
        with self._write_lock:
            self.wfile.write(payload)
            self.wfile.flush()


def _hash_of(data: Any, request: Dict[str, Any]) -> str | None:
    if isinstance(data, dict) and data.get("hash") is not None:
        return str(data["hash"])
    if request.get("hash") is not None:
        return str(request["hash"])
    return None


class PushServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True

    def __init__(self, server_address, session: RemoteSession):
        super().__init__(server_address, _PushHandler)
        self.session = session

    def start_background(self) -> threading.Thread:
        thread = threading.Thread(target=self.serve_forever, name="pymsxview-push", daemon=True)
        thread.start()
        return thread


__all__ = ["PushServer"]
