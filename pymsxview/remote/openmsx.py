"""openMSX backend speaking the XML control protocol over its Unix socket.

openMSX writes ``<openmsx-output>`` once a client connects and answers every
``<command>`` with ``<reply result="ok|nok">text</reply>``; ``<log>`` and
``<update>`` elements may be interleaved and are skipped.
"""

from __future__ import annotations

import getpass
import socket
import tempfile
from collections import deque
from pathlib import Path
from typing import Deque, List, Sequence, Tuple
from xml.etree.ElementTree import Element, ParseError, XMLPullParser
from xml.sax.saxutils import escape

from pymsxview.replica import REPLICA_CAPACITY, ProgramEntry, Register, Status
from pymsxview.utils import debug_log

from .machine import MachineError

REGISTER_NAMES: Tuple[str, ...] = ("pc", "sp", "a", "f", "b", "c", "d", "e", "h", "l")
DEFAULT_LISTING_LENGTH = 32
_RECV_CHUNK = 65536


class OpenMsxError(MachineError):
    """Raised for ``nok`` replies or a broken control connection."""


def split_tcl_list(text: str) -> List[str]:
    """Split a Tcl list into its elements (braces and quotes group words)."""

    items: List[str] = []
    index = 0
    length = len(text)
    while index < length:
        while index < length and text[index].isspace():
            index += 1
        if index >= length:
            break
        char = text[index]
        if char == "{":
            depth = 1
            start = index + 1
            index += 1
            while index < length and depth:
                if text[index] == "{":
                    depth += 1
                elif text[index] == "}":
                    depth -= 1
                index += 1
            if depth:
                raise OpenMsxError(f"unbalanced braces in {text!r}")
            items.append(text[start : index - 1])
        elif char == '"':
            end = text.find('"', index + 1)
            if end < 0:
                raise OpenMsxError(f"unterminated quote in {text!r}")
            items.append(text[index + 1 : end])
            index = end + 1
        else:
            start = index
            while index < length and not text[index].isspace():
                index += 1
            items.append(text[start:index])
    return items


def _parse_register(text: str) -> int:
    cleaned = text.strip().lower()
    if cleaned.startswith("0x"):
        return int(cleaned[2:], 16)
    return int(cleaned, 10)


def _parse_byte(token: str) -> int:
    cleaned = token.strip().lower()
    if cleaned.startswith("0x"):
        cleaned = cleaned[2:]
    elif cleaned.startswith("#") or cleaned.startswith("$"):
        cleaned = cleaned[1:]
    value = int(cleaned, 16)
    if not 0 <= value <= 0xFF:
        raise ValueError(f"byte {token!r} out of range")
    return value


class OpenMsxConnection:
    """Request/reply client for one openMSX control socket."""

    def __init__(self, channel: socket.socket) -> None:
        self._channel = channel
        self._parser = XMLPullParser(events=("start", "end"))
        self._pending: Deque[Tuple[str, Element]] = deque()
        self._wait_for_output()
        self._channel.sendall(b"<openmsx-control>\n")

    @classmethod
    def open(cls, path: Path | str) -> "OpenMsxConnection":
        channel = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            channel.connect(str(path))
        except OSError as exc:
            channel.close()
            raise OpenMsxError(f"cannot connect to openMSX at {path}: {exc}") from exc
        return cls(channel)

    def command(self, command: str) -> str:
        debug_log("openmsx", "sent command: %s", command)
        try:
            self._channel.sendall(f"<command>{escape(command)}</command>\n".encode("utf-8"))
        except OSError as exc:
            raise OpenMsxError(f"openMSX connection lost: {exc}") from exc

        result: str | None = None
        while True:
            event, element = self._next_event()
            if element.tag != "reply":
                if event == "end":
                    element.clear()
                continue
            if event == "start":
                result = element.get("result")
                if result is None:
                    raise OpenMsxError("result attribute is undefined")
                continue
            data = element.text or ""
            element.clear()
            debug_log("openmsx", "reply: %s. %s", result, data[:120])
            if result == "ok":
                return data
            raise OpenMsxError(f"openMSX error: {data.strip()}")

    def close(self) -> None:
        try:
            self._channel.close()
        except OSError as exc:
            debug_log("openmsx", "close failed: %s", exc)

    def _wait_for_output(self) -> None:
        while True:
            event, element = self._next_event()
            if event == "start" and element.tag == "openmsx-output":
                debug_log("openmsx", "openMSX is ready.")
                return

    def _next_event(self) -> Tuple[str, Element]:
        while not self._pending:
            try:
                chunk = self._channel.recv(_RECV_CHUNK)
            except OSError as exc:
                raise OpenMsxError(f"openMSX connection lost: {exc}") from exc
            if not chunk:
                raise OpenMsxError("openMSX closed the control connection")
            try:
                self._parser.feed(chunk)
                self._pending.extend(self._parser.read_events())
            except ParseError as exc:
                raise OpenMsxError(f"malformed openMSX output: {exc}") from exc
        return self._pending.popleft()


class OpenMsxMachine:
    """:class:`~pymsxview.remote.machine.Machine` backed by a running openMSX."""

    def __init__(
        self,
        connection: OpenMsxConnection,
        *,
        registers: Sequence[str] = REGISTER_NAMES,
        listing_length: int = DEFAULT_LISTING_LENGTH,
        capacity: int = REPLICA_CAPACITY,
    ) -> None:
        self._connection = connection
        self._registers = tuple(registers)
        self._listing_length = listing_length
        self._capacity = capacity

    def status(self) -> Status:
        values = []
        for name in self._registers:
            reply = self._connection.command(f"reg {name}")
            try:
                values.append(Register(name, _parse_register(reply)))
            except ValueError as exc:
                raise OpenMsxError(f"register {name} returned {reply!r}") from exc
        pc = next((register.value for register in values if register.name == "pc"), 0)
        return Status(pc, tuple(values))

    def program(self) -> List[ProgramEntry]:
        address = self.status().program_counter
        entries: List[ProgramEntry] = []
        for _ in range(self._listing_length):
            reply = self._connection.command(f"debug disasm {address}")
            items = split_tcl_list(reply)
            if not items:
                raise OpenMsxError(f"empty disassembly at {address:#06x}")
            try:
                raw = bytes(_parse_byte(token) for token in items[1:])
            except ValueError as exc:
                raise OpenMsxError(f"malformed disassembly {reply!r}") from exc
            entries.append(ProgramEntry(address, raw.hex(" "), " ".join(items[0].split())))
            address = (address + max(len(raw), 1)) & 0xFFFF
        return entries

    def memory(self) -> bytes:
        return self._read_block("memory", self._capacity)

    def vram(self) -> bytes:
        size = int(self._connection.command("debug size VRAM").strip())
        return self._read_block("VRAM", min(size, self._capacity))

    def step(self) -> None:
        self._connection.command("debug step")

    def reset(self) -> None:
        self._connection.command("reset")

    def _read_block(self, debuggable: str, size: int) -> bytes:
        reply = self._connection.command(f"binary encode hex [debug read_block {debuggable} 0 {size}]")
        try:
            return bytes.fromhex(reply.strip())
        except ValueError as exc:
            raise OpenMsxError(f"{debuggable} dump is not hex") from exc


def find_socket(root: Path | None = None, user: str | None = None) -> Path:
    """Locate the control socket openMSX creates under the temp directory."""

    base = root if root is not None else Path(tempfile.gettempdir())
    username = user if user is not None else getpass.getuser()
    prefix = f"openmsx-{username}"
    for entry in sorted(base.rglob(f"{prefix}*")):
        if not entry.is_dir():
            continue
        for candidate in sorted(entry.iterdir()):
            if candidate.name.startswith("socket."):
                return candidate
    raise OpenMsxError("Socket file not found.")


__all__ = [
    "DEFAULT_LISTING_LENGTH",
    "OpenMsxConnection",
    "OpenMsxError",
    "OpenMsxMachine",
    "REGISTER_NAMES",
    "find_socket",
    "split_tcl_list",
]
