"""Lightweight history buffer of replica synchronisation events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Sequence

from .debug import debug_log


@dataclass
class SyncEntry:
    kind: str
    region: str
    entries: int
    changed: int
    pc: int | None
    fingerprint: str
    accepted: bool = True
    note: str = ""


class SyncRecorder:
    """Ring buffer that stores the most recent replica mutations."""

    def __init__(self, capacity: int = 256) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._entries: List[SyncEntry | None] = [None] * capacity
        self._index = 0
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def record(
        self,
        kind: str,
        region: str,
        *,
        entries: int = 0,
        changed: int = 0,
        pc: int | None = None,
        fingerprint: str = "",
        accepted: bool = True,
        note: str = "",
    ) -> None:
        entry = SyncEntry(
            kind=kind,
            region=region,
            entries=max(entries, 0),
            changed=max(changed, 0),
            pc=None if pc is None else pc & 0xFFFF,
            fingerprint=fingerprint,
            accepted=accepted,
            note=note,
        )
        self._append(entry)

    def entries(self, limit: int | None = None) -> Iterable[SyncEntry]:
        count = self._size if limit is None else min(self._size, max(limit, 0))
        for offset in range(count):
            index = (self._index - count + offset) % self._capacity
            entry = self._entries[index]
            if entry is not None:
                yield entry

    def last_entry(self) -> SyncEntry | None:
        if self._size == 0:
            return None
        index = (self._index - 1) % self._capacity
        return self._entries[index]

    def format_entries(self, limit: int | None = None) -> Sequence[str]:
        lines: list[str] = []
        for entry in self.entries(limit):
            pc = "----" if entry.pc is None else f"{entry.pc:04X}"
            flags: list[str] = []
            if not entry.accepted:
                flags.append("REJECTED")
            if entry.note:
                flags.append(entry.note)
            flag_repr = ",".join(flags) if flags else "-"
            line = (
                f"{entry.kind:<6} {entry.region:<7} pc={pc} entries={entry.entries:05d} "
                f"changed={entry.changed:05d} hash={entry.fingerprint or '-'} flags={flag_repr}"
            )
            lines.append(line)
        return lines

    def dump(self, category: str, limit: int | None = None) -> None:
        for line in self.format_entries(limit):
            debug_log(category, line)

    def _append(self, entry: SyncEntry) -> None:
        self._entries[self._index] = entry
        self._index = (self._index + 1) % self._capacity
        if self._size < self._capacity:
            self._size += 1
