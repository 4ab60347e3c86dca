"""Hex/ASCII layout of a byte buffer with changed-byte highlighting.

``render_hexdump`` is a pure function of the current buffer and an optional
previous one. ``DiffRenderer`` keeps the previous buffer between calls and
hands out the first changed address once per batch of new data so a view can
scroll to it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import FrozenSet, Sequence, Tuple

DEFAULT_COLUMNS = 16


def ascii_char(value: int) -> str:
    return chr(value) if 32 <= value <= 126 else "."


@dataclass(frozen=True)
class HexCell:
    address: int
    value: int
    changed: bool = False

    @property
    def hex(self) -> str:
        return f"{self.value:02x}"

    @property
    def char(self) -> str:
        return ascii_char(self.value)


@dataclass(frozen=True)
class HexRow:
    address: int
    label: str
    cells: Tuple[HexCell, ...]

    @property
    def hex_text(self) -> str:
        return " ".join(cell.hex for cell in self.cells)

    @property
    def ascii_text(self) -> str:
        return "".join(cell.char for cell in self.cells)

    @property
    def has_change(self) -> bool:
        return any(cell.changed for cell in self.cells)

    def format(self) -> str:
        return f"{self.label}  {self.hex_text}  {self.ascii_text}"


@dataclass
class HexLayout:
    columns: int
    rows: Tuple[HexRow, ...]
    changed: FrozenSet[int] = frozenset()
    first_change: int | None = None
    _scroll_pending: bool = field(default=False, repr=False)

    def row_index(self, address: int) -> int:
        if address < 0:
            raise IndexError(f"address {address} is negative")
        return address // self.columns

    def take_scroll_target(self) -> int | None:
        """Return the first changed address once, then ``None``."""

        if not self._scroll_pending:
            return None
        self._scroll_pending = False
        return self.first_change

    @property
    def scroll_pending(self) -> bool:
        return self._scroll_pending

    def lines(self, start_row: int = 0, count: int | None = None) -> list[str]:
        end = len(self.rows) if count is None else min(len(self.rows), start_row + max(count, 0))
        return [row.format() for row in self.rows[max(start_row, 0) : end]]


def _address_width(length: int) -> int:
    return max(4, len(f"{max(length - 1, 0):x}"))


def render_hexdump(
    current: Sequence[int] | bytes,
    previous: Sequence[int] | bytes | None = None,
    columns: int = DEFAULT_COLUMNS,
) -> HexLayout:
    """Lay ``current`` out in rows of ``columns`` bytes, marking changes."""

    if columns <= 0:
        raise ValueError("columns must be positive")
    data = bytes(current)
    before = None if previous is None else bytes(previous)
    width = _address_width(len(data))

    changed: set[int] = set()
    if before is not None:
        limit = min(len(data), len(before))
        if data[:limit] != before[:limit]:
            changed = {index for index in range(limit) if data[index] != before[index]}

    rows = []
    for start in range(0, len(data), columns):
        chunk = data[start : start + columns]
        cells = tuple(
            HexCell(start + offset, value, (start + offset) in changed)
            for offset, value in enumerate(chunk)
        )
        rows.append(HexRow(start, f"{start:0{width}x}", cells))

    first_change = min(changed) if changed else None
    return HexLayout(
        columns=columns,
        rows=tuple(rows),
        changed=frozenset(changed),
        first_change=first_change,
        _scroll_pending=first_change is not None,
    )


class DiffRenderer:
    """Stateful renderer that diffs each new buffer against the last one."""

    def __init__(self, columns: int = DEFAULT_COLUMNS) -> None:
        if columns <= 0:
            raise ValueError("columns must be positive")
        self._columns = columns
        self._snapshot: bytes | None = None
        self._layout: HexLayout | None = None

    @property
    def columns(self) -> int:
        return self._columns

    @property
    def snapshot(self) -> bytes | None:
        return self._snapshot

    def render(self, current: Sequence[int] | bytes) -> HexLayout:
        data = bytes(current)
        if self._layout is not None and data == self._snapshot:
            return self._layout
        layout = render_hexdump(data, self._snapshot, self._columns)
        self._snapshot = data
        self._layout = layout
        return layout

    def reset(self) -> None:
        """Forget the snapshot; the next render shows no highlighting."""

        self._snapshot = None
        self._layout = None


__all__ = [
    "DEFAULT_COLUMNS",
    "DiffRenderer",
    "HexCell",
    "HexLayout",
    "HexRow",
    "ascii_char",
    "render_hexdump",
]
