"""Rendering helpers for replica buffers."""

from __future__ import annotations

from .hexdump import DEFAULT_COLUMNS, DiffRenderer, HexCell, HexLayout, HexRow, render_hexdump

__all__ = [
    "DEFAULT_COLUMNS",
    "DiffRenderer",
    "HexCell",
    "HexLayout",
    "HexRow",
    "render_hexdump",
]
