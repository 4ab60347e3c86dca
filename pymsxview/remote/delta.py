"""Server-side computation of the patches sent to replica clients."""

from __future__ import annotations

from collections import OrderedDict
from typing import Dict

from pymsxview.replica import REPLICA_CAPACITY, fingerprint
from pymsxview.utils import debug_log

DEFAULT_HISTORY = 8


def full_patch(current: bytes) -> Dict[str, int]:
    """Every address of ``current``: the always-valid degenerate patch."""

    return {str(address): value for address, value in enumerate(current)}


def diff_patch(previous: bytes, current: bytes) -> Dict[str, int]:
    patch: Dict[str, int] = {}
    for address, value in enumerate(current):
        if address >= len(previous) or previous[address] != value:
            patch[str(address)] = value
    return patch


class DeltaTracker:
    """Remembers recently sent buffers so later requests can get a true diff.

    The history is keyed by fingerprint and starts with the zero-filled buffer
    every fresh replica holds. A client whose fingerprint is unknown gets the
    full buffer.
    """

    def __init__(self, capacity: int = REPLICA_CAPACITY, history: int = DEFAULT_HISTORY) -> None:
        if history <= 0:
            raise ValueError("history must be positive")
        self._capacity = capacity
        self._history_size = history
        self._history: "OrderedDict[str, bytes]" = OrderedDict()
        self._last_sent: str | None = None
        self._remember(bytes(capacity))

    @property
    def last_sent(self) -> str | None:
        """Fingerprint of the buffer the client holds after the last patch."""

        return self._last_sent

    def delta(self, client_fingerprint: str | None, current: bytes) -> Dict[str, int]:
        current = self._normalise(current)
        token = client_fingerprint if client_fingerprint is not None else self._last_sent
        ours = fingerprint(current)
        if token == ours:
            patch: Dict[str, int] = {}
        else:
            known = self._history.get(token) if token is not None else None
            if known is None:
                debug_log("remote", "fingerprint %s unknown, sending full buffer", token)
                patch = full_patch(current)
            else:
                patch = diff_patch(known, current)
        self._remember(current, ours)
        return patch

    def forget(self) -> None:
        self._history.clear()
        self._last_sent = None
        self._remember(bytes(self._capacity))

    def _normalise(self, current: bytes) -> bytes:
        data = bytes(current[: self._capacity])
        if len(data) < self._capacity:
            data += bytes(self._capacity - len(data))
        return data

    def _remember(self, data: bytes, token: str | None = None) -> None:
        token = token if token is not None else fingerprint(data)
        self._history[token] = data
        self._history.move_to_end(token)
        while len(self._history) > self._history_size:
            self._history.popitem(last=False)
        self._last_sent = token


__all__ = ["DEFAULT_HISTORY", "DeltaTracker", "diff_patch", "full_patch"]
