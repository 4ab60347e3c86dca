"""Dense byte replicas of the remote memory and video regions.

A replica mirrors a fixed-size address space of the remote machine. It is only
ever changed wholesale (``apply_full``) or by merging a sparse patch
(``apply_delta``); patches are validated completely before the first byte is
written so a rejected patch leaves the replica untouched.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from .hashing import fingerprint

REPLICA_CAPACITY = 0x10000


class PatchError(ValueError):
    """Raised when a delta patch cannot be applied to a replica."""


class PatchFormatError(PatchError):
    """Raised for non-numeric addresses or values outside 0-255."""


class PatchRangeError(PatchError, IndexError):
    """Raised when a patch addresses a byte outside the replica."""


def _parse_int(value: Any, what: str) -> int:
    if isinstance(value, bool):
        raise PatchFormatError(f"{what} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        digits = text[1:] if text.startswith("-") else text
        # ASCII digits only; str.isdigit alone admits "²"
        if digits.isascii() and digits.isdigit():
            return int(text, 10)
    raise PatchFormatError(f"{what} must be an integer, got {value!r}")


def parse_patch(patch: Mapping[Any, Any], capacity: int = REPLICA_CAPACITY) -> Dict[int, int]:
    """Validate ``patch`` and return it with integer keys and values.

    JSON objects carry addresses as base-10 strings, so both ``"16"`` and
    ``16`` are accepted as keys. Nothing is returned unless every entry is
    valid.
    """

    if not isinstance(patch, Mapping):
        raise PatchFormatError(f"patch must be a mapping, got {type(patch).__name__}")
    parsed: Dict[int, int] = {}
    for raw_address, raw_value in patch.items():
        address = _parse_int(raw_address, "address")
        value = _parse_int(raw_value, f"value at {address}")
        if not 0 <= value <= 0xFF:
            raise PatchFormatError(f"value {value} at address {address:#06x} outside 0-255")
        if not 0 <= address < capacity:
            raise PatchRangeError(f"address {address} outside replica 0x0000-{capacity - 1:#06x}")
        parsed[address] = value
    return parsed


def parse_full(buffer: Iterable[Any]) -> bytes:
    """Validate a full buffer received as a sequence of integers."""

    if isinstance(buffer, (bytes, bytearray, memoryview)):
        return bytes(buffer)
    values = []
    for index, raw in enumerate(buffer):
        value = _parse_int(raw, f"value at {index}")
        if not 0 <= value <= 0xFF:
            raise PatchFormatError(f"value {value} at address {index:#06x} outside 0-255")
        values.append(value)
    return bytes(values)


class ByteReplica:
    """Fixed-capacity, zero-initialised mirror of a remote byte region."""

    def __init__(self, name: str, capacity: int = REPLICA_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.name = name
        self._capacity = capacity
        self._data = bytearray(capacity)

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return self._capacity

    def __getitem__(self, address: int) -> int:
        return self._data[address]

    def read(self, start: int, length: int) -> bytes:
        if start < 0 or length < 0:
            raise IndexError("start and length must be non-negative")
        return bytes(self._data[start : start + length])

    def snapshot(self) -> bytes:
        """Return an immutable copy of the replica contents."""

        return bytes(self._data)

    def fingerprint(self) -> str:
        return fingerprint(self._data)

    def apply_full(self, buffer: bytes | bytearray | Iterable[int]) -> int:
        """Replace the contents wholesale and return how many bytes changed.

        Short buffers are zero-padded and long ones truncated to capacity.
        """

        payload = parse_full(buffer)[: self._capacity]
        replacement = bytearray(self._capacity)
        replacement[: len(payload)] = payload
        changed = sum(1 for old, new in zip(self._data, replacement) if old != new)
        self._data = replacement
        return changed

    def apply_delta(self, patch: Mapping[Any, Any]) -> int:
        """Merge ``patch`` and return how many bytes changed value."""

        parsed = parse_patch(patch, self._capacity)
        changed = 0
        data = self._data
        for address, value in parsed.items():
            if data[address] != value:
                data[address] = value
                changed += 1
        return changed

    def clear(self) -> None:
        self._data = bytearray(self._capacity)


__all__ = [
    "REPLICA_CAPACITY",
    "ByteReplica",
    "PatchError",
    "PatchFormatError",
    "PatchRangeError",
    "parse_full",
    "parse_patch",
]
