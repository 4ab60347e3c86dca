"""Wholesale-replaced structures: CPU status and the program listing."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Tuple


class ModelFormatError(ValueError):
    """Raised when a status or program payload has an unexpected shape."""


def _require_int(payload: Mapping[str, Any], key: str) -> int:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise ModelFormatError(f"{key!r} must be an integer, got {value!r}")
    return value


@dataclass(frozen=True)
class Register:
    name: str
    value: int

    def to_json(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value}


@dataclass(frozen=True)
class Status:
    """Program counter plus the ordered register file of the remote CPU."""

    program_counter: int
    registers: Tuple[Register, ...] = ()

    @classmethod
    def from_json(cls, payload: Any) -> "Status":
        if not isinstance(payload, Mapping):
            raise ModelFormatError(f"status must be an object, got {type(payload).__name__}")
        pc = _require_int(payload, "pc")
        raw_registers = payload.get("registers", [])
        if not isinstance(raw_registers, list):
            raise ModelFormatError("'registers' must be a list")
        registers = []
        for raw in raw_registers:
            if not isinstance(raw, Mapping) or not isinstance(raw.get("name"), str):
                raise ModelFormatError(f"malformed register entry {raw!r}")
            registers.append(Register(raw["name"], _require_int(raw, "value")))
        return cls(pc, tuple(registers))

    def to_json(self) -> Dict[str, Any]:
        return {
            "pc": self.program_counter,
            "registers": [register.to_json() for register in self.registers],
        }

    def register(self, name: str) -> int | None:
        lowered = name.lower()
        for register in self.registers:
            if register.name.lower() == lowered:
                return register.value
        return None


@dataclass(frozen=True)
class ProgramEntry:
    """One decoded instruction as reported by the remote disassembler."""

    address: int
    raw_hex: str
    mnemonic: str

    @classmethod
    def from_json(cls, payload: Any) -> "ProgramEntry":
        if not isinstance(payload, Mapping):
            raise ModelFormatError(f"program entry must be an object, got {payload!r}")
        address = _require_int(payload, "address")
        raw_hex = payload.get("hexcontents", "")
        mnemonic = payload.get("instruction", "")
        if not isinstance(raw_hex, str) or not isinstance(mnemonic, str):
            raise ModelFormatError(f"malformed program entry {payload!r}")
        return cls(address, raw_hex, mnemonic)

    def to_json(self) -> Dict[str, Any]:
        return {"address": self.address, "hexcontents": self.raw_hex, "instruction": self.mnemonic}


def program_from_json(payload: Any) -> Tuple[ProgramEntry, ...]:
    if not isinstance(payload, list):
        raise ModelFormatError(f"program must be a list, got {type(payload).__name__}")
    return sort_program(ProgramEntry.from_json(item) for item in payload)


def sort_program(entries: Iterable[ProgramEntry]) -> Tuple[ProgramEntry, ...]:
    return tuple(sorted(entries, key=lambda entry: entry.address))


def program_to_json(entries: Iterable[ProgramEntry]) -> List[Dict[str, Any]]:
    return [entry.to_json() for entry in entries]


__all__ = [
    "ModelFormatError",
    "ProgramEntry",
    "Register",
    "Status",
    "program_from_json",
    "program_to_json",
    "sort_program",
]
