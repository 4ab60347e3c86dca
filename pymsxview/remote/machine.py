"""Interface every backend served by the remote bridge implements."""

from __future__ import annotations

from typing import Protocol, Sequence

from pymsxview.replica import ProgramEntry, Status


class MachineError(RuntimeError):
    """Raised when the emulated machine cannot answer a query or command."""


class Machine(Protocol):
    """Remote machine as seen by the bridge: queries plus step/reset."""

    def status(self) -> Status:
        ...

    def program(self) -> Sequence[ProgramEntry]:
        ...

    def memory(self) -> bytes:
        ...

    def vram(self) -> bytes:
        ...

    def step(self) -> None:
        ...

    def reset(self) -> None:
        ...


__all__ = ["Machine", "MachineError"]
