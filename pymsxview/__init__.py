"""Inspector for a remote emulated MSX machine.

The client keeps a replica of the remote CPU status, program listing, memory
and video RAM, synchronised through one of two transports, and renders memory
as a hex view that highlights what changed since the previous frame. The
``remote`` package serves a machine to such clients.
"""

from __future__ import annotations

from . import remote, replica, transport, ui, utils, view

__version__ = "0.1.0"

__all__: list[str] = [
    "replica",
    "transport",
    "view",
    "remote",
    "ui",
    "utils",
]
