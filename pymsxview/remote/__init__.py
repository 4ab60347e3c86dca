"""Remote bridge exposing a machine to replica clients."""

from __future__ import annotations

from .api_server import create_api_server
from .delta import DeltaTracker, diff_patch, full_patch
from .machine import Machine, MachineError
from .openmsx import OpenMsxConnection, OpenMsxError, OpenMsxMachine, find_socket, split_tcl_list
from .push_server import PushServer
from .session import RemoteSession

__all__ = [
    "DeltaTracker",
    "Machine",
    "MachineError",
    "OpenMsxConnection",
    "OpenMsxError",
    "OpenMsxMachine",
    "PushServer",
    "RemoteSession",
    "create_api_server",
    "diff_patch",
    "find_socket",
    "full_patch",
    "split_tcl_list",
]
