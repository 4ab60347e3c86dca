"""Utility helpers for the inspector."""

from .debug import debug_enabled, debug_log
from .trace import SyncEntry, SyncRecorder

__all__ = [
    "debug_enabled",
    "debug_log",
    "SyncEntry",
    "SyncRecorder",
]
