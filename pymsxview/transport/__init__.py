"""Transport strategies that keep the replica store in sync with the remote."""

from __future__ import annotations

from typing import Any

from pymsxview.replica import ReplicaStore

from .base import EVENT_TYPES, ProtocolError, Transport, TransportError, apply_event
from .polling import PollingTransport
from .push import PushTransport, encode_message

TRANSPORT_KINDS = ("polling", "push")


def create_transport(
    kind: str,
    store: ReplicaStore,
    *,
    base_url: str,
    push_host: str = "127.0.0.1",
    push_port: int = 8765,
    **kwargs: Any,
) -> Transport:
    """Build the single transport strategy used for a session."""

    if kind == "polling":
        return PollingTransport(store, base_url, **kwargs)
    if kind == "push":
        return PushTransport.connect(store, push_host, push_port, base_url=base_url, **kwargs)
    raise ValueError(f"Invalid transport: {kind}")


__all__ = [
    "EVENT_TYPES",
    "TRANSPORT_KINDS",
    "PollingTransport",
    "ProtocolError",
    "PushTransport",
    "Transport",
    "TransportError",
    "apply_event",
    "create_transport",
    "encode_message",
]
