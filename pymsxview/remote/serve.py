"""Command-line entry point for the remote bridge.

Serves one openMSX instance over the polling HTTP API and the push channel::

    python -m pymsxview.remote.serve --port 8000 --push-port 8765
"""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import uvicorn

from .api_server import create_api_server
from .openmsx import DEFAULT_LISTING_LENGTH, OpenMsxConnection, OpenMsxError, OpenMsxMachine, find_socket
from .push_server import PushServer
from .session import RemoteSession


@dataclass
class ServeConfig:
    """Runtime configuration of the remote bridge."""

    host: str = "127.0.0.1"
    port: int = 8000
    push_port: Optional[int] = 8765
    socket_path: Optional[Path] = None
    listing_length: int = DEFAULT_LISTING_LENGTH


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pymsxview-serve",
        description="Expose an openMSX instance to the pymsxview inspector",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    parser.add_argument("--port", type=int, default=8000, help="HTTP port (default: 8000)")
    parser.add_argument(
        "--push-port",
        type=int,
        default=8765,
        help="Push channel port, 0 disables it (default: 8765)",
    )
    parser.add_argument(
        "--socket",
        type=Path,
        help="openMSX control socket (default: discovered under the temp directory)",
    )
    parser.add_argument(
        "--listing",
        type=int,
        default=DEFAULT_LISTING_LENGTH,
        help=f"Instructions disassembled from PC (default: {DEFAULT_LISTING_LENGTH})",
    )
    return parser


def config_from_args(args: argparse.Namespace) -> ServeConfig:
    return ServeConfig(
        host=args.host,
        port=args.port,
        push_port=args.push_port or None,
        socket_path=args.socket,
        listing_length=args.listing,
    )


def serve(config: ServeConfig) -> None:
    socket_path = config.socket_path if config.socket_path is not None else find_socket()
    connection = OpenMsxConnection.open(socket_path)
    session = RemoteSession(OpenMsxMachine(connection, listing_length=config.listing_length))

    push_server: PushServer | None = None
    if config.push_port is not None:
        push_server = PushServer((config.host, config.push_port), session)
        push_server.start_background()
    try:
        uvicorn.run(create_api_server(session), host=config.host, port=config.port)
    finally:
        if push_server is not None:
            push_server.shutdown()
            push_server.server_close()
        connection.close()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        serve(config_from_args(args))
    except OpenMsxError as exc:
        parser.exit(1, f"pymsxview-serve: {exc}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
