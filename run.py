"""Command-line entry point for the pymsxview inspector.

Connects to a remote bridge started with ``python -m pymsxview.remote.serve``
and opens the pygame inspector window.
"""

from __future__ import annotations

import argparse
import sys

from pymsxview.transport import TRANSPORT_KINDS
from pymsxview.ui.app import AppConfig, InspectorApp


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="run.py",
        description="Remote MSX machine inspector",
    )
    parser.add_argument(
        "--url",
        default="http://127.0.0.1:8000",
        help="Base URL of the remote bridge HTTP API (default: http://127.0.0.1:8000)",
    )
    parser.add_argument(
        "--transport",
        choices=TRANSPORT_KINDS,
        default="polling",
        help="Synchronisation strategy (default: polling)",
    )
    parser.add_argument(
        "--push-host",
        default="127.0.0.1",
        help="Push channel host (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--push-port",
        type=int,
        default=8765,
        help="Push channel port (default: 8765)",
    )
    parser.add_argument(
        "--columns",
        type=int,
        default=16,
        help="Bytes per hex view row (default: 16)",
    )
    parser.add_argument(
        "--rows",
        type=int,
        default=40,
        help="Visible hex view rows (default: 40)",
    )
    parser.add_argument(
        "--font-size",
        type=int,
        default=14,
        help="Font size in points (default: 14)",
    )
    parser.add_argument(
        "--fullscreen",
        action="store_true",
        help="Open the inspector fullscreen",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    if args.columns <= 0:
        parser.error("--columns must be positive")
    if args.rows <= 0:
        parser.error("--rows must be positive")

    config = AppConfig(
        base_url=args.url,
        transport=args.transport,
        push_host=args.push_host,
        push_port=args.push_port,
        columns=args.columns,
        visible_rows=args.rows,
        font_size=args.font_size,
        fullscreen=args.fullscreen,
    )
    app = InspectorApp(config)
    try:
        app.run()
    except RuntimeError as exc:
        parser.exit(1, f"run.py: {exc}\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
