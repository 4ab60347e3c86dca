"""Tests for the remote bridge command line."""

from __future__ import annotations

from pathlib import Path

import pytest

from pymsxview.remote import serve


def test_defaults() -> None:
    config = serve.config_from_args(serve.build_parser().parse_args([]))

    assert config == serve.ServeConfig()


def test_push_port_zero_disables_push() -> None:
    args = serve.build_parser().parse_args(["--push-port", "0", "--socket", "/tmp/s", "--listing", "8"])
    config = serve.config_from_args(args)

    assert config.push_port is None
    assert config.socket_path == Path("/tmp/s")
    assert config.listing_length == 8


def test_missing_socket_exits_with_error(tmp_path, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        serve.main(["--socket", str(tmp_path / "absent"), "--push-port", "0"])

    assert excinfo.value.code == 1
    assert "cannot connect to openMSX" in capsys.readouterr().err
