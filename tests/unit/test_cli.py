from __future__ import annotations

import json

import pytest
import typer

from range_reader import main as cli


def _fail_if_called(*args, **kwargs):
    raise AssertionError("no connection should be attempted")


def test_fetch_with_database_disabled_reports_binding_unavailable(
    make_settings, monkeypatch, capsys
):
    monkeypatch.setattr(cli, "get_settings", lambda: make_settings(db_enabled=False))
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    monkeypatch.setattr(cli, "get_sync_pool", _fail_if_called)
    monkeypatch.setattr(cli, "create_async_pool", _fail_if_called)

    with pytest.raises(typer.Exit) as exc_info:
        cli.fetch(mode=None, partitions=None, no_cap=False)

    assert exc_info.value.exit_code == 1
    assert json.loads(capsys.readouterr().err) == {
        "error": "Database not available",
        "status": 500,
    }


def test_fetch_rejects_unknown_mode(make_settings, monkeypatch, capsys):
    monkeypatch.setattr(cli, "get_settings", make_settings)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)

    with pytest.raises(typer.Exit) as exc_info:
        cli.fetch(mode="parallel", partitions=None, no_cap=False)

    assert exc_info.value.exit_code == 2
    assert "Unknown mode 'parallel'" in capsys.readouterr().err
