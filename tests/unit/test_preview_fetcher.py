from __future__ import annotations

import psycopg
import pytest

from range_reader.errors import QueryFailure
from range_reader.fetchers import preview as preview_module
from range_reader.fetchers.preview import PreviewFetcher
from range_reader.service import build_preview_fetcher


class _FakeCursor:
    def __init__(self, rows: list[dict]) -> None:
        self._rows = rows
        self.executed: list[tuple[str, tuple]] = []

    def __enter__(self) -> "_FakeCursor":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False

    def execute(self, sql: str, params: tuple = ()) -> None:
        self.executed.append((sql, params))

    def fetchall(self) -> list[dict]:
        return self._rows


class _FakeConnection:
    def __init__(self, rows: list[dict]) -> None:
        self.cur = _FakeCursor(rows)
        self.closed = False

    def cursor(self) -> _FakeCursor:
        return self.cur

    def close(self) -> None:
        self.closed = True


def test_preview_reads_first_rows_and_closes_connection(monkeypatch):
    conn = _FakeConnection(
        [{"id": 1, "name": "Ada", "email": "ada@example.com"}, {"id": 2, "name": "Alan", "email": None}]
    )
    seen_dsn = []

    def fake_connect(dsn, connect_timeout=None):
        seen_dsn.append(dsn)
        return conn

    monkeypatch.setattr(preview_module, "connect", fake_connect)

    result = PreviewFetcher("postgresql://secondary/db", limit=5).execute()

    assert [r.name for r in result["records"]] == ["Ada", "Alan"]
    assert seen_dsn == ["postgresql://secondary/db"]
    assert conn.cur.executed == [('SELECT * FROM "users" ORDER BY id LIMIT %s', (5,))]
    assert conn.closed is True
    assert result["plan"] is None


def test_preview_connection_error_is_query_failure(monkeypatch):
    def fake_connect(dsn, connect_timeout=None):
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(preview_module, "connect", fake_connect)

    with pytest.raises(QueryFailure):
        PreviewFetcher("postgresql://secondary/db").execute()


def test_unreachable_secondary_is_tried_once(monkeypatch):
    attempts = []

    def refuse(dsn, **kwargs):
        attempts.append(kwargs)
        raise psycopg.OperationalError("connection refused")

    monkeypatch.setattr(psycopg, "connect", refuse)

    with pytest.raises(QueryFailure):
        PreviewFetcher("postgresql://secondary/db", connect_timeout=2).execute()

    assert len(attempts) == 1
    assert attempts[0]["connect_timeout"] == 2


def test_connect_timeout_comes_from_settings(make_settings):
    settings = make_settings(
        secondary_db_url="postgresql://secondary/db", secondary_connect_timeout_s=3
    )

    assert build_preview_fetcher(settings).connect_timeout == 3
