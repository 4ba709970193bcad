"""
Pytest configuration for the range reader service.

Provides fixtures for:
- Settings construction isolated from the process environment
- In-memory SQLite query backends (sync and async) running the generated SQL
- Database connection management for integration tests
"""

from __future__ import annotations

import asyncio
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Generator, Iterable, Iterator, List, Optional, Sequence

import psycopg
import pytest

from range_reader.config import Settings


class SqliteBackend:
    """
    Sync QueryBackend over an in-memory SQLite `users` table.

    `fail_on_range` makes the n-th range query (1-based) raise.
    """

    paramstyle = "qmark"

    def __init__(self, ids: Iterable[int], fail_on_range: Optional[int] = None) -> None:
        self._conn = sqlite3.connect(":memory:", check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, email TEXT)")
        self._conn.executemany(
            "INSERT INTO users (id, name, email) VALUES (?, ?, ?)",
            [(i, f"User {i}", f"user{i}@example.com") for i in ids],
        )
        self.fail_on_range = fail_on_range
        self.sessions = 0
        self.aggregate_queries: List[str] = []
        self.range_queries: List[tuple[str, List[Any]]] = []

    @contextmanager
    def session(self) -> Iterator["SqliteBackend"]:
        self.sessions += 1
        yield self

    def run_aggregate(self, query: str) -> Optional[Dict[str, Any]]:
        self.aggregate_queries.append(query)
        row = self._conn.execute(query).fetchone()
        return dict(row) if row is not None else None

    def run_range_query(self, query: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        self.range_queries.append((query, list(params)))
        if self.fail_on_range is not None and len(self.range_queries) == self.fail_on_range:
            raise sqlite3.OperationalError("range query failed")
        return [dict(row) for row in self._conn.execute(query, list(params))]


class AsyncSqliteBackend:
    """
    Async QueryBackend wrapping SqliteBackend. Each range query yields to the
    loop for `delay` seconds and tracks how many were in flight at once.
    """

    paramstyle = "qmark"

    def __init__(self, sync: SqliteBackend, delay: float = 0.01) -> None:
        self.sync = sync
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled = 0

    async def run_aggregate(self, query: str) -> Optional[Dict[str, Any]]:
        return self.sync.run_aggregate(query)

    async def run_range_query(self, query: str, params: Sequence[Any]) -> List[Dict[str, Any]]:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            rows = self.sync.run_range_query(query, params)
            await asyncio.sleep(self.delay)
            return rows
        except asyncio.CancelledError:
            self.cancelled += 1
            raise
        finally:
            self.in_flight -= 1


@pytest.fixture
def make_settings(monkeypatch) -> Callable[..., Settings]:
    """
    Build Settings from defaults plus overrides, ignoring `.env` and any
    DB_/PARTITION_ variables set in the environment.
    """
    for key in list(os.environ):
        if key.startswith(("DB_", "PARTITION_", "FETCH_", "SECONDARY_", "USERS_", "SNAPSHOT_")):
            monkeypatch.delenv(key, raising=False)

    def _make(**overrides: Any) -> Settings:
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def sqlite_backend_factory() -> Callable[..., SqliteBackend]:
    return SqliteBackend


@pytest.fixture
def async_backend() -> Callable[..., AsyncSqliteBackend]:
    return AsyncSqliteBackend


@pytest.fixture
def nine_users_backend() -> SqliteBackend:
    """Nine rows with maximum key 30, spread evenly over the three thirds."""
    return SqliteBackend([1, 5, 10, 11, 15, 20, 21, 25, 30])


@pytest.fixture
def empty_backend() -> SqliteBackend:
    return SqliteBackend([])


# ---------------------------------------------------------------------------
# Integration fixtures (real Postgres)
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "range_reader"),
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False


@pytest.fixture(scope="session")
def db_connection(
    test_dsn: str, db_connection_available: bool
) -> Generator[psycopg.Connection, None, None]:
    """
    Provide a session-scoped database connection for integration tests.

    Skips tests if database is not available.
    """
    if not db_connection_available:
        pytest.skip("Database not available for integration tests")

    conn = psycopg.connect(test_dsn)
    try:
        with conn.cursor() as cur:
            cur.execute((Path(__file__).parent.parent / "db" / "init.sql").read_text())
        conn.commit()
        yield conn
    finally:
        conn.close()


@pytest.fixture(scope="function")
def clean_users_table(db_connection: psycopg.Connection):
    """
    Empty the users table before and after each test function.
    """
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.users;")
    db_connection.commit()
    yield
    with db_connection.cursor() as cur:
        cur.execute("TRUNCATE TABLE public.users;")
    db_connection.commit()


@pytest.fixture(scope="function")
def seeded_users(
    db_connection: psycopg.Connection,
    clean_users_table,
    test_dsn: str,
    tmp_path: Path,
) -> int:
    """
    Seed 90 uniformly keyed users. Returns the number of rows seeded.
    """
    from scripts.seed_users import _copy_into_db, _generate_rows_csv

    csv_path = tmp_path / "users.csv"
    _generate_rows_csv(csv_path, rows=90, batch_size=50, seed=42)
    _copy_into_db(test_dsn, csv_path)

    with db_connection.cursor() as cur:
        cur.execute("SELECT COUNT(*) FROM public.users;")
        return cur.fetchone()[0]
