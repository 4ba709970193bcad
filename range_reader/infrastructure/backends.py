"""
Query backends: the request-execution capability the fetchers run against.

A backend exposes `paramstyle` (so the fetcher can build driver-specific SQL)
plus two calls:

- `run_aggregate(query)` -> one row mapping with `count` and `max_id`, or None
- `run_range_query(query, params)` -> list of row mappings

The sync backend groups the calls in a `session()`; the async backend runs
each call on its own pooled connection so range fetches can overlap.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

import asyncpg
import psycopg
from psycopg_pool import ConnectionPool

from range_reader.infrastructure.db_factory import apply_statement_timeout
from range_reader.queries import ParamStyle

Row = Dict[str, Any]


@runtime_checkable
class QuerySession(Protocol):
    """Query calls sharing one connection (and possibly one snapshot)."""

    def run_aggregate(self, query: str) -> Optional[Row]:
        ...

    def run_range_query(self, query: str, params: Sequence[Any]) -> List[Row]:
        ...


@runtime_checkable
class QueryBackend(Protocol):
    """Sync capability: hands out sessions."""

    paramstyle: ParamStyle

    def session(self) -> Any:
        """Return a context manager yielding a QuerySession."""
        ...


@runtime_checkable
class AsyncQueryBackend(Protocol):
    """Async capability: every call is independent."""

    paramstyle: ParamStyle

    async def run_aggregate(self, query: str) -> Optional[Row]:
        ...

    async def run_range_query(self, query: str, params: Sequence[Any]) -> List[Row]:
        ...


class PsycopgSession:
    def __init__(self, cursor: psycopg.Cursor) -> None:
        self._cursor = cursor

    def run_aggregate(self, query: str) -> Optional[Row]:
        self._cursor.execute(query)
        return self._cursor.fetchone()

    def run_range_query(self, query: str, params: Sequence[Any]) -> List[Row]:
        self._cursor.execute(query, tuple(params))
        return list(self._cursor.fetchall())


class PsycopgBackend:
    """
    psycopg pool backend.

    With `snapshot=True` every session is a single `REPEATABLE READ READ ONLY`
    transaction, so the aggregate and the range fetches observe the same data.
    """

    paramstyle: ParamStyle = "format"

    def __init__(
        self,
        pool: ConnectionPool,
        statement_timeout_ms: int = 0,
        snapshot: bool = True,
    ) -> None:
        self._pool = pool
        self.statement_timeout_ms = statement_timeout_ms
        self.snapshot = snapshot

    @contextmanager
    def session(self) -> Iterator[PsycopgSession]:
        with self._pool.connection() as conn:
            with conn.transaction():
                with conn.cursor() as cur:
                    if self.snapshot:
                        # Must be the first statement of the transaction.
                        cur.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ READ ONLY")
                    apply_statement_timeout(cur, self.statement_timeout_ms)
                    yield PsycopgSession(cur)


class AsyncpgBackend:
    """
    asyncpg pool backend. Each call acquires its own connection, so there is
    no snapshot spanning the aggregate and the range fetches.
    """

    paramstyle: ParamStyle = "numeric"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def run_aggregate(self, query: str) -> Optional[Row]:
        async with self._pool.acquire() as conn:
            row = await conn.fetchrow(query)
        return dict(row) if row is not None else None

    async def run_range_query(self, query: str, params: Sequence[Any]) -> List[Row]:
        async with self._pool.acquire() as conn:
            rows = await conn.fetch(query, *params)
        return [dict(row) for row in rows]

    async def close(self) -> None:
        await self._pool.close()


__all__ = [
    "AsyncQueryBackend",
    "AsyncpgBackend",
    "PsycopgBackend",
    "PsycopgSession",
    "QueryBackend",
    "QuerySession",
    "Row",
]
