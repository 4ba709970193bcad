"""
Database connection factory utilities for the range reader service.

Provides centralized management of the psycopg connection pool used by the
sequential fetcher and the asyncpg pool used by the concurrent fetcher. The
PoolManager singleton ensures the sync pool is closed on application exit.

Includes retry logic for transient connection failures using tenacity.
"""

from __future__ import annotations

import atexit
import threading
from typing import Any, Dict, Optional

import asyncpg
import psycopg
from psycopg import Connection, sql
from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from range_reader.config import Settings, get_settings
from range_reader.utils.logging import get_logger

log = get_logger(__name__)


def build_dsn(settings: Optional[Settings] = None) -> str:
    """Compose a DSN string from settings."""
    settings = settings or get_settings()
    return (
        f"postgresql://{settings.db_user}:{settings.db_password}"
        f"@{settings.db_host}:{settings.db_port}/{settings.db_name}"
    )


def apply_statement_timeout(cursor: psycopg.Cursor, timeout_ms: int) -> None:
    """
    Set `statement_timeout` for the current transaction. Zero leaves the
    server default in place.
    """
    if timeout_ms <= 0:
        return
    cursor.execute(
        sql.SQL("SET LOCAL statement_timeout = {}").format(sql.Literal(int(timeout_ms)))
    )


class PoolManager:
    """
    Thread-safe singleton for managing the psycopg connection pool.

    Handles lifecycle management with automatic cleanup via atexit hook.
    """

    _instance: Optional["PoolManager"] = None
    _lock = threading.Lock()

    def __new__(cls) -> "PoolManager":
        """Create or return the singleton instance."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = super().__new__(cls)
                cls._instance._sync_pool = None
                atexit.register(cls._instance.close_all)
            return cls._instance

    def get_sync_pool(
        self,
        settings: Optional[Settings] = None,
        min_size: Optional[int] = None,
        max_size: Optional[int] = None,
    ) -> ConnectionPool:
        """
        Get or create the synchronous connection pool.

        Parameters
        ----------
        settings : Settings | None
            Source of the DSN and pool sizes. Defaults to the process settings.
        min_size : int | None
            Minimum number of idle connections to keep. Defaults to settings.
        max_size : int | None
            Maximum total connections in the pool. Defaults to settings.

        Returns
        -------
        ConnectionPool
            The managed sync pool instance. Connections return rows as dicts.
        """
        with self._lock:
            if self._sync_pool is None:
                settings = settings or get_settings()
                self._sync_pool = ConnectionPool(
                    conninfo=build_dsn(settings),
                    min_size=settings.db_pool_min_size if min_size is None else min_size,
                    max_size=settings.db_pool_max_size if max_size is None else max_size,
                    kwargs={"row_factory": dict_row},
                    open=True,
                )
                log.info(
                    "Sync connection pool created",
                    extra={"db_host": settings.db_host, "db_name": settings.db_name},
                )
            return self._sync_pool

    def close_all(self) -> None:
        """
        Close the managed pool and release resources.

        This is called automatically on exit via atexit hook.
        """
        with self._lock:
            if self._sync_pool is not None:
                try:
                    self._sync_pool.close()
                except Exception:  # noqa: BLE001 - shutdown must not raise
                    log.warning("Failed to close sync pool cleanly", exc_info=True)
                finally:
                    self._sync_pool = None


def get_sync_pool(
    settings: Optional[Settings] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
) -> ConnectionPool:
    """
    Get or create a synchronous connection pool via PoolManager.
    """
    return PoolManager().get_sync_pool(settings=settings, min_size=min_size, max_size=max_size)


def connect(dsn: Optional[str] = None, connect_timeout: Optional[int] = None) -> Connection:
    """
    Open a dedicated synchronous connection in a single attempt.

    Request paths use this directly: a failure surfaces immediately instead of
    holding the request through a backoff.
    """
    kwargs: Dict[str, Any] = {"row_factory": dict_row}
    if connect_timeout:
        kwargs["connect_timeout"] = connect_timeout
    return psycopg.connect(dsn or build_dsn(), **kwargs)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((psycopg.OperationalError, psycopg.InterfaceError)),
    reraise=True,
)
def get_sync_connection(dsn: Optional[str] = None) -> Connection:
    """
    Acquire a dedicated synchronous connection with automatic retry.

    Retries up to 3 times with exponential backoff for transient connection errors.
    Meant for scripts and startup work, not for code serving a request.

    Raises
    ------
    psycopg.OperationalError
        If connection fails after all retry attempts.
    """
    return connect(dsn)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=1, max=10),
    retry=retry_if_exception_type((OSError, ConnectionError)),
    reraise=True,
)
async def create_async_pool(
    dsn: Optional[str] = None,
    min_size: Optional[int] = None,
    max_size: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> asyncpg.Pool:
    """
    Create an asyncpg pool with automatic retry.

    DSN, pool sizes and the statement timeout (asyncpg's `command_timeout`)
    come from `settings` unless given explicitly.
    """
    settings = settings or get_settings()
    timeout_ms = settings.db_statement_timeout_ms
    return await asyncpg.create_pool(
        dsn or build_dsn(settings),
        min_size=settings.db_pool_min_size if min_size is None else min_size,
        max_size=settings.db_pool_max_size if max_size is None else max_size,
        command_timeout=timeout_ms / 1000.0 if timeout_ms > 0 else None,
    )


__all__ = [
    "PoolManager",
    "apply_statement_timeout",
    "build_dsn",
    "connect",
    "create_async_pool",
    "get_sync_connection",
    "get_sync_pool",
]
