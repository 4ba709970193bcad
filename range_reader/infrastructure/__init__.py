"""
Infrastructure package for the range reader service.

Centralizes database connectivity concerns (connection factories, pooling,
query backends). Keep this layer focused on I/O and resource management,
decoupled from partitioning and presentation logic.
"""

from range_reader.infrastructure.backends import (
    AsyncpgBackend,
    AsyncQueryBackend,
    PsycopgBackend,
    QueryBackend,
    QuerySession,
)
from range_reader.infrastructure.db_factory import (
    PoolManager,
    build_dsn,
    create_async_pool,
    connect,
    get_sync_connection,
    get_sync_pool,
)

__all__ = [
    "AsyncQueryBackend",
    "AsyncpgBackend",
    "PoolManager",
    "PsycopgBackend",
    "QueryBackend",
    "QuerySession",
    "build_dsn",
    "create_async_pool",
    "connect",
    "get_sync_connection",
    "get_sync_pool",
]
