"""
Secondary data source: a short preview of a table on another database.

Opens a dedicated connection per call, reads the first rows by key and closes
it again. Rendered next to the primary table, never merged with it. The
connection is attempted once, bounded by `connect_timeout`; an unreachable
secondary fails the request rather than stalling it.
"""

from __future__ import annotations

import time

from range_reader.domain.models import Record
from range_reader.errors import FetchError, QueryFailure
from range_reader.fetchers.abstract import AbstractRecordFetcher, FetchResult
from range_reader.infrastructure.db_factory import connect
from range_reader.queries import preview_query
from range_reader.utils.logging import get_logger

log = get_logger(__name__)


class PreviewFetcher(AbstractRecordFetcher):
    """
    `SELECT * FROM <table> ORDER BY id LIMIT n` over a one-off psycopg connection.
    """

    name: str = "preview"
    description: str = "Single capped SELECT against the secondary database."

    def __init__(
        self, dsn: str, table: str = "users", limit: int = 5, connect_timeout: int = 5
    ) -> None:
        self._dsn = dsn
        self.table = table
        self.limit = limit
        self.connect_timeout = connect_timeout

    def execute(self) -> FetchResult:
        start = time.perf_counter()
        try:
            conn = connect(self._dsn, connect_timeout=self.connect_timeout)
            try:
                with conn.cursor() as cur:
                    cur.execute(preview_query(self.table, "format"), (self.limit,))
                    rows = cur.fetchall()
            finally:
                conn.close()
            records = [Record.model_validate(dict(row)) for row in rows]
        except FetchError:
            raise
        except Exception as exc:  # noqa: BLE001 - every query-layer error becomes one failure
            log.exception("Error querying secondary database", extra={"table": self.table})
            raise QueryFailure() from exc

        duration = time.perf_counter() - start
        log.info(
            "Finished preview query",
            extra={"table": self.table, "rows": len(records), "duration_seconds": duration},
        )
        return FetchResult(
            records=records,
            rows=len(records),
            duration_seconds=duration,
            plan=None,
            notes=f"preview limit={self.limit}",
        )


__all__ = ["PreviewFetcher"]
