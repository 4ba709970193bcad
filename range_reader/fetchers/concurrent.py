"""
Concurrent range-partitioned fetcher.

Same plan and concatenation as the sequential fetcher, but the k range
queries are dispatched together with `asyncio.gather` once the boundaries
are fixed. The queries are read-only and independent, so this only changes
latency.

Each query runs on its own pooled connection, so there is no snapshot
spanning the aggregate and the range reads: rows inserted after `MAX(id)` was
read are not returned, and deletes can leave partitions short.
"""

from __future__ import annotations

import asyncio
import time

from range_reader.errors import FetchError, QueryFailure
from range_reader.fetchers.abstract import AbstractRecordFetcher, FetchResult
from range_reader.fetchers.range_partitioned import (
    build_range_queries,
    combine_partitions,
    plan_from_aggregate,
    warn_saturated,
)
from range_reader.infrastructure.backends import AsyncQueryBackend
from range_reader.queries import aggregate_query
from range_reader.utils.logging import get_logger

log = get_logger(__name__)


class ConcurrentRangePartitionedFetcher(AbstractRecordFetcher):
    """
    Range-partitioned scan over an AsyncQueryBackend with concurrent range fetches.

    If any range fetch fails the others are cancelled and the whole call fails;
    partitions that already completed are discarded.
    """

    name: str = "concurrent"
    description: str = "COUNT/MAX aggregate then k range queries awaited together."

    def __init__(
        self,
        backend: AsyncQueryBackend,
        table: str = "users",
        partition_count: int = 3,
        row_cap: bool = True,
    ) -> None:
        if partition_count < 1:
            raise ValueError("partition_count must be >= 1")
        self._backend = backend
        self.table = table
        self.partition_count = partition_count
        self.row_cap = row_cap

    async def _gather_all(self, queries: list) -> list:
        tasks = [
            asyncio.ensure_future(self._backend.run_range_query(sql, params))
            for sql, params in queries
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def execute_async(self) -> FetchResult:
        """
        Run the aggregate, then all range fetches concurrently.
        """
        start = time.perf_counter()
        try:
            plan = plan_from_aggregate(
                await self._backend.run_aggregate(aggregate_query(self.table)),
                self.partition_count,
                self.row_cap,
            )
            log.info(
                "Starting concurrent range queries",
                extra={
                    "table": self.table,
                    "total_count": plan.total_count,
                    "max_id": plan.max_id,
                    "boundaries": list(plan.boundaries),
                    "row_cap": plan.row_cap,
                },
            )
            pages = await self._gather_all(
                build_range_queries(self.table, plan, self._backend.paramstyle)
            )
            records, stats = combine_partitions(plan, pages)
        except FetchError:
            raise
        except Exception as exc:  # noqa: BLE001 - every query-layer error becomes one failure
            log.exception("Error querying database", extra={"table": self.table})
            raise QueryFailure() from exc

        duration = time.perf_counter() - start
        log.info(
            "Finished concurrent range queries",
            extra={"table": self.table, "rows": len(records), "duration_seconds": duration},
        )
        warn_saturated(stats, self.table)

        return FetchResult(
            records=records,
            rows=len(records),
            duration_seconds=duration,
            plan=plan,
            partitions=stats,
            notes=f"concurrent k={self.partition_count} cap={'on' if self.row_cap else 'off'}",
        )

    def execute(self) -> FetchResult:
        """
        Run from synchronous code. Use `execute_async` inside an event loop.
        """
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return asyncio.run(self.execute_async())
        raise RuntimeError(
            "execute() cannot be called from a running event loop (async context); "
            "await execute_async() instead"
        )


__all__ = ["ConcurrentRangePartitionedFetcher"]
