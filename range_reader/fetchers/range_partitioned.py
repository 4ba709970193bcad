"""
Range-partitioned fetcher: read a whole table with k bounded range queries.

Flow for one call:
1. `COUNT(*)`, `MAX(id)` aggregate; no row or an empty table is `NotFound`.
2. Plan k contiguous key ranges (see `plan_partitions`).
3. Fetch each range ordered by id, capped at `part_size` rows unless the cap
   is disabled.
4. Concatenate in partition order. No global re-sort: ranges are disjoint
   and ascending, so the result is already in key order.

With the cap enabled a partition holding more than `part_size` rows (skewed
keys) is silently truncated. Such partitions are reported as `saturated`.
"""

from __future__ import annotations

import time
from typing import Any, Iterable, List, Mapping, Optional, Sequence

from range_reader.domain.models import PartitionPlan, Record, plan_partitions
from range_reader.errors import FetchError, NotFound, QueryFailure
from range_reader.fetchers.abstract import AbstractRecordFetcher, FetchResult, PartitionStats
from range_reader.infrastructure.backends import QueryBackend
from range_reader.queries import ParamStyle, aggregate_query, range_query
from range_reader.utils.logging import get_logger

log = get_logger(__name__)


def plan_from_aggregate(
    row: Optional[Mapping[str, Any]],
    partition_count: int,
    row_cap: bool,
) -> PartitionPlan:
    """Turn the aggregate row into a plan, or raise NotFound."""
    if row is None:
        raise NotFound()
    total_count = int(row["count"] or 0)
    max_id = row["max_id"]
    if total_count == 0 or max_id is None:
        raise NotFound()
    return plan_partitions(total_count, int(max_id), partition_count, row_cap=row_cap)


def build_range_queries(
    table: str, plan: PartitionPlan, paramstyle: ParamStyle
) -> List[tuple[str, List[Any]]]:
    return [range_query(table, part, plan.row_cap, paramstyle) for part in plan.partitions]


def combine_partitions(
    plan: PartitionPlan, pages: Sequence[Sequence[Mapping[str, Any]]]
) -> tuple[List[Record], List[PartitionStats]]:
    """
    Concatenate the partition pages in order and collect per-partition stats.
    """
    records: List[Record] = []
    stats: List[PartitionStats] = []
    for part, page in zip(plan.partitions, pages):
        records.extend(Record.model_validate(dict(row)) for row in page)
        saturated = plan.row_cap is not None and len(page) >= plan.row_cap
        stats.append(
            PartitionStats(
                range=part.describe(),
                rows=len(page),
                cap=plan.row_cap,
                saturated=saturated,
            )
        )
    return records, stats


def warn_saturated(stats: Iterable[PartitionStats], table: str) -> None:
    saturated = [s["range"] for s in stats if s["saturated"]]
    if saturated:
        log.warning(
            "Partitions reached their row cap; rows past the cap may be missing",
            extra={"table": table, "saturated_ranges": saturated},
        )


class RangePartitionedFetcher(AbstractRecordFetcher):
    """
    Sequential range-partitioned scan over a sync QueryBackend.

    All queries of one call share a backend session; with a snapshot-capable
    backend the count, max and range reads see one consistent view.
    """

    name: str = "sequential"
    description: str = "COUNT/MAX aggregate then k range queries issued one after another."

    def __init__(
        self,
        backend: QueryBackend,
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

    def execute(self) -> FetchResult:
        start = time.perf_counter()
        try:
            with self._backend.session() as session:
                log.debug("Querying aggregate", extra={"table": self.table})
                plan = plan_from_aggregate(
                    session.run_aggregate(aggregate_query(self.table)),
                    self.partition_count,
                    self.row_cap,
                )
                log.info(
                    "Starting range queries",
                    extra={
                        "table": self.table,
                        "total_count": plan.total_count,
                        "max_id": plan.max_id,
                        "boundaries": list(plan.boundaries),
                        "row_cap": plan.row_cap,
                    },
                )
                pages = [
                    session.run_range_query(sql, params)
                    for sql, params in build_range_queries(
                        self.table, plan, self._backend.paramstyle
                    )
                ]
            records, stats = combine_partitions(plan, pages)
        except FetchError:
            raise
        except Exception as exc:  # noqa: BLE001 - every query-layer error becomes one failure
            log.exception("Error querying database", extra={"table": self.table})
            raise QueryFailure() from exc

        duration = time.perf_counter() - start
        log.info(
            "Finished range queries",
            extra={"table": self.table, "rows": len(records), "duration_seconds": duration},
        )
        warn_saturated(stats, self.table)

        return FetchResult(
            records=records,
            rows=len(records),
            duration_seconds=duration,
            plan=plan,
            partitions=stats,
            notes=f"sequential k={self.partition_count} cap={'on' if self.row_cap else 'off'}",
        )


__all__ = [
    "RangePartitionedFetcher",
    "build_range_queries",
    "combine_partitions",
    "plan_from_aggregate",
    "warn_saturated",
]
