"""
Domain models for the range reader service.

Defines the row schema of the `users` table (see `db/init.sql`) and the
ephemeral partition plan derived from the table's count and maximum key.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Record(BaseModel):
    """
    Read-only snapshot of a single row. Columns beyond `id`, `name` and
    `email` are kept as extra fields.
    """

    id: int = Field(..., description="Unique, strictly ordered integer key.")
    name: Optional[str] = Field(None, description="Display name.")
    email: Optional[str] = Field(None, description="Contact email.")

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")


@dataclass(frozen=True)
class KeyRange:
    """
    Contiguous key interval `(lower, upper]`. A `None` bound is open.
    """

    lower: Optional[int] = None
    upper: Optional[int] = None

    def contains(self, key: int) -> bool:
        if self.lower is not None and key <= self.lower:
            return False
        if self.upper is not None and key > self.upper:
            return False
        return True

    def describe(self) -> str:
        if self.lower is None and self.upper is None:
            return "all ids"
        if self.lower is None:
            return f"id <= {self.upper}"
        if self.upper is None:
            return f"id > {self.lower}"
        return f"{self.lower} < id <= {self.upper}"


@dataclass(frozen=True)
class PartitionPlan:
    """
    Ephemeral plan computed once per request from `COUNT(*)` and `MAX(id)`.

    `part_size` is `ceil(total_count / partition_count)`; boundary `i` is
    `floor(i * max_id / partition_count)`. Boundaries are non-decreasing, so
    the partitions are pairwise disjoint and together cover every integer key.
    `row_cap` is the per-partition `LIMIT`, or None when the cap is disabled.
    """

    total_count: int
    max_id: int
    partition_count: int
    part_size: int
    boundaries: Tuple[int, ...]
    partitions: Tuple[KeyRange, ...]
    row_cap: Optional[int] = field(default=None)


def plan_partitions(
    total_count: int,
    max_id: int,
    partition_count: int = 3,
    row_cap: bool = True,
) -> PartitionPlan:
    """
    Split the key space into `partition_count` contiguous ranges.

    With `partition_count=3` this gives `id <= maxId//3`,
    `maxId//3 < id <= 2*maxId//3` and `id > 2*maxId//3`.
    """
    if partition_count < 1:
        raise ValueError("partition_count must be >= 1")
    if total_count < 0:
        raise ValueError("total_count must be >= 0")

    part_size = -(-total_count // partition_count)
    boundaries = tuple((i * max_id) // partition_count for i in range(1, partition_count))

    edges: List[Optional[int]] = [None, *boundaries, None]
    partitions = tuple(KeyRange(lower=edges[i], upper=edges[i + 1]) for i in range(partition_count))

    return PartitionPlan(
        total_count=total_count,
        max_id=max_id,
        partition_count=partition_count,
        part_size=part_size,
        boundaries=boundaries,
        partitions=partitions,
        row_cap=part_size if row_cap else None,
    )


__all__ = ["KeyRange", "PartitionPlan", "Record", "plan_partitions"]
