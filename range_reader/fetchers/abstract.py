"""
Abstract fetcher interfaces and result contracts for the range reader service.

Concrete fetchers (sequential range partitioning, concurrent range
partitioning, secondary preview) implement the RecordFetcher protocol and
return a FetchResult TypedDict so the service and web layers can treat them
uniformly.
"""

from __future__ import annotations

import abc
from typing import List, Optional, Protocol, TypedDict, runtime_checkable

from range_reader.domain.models import PartitionPlan, Record


class PartitionStats(TypedDict):
    """Outcome of one range fetch."""

    range: str
    rows: int
    cap: Optional[int]
    saturated: bool


class FetchResult(TypedDict, total=False):
    """
    Contract returned by fetchers.

    `records` is always present on success; the remaining fields are filled in
    by fetchers that have something to report.
    """

    records: List[Record]
    rows: int
    duration_seconds: float
    plan: Optional[PartitionPlan]
    partitions: List[PartitionStats]
    notes: Optional[str]


@runtime_checkable
class RecordFetcher(Protocol):
    """
    Common interface of all fetchers.

    Attributes
    ----------
    name : str
        A short machine-friendly identifier.
    description : str
        A human-friendly summary of the approach.
    """

    name: str
    description: str

    def execute(self) -> FetchResult:
        """
        Read the rows and return them with basic metrics.

        Raises
        ------
        FetchError
            `NotFound` for an empty table, `QueryFailure` for anything the
            query layer raised.
        """
        ...


class AbstractRecordFetcher(abc.ABC):
    """
    Optional ABC helper for class-based implementations.

    Subclasses should set `name` and `description` and implement `execute`.
    """

    name: str
    description: str

    @abc.abstractmethod
    def execute(self) -> FetchResult:  # pragma: no cover - interface only
        """Run the fetch and return the result."""
        raise NotImplementedError


__all__ = [
    "AbstractRecordFetcher",
    "FetchResult",
    "PartitionStats",
    "RecordFetcher",
]
