"""
Fetchers package for the range reader service.

This module re-exports the abstract interfaces and the concrete fetcher
classes so downstream code can import from `range_reader.fetchers` directly.
"""

from range_reader.fetchers.abstract import (
    AbstractRecordFetcher,
    FetchResult,
    PartitionStats,
    RecordFetcher,
)
from range_reader.fetchers.concurrent import ConcurrentRangePartitionedFetcher
from range_reader.fetchers.preview import PreviewFetcher
from range_reader.fetchers.range_partitioned import RangePartitionedFetcher

__all__ = [
    # Abstracts
    "AbstractRecordFetcher",
    "FetchResult",
    "PartitionStats",
    "RecordFetcher",
    # Concrete fetchers
    "ConcurrentRangePartitionedFetcher",
    "PreviewFetcher",
    "RangePartitionedFetcher",
]
