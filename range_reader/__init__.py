"""
Range Reader - server-rendered users page backed by range-partitioned scans.

Instead of one unbounded `SELECT *`, the table is read with an aggregate
query followed by k bounded key-range queries whose results are concatenated
in key order. The package provides:

- Sequential and concurrent range-partitioned fetchers
- An optional preview of a secondary database
- A FastAPI app rendering the rows as an HTML table (and as JSON)
- A typer CLI to inspect configuration, run a fetch, and serve the app
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from range_reader.config import Settings, get_settings
from range_reader.domain.models import KeyRange, PartitionPlan, Record, plan_partitions
from range_reader.errors import BindingUnavailable, FetchError, NotFound, QueryFailure
from range_reader.fetchers import (
    AbstractRecordFetcher,
    ConcurrentRangePartitionedFetcher,
    FetchResult,
    PreviewFetcher,
    RangePartitionedFetcher,
    RecordFetcher,
)
from range_reader.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Domain
    "KeyRange",
    "PartitionPlan",
    "Record",
    "plan_partitions",
    # Errors
    "BindingUnavailable",
    "FetchError",
    "NotFound",
    "QueryFailure",
    # Fetchers
    "AbstractRecordFetcher",
    "ConcurrentRangePartitionedFetcher",
    "FetchResult",
    "PreviewFetcher",
    "RangePartitionedFetcher",
    "RecordFetcher",
    # Logging
    "configure_logging",
    "get_logger",
]
