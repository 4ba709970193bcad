"""
Page service: resolves the configured fetcher and loads everything one page
request needs.

Usage (from the web layer):
    from range_reader.service import build_fetcher, load_page

    fetcher = build_fetcher("sequential", settings, backend=backend)
    page = await load_page(fetcher)

The primary rows and the optional secondary preview are loaded independently
and only combined here, at the presentation boundary. A failure in either one
fails the whole page.
"""

from __future__ import annotations

from typing import Callable, Dict, List, Optional, TypedDict

from fastapi.concurrency import run_in_threadpool

from range_reader.config import Settings
from range_reader.domain.models import PartitionPlan, Record
from range_reader.errors import BindingUnavailable
from range_reader.fetchers.abstract import FetchResult, PartitionStats, RecordFetcher
from range_reader.fetchers.concurrent import ConcurrentRangePartitionedFetcher
from range_reader.fetchers.preview import PreviewFetcher
from range_reader.fetchers.range_partitioned import RangePartitionedFetcher
from range_reader.infrastructure.backends import AsyncQueryBackend, QueryBackend
from range_reader.utils.logging import get_logger
from range_reader.utils.profiler import profile_block

log = get_logger(__name__)

FetcherFactory = Callable[
    [Settings, Optional[QueryBackend], Optional[AsyncQueryBackend]], RecordFetcher
]


class PageData(TypedDict, total=False):
    records: List[Record]
    preview: Optional[List[Record]]
    plan: Optional[PartitionPlan]
    partitions: List[PartitionStats]
    duration_seconds: float


def _sequential(
    settings: Settings,
    backend: Optional[QueryBackend],
    async_backend: Optional[AsyncQueryBackend],
) -> RecordFetcher:
    if backend is None:
        raise BindingUnavailable()
    return RangePartitionedFetcher(
        backend,
        table=settings.users_table,
        partition_count=settings.partition_count,
        row_cap=settings.partition_row_cap,
    )


def _concurrent(
    settings: Settings,
    backend: Optional[QueryBackend],
    async_backend: Optional[AsyncQueryBackend],
) -> RecordFetcher:
    if async_backend is None:
        raise BindingUnavailable()
    return ConcurrentRangePartitionedFetcher(
        async_backend,
        table=settings.users_table,
        partition_count=settings.partition_count,
        row_cap=settings.partition_row_cap,
    )


def _fetcher_factories() -> Dict[str, FetcherFactory]:
    """Registry of available fetch modes."""
    return {
        "sequential": _sequential,
        "concurrent": _concurrent,
    }


def available_fetch_modes() -> List[str]:
    """List available fetch mode names."""
    return sorted(_fetcher_factories().keys())


def build_fetcher(
    mode: str,
    settings: Settings,
    backend: Optional[QueryBackend] = None,
    async_backend: Optional[AsyncQueryBackend] = None,
) -> RecordFetcher:
    """
    Resolve the fetcher for `mode`.

    Raises
    ------
    ValueError
        If the mode is unknown.
    BindingUnavailable
        If the backend that mode needs was not supplied.
    """
    factories = _fetcher_factories()
    if mode not in factories:
        raise ValueError(f"Unknown fetch mode '{mode}'. Available: {', '.join(factories)}")
    return factories[mode](settings, backend, async_backend)


def build_preview_fetcher(settings: Settings) -> Optional[PreviewFetcher]:
    """The secondary preview fetcher, or None when no secondary URL is configured."""
    if not settings.secondary_enabled:
        return None
    return PreviewFetcher(
        settings.secondary_db_url,
        table=settings.users_table,
        limit=settings.secondary_preview_limit,
        connect_timeout=settings.secondary_connect_timeout_s,
    )


async def _run(fetcher: RecordFetcher) -> FetchResult:
    if isinstance(fetcher, ConcurrentRangePartitionedFetcher):
        return await fetcher.execute_async()
    return await run_in_threadpool(fetcher.execute)


async def load_page(
    fetcher: RecordFetcher,
    preview_fetcher: Optional[RecordFetcher] = None,
) -> PageData:
    """
    Load the primary rows and, when configured, the secondary preview.

    FetchError subclasses propagate unchanged; nothing partial is returned.
    """
    with profile_block(f"page:{fetcher.name}") as stats:
        result = await _run(fetcher)
        preview = await _run(preview_fetcher) if preview_fetcher is not None else None

    stats.extra["rows"] = result.get("rows", len(result["records"]))
    if preview is not None:
        stats.extra["preview_rows"] = len(preview["records"])
    log.info("[PAGE LOADED] %s", fetcher.name, extra=stats.as_log_fields())

    return PageData(
        records=result["records"],
        preview=preview["records"] if preview is not None else None,
        plan=result.get("plan"),
        partitions=result.get("partitions", []),
        duration_seconds=stats.duration_seconds,
    )


__all__ = [
    "PageData",
    "available_fetch_modes",
    "build_fetcher",
    "build_preview_fetcher",
    "load_page",
]
