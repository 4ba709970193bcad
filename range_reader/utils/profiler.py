"""
Profiling utilities for the range reader service.

Measures a block of code for request logging:
- Wall-clock time (perf_counter)
- CPU usage (psutil)
- Peak RSS via a background sampling thread (psutil)

Usage example:
    from range_reader.utils.profiler import profile_block

    with profile_block("users-page") as stats:
        load_rows()

    print(stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)

    def as_log_fields(self) -> dict[str, Any]:
        return {
            "label": self.label,
            "duration_seconds": round(self.duration_seconds, 4),
            "peak_rss_bytes": self.peak_rss_bytes,
            "cpu_percent": self.cpu_percent,
            **self.extra,
        }


@contextlib.contextmanager
def profile_block(
    label: str, sample_interval_ms: int = 50
) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code.

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.
    sample_interval_ms : int
        Interval in milliseconds for RSS sampling.

    Notes
    -----
    The sampling thread captures peak memory during the block, not just the
    start/end snapshots.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()
    peak_rss = process.memory_info().rss
    stop_sampling = threading.Event()

    def _sample_memory() -> None:
        nonlocal peak_rss
        while not stop_sampling.is_set():
            try:
                peak_rss = max(peak_rss, process.memory_info().rss)
            except psutil.Error:
                return
            stop_sampling.wait(timeout=sample_interval_ms / 1000.0)

    # CPU percent needs a priming call
    process.cpu_percent(interval=None)

    sampler = threading.Thread(target=_sample_memory, daemon=True)
    sampler.start()

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts

        stop_sampling.set()
        sampler.join(timeout=1.0)

        stats.peak_rss_bytes = peak_rss if peak_rss > 0 else None
        stats.cpu_percent = process.cpu_percent(interval=None)


__all__ = ["ProfileStats", "profile_block"]
