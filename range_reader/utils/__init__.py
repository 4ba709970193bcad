"""
Utilities package for the range reader service.

Exports shared helpers for logging, profiling, and other cross-cutting concerns.
Keep this package lightweight and free of domain-specific logic.
"""

from range_reader.utils.logging import configure_logging, get_logger
from range_reader.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
