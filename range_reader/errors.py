"""
Error taxonomy for partitioned reads.

Every failure is local to one request. The web layer turns these into an
error body carrying `message` and an HTTP status classification.
"""

from __future__ import annotations


class FetchError(Exception):
    """Base class for failures surfaced to the caller of a fetch."""

    status_code: int = 500
    default_message: str = "Failed to query database"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class BindingUnavailable(FetchError):
    """The database capability was not supplied to the process."""

    default_message = "Database not available"


class NotFound(FetchError):
    """The aggregate query returned no row, or the table is empty."""

    status_code = 404
    default_message = "No data found in the users table"


class QueryFailure(FetchError):
    """Any exception raised by the aggregate or a range fetch."""


__all__ = ["BindingUnavailable", "FetchError", "NotFound", "QueryFailure"]
