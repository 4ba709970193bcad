"""
SQL builders for the aggregate and range queries.

The statements are identical across drivers except for the placeholder
syntax, selected by `paramstyle`:

- ``format``  -> ``%s`` (psycopg)
- ``numeric`` -> ``$1, $2`` (asyncpg)
- ``qmark``   -> ``?`` (sqlite3)
"""

from __future__ import annotations

import re
from typing import Any, List, Literal, Optional, Tuple

from range_reader.domain.models import KeyRange

ParamStyle = Literal["format", "numeric", "qmark"]

KEY_COLUMN = "id"

_IDENTIFIER_PART_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_table(name: str) -> str:
    """Validate and double-quote a table name with an optional schema prefix."""
    parts = name.split(".")
    if len(parts) > 2 or not all(_IDENTIFIER_PART_RE.match(part) for part in parts):
        raise ValueError(f"Invalid table identifier: {name!r}")
    return ".".join(f'"{part}"' for part in parts)


def _placeholder(paramstyle: ParamStyle, position: int) -> str:
    if paramstyle == "format":
        return "%s"
    if paramstyle == "numeric":
        return f"${position}"
    if paramstyle == "qmark":
        return "?"
    raise ValueError(f"Unsupported paramstyle: {paramstyle!r}")


def aggregate_query(table: str) -> str:
    """`COUNT(*)` and `MAX(id)` in one row, aliased `count` and `max_id`."""
    return (
        f"SELECT COUNT(*) AS count, MAX({KEY_COLUMN}) AS max_id "
        f"FROM {quote_table(table)}"
    )


def range_query(
    table: str,
    key_range: KeyRange,
    limit: Optional[int],
    paramstyle: ParamStyle = "format",
) -> Tuple[str, List[Any]]:
    """
    Build a bounded range fetch ordered by key.

    Returns the SQL text and its positional parameters.
    """
    clauses: List[str] = []
    params: List[Any] = []

    if key_range.lower is not None:
        params.append(key_range.lower)
        clauses.append(f"{KEY_COLUMN} > {_placeholder(paramstyle, len(params))}")
    if key_range.upper is not None:
        params.append(key_range.upper)
        clauses.append(f"{KEY_COLUMN} <= {_placeholder(paramstyle, len(params))}")

    sql = f"SELECT * FROM {quote_table(table)}"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {KEY_COLUMN}"
    if limit is not None:
        params.append(limit)
        sql += f" LIMIT {_placeholder(paramstyle, len(params))}"
    return sql, params


def preview_query(table: str, paramstyle: ParamStyle = "format") -> str:
    """First rows of a table by key; the only parameter is the row limit."""
    return (
        f"SELECT * FROM {quote_table(table)} ORDER BY {KEY_COLUMN} "
        f"LIMIT {_placeholder(paramstyle, 1)}"
    )


__all__ = [
    "KEY_COLUMN",
    "ParamStyle",
    "aggregate_query",
    "preview_query",
    "quote_table",
    "range_query",
]
