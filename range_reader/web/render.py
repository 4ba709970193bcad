"""
HTML rendering for the users page.
"""

from __future__ import annotations

from html import escape
from typing import Iterable, Optional

from range_reader.domain.models import Record

_PAGE_STYLE = (
    "font-family: system-ui, sans-serif; line-height: 1.4; max-width: 800px; "
    "margin: 0 auto; padding: 20px;"
)


def _cell(value: Optional[str]) -> str:
    return escape(value) if value is not None else ""


def render_users_table(title: str, records: Iterable[Record], note: str = "") -> str:
    rows = "\n".join(
        f'      <tr data-id="{record.id}"><td>{_cell(record.name)}</td>'
        f"<td>{_cell(record.email)}</td></tr>"
        for record in records
    )
    note_html = f"  <p>{escape(note)}</p>\n" if note else ""
    return (
        '<section class="users">\n'
        f"  <h2>{escape(title)}</h2>\n"
        f"{note_html}"
        "  <table>\n"
        "    <thead><tr><th>Name</th><th>Email</th></tr></thead>\n"
        "    <tbody>\n"
        f"{rows}\n"
        "    </tbody>\n"
        "  </table>\n"
        "</section>"
    )


def _document(body: str) -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        '<head><meta charset="utf-8"><title>Users</title></head>\n'
        f'<body><div style="{_PAGE_STYLE}">\n'
        f"{body}\n"
        "</div></body>\n"
        "</html>\n"
    )


def render_users_page(
    records: Iterable[Record],
    partition_count: int,
    preview: Optional[Iterable[Record]] = None,
) -> str:
    """Full page: the primary users table and, when given, the secondary preview."""
    noun = "request" if partition_count == 1 else "requests"
    sections = [
        "<h1>Users</h1>",
        render_users_table(
            "Users",
            records,
            note=f"The service makes {partition_count} {noun} to the database "
            "to pull data from the users table",
        ),
    ]
    if preview is not None:
        sections.append(render_users_table("Secondary users", preview))
    return _document("\n".join(sections))


def render_error(message: str) -> str:
    return _document(f"<div>Error: {escape(message)}</div>")


__all__ = ["render_error", "render_users_page", "render_users_table"]
