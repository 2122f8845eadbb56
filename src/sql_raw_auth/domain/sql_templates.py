"""Helpers that turn operator SQL templates into bound statements."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Dialects that reject LIMIT after a parenthesized SELECT
_DERIVED_TABLE_DIALECTS = frozenset({"sqlite"})


@dataclass(frozen=True)
class BoundStatement:
    """SQL text with named placeholders plus the values bound to them."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def escape_like_wildcards(text: str) -> str:
    """Escape the LIKE metacharacters ``%`` and ``_`` with a backslash."""

    return text.replace("_", "\\_").replace("%", "\\%")


def build_search_pattern(search: str | None) -> str:
    """Wrap escaped search text so it matches as a substring."""

    return f"%{escape_like_wildcards(search or '')}%"


def build_user_listing_statement(
    query: str,
    *,
    search: str | None,
    limit: int | None,
    offset: int | None,
    dialect: str | None = None,
) -> BoundStatement:
    """Parenthesize the listing query and bind paging values.

    ``LIMIT`` and ``OFFSET`` are appended only for non-None values and are
    always bound as parameters. The operator query keeps its own ordering.
    SQLite only accepts paging on a derived table, so there the query is
    selected from as ``user_listing`` instead.
    """

    inner = query.strip().rstrip(";").rstrip()
    if dialect in _DERIVED_TABLE_DIALECTS:
        sql = f"SELECT * FROM ({inner}) AS user_listing"
    else:
        sql = f"({inner})"
    params: dict[str, Any] = {"username": build_search_pattern(search)}

    if limit is not None:
        params["limit"] = _non_negative(limit, name="limit")
        sql += " LIMIT :limit"
    if offset is not None:
        params["offset"] = _non_negative(offset, name="offset")
        sql += " OFFSET :offset"

    return BoundStatement(sql=sql, params=params)


def _non_negative(value: int, *, name: str) -> int:
    resolved = int(value)
    if resolved < 0:
        raise ValueError(f"{name} cannot be negative")
    return resolved
