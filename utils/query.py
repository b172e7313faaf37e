"""Shared SQL query builder utilities for the RKC dashboard.

Provides the fluent QueryBuilder used by the data client, plus the movement
list predicate composition shared by the list screen, the JSON API and the
export endpoint.
"""

import re
from datetime import date
from typing import Any, List

MOVEMENTS_VIEW = "vw_movimentos_lista"

DEFAULT_MOVEMENT_LIMIT = 200

_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


class QueryBuilder:
    """Fluent SQL SELECT query builder producing safe parameterized queries.

    Builds a SELECT statement step by step.  Column names used in
    ``select()``, ``order_by()``, and ``from_table()`` are passed as-is
    (callers are responsible for validating them against allow-lists).
    WHERE conditions use ``?`` placeholders so values are never interpolated.
    Successive ``order_by()`` calls append sort keys in call order.

    Example::

        sql, params = (
            QueryBuilder()
            .from_table("vw_movimentos_lista")
            .where("projeto_id = ?", "p-1")
            .order_by("data_movimento", "DESC")
            .order_by("created_at", "DESC")
            .limit(200)
            .build()
        )
    """

    def __init__(self) -> None:
        self._table: str = ""
        self._columns: List[str] = ["*"]
        self._conditions: List[str] = []
        self._params: List[Any] = []
        self._order: List[str] = []
        self._limit: int | None = None

    def from_table(self, table: str) -> "QueryBuilder":
        """Set the FROM table or view."""
        self._table = table
        return self

    def select(self, columns: List[str]) -> "QueryBuilder":
        """Set the SELECT column list."""
        self._columns = columns
        return self

    def where(self, condition: str, *values: Any) -> "QueryBuilder":
        """Add a WHERE condition with positional ``?`` placeholders.

        Args:
            condition: SQL condition fragment, e.g. "projeto_id = ?".
            *values: Values for the ``?`` placeholders in ``condition``.
        """
        self._conditions.append(condition)
        self._params.extend(values)
        return self

    def eq(self, column: str, value: Any) -> "QueryBuilder":
        """Shorthand for an equality condition."""
        return self.where(f"{column} = ?", value)

    def order_by(self, column: str, direction: str = "ASC") -> "QueryBuilder":
        """Append an ORDER BY key."""
        direction = "DESC" if direction.upper() == "DESC" else "ASC"
        self._order.append(f"{column} {direction}")
        return self

    def limit(self, n: int) -> "QueryBuilder":
        """Set LIMIT."""
        self._limit = int(n)
        return self

    def build(self) -> tuple[str, List[Any]]:
        """Build and return (sql, params) tuple.

        Raises:
            ValueError: If no table has been set.
        """
        if not self._table:
            raise ValueError("QueryBuilder: no table set, call .from_table() first")
        cols = ", ".join(self._columns)
        sql = f"SELECT {cols} FROM {self._table}"
        params = list(self._params)
        if self._conditions:
            sql += " WHERE " + " AND ".join(self._conditions)
        if self._order:
            sql += " ORDER BY " + ", ".join(self._order)
        if self._limit is not None:
            sql += f" LIMIT {self._limit}"
        return sql, params


def is_valid_month(mes: str | None) -> bool:
    """Return True for a "YYYY-MM" string naming a real month."""
    if not mes:
        return False
    m = _MONTH_RE.match(mes)
    return bool(m) and 1 <= int(m.group(2)) <= 12


def month_range(mes: str) -> tuple[str, str]:
    """Return the half-open ISO date range covering a "YYYY-MM" month.

    The upper bound is the first day of the following month, so every day
    of the requested month (including the 28th of February or the 31st of
    December) falls inside the range and nothing of the next month does.

    Args:
        mes: Month string such as "2025-02".

    Returns:
        (start, end) ISO date strings, e.g. ("2025-02-01", "2025-03-01").

    Raises:
        ValueError: If ``mes`` is not a valid "YYYY-MM" month.
    """
    if not is_valid_month(mes):
        raise ValueError(f"Invalid month: '{mes}'. Expected YYYY-MM.")
    year, month = (int(part) for part in mes.split("-"))
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start.isoformat(), end.isoformat()


def escape_like(text: str) -> str:
    """Escape LIKE wildcards so user text matches literally (ESCAPE '\\')."""
    return (
        text.replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )


def build_movement_query(
    projeto_id: str | None = None,
    tipo: str | None = None,
    mes: str | None = None,
    q: str | None = None,
    limit: int = DEFAULT_MOVEMENT_LIMIT,
) -> tuple[str, list[Any]]:
    """Build the filtered movement list query.

    Predicates are composed only for the filters that are set:

    - ``projeto_id`` / ``tipo``: equality
    - ``mes``: ``data_movimento`` within the month (see month_range)
    - ``q``: case-insensitive substring match on ``descricao``; the text is
      trimmed first and ignored when blank.  Relies on the ``casefold``
      SQL function registered by api.database on every connection.

    Rows are sorted newest first (movement date, then creation time) and
    capped at ``limit``.

    Returns:
        (sql, params) ready for ``conn.execute``.
    """
    qb = QueryBuilder().from_table(MOVEMENTS_VIEW)
    if projeto_id:
        qb.eq("projeto_id", projeto_id)
    if tipo:
        qb.eq("tipo", tipo)
    if mes:
        start, end = month_range(mes)
        qb.where("data_movimento >= ?", start)
        qb.where("data_movimento < ?", end)
    text = (q or "").strip()
    if text:
        qb.where(
            "casefold(descricao) LIKE ? ESCAPE '\\'",
            f"%{escape_like(text.casefold())}%",
        )
    qb.order_by("data_movimento", "DESC").order_by("created_at", "DESC")
    qb.limit(limit)
    return qb.build()
