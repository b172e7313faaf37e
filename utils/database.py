"""Database utilities for the RKC dashboard.

Provides reusable functions for:
- Connection pragmas
- Common read helpers (rows as dicts, table/view introspection)
- Query timing with a bounded slow-query log
"""

import logging
import sqlite3
import threading
import time
from collections import deque
from typing import Any, Dict, List, Sequence

logger = logging.getLogger("rkc_financeiro.db")

SLOW_QUERY_MS = 100.0

_SLOW_QUERY_LOG_SIZE = 50

_slow_queries: deque = deque(maxlen=_SLOW_QUERY_LOG_SIZE)
_stats_lock = threading.Lock()
_query_count = 0
_total_query_ms = 0.0


def init_pragmas(conn: sqlite3.Connection) -> None:
    """Initialize SQLite reliability pragmas.

    - WAL mode so readers are not blocked by the occasional write
    - NORMAL synchronous mode
    - busy timeout so concurrent writers wait instead of failing at once
    - foreign keys enforced

    Args:
        conn: SQLite connection to configure
    """
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute("PRAGMA synchronous=NORMAL")
    conn.execute("PRAGMA busy_timeout=5000")
    conn.execute("PRAGMA foreign_keys=ON")


def object_exists(conn: sqlite3.Connection, name: str, kind: str = "table") -> bool:
    """Check whether a table or view exists.

    Args:
        conn: SQLite connection
        name: Table or view name
        kind: "table" or "view"

    Returns:
        True if the object exists
    """
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type = ? AND name = ?",
        (kind, name),
    ).fetchone()
    return row is not None


def _record(sql: str, duration_ms: float, threshold_ms: float) -> None:
    global _query_count, _total_query_ms
    with _stats_lock:
        _query_count += 1
        _total_query_ms += duration_ms
        if duration_ms > threshold_ms:
            _slow_queries.append({
                "sql": " ".join(sql.split())[:500],
                "duration_ms": round(duration_ms, 2),
                "timestamp": time.strftime("%Y-%m-%dT%H:%M:%S"),
            })
    if duration_ms > threshold_ms:
        logger.warning("slow_query duration_ms=%.1f sql=%s", duration_ms,
                       " ".join(sql.split())[:200])


def timed_execute(conn: sqlite3.Connection, sql: str,
                  params: Sequence[Any] = (),
                  threshold_ms: float = SLOW_QUERY_MS) -> sqlite3.Cursor:
    """Execute a statement and record its duration.

    Statements slower than ``threshold_ms`` are logged as warnings and kept
    in the slow-query log returned by get_slow_queries().
    """
    start = time.perf_counter()
    try:
        return conn.execute(sql, params)
    finally:
        _record(sql, (time.perf_counter() - start) * 1000, threshold_ms)


def query_to_dicts(conn: sqlite3.Connection, query: str,
                   params: Sequence[Any] = (),
                   threshold_ms: float = SLOW_QUERY_MS) -> List[Dict[str, Any]]:
    """Execute query and return results as list of dicts.

    Args:
        conn: SQLite connection (must have row_factory set)
        query: SQL query string
        params: Query parameters

    Returns:
        List of row dicts
    """
    cursor = timed_execute(conn, query, params, threshold_ms)
    return [dict(row) for row in cursor.fetchall()]


def get_slow_queries() -> List[Dict[str, Any]]:
    """Return the most recent slow queries, oldest first."""
    with _stats_lock:
        return list(_slow_queries)


def get_query_stats() -> Dict[str, Any]:
    """Return aggregate query timing statistics since process start."""
    with _stats_lock:
        avg = round(_total_query_ms / _query_count, 2) if _query_count else 0.0
        return {
            "query_count": _query_count,
            "slow_query_count": len(_slow_queries),
            "avg_query_time_ms": avg,
        }


def reset_query_stats() -> None:
    """Clear timing statistics and the slow-query log."""
    global _query_count, _total_query_ms
    with _stats_lock:
        _slow_queries.clear()
        _query_count = 0
        _total_query_ms = 0.0
