"""
Operational endpoints.

GET /health                 → database reachable and every reporting view present
GET /api/v1/health/queries  → query timing totals and the recent slow-query log
"""

import sqlite3
import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from api.database import DatabaseMissingError, get_db_path, open_connection
from schema import missing_views
from utils.database import get_query_stats, get_slow_queries

router = APIRouter(tags=["meta"])

_started_at = time.time()


def _unavailable(**content) -> JSONResponse:
    return JSONResponse(status_code=503, content=content)


@router.get("/health", summary="Health check")
def health():
    """200 when the database opens and has every reporting view, else 503."""
    db_path = get_db_path()
    try:
        conn = open_connection()
    except DatabaseMissingError:
        return _unavailable(status="no_database", database=str(db_path))
    try:
        missing = missing_views(conn)
        (count,) = conn.execute("SELECT COUNT(*) FROM movimentos_financeiros").fetchone()
    except sqlite3.Error as exc:
        return _unavailable(status="degraded", error=str(exc))
    finally:
        conn.close()
    if missing:
        return _unavailable(status="degraded", missing_views=missing)
    return {
        "status": "ok",
        "database": str(db_path),
        "movimentos": count,
        "uptime_seconds": round(time.time() - _started_at, 2),
    }


@router.get(
    "/api/v1/health/queries",
    summary="Query statistics",
    response_description="Timing totals and the most recent slow queries",
)
def query_stats():
    return {"stats": get_query_stats(), "slow_queries": get_slow_queries()}
