"""
Database connection management for the web application.

Provides a get_db() dependency that opens a per-request SQLite connection and
closes it after the response is sent, and open_connection() for code that
runs outside a request (the async data client, health checks).  The database
path is resolved from the APP_DB_PATH environment variable
(default: rkc_financeiro.sqlite) and can be overridden by create_app().

Every connection registers a ``casefold`` SQL function so description
searches are case-insensitive for accented text too (SQLite's own lower()
only folds ASCII).
"""

import os
import sqlite3
from collections.abc import Generator
from pathlib import Path

from fastapi import HTTPException

from utils.database import init_pragmas

_DB_PATH: Path = Path(os.getenv("APP_DB_PATH", "rkc_financeiro.sqlite"))


class DatabaseMissingError(RuntimeError):
    """The configured database file does not exist."""


def get_db_path() -> Path:
    """Return the configured database path."""
    return _DB_PATH


def set_db_path(db_path: Path) -> None:
    global _DB_PATH
    _DB_PATH = Path(db_path)


def _casefold(value):
    if value is None:
        return None
    return str(value).casefold()


def _make_conn(db_path: Path) -> sqlite3.Connection:
    """Open a single SQLite connection with standard pragmas."""
    conn = sqlite3.connect(str(db_path), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    init_pragmas(conn)
    conn.create_function("casefold", 1, _casefold, deterministic=True)
    return conn


def open_connection() -> sqlite3.Connection:
    """Open a connection to the configured database.

    Raises:
        DatabaseMissingError: If the database file does not exist.
    """
    if not _DB_PATH.exists():
        raise DatabaseMissingError(
            f"Database not found at '{_DB_PATH}'. "
            "Run 'python schema.py --db <path>' to create it."
        )
    return _make_conn(_DB_PATH)


def get_db() -> Generator[sqlite3.Connection, None, None]:
    """FastAPI dependency: yield a SQLite connection, close on exit.

    Raises HTTP 503 with a friendly message if the database file is
    missing, instead of letting SQLite create an empty file.

    Usage in a route::

        from api.database import get_db
        from fastapi import Depends

        @router.get("/example")
        def example(conn=Depends(get_db)):
            ...
    """
    try:
        conn = open_connection()
    except DatabaseMissingError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    try:
        yield conn
    finally:
        conn.close()
