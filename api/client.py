"""
Async data client: the only code that talks to the database.

Every read goes through one of the reporting views (or the two reference
tables) and every write targets ``movimentos_financeiros``.  Blocking SQLite
work runs in a worker thread via asyncio.to_thread, each call on its own
connection, so independent fetches issued with asyncio.gather really do run
side by side.

Failures are normalised into QueryError, which carries the name of the
relation that failed so callers can log a useful message.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import uuid
from collections.abc import Callable
from typing import Any

from api.database import DatabaseMissingError, open_connection
from utils.config import AppConfig
from utils.database import SLOW_QUERY_MS, query_to_dicts, timed_execute
from utils.query import DEFAULT_MOVEMENT_LIMIT, QueryBuilder, build_movement_query

logger = logging.getLogger("rkc_financeiro.client")

MOVEMENTS_TABLE = "movimentos_financeiros"

WRITABLE_COLUMNS = (
    "projeto_id", "tipo", "data", "categoria_gasto_id",
    "descricao", "valor_total", "status",
)


class QueryError(Exception):
    """A read or write against the data store failed."""

    def __init__(self, source: str, detail: str) -> None:
        super().__init__(f"{source}: {detail}")
        self.source = source
        self.detail = detail


class RowNotFoundError(QueryError):
    """An update matched no row."""


class DataClient:
    """Thin query client shared by all screens and API routes.

    Args:
        connect: Zero-argument callable returning a new sqlite3 connection.
            Defaults to api.database.open_connection.
        movement_limit: Row cap for the movement list.
        slow_query_ms: Threshold for slow-query logging.
    """

    def __init__(
        self,
        connect: Callable[[], sqlite3.Connection] = open_connection,
        movement_limit: int = DEFAULT_MOVEMENT_LIMIT,
        slow_query_ms: float = SLOW_QUERY_MS,
    ) -> None:
        self._connect = connect
        self.movement_limit = movement_limit
        self.slow_query_ms = slow_query_ms

    # ── plumbing ──────────────────────────────────────────────────────────

    def _select_sync(self, source: str, sql: str, params: list[Any]) -> list[dict]:
        try:
            conn = self._connect()
        except (sqlite3.Error, DatabaseMissingError) as exc:
            raise QueryError(source, str(exc)) from exc
        try:
            return query_to_dicts(conn, sql, params, self.slow_query_ms)
        except sqlite3.Error as exc:
            raise QueryError(source, str(exc)) from exc
        finally:
            conn.close()

    async def _select(self, source: str, qb: QueryBuilder) -> list[dict]:
        sql, params = qb.build()
        return await asyncio.to_thread(self._select_sync, source, sql, params)

    @staticmethod
    def _clean_payload(payload: dict[str, Any]) -> dict[str, Any]:
        unknown = set(payload) - set(WRITABLE_COLUMNS)
        if unknown:
            raise ValueError(f"Unknown movement columns: {', '.join(sorted(unknown))}")
        return payload

    # ── reads ─────────────────────────────────────────────────────────────

    async def project_summaries(self) -> list[dict]:
        """Project summary rows, newest base year first, then by name."""
        qb = (
            QueryBuilder().from_table("vw_resumo_projetos")
            .order_by("ano_base", "DESC")
            .order_by("nome", "ASC")
        )
        return await self._select("vw_resumo_projetos", qb)

    async def monthly_series(self, projeto_id: str) -> list[dict]:
        """Raw monthly inflow/outflow rows for one project, oldest month first."""
        qb = (
            QueryBuilder().from_table("vw_executado_por_mes")
            .select(["mes", "total_entradas", "total_saidas"])
            .eq("projeto_id", projeto_id)
            .order_by("mes", "ASC")
        )
        return await self._select("vw_executado_por_mes", qb)

    async def category_breakdown(self, projeto_id: str) -> list[dict]:
        """Planned vs executed per category for one project, largest plan first."""
        qb = (
            QueryBuilder().from_table("vw_planejado_executado_categoria")
            .select(["categoria", "valor_planejado", "valor_executado",
                     "saldo", "execucao_percentual"])
            .eq("projeto_id", projeto_id)
            .order_by("valor_planejado", "DESC")
        )
        return await self._select("vw_planejado_executado_categoria", qb)

    async def projects(self) -> list[dict]:
        """Project reference list for selectors."""
        qb = (
            QueryBuilder().from_table("projetos")
            .select(["id", "nome", "ano_base"])
            .order_by("ano_base", "DESC")
            .order_by("nome", "ASC")
        )
        return await self._select("projetos", qb)

    async def categories(self) -> list[dict]:
        """Category reference list for selectors."""
        qb = (
            QueryBuilder().from_table("categorias_gasto")
            .select(["id", "nome"])
            .order_by("nome", "ASC")
        )
        return await self._select("categorias_gasto", qb)

    async def movements(
        self,
        projeto_id: str | None = None,
        tipo: str | None = None,
        mes: str | None = None,
        q: str | None = None,
    ) -> list[dict]:
        """Filtered movement rows (see utils.query.build_movement_query)."""
        sql, params = build_movement_query(
            projeto_id=projeto_id, tipo=tipo, mes=mes, q=q,
            limit=self.movement_limit,
        )
        return await asyncio.to_thread(
            self._select_sync, "vw_movimentos_lista", sql, params
        )

    # ── writes ────────────────────────────────────────────────────────────

    def _insert_sync(self, payload: dict[str, Any]) -> str:
        new_id = str(uuid.uuid4())
        columns = ["id", *payload]
        placeholders = ", ".join("?" * len(columns))
        sql = (f"INSERT INTO {MOVEMENTS_TABLE} ({', '.join(columns)}) "
               f"VALUES ({placeholders})")
        try:
            conn = self._connect()
        except (sqlite3.Error, DatabaseMissingError) as exc:
            raise QueryError(MOVEMENTS_TABLE, str(exc)) from exc
        try:
            with conn:
                timed_execute(conn, sql, [new_id, *payload.values()],
                              self.slow_query_ms)
        except sqlite3.Error as exc:
            raise QueryError(MOVEMENTS_TABLE, str(exc)) from exc
        finally:
            conn.close()
        return new_id

    def _update_sync(self, movement_id: str, payload: dict[str, Any]) -> None:
        assignments = ", ".join(f"{col} = ?" for col in payload)
        sql = f"UPDATE {MOVEMENTS_TABLE} SET {assignments} WHERE id = ?"
        try:
            conn = self._connect()
        except (sqlite3.Error, DatabaseMissingError) as exc:
            raise QueryError(MOVEMENTS_TABLE, str(exc)) from exc
        try:
            with conn:
                cur = timed_execute(conn, sql, [*payload.values(), movement_id],
                                    self.slow_query_ms)
                matched = cur.rowcount
        except sqlite3.Error as exc:
            raise QueryError(MOVEMENTS_TABLE, str(exc)) from exc
        finally:
            conn.close()
        if matched == 0:
            raise RowNotFoundError(MOVEMENTS_TABLE, f"movement {movement_id} not found")

    async def insert_movement(self, payload: dict[str, Any]) -> str:
        """Insert one movement and return its new id."""
        payload = self._clean_payload(payload)
        new_id = await asyncio.to_thread(self._insert_sync, payload)
        logger.info("movement created id=%s projeto_id=%s tipo=%s",
                    new_id, payload.get("projeto_id"), payload.get("tipo"))
        return new_id

    async def update_movement(self, movement_id: str, payload: dict[str, Any]) -> None:
        """Update one movement by id.

        Raises:
            RowNotFoundError: If no movement has that id.
            QueryError: On any other database failure.
        """
        payload = self._clean_payload(payload)
        if not payload:
            raise ValueError("Empty movement update")
        await asyncio.to_thread(self._update_sync, movement_id, payload)
        logger.info("movement updated id=%s fields=%s",
                    movement_id, ",".join(payload))


def get_client() -> DataClient:
    """FastAPI dependency: a DataClient configured from the environment.

    The client opens its own connection per query, so it is cheap to build
    per request and always follows the current database path.
    """
    cfg = AppConfig.from_env()
    return DataClient(movement_limit=cfg.movement_limit,
                      slow_query_ms=cfg.slow_query_ms)
