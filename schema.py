"""
Local database schema for the RKC financial dashboard.

In production the tables and the four reporting views live in the hosted
PostgreSQL database and are maintained outside this repository.  This module
recreates a compatible SQLite schema so the application can run locally and
be tested end to end:

    projetos                 projects (name, base year, program line)
    categorias_gasto         expense categories
    planejamento_itens       planned amount per project and category
    movimentos_financeiros   inflow/outflow movements (the only table written)

    vw_resumo_projetos               per-project planned/executed/inflow totals
    vw_executado_por_mes             per-project monthly inflow/outflow sums
    vw_planejado_executado_categoria per-project planned vs executed by category
    vw_movimentos_lista              movements with project/category names

Movements whose status is 'cancelado' are left out of every aggregate view
but still listed by vw_movimentos_lista.

Usage:
    python schema.py --db rkc_financeiro.sqlite      # create or migrate
"""

from __future__ import annotations

import argparse
import logging
import sqlite3
from pathlib import Path

from utils.database import init_pragmas, object_exists

logger = logging.getLogger("rkc_financeiro.schema")

_DDL_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    description TEXT,
    applied_at  TEXT    DEFAULT (datetime('now'))
);
"""

_DDL_001_TABLES = """
CREATE TABLE IF NOT EXISTS projetos (
    id              TEXT PRIMARY KEY,
    nome            TEXT NOT NULL,
    ano_base        INTEGER NOT NULL,
    linha_programa  TEXT,
    created_at      TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);

CREATE TABLE IF NOT EXISTS categorias_gasto (
    id    TEXT PRIMARY KEY,
    nome  TEXT NOT NULL UNIQUE
);

CREATE TABLE IF NOT EXISTS planejamento_itens (
    id                  TEXT PRIMARY KEY,
    projeto_id          TEXT NOT NULL REFERENCES projetos(id),
    categoria_gasto_id  TEXT NOT NULL REFERENCES categorias_gasto(id),
    valor_planejado     REAL NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS movimentos_financeiros (
    id                  TEXT PRIMARY KEY,
    projeto_id          TEXT NOT NULL REFERENCES projetos(id),
    tipo                TEXT NOT NULL CHECK (tipo IN ('ENTRADA', 'SAIDA')),
    data                TEXT NOT NULL,
    categoria_gasto_id  TEXT REFERENCES categorias_gasto(id),
    descricao           TEXT,
    valor_total         REAL NOT NULL CHECK (valor_total >= 0),
    status              TEXT NOT NULL DEFAULT 'confirmado',
    created_at          TEXT DEFAULT (strftime('%Y-%m-%dT%H:%M:%f', 'now'))
);

CREATE INDEX IF NOT EXISTS idx_mov_projeto_data
    ON movimentos_financeiros(projeto_id, data);
CREATE INDEX IF NOT EXISTS idx_plan_projeto
    ON planejamento_itens(projeto_id);
"""

_DDL_002_VIEWS = """
DROP VIEW IF EXISTS vw_movimentos_lista;
CREATE VIEW vw_movimentos_lista AS
SELECT
    m.id,
    m.projeto_id,
    p.nome              AS projeto_nome,
    p.ano_base,
    m.tipo,
    m.data              AS data_movimento,
    m.categoria_gasto_id,
    c.nome              AS categoria_nome,
    m.descricao,
    m.valor_total,
    m.status,
    m.created_at
FROM movimentos_financeiros m
JOIN projetos p ON p.id = m.projeto_id
LEFT JOIN categorias_gasto c ON c.id = m.categoria_gasto_id;

DROP VIEW IF EXISTS vw_resumo_projetos;
CREATE VIEW vw_resumo_projetos AS
SELECT
    p.id                AS projeto_id,
    p.nome,
    p.ano_base,
    p.linha_programa,
    COALESCE(pl.total, 0)                       AS total_planejado,
    COALESCE(mv.saidas, 0)                      AS total_executado,
    COALESCE(mv.entradas, 0)                    AS total_entradas,
    COALESCE(pl.total, 0) - COALESCE(mv.saidas, 0) AS saldo_planejado
FROM projetos p
LEFT JOIN (
    SELECT projeto_id, SUM(valor_planejado) AS total
    FROM planejamento_itens
    GROUP BY projeto_id
) pl ON pl.projeto_id = p.id
LEFT JOIN (
    SELECT projeto_id,
           SUM(CASE WHEN tipo = 'ENTRADA' THEN valor_total ELSE 0 END) AS entradas,
           SUM(CASE WHEN tipo = 'SAIDA'   THEN valor_total ELSE 0 END) AS saidas
    FROM movimentos_financeiros
    WHERE status <> 'cancelado'
    GROUP BY projeto_id
) mv ON mv.projeto_id = p.id;

DROP VIEW IF EXISTS vw_executado_por_mes;
CREATE VIEW vw_executado_por_mes AS
SELECT
    projeto_id,
    date(data, 'start of month') AS mes,
    SUM(CASE WHEN tipo = 'ENTRADA' THEN valor_total ELSE 0 END) AS total_entradas,
    SUM(CASE WHEN tipo = 'SAIDA'   THEN valor_total ELSE 0 END) AS total_saidas
FROM movimentos_financeiros
WHERE status <> 'cancelado'
GROUP BY projeto_id, date(data, 'start of month');

DROP VIEW IF EXISTS vw_planejado_executado_categoria;
CREATE VIEW vw_planejado_executado_categoria AS
WITH planejado AS (
    SELECT projeto_id, categoria_gasto_id, SUM(valor_planejado) AS valor
    FROM planejamento_itens
    GROUP BY projeto_id, categoria_gasto_id
),
executado AS (
    SELECT projeto_id, categoria_gasto_id, SUM(valor_total) AS valor
    FROM movimentos_financeiros
    WHERE tipo = 'SAIDA' AND status <> 'cancelado'
      AND categoria_gasto_id IS NOT NULL
    GROUP BY projeto_id, categoria_gasto_id
),
chaves AS (
    SELECT projeto_id, categoria_gasto_id FROM planejado
    UNION
    SELECT projeto_id, categoria_gasto_id FROM executado
)
SELECT
    k.projeto_id,
    c.nome                                      AS categoria,
    COALESCE(pl.valor, 0)                       AS valor_planejado,
    COALESCE(ex.valor, 0)                       AS valor_executado,
    COALESCE(pl.valor, 0) - COALESCE(ex.valor, 0) AS saldo,
    CASE WHEN COALESCE(pl.valor, 0) > 0
         THEN ROUND(COALESCE(ex.valor, 0) * 100.0 / pl.valor, 2)
    END                                         AS execucao_percentual
FROM chaves k
JOIN categorias_gasto c ON c.id = k.categoria_gasto_id
LEFT JOIN planejado pl
       ON pl.projeto_id = k.projeto_id AND pl.categoria_gasto_id = k.categoria_gasto_id
LEFT JOIN executado ex
       ON ex.projeto_id = k.projeto_id AND ex.categoria_gasto_id = k.categoria_gasto_id;
"""

# Migration SQL ordered by version number.
_MIGRATIONS: list[tuple[int, str, str]] = [
    (1, "base tables", _DDL_001_TABLES),
    (2, "reporting views", _DDL_002_VIEWS),
]

REQUIRED_VIEWS = (
    "vw_resumo_projetos",
    "vw_executado_por_mes",
    "vw_planejado_executado_categoria",
    "vw_movimentos_lista",
)


def _current_version(conn: sqlite3.Connection) -> int:
    """Return the highest applied migration version (0 if none applied)."""
    try:
        row = conn.execute(
            "SELECT MAX(version) FROM schema_version"
        ).fetchone()
        return row[0] or 0
    except sqlite3.OperationalError:
        return 0


def migrate(conn: sqlite3.Connection) -> int:
    """Apply all pending migrations in order.

    Idempotent: already-applied migrations are skipped.  The schema_version
    table is created if absent.

    Args:
        conn: An open SQLite connection.

    Returns:
        Number of migrations applied in this call (0 if already up to date).
    """
    conn.execute(_DDL_SCHEMA_VERSION)
    conn.commit()

    current = _current_version(conn)
    applied = 0

    for version, description, sql in _MIGRATIONS:
        if version <= current:
            continue
        conn.executescript(sql)
        conn.execute(
            "INSERT INTO schema_version (version, description) VALUES (?, ?)",
            (version, description),
        )
        conn.commit()
        logger.info("applied migration %d (%s)", version, description)
        applied += 1

    return applied


def create_database(db_path: Path) -> sqlite3.Connection:
    """Open (or create) a database file and run all migrations.

    Args:
        db_path: Filesystem path for the SQLite file (created if absent).

    Returns:
        An open sqlite3.Connection with WAL mode and all migrations applied.
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(db_path))
    init_pragmas(conn)
    migrate(conn)
    return conn


def missing_views(conn: sqlite3.Connection) -> list[str]:
    """Return the reporting views the application needs but cannot find."""
    return [v for v in REQUIRED_VIEWS if not object_exists(conn, v, kind="view")]


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Create or migrate the local RKC dashboard database.",
    )
    parser.add_argument(
        "--db", type=Path, default=Path("rkc_financeiro.sqlite"),
        help="Path to the SQLite database (default: rkc_financeiro.sqlite)",
    )
    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s %(message)s")

    conn = create_database(args.db)
    try:
        version = _current_version(conn)
    finally:
        conn.close()
    print(f"Database ready at {args.db} (schema version {version})")


if __name__ == "__main__":
    main()
