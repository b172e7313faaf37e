"""
Fill a local database with demonstration data.

Creates (or migrates) the schema, then inserts two projects, a handful of
spending categories, planned amounts per category and a few months of
movements, including one cancelled movement that the reporting views must
ignore.

Ids are derived from the row's natural key (uuid5), and inserts use
INSERT OR IGNORE, so running the script twice leaves a single copy of every
row.

Usage:
    python seed_demo_data.py
    python seed_demo_data.py --db /path/to/rkc_financeiro.sqlite
    python seed_demo_data.py --dry-run
"""

import argparse
import sqlite3
import sys
import uuid
from pathlib import Path

from schema import create_database

DEFAULT_DB_PATH = Path("rkc_financeiro.sqlite")

_NAMESPACE = uuid.UUID("5b3f0d7e-2c1a-4f43-9a59-1f5b0c6a7d21")

PROJECTS = [
    # (nome, ano_base, linha_programa)
    ("Orquestra Jovem RKC", 2025, "Formação musical"),
    ("Festival de Inverno", 2024, "Difusão cultural"),
]

CATEGORIES = ["Combustível", "Material", "Pessoal", "Serviços contábeis", "Transporte"]

PLANNING = [
    # (projeto, categoria, valor_planejado)
    ("Orquestra Jovem RKC", "Pessoal", 48000.00),
    ("Orquestra Jovem RKC", "Material", 12000.00),
    ("Orquestra Jovem RKC", "Serviços contábeis", 3600.00),
    ("Festival de Inverno", "Transporte", 9500.00),
    ("Festival de Inverno", "Material", 4200.00),
]

MOVEMENTS = [
    # (projeto, tipo, data, categoria, descricao, valor_total, status)
    ("Orquestra Jovem RKC", "ENTRADA", "2025-01-10", None, "Repasse do patrocínio - 1ª parcela", 30000.00, "confirmado"),
    ("Orquestra Jovem RKC", "SAIDA", "2025-01-20", "Pessoal", "Cachê professores janeiro", 4000.00, "confirmado"),
    ("Orquestra Jovem RKC", "SAIDA", "2025-02-03", "Material", "Compra de estantes de partitura", 1850.50, "confirmado"),
    ("Orquestra Jovem RKC", "SAIDA", "2025-02-28", "Serviços contábeis", "Serviços contábeis fevereiro", 300.00, "confirmado"),
    ("Orquestra Jovem RKC", "SAIDA", "2025-03-01", "Pessoal", "Cachê professores fevereiro", 4000.00, "confirmado"),
    ("Orquestra Jovem RKC", "SAIDA", "2025-03-15", "Material", "Cordas para violinos (devolvido)", 640.00, "cancelado"),
    ("Orquestra Jovem RKC", "ENTRADA", "2025-04-10", None, "Repasse do patrocínio - 2ª parcela", 30000.00, "confirmado"),
    ("Festival de Inverno", "ENTRADA", "2024-06-05", None, "Lei de incentivo - captação", 15000.00, "confirmado"),
    ("Festival de Inverno", "SAIDA", "2024-07-12", "Transporte", "Fretamento de ônibus", 5200.00, "confirmado"),
    ("Festival de Inverno", "SAIDA", "2024-07-13", "Combustível", "Combustível gerador", 780.40, "confirmado"),
]


def _id(*parts: str) -> str:
    return str(uuid.uuid5(_NAMESPACE, "|".join(parts)))


def seed(conn: sqlite3.Connection | None, dry_run: bool = False) -> dict:
    """Insert the demonstration rows.

    Returns a summary dict with counts of rows inserted per table (rows
    that would be inserted, for a dry run).  A dry run never touches the
    database, so ``conn`` may be None.
    """
    summary: dict[str, int] = {
        "projetos": 0,
        "categorias_gasto": 0,
        "planejamento_itens": 0,
        "movimentos_financeiros": 0,
    }

    def insert(table: str, sql: str, params: tuple) -> None:
        if dry_run:
            summary[table] += 1
            return
        cur = conn.execute(sql, params)
        summary[table] += cur.rowcount

    for nome, ano_base, linha in PROJECTS:
        insert(
            "projetos",
            "INSERT OR IGNORE INTO projetos (id, nome, ano_base, linha_programa) "
            "VALUES (?, ?, ?, ?)",
            (_id("projeto", nome), nome, ano_base, linha),
        )

    for nome in CATEGORIES:
        insert(
            "categorias_gasto",
            "INSERT OR IGNORE INTO categorias_gasto (id, nome) VALUES (?, ?)",
            (_id("categoria", nome), nome),
        )

    for projeto, categoria, valor in PLANNING:
        insert(
            "planejamento_itens",
            "INSERT OR IGNORE INTO planejamento_itens "
            "(id, projeto_id, categoria_gasto_id, valor_planejado) VALUES (?, ?, ?, ?)",
            (_id("plano", projeto, categoria), _id("projeto", projeto),
             _id("categoria", categoria), valor),
        )

    for projeto, tipo, data, categoria, descricao, valor, status in MOVEMENTS:
        insert(
            "movimentos_financeiros",
            "INSERT OR IGNORE INTO movimentos_financeiros "
            "(id, projeto_id, tipo, data, categoria_gasto_id, descricao, valor_total, status) "
            "VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
            (_id("movimento", projeto, data, descricao), _id("projeto", projeto),
             tipo, data, _id("categoria", categoria) if categoria else None,
             descricao, valor, status),
        )

    if not dry_run:
        conn.commit()

    return summary


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Fill the local RKC database with demonstration data."
    )
    parser.add_argument(
        "--db",
        default=str(DEFAULT_DB_PATH),
        help="Path to the SQLite database (default: rkc_financeiro.sqlite)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count rows to insert without modifying the database",
    )
    args = parser.parse_args(argv)

    if args.dry_run:
        summary = seed(None, dry_run=True)
    else:
        conn = create_database(Path(args.db))
        try:
            summary = seed(conn)
        except sqlite3.Error as exc:
            print(f"Error: {exc}", file=sys.stderr)
            return 1
        finally:
            conn.close()

    action = "Would insert" if args.dry_run else "Inserted"
    for table, count in summary.items():
        print(f"  {action} {count:,} rows into {table}")

    if args.dry_run:
        print("\nDry run complete, no rows written.")
    else:
        print("\nSeed complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
