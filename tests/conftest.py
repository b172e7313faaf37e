"""
Pytest fixtures for the RKC dashboard tests.

Provides a temporary SQLite database built with schema.create_database() and
filled with a small, hand-computed data set, a DataClient bound to it, and
FakeClient, an in-memory stand-in for DataClient used by the screen tests.

Fixture data (ids are short literals so assertions stay readable):

    p-orq    Orquestra       2025   plans: Pessoal 1000, Material 500
    p-vazio  Projeto Vazio   2025   no plans, no movements
    p-fest   Festival        2024   plans: Transporte 800

    m-1  p-orq   ENTRADA 2025-01-10  -          2000.00
    m-2  p-orq   SAIDA   2025-02-01  Material    200.00
    m-3  p-orq   SAIDA   2025-02-28  Pessoal     300.00
    m-4  p-orq   SAIDA   2025-03-01  Pessoal     300.00
    m-5  p-orq   SAIDA   2025-02-15  Material     50.00  cancelado
    m-6  p-fest  SAIDA   2024-07-12  Transporte  400.00  "Fretamento de Ônibus"
    m-7  p-fest  ENTRADA 2024-06-05  -           900.00  "Captação 100% incentivada"
"""

import asyncio
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from api.client import DataClient, QueryError  # noqa: E402
from api.database import _make_conn  # noqa: E402
from schema import create_database  # noqa: E402

PROJECTS = [
    ("p-orq", "Orquestra", 2025, "Formação musical"),
    ("p-vazio", "Projeto Vazio", 2025, None),
    ("p-fest", "Festival", 2024, "Difusão cultural"),
]

CATEGORIES = [
    ("c-mat", "Material"),
    ("c-pes", "Pessoal"),
    ("c-tra", "Transporte"),
]

PLANS = [
    ("pl-1", "p-orq", "c-pes", 1000.0),
    ("pl-2", "p-orq", "c-mat", 500.0),
    ("pl-3", "p-fest", "c-tra", 800.0),
]

MOVEMENTS = [
    # id, projeto, tipo, data, categoria, descricao, valor, status, created_at
    ("m-1", "p-orq", "ENTRADA", "2025-01-10", None, "Repasse do patrocínio",
     2000.0, "confirmado", "2025-01-10T09:00:00"),
    ("m-2", "p-orq", "SAIDA", "2025-02-01", "c-mat", "Compra de estantes",
     200.0, "confirmado", "2025-02-01T09:00:00"),
    ("m-3", "p-orq", "SAIDA", "2025-02-28", "c-pes", "Cachê professores fevereiro",
     300.0, "confirmado", "2025-02-28T09:00:00"),
    ("m-4", "p-orq", "SAIDA", "2025-03-01", "c-pes", "Cachê professores março",
     300.0, "confirmado", "2025-03-01T09:00:00"),
    ("m-5", "p-orq", "SAIDA", "2025-02-15", "c-mat", "Cordas (devolvido)",
     50.0, "cancelado", "2025-02-15T09:00:00"),
    ("m-6", "p-fest", "SAIDA", "2024-07-12", "c-tra", "Fretamento de Ônibus",
     400.0, "confirmado", "2024-07-12T09:00:00"),
    ("m-7", "p-fest", "ENTRADA", "2024-06-05", None, "Captação 100% incentivada",
     900.0, "confirmado", "2024-06-05T09:00:00"),
]


def populate(conn: sqlite3.Connection) -> None:
    """Insert the fixture data set into an already-migrated database."""
    conn.executemany(
        "INSERT INTO projetos (id, nome, ano_base, linha_programa) VALUES (?, ?, ?, ?)",
        PROJECTS,
    )
    conn.executemany("INSERT INTO categorias_gasto (id, nome) VALUES (?, ?)", CATEGORIES)
    conn.executemany(
        "INSERT INTO planejamento_itens (id, projeto_id, categoria_gasto_id, valor_planejado) "
        "VALUES (?, ?, ?, ?)",
        PLANS,
    )
    conn.executemany(
        "INSERT INTO movimentos_financeiros "
        "(id, projeto_id, tipo, data, categoria_gasto_id, descricao, valor_total, "
        " status, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
        MOVEMENTS,
    )
    conn.commit()


def build_db(db_path: Path) -> Path:
    conn = create_database(db_path)
    try:
        populate(conn)
    finally:
        conn.close()
    return db_path


@pytest.fixture()
def db_path(tmp_path) -> Path:
    """A fresh, populated database file per test."""
    return build_db(tmp_path / "rkc.sqlite")


@pytest.fixture()
def data_client(db_path) -> DataClient:
    """DataClient bound to the per-test database."""
    return DataClient(connect=lambda: _make_conn(db_path))


def run(coro):
    """Run a coroutine to completion (the tests have no async plugin)."""
    return asyncio.run(coro)


class FakeClient:
    """In-memory DataClient stand-in for the screen tests.

    Each read returns a copy of the configured rows.  Setting ``fail`` to a
    method name makes that method raise QueryError; ``gates`` maps a method
    name to a list of asyncio.Event objects consumed one per call, letting a
    test hold a response back and release it later.
    """

    def __init__(self, **rows):
        self.rows = {
            "project_summaries": [],
            "monthly_series": [],
            "category_breakdown": [],
            "projects": [],
            "categories": [],
            "movements": [],
        }
        self.rows.update(rows)
        self.fail: set[str] = set()
        self.gates: dict[str, list] = {}
        self.calls: list[tuple] = []
        self.inserted: list[dict] = []
        self.updated: list[tuple[str, dict]] = []

    async def _read(self, name, *args, **kwargs):
        self.calls.append((name, args, kwargs))
        gates = self.gates.get(name)
        if gates:
            await gates.pop(0).wait()
        if name in self.fail:
            raise QueryError(name, "simulated failure")
        return [dict(r) for r in self.rows[name]]

    async def project_summaries(self):
        return await self._read("project_summaries")

    async def monthly_series(self, projeto_id):
        return await self._read("monthly_series", projeto_id)

    async def category_breakdown(self, projeto_id):
        return await self._read("category_breakdown", projeto_id)

    async def projects(self):
        return await self._read("projects")

    async def categories(self):
        return await self._read("categories")

    async def movements(self, projeto_id=None, tipo=None, mes=None, q=None):
        return await self._read("movements", projeto_id=projeto_id, tipo=tipo,
                                mes=mes, q=q)

    async def insert_movement(self, payload):
        self.calls.append(("insert_movement", (payload,), {}))
        if "insert_movement" in self.fail:
            raise QueryError("movimentos_financeiros", "simulated failure")
        self.inserted.append(payload)
        return f"new-{len(self.inserted)}"

    async def update_movement(self, movement_id, payload):
        self.calls.append(("update_movement", (movement_id, payload), {}))
        if "update_movement" in self.fail:
            raise QueryError("movimentos_financeiros", "simulated failure")
        self.updated.append((movement_id, payload))
        for row in self.rows["movements"]:
            if row["id"] == movement_id:
                row.update(payload)
                if "data" in payload:
                    row["data_movimento"] = payload["data"]

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)
