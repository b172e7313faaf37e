"""
Tests for schema.py and the reporting views.

Verifies:
  - migrate() is idempotent and records schema versions
  - every required view exists after create_database()
  - view contents match hand-computed aggregates of the fixture data
  - cancelled movements are excluded from aggregates but still listed
  - seed_demo_data fills a fresh database and is safe to re-run
"""
import sqlite3
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from schema import REQUIRED_VIEWS, create_database, migrate, missing_views
import seed_demo_data


@pytest.fixture()
def conn(db_path):
    c = sqlite3.connect(str(db_path))
    c.row_factory = sqlite3.Row
    yield c
    c.close()


# ── Migrations ────────────────────────────────────────────────────────────────

class TestMigrations:
    def test_fresh_database_has_all_views(self, tmp_path):
        c = create_database(tmp_path / "fresh.sqlite")
        try:
            assert missing_views(c) == []
        finally:
            c.close()

    def test_migrate_is_idempotent(self, conn):
        assert migrate(conn) == 0

    def test_versions_recorded(self, conn):
        versions = [r[0] for r in conn.execute(
            "SELECT version FROM schema_version ORDER BY version")]
        assert versions == [1, 2]

    def test_missing_views_reported(self, conn):
        conn.execute("DROP VIEW vw_executado_por_mes")
        assert missing_views(conn) == ["vw_executado_por_mes"]

    def test_required_views_listed(self):
        assert set(REQUIRED_VIEWS) == {
            "vw_resumo_projetos",
            "vw_executado_por_mes",
            "vw_planejado_executado_categoria",
            "vw_movimentos_lista",
        }

    def test_tipo_check_constraint(self, conn):
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO movimentos_financeiros (id, projeto_id, tipo, data, valor_total) "
                "VALUES ('x', 'p-orq', 'TRANSFERENCIA', '2025-01-01', 1)"
            )

    def test_negative_amount_rejected(self, conn):
        with pytest.raises(sqlite3.IntegrityError):
            conn.execute(
                "INSERT INTO movimentos_financeiros (id, projeto_id, tipo, data, valor_total) "
                "VALUES ('x', 'p-orq', 'SAIDA', '2025-01-01', -1)"
            )

    def test_status_defaults_to_confirmado(self, conn):
        conn.execute(
            "INSERT INTO movimentos_financeiros (id, projeto_id, tipo, data, valor_total) "
            "VALUES ('x', 'p-orq', 'SAIDA', '2025-01-01', 1)"
        )
        row = conn.execute(
            "SELECT status, created_at FROM movimentos_financeiros WHERE id = 'x'"
        ).fetchone()
        assert row["status"] == "confirmado"
        assert row["created_at"]


# ── vw_resumo_projetos ────────────────────────────────────────────────────────

class TestResumoProjetos:
    def test_orquestra_totals(self, conn):
        row = dict(conn.execute(
            "SELECT * FROM vw_resumo_projetos WHERE projeto_id = 'p-orq'").fetchone())
        assert row["total_planejado"] == 1500.0
        assert row["total_executado"] == 800.0   # m-5 (cancelado) excluded
        assert row["total_entradas"] == 2000.0
        assert row["saldo_planejado"] == 700.0

    def test_project_without_data_is_zero(self, conn):
        row = dict(conn.execute(
            "SELECT * FROM vw_resumo_projetos WHERE projeto_id = 'p-vazio'").fetchone())
        assert row["total_planejado"] == 0
        assert row["total_executado"] == 0
        assert row["total_entradas"] == 0
        assert row["saldo_planejado"] == 0

    def test_one_row_per_project(self, conn):
        count = conn.execute("SELECT COUNT(*) FROM vw_resumo_projetos").fetchone()[0]
        assert count == 3


# ── vw_executado_por_mes ──────────────────────────────────────────────────────

class TestExecutadoPorMes:
    def test_monthly_sums(self, conn):
        rows = [tuple(r) for r in conn.execute(
            "SELECT mes, total_entradas, total_saidas FROM vw_executado_por_mes "
            "WHERE projeto_id = 'p-orq' ORDER BY mes")]
        assert rows == [
            ("2025-01-01", 2000.0, 0),
            ("2025-02-01", 0, 500.0),
            ("2025-03-01", 0, 300.0),
        ]

    def test_empty_project_has_no_rows(self, conn):
        rows = conn.execute(
            "SELECT * FROM vw_executado_por_mes WHERE projeto_id = 'p-vazio'").fetchall()
        assert rows == []


# ── vw_planejado_executado_categoria ──────────────────────────────────────────

class TestPlanejadoExecutadoCategoria:
    def test_breakdown(self, conn):
        rows = {r["categoria"]: dict(r) for r in conn.execute(
            "SELECT * FROM vw_planejado_executado_categoria WHERE projeto_id = 'p-orq'")}
        assert set(rows) == {"Pessoal", "Material"}
        assert rows["Pessoal"]["valor_executado"] == 600.0
        assert rows["Pessoal"]["saldo"] == 400.0
        assert rows["Pessoal"]["execucao_percentual"] == 60.0
        assert rows["Material"]["valor_executado"] == 200.0
        assert rows["Material"]["execucao_percentual"] == 40.0

    def test_unplanned_category_has_null_percent(self, conn):
        conn.execute(
            "INSERT INTO movimentos_financeiros "
            "(id, projeto_id, tipo, data, categoria_gasto_id, valor_total) "
            "VALUES ('x', 'p-orq', 'SAIDA', '2025-04-01', 'c-tra', 120)"
        )
        row = dict(conn.execute(
            "SELECT * FROM vw_planejado_executado_categoria "
            "WHERE projeto_id = 'p-orq' AND categoria = 'Transporte'").fetchone())
        assert row["valor_planejado"] == 0
        assert row["valor_executado"] == 120.0
        assert row["saldo"] == -120.0
        assert row["execucao_percentual"] is None


# ── vw_movimentos_lista ───────────────────────────────────────────────────────

class TestMovimentosLista:
    def test_joins_names(self, conn):
        row = dict(conn.execute(
            "SELECT * FROM vw_movimentos_lista WHERE id = 'm-2'").fetchone())
        assert row["projeto_nome"] == "Orquestra"
        assert row["ano_base"] == 2025
        assert row["categoria_nome"] == "Material"
        assert row["data_movimento"] == "2025-02-01"

    def test_uncategorised_movement_listed(self, conn):
        row = dict(conn.execute(
            "SELECT * FROM vw_movimentos_lista WHERE id = 'm-1'").fetchone())
        assert row["categoria_gasto_id"] is None
        assert row["categoria_nome"] is None

    def test_cancelled_movement_still_listed(self, conn):
        row = conn.execute(
            "SELECT status FROM vw_movimentos_lista WHERE id = 'm-5'").fetchone()
        assert row["status"] == "cancelado"


# ── seed_demo_data ────────────────────────────────────────────────────────────

class TestSeedDemoData:
    def test_seed_fresh_database(self, tmp_path):
        db = tmp_path / "demo.sqlite"
        assert seed_demo_data.main(["--db", str(db)]) == 0
        c = sqlite3.connect(str(db))
        try:
            assert c.execute("SELECT COUNT(*) FROM projetos").fetchone()[0] == len(
                seed_demo_data.PROJECTS)
            assert c.execute("SELECT COUNT(*) FROM movimentos_financeiros").fetchone()[0] == len(
                seed_demo_data.MOVEMENTS)
        finally:
            c.close()

    def test_seed_twice_does_not_duplicate(self, tmp_path):
        db = tmp_path / "demo.sqlite"
        seed_demo_data.main(["--db", str(db)])
        c = create_database(db)
        try:
            summary = seed_demo_data.seed(c)
            assert sum(summary.values()) == 0
        finally:
            c.close()

    def test_dry_run_writes_nothing(self, tmp_path, capsys):
        db = tmp_path / "demo.sqlite"
        assert seed_demo_data.main(["--db", str(db), "--dry-run"]) == 0
        assert not db.exists()
        out = capsys.readouterr().out
        assert "Would insert 2 rows into projetos" in out
        assert "Would insert 10 rows into movimentos_financeiros" in out

    def test_dry_run_leaves_existing_database_alone(self, tmp_path):
        db = tmp_path / "demo.sqlite"
        sqlite3.connect(str(db)).close()
        assert seed_demo_data.main(["--db", str(db), "--dry-run"]) == 0
        c = sqlite3.connect(str(db))
        try:
            tables = c.execute("SELECT name FROM sqlite_master").fetchall()
        finally:
            c.close()
        assert tables == []
