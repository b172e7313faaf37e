"""
Tests for screens/movements.py

Totals, filter-driven reloads, explicit search submission, the inline edit
protocol (start/change/cancel/save/failure) and stale-response handling.
"""
import asyncio
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from conftest import FakeClient, run
from screens.movements import (
    MovementFilters,
    MovementListScreen,
    Totals,
    tipo_flows,
    compute_totals,
)
from screens.state import NOT_EDITING, Editing


def _rows():
    return [
        {"id": "m-1", "projeto_id": "p-1", "tipo": "ENTRADA", "data_movimento": "2025-01-10",
         "categoria_gasto_id": None, "descricao": "Repasse", "valor_total": 2000.0,
         "status": "confirmado"},
        {"id": "m-2", "projeto_id": "p-1", "tipo": "SAIDA", "data_movimento": "2025-02-01",
         "categoria_gasto_id": "c-1", "descricao": "Estantes", "valor_total": 200.0,
         "status": "confirmado"},
        {"id": "m-3", "projeto_id": "p-1", "tipo": "saida", "data_movimento": "2025-02-28",
         "categoria_gasto_id": "c-2", "descricao": None, "valor_total": None,
         "status": None},
    ]


def _screen(**kwargs):
    client = FakeClient(
        projects=[{"id": "p-1", "nome": "Orquestra", "ano_base": 2025}],
        categories=[{"id": "c-1", "nome": "Material"}, {"id": "c-2", "nome": "Pessoal"}],
        movements=_rows(),
    )
    return client, MovementListScreen(client, **kwargs)


# ── Totals ────────────────────────────────────────────────────────────────────

class TestTotals:
    @pytest.mark.parametrize("tipo, expected", [
        ("ENTRADA", (True, False)),
        ("entrada", (True, False)),
        ("SAIDA", (False, True)),
        ("SAIDAS", (False, True)),
        ("SAIDA PENDENTE", (True, True)),
        ("TRANSFER", (False, False)),
        (None, (False, False)),
    ])
    def test_tipo_flows(self, tipo, expected):
        assert tipo_flows(tipo) == expected

    def test_label_with_both_markers_counts_on_both_sides(self):
        totals = compute_totals([{"tipo": "SAIDA PENDENTE", "valor_total": 100.0}])
        assert totals == Totals(entradas=100.0, saidas=100.0)
        assert totals.saldo == 0.0

    def test_sums_returned_rows(self):
        totals = compute_totals(_rows())
        assert totals == Totals(entradas=2000.0, saidas=200.0)
        assert totals.saldo == 1800.0

    def test_empty(self):
        assert compute_totals([]) == Totals()
        assert Totals().saldo == 0.0

    def test_screen_totals_follow_rows(self):
        _, screen = _screen()
        run(screen.boot())
        assert screen.totals.entradas == 2000.0
        assert screen.totals.saidas == 200.0


# ── Loading and filters ───────────────────────────────────────────────────────

class TestFilters:
    def test_boot_loads_reference_and_movements(self):
        client, screen = _screen()
        run(screen.boot())
        assert [r["id"] for r in screen.rows] == ["m-1", "m-2", "m-3"]
        assert len(screen.projects.rows) == 1
        assert len(screen.categories.rows) == 2
        assert client.count("movements") == 1

    def test_initial_filters_passed_to_query(self):
        client, screen = _screen(filters=MovementFilters(projeto_id="p-1", mes="2025-02",
                                                         q=" est "))
        run(screen.load())
        assert client.calls[-1][2] == {"projeto_id": "p-1", "tipo": None,
                                       "mes": "2025-02", "q": "est"}

    def test_invalid_month_not_sent(self):
        assert MovementFilters(mes="2025-13").query_kwargs()["mes"] is None

    def test_changing_filter_reloads(self):
        client, screen = _screen()
        run(screen.boot())
        assert run(screen.set_filters(tipo="SAIDA"))
        assert client.count("movements") == 2
        assert client.calls[-1][2]["tipo"] == "SAIDA"

    def test_unchanged_filter_does_not_reload(self):
        client, screen = _screen(filters=MovementFilters(tipo="SAIDA"))
        run(screen.boot())
        assert not run(screen.set_filters(tipo="SAIDA"))
        assert client.count("movements") == 1

    def test_search_is_not_a_reloading_filter(self):
        _, screen = _screen()
        with pytest.raises(ValueError):
            run(screen.set_filters(q="x"))

    def test_typing_does_not_query(self):
        client, screen = _screen()
        run(screen.boot())
        screen.type_search("estantes")
        assert client.count("movements") == 1
        assert screen.filters.q == ""

    def test_submit_search_reloads_with_text(self):
        client, screen = _screen()
        run(screen.boot())
        screen.type_search("  estantes ")
        run(screen.submit_search())
        assert client.count("movements") == 2
        assert client.calls[-1][2]["q"] == "estantes"

    def test_query_error_empties_list(self):
        client, screen = _screen()
        client.fail.add("movements")
        run(screen.boot())
        assert screen.rows == []
        assert screen.movements.empty
        assert len(screen.projects.rows) == 1

    def test_stale_response_discarded(self):
        client, screen = _screen()

        async def scenario():
            first_gate = asyncio.Event()
            second_gate = asyncio.Event()
            client.gates["movements"] = [first_gate, second_gate]
            first = asyncio.create_task(screen.set_filters(tipo="ENTRADA"))
            await asyncio.sleep(0)
            second = asyncio.create_task(screen.set_filters(tipo="SAIDA"))
            await asyncio.sleep(0)
            # the newer request answers first, with a different result
            client.rows["movements"] = [_rows()[1]]
            second_gate.set()
            await second
            client.rows["movements"] = [_rows()[0]]
            first_gate.set()
            await first

        run(scenario())
        assert screen.filters.tipo == "SAIDA"
        assert [r["id"] for r in screen.rows] == ["m-2"]


# ── Inline editing ────────────────────────────────────────────────────────────

class TestEditing:
    def test_start_edit_copies_row(self):
        _, screen = _screen()
        run(screen.boot())
        screen.start_edit("m-3")
        assert screen.editing_id == "m-3"
        assert screen.draft.descricao == ""
        assert screen.draft.valor_total == 0.0
        assert screen.draft.status == "confirmado"

    def test_start_edit_unknown_row(self):
        _, screen = _screen()
        run(screen.boot())
        with pytest.raises(KeyError):
            screen.start_edit("nope")

    def test_only_one_row_in_edit(self):
        _, screen = _screen()
        run(screen.boot())
        screen.start_edit("m-1")
        screen.change_draft(descricao="discarded")
        screen.start_edit("m-2")
        assert screen.editing_id == "m-2"
        assert screen.draft.descricao == "Estantes"

    def test_change_draft_leaves_rows_untouched(self):
        _, screen = _screen()
        run(screen.boot())
        screen.start_edit("m-2")
        screen.change_draft(descricao="Estantes novas", valor_total="250")
        assert screen.draft.valor_total == 250.0
        assert screen.rows[1]["descricao"] == "Estantes"

    def test_change_without_edit_is_noop(self):
        _, screen = _screen()
        screen.change_draft(descricao="x")
        assert screen.edit is NOT_EDITING

    def test_edit_then_cancel_leaves_list_unchanged(self):
        client, screen = _screen()
        run(screen.boot())
        before = [dict(r) for r in screen.rows]
        screen.start_edit("m-2")
        screen.change_draft(descricao="Outra coisa")
        screen.cancel_edit()
        assert screen.edit is NOT_EDITING
        assert screen.rows == before
        assert client.updated == []

    def test_edit_save_reloads_with_submitted_values(self):
        client, screen = _screen()
        run(screen.boot())
        screen.start_edit("m-2")
        screen.change_draft(descricao="Estantes novas", valor_total=250,
                            data_movimento="2025-02-02")
        assert run(screen.save_edit())
        assert screen.edit is NOT_EDITING
        movement_id, payload = client.updated[0]
        assert movement_id == "m-2"
        assert payload["data"] == "2025-02-02"
        assert "data_movimento" not in payload
        row = next(r for r in screen.rows if r["id"] == "m-2")
        assert row["descricao"] == "Estantes novas"
        assert row["valor_total"] == 250.0
        assert client.count("movements") == 2

    def test_save_failure_keeps_draft_and_alerts(self):
        client, screen = _screen()
        run(screen.boot())
        client.fail.add("update_movement")
        screen.start_edit("m-2")
        screen.change_draft(descricao="Estantes novas")
        assert not run(screen.save_edit())
        assert isinstance(screen.edit, Editing)
        assert screen.draft.descricao == "Estantes novas"
        assert screen.alert == "Falha ao salvar."
        assert not screen.saving
        assert client.count("movements") == 1

    def test_save_without_edit(self):
        client, screen = _screen()
        assert not run(screen.save_edit())
        assert client.updated == []
