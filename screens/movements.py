"""Movement list screen: filters, totals and single-row inline editing."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any

from api.client import DataClient, QueryError
from screens.state import (
    NOT_EDITING,
    EditState,
    Editing,
    Fetch,
    MovementDraft,
    run_fetch,
)
from utils.formatting import to_amount
from utils.query import is_valid_month

logger = logging.getLogger("rkc_financeiro.screens.movements")

SAVE_FAILED_MESSAGE = "Falha ao salvar."

# Filters whose change triggers an immediate reload.  The search text is
# only applied through submit_search().
RELOADING_FILTERS = ("projeto_id", "tipo", "mes")


@dataclass(frozen=True)
class MovementFilters:
    projeto_id: str = ""
    tipo: str = ""
    mes: str = ""
    q: str = ""

    def query_kwargs(self) -> dict[str, str | None]:
        return {
            "projeto_id": self.projeto_id or None,
            "tipo": self.tipo or None,
            "mes": self.mes if is_valid_month(self.mes) else None,
            "q": self.q.strip() or None,
        }


@dataclass(frozen=True)
class Totals:
    entradas: float = 0.0
    saidas: float = 0.0

    @property
    def saldo(self) -> float:
        return self.entradas - self.saidas


def tipo_flows(tipo: Any) -> tuple[bool, bool]:
    """Return (inflow, outflow) for a type label.

    Matching is loose and case-insensitive: a label containing "ENT" counts
    as inflow and one containing "SAI" as outflow.  The two checks are
    independent, so "SAIDA PENDENTE" counts on both sides.
    """
    label = "" if tipo is None else str(tipo).upper()
    return "ENT" in label, "SAI" in label


def compute_totals(rows: list[dict[str, Any]]) -> Totals:
    """Sum inflow and outflow over the rows actually returned."""
    entradas = 0.0
    saidas = 0.0
    for r in rows:
        inflow, outflow = tipo_flows(r.get("tipo"))
        if inflow:
            entradas += to_amount(r.get("valor_total"))
        if outflow:
            saidas += to_amount(r.get("valor_total"))
    return Totals(entradas=entradas, saidas=saidas)


class MovementListScreen:
    """State and loading logic for the movement list.

    Reference data (projects, categories) is loaded once by boot(); the
    movement rows are reloaded by load() whenever a reloading filter changes
    or a search is submitted.

    The HTML routes build a fresh screen per request with the filters already
    taken from the query string, so they only use boot() and the edit
    methods.  set_filters(), type_search(), submit_search() and cancel_edit()
    serve long-lived callers that keep one screen across user actions.
    """

    def __init__(self, client: DataClient,
                 filters: MovementFilters | None = None) -> None:
        self._client = client
        self.filters = filters or MovementFilters()
        self.search_text = self.filters.q
        self.projects = Fetch()
        self.categories = Fetch()
        self.movements = Fetch()
        self.edit: EditState = NOT_EDITING
        self.saving = False
        self.alert: str | None = None

    # ── loading ───────────────────────────────────────────────────────────

    async def boot(self) -> None:
        """Load reference lists and the first page of movements."""
        await asyncio.gather(
            run_fetch(self.projects, self._client.projects, logger, "projetos"),
            run_fetch(self.categories, self._client.categories, logger, "categorias_gasto"),
            self.load(),
        )

    async def load(self) -> bool:
        """(Re)run the movement query with the current filters."""
        kwargs = self.filters.query_kwargs()
        return await run_fetch(
            self.movements,
            lambda: self._client.movements(**kwargs),
            logger,
            "vw_movimentos_lista",
        )

    @property
    def rows(self) -> list[dict[str, Any]]:
        return self.movements.rows

    @property
    def totals(self) -> Totals:
        return compute_totals(self.movements.rows)

    # ── filters ───────────────────────────────────────────────────────────

    async def set_filters(self, **changes: str) -> bool:
        """Change project/type/month filters, reloading when any changed.

        Returns:
            True if a reload was issued.
        """
        unknown = set(changes) - set(RELOADING_FILTERS)
        if unknown:
            raise ValueError(f"Not a reloading filter: {', '.join(sorted(unknown))}")
        updated = replace(self.filters, **{k: v or "" for k, v in changes.items()})
        if updated == self.filters:
            return False
        self.filters = updated
        await self.load()
        return True

    def type_search(self, text: str) -> None:
        """Record search text without querying."""
        self.search_text = text

    async def submit_search(self) -> None:
        """Apply the typed search text and reload."""
        self.filters = replace(self.filters, q=self.search_text)
        await self.load()

    # ── editing ───────────────────────────────────────────────────────────

    @property
    def editing_id(self) -> str | None:
        return self.edit.row_id if isinstance(self.edit, Editing) else None

    @property
    def draft(self) -> MovementDraft | None:
        return self.edit.draft if isinstance(self.edit, Editing) else None

    def start_edit(self, row_id: str) -> None:
        """Put one listed row in edit mode, discarding any other draft."""
        row = next((r for r in self.movements.rows if r.get("id") == row_id), None)
        if row is None:
            raise KeyError(row_id)
        self.edit = Editing(row_id=row_id, draft=MovementDraft.from_row(row))
        self.alert = None

    def change_draft(self, **changes: Any) -> None:
        """Change draft fields; the listed rows stay as loaded."""
        if not isinstance(self.edit, Editing):
            return
        self.edit = replace(self.edit, draft=self.edit.draft.with_changes(**changes))

    def cancel_edit(self) -> None:
        self.edit = NOT_EDITING
        self.alert = None

    async def save_edit(self) -> bool:
        """Submit the draft, then reload the list.

        On failure the draft stays in place for another attempt and
        ``alert`` carries a user-facing message.
        """
        if not isinstance(self.edit, Editing) or self.saving:
            return False
        editing = self.edit
        self.saving = True
        try:
            await self._client.update_movement(editing.row_id, editing.draft.to_payload())
        except QueryError as exc:
            logger.error("Erro ao salvar movimento %s: %s", editing.row_id, exc,
                         exc_info=exc)
            self.alert = SAVE_FAILED_MESSAGE
            return False
        finally:
            self.saving = False
        self.edit = NOT_EDITING
        self.alert = None
        await self.load()
        return True
