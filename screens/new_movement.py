"""Movement creation form."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, fields, replace
from datetime import date
from typing import Any

from api.client import DataClient, QueryError
from screens.state import Fetch, run_fetch
from utils.config import KnownValues
from utils.formatting import to_amount

logger = logging.getLogger("rkc_financeiro.screens.new_movement")

INSERT_FAILED_MESSAGE = "Falha ao salvar."


@dataclass(frozen=True)
class NewMovementForm:
    projeto_id: str = ""
    tipo: str = KnownValues.DEFAULT_MOVEMENT_TYPE
    data_movimento: str = field(default_factory=lambda: date.today().isoformat())
    categoria_gasto_id: str = ""
    descricao: str = ""
    valor_total: float = 0.0

    def with_changes(self, **changes: Any) -> "NewMovementForm":
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown form fields: {', '.join(sorted(unknown))}")
        if "valor_total" in changes:
            changes["valor_total"] = to_amount(changes["valor_total"])
        return replace(self, **{k: ("" if v is None else v) for k, v in changes.items()})

    def to_payload(self) -> dict[str, Any]:
        """Column values for the movimentos_financeiros insert."""
        return {
            "projeto_id": self.projeto_id,
            "tipo": self.tipo,
            "data": self.data_movimento,
            "categoria_gasto_id": self.categoria_gasto_id or None,
            "descricao": self.descricao.strip(),
            "valor_total": to_amount(self.valor_total),
            "status": KnownValues.DEFAULT_STATUS,
        }


def is_submittable(form: NewMovementForm) -> bool:
    """True when project, type, date, description and a positive amount are set."""
    return bool(
        form.projeto_id
        and form.tipo
        and form.data_movimento
        and form.descricao.strip()
        and to_amount(form.valor_total) > 0
    )


def created_redirect_url(movement_id: str) -> str:
    return f"/movimentos?created={movement_id}"


class NewMovementScreen:
    """State and submit logic for the creation form."""

    def __init__(self, client: DataClient,
                 form: NewMovementForm | None = None) -> None:
        self._client = client
        self.form = form or NewMovementForm()
        self.projects = Fetch()
        self.categories = Fetch()
        self.saving = False
        self.alert: str | None = None
        self.created_id: str | None = None

    async def load_reference(self) -> None:
        await asyncio.gather(
            run_fetch(self.projects, self._client.projects, logger, "projetos"),
            run_fetch(self.categories, self._client.categories, logger, "categorias_gasto"),
        )

    async def boot(self) -> None:
        """Load reference lists; default the project to the first one."""
        await self.load_reference()
        if not self.form.projeto_id and self.projects.rows:
            self.form = self.form.with_changes(projeto_id=self.projects.rows[0]["id"])

    def change(self, **changes: Any) -> None:
        self.form = self.form.with_changes(**changes)

    @property
    def valid(self) -> bool:
        return is_submittable(self.form)

    @property
    def can_submit(self) -> bool:
        return self.valid and not self.saving

    @property
    def redirect_url(self) -> str | None:
        return created_redirect_url(self.created_id) if self.created_id else None

    async def submit(self) -> str | None:
        """Insert the movement.

        Returns:
            The new movement id, or None when the form is not submittable or
            the insert failed (``alert`` then holds the message and the form
            keeps its values).
        """
        if not self.can_submit:
            return None
        self.saving = True
        try:
            self.created_id = await self._client.insert_movement(self.form.to_payload())
        except QueryError as exc:
            logger.error("Erro ao inserir movimento: %s", exc, exc_info=exc)
            self.alert = INSERT_FAILED_MESSAGE
            return None
        finally:
            self.saving = False
        self.alert = None
        return self.created_id
