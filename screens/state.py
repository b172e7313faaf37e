"""
Per-screen state primitives.

Fetch
    One independently loaded collection.  Moves through
    ``idle -> loading -> loaded | errored`` and only through the three
    transition methods begin(), resolve() and reject().  Every begin() hands
    out a new sequence number; resolve()/reject() calls carrying an older
    number are ignored, so when two loads of the same collection overlap the
    most recently issued one wins regardless of which finishes last.

EditState
    Either NOT_EDITING or Editing(row_id, draft).  A single value holds both
    the edited row id and its draft, so there is no way to have a draft
    without a row or two rows in edit mode at once.

MovementDraft
    The editable fields of one movement.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Union

from api.client import QueryError
from utils.config import KnownValues
from utils.formatting import to_amount


class FetchStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    ERRORED = "errored"


@dataclass
class Fetch:
    """State slice for one collection loaded from the data client."""

    status: FetchStatus = FetchStatus.IDLE
    rows: list[Any] = field(default_factory=list)
    error: str | None = None
    seq: int = 0

    def begin(self) -> int:
        """Mark the slice as loading and return the request's sequence number."""
        self.seq += 1
        self.status = FetchStatus.LOADING
        return self.seq

    def resolve(self, seq: int, rows: list[Any]) -> bool:
        """Store a successful result.  Returns False if the result is stale."""
        if seq != self.seq:
            return False
        self.status = FetchStatus.LOADED
        self.rows = list(rows)
        self.error = None
        return True

    def reject(self, seq: int, error: str) -> bool:
        """Record a failure and clear the rows.  Returns False if stale."""
        if seq != self.seq:
            return False
        self.status = FetchStatus.ERRORED
        self.rows = []
        self.error = error
        return True

    @property
    def loading(self) -> bool:
        return self.status is FetchStatus.LOADING

    @property
    def settled(self) -> bool:
        return self.status in (FetchStatus.LOADED, FetchStatus.ERRORED)

    @property
    def empty(self) -> bool:
        """True once settled with no rows (the empty-state condition)."""
        return self.settled and not self.rows


async def run_fetch(
    slice_: Fetch,
    load: Callable[[], Awaitable[list[Any]]],
    logger: logging.Logger,
    label: str,
    transform: Callable[[list[Any]], list[Any]] | None = None,
) -> bool:
    """Drive one fetch through its state transitions.

    A QueryError is logged with full detail and leaves the slice errored with
    no rows; it is not re-raised, so the rest of the screen keeps working.

    Returns:
        True if the result (success or failure) was applied, False if a newer
        request for the same slice had been issued in the meantime.
    """
    seq = slice_.begin()
    try:
        rows = await load()
    except QueryError as exc:
        logger.error("Erro %s: %s", label, exc, exc_info=exc)
        applied = slice_.reject(seq, str(exc))
    else:
        if transform is not None:
            rows = transform(rows)
        applied = slice_.resolve(seq, rows)
    if not applied:
        logger.debug("discarded stale %s response seq=%d latest=%d",
                     label, seq, slice_.seq)
    return applied


@dataclass(frozen=True)
class MovementDraft:
    """Editable copy of one movement row."""

    tipo: str = KnownValues.DEFAULT_MOVEMENT_TYPE
    data_movimento: str = ""
    projeto_id: str = ""
    categoria_gasto_id: str | None = None
    descricao: str = ""
    valor_total: float = 0.0
    status: str = KnownValues.DEFAULT_STATUS

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "MovementDraft":
        """Copy the editable fields of a vw_movimentos_lista row."""
        return cls(
            tipo=row.get("tipo") or KnownValues.DEFAULT_MOVEMENT_TYPE,
            data_movimento=str(row.get("data_movimento") or "")[:10],
            projeto_id=row.get("projeto_id") or "",
            categoria_gasto_id=row.get("categoria_gasto_id") or None,
            descricao=row.get("descricao") or "",
            valor_total=to_amount(row.get("valor_total")),
            status=row.get("status") or KnownValues.DEFAULT_STATUS,
        )

    def with_changes(self, **changes: Any) -> "MovementDraft":
        """Return a copy with some fields replaced.

        A blank category means "no category"; the amount is coerced to a
        number (non-numeric input counts as 0).
        """
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise ValueError(f"Unknown draft fields: {', '.join(sorted(unknown))}")
        if "categoria_gasto_id" in changes:
            changes["categoria_gasto_id"] = changes["categoria_gasto_id"] or None
        if "valor_total" in changes:
            changes["valor_total"] = to_amount(changes["valor_total"])
        return replace(self, **changes)

    def to_payload(self) -> dict[str, Any]:
        """Column values for the movimentos_financeiros update."""
        return {
            "tipo": self.tipo,
            "data": self.data_movimento,
            "projeto_id": self.projeto_id,
            "categoria_gasto_id": self.categoria_gasto_id,
            "descricao": self.descricao,
            "valor_total": to_amount(self.valor_total),
            "status": self.status or KnownValues.DEFAULT_STATUS,
        }


@dataclass(frozen=True)
class NotEditing:
    pass


@dataclass(frozen=True)
class Editing:
    row_id: str
    draft: MovementDraft


EditState = Union[NotEditing, Editing]

NOT_EDITING = NotEditing()
