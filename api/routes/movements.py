"""
Movement endpoints.

GET   /api/v1/movements        → filtered list (newest first, capped) + totals
POST  /api/v1/movements        → create; 201 with the new id
PATCH /api/v1/movements/{id}   → partial update

Database failures surface as 502 and unknown ids as 404 through the
QueryError handlers registered in api.app.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from api.client import DataClient, get_client
from api.models import (
    MovementCreate,
    MovementCreated,
    MovementListResponse,
    MovementUpdate,
)
from screens.movements import compute_totals
from screens.new_movement import NewMovementForm, is_submittable

router = APIRouter(prefix="/movements", tags=["movements"])


@router.get("", response_model=MovementListResponse, summary="List movements")
async def list_movements(
    projeto: str | None = Query(None, description="Project id"),
    tipo: str | None = Query(None, pattern="^(ENTRADA|SAIDA)$", description="Movement type"),
    mes: str | None = Query(None, description="Month as YYYY-MM"),
    q: str | None = Query(None, description="Substring of the description (case-insensitive)"),
    client: DataClient = Depends(get_client),
) -> dict:
    """Return movements matching every filter that is set.

    An invalid ``mes`` is rejected with 400.
    """
    rows = await client.movements(projeto_id=projeto, tipo=tipo, mes=mes, q=q)
    totals = compute_totals(rows)
    return {
        "items": rows,
        "totals": {
            "entradas": totals.entradas,
            "saidas": totals.saidas,
            "saldo": totals.saldo,
        },
        "count": len(rows),
        "limit": client.movement_limit,
    }


@router.post(
    "",
    response_model=MovementCreated,
    status_code=201,
    summary="Create a movement",
)
async def create_movement(
    body: MovementCreate,
    client: DataClient = Depends(get_client),
) -> dict:
    form = NewMovementForm(
        projeto_id=body.projeto_id,
        tipo=body.tipo,
        data_movimento=body.data_movimento.isoformat(),
        categoria_gasto_id=body.categoria_gasto_id or "",
        descricao=body.descricao,
        valor_total=body.valor_total,
    )
    if not is_submittable(form):
        raise HTTPException(status_code=422, detail="Movement is not submittable")
    new_id = await client.insert_movement(form.to_payload())
    return {"id": new_id}


@router.patch("/{movement_id}", summary="Update a movement")
async def update_movement(
    movement_id: str,
    body: MovementUpdate,
    client: DataClient = Depends(get_client),
) -> dict:
    """Write the fields present in the body and return the id."""
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=422, detail="No fields to update")
    if "data_movimento" in changes:
        value = changes.pop("data_movimento")
        changes["data"] = value.isoformat() if value else None
    await client.update_movement(movement_id, changes)
    return {"id": movement_id, "updated": sorted(changes)}
