"""
Dashboard data endpoints.

GET /api/v1/projects/summary            → vw_resumo_projetos rows
GET /api/v1/projects/{id}/monthly       → monthly inflow/outflow, labelled
GET /api/v1/projects/{id}/categories    → planned vs executed per category

These serve the same data the dashboard page renders, for the chart script
and for external consumers.
"""

from fastapi import APIRouter, Depends

from api.client import DataClient, get_client
from api.models import CategoryBreakdownOut, MonthlyPointOut, ProjectSummaryOut
from screens.dashboard import to_monthly_points

router = APIRouter(prefix="/projects", tags=["dashboard"])


@router.get(
    "/summary",
    response_model=list[ProjectSummaryOut],
    summary="Project summaries",
)
async def project_summaries(client: DataClient = Depends(get_client)) -> list[dict]:
    """Planned, executed and balance totals per project."""
    return await client.project_summaries()


@router.get(
    "/{projeto_id}/monthly",
    response_model=list[MonthlyPointOut],
    summary="Monthly inflow/outflow series",
)
async def monthly_series(
    projeto_id: str,
    client: DataClient = Depends(get_client),
) -> list[dict]:
    """Monthly sums for one project, oldest month first.

    An unknown project yields an empty list.
    """
    rows = await client.monthly_series(projeto_id)
    return [p.to_dict() for p in to_monthly_points(rows)]


@router.get(
    "/{projeto_id}/categories",
    response_model=list[CategoryBreakdownOut],
    summary="Planned vs executed by category",
)
async def category_breakdown(
    projeto_id: str,
    client: DataClient = Depends(get_client),
) -> list[dict]:
    return await client.category_breakdown(projeto_id)
