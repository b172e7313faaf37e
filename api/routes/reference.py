"""
Reference data endpoints.

GET /api/v1/reference/projects    → projects for selectors
GET /api/v1/reference/categories  → spending categories for selectors
"""

from fastapi import APIRouter, Depends

from api.client import DataClient, get_client
from api.models import CategoryRefOut, ProjectRefOut

router = APIRouter(prefix="/reference", tags=["reference"])


@router.get(
    "/projects",
    response_model=list[ProjectRefOut],
    summary="List projects",
)
async def list_projects(client: DataClient = Depends(get_client)) -> list[dict]:
    """Return all projects, newest base year first."""
    return await client.projects()


@router.get(
    "/categories",
    response_model=list[CategoryRefOut],
    summary="List spending categories",
)
async def list_categories(client: DataClient = Depends(get_client)) -> list[dict]:
    """Return all spending categories ordered by name."""
    return await client.categories()
