"""
Frontend HTML routes.

Serves the Jinja2 pages.  Each route builds the matching screen from
``screens``, feeds it the user's intent taken from the query string or the
posted form, and renders its state.  Filters travel in the query string so
every view of the list is linkable and survives a reload.

Routes:
    GET  /                      → dashboard.html (``?projeto=<id>``)
    GET  /movimentos            → movimentos.html (filters, ``editar``, ``created``)
    POST /movimentos/novo       → insert, then 303 to /movimentos?created=<id>
    GET  /movimentos/novo       → movimento_novo.html
    POST /movimentos/{id}       → save the inline edit, then 303 back to the list
"""

import json
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, FastAPI, Form, HTTPException, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.client import DataClient, get_client
from screens.dashboard import DashboardScreen
from screens.movements import MovementFilters, MovementListScreen
from screens.new_movement import NewMovementForm, NewMovementScreen
from utils.config import KnownValues
from utils.query import is_valid_month

router = APIRouter(tags=["frontend"])

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised, call set_templates() first")
    return _templates


# ── Helpers ───────────────────────────────────────────────────────────────────

def _parse_filters(projeto: str | None, tipo: str | None,
                   mes: str | None, q: str | None) -> MovementFilters:
    """Build list filters from query parameters, dropping invalid values."""
    return MovementFilters(
        projeto_id=projeto or "",
        tipo=tipo if KnownValues.is_valid_movement_type(tipo) else "",
        mes=mes if is_valid_month(mes) else "",
        q=(q or "").strip(),
    )


def _filters_query(filters: MovementFilters) -> str:
    """Query string reproducing the active filters (empty ones omitted)."""
    pairs = [
        ("projeto", filters.projeto_id),
        ("tipo", filters.tipo),
        ("mes", filters.mes),
        ("q", filters.q),
    ]
    return urlencode([(k, v) for k, v in pairs if v])


def _list_url(filters: MovementFilters) -> str:
    query = _filters_query(filters)
    return f"/movimentos?{query}" if query else "/movimentos"


def _render_list(request: Request, screen: MovementListScreen,
                 created: str | None = None, status_code: int = 200) -> HTMLResponse:
    created_row = None
    if created:
        created_row = next((r for r in screen.rows if r.get("id") == created), None)
    return _tmpl().TemplateResponse(
        request,
        "movimentos.html",
        {
            "screen":       screen,
            "filters":      screen.filters,
            "movement_types": KnownValues.MOVEMENT_TYPES,
            "filters_query": _filters_query(screen.filters),
            "list_url":     _list_url(screen.filters),
            "created":      created,
            "created_row":  created_row,
        },
        status_code=status_code,
    )


def _render_new(request: Request, screen: NewMovementScreen,
                status_code: int = 200) -> HTMLResponse:
    return _tmpl().TemplateResponse(
        request,
        "movimento_novo.html",
        {
            "screen":         screen,
            "form":           screen.form,
            "movement_types": KnownValues.MOVEMENT_TYPES,
        },
        status_code=status_code,
    )


# ── Dashboard ─────────────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def dashboard_page(
    request: Request,
    projeto: str | None = None,
    client: DataClient = Depends(get_client),
) -> HTMLResponse:
    """Project cards, monthly chart and category table."""
    screen = DashboardScreen(client)
    await screen.load(preferred_id=projeto)
    monthly_json = json.dumps([p.to_dict() for p in screen.monthly.rows])
    return _tmpl().TemplateResponse(
        request,
        "dashboard.html",
        {
            "screen":       screen,
            "project":      screen.current_project,
            "monthly_json": monthly_json,
        },
    )


# ── Movement list ─────────────────────────────────────────────────────────────

@router.get("/movimentos", response_class=HTMLResponse, include_in_schema=False)
async def movements_page(
    request: Request,
    projeto: str | None = None,
    tipo: str | None = None,
    mes: str | None = None,
    q: str | None = None,
    editar: str | None = None,
    created: str | None = None,
    client: DataClient = Depends(get_client),
) -> HTMLResponse:
    """Filtered movement list; ``editar=<id>`` opens that row for editing."""
    screen = MovementListScreen(client, _parse_filters(projeto, tipo, mes, q))
    await screen.boot()
    if editar:
        try:
            screen.start_edit(editar)
        except KeyError:
            # Row not in the current result set; show the list unedited.
            pass
    return _render_list(request, screen, created=created)


@router.get("/movimentos/novo", response_class=HTMLResponse, include_in_schema=False)
async def new_movement_page(
    request: Request,
    client: DataClient = Depends(get_client),
) -> HTMLResponse:
    screen = NewMovementScreen(client)
    await screen.boot()
    return _render_new(request, screen)


@router.post("/movimentos/novo", include_in_schema=False)
async def create_movement(
    request: Request,
    projeto_id: str = Form(""),
    tipo: str = Form(KnownValues.DEFAULT_MOVEMENT_TYPE),
    data_movimento: str = Form(""),
    categoria_gasto_id: str = Form(""),
    descricao: str = Form(""),
    valor_total: str = Form(""),
    client: DataClient = Depends(get_client),
):
    """Insert the movement and redirect to the list, or re-render the form."""
    screen = NewMovementScreen(client)
    screen.change(
        projeto_id=projeto_id,
        tipo=tipo,
        data_movimento=data_movimento,
        categoria_gasto_id=categoria_gasto_id,
        descricao=descricao,
        valor_total=valor_total,
    )
    if not screen.valid:
        await screen.load_reference()
        return _render_new(request, screen, status_code=422)
    new_id = await screen.submit()
    if new_id is None:
        await screen.load_reference()
        return _render_new(request, screen, status_code=502)
    return RedirectResponse(screen.redirect_url, status_code=303)


@router.post("/movimentos/{movement_id}", include_in_schema=False)
async def save_movement(
    request: Request,
    movement_id: str,
    projeto_id: str = Form(""),
    tipo: str = Form(KnownValues.DEFAULT_MOVEMENT_TYPE),
    data_movimento: str = Form(""),
    categoria_gasto_id: str = Form(""),
    descricao: str = Form(""),
    valor_total: str = Form(""),
    status: str = Form(KnownValues.DEFAULT_STATUS),
    client: DataClient = Depends(get_client),
):
    """Save an inline edit.

    The list filters ride along in the query string so the user lands back
    on the same view.  Only a row listed under those filters can be edited.
    On failure the list is re-rendered with the draft still open and an
    alert.
    """
    qp = request.query_params
    filters = _parse_filters(qp.get("projeto"), qp.get("tipo"), qp.get("mes"), qp.get("q"))
    screen = MovementListScreen(client, filters)
    await screen.boot()
    try:
        screen.start_edit(movement_id)
    except KeyError:
        raise HTTPException(status_code=404, detail="Movimento não encontrado")
    screen.change_draft(
        projeto_id=projeto_id,
        tipo=tipo,
        data_movimento=data_movimento,
        categoria_gasto_id=categoria_gasto_id,
        descricao=descricao,
        valor_total=valor_total,
        status=status,
    )
    if await screen.save_edit():
        return RedirectResponse(_list_url(filters), status_code=303)
    return _render_list(request, screen, status_code=502)


# ── Error pages ───────────────────────────────────────────────────────────────

def register_error_handlers(app: FastAPI) -> None:
    """Render HTTP errors as HTML for page routes and JSON for the API."""

    @app.exception_handler(StarletteHTTPException)
    async def http_error_page(request: Request, exc: StarletteHTTPException):
        if request.url.path.startswith("/api/") or request.url.path == "/health":
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": str(exc.detail), "detail": str(exc.detail),
                         "status_code": exc.status_code},
            )
        return _tmpl().TemplateResponse(
            request,
            "error.html",
            {"status_code": exc.status_code, "detail": exc.detail},
            status_code=exc.status_code,
        )
