"""
FastAPI application factory for RKC Financeiro.

Run the development server with::

    python -m api.app
    APP_DB_PATH=/data/rkc.sqlite APP_LOG_FORMAT=json python -m api.app

Interactive API docs are served at /docs.  Every setting comes from
utils.config.AppConfig (APP_* environment variables).
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

import api.database as _db_mod
from api.client import QueryError, RowNotFoundError
from api.models import ErrorResponse
from api.routes import dashboard, download, meta, movements, reference
from api.routes import frontend as frontend_routes
from utils.config import AppConfig
from utils.formatting import format_brl, format_date_br, format_month_label, format_percent

_cfg = AppConfig.from_env()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent

API_PREFIX = "/api/v1"

SLOW_REQUEST_MS = 500.0

# Chart.js comes from jsdelivr; the monthly data block is an inline JSON script.
_CSP_DIRECTIVES = {
    "default-src": "'self'",
    "script-src": "'self' cdn.jsdelivr.net 'unsafe-inline'",
    "style-src": "'self' 'unsafe-inline'",
    "img-src": "'self' data:",
    "font-src": "'self'",
    "connect-src": "'self'",
}
CONTENT_SECURITY_POLICY = "; ".join(f"{k} {v}" for k, v in _CSP_DIRECTIVES.items()) + ";"

logger = logging.getLogger("rkc_financeiro.api")


# ── Logging ───────────────────────────────────────────────────────────────────

class JsonLogFormatter(logging.Formatter):
    """One JSON object per line; request fields passed via ``extra`` are kept."""

    EXTRA_FIELDS = ("method", "path", "status", "duration_ms", "request_id")

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({
            name: getattr(record, name)
            for name in self.EXTRA_FIELDS if hasattr(record, name)
        })
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def configure_logging(log_format: str) -> None:
    """Install a single stderr handler on the root logger."""
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(JsonLogFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=logging.INFO, force=True)


configure_logging(_cfg.log_format)


# ── Error responses ───────────────────────────────────────────────────────────

def _error_response(status_code: int, label: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": label, "detail": detail, "status_code": status_code},
    )


def _register_api_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(QueryError)
    async def on_query_error(request: Request, exc: QueryError):
        if isinstance(exc, RowNotFoundError):
            return _error_response(404, "Not found", exc.detail)
        logger.error("query failed source=%s detail=%s path=%s",
                     exc.source, exc.detail, request.url.path)
        return _error_response(502, "Bad gateway", str(exc))

    @app.exception_handler(ValueError)
    async def on_value_error(request: Request, exc: ValueError):
        return _error_response(400, "Bad request", str(exc))

    @app.exception_handler(Exception)
    async def on_unhandled(request: Request, exc: Exception):
        logger.error("unhandled error path=%s", request.url.path, exc_info=exc)
        return _error_response(500, "Internal server error", str(exc))


# ── Middleware ────────────────────────────────────────────────────────────────

def _register_middleware(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PATCH", "OPTIONS"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_log(request: Request, call_next):
        """Tag the response with X-Request-ID and log one line per request."""
        request_id = uuid.uuid4().hex[:8]
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        response.headers["X-Request-ID"] = request_id

        fields = {
            "method": request.method,
            "path": request.url.path,
            "status": response.status_code,
            "duration_ms": round(elapsed_ms, 1),
            "request_id": request_id,
        }
        if _cfg.log_format == "json":
            logger.info("request", extra=fields)
        else:
            logger.info(" ".join(f"{k}={v}" for k, v in fields.items()))
        if elapsed_ms > SLOW_REQUEST_MS:
            logger.warning("slow_request method=%s path=%s duration_ms=%.1f",
                           request.method, request.url.path, elapsed_ms)
        return response

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["Content-Security-Policy"] = CONTENT_SECURITY_POLICY
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


# ── Templates ─────────────────────────────────────────────────────────────────

def _build_templates(directory: Path) -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(directory))
    templates.env.filters.update({
        "brl": format_brl,
        "percent": format_percent,
        "date_br": format_date_br,
        "month_label": format_month_label,
    })
    return templates


# ── Factory ───────────────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI):
    db_path = _db_mod.get_db_path()
    if not db_path.exists():
        logger.warning("database not found at %s; run 'python schema.py --db %s'",
                       db_path, db_path)
    yield


_API_ERROR_RESPONSES = {
    400: {"model": ErrorResponse, "description": "Invalid filter value"},
    502: {"model": ErrorResponse, "description": "Database query failed"},
}

_OPENAPI_TAGS = [
    {"name": "dashboard",
     "description": "Project summaries, monthly series and category breakdown."},
    {"name": "movements", "description": "List, create and update financial movements."},
    {"name": "reference", "description": "Projects and spending categories for selectors."},
    {"name": "download", "description": "Filtered movements as CSV or Excel."},
    {"name": "meta", "description": "Health check and query statistics."},
]


def create_app(db_path: Path | None = None) -> FastAPI:
    """Build the application.

    Args:
        db_path: Database file to use instead of APP_DB_PATH (tests pass a
            temporary file here).
    """
    if db_path is not None:
        _db_mod.set_db_path(db_path)

    app = FastAPI(
        title="RKC Financeiro",
        summary="Financial dashboard for RKC cultural projects.",
        description=(
            "Read access to the reporting views of the RKC financial database "
            "and write access to financial movements.\n\n"
            "Amounts are in Brazilian reais. Movements are `ENTRADA` (inflow) "
            "or `SAIDA` (outflow); movements with `status = 'cancelado'` are "
            "left out of every aggregate. The movement list returns at most "
            f"{_cfg.movement_limit} rows, newest first."
        ),
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=_OPENAPI_TAGS,
    )

    _register_middleware(app)
    _register_api_error_handlers(app)

    app.include_router(meta.router)
    for module in (dashboard, movements, reference, download):
        app.include_router(module.router, prefix=API_PREFIX, responses=_API_ERROR_RESPONSES)

    static_dir = _PROJECT_ROOT / "static"
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

    frontend_routes.set_templates(_build_templates(_PROJECT_ROOT / "templates"))
    app.include_router(frontend_routes.router)
    frontend_routes.register_error_handlers(app)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.app:app", host=_cfg.api_host, port=_cfg.api_port, reload=True)
