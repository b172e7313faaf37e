"""
GET /api/v1/download endpoint.

Exports the movement list as CSV or Excel.  Takes the same filters as
/movements with the same ordering and row cap, so a file always holds what
the list page shows.  Each file opens with attribution rows (source, export
date, filters, URL, record count); X-Total-Count carries the data row count.
"""

import csv
import io
import sqlite3
from datetime import datetime, timezone
from typing import Any, Iterator

import openpyxl
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response, StreamingResponse

from api.database import get_db
from utils.config import AppConfig
from utils.query import build_movement_query

router = APIRouter(prefix="/download", tags=["download"])

_DOWNLOAD_COLUMNS = [
    "id", "data_movimento", "tipo", "projeto_nome", "ano_base",
    "categoria_nome", "descricao", "valor_total", "status", "created_at",
]

_XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _export_sql(projeto: str | None, tipo: str | None, mes: str | None,
                q: str | None, limit: int) -> tuple[str, list[Any]]:
    """Select the export columns from the capped movement list query."""
    inner, params = build_movement_query(
        projeto_id=projeto, tipo=tipo, mes=mes, q=q, limit=limit,
    )
    return (
        f"SELECT {', '.join(_DOWNLOAD_COLUMNS)} FROM ({inner}) "
        "ORDER BY data_movimento DESC, created_at DESC",
        params,
    )


def _describe_filters(**filters: str | None) -> str:
    parts = [f"{name}={value.strip()}" for name, value in filters.items()
             if value and value.strip()]
    return "; ".join(parts) or "none"


def _attribution(request: Request, filters: str, count: int) -> list[tuple[str, Any]]:
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    return [
        ("Source", "RKC Financeiro"),
        ("Export Date", stamp),
        ("Filters", filters),
        ("URL", str(request.url)),
        ("Total Records", count),
    ]


def _csv_chunks(attribution: list[tuple[str, Any]], rows: list[tuple]) -> Iterator[str]:
    buf = io.StringIO()
    writer = csv.writer(buf)

    def flush() -> str:
        text = buf.getvalue()
        buf.seek(0)
        buf.truncate()
        return text

    for label, value in attribution:
        writer.writerow([f"# {label}: {value}"])
    writer.writerow(_DOWNLOAD_COLUMNS)
    yield flush()
    for row in rows:
        writer.writerow(row)
        yield flush()


def _xlsx_bytes(attribution: list[tuple[str, Any]], rows: list[tuple]) -> bytes:
    wb = openpyxl.Workbook(write_only=True)
    info = wb.create_sheet("Metadata")
    for label, value in attribution:
        info.append([label, value])
    sheet = wb.create_sheet("Movimentos")
    sheet.append(_DOWNLOAD_COLUMNS)
    for row in rows:
        sheet.append(list(row))
    out = io.BytesIO()
    wb.save(out)
    return out.getvalue()


@router.get("", summary="Download filtered movements as CSV or Excel")
def download(
    request: Request,
    fmt: str = Query("csv", pattern="^(csv|xlsx)$", description="Output format"),
    projeto: str | None = Query(None, description="Project id"),
    tipo: str | None = Query(None, pattern="^(ENTRADA|SAIDA)$"),
    mes: str | None = Query(None, description="Month as YYYY-MM"),
    q: str | None = Query(None, description="Substring of the description"),
    conn: sqlite3.Connection = Depends(get_db),
) -> Response:
    sql, params = _export_sql(projeto, tipo, mes, q,
                              AppConfig.from_env().movement_limit)
    # Capped list: read it all before the connection is released.
    rows = [tuple(r) for r in conn.execute(sql, params).fetchall()]
    attribution = _attribution(
        request, _describe_filters(projeto=projeto, tipo=tipo, mes=mes, q=q), len(rows),
    )
    headers = {"X-Total-Count": str(len(rows))}

    if fmt == "xlsx":
        headers["Content-Disposition"] = "attachment; filename=movimentos.xlsx"
        return Response(_xlsx_bytes(attribution, rows),
                        media_type=_XLSX_MEDIA_TYPE, headers=headers)

    headers["Content-Disposition"] = "attachment; filename=movimentos.csv"
    return StreamingResponse(_csv_chunks(attribution, rows),
                             media_type="text/csv", headers=headers)
