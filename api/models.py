"""
Pydantic request/response models for the API.

Optional fields default to None so that responses stay valid when view rows
have NULL columns.  Field() descriptions and examples feed the OpenAPI docs.
"""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field, field_validator


# ── Reference data models ─────────────────────────────────────────────────────

class ProjectRefOut(BaseModel):
    """A project, as listed in selectors."""
    id: str = Field(..., description="Project id", examples=["7b0c3d8e-..."])
    nome: str = Field(..., description="Project name", examples=["Escola de Música"])
    ano_base: int | None = Field(None, description="Base year", examples=[2025])


class CategoryRefOut(BaseModel):
    """A spending category."""
    id: str = Field(..., description="Category id")
    nome: str = Field(..., description="Category name", examples=["Material"])


# ── Dashboard models ──────────────────────────────────────────────────────────

class ProjectSummaryOut(BaseModel):
    """One row of vw_resumo_projetos. Amounts are in BRL."""
    projeto_id: str = Field(..., description="Project id")
    nome: str = Field(..., description="Project name")
    ano_base: int | None = Field(None, description="Base year", examples=[2025])
    linha_programa: str | None = Field(None, description="Program line")
    total_planejado: float = Field(0.0, description="Sum of planned items")
    total_executado: float = Field(0.0, description="Sum of confirmed outflows")
    total_entradas: float = Field(0.0, description="Sum of confirmed inflows")
    saldo_planejado: float = Field(0.0, description="Planned minus executed")


class MonthlyPointOut(BaseModel):
    """One month of inflow/outflow, labelled for display."""
    mes: str = Field(..., description="Short month label", examples=["jan/25"])
    entradas: float = Field(0.0, description="Inflows in the month")
    saidas: float = Field(0.0, description="Outflows in the month")


class CategoryBreakdownOut(BaseModel):
    """Planned vs executed for one spending category."""
    categoria: str = Field(..., description="Category name")
    valor_planejado: float = Field(0.0, description="Planned amount")
    valor_executado: float = Field(0.0, description="Executed amount")
    saldo: float = Field(0.0, description="Planned minus executed")
    execucao_percentual: float | None = Field(
        None, description="Executed / planned in percent; null when nothing was planned",
        examples=[42.5],
    )


# ── Movement models ───────────────────────────────────────────────────────────

class MovementOut(BaseModel):
    """One row of vw_movimentos_lista."""
    id: str
    projeto_id: str
    projeto_nome: str | None = None
    ano_base: int | None = None
    tipo: str = Field(..., examples=["SAIDA"])
    data_movimento: str | None = Field(None, description="ISO date", examples=["2025-02-28"])
    categoria_gasto_id: str | None = None
    categoria_nome: str | None = None
    descricao: str | None = None
    valor_total: float | None = None
    status: str | None = Field(None, examples=["confirmado"])
    created_at: str | None = None


class TotalsOut(BaseModel):
    """Inflow/outflow totals over the returned rows."""
    entradas: float = 0.0
    saidas: float = 0.0
    saldo: float = 0.0


class MovementListResponse(BaseModel):
    """Filtered movement list with totals over the returned rows."""
    items: list[MovementOut] = Field(..., description="Rows, newest first")
    totals: TotalsOut
    count: int = Field(..., description="Number of returned rows")
    limit: int = Field(..., description="Row cap applied to the query", examples=[200])


class MovementCreate(BaseModel):
    """New movement.  Same rules as the HTML creation form."""
    projeto_id: str = Field(..., min_length=1)
    tipo: Literal["ENTRADA", "SAIDA"] = "SAIDA"
    data_movimento: date
    categoria_gasto_id: str | None = None
    descricao: str = Field(..., min_length=1)
    valor_total: float = Field(..., gt=0)

    @field_validator("descricao")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("descricao must not be blank")
        return v


class MovementUpdate(BaseModel):
    """Partial movement update; only the fields sent are written."""
    projeto_id: str | None = Field(None, min_length=1)
    tipo: Literal["ENTRADA", "SAIDA"] | None = None
    data_movimento: date | None = None
    categoria_gasto_id: str | None = None
    descricao: str | None = None
    valor_total: float | None = Field(None, ge=0)
    status: str | None = None


class MovementCreated(BaseModel):
    id: str = Field(..., description="Id of the inserted movement")


# ── Error model ───────────────────────────────────────────────────────────────

class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error label", examples=["Bad gateway"])
    detail: str | None = Field(None, description="Detailed error message")
    status_code: int = Field(..., description="HTTP status code", examples=[502])
