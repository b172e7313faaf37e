"""Dashboard screen: project summary, monthly series and category breakdown."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any

from api.client import DataClient
from screens.state import Fetch, run_fetch
from utils.formatting import format_month_label, to_amount

logger = logging.getLogger("rkc_financeiro.screens.dashboard")


@dataclass(frozen=True)
class MonthlyPoint:
    """One bar group of the monthly chart."""

    mes: str
    entradas: float
    saidas: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def to_monthly_points(rows: list[dict[str, Any]]) -> list[MonthlyPoint]:
    """Turn vw_executado_por_mes rows into chart points.

    The month date becomes a short label ("jan/25"); missing sums become 0.
    """
    return [
        MonthlyPoint(
            mes=format_month_label(r.get("mes")),
            entradas=to_amount(r.get("total_entradas")),
            saidas=to_amount(r.get("total_saidas")),
        )
        for r in rows
    ]


class DashboardScreen:
    """State and loading logic for the project dashboard.

    Usage::

        screen = DashboardScreen(client)
        await screen.load()                 # projects, then the first project's data
        await screen.select_project(pid)    # re-fetches both dependent views
    """

    def __init__(self, client: DataClient) -> None:
        self._client = client
        self.projects = Fetch()
        self.monthly = Fetch()
        self.categories = Fetch()
        self.selected_id: str = ""

    @property
    def current_project(self) -> dict[str, Any] | None:
        return next(
            (p for p in self.projects.rows if p.get("projeto_id") == self.selected_id),
            None,
        )

    async def load(self, preferred_id: str | None = None) -> None:
        """Load the project list and the data of the selected project.

        ``preferred_id`` is kept when it names a listed project; otherwise the
        current selection is kept, and with no selection the first project
        (newest base year, then name) is chosen.
        """
        await run_fetch(self.projects, self._client.project_summaries,
                        logger, "vw_resumo_projetos")
        ids = [p.get("projeto_id") for p in self.projects.rows]
        if preferred_id and preferred_id in ids:
            target = preferred_id
        elif self.selected_id and self.selected_id in ids:
            target = self.selected_id
        else:
            target = ids[0] if ids else ""
        await self.select_project(target)

    async def select_project(self, projeto_id: str) -> None:
        """Switch the current project and fetch its monthly and category data.

        Both fetches run concurrently and settle independently; a failure in
        one leaves the other untouched.  Nothing is cached between switches.
        """
        self.selected_id = projeto_id or ""
        if not self.selected_id:
            self.monthly = Fetch()
            self.categories = Fetch()
            return
        pid = self.selected_id
        await asyncio.gather(
            run_fetch(self.monthly, lambda: self._client.monthly_series(pid),
                      logger, "vw_executado_por_mes", transform=to_monthly_points),
            run_fetch(self.categories, lambda: self._client.category_breakdown(pid),
                      logger, "vw_planejado_executado_categoria"),
        )
