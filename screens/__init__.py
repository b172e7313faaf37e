"""Screen state machines for the RKC dashboard.

Each screen owns its fetch slices and user-editable state and talks to the
database only through api.client.DataClient.  They know nothing about HTTP;
the routes in api.routes.frontend feed them the user's intents and render
their state.
"""

from screens.dashboard import DashboardScreen, MonthlyPoint, to_monthly_points
from screens.movements import (
    MovementFilters,
    MovementListScreen,
    Totals,
    tipo_flows,
    compute_totals,
)
from screens.new_movement import NewMovementForm, NewMovementScreen, is_submittable
from screens.state import (
    NOT_EDITING,
    EditState,
    Editing,
    Fetch,
    FetchStatus,
    MovementDraft,
    NotEditing,
)

__all__ = [
    "DashboardScreen",
    "MonthlyPoint",
    "to_monthly_points",
    "MovementFilters",
    "MovementListScreen",
    "Totals",
    "tipo_flows",
    "compute_totals",
    "NewMovementForm",
    "NewMovementScreen",
    "is_submittable",
    "NOT_EDITING",
    "EditState",
    "Editing",
    "Fetch",
    "FetchStatus",
    "MovementDraft",
    "NotEditing",
]
