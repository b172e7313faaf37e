"""Shared utilities for the RKC financial dashboard."""

# Database utilities
from utils.database import (
    init_pragmas,
    object_exists,
    timed_execute,
    query_to_dicts,
    get_slow_queries,
    get_query_stats,
    reset_query_stats,
)

# Query building
from utils.query import (
    QueryBuilder,
    build_movement_query,
    escape_like,
    is_valid_month,
    month_range,
)

# Output formatting
from utils.formatting import (
    format_brl,
    format_percent,
    format_date_br,
    format_month_label,
    parse_iso_date,
    to_amount,
)

# Configuration
from utils.config import (
    AppConfig,
    KnownValues,
)

__all__ = [
    # Database
    "init_pragmas",
    "object_exists",
    "timed_execute",
    "query_to_dicts",
    "get_slow_queries",
    "get_query_stats",
    "reset_query_stats",
    # Query
    "QueryBuilder",
    "build_movement_query",
    "escape_like",
    "is_valid_month",
    "month_range",
    # Formatting
    "format_brl",
    "format_percent",
    "format_date_br",
    "format_month_label",
    "parse_iso_date",
    "to_amount",
    # Config
    "AppConfig",
    "KnownValues",
]
