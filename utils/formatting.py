"""Output formatting utilities for the RKC dashboard.

Provides reusable functions for:
- Formatting currency amounts in Brazilian reais (pt-BR)
- Formatting execution percentages
- Formatting movement dates and month labels for display
- Coercing loosely-typed numeric values coming from SQL views
"""

from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

PT_BR_MONTHS = (
    "jan", "fev", "mar", "abr", "mai", "jun",
    "jul", "ago", "set", "out", "nov", "dez",
)


def to_amount(value: Any, default: float = 0.0) -> float:
    """Coerce a view column value to float, defaulting missing values.

    Args:
        value: Number, numeric string, or None
        default: Value used when ``value`` is None or not numeric

    Returns:
        Float amount

    Examples:
        to_amount(None) -> 0.0
        to_amount("12.5") -> 12.5
    """
    if value is None:
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def format_brl(value: Optional[float]) -> str:
    """Format an amount as Brazilian currency.

    Uses "." as the thousands separator and "," as the decimal separator,
    always with two decimal places.  None is shown as zero.

    Args:
        value: Amount in reais

    Returns:
        Formatted string like "R$ 1.234,50"

    Examples:
        format_brl(1234.5) -> "R$ 1.234,50"
        format_brl(-10) -> "-R$ 10,00"
        format_brl(None) -> "R$ 0,00"
    """
    try:
        amount = Decimal(str(to_amount(value)))
    except InvalidOperation:
        amount = Decimal("0")
    amount = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if amount < 0 else ""
    body = f"{abs(amount):,.2f}"
    # 1,234.50 -> 1.234,50
    body = body.replace(",", "_").replace(".", ",").replace("_", ".")
    return f"{sign}R$ {body}"


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format an execution percentage for display.

    Args:
        value: Percentage value (already multiplied by 100), or None when
            the ratio is undefined
        precision: Decimal places (default: 1)

    Returns:
        Formatted string like "42.5%", or "-" for None

    Examples:
        format_percent(42.5) -> "42.5%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    try:
        return f"{float(value):.{precision}f}%"
    except (TypeError, ValueError):
        return "-"


def parse_iso_date(value: Any) -> Optional[date]:
    """Parse the date portion of an ISO date/datetime string.

    Only the first ten characters are considered, so "2025-02-28T13:00:00Z"
    and "2025-02-28" both yield date(2025, 2, 28).  Returns None for blanks
    and malformed values.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()[:10]
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def format_date_br(value: Any) -> str:
    """Format a movement date as dd/mm/yyyy.

    Examples:
        format_date_br("2025-02-28") -> "28/02/2025"
        format_date_br(None) -> "—"
    """
    parsed = parse_iso_date(value)
    if parsed is None:
        return "—"
    return parsed.strftime("%d/%m/%Y")


def format_month_label(value: Any) -> str:
    """Format the first day of a month as a short pt-BR month/year label.

    Examples:
        format_month_label("2025-01-01") -> "jan/25"
        format_month_label(date(2024, 12, 1)) -> "dez/24"
    """
    parsed = parse_iso_date(value)
    if parsed is None:
        return str(value or "")
    return f"{PT_BR_MONTHS[parsed.month - 1]}/{parsed.year % 100:02d}"
