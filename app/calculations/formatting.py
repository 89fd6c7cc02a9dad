"""
Display formatting for statement values.

Undefined values (None, NaN, inf) are computed upstream as None and only
become "—" or "N/A" here.
"""

import math
from typing import Optional

from app.calculations.irr import format_irr

EMPTY = "—"

CURRENCY_SYMBOLS = {"EUR": "€", "USD": "$", "GBP": "£"}

SCALE_DIVISORS = {"full": 1, "thousands": 1_000, "millions": 1_000_000}

SCALE_SUFFIXES = {"full": "", "thousands": " (Thousands)", "millions": " (Millions)"}


def _is_missing(value: Optional[float]) -> bool:
    return value is None or not math.isfinite(value)


def get_scale_divisor(scale: str) -> int:
    return SCALE_DIVISORS.get(scale, 1)


def scale_suffix(scale: str) -> str:
    return SCALE_SUFFIXES.get(scale, "")


def format_currency(value: Optional[float], currency: str = "EUR") -> str:
    """Whole-unit currency with thousands separators ("€1,234", "-€1,234")."""
    if _is_missing(value):
        return EMPTY
    symbol = CURRENCY_SYMBOLS.get(currency, f"{currency} ")
    rounded = round(value)
    sign = "-" if rounded < 0 else ""
    return f"{sign}{symbol}{abs(rounded):,}"


def format_scaled_currency(value: Optional[float], currency: str = "EUR", scale: str = "full") -> str:
    if _is_missing(value):
        return EMPTY
    return format_currency(value / get_scale_divisor(scale), currency)


def format_pct(value: Optional[float]) -> str:
    """Format a percentage already in 0..100 units ("42.5%")."""
    if _is_missing(value):
        return EMPTY
    return f"{value:.1f}%"


def format_ratio(value: Optional[float], digits: int = 2) -> str:
    """Format a multiple or coverage ratio ("1.85x")."""
    if _is_missing(value):
        return EMPTY
    return f"{value:.{digits}f}x"


def format_cash_flow_value(
    row_id: str,
    value: Optional[float],
    currency: str = "EUR",
    scale: str = "full",
) -> str:
    """Render one cash-flow cell; IRR rows show "—" outside year 1."""
    if row_id.endswith("-irr"):
        return EMPTY if value is None else format_irr(value)
    return format_scaled_currency(value, currency, scale)
