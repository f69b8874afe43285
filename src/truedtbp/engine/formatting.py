"""Money and percentage formatting for audit lines and warnings."""

from __future__ import annotations

from decimal import Decimal


def usd(value: Decimal) -> str:
    """Format as dollars with thousands separators: -$1,234.50."""
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def pct(value: Decimal) -> str:
    """Format a decimal fraction as a percentage: 0.25 -> 25%."""
    return f"{value * 100:.0f}%"


def qty(value: Decimal) -> str:
    """Format a quantity without trailing zeros."""
    normalized = Decimal(value).normalize()
    if normalized == normalized.to_integral_value():
        return f"{normalized.to_integral_value():f}"
    return f"{normalized:f}"
