"""Output formatting utilities for the budget flow tools.

Amounts travel through the core in their original currency unit.  Scaling to
billions / millions happens only here, at the presentation boundary, using a
caller-supplied factor:

    1e9  data in billions  (provincial summaries)
    1e6  data in millions
    1    raw values        (municipal and First Nations statements)
"""

from typing import Optional

AMOUNT_SCALING_FACTORS = {
    "billions": 1e9,
    "millions": 1e6,
    "raw": 1.0,
}


def scale_amount(value: float, scaling_factor: float = 1.0) -> float:
    """Convert an amount stored in scaled units to raw currency units.

    Args:
        value: Amount as stored in the dataset
        scaling_factor: Units per stored value (1e9 for data in billions)

    Returns:
        Raw currency amount.

    Examples:
        scale_amount(1.5, 1e9) -> 1500000000.0
    """
    return value * scaling_factor


def format_amount(value: Optional[float], scaling_factor: float = 1.0,
                  precision: int = 1) -> str:
    """Format a currency amount for display.

    Args:
        value: Amount in stored units (can be None)
        scaling_factor: Units per stored value (see module docstring)
        precision: Decimal places for compact notation (default: 1)

    Returns:
        Formatted string like "$1.2B", "$340.0M" or "$12,345"

    Examples:
        format_amount(1.234, 1e9) -> "$1.2B"
        format_amount(340, 1e6) -> "$340.0M"
        format_amount(12345) -> "$12,345"
        format_amount(None) -> "-"
    """
    if value is None:
        return "-"

    raw = scale_amount(value, scaling_factor)
    sign = "-" if raw < 0 else ""
    raw = abs(raw)

    if raw >= 1_000_000_000:
        return f"{sign}${raw / 1_000_000_000:.{precision}f}B"
    if raw >= 1_000_000:
        return f"{sign}${raw / 1_000_000:.{precision}f}M"
    return f"{sign}${raw:,.0f}"


def format_percent(value: Optional[float], precision: int = 1) -> str:
    """Format a fraction (0.0 - 1.0) as a percentage.

    Examples:
        format_percent(0.425) -> "42.5%"
        format_percent(0) -> "0.0%"
        format_percent(None) -> "-"
    """
    if value is None:
        return "-"
    return f"{value * 100:.{precision}f}%"
