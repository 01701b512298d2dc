"""Formatting utilities for currency, percentages and budget periods."""

from __future__ import annotations

import math
from typing import Optional, Union

from ..config import get_budget_value


def format_currency(amount: Optional[Union[float, int]], currency: Optional[str] = None) -> str:
    """Format a currency amount prefixed with its currency code.

    Args:
        amount: The amount to format; ``None`` is shown as zero
        currency: Currency code, defaults to the configured currency

    Returns:
        Formatted currency string (e.g., "CHF 1,234.56")

    Example:
        >>> format_currency(1234.56)
        'CHF 1,234.56'
        >>> format_currency(None, 'EUR')
        'EUR 0.00'
    """
    code = currency or get_budget_value('constants', 'currency')
    if amount is None:
        return f"{code} 0.00"
    if amount < 0:
        return f"-{code} {abs(amount):,.2f}"
    return f"{code} {amount:,.2f}"


def format_percentage(value: Optional[float], digits: int = 1) -> str:
    """Format a 0-100 percentage value.

    Example:
        >>> format_percentage(95)
        '95.0%'
    """
    if value is None:
        value = 0.0
    return f"{value:.{digits}f}%"


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up."""
    return int(math.floor(value + 0.5))


def month_name(month: int, short: bool = False) -> str:
    """Return the display name of a budget period.

    Month ``0`` is the annual bucket; anything outside 0-12 is unknown.

    Example:
        >>> month_name(0)
        'Annual'
        >>> month_name(3, short=True)
        'Mar'
    """
    periods = get_budget_value('periods')
    if month == 0:
        return periods['annual_label']
    names = periods['short_months'] if short else periods['months']
    if isinstance(month, int) and 1 <= month <= 12:
        return names[month - 1]
    return periods['unknown_label']
