"""Common utilities shared by the budget modules and report pages."""

from .formatting import format_currency, format_percentage, month_name, round_half_up

__all__ = [
    'format_currency',
    'format_percentage',
    'month_name',
    'round_half_up',
]
