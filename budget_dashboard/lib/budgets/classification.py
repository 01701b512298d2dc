"""Budget usage and status classification.

Every report derives a budget's usage percentage and health status from
the same two numbers, the allocated amount and the actual cost.  This
module is the single place where that arithmetic happens.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..common.formatting import round_half_up
from ..config import get_budget_value
from ...records import BudgetInput, coerce_budget


class StatusTag(str, Enum):
    UNDER = 'under'
    WARNING = 'warning'
    CRITICAL = 'critical'


@dataclass(frozen=True)
class BudgetUsage:
    """Classification result for a single budget.

    ``usage_percentage`` is the display value, clamped to 0-100.
    ``remaining`` is not clamped and is negative when over budget.
    """
    usage_percentage: int
    status: StatusTag
    remaining: float


def usage_percentage(actual_cost: float, amount: float) -> int:
    """Return spend as a whole percentage of the allocation, capped at 100.

    A zero allocation reports 0% whatever was spent.

    Example:
        >>> usage_percentage(475, 500)
        95
        >>> usage_percentage(900, 500)
        100
    """
    if amount <= 0:
        return 0
    return max(0, min(round_half_up(actual_cost / amount * 100), 100))


def classify(budget: BudgetInput) -> BudgetUsage:
    """Classify a budget as under, warning or critical.

    Thresholds are compared against the unclamped ratio, so a budget can be
    critical while its displayed percentage sits at 100.  Spending more than
    the allocation is always critical.

    Args:
        budget: A record or raw backend mapping (coerced first)

    Returns:
        BudgetUsage with the display percentage, status and remaining amount

    Example:
        >>> classify({'amount': 500, 'usage': {'actualCost': 475},
        ...           'warningThreshold': 75, 'criticalThreshold': 90})
        BudgetUsage(usage_percentage=95, status=<StatusTag.CRITICAL: 'critical'>, remaining=25.0)
    """
    record = coerce_budget(budget)
    amount = record.amount
    actual = record.actual_cost

    if amount > 0:
        ratio_pct = actual / amount * 100
    elif actual > 0:
        # Any spend against a zero allocation is an unbounded overrun
        ratio_pct = math.inf
    else:
        ratio_pct = 0.0

    if ratio_pct >= record.critical_threshold or (amount > 0 and actual > amount):
        status = StatusTag.CRITICAL
    elif ratio_pct >= record.warning_threshold:
        status = StatusTag.WARNING
    else:
        status = StatusTag.UNDER

    return BudgetUsage(
        usage_percentage=usage_percentage(actual, amount),
        status=status,
        remaining=amount - actual,
    )


def usage_status(
    percentage: float,
    warning_threshold: Optional[float] = None,
    critical_threshold: Optional[float] = None,
) -> StatusTag:
    """Classify an already computed percentage, e.g. for a month or category row.

    Thresholds default to the configured breakpoints (75/90).
    """
    constants = get_budget_value('constants')
    if warning_threshold is None:
        warning_threshold = constants['default_warning_threshold']
    if critical_threshold is None:
        critical_threshold = constants['default_critical_threshold']

    if percentage >= critical_threshold:
        return StatusTag.CRITICAL
    if percentage >= warning_threshold:
        return StatusTag.WARNING
    return StatusTag.UNDER


def normalize_status(tag: Optional[str]) -> Optional[StatusTag]:
    """Map a status string from any view or the backend onto a StatusTag.

    Legacy spellings such as ``"over"`` are translated through the alias
    table; unknown or empty values return ``None``.

    Example:
        >>> normalize_status('OVER')
        <StatusTag.CRITICAL: 'critical'>
    """
    if isinstance(tag, StatusTag):
        return tag
    if not tag:
        return None
    value = str(tag).strip().lower()
    value = get_budget_value('status', 'aliases').get(value, value)
    try:
        return StatusTag(value)
    except ValueError:
        return None


def status_label(tag: Optional[str]) -> str:
    """Return the display label for a status, or ``"N/A"`` if unknown."""
    status = normalize_status(tag)
    if status is None:
        return 'N/A'
    return get_budget_value('status', 'labels', status.value)


def status_color(tag: Optional[str]) -> str:
    """Return the display color for a status (neutral gray if unknown)."""
    status = normalize_status(tag)
    if status is None:
        return get_budget_value('constants', 'uncategorized_color')
    return get_budget_value('status', 'colors', status.value)
