"""Ranking helpers for "largest budgets" style summaries."""

from __future__ import annotations

from typing import Callable, Dict, Iterable, List, Optional

from ..config import get_budget_value
from .classification import classify
from ...records import BudgetInput, BudgetRecord, coerce_budgets

_SORT_KEYS: Dict[str, Callable[[BudgetRecord], float]] = {
    'amount': lambda b: b.amount,
    'actual_cost': lambda b: b.actual_cost,
    'usage_percentage': lambda b: classify(b).usage_percentage,
    'remaining': lambda b: b.amount - b.actual_cost,
}

# Field names as the backend spells them
_KEY_ALIASES = {
    'actualCost': 'actual_cost',
    'usage.actualCost': 'actual_cost',
    'usagePercentage': 'usage_percentage',
    'usage.usagePercentage': 'usage_percentage',
    'remainingAmount': 'remaining',
    'usage.remainingAmount': 'remaining',
}


def top_n(
    budgets: Optional[Iterable[BudgetInput]],
    n: Optional[int] = None,
    key: str = 'amount',
) -> List[BudgetRecord]:
    """Return the ``n`` largest budgets by a numeric field.

    The input is never modified; a sorted copy is sliced.  Ties keep their
    input order.

    Args:
        budgets: Records or raw backend mappings
        n: How many to return, defaults to the configured top budgets limit
        key: ``amount``, ``actual_cost``, ``usage_percentage`` or ``remaining``
             (backend spellings such as ``usage.actualCost`` are accepted)

    Returns:
        Up to ``n`` records, largest first

    Raises:
        ValueError: If ``key`` is not a sortable field

    Example:
        >>> [b.amount for b in top_n([{'amount': 5}, {'amount': 9}], 1)]
        [9.0]
    """
    field_name = _KEY_ALIASES.get(key, key)
    if field_name not in _SORT_KEYS:
        raise ValueError(
            f"Cannot rank budgets by '{key}'; expected one of {sorted(_SORT_KEYS)}"
        )
    if n is None:
        n = get_budget_value('constants', 'top_budgets_limit')
    if n <= 0:
        return []

    # sorted() is stable, reverse=True included
    ranked = sorted(coerce_budgets(budgets), key=_SORT_KEYS[field_name], reverse=True)
    return ranked[:n]
