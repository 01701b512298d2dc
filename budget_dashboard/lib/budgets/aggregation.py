"""Budget aggregation by category and by period.

The report pages need the same fold of a budget list over and over: grand
totals, one row per category, one row per period and a tally of statuses.
:func:`aggregate` performs that fold in a single pass.  It is a pure
function of its input; all summary objects are rebuilt on every call.

Annual budgets (``month == 0``) are handled by two deliberately separate
projections:

* :func:`aggregate` keeps them in their own "Annual" period bucket.
* :func:`monthly_trend` spreads them evenly, ``amount / 12`` per calendar
  month, so they line up with monthly allocations on a trend chart.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import pandas as pd

from ..common.formatting import month_name
from ..config import get_budget_value
from .classification import StatusTag, classify, usage_percentage
from ...records import BudgetInput, coerce_budgets


@dataclass(frozen=True)
class BudgetTotals:
    total_allocated: float = 0.0
    total_spent: float = 0.0
    remaining: float = 0.0
    count: int = 0

    @property
    def usage_percentage(self) -> int:
        return usage_percentage(self.total_spent, self.total_allocated)


@dataclass(frozen=True)
class StatusCounts:
    under: int = 0
    warning: int = 0
    critical: int = 0

    @property
    def total(self) -> int:
        return self.under + self.warning + self.critical

    @property
    def over_threshold(self) -> int:
        """Budgets at or past their warning threshold."""
        return self.warning + self.critical

    def get(self, status: StatusTag) -> int:
        return getattr(self, StatusTag(status).value)


@dataclass(frozen=True)
class CategorySummary:
    category_id: str
    name: str
    color: str
    total_allocated: float = 0.0
    total_spent: float = 0.0

    @property
    def remaining(self) -> float:
        return self.total_allocated - self.total_spent

    @property
    def usage_percentage(self) -> int:
        return usage_percentage(self.total_spent, self.total_allocated)


@dataclass(frozen=True)
class PeriodSummary:
    month: int
    name: str
    total_allocated: float = 0.0
    total_spent: float = 0.0

    @property
    def remaining(self) -> float:
        return self.total_allocated - self.total_spent

    @property
    def usage_percentage(self) -> int:
        return usage_percentage(self.total_spent, self.total_allocated)


@dataclass(frozen=True)
class MonthlyTrendPoint:
    month: int
    name: str
    allocated: float = 0.0


@dataclass(frozen=True)
class BudgetAggregate:
    totals: BudgetTotals = field(default_factory=BudgetTotals)
    by_category: List[CategorySummary] = field(default_factory=list)
    by_period: List[PeriodSummary] = field(default_factory=list)
    status_counts: StatusCounts = field(default_factory=StatusCounts)


def aggregate(budgets: Optional[Iterable[BudgetInput]]) -> BudgetAggregate:
    """Fold budgets into grand totals, category rows, period rows and status counts.

    Records without a category are grouped under "Uncategorized"; records
    without usage count as zero spend.  Every input record contributes to
    the totals exactly once.  ``by_category`` and ``by_period`` are in
    first-seen order; use :func:`sort_categories` / :func:`sort_periods`
    for display order.

    Args:
        budgets: Records or raw backend mappings

    Returns:
        BudgetAggregate

    Example:
        >>> result = aggregate([
        ...     {'month': 0, 'amount': 1200, 'usage': {'actualCost': 1100}},
        ...     {'month': 1, 'amount': 400, 'usage': {'actualCost': 390}},
        ... ])
        >>> result.totals.remaining
        110.0
    """
    constants = get_budget_value('constants')
    records = coerce_budgets(budgets)

    total_allocated = 0.0
    total_spent = 0.0
    statuses: Dict[StatusTag, int] = {tag: 0 for tag in StatusTag}
    # Accumulators: id -> [name, color, allocated, spent]; month -> [allocated, spent]
    categories: Dict[str, list] = {}
    periods: Dict[int, list] = {}

    for record in records:
        amount = record.amount
        actual = record.actual_cost
        total_allocated += amount
        total_spent += actual
        statuses[classify(record).status] += 1

        category = record.category
        if category is None:
            key = constants['uncategorized_id']
            name = constants['uncategorized_name']
            color = constants['uncategorized_color']
        else:
            key = category.id
            name = category.name
            color = category.color or constants['uncategorized_color']
        bucket = categories.setdefault(key, [name, color, 0.0, 0.0])
        bucket[2] += amount
        bucket[3] += actual

        period = periods.setdefault(record.month, [0.0, 0.0])
        period[0] += amount
        period[1] += actual

    return BudgetAggregate(
        totals=BudgetTotals(
            total_allocated=total_allocated,
            total_spent=total_spent,
            remaining=total_allocated - total_spent,
            count=len(records),
        ),
        by_category=[
            CategorySummary(key, name, color, allocated, spent)
            for key, (name, color, allocated, spent) in categories.items()
        ],
        by_period=[
            PeriodSummary(month, month_name(month), allocated, spent)
            for month, (allocated, spent) in periods.items()
        ],
        status_counts=StatusCounts(
            under=statuses[StatusTag.UNDER],
            warning=statuses[StatusTag.WARNING],
            critical=statuses[StatusTag.CRITICAL],
        ),
    )


def monthly_trend(
    budgets: Optional[Iterable[BudgetInput]],
    year: Optional[int] = None,
) -> List[MonthlyTrendPoint]:
    """Allocated amount per calendar month with annual budgets spread evenly.

    Always returns twelve points, January to December.  An annual budget
    adds ``amount / 12`` to every month.

    Args:
        budgets: Records or raw backend mappings
        year: Only include budgets for this year when given

    Returns:
        List of MonthlyTrendPoint ordered by month
    """
    allocated = [0.0] * 12
    for record in coerce_budgets(budgets):
        if year is not None and record.year != year:
            continue
        if record.is_annual:
            share = record.amount / 12
            for index in range(12):
                allocated[index] += share
        else:
            allocated[record.month - 1] += record.amount

    return [
        MonthlyTrendPoint(month=index + 1, name=month_name(index + 1, short=True), allocated=value)
        for index, value in enumerate(allocated)
    ]


def sort_categories(
    rows: Iterable[CategorySummary],
    by: str = 'total_allocated',
    descending: bool = True,
) -> List[CategorySummary]:
    """Return category rows sorted by a numeric attribute (or ``name``)."""
    return sorted(rows, key=lambda row: getattr(row, by), reverse=descending)


def sort_periods(rows: Iterable[PeriodSummary]) -> List[PeriodSummary]:
    """Return period rows in month order, the annual bucket first."""
    return sorted(rows, key=lambda row: row.month)


def category_frame(result: BudgetAggregate) -> pd.DataFrame:
    """Create DataFrame of category rows sorted by allocation.

    Returns:
        DataFrame with columns: Category ID, Category, Color, Allocated,
        Spent, Remaining, Usage %
    """
    columns = ['Category ID', 'Category', 'Color', 'Allocated', 'Spent', 'Remaining', 'Usage %']
    rows = [
        {
            'Category ID': row.category_id,
            'Category': row.name,
            'Color': row.color,
            'Allocated': row.total_allocated,
            'Spent': row.total_spent,
            'Remaining': row.remaining,
            'Usage %': row.usage_percentage,
        }
        for row in sort_categories(result.by_category)
    ]
    return pd.DataFrame(rows, columns=columns)


def period_frame(result: BudgetAggregate) -> pd.DataFrame:
    """Create DataFrame of period rows in month order.

    Returns:
        DataFrame with columns: Month, Period, Allocated, Spent, Remaining, Usage %
    """
    columns = ['Month', 'Period', 'Allocated', 'Spent', 'Remaining', 'Usage %']
    rows = [
        {
            'Month': row.month,
            'Period': row.name,
            'Allocated': row.total_allocated,
            'Spent': row.total_spent,
            'Remaining': row.remaining,
            'Usage %': row.usage_percentage,
        }
        for row in sort_periods(result.by_period)
    ]
    return pd.DataFrame(rows, columns=columns)


def monthly_trend_frame(points: Iterable[MonthlyTrendPoint]) -> pd.DataFrame:
    """Create DataFrame with columns: Month, Period, Allocated."""
    return pd.DataFrame(
        [{'Month': p.month, 'Period': p.name, 'Allocated': p.allocated} for p in points],
        columns=['Month', 'Period', 'Allocated'],
    )


def budgets_frame(budgets: Optional[Iterable[BudgetInput]]) -> pd.DataFrame:
    """Create one row per budget with its classification attached.

    Returns:
        DataFrame with columns: ID, Year, Month, Period, Category, Allocated,
        Spent, Remaining, Usage %, Status
    """
    columns = [
        'ID', 'Year', 'Month', 'Period', 'Category',
        'Allocated', 'Spent', 'Remaining', 'Usage %', 'Status',
    ]
    uncategorized = get_budget_value('constants', 'uncategorized_name')
    rows = []
    for record in coerce_budgets(budgets):
        usage = classify(record)
        rows.append({
            'ID': record.id,
            'Year': record.year,
            'Month': record.month,
            'Period': month_name(record.month),
            'Category': record.category.name if record.category else uncategorized,
            'Allocated': record.amount,
            'Spent': record.actual_cost,
            'Remaining': usage.remaining,
            'Usage %': usage.usage_percentage,
            'Status': usage.status.value,
        })
    return pd.DataFrame(rows, columns=columns)
