"""Budget usage computations shared by every report page.

This module provides:
- Per-budget usage percentage and status classification
- Aggregation by category and period, plus the monthly trend projection
- Top-N ranking of budgets
"""

from .classification import (
    StatusTag,
    BudgetUsage,
    classify,
    usage_percentage,
    usage_status,
    normalize_status,
    status_label,
    status_color,
)
from .aggregation import (
    BudgetAggregate,
    BudgetTotals,
    CategorySummary,
    PeriodSummary,
    StatusCounts,
    MonthlyTrendPoint,
    aggregate,
    monthly_trend,
    sort_categories,
    sort_periods,
    category_frame,
    period_frame,
    monthly_trend_frame,
    budgets_frame,
)
from .ranking import top_n

__all__ = [
    # Classification
    'StatusTag',
    'BudgetUsage',
    'classify',
    'usage_percentage',
    'usage_status',
    'normalize_status',
    'status_label',
    'status_color',
    # Aggregation
    'BudgetAggregate',
    'BudgetTotals',
    'CategorySummary',
    'PeriodSummary',
    'StatusCounts',
    'MonthlyTrendPoint',
    'aggregate',
    'monthly_trend',
    'sort_categories',
    'sort_periods',
    'category_frame',
    'period_frame',
    'monthly_trend_frame',
    'budgets_frame',
    # Ranking
    'top_n',
]
