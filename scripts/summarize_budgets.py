#!/usr/bin/env python3
"""Print category, period and status summaries for a budget export."""

from __future__ import annotations

import argparse
import logging
from typing import Optional

from budget_dashboard import config
from budget_dashboard.lib.budgets import (
    aggregate,
    budgets_frame,
    category_frame,
    monthly_trend,
    monthly_trend_frame,
    period_frame,
    top_n,
)
from budget_dashboard.lib.common import format_currency, format_percentage
from budget_dashboard.records import SnapshotError, load_snapshot

logger = logging.getLogger("summarize_budgets")


def main(path: str, year: Optional[int] = None, limit: int = 5) -> int:
    try:
        budgets, _ = load_snapshot(path)
    except SnapshotError as exc:
        logger.error("%s", exc)
        return 1

    if year is not None:
        budgets = [b for b in budgets if b.year == year]
    if not budgets:
        print("No budgets found.")
        return 0

    result = aggregate(budgets)
    totals = result.totals
    print(f"Budgets:   {totals.count}")
    print(f"Allocated: {format_currency(totals.total_allocated)}")
    print(f"Spent:     {format_currency(totals.total_spent)}")
    print(f"Remaining: {format_currency(totals.remaining)}")
    print(f"Usage:     {format_percentage(totals.usage_percentage)}")
    counts = result.status_counts
    print(f"Status:    {counts.under} under, {counts.warning} warning, {counts.critical} critical")

    print("\nBy category:")
    print(category_frame(result).drop(columns=['Category ID', 'Color']).to_string(index=False))
    print("\nBy period:")
    print(period_frame(result).to_string(index=False))
    print("\nMonthly trend (annual budgets spread):")
    print(monthly_trend_frame(monthly_trend(budgets, year=year)).to_string(index=False))
    print(f"\nTop {limit} budgets:")
    print(budgets_frame(top_n(budgets, limit)).to_string(index=False))
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Summarize a budget export.')
    parser.add_argument('path', nargs='?', default=config.get_snapshot_path(), help='Budget export JSON file')
    parser.add_argument('--year', type=int, default=None, help='Only include budgets for this year')
    parser.add_argument('--limit', type=int, default=5, help='How many of the largest budgets to show')
    args = parser.parse_args()
    config.configure_logging()
    raise SystemExit(main(args.path, year=args.year, limit=args.limit))
