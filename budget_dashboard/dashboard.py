"""Streamlit budget overview page.

Loads a budget/settings export, runs it through the shared usage
computations and renders totals, status counts, category and period
breakdowns, the monthly trend and the largest budgets.

To run the dashboard from the command line::

    streamlit run budget_dashboard/dashboard.py

or use ``run_dashboard.py`` in the project root.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Dict, List

import streamlit as st

from budget_dashboard import config
from budget_dashboard import visualization as viz
from budget_dashboard.lib.budgets import (
    aggregate,
    budgets_frame,
    category_frame,
    monthly_trend,
    monthly_trend_frame,
    period_frame,
    status_label,
    top_n,
)
from budget_dashboard.lib.common import format_currency, format_percentage
from budget_dashboard.lib.config import get_budget_value
from budget_dashboard.records import BudgetRecord, Setting, SnapshotError, load_snapshot
from budget_dashboard.settings_cache import SettingValueCache, snapshot_fetcher

logger = logging.getLogger(__name__)


async def _load_setting(settings: Dict[str, Setting], key: str, default: float) -> float:
    def report(failed_key: str, exc: Exception) -> None:
        st.warning(f"⚠️ Using default for setting '{failed_key}': {exc}")

    async with SettingValueCache(snapshot_fetcher(settings), on_error=report) as cache:
        return await cache.read(key, default)


def _filter_budgets(budgets: List[BudgetRecord], year, active_only: bool) -> List[BudgetRecord]:
    return [
        b for b in budgets
        if (year is None or b.year == year) and (b.is_active or not active_only)
    ]


def main() -> None:
    """Entry point for the Streamlit app."""
    config.configure_logging()
    st.set_page_config(page_title="Budget Dashboard", page_icon="📋", layout="wide")
    st.title("📋 Budget Dashboard")

    constants = get_budget_value('constants')
    snapshot = st.sidebar.text_input("Budget export (JSON)", value=config.get_snapshot_path())
    try:
        budgets, settings = load_snapshot(Path(snapshot))
    except SnapshotError as exc:
        st.error(str(exc))
        st.stop()

    years = sorted({b.year for b in budgets}, reverse=True)
    year = st.sidebar.selectbox("Year", options=[None] + years, format_func=lambda y: "All years" if y is None else str(y))
    active_only = st.sidebar.checkbox("Active budgets only", value=True)
    limit = st.sidebar.slider("Largest budgets", min_value=1, max_value=20, value=constants['top_budgets_limit'])

    scoped = _filter_budgets(budgets, year, active_only)
    if not scoped:
        st.info("No budgets match the selected filters.")
        return

    result = aggregate(scoped)
    totals = result.totals
    counts = result.status_counts

    cols = st.columns(4)
    cols[0].metric("Allocated", format_currency(totals.total_allocated))
    cols[1].metric("Spent", format_currency(totals.total_spent))
    cols[2].metric("Remaining", format_currency(totals.remaining))
    cols[3].metric("Usage", format_percentage(totals.usage_percentage))

    cols = st.columns(4)
    cols[0].metric("Budgets", totals.count)
    cols[1].metric(status_label('under'), counts.under)
    cols[2].metric(status_label('warning'), counts.warning)
    cols[3].metric(status_label('critical'), counts.critical)

    rate = asyncio.run(_load_setting(settings, constants['cost_per_km_key'], constants['cost_per_km_default']))
    st.caption(f"Reimbursement rate: {format_currency(float(rate))} per km")

    categories = category_frame(result)
    periods = period_frame(result)
    left, right = st.columns(2)
    left.plotly_chart(viz.create_category_bar_chart(categories), use_container_width=True)
    right.plotly_chart(viz.create_status_pie_chart(counts), use_container_width=True)

    left, right = st.columns(2)
    left.plotly_chart(viz.create_period_bar_chart(periods), use_container_width=True)
    trend = monthly_trend_frame(monthly_trend(scoped, year=year))
    right.plotly_chart(viz.create_monthly_trend_chart(trend), use_container_width=True)

    st.subheader("Largest budgets")
    st.dataframe(budgets_frame(top_n(scoped, limit)), hide_index=True)

    with st.expander("Category breakdown"):
        st.dataframe(categories.drop(columns=['Category ID', 'Color']), hide_index=True)
    with st.expander("Period breakdown"):
        st.dataframe(periods, hide_index=True)
    logger.debug("Rendered %d budgets", len(scoped))


if __name__ == "__main__":  # pragma: no cover
    main()
