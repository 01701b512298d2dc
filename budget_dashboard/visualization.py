"""Plotly visualisation helpers for the budget reports.

Each function accepts one of the summaries produced by
:mod:`budget_dashboard.lib.budgets` (or the DataFrame built from it) and
returns a `plotly.graph_objects.Figure` that Streamlit can render via
``st.plotly_chart``.  Empty inputs produce an empty figure titled
"No data to display" rather than raising.
"""

from __future__ import annotations

import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from .lib.budgets import StatusCounts, StatusTag, status_color, status_label


def _empty_figure() -> go.Figure:
    fig = go.Figure()
    fig.update_layout(title="No data to display")
    return fig


def create_category_bar_chart(categories: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Grouped bar chart of allocated vs spent per category.

    Parameters
    ----------
    categories : pandas.DataFrame
        Output of :func:`category_frame`.
    title : str, optional
        Chart title.

    Returns
    -------
    plotly.graph_objects.Figure
        Bar chart with one Allocated and one Spent bar per category.
    """
    if categories.empty:
        return _empty_figure()
    df = categories.melt(
        id_vars=["Category"],
        value_vars=["Allocated", "Spent"],
        var_name="Metric",
        value_name="Amount",
    )
    fig = px.bar(df, x="Category", y="Amount", color="Metric", barmode="group")
    fig.update_layout(
        title=title or "Budget by category",
        xaxis_title="Category",
        yaxis_title="Amount",
    )
    return fig


def create_category_pie_chart(categories: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Pie chart of allocations coloured with each category's own color."""
    if categories.empty or categories["Allocated"].sum() <= 0:
        return _empty_figure()
    fig = go.Figure(
        go.Pie(
            labels=categories["Category"],
            values=categories["Allocated"],
            marker={"colors": list(categories["Color"])},
        )
    )
    fig.update_layout(title=title or "Allocation by category")
    return fig


def create_period_bar_chart(periods: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Bar chart of allocated vs spent per period (annual bucket included).

    Parameters
    ----------
    periods : pandas.DataFrame
        Output of :func:`period_frame`.
    """
    if periods.empty:
        return _empty_figure()
    df = periods.melt(
        id_vars=["Period"],
        value_vars=["Allocated", "Spent"],
        var_name="Metric",
        value_name="Amount",
    )
    fig = px.bar(df, x="Period", y="Amount", color="Metric", barmode="group")
    fig.update_layout(title=title or "Budget by period", xaxis_title="Period", yaxis_title="Amount")
    return fig


def create_monthly_trend_chart(trend: pd.DataFrame, title: str | None = None) -> go.Figure:
    """Line chart of monthly allocations with annual budgets spread across months."""
    if trend.empty:
        return _empty_figure()
    fig = px.line(trend, x="Period", y="Allocated", markers=True)
    fig.update_layout(title=title or "Monthly budget trend", xaxis_title="Month", yaxis_title="Allocated")
    return fig


def create_status_pie_chart(counts: StatusCounts, title: str | None = None) -> go.Figure:
    """Donut chart of how many budgets fall under each status."""
    if counts.total == 0:
        return _empty_figure()
    tags = list(StatusTag)
    fig = go.Figure(
        go.Pie(
            labels=[status_label(tag) for tag in tags],
            values=[counts.get(tag) for tag in tags],
            marker={"colors": [status_color(tag) for tag in tags]},
            hole=0.4,
        )
    )
    fig.update_layout(title=title or "Budget status")
    return fig
