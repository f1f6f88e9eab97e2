"""
Chart rows for the dashboard page.

Flattens dashboard output into plain records that the UI turns into
DataFrames for plotly. Every breakdown row gets a label that is unique
within the chart, because plotly keys slice colors and legend entries
by label.
"""

from collections import Counter
from typing import Sequence

from finvue.models.finance import CategorySlice, TrendPoint


def trend_chart_rows(trend: Sequence[TrendPoint]) -> list[dict]:
    """One row per month, oldest first, labelled YYYY-MM."""
    return [
        {
            "month": f"{point.year}-{point.month:02d}",
            "Income": float(point.income),
            "Expense": float(point.expense),
        }
        for point in trend
    ]


def breakdown_chart_rows(breakdown: Sequence[CategorySlice]) -> list[dict]:
    """
    One row per slice, in breakdown order.

    Slices sharing a display name (e.g. several unknown categories all
    shown as "Other") are told apart by their category id.
    """
    name_counts = Counter(s.name for s in breakdown)
    rows = []
    for s in breakdown:
        label = s.name if name_counts[s.name] == 1 else f"{s.name} ({s.category_id})"
        rows.append({
            "category_id": s.category_id,
            "label": label,
            "value": float(s.value),
            "color": s.color,
        })
    return rows


def chart_color_map(rows: Sequence[dict]) -> dict[str, str]:
    """label -> color, for plotly's color_discrete_map."""
    return {row["label"]: row["color"] for row in rows}
