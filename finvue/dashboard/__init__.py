"""Dashboard aggregation package."""

from finvue.dashboard.aggregation import (
    DEFAULT_TREND_MONTHS,
    compute_category_breakdown,
    compute_dashboard,
    compute_summary,
    compute_trend,
    shift_month,
    transaction_month,
)
from finvue.dashboard.charts import (
    breakdown_chart_rows,
    chart_color_map,
    trend_chart_rows,
)

__all__ = [
    "DEFAULT_TREND_MONTHS",
    "breakdown_chart_rows",
    "chart_color_map",
    "compute_category_breakdown",
    "compute_dashboard",
    "compute_summary",
    "compute_trend",
    "shift_month",
    "transaction_month",
    "trend_chart_rows",
]
