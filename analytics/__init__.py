"""Analytics helpers shared across SubTrack services."""

from analytics.aggregation import (
    build_category_breakdown,
    build_comparison,
    build_monthly_buckets,
    build_yearly_data,
    filter_by_category,
    filter_by_period,
    percent_change,
    previous_window,
)
from analytics.anomalies import detect_anomalies
from analytics.budgets import budget_messages, classify_status, evaluate_budgets, summarize_budgets
from analytics.duplicates import DuplicateEntry, find_duplicate_subscriptions
from analytics.forecasting import (
    LinearTrend,
    fit_linear_trend,
    forecast_next_month,
    forecast_periods,
)
from analytics.insights import rank_insights
from analytics.recurring import (
    PriceIncreaseEntry,
    UnusedEntry,
    build_subscription_analytics,
    detect_price_increases,
    detect_unused_subscriptions,
)

__all__ = [
    "build_category_breakdown",
    "build_comparison",
    "build_monthly_buckets",
    "build_yearly_data",
    "filter_by_category",
    "filter_by_period",
    "percent_change",
    "previous_window",
    "detect_anomalies",
    "budget_messages",
    "classify_status",
    "evaluate_budgets",
    "summarize_budgets",
    "DuplicateEntry",
    "find_duplicate_subscriptions",
    "LinearTrend",
    "fit_linear_trend",
    "forecast_next_month",
    "forecast_periods",
    "rank_insights",
    "PriceIncreaseEntry",
    "UnusedEntry",
    "build_subscription_analytics",
    "detect_price_increases",
    "detect_unused_subscriptions",
]
