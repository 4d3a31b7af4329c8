"""Core domain package for the SubTrack analytics engine.

:class:`core.service.AnalyticsService` is imported from its module directly to
keep this package free of the analytics dependency chain.
"""

from .cache import CacheEntry, TTLCache, make_key
from .models import (
    Anomaly,
    BudgetSpec,
    BudgetStatus,
    BudgetSummary,
    CategoryBreakdown,
    ComparisonData,
    Forecast,
    Insight,
    MonthlyBucket,
    PaymentRecord,
    SpendingRecord,
    Subscription,
    SubscriptionAnalytics,
    YearlyData,
)
from .source import MalformedRecordError, RecordSource

__all__ = [
    "Anomaly",
    "BudgetSpec",
    "BudgetStatus",
    "BudgetSummary",
    "CacheEntry",
    "CategoryBreakdown",
    "ComparisonData",
    "Forecast",
    "Insight",
    "MalformedRecordError",
    "MonthlyBucket",
    "PaymentRecord",
    "RecordSource",
    "SpendingRecord",
    "Subscription",
    "SubscriptionAnalytics",
    "TTLCache",
    "YearlyData",
    "make_key",
]
