"""Shared data model definitions for the SubTrack analytics engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional, TypedDict

import pandas as pd

Period = Literal["month", "quarter", "year", "all"]
BudgetPeriod = Literal["monthly", "yearly"]
ComparisonPeriod = Literal["1m", "3m", "6m", "12m"]
BillingCycle = Literal["weekly", "monthly", "quarterly", "yearly"]
PaymentStatus = Literal["completed", "pending", "failed"]
BudgetState = Literal["under", "warning", "over", "danger"]
Severity = Literal["medium", "high"]
InsightType = Literal["savings", "warning", "info", "trend", "opportunity"]
Impact = Literal["high", "medium", "low"]

PERIODS: tuple[str, ...] = ("month", "quarter", "year", "all")
BILLING_CYCLES: tuple[str, ...] = ("weekly", "monthly", "quarterly", "yearly")
PAYMENT_STATUSES: tuple[str, ...] = ("completed", "pending", "failed")
IMPACT_WEIGHT: dict[str, int] = {"high": 3, "medium": 2, "low": 1}


@dataclass(frozen=True)
class Subscription:
    id: str
    name: str
    category: str
    amount: float
    billing_cycle: BillingCycle
    is_active: bool
    created_at: pd.Timestamp
    last_paid_date: Optional[pd.Timestamp] = None


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    date: pd.Timestamp
    amount: float
    status: PaymentStatus
    notes: Optional[str] = None


@dataclass(frozen=True)
class BudgetSpec:
    category: str
    amount: float
    rollover: float = 0.0


@dataclass(frozen=True)
class SpendingRecord:
    """A single dated charge; the unit of all aggregation."""

    date: pd.Timestamp
    amount: float
    category: str
    subscription_id: Optional[str] = None
    subscription_name: Optional[str] = None


@dataclass(frozen=True)
class MonthlyBucket:
    month: pd.Timestamp
    total: float
    categories: dict[str, float] = field(default_factory=dict)
    subscriptions: dict[str, float] = field(default_factory=dict)
    count: int = 0
    average: float = 0.0
    trend_pct: float = 0.0
    is_forecast: bool = False
    confidence: Optional[float] = None


@dataclass(frozen=True)
class CategoryBreakdown:
    category: str
    amount: float
    percentage: float
    trend_pct: float
    previous_amount: float
    subscription_count: int


@dataclass(frozen=True)
class Anomaly:
    date: pd.Timestamp
    amount: float
    expected_amount: float
    deviation: float
    severity: Severity
    reason: str
    category: Optional[str] = None
    subscription_id: Optional[str] = None


class ForecastFactor(TypedDict):
    name: str
    impact: float


@dataclass(frozen=True)
class Forecast:
    period: str
    predicted_amount: float
    confidence: float
    lower_bound: float
    upper_bound: float
    factors: list[ForecastFactor] = field(default_factory=list)


@dataclass(frozen=True)
class BudgetStatus:
    category: str
    budgeted: float
    spent: float
    remaining: float
    percentage: float
    status: BudgetState
    trend_pct: float = 0.0
    rollover: float = 0.0


@dataclass(frozen=True)
class BudgetSummary:
    total_budgeted: float
    total_spent: float
    total_remaining: float
    overall_percentage: float
    status: BudgetState
    days_remaining: int
    daily_budget: float
    daily_average: float
    projected_total: float
    projected_status: BudgetState


@dataclass(frozen=True)
class Insight:
    id: str
    type: InsightType
    title: str
    description: str
    impact: Impact = "medium"
    value: Optional[float] = None
    action: Optional[str] = None
    category: Optional[str] = None
    subscription_id: Optional[str] = None


@dataclass(frozen=True)
class SubscriptionAnalytics:
    id: str
    name: str
    total_spent: float
    monthly_average: float
    last_payment: Optional[pd.Timestamp]
    next_payment: Optional[pd.Timestamp]
    payment_history: list[PaymentRecord]
    value_score: float


class PeriodTotals(TypedDict):
    start: pd.Timestamp
    end: pd.Timestamp
    total: float
    average: float


class CategoryChange(TypedDict):
    period1: float
    period2: float
    change: float
    percentage_change: float


@dataclass(frozen=True)
class ComparisonData:
    period1: PeriodTotals
    period2: PeriodTotals
    difference: float
    percentage_change: float
    categories: dict[str, CategoryChange]
    insights: list[str]


class MonthAmount(TypedDict):
    month: str
    amount: float


@dataclass(frozen=True)
class YearlyData:
    year: int
    total: float
    average: float
    peak: MonthAmount
    low: MonthAmount
    months: list[MonthAmount]


__all__ = [
    "Anomaly",
    "BillingCycle",
    "BudgetPeriod",
    "BudgetSpec",
    "BudgetState",
    "BudgetStatus",
    "BudgetSummary",
    "BILLING_CYCLES",
    "CategoryBreakdown",
    "CategoryChange",
    "ComparisonData",
    "ComparisonPeriod",
    "Forecast",
    "ForecastFactor",
    "IMPACT_WEIGHT",
    "Impact",
    "Insight",
    "InsightType",
    "MonthAmount",
    "MonthlyBucket",
    "PAYMENT_STATUSES",
    "PERIODS",
    "PaymentRecord",
    "PaymentStatus",
    "Period",
    "PeriodTotals",
    "Severity",
    "SpendingRecord",
    "Subscription",
    "SubscriptionAnalytics",
    "YearlyData",
]
