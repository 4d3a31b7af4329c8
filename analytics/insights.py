"""Rule-based insight analyzers and the ranking that merges them."""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence

import pandas as pd

from analytics.duplicates import find_duplicate_subscriptions
from analytics.recurring import detect_price_increases, detect_unused_subscriptions
from core.models import (
    IMPACT_WEIGHT,
    Anomaly,
    BudgetStatus,
    Insight,
    MonthlyBucket,
    PaymentRecord,
    Subscription,
)

__all__ = [
    "analyze_anomalies",
    "analyze_budgets",
    "analyze_duplicates",
    "analyze_optimizations",
    "analyze_trends",
    "analyze_unused",
    "detect_seasonal_peak",
    "rank_insights",
]


def rank_insights(groups: Iterable[Sequence[Insight]]) -> list[Insight]:
    """Concatenate analyzer outputs and order them by impact, keeping emission order on ties."""

    merged = [insight for group in groups for insight in group]
    return sorted(merged, key=lambda insight: -IMPACT_WEIGHT.get(insight.impact, IMPACT_WEIGHT["medium"]))


def analyze_duplicates(subscriptions: Sequence[Subscription]) -> list[Insight]:
    insights: list[Insight] = []
    for dup in find_duplicate_subscriptions(subscriptions):
        insights.append(
            Insight(
                id=f"savings_dup_{dup['name']}",
                type="savings",
                title="Duplicate Subscription Detected",
                description=(
                    f"You have {dup['count']} {dup['name']} subscriptions. "
                    "Consider consolidating to save money."
                ),
                value=dup["potential_savings"],
                impact="high" if dup["count"] > 2 else "medium",
                action="consolidate",
                category=dup["category"],
            )
        )
    return insights


def analyze_unused(
    subscriptions: Sequence[Subscription],
    payments_by_subscription: Mapping[str, Sequence[PaymentRecord]],
    today: pd.Timestamp,
    *,
    threshold_days: int = 30,
) -> list[Insight]:
    insights: list[Insight] = []
    for entry in detect_unused_subscriptions(
        subscriptions, payments_by_subscription, today, threshold_days=threshold_days
    ):
        insights.append(
            Insight(
                id=f"savings_unused_{entry['subscription_id']}",
                type="warning",
                title="Unused Subscription",
                description=(
                    f"No payment for {entry['name']} in {entry['days_inactive']} days. "
                    "Consider pausing or cancelling."
                ),
                value=entry["amount"] * 12,
                impact="medium",
                action="review",
                subscription_id=entry["subscription_id"],
            )
        )
    return insights


def detect_seasonal_peak(buckets: Sequence[MonthlyBucket]) -> Optional[tuple[str, float]]:
    """Return the calendar month with the highest average total, given a year of data.

    Flat histories have no peak and return ``None``.
    """

    if len(buckets) < 12:
        return None

    frame = pd.DataFrame(
        {
            "month_num": [pd.Timestamp(b.month).month for b in buckets],
            "total": [b.total for b in buckets],
        }
    )
    averages = frame.groupby("month_num")["total"].mean()
    peak = int(averages.idxmax())
    if averages[peak] <= frame["total"].mean():
        return None
    return pd.Timestamp(year=2000, month=peak, day=1).strftime("%B"), float(averages[peak])


def analyze_trends(
    buckets: Sequence[MonthlyBucket],
    *,
    threshold_pct: float = 20.0,
) -> list[Insight]:
    history = [b for b in buckets if not b.is_forecast][-12:]
    if len(history) < 3:
        return []

    insights: list[Insight] = []
    first, last = history[0], history[-1]
    if first.total > 0:
        change = (last.total - first.total) / first.total * 100
        if abs(change) > threshold_pct:
            rising = change > 0
            insights.append(
                Insight(
                    id="trend_overall",
                    type="trend",
                    title="Spending Increasing Rapidly" if rising else "Spending Decreasing",
                    description=(
                        f"Your monthly spending has {'increased' if rising else 'decreased'} by "
                        f"{abs(change):.0f}% since {pd.Timestamp(first.month):%B %Y}"
                    ),
                    value=abs(last.total - first.total),
                    impact="high" if rising else "medium",
                )
            )

    seasonal = detect_seasonal_peak(history)
    if seasonal is not None:
        month_name, _ = seasonal
        insights.append(
            Insight(
                id="trend_seasonal",
                type="info",
                title="Seasonal Spending Pattern",
                description=f"Your spending peaks in {month_name}. Plan ahead for these months.",
                impact="medium",
            )
        )
    return insights


def analyze_optimizations(
    subscriptions: Sequence[Subscription],
    payments_by_subscription: Mapping[str, Sequence[PaymentRecord]],
    *,
    annual_discount_rate: float = 0.15,
    savings_floor: float = 10.0,
    price_increase_threshold_pct: float = 5.0,
    price_increase_high_pct: float = 20.0,
) -> list[Insight]:
    insights: list[Insight] = []
    for sub in subscriptions:
        if sub.billing_cycle != "monthly" or not sub.is_active:
            continue
        savings = sub.amount * 12 * annual_discount_rate
        if savings <= savings_floor:
            continue
        insights.append(
            Insight(
                id=f"optimize_annual_{sub.id}",
                type="savings",
                title="Switch to Annual Billing",
                description=(
                    f"Save an estimated {savings:,.2f}/year by switching {sub.name} to annual billing"
                ),
                value=savings,
                impact="medium",
                action="switch_plan",
                subscription_id=sub.id,
            )
        )

    for inc in detect_price_increases(
        subscriptions, payments_by_subscription, threshold_pct=price_increase_threshold_pct
    ):
        insights.append(
            Insight(
                id=f"optimize_price_{inc['subscription_id']}",
                type="warning",
                title="Price Increase Detected",
                description=(
                    f"{inc['name']} price increased by {inc['increase_percentage']:.0f}% "
                    f"({inc['increase_amount']:,.2f} per charge)"
                ),
                value=inc["increase_amount"] * 12,
                impact="high" if inc["increase_percentage"] > price_increase_high_pct else "medium",
                action="review_price",
                subscription_id=inc["subscription_id"],
            )
        )
    return insights


def analyze_budgets(statuses: Sequence[BudgetStatus]) -> list[Insight]:
    insights: list[Insight] = []
    for status in statuses:
        if status.status == "danger":
            insights.append(
                Insight(
                    id=f"budget_over_{status.category}",
                    type="warning",
                    title="Budget Exceeded",
                    description=(
                        f"{status.category} budget exceeded by {status.spent - status.budgeted:,.2f}"
                    ),
                    value=status.spent - status.budgeted,
                    impact="high" if status.percentage > 120 else "medium",
                    action="adjust_budget",
                    category=status.category,
                )
            )
        elif status.status == "over":
            insights.append(
                Insight(
                    id=f"budget_over_{status.category}",
                    type="warning",
                    title="Budget Nearly Exhausted",
                    description=(
                        f"{status.category} is at {status.percentage:.0f}% of budget "
                        f"with {status.remaining:,.2f} left"
                    ),
                    value=status.remaining,
                    impact="medium",
                    action="adjust_budget",
                    category=status.category,
                )
            )
        elif status.status == "warning":
            insights.append(
                Insight(
                    id=f"budget_warning_{status.category}",
                    type="info",
                    title="Approaching Budget Limit",
                    description=f"{status.category} is at {status.percentage:.0f}% of budget",
                    impact="low",
                    action="review_spending",
                    category=status.category,
                )
            )
    return insights


def analyze_anomalies(anomalies: Sequence[Anomaly]) -> list[Insight]:
    insights: list[Insight] = []
    for index, anomaly in enumerate(anomalies):
        insights.append(
            Insight(
                id=f"anomaly_{pd.Timestamp(anomaly.date):%Y%m%d}_{index}",
                type="warning",
                title="Unusual Spending Detected",
                description=(
                    f"{anomaly.amount:,.2f} spent on {anomaly.category} is higher than normal"
                ),
                value=anomaly.deviation,
                impact="high" if anomaly.severity == "high" else "medium",
                category=anomaly.category,
                subscription_id=anomaly.subscription_id,
            )
        )
    return insights
