"""Recurring-payment analytics for individual subscriptions."""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, TypedDict

import pandas as pd

from core.models import PaymentRecord, Subscription, SubscriptionAnalytics

__all__ = [
    "PriceIncreaseEntry",
    "REFERENCE_PRICE",
    "UnusedEntry",
    "build_subscription_analytics",
    "compute_value_score",
    "detect_price_increases",
    "detect_unused_subscriptions",
    "last_activity",
    "months_active",
    "next_payment_date",
]

REFERENCE_PRICE = 10.0

_CYCLE_OFFSETS: dict[str, pd.DateOffset] = {
    "weekly": pd.DateOffset(days=7),
    "monthly": pd.DateOffset(months=1),
    "quarterly": pd.DateOffset(months=3),
    "yearly": pd.DateOffset(years=1),
}


class UnusedEntry(TypedDict):
    subscription_id: str
    name: str
    amount: float
    last_activity: pd.Timestamp
    days_inactive: int


class PriceIncreaseEntry(TypedDict):
    subscription_id: str
    name: str
    previous_amount: float
    current_amount: float
    increase_amount: float
    increase_percentage: float


def _completed(payments: Sequence[PaymentRecord]) -> list[PaymentRecord]:
    return sorted((p for p in payments if p.status == "completed"), key=lambda p: p.date)


def last_activity(
    subscription: Subscription, payments: Sequence[PaymentRecord] = ()
) -> Optional[pd.Timestamp]:
    """Return the latest of ``last_paid_date`` and the last completed payment."""

    candidates = [p.date for p in _completed(payments)]
    if subscription.last_paid_date is not None:
        candidates.append(subscription.last_paid_date)
    if not candidates:
        return None
    return max(candidates)


def next_payment_date(
    subscription: Subscription, payments: Sequence[PaymentRecord] = ()
) -> Optional[pd.Timestamp]:
    last = last_activity(subscription, payments)
    if last is None:
        return None
    return last + _CYCLE_OFFSETS[subscription.billing_cycle]


def months_active(subscription: Subscription, today: pd.Timestamp) -> int:
    """Whole calendar months since creation, never less than one."""

    start = pd.Timestamp(subscription.created_at)
    months = (today.year - start.year) * 12 + (today.month - start.month)
    return max(1, months)


def compute_value_score(subscription: Subscription, payments: Sequence[PaymentRecord]) -> float:
    """Score a subscription from 0 to 100 using price and payment reliability."""

    score = 50.0
    if subscription.amount < REFERENCE_PRICE:
        score += 10
    elif subscription.amount > REFERENCE_PRICE * 1.5:
        score -= 10

    failed = sum(1 for p in payments if p.status == "failed")
    score -= failed * 5
    return float(max(0.0, min(100.0, score)))


def build_subscription_analytics(
    subscription: Subscription,
    payments: Sequence[PaymentRecord],
    today: pd.Timestamp,
) -> SubscriptionAnalytics:
    history = sorted(payments, key=lambda p: p.date)
    completed = _completed(history)
    total_spent = float(sum(p.amount for p in completed))
    active_months = months_active(subscription, today)
    monthly_average = total_spent / active_months if completed else float(subscription.amount)

    return SubscriptionAnalytics(
        id=subscription.id,
        name=subscription.name,
        total_spent=total_spent,
        monthly_average=monthly_average,
        last_payment=completed[-1].date if completed else subscription.last_paid_date,
        next_payment=next_payment_date(subscription, history),
        payment_history=history,
        value_score=compute_value_score(subscription, history),
    )


def detect_unused_subscriptions(
    subscriptions: Sequence[Subscription],
    payments_by_subscription: Mapping[str, Sequence[PaymentRecord]],
    today: pd.Timestamp,
    *,
    threshold_days: int = 30,
) -> list[UnusedEntry]:
    """Return active subscriptions with no payment in the last ``threshold_days``."""

    entries: list[UnusedEntry] = []
    for sub in subscriptions:
        if not sub.is_active:
            continue
        last = last_activity(sub, payments_by_subscription.get(sub.id, ()))
        if last is None:
            continue
        days_inactive = int((today.normalize() - last.normalize()).days)
        if days_inactive <= threshold_days:
            continue
        entries.append(
            {
                "subscription_id": sub.id,
                "name": sub.name,
                "amount": float(sub.amount),
                "last_activity": last,
                "days_inactive": days_inactive,
            }
        )
    return entries


def detect_price_increases(
    subscriptions: Sequence[Subscription],
    payments_by_subscription: Mapping[str, Sequence[PaymentRecord]],
    *,
    threshold_pct: float = 5.0,
) -> list[PriceIncreaseEntry]:
    """Compare the latest two completed charges of each subscription."""

    entries: list[PriceIncreaseEntry] = []
    for sub in subscriptions:
        completed = _completed(payments_by_subscription.get(sub.id, ()))
        if len(completed) < 2:
            continue
        previous, current = completed[-2].amount, completed[-1].amount
        if previous <= 0:
            continue
        increase_pct = (current - previous) / previous * 100
        if increase_pct <= threshold_pct:
            continue
        entries.append(
            {
                "subscription_id": sub.id,
                "name": sub.name,
                "previous_amount": float(previous),
                "current_amount": float(current),
                "increase_amount": float(current - previous),
                "increase_percentage": float(increase_pct),
            }
        )
    return entries
