from __future__ import annotations

import pandas as pd
import pytest

from analytics.insights import (
    analyze_anomalies,
    analyze_budgets,
    analyze_duplicates,
    analyze_optimizations,
    analyze_trends,
    analyze_unused,
    detect_seasonal_peak,
    rank_insights,
)
from analytics.recurring import build_subscription_analytics, compute_value_score
from conftest import NOW
from core.models import Anomaly, BudgetStatus, Insight, MonthlyBucket, PaymentRecord, Subscription


def _sub(sub_id="sub-1", name="StreamFlix", amount=15.0, billing_cycle="monthly", is_active=True, **extra):
    return Subscription(
        id=sub_id,
        name=name,
        category=extra.pop("category", "entertainment"),
        amount=amount,
        billing_cycle=billing_cycle,
        is_active=is_active,
        created_at=pd.Timestamp(extra.pop("created_at", "2025-01-01")),
        **extra,
    )


def _payment(date, amount, status="completed"):
    return PaymentRecord(id=f"p-{date}", date=pd.Timestamp(date), amount=amount, status=status)


def _buckets(totals, start="2025-07"):
    months = pd.period_range(start, periods=len(totals), freq="M")
    return [MonthlyBucket(month=m.to_timestamp(), total=float(t)) for m, t in zip(months, totals)]


def _insight(insight_id, impact):
    return Insight(id=insight_id, type="info", title=insight_id, description="", impact=impact)


def test_rank_orders_by_impact_and_keeps_ties_stable():
    ranked = rank_insights(
        [
            [_insight("a", "medium"), _insight("b", "low")],
            [_insight("c", "high"), _insight("d", "medium")],
        ]
    )

    assert [i.id for i in ranked] == ["c", "a", "d", "b"]


def test_duplicate_subscriptions_produce_savings():
    subs = [
        _sub("n1", "Netflix", 15.0),
        _sub("n2", "Netflix", 18.0),
        _sub("s1", "Spotify", 10.0, category="music"),
    ]

    (insight,) = analyze_duplicates(subs)

    assert insight.type == "savings"
    assert insight.value == pytest.approx(15.0)
    assert insight.impact == "medium"
    assert "2 Netflix" in insight.description


def test_three_copies_are_high_impact():
    subs = [_sub(f"n{i}", "Netflix", 10.0) for i in range(3)]

    (insight,) = analyze_duplicates(subs)

    assert insight.impact == "high"
    assert insight.value == pytest.approx(20.0)


def test_unused_subscription_flagged_after_threshold():
    subs = [_sub("idle", "Idle Box", 12.0), _sub("busy", "Busy Box", 12.0)]
    payments = {
        "idle": [_payment("2026-05-01", 12.0)],
        "busy": [_payment("2026-06-01", 12.0)],
    }

    (insight,) = analyze_unused(subs, payments, pd.Timestamp(NOW))

    assert insight.subscription_id == "idle"
    assert insight.type == "warning"
    assert insight.value == pytest.approx(144.0)
    assert "45 days" in insight.description


def test_inactive_subscriptions_are_never_unused():
    subs = [_sub("old", "Old", 12.0, is_active=False)]
    payments = {"old": [_payment("2024-01-01", 12.0)]}

    assert analyze_unused(subs, payments, pd.Timestamp(NOW)) == []


def test_rising_trend_is_high_impact():
    (insight,) = analyze_trends(_buckets([100, 115, 130]))

    assert insight.title == "Spending Increasing Rapidly"
    assert insight.impact == "high"
    assert insight.value == pytest.approx(30.0)


def test_falling_trend_is_medium_impact():
    (insight,) = analyze_trends(_buckets([100, 85, 70]))

    assert insight.title == "Spending Decreasing"
    assert insight.impact == "medium"


def test_trends_need_history_and_ignore_small_changes():
    assert analyze_trends(_buckets([100, 200])) == []
    assert analyze_trends(_buckets([100, 105, 110])) == []
    assert analyze_trends(_buckets([0, 100, 200])) == []


def test_seasonal_peak_detected_over_a_year():
    totals = [100.0] * 12
    totals[5] = 300.0  # December 2025

    buckets = _buckets(totals)

    assert detect_seasonal_peak(buckets) == ("December", 300.0)
    insights = analyze_trends(buckets)
    assert [i.id for i in insights] == ["trend_seasonal"]
    assert "December" in insights[0].description


def test_flat_year_has_no_seasonal_peak():
    assert detect_seasonal_peak(_buckets([50.0] * 12)) is None
    assert detect_seasonal_peak(_buckets([50.0] * 11)) is None


def test_annual_billing_savings_only_above_floor():
    subs = [
        _sub("cheap", "Cheap", 5.0),
        _sub("mid", "Mid", 10.0),
        _sub("annual", "Annual", 100.0, billing_cycle="yearly"),
    ]

    insights = analyze_optimizations(subs, {})

    assert [i.id for i in insights] == ["optimize_annual_mid"]
    assert insights[0].type == "savings"
    assert insights[0].value == pytest.approx(18.0)


def test_price_increase_warning():
    subs = [_sub("tv", "TV", 13.0, billing_cycle="yearly")]
    payments = {"tv": [_payment("2026-04-01", 10.0), _payment("2026-05-01", 10.0), _payment("2026-06-01", 13.0)]}

    (insight,) = analyze_optimizations(subs, payments)

    assert insight.id == "optimize_price_tv"
    assert insight.impact == "high"
    assert insight.value == pytest.approx(36.0)


def test_small_price_increase_is_ignored():
    subs = [_sub("tv", "TV", 10.4, billing_cycle="yearly")]
    payments = {"tv": [_payment("2026-05-01", 10.0), _payment("2026-06-01", 10.4)]}

    assert analyze_optimizations(subs, payments) == []


def _budget_status(category, percentage, state):
    spent = percentage
    return BudgetStatus(
        category=category,
        budgeted=100.0,
        spent=spent,
        remaining=100.0 - spent,
        percentage=percentage,
        status=state,
    )


def test_budget_insights_per_tier():
    statuses = [
        _budget_status("travel", 130.0, "danger"),
        _budget_status("food", 95.0, "over"),
        _budget_status("music", 80.0, "warning"),
        _budget_status("news", 10.0, "under"),
    ]

    exceeded, nearly, approaching = analyze_budgets(statuses)

    assert exceeded.title == "Budget Exceeded"
    assert exceeded.impact == "high"
    assert exceeded.value == pytest.approx(30.0)
    assert nearly.impact == "medium"
    assert nearly.value == pytest.approx(5.0)
    assert approaching.id == "budget_warning_music"
    assert approaching.impact == "low"


def test_anomaly_insights_follow_severity():
    anomalies = [
        Anomaly(pd.Timestamp("2026-06-01"), 100.0, 20.0, 80.0, "high", "far above", "food", "sub-1"),
        Anomaly(pd.Timestamp("2026-06-02"), 50.0, 20.0, 30.0, "medium", "above", "food", "sub-2"),
    ]

    high, medium = analyze_anomalies(anomalies)

    assert high.impact == "high"
    assert high.value == pytest.approx(80.0)
    assert medium.impact == "medium"
    assert high.id != medium.id


def test_value_score_penalises_price_and_failures():
    assert compute_value_score(_sub(amount=8.0), []) == 60.0
    assert compute_value_score(_sub(amount=12.0), []) == 50.0
    failures = [_payment(f"2026-0{m}-01", 40.0, status="failed") for m in range(1, 4)]
    assert compute_value_score(_sub(amount=40.0), failures) == 25.0


def test_subscription_analytics_totals_completed_payments():
    sub = _sub(amount=10.0, created_at="2026-01-01")
    payments = [
        _payment("2026-03-01", 10.0),
        _payment("2026-01-01", 10.0),
        _payment("2026-02-01", 10.0, status="failed"),
    ]

    analytics = build_subscription_analytics(sub, payments, pd.Timestamp(NOW))

    assert analytics.total_spent == pytest.approx(20.0)
    assert analytics.monthly_average == pytest.approx(4.0)
    assert analytics.last_payment == pd.Timestamp("2026-03-01")
    assert analytics.next_payment == pd.Timestamp("2026-04-01")
    assert [p.date for p in analytics.payment_history] == sorted(p.date for p in payments)
    assert analytics.value_score == 45.0
