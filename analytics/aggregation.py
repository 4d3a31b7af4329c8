"""Time-bucket and category aggregation over spending records."""

from __future__ import annotations

import calendar
from typing import Iterable, Optional, Sequence, Tuple

import pandas as pd

from core.models import (
    PERIODS,
    CategoryBreakdown,
    CategoryChange,
    ComparisonData,
    MonthAmount,
    MonthlyBucket,
    SpendingRecord,
    YearlyData,
)

__all__ = [
    "COMPARISON_MONTHS",
    "build_category_breakdown",
    "build_comparison",
    "build_monthly_buckets",
    "build_yearly_data",
    "comparison_windows",
    "filter_between",
    "filter_by_category",
    "filter_by_period",
    "percent_change",
    "period_start",
    "previous_window",
    "records_to_frame",
]

_COLUMNS = ["date", "amount", "category", "subscription_id", "subscription_name"]

COMPARISON_MONTHS: dict[str, int] = {"1m": 1, "3m": 3, "6m": 6, "12m": 12}

Window = Tuple[pd.Timestamp, pd.Timestamp]


def percent_change(current: float, previous: float) -> float:
    """Return the percentage change from ``previous``; 0 when there is no base."""

    if previous == 0:
        return 0.0
    return (current - previous) / previous * 100


def records_to_frame(records: Iterable[SpendingRecord]) -> pd.DataFrame:
    rows = [
        (r.date, float(r.amount), r.category, r.subscription_id, r.subscription_name)
        for r in records
    ]
    frame = pd.DataFrame(rows, columns=_COLUMNS)
    frame["date"] = pd.to_datetime(frame["date"])
    frame["amount"] = frame["amount"].astype(float)
    return frame


def _check_period(period: str) -> None:
    if period not in PERIODS:
        raise ValueError(f"Unknown period {period!r}; expected one of {', '.join(PERIODS)}")


def period_start(period: str, now: pd.Timestamp) -> Optional[pd.Timestamp]:
    """Return the inclusive lower bound for ``period`` or ``None`` for ``all``."""

    _check_period(period)
    now = pd.Timestamp(now)
    if period == "month":
        return now.normalize().replace(day=1)
    if period == "quarter":
        return now - pd.DateOffset(months=3)
    if period == "year":
        return now - pd.DateOffset(months=12)
    return None


def previous_window(period: str, now: pd.Timestamp) -> Optional[Window]:
    """Return the equal-length window right before the current ``period``."""

    _check_period(period)
    now = pd.Timestamp(now)
    if period == "month":
        this_month = now.normalize().replace(day=1)
        return this_month - pd.DateOffset(months=1), this_month
    if period == "quarter":
        return now - pd.DateOffset(months=6), now - pd.DateOffset(months=3)
    if period == "year":
        return now - pd.DateOffset(months=24), now - pd.DateOffset(months=12)
    return None


def filter_by_period(
    records: Sequence[SpendingRecord], period: str, now: pd.Timestamp
) -> list[SpendingRecord]:
    start = period_start(period, now)
    if start is None:
        return list(records)
    return [r for r in records if r.date >= start]


def filter_between(
    records: Sequence[SpendingRecord],
    start: pd.Timestamp,
    end: pd.Timestamp,
    *,
    inclusive_end: bool = False,
) -> list[SpendingRecord]:
    if inclusive_end:
        return [r for r in records if start <= r.date <= end]
    return [r for r in records if start <= r.date < end]


def filter_by_category(records: Sequence[SpendingRecord], category: Optional[str]) -> list[SpendingRecord]:
    if not category:
        return list(records)
    return [r for r in records if r.category == category]


def build_monthly_buckets(records: Iterable[SpendingRecord]) -> list[MonthlyBucket]:
    """Group records into calendar-month buckets sorted ascending by month."""

    frame = records_to_frame(records)
    if frame.empty:
        return []

    frame["month"] = frame["date"].dt.to_period("M")

    buckets: list[MonthlyBucket] = []
    previous_total: Optional[float] = None
    for month, month_df in frame.groupby("month", sort=True):
        total = float(month_df["amount"].sum())
        count = int(len(month_df))
        categories = month_df.groupby("category")["amount"].sum()
        subscriptions = month_df.dropna(subset=["subscription_id"]).groupby("subscription_id")["amount"].sum()

        buckets.append(
            MonthlyBucket(
                month=month.to_timestamp(how="start"),
                total=total,
                categories={str(k): float(v) for k, v in categories.items()},
                subscriptions={str(k): float(v) for k, v in subscriptions.items()},
                count=count,
                average=total / count if count else 0.0,
                trend_pct=percent_change(total, previous_total) if previous_total is not None else 0.0,
            )
        )
        previous_total = total

    return buckets


def build_category_breakdown(
    current: Iterable[SpendingRecord],
    previous: Iterable[SpendingRecord] = (),
) -> list[CategoryBreakdown]:
    """Return per-category totals, shares and changes vs the previous window."""

    current_frame = records_to_frame(current)
    if current_frame.empty:
        return []

    previous_frame = records_to_frame(previous)
    previous_totals = previous_frame.groupby("category")["amount"].sum()

    grouped = current_frame.groupby("category").agg(
        amount=("amount", "sum"),
        subscription_count=("subscription_id", "nunique"),
    )
    grouped = grouped.sort_values("amount", ascending=False, kind="mergesort")
    total_value = float(current_frame["amount"].sum())

    breakdown: list[CategoryBreakdown] = []
    for category, row in grouped.iterrows():
        amount = float(row["amount"])
        previous_amount = float(previous_totals.get(category, 0.0))
        breakdown.append(
            CategoryBreakdown(
                category=str(category),
                amount=amount,
                percentage=amount / total_value * 100 if total_value else 0.0,
                trend_pct=percent_change(amount, previous_amount),
                previous_amount=previous_amount,
                subscription_count=int(row["subscription_count"]),
            )
        )
    return breakdown


def build_yearly_data(records: Iterable[SpendingRecord]) -> list[YearlyData]:
    """Summarise spending per calendar year, newest year first."""

    frame = records_to_frame(records)
    if frame.empty:
        return []

    frame["year"] = frame["date"].dt.year
    frame["month_num"] = frame["date"].dt.month

    years: list[YearlyData] = []
    for year, year_df in frame.groupby("year"):
        monthly = year_df.groupby("month_num")["amount"].sum()
        months: list[MonthAmount] = [
            {"month": calendar.month_name[int(m)], "amount": float(a)} for m, a in monthly.items()
        ]
        peak_month = int(monthly.idxmax())
        low_month = int(monthly.idxmin())
        total = float(monthly.sum())
        years.append(
            YearlyData(
                year=int(year),
                total=total,
                average=total / len(months),
                peak={"month": calendar.month_name[peak_month], "amount": float(monthly[peak_month])},
                low={"month": calendar.month_name[low_month], "amount": float(monthly[low_month])},
                months=months,
            )
        )

    years.sort(key=lambda item: item.year, reverse=True)
    return years


def comparison_windows(comparison: str, now: pd.Timestamp) -> Tuple[Window, Window, int]:
    """Return ``(earlier, later, months)`` windows for a period comparison key."""

    if comparison not in COMPARISON_MONTHS:
        raise ValueError(
            f"Unknown comparison {comparison!r}; expected one of {', '.join(COMPARISON_MONTHS)}"
        )
    now = pd.Timestamp(now)
    months = COMPARISON_MONTHS[comparison]
    if comparison == "1m":
        later_start = now.normalize().replace(day=1)
        earlier_start = later_start - pd.DateOffset(months=1)
    else:
        later_start = now - pd.DateOffset(months=months)
        earlier_start = now - pd.DateOffset(months=months * 2)
    return (earlier_start, later_start), (later_start, now), months


def build_comparison(
    records: Sequence[SpendingRecord],
    comparison: str,
    now: pd.Timestamp,
    *,
    change_threshold_pct: float = 20.0,
) -> ComparisonData:
    (p1_start, p1_end), (p2_start, p2_end), months = comparison_windows(comparison, now)
    earlier = filter_between(records, p1_start, p1_end)
    later = filter_between(records, p2_start, p2_end, inclusive_end=True)

    p1_total = float(sum(r.amount for r in earlier))
    p2_total = float(sum(r.amount for r in later))

    earlier_by_cat = records_to_frame(earlier).groupby("category")["amount"].sum()
    later_by_cat = records_to_frame(later).groupby("category")["amount"].sum()

    categories: dict[str, CategoryChange] = {}
    for category in sorted(set(earlier_by_cat.index) | set(later_by_cat.index)):
        before = float(earlier_by_cat.get(category, 0.0))
        after = float(later_by_cat.get(category, 0.0))
        categories[str(category)] = {
            "period1": before,
            "period2": after,
            "change": after - before,
            "percentage_change": percent_change(after, before),
        }

    difference = p2_total - p1_total
    overall_change = percent_change(p2_total, p1_total)

    insights: list[str] = []
    if abs(overall_change) > change_threshold_pct:
        direction = "increased" if overall_change > 0 else "decreased"
        insights.append(f"Overall spending {direction} by {abs(overall_change):.0f}%")

    risers = [(name, c) for name, c in categories.items() if c["percentage_change"] > 0]
    if risers:
        name, change = max(risers, key=lambda item: item[1]["percentage_change"])
        insights.append(f"{name} spending increased by {change['percentage_change']:.0f}%")

    fallers = [(name, c) for name, c in categories.items() if c["percentage_change"] < 0]
    if fallers:
        name, change = min(fallers, key=lambda item: item[1]["percentage_change"])
        insights.append(f"{name} spending decreased by {abs(change['percentage_change']):.0f}%")

    return ComparisonData(
        period1={"start": p1_start, "end": p1_end, "total": p1_total, "average": p1_total / months},
        period2={"start": p2_start, "end": p2_end, "total": p2_total, "average": p2_total / months},
        difference=difference,
        percentage_change=overall_change,
        categories=categories,
        insights=insights,
    )
