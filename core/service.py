"""Cache-backed analytics query surface for the subscription tracker."""

from __future__ import annotations

import asyncio
import functools
import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Optional, Sequence, TypeVar

import pandas as pd

from analytics.aggregation import (
    build_category_breakdown,
    build_comparison,
    build_monthly_buckets,
    build_yearly_data,
    filter_between,
    filter_by_category,
    filter_by_period,
    previous_window,
)
from analytics.anomalies import detect_anomalies
from analytics.budgets import budget_messages, evaluate_budgets, summarize_budgets
from analytics.forecasting import forecast_next_month, forecast_periods
from analytics.insights import (
    analyze_anomalies,
    analyze_budgets,
    analyze_duplicates,
    analyze_optimizations,
    analyze_trends,
    analyze_unused,
    rank_insights,
)
from analytics.recurring import build_subscription_analytics
from config.settings import AnalyticsSettings, get_settings
from core.cache import TTLCache, make_key
from core.models import (
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
from core.scheduler import BackgroundScheduler
from core.source import (
    RecordSource,
    normalize_budget,
    normalize_payment,
    normalize_subscription,
    to_timestamp,
)

__all__ = ["AnalyticsService", "Subscriber"]

logger = logging.getLogger(__name__)

T = TypeVar("T")
Subscriber = Callable[[Any], None]

_BUDGET_PERIODS = {"monthly": "month", "yearly": "year"}


def _failure_boundary(fallback: Callable[[], Any]):
    """Log unexpected errors from a public query and return ``fallback()`` instead."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(self, *args, **kwargs):
            try:
                return await func(self, *args, **kwargs)
            except Exception:
                logger.exception("%s failed", func.__name__)
                return fallback()

        return wrapper

    return decorator


class AnalyticsService:
    """Analytics engine over a :class:`~core.source.RecordSource`.

    The cache, the subscriber list and the background scheduler are owned by
    the instance: they are created here, reset by :meth:`clear_cache` and torn
    down by :meth:`aclose`.
    """

    def __init__(
        self,
        source: RecordSource,
        settings: Optional[AnalyticsSettings] = None,
        *,
        cache: Optional[TTLCache] = None,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.source = source
        self.settings = settings or get_settings()
        self.cache = cache if cache is not None else TTLCache(ttl=self.settings.cache_ttl_seconds)
        self._now = now
        self._subscribers: list[Subscriber] = []
        self.scheduler = BackgroundScheduler(
            self.run_analysis_pass,
            interval=self.settings.background_interval_seconds,
        )

    # ---------------------------------------------------------------- lifecycle

    async def start(self) -> None:
        self.scheduler.start()

    async def aclose(self) -> None:
        await self.scheduler.stop()
        self.cache.clear()
        self._subscribers.clear()

    async def __aenter__(self) -> "AnalyticsService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    def today(self) -> pd.Timestamp:
        return to_timestamp(self._now())

    # ---------------------------------------------------------------- observers

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register ``callback`` for push updates; returns an unsubscribe function."""

        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, payload: Any) -> None:
        for callback in list(self._subscribers):
            try:
                callback(payload)
            except Exception:
                logger.exception("Analytics subscriber %r failed", callback)

    def notify_data_changed(self, payload: Any = None) -> None:
        """Called by the host after it saves records; drops derived views and pushes."""

        self.clear_cache()
        self._notify(payload)

    def clear_cache(self) -> None:
        self.cache.clear()

    # ---------------------------------------------------------------- loaders

    async def _memoize(self, key: str, compute: Callable[[], Awaitable[T]]) -> T:
        cached = self.cache.get(key)
        if cached is not None:
            return cached
        value = await compute()
        self.cache.set(key, value)
        return value

    async def _subscriptions(self) -> list[Subscription]:
        async def compute() -> list[Subscription]:
            raw = await self.source.get_subscriptions()
            return [normalize_subscription(item) for item in raw]

        return await self._memoize("subscriptions", compute)

    async def _payments(self, subscription_id: str) -> list[PaymentRecord]:
        async def compute() -> list[PaymentRecord]:
            raw = await self.source.get_payment_history(subscription_id)
            return sorted((normalize_payment(item) for item in raw), key=lambda p: p.date)

        return await self._memoize(make_key("payments", subscription_id), compute)

    async def _payments_by_subscription(
        self, subscriptions: Sequence[Subscription]
    ) -> dict[str, list[PaymentRecord]]:
        histories = await asyncio.gather(*(self._payments(sub.id) for sub in subscriptions))
        return {sub.id: history for sub, history in zip(subscriptions, histories)}

    async def _budgets(self) -> list[BudgetSpec]:
        async def compute() -> list[BudgetSpec]:
            raw = await self.source.get_user_budgets()
            return [normalize_budget(item) for item in raw]

        return await self._memoize("budgets", compute)

    async def _all_records(self) -> list[SpendingRecord]:
        subscriptions = [sub for sub in await self._subscriptions() if sub.is_active]
        payments = await self._payments_by_subscription(subscriptions)

        records = [
            SpendingRecord(
                date=payment.date,
                amount=float(payment.amount),
                category=sub.category,
                subscription_id=sub.id,
                subscription_name=sub.name,
            )
            for sub in subscriptions
            for payment in payments[sub.id]
            if payment.status != "failed"
        ]
        records.sort(key=lambda r: r.date)
        return records

    async def _spending(self, period: str = "all", category: Optional[str] = None) -> list[SpendingRecord]:
        async def compute() -> list[SpendingRecord]:
            if period == "all" and not category:
                return await self._all_records()
            records = filter_by_period(await self._spending("all"), period, self.today())
            return filter_by_category(records, category)

        return await self._memoize(make_key("spending", period, category or "all"), compute)

    async def _previous_records(self, period: str) -> list[SpendingRecord]:
        window = previous_window(period, self.today())
        if window is None:
            return []
        return filter_between(await self._spending("all"), *window)

    async def _monthly(self, months: int, include_forecast: bool) -> list[MonthlyBucket]:
        async def compute() -> list[MonthlyBucket]:
            buckets = build_monthly_buckets(await self._spending("all"))
            result = buckets[-months:] if months > 0 else []
            if include_forecast and len(buckets) >= self.settings.forecast_min_months:
                projected = forecast_next_month(buckets)
                if projected is not None:
                    result.append(projected)
            return result

        return await self._memoize(make_key("monthly", months, include_forecast), compute)

    async def _breakdown(self, period: str) -> list[CategoryBreakdown]:
        async def compute() -> list[CategoryBreakdown]:
            current, previous = await asyncio.gather(
                self._spending(period), self._previous_records(period)
            )
            return build_category_breakdown(current, previous)

        return await self._memoize(make_key("category_breakdown", period), compute)

    def _thresholds(self) -> dict[str, float]:
        return {
            "warning_pct": self.settings.budget_warning_pct,
            "over_pct": self.settings.budget_over_pct,
            "danger_pct": self.settings.budget_danger_pct,
        }

    async def _budget_data(self, period: str) -> list[BudgetStatus]:
        if period not in _BUDGET_PERIODS:
            raise ValueError(f"Unknown budget period {period!r}")
        spend_period = _BUDGET_PERIODS[period]

        async def compute() -> list[BudgetStatus]:
            budgets, current, previous = await asyncio.gather(
                self._budgets(),
                self._breakdown(spend_period),
                self._previous_records(spend_period),
            )
            return evaluate_budgets(
                budgets, current, build_category_breakdown(previous), **self._thresholds()
            )

        return await self._memoize(make_key("budget", period), compute)

    async def _budget_summary(self, period: str) -> Optional[BudgetSummary]:
        statuses = await self._budget_data(period)
        return summarize_budgets(statuses, self.today(), **self._thresholds())

    async def _anomalies(self, period: str) -> list[Anomaly]:
        async def compute() -> list[Anomaly]:
            return detect_anomalies(
                await self._spending(period),
                min_records=self.settings.anomaly_min_records,
                sigma=self.settings.anomaly_sigma,
                high_sigma=self.settings.anomaly_high_sigma,
            )

        return await self._memoize(make_key("anomalies", period), compute)

    async def _predictions(self, months: int) -> list[Forecast]:
        async def compute() -> list[Forecast]:
            history = await self._monthly(12, False)
            return forecast_periods(history, months, min_history=self.settings.forecast_min_months)

        return await self._memoize(make_key("predictions", months), compute)

    async def _insights(self) -> list[Insight]:
        async def compute() -> list[Insight]:
            s = self.settings
            subscriptions, buckets, statuses, anomalies = await asyncio.gather(
                self._subscriptions(),
                self._monthly(12, False),
                self._budget_data("monthly"),
                self._anomalies("month"),
            )
            payments = await self._payments_by_subscription(subscriptions)
            today = self.today()
            return rank_insights(
                [
                    analyze_duplicates(subscriptions),
                    analyze_unused(subscriptions, payments, today, threshold_days=s.unused_days),
                    analyze_trends(buckets, threshold_pct=s.trend_change_threshold_pct),
                    analyze_optimizations(
                        subscriptions,
                        payments,
                        annual_discount_rate=s.annual_discount_rate,
                        savings_floor=s.annual_savings_floor,
                        price_increase_threshold_pct=s.price_increase_threshold_pct,
                        price_increase_high_pct=s.price_increase_high_pct,
                    ),
                    analyze_budgets(statuses),
                    analyze_anomalies(anomalies),
                ]
            )

        return await self._memoize("insights", compute)

    # ---------------------------------------------------------------- public queries

    @_failure_boundary(list)
    async def get_spending_data(self, period: str = "year", category: Optional[str] = None) -> list[SpendingRecord]:
        return list(await self._spending(period, category))

    @_failure_boundary(list)
    async def get_monthly_data(self, months: int = 12, include_forecast: bool = True) -> list[MonthlyBucket]:
        return list(await self._monthly(months, include_forecast))

    @_failure_boundary(list)
    async def get_category_breakdown(self, period: str = "month") -> list[CategoryBreakdown]:
        return list(await self._breakdown(period))

    @_failure_boundary(lambda: None)
    async def get_subscription_analytics(self, subscription_id: str) -> Optional[SubscriptionAnalytics]:
        subscriptions = await self._subscriptions()
        subscription = next((s for s in subscriptions if s.id == subscription_id), None)
        if subscription is None:
            return None
        payments = await self._payments(subscription_id)
        return build_subscription_analytics(subscription, payments, self.today())

    @_failure_boundary(list)
    async def get_insights(self) -> list[Insight]:
        return list(await self._insights())

    @_failure_boundary(list)
    async def generate_predictions(self, months: int = 3) -> list[Forecast]:
        return list(await self._predictions(months))

    @_failure_boundary(list)
    async def detect_anomalies(self, period: str = "month") -> list[Anomaly]:
        return list(await self._anomalies(period))

    @_failure_boundary(list)
    async def get_budget_data(self, period: str = "monthly") -> list[BudgetStatus]:
        return list(await self._budget_data(period))

    @_failure_boundary(lambda: None)
    async def get_budget_summary(self, period: str = "monthly") -> Optional[BudgetSummary]:
        return await self._budget_summary(period)

    @_failure_boundary(list)
    async def get_budget_messages(self) -> list[str]:
        statuses = await self._budget_data("monthly")
        return budget_messages(statuses, await self._budget_summary("monthly"))

    async def get_comparison_data(self, comparison: str) -> ComparisonData:
        """Compare two adjacent windows; failures propagate so callers can retry."""

        async def compute() -> ComparisonData:
            return build_comparison(
                await self._spending("all"),
                comparison,
                self.today(),
                change_threshold_pct=self.settings.trend_change_threshold_pct,
            )

        try:
            return await self._memoize(make_key("comparison", comparison), compute)
        except Exception:
            logger.exception("get_comparison_data failed for %s", comparison)
            raise

    @_failure_boundary(list)
    async def get_year_over_year_data(self) -> list[YearlyData]:
        async def compute() -> list[YearlyData]:
            return build_yearly_data(await self._spending("all"))

        return list(await self._memoize("year_over_year", compute))

    # ---------------------------------------------------------------- background

    async def run_analysis_pass(self) -> dict[str, Any]:
        """Recompute anomalies, predictions and insights and push them to subscribers."""

        self.clear_cache()
        anomalies, predictions, insights = await asyncio.gather(
            self._anomalies("month"),
            self._predictions(self.settings.forecast_horizon_months),
            self._insights(),
        )
        logger.info(
            "Analysis pass: %d anomalies, %d predictions, %d insights",
            len(anomalies),
            len(predictions),
            len(insights),
        )
        snapshot = {"anomalies": anomalies, "predictions": predictions, "insights": insights}
        self._notify(snapshot)
        return snapshot
