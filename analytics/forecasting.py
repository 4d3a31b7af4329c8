"""Linear-trend forecasting over monthly spending totals."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from core.models import Forecast, ForecastFactor, MonthlyBucket

__all__ = [
    "LinearTrend",
    "MIN_HISTORY_MONTHS",
    "fit_linear_trend",
    "forecast_factors",
    "forecast_next_month",
    "forecast_periods",
    "horizon_confidence",
]

MIN_HISTORY_MONTHS = 6


@dataclass(frozen=True)
class LinearTrend:
    slope: float
    intercept: float
    residual_std: float

    def predict(self, index: float) -> float:
        return self.slope * index + self.intercept


def fit_linear_trend(values: Sequence[float]) -> LinearTrend:
    """Fit ordinary least squares on ``(index, value)`` pairs."""

    y = np.asarray(values, dtype=float)
    n = len(y)
    if n == 0:
        return LinearTrend(0.0, 0.0, 0.0)

    x = np.arange(n, dtype=float)
    sum_x = x.sum()
    sum_y = y.sum()
    denominator = n * (x * x).sum() - sum_x**2
    if denominator == 0:
        slope = 0.0
    else:
        slope = float((n * (x * y).sum() - sum_x * sum_y) / denominator)
    intercept = float((sum_y - slope * sum_x) / n)

    residuals = y - (slope * x + intercept)
    return LinearTrend(slope, intercept, float(residuals.std(ddof=0)))


def horizon_confidence(step: int, horizon: int) -> float:
    """Confidence decays linearly from 1 towards 0.5 across the horizon."""

    if horizon <= 0:
        return 1.0
    return float(min(1.0, max(0.0, 1 - (step / horizon) * 0.5)))


def _growth_rates(totals: Sequence[float]) -> list[float]:
    return [
        (current - previous) / previous
        for previous, current in zip(totals, totals[1:])
        if previous != 0
    ]


def forecast_factors(totals: Sequence[float], trend: LinearTrend) -> list[ForecastFactor]:
    """Attribute the forecast to the trend, recent growth and volatility."""

    mean_total = float(np.mean(totals)) if len(totals) else 0.0
    recent = _growth_rates(list(totals)[-4:])

    if mean_total == 0:
        return [
            {"name": "Linear Trend", "impact": 0.0},
            {"name": "Recent Growth", "impact": float(np.mean(recent)) if recent else 0.0},
            {"name": "Volatility", "impact": 0.0},
        ]

    return [
        {"name": "Linear Trend", "impact": trend.slope / mean_total},
        {"name": "Recent Growth", "impact": float(np.mean(recent)) if recent else 0.0},
        {"name": "Volatility", "impact": -trend.residual_std / mean_total},
    ]


def forecast_periods(
    buckets: Sequence[MonthlyBucket],
    months: int,
    *,
    min_history: int = MIN_HISTORY_MONTHS,
) -> list[Forecast]:
    """Project ``months`` future monthly totals from the historical buckets.

    Returns an empty list when fewer than ``min_history`` months are available.
    """

    history = [b for b in buckets if not b.is_forecast]
    if len(history) < min_history or months <= 0:
        return []

    totals = [b.total for b in history]
    trend = fit_linear_trend(totals)
    factors = forecast_factors(totals, trend)
    last_index = len(totals) - 1
    last_month = pd.Timestamp(history[-1].month)

    forecasts: list[Forecast] = []
    for step in range(1, months + 1):
        predicted = max(0.0, trend.predict(last_index + step))
        spread = 2 * trend.residual_std
        period = (last_month + pd.DateOffset(months=step)).strftime("%Y-%m")
        forecasts.append(
            Forecast(
                period=period,
                predicted_amount=predicted,
                confidence=horizon_confidence(step, months),
                lower_bound=max(0.0, predicted - spread),
                upper_bound=predicted + spread,
                factors=[ForecastFactor(name=f["name"], impact=f["impact"]) for f in factors],
            )
        )
    return forecasts


def forecast_next_month(buckets: Sequence[MonthlyBucket]) -> Optional[MonthlyBucket]:
    """Extrapolate the mean month-over-month growth rate by one month.

    Used to pad charts with a single projected bucket. Volatility of the
    growth rates lowers the confidence.
    """

    history = [b for b in buckets if not b.is_forecast]
    if len(history) < 3:
        return None

    last = history[-1]
    rates = _growth_rates([b.total for b in history])
    avg_rate = float(np.mean(rates)) if rates else 0.0
    volatility = float(np.std(rates, ddof=0)) if rates else 0.0

    predicted = max(0.0, last.total * (1 + avg_rate))
    categories: dict[str, float] = {}
    if last.total:
        categories = {name: predicted * amount / last.total for name, amount in last.categories.items()}

    return MonthlyBucket(
        month=pd.Timestamp(last.month) + pd.DateOffset(months=1),
        total=predicted,
        categories=categories,
        subscriptions={},
        count=last.count,
        average=last.average * (1 + avg_rate),
        trend_pct=(predicted - last.total) / last.total * 100 if last.total else 0.0,
        is_forecast=True,
        confidence=max(0.0, 1 - volatility * 2),
    )
