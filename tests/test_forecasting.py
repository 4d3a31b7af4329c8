"""Tests for OLS trend forecasting and next-month extrapolation."""

from __future__ import annotations

import pandas as pd
import pytest

from analytics.forecasting import (
    fit_linear_trend,
    forecast_factors,
    forecast_next_month,
    forecast_periods,
    horizon_confidence,
)
from core.models import MonthlyBucket


def _buckets(totals, start="2026-01"):
    months = pd.period_range(start, periods=len(totals), freq="M")
    return [
        MonthlyBucket(month=m.to_timestamp(), total=float(t), categories={"streaming": float(t)}, count=1, average=float(t))
        for m, t in zip(months, totals)
    ]


def test_fit_linear_trend_on_perfect_line():
    trend = fit_linear_trend([100, 110, 120, 130, 140, 150])

    assert trend.slope == pytest.approx(10.0)
    assert trend.intercept == pytest.approx(100.0)
    assert trend.residual_std == pytest.approx(0.0)


def test_fit_linear_trend_degenerate_inputs():
    assert fit_linear_trend([]).slope == 0.0
    single = fit_linear_trend([42.0])
    assert single.slope == 0.0
    assert single.intercept == pytest.approx(42.0)


def test_forecast_requires_six_months():
    assert forecast_periods(_buckets([100, 110, 120, 130, 140]), 3) == []


def test_forecast_projects_linear_trend():
    forecasts = forecast_periods(_buckets([100, 110, 120, 130, 140, 150]), 3)

    assert [f.period for f in forecasts] == ["2026-07", "2026-08", "2026-09"]
    assert forecasts[0].predicted_amount == pytest.approx(160.0)
    assert forecasts[2].predicted_amount == pytest.approx(180.0)
    assert forecasts[0].lower_bound == pytest.approx(160.0)
    assert forecasts[0].upper_bound == pytest.approx(160.0)


def test_forecast_confidence_decays_with_horizon():
    forecasts = forecast_periods(_buckets([100, 110, 120, 130, 140, 150]), 4)

    confidences = [f.confidence for f in forecasts]
    assert confidences == pytest.approx([0.875, 0.75, 0.625, 0.5])
    assert horizon_confidence(0, 4) == 1.0


def test_forecast_bounds_use_residual_spread_and_floor_at_zero():
    totals = [100, 120, 100, 120, 100, 120]
    trend = fit_linear_trend(totals)

    (forecast,) = forecast_periods(_buckets(totals), 1)

    assert forecast.upper_bound - forecast.predicted_amount == pytest.approx(2 * trend.residual_std)
    assert forecast.lower_bound == pytest.approx(max(0.0, forecast.predicted_amount - 2 * trend.residual_std))

    declining = forecast_periods(_buckets([600, 500, 400, 300, 200, 100]), 2)
    assert [f.predicted_amount for f in declining] == [0.0, 0.0]
    assert all(f.lower_bound == 0.0 for f in declining)


def test_forecast_factors_are_deterministic():
    totals = [100, 110, 120, 130, 140, 150]
    first = forecast_factors(totals, fit_linear_trend(totals))
    second = forecast_factors(totals, fit_linear_trend(totals))

    assert first == second
    names = [f["name"] for f in first]
    assert names == ["Linear Trend", "Recent Growth", "Volatility"]
    assert first[0]["impact"] == pytest.approx(10.0 / 125.0)


def test_forecast_ignores_synthetic_buckets():
    buckets = _buckets([100, 110, 120, 130, 140])
    buckets.append(MonthlyBucket(month=pd.Timestamp("2026-06-01"), total=150.0, is_forecast=True))

    assert forecast_periods(buckets, 3) == []


def test_next_month_extrapolates_average_growth():
    projected = forecast_next_month(_buckets([100, 110, 121]))

    assert projected is not None
    assert projected.is_forecast
    assert projected.month == pd.Timestamp("2026-04-01")
    assert projected.total == pytest.approx(133.1)
    assert projected.trend_pct == pytest.approx(10.0)
    assert projected.confidence == pytest.approx(1.0)
    assert projected.categories["streaming"] == pytest.approx(133.1)


def test_next_month_volatility_reduces_confidence():
    projected = forecast_next_month(_buckets([100, 150, 75, 150]))

    assert projected is not None
    assert projected.confidence == 0.0


def test_next_month_needs_three_buckets():
    assert forecast_next_month(_buckets([100, 110])) is None
