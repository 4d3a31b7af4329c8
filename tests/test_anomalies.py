"""Tests for z-score anomaly detection."""

from __future__ import annotations

import pytest

from analytics.anomalies import detect_anomalies
from conftest import make_record


def _records(amounts):
    return [make_record(f"2026-06-{i + 1:02d}", amount) for i, amount in enumerate(amounts)]


def test_requires_minimum_record_count():
    assert detect_anomalies(_records([10, 10, 10, 10, 10, 10, 10, 10, 500])) == []


def test_flags_single_outlier():
    records = _records([10, 10, 10, 10, 10, 10, 10, 10, 10, 100])

    anomalies = detect_anomalies(records)

    assert len(anomalies) == 1
    anomaly = anomalies[0]
    assert anomaly.amount == pytest.approx(100.0)
    assert anomaly.expected_amount == pytest.approx(19.0)
    assert anomaly.deviation == pytest.approx(81.0)
    assert anomaly.severity == "medium"
    assert anomaly.category == "entertainment"
    assert anomaly.subscription_id == "sub-1"


def test_high_severity_beyond_three_sigma():
    records = _records([1] * 19 + [1000])

    (anomaly,) = detect_anomalies(records)

    assert anomaly.severity == "high"


def test_uniform_amounts_have_no_anomalies():
    assert detect_anomalies(_records([25] * 12)) == []


def test_result_does_not_depend_on_input_order():
    records = _records([10, 10, 10, 10, 10, 10, 10, 10, 10, 100])

    assert detect_anomalies(records) == detect_anomalies(list(reversed(records)))
