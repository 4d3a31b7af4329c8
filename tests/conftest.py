"""Shared fixtures: record builders and an in-memory record source."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

import pandas as pd
import pytest

from config.settings import AnalyticsSettings
from core.models import SpendingRecord

NOW = datetime(2026, 6, 15, 12, 0)


def make_record(
    date: str,
    amount: float,
    category: str = "entertainment",
    subscription_id: Optional[str] = "sub-1",
    subscription_name: Optional[str] = "StreamFlix",
) -> SpendingRecord:
    return SpendingRecord(
        date=pd.Timestamp(date),
        amount=float(amount),
        category=category,
        subscription_id=subscription_id,
        subscription_name=subscription_name,
    )


class FakeSource:
    """RecordSource double that serves fixed payloads and counts calls."""

    def __init__(
        self,
        subscriptions: Sequence[Any] = (),
        payments: Optional[Mapping[str, Sequence[Any]]] = None,
        budgets: Sequence[Any] = (),
        *,
        fail: bool = False,
    ) -> None:
        self.subscriptions = list(subscriptions)
        self.payments = dict(payments or {})
        self.budgets = list(budgets)
        self.fail = fail
        self.calls: Counter[str] = Counter()

    def _check(self) -> None:
        if self.fail:
            raise ConnectionError("record source unavailable")

    async def get_subscriptions(self):
        self.calls["subscriptions"] += 1
        self._check()
        return list(self.subscriptions)

    async def get_payment_history(self, subscription_id: str):
        self.calls["payments"] += 1
        self._check()
        return list(self.payments.get(subscription_id, []))

    async def get_user_budgets(self):
        self.calls["budgets"] += 1
        self._check()
        return list(self.budgets)


def _monthly_payments(prefix: str, day: int, amount: float) -> list[dict[str, Any]]:
    months = pd.period_range("2025-07", "2026-06", freq="M")
    return [
        {
            "id": f"{prefix}-{period}",
            "date": f"{period}-{day:02d}",
            "amount": amount,
            "status": "completed",
        }
        for period in months
    ]


@pytest.fixture()
def settings() -> AnalyticsSettings:
    return AnalyticsSettings()


@pytest.fixture()
def sample_source() -> FakeSource:
    """Two active monthly subscriptions paid every month from July 2025 to June 2026."""

    subscriptions = [
        {
            "id": "sub-stream",
            "name": "StreamFlix",
            "category": "entertainment",
            "amount": 15.0,
            "billingCycle": "monthly",
            "isActive": True,
            "createdAt": "2025-01-01",
        },
        {
            "id": "sub-gym",
            "name": "Gym",
            "category": "fitness",
            "amount": 40.0,
            "billing_cycle": "monthly",
            "is_active": True,
            "created_at": "2025-06-20",
        },
        {
            "id": "sub-old",
            "name": "Old Magazine",
            "category": "news",
            "amount": 8.0,
            "billing_cycle": "monthly",
            "is_active": False,
            "created_at": "2024-01-01",
            "last_paid_date": "2024-06-01",
        },
    ]
    payments = {
        "sub-stream": _monthly_payments("stream", 5, 15.0),
        "sub-gym": _monthly_payments("gym", 10, 40.0)
        + [{"id": "gym-failed", "date": "2026-06-11", "amount": 40.0, "status": "failed"}],
        "sub-old": [{"id": "old-1", "date": "2024-06-01", "amount": 8.0, "status": "completed"}],
    }
    budgets = [
        {"category": "entertainment", "amount": 20.0},
        {"category": "fitness", "amount": 50.0, "rollover": 5.0},
    ]
    return FakeSource(subscriptions, payments, budgets)
