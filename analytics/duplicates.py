"""Duplicate subscription detection helpers."""

from __future__ import annotations

from typing import Sequence, TypedDict

import pandas as pd

from core.models import Subscription

__all__ = [
    "DuplicateEntry",
    "find_duplicate_subscriptions",
]


class DuplicateEntry(TypedDict):
    """A group of subscriptions sharing the same name."""

    name: str
    count: int
    category: str
    amounts: list[float]
    potential_savings: float


def find_duplicate_subscriptions(subscriptions: Sequence[Subscription]) -> list[DuplicateEntry]:
    """Group subscriptions by exact name and report groups with more than one entry.

    Savings assume the cheapest plan is kept once and every other copy is
    cancelled at that same price.
    """

    if not subscriptions:
        return []

    frame = pd.DataFrame(
        [(s.name, s.category, float(s.amount)) for s in subscriptions],
        columns=["name", "category", "amount"],
    )

    duplicates: list[DuplicateEntry] = []
    for name, group_df in frame.groupby("name", sort=False):
        count = int(len(group_df))
        if count < 2:
            continue

        amounts = [float(x) for x in group_df["amount"].tolist()]
        duplicates.append(
            {
                "name": str(name),
                "count": count,
                "category": str(group_df["category"].iat[0]),
                "amounts": amounts,
                "potential_savings": min(amounts) * (count - 1),
            }
        )

    return duplicates
