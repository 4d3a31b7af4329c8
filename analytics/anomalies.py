"""Z-score anomaly detection over spending amounts."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from core.models import Anomaly, SpendingRecord

__all__ = ["MIN_RECORDS", "detect_anomalies"]

MIN_RECORDS = 10


def detect_anomalies(
    records: Sequence[SpendingRecord],
    *,
    min_records: int = MIN_RECORDS,
    sigma: float = 2.0,
    high_sigma: float = 3.0,
) -> list[Anomaly]:
    """Flag records whose amount exceeds ``mean + sigma * std``.

    Parameters
    ----------
    records:
        Spending records for the lookback window.
    min_records:
        Below this many records there is not enough signal and nothing is flagged.
    sigma, high_sigma:
        Multipliers of the population standard deviation for the medium and
        high severity thresholds.

    Returns
    -------
    list[Anomaly]
        Flagged records ordered by date then amount.
    """

    if len(records) < min_records:
        return []

    amounts = np.array([r.amount for r in records], dtype=float)
    mean = float(amounts.mean())
    std = float(amounts.std(ddof=0))
    threshold = mean + sigma * std
    high_threshold = mean + high_sigma * std

    anomalies: list[Anomaly] = []
    for record in records:
        if record.amount <= threshold:
            continue
        severity = "high" if record.amount > high_threshold else "medium"
        anomalies.append(
            Anomaly(
                date=record.date,
                amount=float(record.amount),
                expected_amount=mean,
                deviation=float(record.amount) - mean,
                severity=severity,
                reason=(
                    f"{record.amount:,.2f} on {record.category} is "
                    f"{(record.amount - mean) / std:.1f}σ above the average of {mean:,.2f}"
                ),
                category=record.category,
                subscription_id=record.subscription_id,
            )
        )

    anomalies.sort(key=lambda item: (item.date, item.amount, item.subscription_id or ""))
    return anomalies
