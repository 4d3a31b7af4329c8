"""Collaborator interface for subscription, payment and budget records.

The host application owns persistence and supplies records through an object
implementing :class:`RecordSource`. Payloads may be the dataclasses from
:mod:`core.models` or plain mappings (snake_case or camelCase keys); either way
they are normalised here before any aggregation runs.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol, Sequence, Union, runtime_checkable

import pandas as pd

from core.models import (
    BILLING_CYCLES,
    PAYMENT_STATUSES,
    BudgetSpec,
    PaymentRecord,
    Subscription,
)

__all__ = [
    "MalformedRecordError",
    "RecordSource",
    "normalize_budget",
    "normalize_payment",
    "normalize_subscription",
    "to_timestamp",
]


class MalformedRecordError(ValueError):
    """Raised when a collaborator payload cannot be coerced into a record."""


@runtime_checkable
class RecordSource(Protocol):
    async def get_subscriptions(self) -> Sequence[Union[Subscription, Mapping[str, Any]]]:
        ...

    async def get_payment_history(
        self, subscription_id: str
    ) -> Sequence[Union[PaymentRecord, Mapping[str, Any]]]:
        ...

    async def get_user_budgets(self) -> Sequence[Union[BudgetSpec, Mapping[str, Any]]]:
        ...


def to_timestamp(value: Any) -> pd.Timestamp:
    """Return a timezone-naive timestamp for ``value``."""

    try:
        stamp = pd.Timestamp(value)
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Invalid date value: {value!r}") from exc
    if pd.isna(stamp):
        raise MalformedRecordError(f"Missing date value: {value!r}")
    if stamp.tzinfo is not None:
        stamp = stamp.tz_convert("UTC").tz_localize(None)
    return stamp


def _pick(payload: Mapping[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in payload and payload[key] is not None:
            return payload[key]
    return default


def _require(payload: Mapping[str, Any], *keys: str) -> Any:
    value = _pick(payload, *keys)
    if value is None:
        raise MalformedRecordError(f"Missing required field {keys[0]!r} in {dict(payload)!r}")
    return value


def _coerce_amount(value: Any) -> float:
    try:
        amount = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedRecordError(f"Invalid amount: {value!r}") from exc
    if amount != amount:  # NaN
        raise MalformedRecordError("Amount is NaN")
    return amount


def _optional_timestamp(value: Any) -> Optional[pd.Timestamp]:
    if value is None or value == "":
        return None
    return to_timestamp(value)


def normalize_subscription(payload: Union[Subscription, Mapping[str, Any]]) -> Subscription:
    if isinstance(payload, Subscription):
        return payload
    if not isinstance(payload, Mapping):
        raise MalformedRecordError(f"Unsupported subscription payload: {type(payload).__name__}")

    cycle = str(_pick(payload, "billing_cycle", "billingCycle", default="monthly")).lower()
    if cycle not in BILLING_CYCLES:
        raise MalformedRecordError(f"Unknown billing cycle: {cycle!r}")

    return Subscription(
        id=str(_require(payload, "id")),
        name=str(_require(payload, "name")),
        category=str(_pick(payload, "category", default="uncategorized")),
        amount=_coerce_amount(_require(payload, "amount")),
        billing_cycle=cycle,  # type: ignore[arg-type]
        is_active=bool(_pick(payload, "is_active", "isActive", default=True)),
        created_at=to_timestamp(_require(payload, "created_at", "createdAt")),
        last_paid_date=_optional_timestamp(_pick(payload, "last_paid_date", "lastPaidDate")),
    )


def normalize_payment(payload: Union[PaymentRecord, Mapping[str, Any]]) -> PaymentRecord:
    if isinstance(payload, PaymentRecord):
        return payload
    if not isinstance(payload, Mapping):
        raise MalformedRecordError(f"Unsupported payment payload: {type(payload).__name__}")

    status = str(_pick(payload, "status", default="completed")).lower()
    if status not in PAYMENT_STATUSES:
        raise MalformedRecordError(f"Unknown payment status: {status!r}")

    notes = _pick(payload, "notes")
    return PaymentRecord(
        id=str(_require(payload, "id")),
        date=to_timestamp(_require(payload, "date")),
        amount=_coerce_amount(_require(payload, "amount")),
        status=status,  # type: ignore[arg-type]
        notes=str(notes) if notes is not None else None,
    )


def normalize_budget(payload: Union[BudgetSpec, Mapping[str, Any]]) -> BudgetSpec:
    if isinstance(payload, BudgetSpec):
        budget = payload
    elif isinstance(payload, Mapping):
        budget = BudgetSpec(
            category=str(_require(payload, "category")),
            amount=_coerce_amount(_require(payload, "amount")),
            rollover=_coerce_amount(_pick(payload, "rollover", default=0.0)),
        )
    else:
        raise MalformedRecordError(f"Unsupported budget payload: {type(payload).__name__}")

    if budget.amount <= 0:
        raise MalformedRecordError(f"Budget ceiling for {budget.category!r} must be positive")
    return budget
