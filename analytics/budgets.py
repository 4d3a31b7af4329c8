"""Budget ceiling evaluation and month-to-date projections."""

from __future__ import annotations

import calendar
from typing import Optional, Sequence

import pandas as pd

from analytics.aggregation import percent_change
from core.models import BudgetSpec, BudgetState, BudgetStatus, BudgetSummary, CategoryBreakdown

__all__ = [
    "budget_messages",
    "classify_status",
    "evaluate_budgets",
    "summarize_budgets",
]


def classify_status(
    percentage: float,
    *,
    warning_pct: float = 75.0,
    over_pct: float = 90.0,
    danger_pct: float = 100.0,
) -> BudgetState:
    if percentage >= danger_pct:
        return "danger"
    if percentage >= over_pct:
        return "over"
    if percentage >= warning_pct:
        return "warning"
    return "under"


def evaluate_budgets(
    budgets: Sequence[BudgetSpec],
    current: Sequence[CategoryBreakdown],
    previous: Sequence[CategoryBreakdown] = (),
    **thresholds: float,
) -> list[BudgetStatus]:
    """Compare category spend against each budget ceiling."""

    spent_by_category = {row.category: row.amount for row in current}
    previous_by_category = {row.category: row.amount for row in previous}

    statuses: list[BudgetStatus] = []
    for budget in budgets:
        spent = float(spent_by_category.get(budget.category, 0.0))
        previous_spent = float(previous_by_category.get(budget.category, 0.0))
        percentage = spent / budget.amount * 100 if budget.amount > 0 else 0.0
        statuses.append(
            BudgetStatus(
                category=budget.category,
                budgeted=float(budget.amount),
                spent=spent,
                remaining=float(budget.amount) - spent,
                percentage=percentage,
                status=classify_status(percentage, **thresholds),
                trend_pct=percent_change(spent, previous_spent),
                rollover=float(budget.rollover),
            )
        )
    return statuses


def summarize_budgets(
    statuses: Sequence[BudgetStatus],
    today: pd.Timestamp,
    **thresholds: float,
) -> Optional[BudgetSummary]:
    """Aggregate all categories and project the month-end total.

    ``status`` reflects spend as of today while ``projected_status`` is based
    on extrapolating the daily average to the end of the month.
    """

    if not statuses:
        return None

    today = pd.Timestamp(today)
    total_budgeted = float(sum(s.budgeted for s in statuses))
    total_spent = float(sum(s.spent for s in statuses))
    overall_percentage = total_spent / total_budgeted * 100 if total_budgeted else 0.0

    days_in_month = calendar.monthrange(today.year, today.month)[1]
    day_of_month = today.day
    daily_budget = total_budgeted / days_in_month
    daily_average = total_spent / day_of_month
    projected_total = daily_average * days_in_month
    projected_percentage = projected_total / total_budgeted * 100 if total_budgeted else 0.0

    return BudgetSummary(
        total_budgeted=total_budgeted,
        total_spent=total_spent,
        total_remaining=total_budgeted - total_spent,
        overall_percentage=overall_percentage,
        status=classify_status(overall_percentage, **thresholds),
        days_remaining=days_in_month - day_of_month,
        daily_budget=daily_budget,
        daily_average=daily_average,
        projected_total=projected_total,
        projected_status=classify_status(projected_percentage, **thresholds),
    )


def budget_messages(statuses: Sequence[BudgetStatus], summary: Optional[BudgetSummary]) -> list[str]:
    if summary is None:
        return []

    messages: list[str] = []
    if summary.status == "danger":
        messages.append(
            f"You've exceeded your monthly budget by {abs(summary.total_remaining):,.2f}"
        )
    elif summary.status == "over":
        messages.append(
            f"You're very close to exceeding your monthly budget ({summary.overall_percentage:.0f}% used)"
        )
    elif summary.status == "warning":
        messages.append(f"You've used {summary.overall_percentage:.0f}% of your monthly budget")

    if summary.daily_average > summary.daily_budget:
        messages.append(
            f"You're spending {summary.daily_average - summary.daily_budget:,.2f} more per day than budgeted"
        )

    over = [s for s in statuses if s.status in ("over", "danger")]
    if over:
        noun = "categories are" if len(over) > 1 else "category is"
        messages.append(f"{len(over)} {noun} over budget")

    roomy = [s for s in statuses if s.status == "under" and s.percentage < 50]
    if roomy:
        noun = "categories have" if len(roomy) > 1 else "category has"
        messages.append(f"{len(roomy)} {noun} more than 50% budget remaining")

    return messages
