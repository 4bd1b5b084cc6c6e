"""
Violation Detection

Decides whether recording a candidate expense pushes any budget for its
category to or over the limit, and produces the alerts to append.

DESIGN DECISION: Violations are always evaluated against the period
containing "now", regardless of the candidate's own date.

CRITICAL: ``expenses`` must be the collection as it was BEFORE the
candidate was inserted (or, for an edit, with the old version of the
candidate removed). Otherwise the candidate is counted twice.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from budgetwatch.models.budget import Budget, BudgetAlert
from budgetwatch.models.expense import Expense, ensure_aware, utc_now
from budgetwatch.tracking.aggregation import aggregate_spend, coerce_amount
from budgetwatch.tracking.periods import SUNDAY, resolve_period
from budgetwatch.tracking.status import compute_percentage


ALERT_THRESHOLD = Decimal("100")


def detect_violations(
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    candidate: Expense,
    now: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> list[BudgetAlert]:
    """
    Alerts raised by recording ``candidate``.

    One alert per budget in the candidate's category whose projected
    spend is over the limit or at >= 100% of it. Budgets below that
    produce nothing.
    """
    now = ensure_aware(now) if now is not None else utc_now()
    expenses = list(expenses)
    candidate_amount = coerce_amount(candidate.amount)

    alerts = []
    for budget in budgets:
        if budget.category != candidate.category:
            continue

        window = resolve_period(budget.period, now, week_start)
        existing = aggregate_spend(expenses, window, budget.category)

        projected = existing.spent + candidate_amount
        projected_percentage = compute_percentage(projected, budget.amount)
        will_exceed = projected > budget.amount

        if will_exceed or projected_percentage >= ALERT_THRESHOLD:
            alerts.append(BudgetAlert(
                budget_id=budget.id,
                category=budget.category,
                spent=projected,
                budget_amount=budget.amount,
                percentage=projected_percentage,
                exceeded=will_exceed,
                created_at=now,
            ))

    return alerts


def describe_violation(alert: BudgetAlert) -> str:
    """User-facing warning for an alert, as shown next to an expense form."""
    if alert.exceeded:
        return (
            f"This will exceed your {alert.category} budget "
            f"by ${alert.overage:.2f}!"
        )
    return (
        f"This will put you at {alert.percentage:.1f}% "
        f"of your {alert.category} budget!"
    )
