"""
Status Classification

Maps spent/limit to a percentage and a discrete tier, and builds the
derived BudgetStatus view for one or many budgets.

Tier precedence is fixed: EXCEEDED, then DANGER (>= 90%), then
WARNING (>= 75%), otherwise SAFE. A budget with spend strictly over its
limit is EXCEEDED whatever its percentage rounds to.
"""

from datetime import datetime
from decimal import Decimal
from typing import Iterable, Optional

from budgetwatch.models.budget import Budget, BudgetStatus, StatusTier
from budgetwatch.models.expense import Expense, ensure_aware, utc_now
from budgetwatch.tracking.aggregation import ZERO, aggregate_spend
from budgetwatch.tracking.periods import SUNDAY, resolve_period


DANGER_THRESHOLD = Decimal("90")
WARNING_THRESHOLD = Decimal("75")


def compute_percentage(spent: Decimal, limit: Decimal) -> Decimal:
    """spent / limit x 100, or 0 when the limit is not positive."""
    if limit > 0:
        return spent / limit * 100
    return ZERO


def classify(spent: Decimal, limit: Decimal) -> StatusTier:
    if spent > limit:
        return StatusTier.EXCEEDED
    percentage = compute_percentage(spent, limit)
    if percentage >= DANGER_THRESHOLD:
        return StatusTier.DANGER
    if percentage >= WARNING_THRESHOLD:
        return StatusTier.WARNING
    return StatusTier.SAFE


def calculate_budget_status(
    budget: Budget,
    expenses: Iterable[Expense],
    reference: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> BudgetStatus:
    """Status of ``budget`` for the period containing ``reference``."""
    window = resolve_period(budget.period, reference, week_start)
    summary = aggregate_spend(expenses, window, budget.category)

    return BudgetStatus(
        budget=budget,
        window=window,
        spent=summary.spent,
        count=summary.count,
        remaining=budget.amount - summary.spent,
        percentage=compute_percentage(summary.spent, budget.amount),
        exceeded=summary.spent > budget.amount,
        status=classify(summary.spent, budget.amount),
    )


def all_budget_statuses(
    budgets: Iterable[Budget],
    expenses: Iterable[Expense],
    reference: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> list[BudgetStatus]:
    """
    Status of every budget, in budget order.

    ``reference`` is pinned once so every budget is evaluated against
    the same instant.
    """
    reference = ensure_aware(reference) if reference is not None else utc_now()
    expenses = list(expenses)
    return [
        calculate_budget_status(budget, expenses, reference, week_start)
        for budget in budgets
    ]
