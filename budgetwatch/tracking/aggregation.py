"""
Expense Aggregation

Sums expense amounts for one category inside one period window, and
builds the per-category and per-month breakdowns used for reporting.

Amounts that are not finite, negative, or not numbers at all count as
zero. They still count toward ``count``: the record matched, it just
carries no meaningful spend.
"""

from collections import defaultdict
from datetime import date, tzinfo
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from budgetwatch.models.budget import CategoryTotal, MonthlyTotal, PeriodWindow, SpendSummary
from budgetwatch.models.expense import Expense


ZERO = Decimal("0")


def coerce_amount(value: Any) -> Decimal:
    """Return ``value`` as a non-negative Decimal, or 0 if it is unusable."""
    if isinstance(value, bool):
        return ZERO
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return ZERO
    if not amount.is_finite() or amount < 0:
        return ZERO
    return amount


def aggregate_spend(
    expenses: Iterable[Expense],
    window: PeriodWindow,
    category: str,
) -> SpendSummary:
    """Total spend and match count for ``category`` within ``window``."""
    spent = ZERO
    count = 0
    for expense in expenses:
        if expense.category != category or not window.contains(expense.date):
            continue
        spent += coerce_amount(expense.amount)
        count += 1
    return SpendSummary(spent=spent, count=count)


def category_breakdown(expenses: Iterable[Expense]) -> list[CategoryTotal]:
    """
    Per-category totals across all given expenses, largest first.

    Expenses with unusable amounts are left out entirely.
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)

    for expense in expenses:
        amount = expense.amount
        if not amount.is_finite() or amount < 0:
            continue
        totals[expense.category] += amount
        counts[expense.category] += 1

    grand_total = sum(totals.values(), ZERO)
    rows = [
        CategoryTotal(
            category=category,
            amount=amount,
            count=counts[category],
            percentage=(amount / grand_total * 100) if grand_total > 0 else ZERO,
        )
        for category, amount in totals.items()
    ]
    rows.sort(key=lambda row: (-row.amount, row.category))
    return rows


def top_categories(expenses: Iterable[Expense], limit: int = 5) -> list[CategoryTotal]:
    """The ``limit`` largest rows of :func:`category_breakdown`."""
    return category_breakdown(expenses)[:max(limit, 0)]


def monthly_breakdown(
    expenses: Iterable[Expense],
    tz: Optional[tzinfo] = None,
) -> list[MonthlyTotal]:
    """
    Spend per calendar month, oldest first.

    Every month from the earliest to the latest expense gets a row, so
    gaps show up as zero. Expenses with unusable amounts still stretch
    the range but add nothing to it. Months are taken in ``tz``
    when given, otherwise in each expense's own offset.
    """
    totals: dict[date, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[date, int] = defaultdict(int)
    months: list[date] = []

    for expense in expenses:
        instant = expense.date.astimezone(tz) if tz else expense.date
        month = instant.date().replace(day=1)
        months.append(month)

        amount = expense.amount
        if not amount.is_finite() or amount < 0:
            continue
        totals[month] += amount
        counts[month] += 1

    if not months:
        return []

    rows = []
    month, last = min(months), max(months)
    while month <= last:
        rows.append(MonthlyTotal(month=month, amount=totals[month], count=counts[month]))
        month = date(month.year + month.month // 12, month.month % 12 + 1, 1)
    return rows
