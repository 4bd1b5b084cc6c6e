"""
Period Resolver

Maps a budget period and a reference instant to the inclusive window
of "the current cycle".

The window is computed on the reference's own wall clock: a reference
in Europe/Paris gets Paris calendar days. Naive references are taken
as UTC.
"""

import calendar
from datetime import date, datetime, time, timedelta
from typing import Optional, Union

from budgetwatch.models.budget import BudgetPeriod, PeriodWindow
from budgetwatch.models.expense import ensure_aware, utc_now


# date.weekday() indices
MONDAY = 0
SUNDAY = 6


def _day_bounds(first: date, last: date, tzinfo) -> PeriodWindow:
    return PeriodWindow(
        start=datetime.combine(first, time.min, tzinfo=tzinfo),
        end=datetime.combine(last, time.max, tzinfo=tzinfo),
    )


def resolve_period(
    period: Union[BudgetPeriod, str],
    reference: Optional[datetime] = None,
    week_start: int = SUNDAY,
) -> PeriodWindow:
    """
    Compute the inclusive window of the period containing ``reference``.

    Args:
        period: Period tag; unknown values fall back to monthly
        reference: Instant inside the wanted period (defaults to now)
        week_start: First day of week as a ``date.weekday()`` index

    Returns:
        PeriodWindow whose ``end`` is the last microsecond of the period
    """
    reference = ensure_aware(reference) if reference is not None else utc_now()
    period = BudgetPeriod.parse(period)
    day = reference.date()

    if period == BudgetPeriod.DAILY:
        first, last = day, day
    elif period == BudgetPeriod.WEEKLY:
        first = day - timedelta(days=(day.weekday() - week_start) % 7)
        last = first + timedelta(days=6)
    elif period == BudgetPeriod.YEARLY:
        first, last = date(day.year, 1, 1), date(day.year, 12, 31)
    else:
        days_in_month = calendar.monthrange(day.year, day.month)[1]
        first, last = day.replace(day=1), day.replace(day=days_in_month)

    return _day_bounds(first, last, reference.tzinfo)
