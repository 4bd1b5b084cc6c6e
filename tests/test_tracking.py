"""
Tests for the tracking engine: period windows, aggregation, status
classification and violation detection.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from budgetwatch.models.budget import BudgetPeriod, PeriodWindow, StatusTier
from budgetwatch.tracking import (
    MONDAY,
    SUNDAY,
    aggregate_spend,
    all_budget_statuses,
    calculate_budget_status,
    category_breakdown,
    classify,
    coerce_amount,
    compute_percentage,
    describe_violation,
    detect_violations,
    monthly_breakdown,
    resolve_period,
    top_categories,
)

from conftest import REFERENCE


class TestResolvePeriod:
    """Tests for period window resolution."""

    def test_daily_window(self):
        """Test the daily window spans the reference's calendar day."""
        window = resolve_period(BudgetPeriod.DAILY, REFERENCE)
        assert window.start == datetime(2024, 5, 15, tzinfo=timezone.utc)
        assert window.end == datetime.combine(date(2024, 5, 15), time.max, tzinfo=timezone.utc)

    def test_weekly_window_starts_on_sunday(self):
        """Test the default week runs Sunday through Saturday."""
        window = resolve_period(BudgetPeriod.WEEKLY, REFERENCE)
        assert window.start.date() == date(2024, 5, 12)
        assert window.end.date() == date(2024, 5, 18)

    def test_weekly_window_with_monday_start(self):
        """Test a configurable first day of week."""
        window = resolve_period(BudgetPeriod.WEEKLY, REFERENCE, week_start=MONDAY)
        assert window.start.date() == date(2024, 5, 13)
        assert window.end.date() == date(2024, 5, 19)

    def test_weekly_window_on_week_start_day(self):
        """Test a reference that falls on the first day of the week."""
        sunday = datetime(2024, 5, 12, 0, 0, tzinfo=timezone.utc)
        window = resolve_period("weekly", sunday, week_start=SUNDAY)
        assert window.start == sunday

    def test_monthly_window_in_leap_february(self):
        """Test month end accounts for leap years."""
        window = resolve_period(BudgetPeriod.MONTHLY, datetime(2024, 2, 10, tzinfo=timezone.utc))
        assert window.start.date() == date(2024, 2, 1)
        assert window.end.date() == date(2024, 2, 29)

    def test_yearly_window(self):
        """Test the yearly window covers the calendar year."""
        window = resolve_period(BudgetPeriod.YEARLY, REFERENCE)
        assert window.start.date() == date(2024, 1, 1)
        assert window.end.date() == date(2024, 12, 31)
        assert window.end.time() == time.max

    def test_unknown_period_resolves_as_monthly(self):
        """Test fallback for unrecognized period tags."""
        assert resolve_period("biweekly", REFERENCE) == resolve_period("monthly", REFERENCE)

    def test_window_uses_reference_timezone(self):
        """Test the window follows the reference's wall clock."""
        paris = ZoneInfo("Europe/Paris")
        reference = datetime(2024, 5, 31, 23, 30, tzinfo=paris)
        window = resolve_period(BudgetPeriod.MONTHLY, reference)
        assert window.start == datetime(2024, 5, 1, tzinfo=paris)
        # 23:30 Paris is 21:30 UTC, still May in both zones
        assert window.contains(datetime(2024, 5, 31, 21, 30, tzinfo=timezone.utc))
        assert not window.contains(datetime(2024, 5, 31, 22, 30, tzinfo=timezone.utc))

    @pytest.mark.parametrize("period", list(BudgetPeriod))
    @pytest.mark.parametrize("reference", [
        datetime(2024, 1, 1, 0, 0, tzinfo=timezone.utc),
        datetime(2024, 2, 29, 23, 59, 59, 999999, tzinfo=timezone.utc),
        datetime(2024, 12, 31, 12, 0, tzinfo=ZoneInfo("America/New_York")),
        REFERENCE,
    ])
    def test_window_contains_reference(self, period, reference):
        """Test start <= reference <= end for every period."""
        window = resolve_period(period, reference)
        assert window.start <= reference <= window.end

    def test_naive_reference_is_utc(self):
        """Test that a naive reference is read as UTC."""
        window = resolve_period(BudgetPeriod.DAILY, datetime(2024, 5, 15, 8, 0))
        assert window.start.tzinfo == timezone.utc


class TestAggregation:
    """Tests for amount coercion and spend aggregation."""

    @pytest.mark.parametrize("value, expected", [
        (Decimal("12.50"), Decimal("12.50")),
        ("7", Decimal("7")),
        (3, Decimal("3")),
        (Decimal("NaN"), Decimal("0")),
        (Decimal("Infinity"), Decimal("0")),
        (Decimal("-4"), Decimal("0")),
        ("abc", Decimal("0")),
        (None, Decimal("0")),
        (True, Decimal("0")),
    ])
    def test_coerce_amount(self, value, expected):
        """Test unusable amounts count as zero."""
        assert coerce_amount(value) == expected

    def test_aggregate_filters_category_and_window(self, make_expense):
        """Test only matching category inside the window is summed."""
        window = resolve_period(BudgetPeriod.MONTHLY, REFERENCE)
        expenses = [
            make_expense("Food", "10"),
            make_expense("Food", "15.5"),
            make_expense("Travel", "100"),
            make_expense("Food", "99", date=REFERENCE - timedelta(days=40)),
        ]
        summary = aggregate_spend(expenses, window, "Food")
        assert summary.spent == Decimal("25.5")
        assert summary.count == 2

    def test_category_match_is_case_sensitive(self, make_expense):
        """Test that 'food' does not count toward 'Food'."""
        window = resolve_period(BudgetPeriod.MONTHLY, REFERENCE)
        summary = aggregate_spend([make_expense("food", "10")], window, "Food")
        assert summary.spent == Decimal("0")
        assert summary.count == 0

    def test_invalid_amounts_count_but_add_nothing(self, make_expense):
        """Test NaN and negative amounts are matched but contribute zero."""
        window = resolve_period(BudgetPeriod.MONTHLY, REFERENCE)
        expenses = [
            make_expense("Food", "oops"),
            make_expense("Food", "-20"),
            make_expense("Food", "5"),
        ]
        summary = aggregate_spend(expenses, window, "Food")
        assert summary.spent == Decimal("5")
        assert summary.count == 3

    def test_aggregation_is_order_independent(self, make_expense):
        """Test permuting the collection does not change the result."""
        window = resolve_period(BudgetPeriod.MONTHLY, REFERENCE)
        expenses = [make_expense("Food", amount) for amount in ("1.10", "2.20", "bad", "3.30")]
        forward = aggregate_spend(expenses, window, "Food")
        backward = aggregate_spend(list(reversed(expenses)), window, "Food")
        assert forward == backward
        assert forward.spent == Decimal("6.60")

    def test_empty_collection(self):
        """Test aggregation over no expenses."""
        window = resolve_period(BudgetPeriod.DAILY, REFERENCE)
        summary = aggregate_spend([], window, "Food")
        assert summary.spent == Decimal("0")
        assert summary.count == 0

    def test_category_breakdown(self, make_expense):
        """Test per-category totals, largest first, invalid amounts skipped."""
        rows = category_breakdown([
            make_expense("Food", "30"),
            make_expense("Travel", "60"),
            make_expense("Food", "10"),
            make_expense("Fun", "bad"),
        ])
        assert [row.category for row in rows] == ["Travel", "Food"]
        assert rows[1].amount == Decimal("40")
        assert rows[1].count == 2
        assert rows[0].percentage == Decimal("60")

    def test_top_categories(self, make_expense):
        """Test the breakdown is cut to the largest rows."""
        expenses = [
            make_expense("Food", "30"),
            make_expense("Travel", "60"),
            make_expense("Fun", "5"),
        ]
        assert [row.category for row in top_categories(expenses, limit=2)] == ["Travel", "Food"]
        assert top_categories(expenses, limit=0) == []

    def test_monthly_breakdown_fills_gaps(self, make_expense):
        """Test every month in range gets a row, empty ones at zero."""
        rows = monthly_breakdown([
            make_expense("Food", "20", date=REFERENCE),
            make_expense("Food", "30", date=datetime(2024, 3, 10, tzinfo=timezone.utc)),
            make_expense("Rent", "-5", date=datetime(2024, 1, 20, tzinfo=timezone.utc)),
            make_expense("Food", "10", date=datetime(2024, 5, 2, tzinfo=timezone.utc)),
            make_expense("Fun", "bad", date=datetime(2024, 4, 2, tzinfo=timezone.utc)),
        ])

        assert [row.month for row in rows] == [date(2024, m, 1) for m in range(1, 6)]
        assert [row.amount for row in rows] == [
            Decimal("0"), Decimal("0"), Decimal("30"), Decimal("0"), Decimal("30"),
        ]
        assert [row.count for row in rows] == [0, 0, 1, 0, 2]
        assert rows[-1].label == "May 2024"

    def test_monthly_breakdown_edges(self, make_expense):
        """Test empty input, year rollover and timezone-shifted months."""
        assert monthly_breakdown([]) == []

        rows = monthly_breakdown([
            make_expense(date=datetime(2023, 12, 31, tzinfo=timezone.utc)),
            make_expense(date=datetime(2024, 2, 1, tzinfo=timezone.utc)),
        ])
        assert [row.month for row in rows] == \
            [date(2023, 12, 1), date(2024, 1, 1), date(2024, 2, 1)]

        late = make_expense(date=datetime(2024, 5, 31, 23, 30, tzinfo=timezone.utc))
        [row] = monthly_breakdown([late], tz=ZoneInfo("Europe/Paris"))
        assert row.month == date(2024, 6, 1)


class TestStatus:
    """Tests for percentage, tier classification and budget status."""

    def test_compute_percentage(self):
        """Test percentage of limit."""
        assert compute_percentage(Decimal("45"), Decimal("60")) == Decimal("75")
        assert compute_percentage(Decimal("10"), Decimal("0")) == Decimal("0")

    @pytest.mark.parametrize("spent, tier", [
        ("0", StatusTier.SAFE),
        ("74.99", StatusTier.SAFE),
        ("75", StatusTier.WARNING),
        ("89.99", StatusTier.WARNING),
        ("90", StatusTier.DANGER),
        ("100", StatusTier.DANGER),
        ("100.01", StatusTier.EXCEEDED),
    ])
    def test_tier_boundaries(self, spent, tier):
        """Test tier thresholds against a limit of 100."""
        assert classify(Decimal(spent), Decimal("100")) == tier

    def test_status_for_budget(self, make_budget, make_expense):
        """Test a 70 + 10 spend on a 100 limit is a warning."""
        budget = make_budget("Food", "100")
        expenses = [make_expense("Food", "70"), make_expense("Food", "10")]
        status = calculate_budget_status(budget, expenses, REFERENCE)
        assert status.spent == Decimal("80")
        assert status.remaining == Decimal("20")
        assert status.percentage == Decimal("80")
        assert status.count == 2
        assert not status.exceeded
        assert status.status == StatusTier.WARNING

    def test_status_with_no_expenses(self, make_budget):
        """Test an untouched budget is safe at zero."""
        status = calculate_budget_status(make_budget(), [], REFERENCE)
        assert status.spent == Decimal("0")
        assert status.percentage == Decimal("0")
        assert status.status == StatusTier.SAFE

    def test_status_only_counts_current_period(self, make_budget, make_expense):
        """Test a weekly budget ignores last week's spend."""
        budget = make_budget("Food", "50", BudgetPeriod.WEEKLY)
        expenses = [
            make_expense("Food", "40", date=REFERENCE - timedelta(days=7)),
            make_expense("Food", "5"),
        ]
        status = calculate_budget_status(budget, expenses, REFERENCE)
        assert status.spent == Decimal("5")
        assert isinstance(status.window, PeriodWindow)

    def test_all_statuses_keep_budget_order(self, make_budget, make_expense):
        """Test all_budget_statuses returns one status per budget, in order."""
        budgets = [make_budget("Travel", "200"), make_budget("Food", "100")]
        statuses = all_budget_statuses(budgets, [make_expense("Food", "95")], REFERENCE)
        assert [s.budget.category for s in statuses] == ["Travel", "Food"]
        assert statuses[1].status == StatusTier.DANGER

    def test_status_is_deterministic(self, make_budget, make_expense):
        """Test recomputation with the same inputs gives the same result."""
        budgets = [make_budget("Food", "100")]
        expenses = [make_expense("Food", "33")]
        assert all_budget_statuses(budgets, expenses, REFERENCE) == \
            all_budget_statuses(budgets, expenses, REFERENCE)


class TestViolations:
    """Tests for violation detection."""

    def test_exceeding_budget_raises_alert(self, make_budget, make_expense):
        """Test 80 existing + 25 candidate against 100 raises one exceeded alert."""
        budget = make_budget("Food", "100")
        alerts = detect_violations(
            [budget],
            [make_expense("Food", "80")],
            make_expense("Food", "25"),
            now=REFERENCE,
        )
        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.budget_id == budget.id
        assert alert.spent == Decimal("105")
        assert alert.budget_amount == Decimal("100")
        assert alert.percentage == Decimal("105")
        assert alert.exceeded
        assert alert.created_at == REFERENCE

    def test_below_threshold_raises_nothing(self, make_budget, make_expense):
        """Test 50 + 20 against 100 raises no alert."""
        alerts = detect_violations(
            [make_budget("Food", "100")],
            [make_expense("Food", "50")],
            make_expense("Food", "20"),
            now=REFERENCE,
        )
        assert alerts == []

    def test_warning_tier_raises_nothing(self, make_budget, make_expense):
        """Test reaching 90% is a status tier, not an alert."""
        alerts = detect_violations(
            [make_budget("Food", "100")],
            [make_expense("Food", "80")],
            make_expense("Food", "15"),
            now=REFERENCE,
        )
        assert alerts == []

    def test_exactly_at_limit_raises_non_exceeded_alert(self, make_budget, make_expense):
        """Test hitting 100% exactly alerts without marking it exceeded."""
        alerts = detect_violations(
            [make_budget("Food", "100")],
            [make_expense("Food", "60")],
            make_expense("Food", "40"),
            now=REFERENCE,
        )
        assert len(alerts) == 1
        assert not alerts[0].exceeded
        assert alerts[0].percentage == Decimal("100")

    def test_one_alert_per_matching_budget(self, make_budget, make_expense):
        """Test every violated budget for the category alerts."""
        budgets = [
            make_budget("Food", "20", BudgetPeriod.DAILY),
            make_budget("Food", "1000", BudgetPeriod.MONTHLY),
            make_budget("Travel", "1"),
        ]
        alerts = detect_violations(budgets, [], make_expense("Food", "25"), now=REFERENCE)
        assert [a.budget_id for a in alerts] == [budgets[0].id]

    def test_window_is_taken_at_now(self, make_budget, make_expense):
        """Test the candidate's own date does not move the window."""
        budget = make_budget("Food", "100")
        last_month = REFERENCE - timedelta(days=40)
        alerts = detect_violations(
            [budget],
            [make_expense("Food", "90")],
            make_expense("Food", "20", date=last_month),
            now=REFERENCE,
        )
        assert len(alerts) == 1
        assert alerts[0].spent == Decimal("110")

    def test_invalid_candidate_amount_counts_as_zero(self, make_budget, make_expense):
        """Test a NaN candidate amount adds nothing."""
        alerts = detect_violations(
            [make_budget("Food", "100")],
            [make_expense("Food", "99")],
            make_expense("Food", "nope"),
            now=REFERENCE,
        )
        assert alerts == []

    def test_describe_exceeded(self, make_budget, make_expense):
        """Test the over-limit warning message."""
        alert = detect_violations(
            [make_budget("Food", "100")],
            [make_expense("Food", "80")],
            make_expense("Food", "25"),
            now=REFERENCE,
        )[0]
        assert describe_violation(alert) == "This will exceed your Food budget by $5.00!"

    def test_describe_at_limit(self, make_budget, make_expense):
        """Test the at-limit warning message."""
        alert = detect_violations(
            [make_budget("Food", "100")],
            [],
            make_expense("Food", "100"),
            now=REFERENCE,
        )[0]
        assert describe_violation(alert) == "This will put you at 100.0% of your Food budget!"
