"""
Form-Boundary Validation

DESIGN DECISION: Drafts coming from a form are checked here, before
anything reaches a ledger.

- Errors (empty category, unparsable or non-positive amount, invalid
  date, unknown period) reject the draft. It is never persisted.
- Warnings (far-future date) are reported but do not block.

IMPORTANT: Validation NEVER silently fixes issues beyond trimming
whitespace. It reports them for the user to correct.
"""

from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from budgetwatch.config import AppSettings, get_settings
from budgetwatch.models.budget import BudgetPeriod
from budgetwatch.models.expense import ensure_aware, utc_now
from budgetwatch.models.validation import ValidationIssue, ValidationResult


class ExpenseDraft(BaseModel):
    """Raw expense fields as entered in a form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = ""
    category: str = ""
    amount: Any = None
    date: Any = None
    note: Optional[str] = None


class BudgetDraft(BaseModel):
    """Raw budget fields as entered in a form."""
    model_config = ConfigDict(str_strip_whitespace=True)

    category: str = ""
    amount: Any = None
    period: Any = BudgetPeriod.MONTHLY.value


class DraftRejectedError(ValueError):
    """A draft failed validation and was not applied."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__(result.summary() or f"Invalid {result.entity_type}")


def _parse_amount(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    return amount if amount.is_finite() else None


def _parse_date(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return ensure_aware(value)
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            return ensure_aware(datetime.fromisoformat(value.strip().replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


class DraftValidator:
    """Validates expense and budget drafts."""

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _check_amount(self, value: Any, issues: list[ValidationIssue]) -> Optional[Decimal]:
        amount = _parse_amount(value)
        if amount is None:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_format",
                message="Please enter a valid amount",
                suggested_fix="Use a plain number such as 12.50",
            ))
        elif amount <= 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="invalid_value",
                message="Amount must be greater than zero",
            ))
            amount = None
        return amount

    def _check_category(self, value: str, issues: list[ValidationIssue]) -> None:
        if not value:
            issues.append(ValidationIssue(
                field="category",
                issue_type="missing",
                message="Please enter a category",
            ))

    def validate_expense(
        self,
        draft: ExpenseDraft,
        now: Optional[datetime] = None,
    ) -> ValidationResult:
        """
        Check an expense draft.

        A missing date means "now"; a date that cannot be parsed is an error.
        """
        now = now or utc_now()
        issues: list[ValidationIssue] = []

        if not draft.title:
            issues.append(ValidationIssue(
                field="title",
                issue_type="missing",
                message="Please enter a title",
            ))
        self._check_category(draft.category, issues)
        amount = self._check_amount(draft.amount, issues)

        if draft.date is None or draft.date == "":
            expense_date = now
        else:
            expense_date = _parse_date(draft.date)
            if expense_date is None:
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="invalid_format",
                    message="Date is not valid",
                    suggested_fix="Use an ISO date such as 2024-05-31",
                ))
            elif expense_date > now + timedelta(days=self._settings.future_date_tolerance_days):
                issues.append(ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message=f"Expense date ({expense_date.date()}) is in the future",
                    severity="warning",
                    suggested_fix="Please verify the date is correct",
                ))

        result = ValidationResult(entity_type="expense", issues=issues)
        if result.is_valid:
            result.cleaned = {
                "title": draft.title,
                "category": draft.category,
                "amount": amount,
                "date": expense_date,
                "note": draft.note or None,
            }
        return result

    def validate_budget(self, draft: BudgetDraft) -> ValidationResult:
        """Check a budget draft."""
        issues: list[ValidationIssue] = []

        self._check_category(draft.category, issues)
        amount = self._check_amount(draft.amount, issues)

        try:
            period = BudgetPeriod(str(draft.period).strip().lower())
        except ValueError:
            period = None
            issues.append(ValidationIssue(
                field="period",
                issue_type="invalid_value",
                message=f"Unknown budget period: {draft.period}",
                suggested_fix="Choose daily, weekly, monthly or yearly",
            ))

        result = ValidationResult(entity_type="budget", issues=issues)
        if result.is_valid:
            result.cleaned = {
                "category": draft.category,
                "amount": amount,
                "period": period,
            }
        return result
