"""
Data Models Package

This package contains all Pydantic models used in budgetwatch.
All data flowing through the ledgers must conform to these schemas.
"""

from budgetwatch.models.expense import (
    Expense,
    ExpenseSortKey,
    ensure_aware,
    new_record_id,
    utc_now,
)
from budgetwatch.models.budget import (
    Budget,
    BudgetAlert,
    BudgetPeriod,
    BudgetStatus,
    CategoryTotal,
    MonthlyTotal,
    PeriodWindow,
    SpendSummary,
    StatusTier,
)
from budgetwatch.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from budgetwatch.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # Expense models
    "Expense",
    "ExpenseSortKey",
    "ensure_aware",
    "new_record_id",
    "utc_now",
    # Budget models
    "Budget",
    "BudgetAlert",
    "BudgetPeriod",
    "BudgetStatus",
    "CategoryTotal",
    "MonthlyTotal",
    "PeriodWindow",
    "SpendSummary",
    "StatusTier",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
