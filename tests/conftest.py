"""
Shared fixtures for budgetwatch tests.

Every test gets its own in-memory storage and audit logger, so nothing
leaks between tests and no files are written.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from budgetwatch.audit import AuditLogger
from budgetwatch.config import AppSettings
from budgetwatch.ledgers import BudgetLedger, ExpenseLedger
from budgetwatch.models.budget import Budget, BudgetPeriod
from budgetwatch.models.expense import Expense
from budgetwatch.orchestrator import BudgetTracker
from budgetwatch.services.storage import InMemoryStorage
from budgetwatch.sync import QueryCache
from budgetwatch.validation import DraftValidator


# Wednesday
REFERENCE = datetime(2024, 5, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def audit_logger():
    return AuditLogger(name="budgetwatch.test")


@pytest.fixture
def make_expense():
    """Factory for expenses dated at the shared reference instant."""

    def _make(category="Food", amount="10", date=REFERENCE, **kwargs):
        return Expense(
            title=kwargs.pop("title", f"{category} purchase"),
            category=category,
            amount=amount,
            date=date,
            **kwargs,
        )

    return _make


@pytest.fixture
def make_budget():
    def _make(category="Food", amount="100", period=BudgetPeriod.MONTHLY, **kwargs):
        return Budget(category=category, amount=Decimal(amount), period=period, **kwargs)

    return _make


@pytest.fixture
def expense_ledger(storage, audit_logger):
    return ExpenseLedger(storage, "expenses.v1", audit_logger)


@pytest.fixture
def budget_ledger(storage, audit_logger):
    return BudgetLedger(storage, "budgets.v1", audit_logger)


@pytest.fixture
def make_tracker(storage, audit_logger):
    """Factory for trackers sharing the test's storage."""

    def _make(**kwargs):
        return BudgetTracker(
            expense_ledger=ExpenseLedger(storage, "expenses.v1", audit_logger),
            budget_ledger=BudgetLedger(storage, "budgets.v1", audit_logger),
            cache=QueryCache(refetch_latency=0.01),
            validator=DraftValidator(AppSettings()),
            audit_logger=audit_logger,
            tzinfo=timezone.utc,
            **kwargs,
        )

    return _make


@pytest.fixture
def tracker(make_tracker):
    """An uninitialized tracker; tests await ``initialize()`` themselves."""
    return make_tracker()
