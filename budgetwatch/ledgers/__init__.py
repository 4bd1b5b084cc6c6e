"""Ledgers: persisted in-memory collections of expenses and budgets."""

from budgetwatch.ledgers.base import (
    SNAPSHOT_VERSION,
    DuplicateRecordError,
    LedgerError,
    LedgerNotHydratedError,
    PersistedLedger,
)
from budgetwatch.ledgers.budgets import BudgetLedger
from budgetwatch.ledgers.expenses import ExpenseLedger

__all__ = [
    "SNAPSHOT_VERSION",
    "BudgetLedger",
    "DuplicateRecordError",
    "ExpenseLedger",
    "LedgerError",
    "LedgerNotHydratedError",
    "PersistedLedger",
]
