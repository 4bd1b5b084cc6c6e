"""
Expense Ledger

Owns the collection of expense records. Newest additions come first.
"""

from typing import Any, Iterable, Optional

from budgetwatch.ledgers.base import DuplicateRecordError, PersistedLedger
from budgetwatch.models.audit import AuditEventType
from budgetwatch.models.expense import Expense, ExpenseSortKey


def sort_expenses(
    expenses: Iterable[Expense],
    key: ExpenseSortKey = ExpenseSortKey.DATE,
    descending: bool = True,
) -> list[Expense]:
    """Order expenses by date, or by category (case-insensitive) then date."""
    if key == ExpenseSortKey.CATEGORY:
        sort_key = lambda e: (e.category.lower(), e.date)
    else:
        sort_key = lambda e: e.date
    return sorted(expenses, key=sort_key, reverse=descending)


class ExpenseLedger(PersistedLedger):
    """Persisted, in-memory collection of expenses."""

    entity_type = "expense"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._expenses: list[Expense] = []

    def _load_state(self, state: dict[str, Any]) -> int:
        self._expenses = self._parse_records(state.get("expenses"), Expense, "expenses")
        return len(self._expenses)

    def _dump_state(self) -> dict[str, Any]:
        return {"expenses": [expense.to_snapshot() for expense in self._expenses]}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def expenses(self) -> list[Expense]:
        """Snapshot of the current collection (a new list every call)."""
        return list(self._expenses)

    def __len__(self) -> int:
        return len(self._expenses)

    def get(self, expense_id: str) -> Optional[Expense]:
        for expense in self._expenses:
            if expense.id == expense_id:
                return expense
        return None

    def sorted(
        self,
        key: ExpenseSortKey = ExpenseSortKey.DATE,
        descending: bool = True,
    ) -> list[Expense]:
        return sort_expenses(self._expenses, ExpenseSortKey(key), descending)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add(self, expense: Expense) -> Expense:
        self._require_hydrated()
        if self.get(expense.id) is not None:
            raise DuplicateRecordError(f"Expense already exists: {expense.id}")

        self._expenses = [expense, *self._expenses]
        self._commit(
            AuditEventType.EXPENSE_ADDED,
            self.entity_type,
            expense.id,
            f"Expense added: {expense.category} {expense.amount}",
            {"count": len(self._expenses)},
        )
        return expense

    def update(self, expense: Expense) -> bool:
        """
        Replace the expense with the same id, keeping its position.

        Returns False if no such expense exists.
        """
        self._require_hydrated()
        for index, existing in enumerate(self._expenses):
            if existing.id == expense.id:
                break
        else:
            return False

        updated = list(self._expenses)
        updated[index] = expense
        self._expenses = updated
        self._commit(
            AuditEventType.EXPENSE_UPDATED,
            self.entity_type,
            expense.id,
            f"Expense updated: {expense.category} {expense.amount}",
        )
        return True

    def remove(self, expense_id: str) -> bool:
        self._require_hydrated()
        remaining = [e for e in self._expenses if e.id != expense_id]
        if len(remaining) == len(self._expenses):
            return False

        self._expenses = remaining
        self._commit(
            AuditEventType.EXPENSE_REMOVED,
            self.entity_type,
            expense_id,
            "Expense removed",
            {"count": len(self._expenses)},
        )
        return True

    def clear(self) -> None:
        self._require_hydrated()
        removed = len(self._expenses)
        self._expenses = []
        self._commit(
            AuditEventType.EXPENSES_CLEARED,
            self.entity_type,
            None,
            "All expenses cleared",
            {"removed": removed},
        )
