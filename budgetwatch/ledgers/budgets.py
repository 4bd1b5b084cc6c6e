"""
Budget Ledger

Owns budgets and the alerts generated against them. Both live in one
snapshot record.

Deleting a budget leaves its alerts in place: alerts are historical
facts and are only ever removed by ``clear_alerts()``.
"""

from decimal import Decimal
from typing import Any, Iterable, Optional, Union

from budgetwatch.ledgers.base import DuplicateRecordError, PersistedLedger
from budgetwatch.models.audit import AuditEventType
from budgetwatch.models.budget import Budget, BudgetAlert, BudgetPeriod


EDITABLE_FIELDS = frozenset({"category", "amount", "period"})


class BudgetLedger(PersistedLedger):
    """Persisted, in-memory collection of budgets and alerts."""

    entity_type = "budget"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._budgets: list[Budget] = []
        self._alerts: list[BudgetAlert] = []

    def _load_state(self, state: dict[str, Any]) -> int:
        self._budgets = self._parse_records(state.get("budgets"), Budget, "budgets")
        self._alerts = self._parse_records(state.get("alerts"), BudgetAlert, "alerts")
        return len(self._budgets)

    def _dump_state(self) -> dict[str, Any]:
        return {
            "budgets": [budget.model_dump(mode="json") for budget in self._budgets],
            "alerts": [alert.model_dump(mode="json") for alert in self._alerts],
        }

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def budgets(self) -> list[Budget]:
        return list(self._budgets)

    @property
    def alerts(self) -> list[BudgetAlert]:
        """Alerts in the order they were raised."""
        return list(self._alerts)

    def get(self, budget_id: str) -> Optional[Budget]:
        for budget in self._budgets:
            if budget.id == budget_id:
                return budget
        return None

    def for_category(self, category: str) -> list[Budget]:
        return [budget for budget in self._budgets if budget.category == category]

    # ------------------------------------------------------------------
    # Budget mutations
    # ------------------------------------------------------------------

    def add(
        self,
        category: str,
        amount: Union[Decimal, int, float, str],
        period: Union[BudgetPeriod, str] = BudgetPeriod.MONTHLY,
    ) -> Budget:
        """Create a budget with a fresh id and timestamps."""
        self._require_hydrated()
        now = self._clock()
        budget = Budget(
            category=category,
            amount=amount,
            period=period,
            created_at=now,
            updated_at=now,
        )
        return self.insert(budget)

    def insert(self, budget: Budget) -> Budget:
        """Add an already-built budget record."""
        self._require_hydrated()
        if self.get(budget.id) is not None:
            raise DuplicateRecordError(f"Budget already exists: {budget.id}")

        self._budgets = [*self._budgets, budget]
        self._commit(
            AuditEventType.BUDGET_ADDED,
            self.entity_type,
            budget.id,
            f"Budget added: {budget.category} {budget.amount} {budget.period.value}",
        )
        return budget

    def update(self, budget_id: str, **changes: Any) -> Optional[Budget]:
        """
        Apply ``changes`` (category, amount, period) to a budget.

        Last write wins; ``updated_at`` is bumped. Returns the new record,
        or None if the budget does not exist.

        Raises:
            ValueError: For fields that cannot be edited
            pydantic.ValidationError: If the edited budget is invalid
        """
        self._require_hydrated()
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Budget fields cannot be edited: {', '.join(sorted(unknown))}")

        current = self.get(budget_id)
        if current is None:
            return None

        updated = Budget.model_validate({
            **current.model_dump(),
            **changes,
            "updated_at": self._clock(),
        })
        self._budgets = [updated if b.id == budget_id else b for b in self._budgets]
        self._commit(
            AuditEventType.BUDGET_UPDATED,
            self.entity_type,
            budget_id,
            f"Budget updated: {updated.category}",
            {"changed": sorted(changes)},
        )
        return updated

    def remove(self, budget_id: str) -> bool:
        """Delete a budget. Its alerts are kept."""
        self._require_hydrated()
        remaining = [b for b in self._budgets if b.id != budget_id]
        if len(remaining) == len(self._budgets):
            return False

        self._budgets = remaining
        self._commit(
            AuditEventType.BUDGET_REMOVED,
            self.entity_type,
            budget_id,
            "Budget removed",
        )
        return True

    def clear(self) -> None:
        """Delete every budget. Alerts are kept."""
        self._require_hydrated()
        removed = len(self._budgets)
        self._budgets = []
        self._commit(
            AuditEventType.BUDGETS_CLEARED,
            self.entity_type,
            None,
            "All budgets cleared",
            {"removed": removed},
        )

    # ------------------------------------------------------------------
    # Alerts
    # ------------------------------------------------------------------

    def add_alerts(self, alerts: Iterable[BudgetAlert]) -> list[BudgetAlert]:
        """Append alerts in one mutation (one notification, one write)."""
        self._require_hydrated()
        alerts = list(alerts)
        if not alerts:
            return []

        self._alerts = [*self._alerts, *alerts]
        for alert in alerts:
            self._audit.log_alert_raised(alert)
        self._notify()
        self._schedule_persist()
        return alerts

    def add_alert(self, alert: BudgetAlert) -> BudgetAlert:
        self.add_alerts([alert])
        return alert

    def clear_alerts(self) -> None:
        self._require_hydrated()
        removed = len(self._alerts)
        self._alerts = []
        self._commit(
            AuditEventType.ALERTS_CLEARED,
            "alert",
            None,
            "All alerts cleared",
            {"removed": removed},
        )
