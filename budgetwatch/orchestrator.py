"""
Main Orchestrator for budgetwatch

This module ties together the ledgers, the tracking engine and the read
cache, and defines the read/write contract presentation code calls into:

1. Expense mutation (draft -> validate -> detect violations -> insert -> alerts)
2. Budget mutation (draft -> validate -> apply)
3. Reads (ledger lists, alerts, derived budget statuses)

DESIGN DECISION: The orchestrator enforces the ordering rules:
- Violation detection reads the expense collection BEFORE the new
  expense is inserted, so the candidate is never counted twice
- Alerts are appended to the budget ledger after the expense is stored
- Persistence and cache refresh run in the background and never fail a
  mutation
"""

from datetime import datetime
from typing import Optional, Union

import structlog

from budgetwatch.audit import AuditLogger, configure_logging, get_audit_logger
from budgetwatch.config import Settings, get_settings
from budgetwatch.ledgers import BudgetLedger, ExpenseLedger, LedgerNotHydratedError
from budgetwatch.ledgers.expenses import sort_expenses
from budgetwatch.models.budget import Budget, BudgetAlert, BudgetStatus
from budgetwatch.models.expense import Expense, ExpenseSortKey
from budgetwatch.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    SnapshotStorageInterface,
)
from budgetwatch.sync import CacheStrategy, QueryCache, QueryKey, SyncLayer
from budgetwatch.tracking import SUNDAY, all_budget_statuses, detect_violations
from budgetwatch.validation import (
    BudgetDraft,
    DraftRejectedError,
    DraftValidator,
    ExpenseDraft,
)


class RecordNotFoundError(LookupError):
    """No expense or budget with the requested id."""

    def __init__(self, entity_type: str, record_id: str):
        self.entity_type = entity_type
        self.record_id = record_id
        super().__init__(f"{entity_type.capitalize()} not found: {record_id}")


class BudgetTracker:
    """
    Facade over the expense ledger, the budget ledger and the read cache.

    Call ``initialize()`` once at process start before anything else.
    """

    def __init__(
        self,
        expense_ledger: ExpenseLedger,
        budget_ledger: BudgetLedger,
        cache: Optional[QueryCache] = None,
        validator: Optional[DraftValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
        strategy: CacheStrategy = CacheStrategy.INVALIDATE,
        week_start: int = SUNDAY,
        tzinfo=None,
        recheck_on_update: bool = True,
    ):
        self._expenses = expense_ledger
        self._budgets = budget_ledger
        self._cache = cache or QueryCache()
        self._sync = SyncLayer(self._cache, expense_ledger, budget_ledger, strategy)
        self._validator = validator or DraftValidator()
        self._audit = audit_logger or get_audit_logger()
        self._week_start = week_start
        self._tzinfo = tzinfo
        self._recheck_on_update = recheck_on_update
        self._logger = structlog.get_logger(__name__)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def expense_ledger(self) -> ExpenseLedger:
        return self._expenses

    @property
    def budget_ledger(self) -> BudgetLedger:
        return self._budgets

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def hydrated(self) -> bool:
        return self._expenses.hydrated and self._budgets.hydrated

    @property
    def persistence_degraded(self) -> bool:
        """True when the latest write of either ledger failed."""
        return self._expenses.persistence_degraded or self._budgets.persistence_degraded

    async def initialize(self) -> None:
        """Hydrate both ledgers and attach the read cache. Idempotent."""
        await self._expenses.initialize()
        await self._budgets.initialize()
        self._sync.attach()
        self._logger.info(
            "tracker_initialized",
            expenses=len(self._expenses),
            budgets=len(self._budgets.budgets),
            alerts=len(self._budgets.alerts),
        )

    async def flush(self) -> None:
        """Wait for pending snapshot writes and cache refetches."""
        await self._expenses.flush()
        await self._budgets.flush()
        await self._cache.settle()

    def _require_initialized(self) -> None:
        if not self.hydrated:
            raise LedgerNotHydratedError("BudgetTracker.initialize() has not completed")

    def _now(self) -> datetime:
        return datetime.now(self._tzinfo) if self._tzinfo else datetime.now().astimezone()

    def _validated(self, result) -> dict:
        if not result.is_valid:
            self._audit.log_draft_rejected(
                result.entity_type,
                [issue.model_dump() for issue in result.issues],
            )
            raise DraftRejectedError(result)
        return result.cleaned

    # ------------------------------------------------------------------
    # Expenses
    # ------------------------------------------------------------------

    async def list_expenses(
        self,
        sort_key: Optional[Union[ExpenseSortKey, str]] = None,
        descending: bool = True,
    ) -> list[Expense]:
        """Expenses through the read cache, optionally sorted."""
        self._require_initialized()
        expenses = await self._cache.fetch(QueryKey.EXPENSES.value)
        if sort_key is None:
            return list(expenses)
        return sort_expenses(expenses, ExpenseSortKey(sort_key), descending)

    def preview_expense(self, draft: ExpenseDraft) -> list[BudgetAlert]:
        """
        Alerts that adding ``draft`` would raise, without recording anything.

        Returns an empty list for drafts that would not pass validation.
        """
        self._require_initialized()
        result = self._validator.validate_expense(draft)
        if not result.is_valid:
            return []
        candidate = Expense(**result.cleaned)
        return detect_violations(
            self._budgets.budgets,
            self._expenses.expenses,
            candidate,
            now=self._now(),
            week_start=self._week_start,
        )

    async def add_expense(self, draft: ExpenseDraft) -> tuple[Expense, list[BudgetAlert]]:
        """
        Record a new expense and any alerts it triggers.

        Raises:
            DraftRejectedError: If the draft fails validation
        """
        self._require_initialized()
        expense = Expense(**self._validated(self._validator.validate_expense(draft)))

        # Read BEFORE insert: the candidate must not count toward its own total
        existing = self._expenses.expenses
        alerts = detect_violations(
            self._budgets.budgets,
            existing,
            expense,
            now=self._now(),
            week_start=self._week_start,
        )

        self._expenses.add(expense)
        self._budgets.add_alerts(alerts)
        return expense, alerts

    async def update_expense(
        self,
        expense_id: str,
        draft: ExpenseDraft,
    ) -> tuple[Expense, list[BudgetAlert]]:
        """
        Replace an expense's fields, keeping its id.

        Violation detection is re-run (unless disabled) against the other
        expenses, so the old version of this expense is not counted.

        Raises:
            DraftRejectedError: If the draft fails validation
            RecordNotFoundError: If the expense does not exist
        """
        self._require_initialized()
        if self._expenses.get(expense_id) is None:
            raise RecordNotFoundError("expense", expense_id)

        cleaned = self._validated(self._validator.validate_expense(draft))
        expense = Expense(id=expense_id, **cleaned)

        alerts: list[BudgetAlert] = []
        if self._recheck_on_update:
            others = [e for e in self._expenses.expenses if e.id != expense_id]
            alerts = detect_violations(
                self._budgets.budgets,
                others,
                expense,
                now=self._now(),
                week_start=self._week_start,
            )

        self._expenses.update(expense)
        self._budgets.add_alerts(alerts)
        return expense, alerts

    async def remove_expense(self, expense_id: str) -> None:
        self._require_initialized()
        if not self._expenses.remove(expense_id):
            raise RecordNotFoundError("expense", expense_id)

    async def clear_expenses(self) -> None:
        self._require_initialized()
        self._expenses.clear()

    # ------------------------------------------------------------------
    # Budgets
    # ------------------------------------------------------------------

    async def list_budgets(self) -> list[Budget]:
        self._require_initialized()
        return list(await self._cache.fetch(QueryKey.BUDGETS.value))

    async def add_budget(self, draft: BudgetDraft) -> Budget:
        """
        Create a budget.

        Raises:
            DraftRejectedError: If the draft fails validation
        """
        self._require_initialized()
        cleaned = self._validated(self._validator.validate_budget(draft))
        return self._budgets.add(**cleaned)

    async def update_budget(self, budget_id: str, draft: BudgetDraft) -> Budget:
        """
        Overwrite a budget's category, limit and period (last write wins).

        Raises:
            DraftRejectedError: If the draft fails validation
            RecordNotFoundError: If the budget does not exist
        """
        self._require_initialized()
        if self._budgets.get(budget_id) is None:
            raise RecordNotFoundError("budget", budget_id)
        cleaned = self._validated(self._validator.validate_budget(draft))
        return self._budgets.update(budget_id, **cleaned)

    async def remove_budget(self, budget_id: str) -> None:
        """Delete a budget. Alerts raised against it are kept."""
        self._require_initialized()
        if not self._budgets.remove(budget_id):
            raise RecordNotFoundError("budget", budget_id)

    async def clear_budgets(self) -> None:
        """Delete every budget. Alerts are kept."""
        self._require_initialized()
        self._budgets.clear()

    # ------------------------------------------------------------------
    # Alerts & statuses
    # ------------------------------------------------------------------

    async def list_alerts(self) -> list[BudgetAlert]:
        self._require_initialized()
        return list(await self._cache.fetch(QueryKey.ALERTS.value))

    async def clear_alerts(self) -> None:
        self._require_initialized()
        self._budgets.clear_alerts()

    def get_budget_statuses(
        self,
        reference: Optional[datetime] = None,
    ) -> list[BudgetStatus]:
        """
        Status of every budget for the period containing ``reference``.

        Computed from the ledgers directly (never from the cache), so the
        result always reflects every mutation made so far.
        """
        self._require_initialized()
        return all_budget_statuses(
            self._budgets.budgets,
            self._expenses.expenses,
            reference or self._now(),
            self._week_start,
        )


def create_storage(settings: Optional[Settings] = None) -> SnapshotStorageInterface:
    """Build the configured snapshot storage backend."""
    storage_settings = (settings or get_settings()).storage
    if storage_settings.backend == "memory":
        return InMemoryStorage()
    return JsonFileStorage(storage_settings.data_dir)


def create_app_components(
    settings: Optional[Settings] = None,
    storage: Optional[SnapshotStorageInterface] = None,
) -> BudgetTracker:
    """
    Factory function to build a tracker from settings.

    Args:
        settings: Settings to use (defaults to the cached global settings)
        storage: Storage backend override (e.g. InMemoryStorage in tests)

    Returns:
        An uninitialized BudgetTracker; the caller awaits ``initialize()``
    """
    settings = settings or get_settings()
    configure_logging(settings.app.log_level)

    storage = storage or create_storage(settings)
    audit_logger = get_audit_logger()
    tracking = settings.tracking
    sync = settings.sync

    expense_ledger = ExpenseLedger(storage, settings.storage.expenses_key, audit_logger)
    budget_ledger = BudgetLedger(storage, settings.storage.budgets_key, audit_logger)
    cache = QueryCache(
        refetch_latency=sync.refetch_latency,
        stale_time=sync.stale_time_seconds,
    )

    return BudgetTracker(
        expense_ledger=expense_ledger,
        budget_ledger=budget_ledger,
        cache=cache,
        validator=DraftValidator(settings.app),
        audit_logger=audit_logger,
        strategy=CacheStrategy(sync.strategy),
        week_start=tracking.week_start_index,
        tzinfo=tracking.tzinfo,
        recheck_on_update=tracking.recheck_on_update,
    )
