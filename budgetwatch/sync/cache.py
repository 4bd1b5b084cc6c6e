"""
Read Cache / Sync Layer

A pull-through cache of ledger snapshots keyed by logical query name,
for read-mostly consumers.

DESIGN DECISION: Invalidate-then-refetch, never delta-patch.
- A ledger mutation marks the affected keys stale and schedules a refetch
- A refetch waits (simulated latency) and THEN reads the ledger, so it
  always resolves to the state at resolution time, not at invalidation
  time
- Concurrent refetches of one key share a single task

The cache is eventually consistent with the ledgers. Anything that needs
the exact current state reads the ledger itself.
"""

import asyncio
import time
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from budgetwatch.ledgers import BudgetLedger, ExpenseLedger, PersistedLedger


class QueryKey(str, Enum):
    """Logical queries served by the cache."""
    EXPENSES = "expenses"
    BUDGETS = "budgets"
    ALERTS = "budget-alerts"


class CacheStrategy(str, Enum):
    """How the sync layer reacts to a ledger mutation."""
    INVALIDATE = "invalidate"  # mark stale + background refetch
    EAGER = "eager"            # overwrite with the new in-memory state


class UnknownQueryError(KeyError):
    """No fetcher registered for a query key."""
    pass


class _Entry:
    __slots__ = ("data", "updated_at", "invalidated")

    def __init__(self, data: Any, updated_at: float):
        self.data = data
        self.updated_at = updated_at
        self.invalidated = False


class QueryCache:
    """Query-keyed cache with asynchronous refetch."""

    def __init__(
        self,
        refetch_latency: float = 0.05,
        stale_time: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._refetch_latency = refetch_latency
        self._stale_time = stale_time
        self._clock = clock
        self._fetchers: dict[str, Callable[[], Any]] = {}
        self._entries: dict[str, _Entry] = {}
        self._inflight: dict[str, asyncio.Task] = {}
        self._logger = structlog.get_logger(__name__)

    def register(self, key: str, fetcher: Callable[[], Any]) -> None:
        """Declare how to (re)read the data behind ``key``."""
        self._fetchers[key] = fetcher

    def get_query_data(self, key: str) -> Optional[Any]:
        """Cached data for ``key`` (possibly stale), or None."""
        entry = self._entries.get(key)
        return entry.data if entry is not None else None

    def set_query_data(self, key: str, data: Any) -> None:
        self._entries[key] = _Entry(data, self._clock())

    def is_stale(self, key: str) -> bool:
        entry = self._entries.get(key)
        if entry is None or entry.invalidated:
            return True
        return self._clock() - entry.updated_at > self._stale_time

    def is_fetching(self, key: str) -> bool:
        task = self._inflight.get(key)
        return task is not None and not task.done()

    def invalidate(self, key: str) -> Optional[asyncio.Task]:
        """
        Mark ``key`` stale and start a background refetch.

        Returns the refetch task, or None when no event loop is running
        (the next ``fetch`` refetches instead).
        """
        entry = self._entries.get(key)
        if entry is not None:
            entry.invalidated = True

        if key not in self._fetchers:
            return None
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return None
        return self._start_refetch(key)

    def _start_refetch(self, key: str) -> asyncio.Task:
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.ensure_future(self._refetch(key))
            self._inflight[key] = task
        return task

    async def _refetch(self, key: str) -> Any:
        try:
            fetcher = self._fetchers[key]
        except KeyError:
            raise UnknownQueryError(key)

        await asyncio.sleep(self._refetch_latency)
        # Read at resolution time so the result is never older than the ledger
        data = fetcher()
        self.set_query_data(key, data)
        self._logger.debug("query_refetched", key=key)
        return data

    async def refetch(self, key: str) -> Any:
        """Refetch ``key`` now (joining a refetch already in flight)."""
        if key not in self._fetchers:
            raise UnknownQueryError(key)
        return await self._start_refetch(key)

    async def fetch(self, key: str) -> Any:
        """Fresh data for ``key``: cached when fresh, refetched otherwise."""
        if not self.is_stale(key):
            return self._entries[key].data
        return await self.refetch(key)

    async def settle(self) -> None:
        """Wait for every in-flight refetch to finish."""
        pending = [task for task in self._inflight.values() if not task.done()]
        if pending:
            await asyncio.gather(*pending)


class SyncLayer:
    """
    Keeps a QueryCache consistent with the two ledgers.

    Subscribes to both ledgers; every committed mutation either
    invalidates the affected keys or overwrites them eagerly.
    """

    def __init__(
        self,
        cache: QueryCache,
        expense_ledger: ExpenseLedger,
        budget_ledger: BudgetLedger,
        strategy: CacheStrategy = CacheStrategy.INVALIDATE,
    ):
        self._cache = cache
        self._expense_ledger = expense_ledger
        self._budget_ledger = budget_ledger
        self._strategy = CacheStrategy(strategy)
        self._unsubscribers: list[Callable[[], None]] = []

    @property
    def cache(self) -> QueryCache:
        return self._cache

    @property
    def strategy(self) -> CacheStrategy:
        return self._strategy

    def attach(self) -> None:
        """Register fetchers, prime the cache and start listening."""
        if self._unsubscribers:
            return

        self._cache.register(QueryKey.EXPENSES.value, lambda: self._expense_ledger.expenses)
        self._cache.register(QueryKey.BUDGETS.value, lambda: self._budget_ledger.budgets)
        self._cache.register(QueryKey.ALERTS.value, lambda: self._budget_ledger.alerts)

        self._cache.set_query_data(QueryKey.EXPENSES.value, self._expense_ledger.expenses)
        self._cache.set_query_data(QueryKey.BUDGETS.value, self._budget_ledger.budgets)
        self._cache.set_query_data(QueryKey.ALERTS.value, self._budget_ledger.alerts)

        self._unsubscribers = [
            self._expense_ledger.subscribe(self._on_expenses_changed),
            self._budget_ledger.subscribe(self._on_budgets_changed),
        ]

    def detach(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _on_expenses_changed(self, ledger: PersistedLedger) -> None:
        self._apply({QueryKey.EXPENSES: self._expense_ledger.expenses})

    def _on_budgets_changed(self, ledger: PersistedLedger) -> None:
        self._apply({
            QueryKey.BUDGETS: self._budget_ledger.budgets,
            QueryKey.ALERTS: self._budget_ledger.alerts,
        })

    def _apply(self, snapshots: dict[QueryKey, Any]) -> None:
        for key, data in snapshots.items():
            if self._strategy == CacheStrategy.EAGER:
                self._cache.set_query_data(key.value, data)
            else:
                self._cache.invalidate(key.value)
