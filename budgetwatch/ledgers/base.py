"""
Persisted Ledger Base

Shared lifecycle for the expense and budget ledgers:

1. ``initialize()`` reads the ledger's snapshot once and sets ``hydrated``
2. Every mutation is applied to the in-memory collection synchronously
3. Listeners are notified, then a write-behind task persists the FULL
   current snapshot

DESIGN DECISION: Write-behind, not write-through.
- The in-memory collection is the source of truth
- A failed write is logged and swallowed; memory is never rolled back
- At most one write is in flight per ledger. A mutation made while a
  write is running marks the ledger dirty and the writer loops, so the
  newest state is always the last one written
- Nothing is retried on its own; the next mutation rewrites everything
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Callable, Optional, TypeVar

import structlog
from pydantic import BaseModel, ValidationError

from budgetwatch.audit import AuditLogger, get_audit_logger
from budgetwatch.models.audit import AuditEventBuilder, AuditEventType
from budgetwatch.models.expense import utc_now
from budgetwatch.services.storage import (
    CorruptSnapshotError,
    SnapshotStorageInterface,
    StorageError,
)


SNAPSHOT_VERSION = 1

ModelT = TypeVar("ModelT", bound=BaseModel)
Listener = Callable[["PersistedLedger"], None]


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class LedgerNotHydratedError(LedgerError):
    """Mutation attempted before the ledger finished loading."""
    pass


class DuplicateRecordError(LedgerError):
    """A record with the same identifier already exists."""
    pass


class PersistedLedger(ABC):
    """In-memory collection with write-behind snapshot persistence."""

    def __init__(
        self,
        storage: SnapshotStorageInterface,
        key: str,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._storage = storage
        self._key = key
        self._audit = audit_logger or get_audit_logger()
        self._clock = clock
        self._logger = structlog.get_logger(__name__).bind(ledger=key)

        self._hydrated = False
        self._listeners: list[Listener] = []
        self._writer: Optional[asyncio.Task] = None
        self._dirty = False
        self._last_write_failed = False

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def key(self) -> str:
        return self._key

    @property
    def hydrated(self) -> bool:
        """False until the initial load completed (or found nothing)."""
        return self._hydrated

    @property
    def persistence_degraded(self) -> bool:
        """True when the most recent snapshot write failed."""
        return self._last_write_failed

    @property
    def has_pending_write(self) -> bool:
        return self._dirty or (self._writer is not None and not self._writer.done())

    @abstractmethod
    def _load_state(self, state: dict[str, Any]) -> int:
        """Replace the collection from a decoded snapshot. Returns record count."""

    @abstractmethod
    def _dump_state(self) -> dict[str, Any]:
        """Serialize the persisted part of the collection."""

    # ------------------------------------------------------------------
    # Hydration
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """
        Load the stored snapshot once.

        Missing storage gives an empty ledger. Malformed storage also gives
        an empty ledger, never an exception.
        """
        if self._hydrated:
            return

        state: dict[str, Any] = {}
        try:
            snapshot = await self._storage.read(self._key)
        except CorruptSnapshotError as e:
            self._audit.log_snapshot_malformed(self._key, str(e))
            snapshot = None
        except StorageError as e:
            self._audit.log_snapshot_malformed(self._key, str(e))
            snapshot = None

        if snapshot is not None:
            raw_state = snapshot.get("state")
            if isinstance(raw_state, dict):
                state = raw_state
            else:
                self._audit.log_snapshot_malformed(self._key, "missing 'state' object")

        count = self._load_state(state)
        self._hydrated = True
        self._audit.log_hydrated(self._key, count)
        self._notify()

    def _parse_records(self, raw: Any, model: type[ModelT], field: str) -> list[ModelT]:
        """Validate stored records one by one, skipping the invalid ones."""
        if raw is None:
            return []
        if not isinstance(raw, list):
            self._audit.log_snapshot_malformed(self._key, f"'{field}' is not a list")
            return []

        records = []
        for item in raw:
            try:
                records.append(model.model_validate(item))
            except ValidationError as e:
                self._audit.log_record_skipped(self._key, item, str(e))
        return records

    def _require_hydrated(self) -> None:
        if not self._hydrated:
            raise LedgerNotHydratedError(
                f"Ledger {self._key} must be initialized before it is modified"
            )

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Call ``listener(ledger)`` after every committed change.

        Returns a function that removes the subscription.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                # A broken subscriber must not undo a committed mutation
                self._logger.exception("ledger_listener_failed")

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _commit(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
    ) -> None:
        """Record a mutation that was just applied in memory."""
        self._audit.log(AuditEventBuilder.record_changed(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details,
        ))
        self._notify()
        self._schedule_persist()

    def _schedule_persist(self) -> None:
        self._dirty = True
        if self._writer is not None and not self._writer.done():
            return  # the running writer picks up the new state

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No event loop: the snapshot is written on the next flush()
            self._logger.debug("persist_deferred")
            return
        self._writer = loop.create_task(self._write_behind())

    async def _write_behind(self) -> None:
        while self._dirty:
            self._dirty = False
            snapshot = {"state": self._dump_state(), "version": SNAPSHOT_VERSION}
            try:
                await self._storage.write(self._key, snapshot)
                self._last_write_failed = False
            except Exception as e:
                # Persistence failures never reach callers
                self._last_write_failed = True
                self._audit.log_persist_failed(self._key, str(e))

    async def flush(self) -> None:
        """Wait until the current in-memory state has been written."""
        while True:
            if self._writer is not None and not self._writer.done():
                await self._writer
            elif self._dirty:
                self._writer = asyncio.ensure_future(self._write_behind())
            else:
                return
