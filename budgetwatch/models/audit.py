"""
Audit Models for budgetwatch

Every ledger mutation and every notable engine decision is logged
as an audit event. This provides:
1. Traceability of what changed and when
2. Debugging information when persistence degrades
3. A record of why an alert was (or was not) raised

DESIGN DECISION: Audit events are append-only. We never modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from budgetwatch.models.expense import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Hydration
    LEDGER_HYDRATED = "ledger_hydrated"
    SNAPSHOT_MALFORMED = "snapshot_malformed"
    RECORD_SKIPPED = "record_skipped"

    # Expense ledger
    EXPENSE_ADDED = "expense_added"
    EXPENSE_UPDATED = "expense_updated"
    EXPENSE_REMOVED = "expense_removed"
    EXPENSES_CLEARED = "expenses_cleared"

    # Budget ledger
    BUDGET_ADDED = "budget_added"
    BUDGET_UPDATED = "budget_updated"
    BUDGET_REMOVED = "budget_removed"
    BUDGETS_CLEARED = "budgets_cleared"
    ALERT_RAISED = "alert_raised"
    ALERTS_CLEARED = "alerts_cleared"

    # Boundaries
    DRAFT_REJECTED = "draft_rejected"
    PERSIST_FAILED = "persist_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'budget', 'alert', 'ledger')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID (or storage key) of the entity this event relates to"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.ledger_hydrated("expenses.v1", 12)
        event = AuditEventBuilder.alert_raised(alert)
    """

    @staticmethod
    def ledger_hydrated(key: str, record_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_HYDRATED,
            entity_type="ledger",
            entity_id=key,
            description=f"Ledger {key} hydrated with {record_count} records",
            details={"record_count": record_count},
        )

    @staticmethod
    def snapshot_malformed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SNAPSHOT_MALFORMED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            entity_id=key,
            description=f"Stored snapshot {key} is malformed; starting empty",
            error_message=error_message,
        )

    @staticmethod
    def record_skipped(key: str, record: Any, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_SKIPPED,
            severity=AuditSeverity.WARNING,
            entity_type="ledger",
            entity_id=key,
            description=f"Skipped invalid record while loading {key}",
            details={"record": record if isinstance(record, dict) else repr(record)},
            error_message=error_message,
        )

    @staticmethod
    def record_changed(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def alert_raised(alert) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERT_RAISED,
            severity=AuditSeverity.WARNING,
            entity_type="alert",
            entity_id=alert.id,
            description=(
                f"Budget alert for {alert.category}: {alert.percentage:.1f}% of limit"
            ),
            details={
                "budget_id": alert.budget_id,
                "spent": str(alert.spent),
                "budget_amount": str(alert.budget_amount),
                "exceeded": alert.exceeded,
            },
        )

    @staticmethod
    def draft_rejected(entity_type: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DRAFT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            description=f"{entity_type.capitalize()} draft rejected with {len(issues)} issues",
            details={"issues": issues},
        )

    @staticmethod
    def persist_failed(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            entity_id=key,
            description=f"Failed to persist snapshot {key}; in-memory state kept",
            error_message=error_message,
        )
