"""
Audit Logger

DESIGN DECISION: Every ledger mutation and engine decision is logged.
This provides:
1. Complete traceability
2. Debugging capability when storage misbehaves
3. A visible trail for persistence failures that callers never see

The audit logger:
- Is synchronous, so ledgers can log inside their atomic mutation step
- Gracefully handles failures (never crashes the app if logging fails)
"""

import logging
from typing import Optional

import structlog

from budgetwatch.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(level: str = "INFO") -> None:
    """Route stdlib logging (and therefore structlog) to stderr at ``level``."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, level.upper()))


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log. Keeps the most recent
    events in memory so callers (and tests) can inspect them.
    """

    def __init__(self, name: str = "budgetwatch.audit", history_size: int = 500):
        self._logger = structlog.get_logger(name)
        self._history: list[AuditEvent] = []
        self._history_size = history_size

    @property
    def history(self) -> list[AuditEvent]:
        """Recently logged events, oldest first."""
        return list(self._history)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event. Never raises."""
        self._history.append(event)
        if len(self._history) > self._history_size:
            del self._history[0]

        try:
            log_dict = event.to_log_dict()
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # Logging must never break a ledger mutation
            logging.getLogger(__name__).warning("audit log write failed: %s", e)

    def log_hydrated(self, key: str, record_count: int) -> None:
        self.log(AuditEventBuilder.ledger_hydrated(key, record_count))

    def log_snapshot_malformed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.snapshot_malformed(key, error_message))

    def log_record_skipped(self, key: str, record, error_message: str) -> None:
        self.log(AuditEventBuilder.record_skipped(key, record, error_message))

    def log_alert_raised(self, alert) -> None:
        self.log(AuditEventBuilder.alert_raised(alert))

    def log_draft_rejected(self, entity_type: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.draft_rejected(entity_type, issues))

    def log_persist_failed(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.persist_failed(key, error_message))


_default_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Shared process-wide audit logger."""
    global _default_logger
    if _default_logger is None:
        _default_logger = AuditLogger()
    return _default_logger
