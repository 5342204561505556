"""
Audit Logger

DESIGN DECISION: Every state change and AI call is logged.
This provides:
1. Traceability of edits to transactions and budgets
2. Debugging capability for AI extraction problems
3. Visibility into silently recovered storage corruption

The audit logger:
- Never raises (a logging failure must not break a user action)
- Keeps a bounded in-memory history for the current session
- Supports correlation IDs to trace related events
"""

from collections import deque
from typing import Optional
from uuid import UUID, uuid4

import structlog

from spendsmart.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


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


def get_logger(name: Optional[str] = None):
    """Module logger bound to the shared structlog configuration."""
    return structlog.get_logger(name)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to:
    1. Structured local log (structlog, JSON lines)
    2. An in-memory ring buffer of recent events for this session
    """

    def __init__(self, history_size: int = 200):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._history: deque[AuditEvent] = deque(maxlen=history_size)
        self._logger = structlog.get_logger("spendsmart.audit")

    def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Returns False if the local log write failed.
        """
        self._history.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity == AuditSeverity.ERROR:
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            return False
        return True

    def get_recent_events(self, limit: int = 100) -> list[AuditEvent]:
        """Most recent events, newest first."""
        events = list(self._history)[-limit:]
        events.reverse()
        return events

    def get_events_by_correlation_id(self, correlation_id: UUID) -> list[AuditEvent]:
        """All events for one correlation id, oldest first."""
        return [e for e in self._history if e.correlation_id == correlation_id]

    # Convenience wrappers

    def log_user_logged_in(self, user_id: str, email: str) -> None:
        self.log(AuditEventBuilder.user_logged_in(user_id=user_id, email=email))

    def log_user_logged_out(self, user_id: Optional[str]) -> None:
        self.log(AuditEventBuilder.user_logged_out(user_id=user_id))

    def log_theme_changed(self, theme: str) -> None:
        self.log(AuditEventBuilder.theme_changed(theme=theme))

    def log_transaction_added(
        self,
        transaction_id: str,
        store: str,
        amount: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.transaction_added(
            transaction_id=transaction_id,
            store=store,
            amount=amount,
            source=source,
            correlation_id=correlation_id,
        ))

    def log_transaction_updated(self, transaction_id: str, found: bool) -> None:
        self.log(AuditEventBuilder.transaction_updated(transaction_id, found))

    def log_transaction_deleted(self, transaction_id: str) -> None:
        self.log(AuditEventBuilder.transaction_deleted(transaction_id))

    def log_budget_saved(self, category: str, limit: str, created: bool) -> None:
        self.log(AuditEventBuilder.budget_saved(category, limit, created))

    def log_receipt_ingested(
        self,
        upload_id: UUID,
        mime_type: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.receipt_ingested(
            upload_id=upload_id,
            mime_type=mime_type,
            transaction_count=transaction_count,
            correlation_id=correlation_id,
        ))

    def log_ingestion_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.ingestion_failed(error_message, correlation_id))

    def log_ingestion_cancelled(self, correlation_id: Optional[UUID] = None) -> None:
        self.log(AuditEventBuilder.ingestion_cancelled(correlation_id))

    def log_advice_generated(
        self,
        transaction_count: int,
        citation_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.advice_generated(
            transaction_count=transaction_count,
            citation_count=citation_count,
            correlation_id=correlation_id,
        ))

    def log_advice_failed(
        self,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self.log(AuditEventBuilder.advice_failed(error_message, correlation_id))

    def log_storage_corrupt(self, key: str, error_message: str) -> None:
        self.log(AuditEventBuilder.storage_corrupt(key, error_message))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action (e.g., a receipt scan).
    """
    return uuid4()
