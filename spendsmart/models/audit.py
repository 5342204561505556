"""
Audit Models for SpendSmart

Every state change and every AI call is recorded as an audit event.
This provides:
1. Traceability of what happened to each transaction and budget
2. Debugging information when the AI service misbehaves
3. A record of storage corruption that was silently recovered from
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Session
    USER_LOGGED_IN = "user_logged_in"
    USER_LOGGED_OUT = "user_logged_out"
    THEME_CHANGED = "theme_changed"

    # Transactions and budgets
    TRANSACTION_ADDED = "transaction_added"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    BUDGET_SAVED = "budget_saved"

    # Receipt ingestion
    RECEIPT_INGESTED = "receipt_ingested"
    INGESTION_FAILED = "ingestion_failed"
    INGESTION_CANCELLED = "ingestion_cancelled"

    # Advisor
    ADVICE_GENERATED = "advice_generated"
    ADVICE_FAILED = "advice_failed"

    # Storage
    STORAGE_CORRUPT = "storage_corrupt"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """A single audit event."""

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'transaction', 'budget', 'receipt')"
    )
    entity_id: Optional[str] = None

    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one scan and its saves)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)
    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.transaction_added(transaction_id, store, amount)
        event = AuditEventBuilder.ingestion_failed(error, correlation_id)
    """

    @staticmethod
    def user_logged_in(user_id: str, email: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_IN,
            entity_type="user",
            entity_id=user_id,
            description=f"User logged in: {email}",
            is_user_action=True,
        )

    @staticmethod
    def user_logged_out(user_id: Optional[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.USER_LOGGED_OUT,
            entity_type="user",
            entity_id=user_id,
            description="User logged out",
            is_user_action=True,
        )

    @staticmethod
    def theme_changed(theme: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.THEME_CHANGED,
            description=f"Theme switched to {theme}",
            details={"theme": theme},
            is_user_action=True,
        )

    @staticmethod
    def transaction_added(
        transaction_id: str,
        store: str,
        amount: str,
        source: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ADDED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {store or 'Unnamed'} - {amount}",
            details={
                "store": store,
                "amount": amount,
                "source": source,
            },
            is_user_action=True,
        )

    @staticmethod
    def transaction_updated(transaction_id: str, found: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            severity=AuditSeverity.INFO if found else AuditSeverity.WARNING,
            entity_type="transaction",
            entity_id=transaction_id,
            description=(
                "Transaction updated" if found
                else "Update ignored: transaction not found"
            ),
            is_user_action=True,
        )

    @staticmethod
    def transaction_deleted(transaction_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            description="Transaction deleted",
            is_user_action=True,
        )

    @staticmethod
    def budget_saved(category: str, limit: str, created: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BUDGET_SAVED,
            entity_type="budget",
            entity_id=category,
            description=f"Budget {'created' if created else 'updated'}: {category} = {limit}",
            details={
                "category": category,
                "limit": limit,
                "created": created,
            },
            is_user_action=True,
        )

    @staticmethod
    def receipt_ingested(
        upload_id: UUID,
        mime_type: str,
        transaction_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECEIPT_INGESTED,
            entity_type="receipt",
            entity_id=str(upload_id),
            correlation_id=correlation_id,
            description=f"Receipt analyzed: {transaction_count} transaction(s) extracted",
            details={
                "mime_type": mime_type,
                "transaction_count": transaction_count,
            },
        )

    @staticmethod
    def ingestion_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INGESTION_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt analysis failed",
            error_message=error_message,
            details={"service": "gemini"},
        )

    @staticmethod
    def ingestion_cancelled(correlation_id: Optional[UUID] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INGESTION_CANCELLED,
            entity_type="receipt",
            correlation_id=correlation_id,
            description="Receipt analysis cancelled by user",
            is_user_action=True,
        )

    @staticmethod
    def advice_generated(
        transaction_count: int,
        citation_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_GENERATED,
            entity_type="advice",
            correlation_id=correlation_id,
            description=f"Advice generated from {transaction_count} transaction(s)",
            details={
                "transaction_count": transaction_count,
                "citation_count": citation_count,
            },
        )

    @staticmethod
    def advice_failed(
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ADVICE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="advice",
            correlation_id=correlation_id,
            description="Advisor request failed",
            error_message=error_message,
            details={"service": "gemini"},
        )

    @staticmethod
    def storage_corrupt(key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_CORRUPT,
            severity=AuditSeverity.WARNING,
            entity_type="storage_key",
            entity_id=key,
            description=f"Stored value for {key} could not be read and was skipped",
            error_message=error_message,
        )
