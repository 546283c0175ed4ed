"""
Audit Models for KwentaKo

Every significant step of handling a message is recorded as an event.
This provides:
1. Traceability from an inbound message to the document write
2. Debugging information when the AI or the store misbehaves
3. Visibility into how often the heuristic fallback is used
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step in the message pipeline has its own event type.
    """
    # Inbound
    MESSAGE_RECEIVED = "message_received"
    DUPLICATE_SUPPRESSED = "duplicate_suppressed"
    MESSAGE_IGNORED = "message_ignored"
    INPUT_REJECTED = "input_rejected"

    # Extraction
    EXTRACTION_COMPLETED = "extraction_completed"
    EXTRACTION_FALLBACK = "extraction_fallback"
    EXTRACTION_EMPTY = "extraction_empty"

    # Persistence
    EXPENSES_SAVED = "expenses_saved"
    BACKUP_FAILED = "backup_failed"
    SAVE_FAILED = "save_failed"

    # Statistics
    STATISTICS_GENERATED = "statistics_generated"

    # System events
    SYSTEM_ERROR = "system_error"
    EXTERNAL_SERVICE_ERROR = "external_service_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Correlation - all events for one inbound message share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
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
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(chat_id, message_id, correlation_id)
        event = AuditEventBuilder.expenses_saved(3, "450.00", "1200.00", correlation_id)
    """

    @staticmethod
    def message_received(
        chat_id: int,
        message_id: int,
        text_length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            correlation_id=correlation_id,
            description=f"Message {message_id} received",
            details={
                "chat_id": chat_id,
                "message_id": message_id,
                "text_length": text_length,
            },
        )

    @staticmethod
    def duplicate_suppressed(
        chat_id: int,
        message_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DUPLICATE_SUPPRESSED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"Duplicate delivery of message {message_id} ignored",
            details={
                "chat_id": chat_id,
                "message_id": message_id,
            },
        )

    @staticmethod
    def message_ignored(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_IGNORED,
            correlation_id=correlation_id,
            description=f"Message not treated as an expense: {reason}",
            details={"reason": reason},
        )

    @staticmethod
    def input_rejected(
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INPUT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Input rejected before extraction",
            error_message=reason,
        )

    @staticmethod
    def extraction_completed(
        record_count: int,
        attempts: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_COMPLETED,
            correlation_id=correlation_id,
            description=f"AI extracted {record_count} expense(s)",
            details={
                "record_count": record_count,
                "attempts": attempts,
            },
        )

    @staticmethod
    def extraction_fallback(
        attempts: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_FALLBACK,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description=f"AI unavailable after {attempts} attempt(s); used heuristic parser",
            details={"attempts": attempts},
            error_message=error_message,
        )

    @staticmethod
    def extraction_empty(correlation_id: UUID) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTRACTION_EMPTY,
            correlation_id=correlation_id,
            description="No expenses found in message",
        )

    @staticmethod
    def expenses_saved(
        new_count: int,
        new_subtotal: str,
        grand_total: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPENSES_SAVED,
            correlation_id=correlation_id,
            description=f"Saved {new_count} expense(s): {new_subtotal}",
            details={
                "new_count": new_count,
                "new_subtotal": new_subtotal,
                "grand_total": grand_total,
            },
        )

    @staticmethod
    def backup_failed(
        backup_title: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.WARNING,
            description=f"Backup copy {backup_title!r} could not be created",
            details={"backup_title": backup_title},
            error_message=error_message,
        )

    @staticmethod
    def save_failed(
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Expense document could not be saved",
            error_message=error_message,
        )

    @staticmethod
    def statistics_generated(
        record_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STATISTICS_GENERATED,
            correlation_id=correlation_id,
            description=f"Statistics generated over {record_count} record(s)",
            details={"record_count": record_count},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def external_service_error(
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXTERNAL_SERVICE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"External service error: {service}",
            error_message=error_message,
            details={
                "service": service,
            },
            correlation_id=correlation_id,
        )
