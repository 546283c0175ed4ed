"""
Audit Logger

DESIGN DECISION: Every significant step of handling a message is logged.
This provides:
1. Traceability from a Telegram message to the document write
2. Debugging capability when Gemini or Sheets misbehave
3. A record of how often the heuristic fallback kicks in

The audit logger:
- Writes structured JSON log lines via structlog
- Never raises (a logging failure must not cost a user their reply)
- Supports correlation IDs to trace related events
"""

import logging
import sys
from typing import Optional
from uuid import UUID, uuid4

import structlog

from kwentako.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


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
    """Route stdlib logging (and therefore structlog) to stdout."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper(), logging.INFO),
    )
    # python-telegram-bot polls every few seconds; keep its HTTP chatter down
    logging.getLogger("httpx").setLevel(logging.WARNING)


class AuditLogger:
    """
    Central audit logging service.

    Every event becomes one structured log line at the level
    matching its severity.
    """

    def __init__(self, logger_name: str = "kwentako.audit"):
        self._logger = structlog.get_logger(logger_name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event."""
        log_dict = event.to_log_dict()
        try:
            if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
                self._logger.error("audit_event", **log_dict)
            elif event.severity == AuditSeverity.WARNING:
                self._logger.warning("audit_event", **log_dict)
            elif event.severity == AuditSeverity.DEBUG:
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception:
            # A broken log handler must not break message handling
            logging.getLogger(__name__).exception("audit logging failed")

    def log_message_received(
        self,
        chat_id: int,
        message_id: int,
        text_length: int,
        correlation_id: UUID,
    ) -> None:
        """Log an inbound message."""
        self.log(AuditEventBuilder.message_received(
            chat_id=chat_id,
            message_id=message_id,
            text_length=text_length,
            correlation_id=correlation_id,
        ))

    def log_extraction(
        self,
        record_count: int,
        attempts: int,
        used_fallback: bool,
        correlation_id: UUID,
        error_message: Optional[str] = None,
    ) -> None:
        """Log the outcome of AI extraction."""
        if used_fallback:
            event = AuditEventBuilder.extraction_fallback(
                attempts=attempts,
                error_message=error_message or "transient failure",
                correlation_id=correlation_id,
            )
        elif record_count == 0:
            event = AuditEventBuilder.extraction_empty(correlation_id)
        else:
            event = AuditEventBuilder.extraction_completed(
                record_count=record_count,
                attempts=attempts,
                correlation_id=correlation_id,
            )
        self.log(event)

    def log_expenses_saved(
        self,
        new_count: int,
        new_subtotal: str,
        grand_total: str,
        correlation_id: UUID,
    ) -> None:
        """Log a successful document write."""
        self.log(AuditEventBuilder.expenses_saved(
            new_count=new_count,
            new_subtotal=new_subtotal,
            grand_total=grand_total,
            correlation_id=correlation_id,
        ))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))

    def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this when a message arrives and pass it through
    every subsequent operation for that message.
    """
    return uuid4()
