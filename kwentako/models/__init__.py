"""
Data Models Package

This package contains all Pydantic models used in KwentaKo.
All data flowing through the system must conform to these schemas.
"""

from kwentako.models.expense import (
    BotReply,
    DocumentLocation,
    ExpenseCategory,
    ExpenseRecord,
    ExpenseSummary,
    ExtractedExpense,
    InboundMessage,
    SaveResult,
)
from kwentako.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "BotReply",
    "DocumentLocation",
    "ExpenseCategory",
    "ExpenseRecord",
    "ExpenseSummary",
    "ExtractedExpense",
    "InboundMessage",
    "SaveResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
