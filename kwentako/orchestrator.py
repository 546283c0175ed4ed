"""
Main Orchestrator for KwentaKo

This module ties together all the components and defines the
end-to-end flows for:
1. Recording expenses (text → extract → read → parse → merge → render → write)
2. Statistics (read → parse → summarize)

DESIGN DECISION: The document is read, modified and written back as a whole.
Two messages handled at the same time would both read the same snapshot and
the second write would silently drop the first message's expenses. Every
read...write span therefore holds a lock named after the document.

The lock only serializes writers inside ONE process. Several bot processes
writing the same worksheet are still last-write-wins; run a single instance
(or move to an append-only store) if that matters.
"""

import asyncio
from decimal import Decimal
from typing import Optional
from uuid import UUID

from kwentako.agents import ExpenseExtractionAgent, GeminiTransport
from kwentako.audit import AuditLogger, create_correlation_id
from kwentako.config import AppSettings, Settings, get_settings
from kwentako.ledger import merge, parse, render, summarize
from kwentako.models.audit import AuditEventBuilder
from kwentako.models.expense import DocumentLocation, ExpenseSummary, SaveResult
from kwentako.services.storage import (
    DocumentStore,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
)


class DocumentLocks:
    """One asyncio.Lock per document name, created on first use."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def for_document(self, name: str) -> asyncio.Lock:
        lock = self._locks.get(name)
        if lock is None:
            lock = self._locks[name] = asyncio.Lock()
        return lock


# Shared by every flow in the process
_DOCUMENT_LOCKS = DocumentLocks()


class ExpenseFlow:
    """
    Orchestrates one inbound message into the expense document.

    Flow:
    1. Extract → AI (or heuristic fallback) produces new records
    2. Read → current document text
    3. Parse → existing records (corrupt rows skipped)
    4. Merge → existing first, new appended in extraction order
    5. Render → full document with fresh totals
    6. Write → replace the document, get its links back
    """

    def __init__(
        self,
        extraction_agent: ExpenseExtractionAgent,
        store: DocumentStore,
        currency_code: str = "PHP",
        audit_logger: Optional[AuditLogger] = None,
        locks: Optional[DocumentLocks] = None,
    ):
        self._agent = extraction_agent
        self._store = store
        self._currency_code = currency_code
        self._audit_logger = audit_logger or AuditLogger()
        self._locks = locks or _DOCUMENT_LOCKS

    async def record_expenses(
        self,
        text: str,
        correlation_id: Optional[UUID] = None,
    ) -> SaveResult:
        """
        Extract expenses from text and append them to the document.

        Returns a SaveResult with new_count == 0 (and no write) when
        nothing could be extracted.

        Raises:
            EmptyInputError: for empty input
            StorageError: if the document cannot be read or written
        """
        correlation_id = correlation_id or create_correlation_id()

        outcome = await self._agent.extract_with_source(text)
        self._audit_logger.log_extraction(
            record_count=len(outcome.records),
            attempts=outcome.attempts,
            used_fallback=outcome.used_fallback,
            correlation_id=correlation_id,
            error_message=outcome.error_message,
        )

        new_records = outcome.records
        if not new_records:
            return SaveResult(
                new_count=0,
                new_subtotal=Decimal("0"),
                grand_total=Decimal("0"),
                total_count=0,
            )

        async with self._locks.for_document(self._store.name):
            existing = parse(await self._store.read())
            combined = merge(existing, new_records)
            location = await self._store.write(
                render(combined, currency_code=self._currency_code)
            )

        new_subtotal = sum((r.amount for r in new_records), Decimal("0"))
        grand_total = sum((r.amount for r in combined), Decimal("0"))

        self._audit_logger.log_expenses_saved(
            new_count=len(new_records),
            new_subtotal=f"{new_subtotal:.2f}",
            grand_total=f"{grand_total:.2f}",
            correlation_id=correlation_id,
        )

        return SaveResult(
            new_count=len(new_records),
            new_subtotal=new_subtotal,
            grand_total=grand_total,
            total_count=len(combined),
            location=location,
            used_fallback=outcome.used_fallback,
        )

    async def get_statistics(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> tuple[ExpenseSummary, DocumentLocation]:
        """
        Summarize the whole document.

        Returns:
            (summary, location_of_current_snapshot)
        """
        records = parse(await self._store.read())
        summary = summarize(records)
        location = await self._store.location()

        self._audit_logger.log(AuditEventBuilder.statistics_generated(
            record_count=summary.record_count,
            correlation_id=correlation_id,
        ))
        return summary, location


class AppComponents:
    """
    Everything the bot needs, built once at startup.

    A component that could not be initialized is left out and its
    reason recorded in `unavailable`; callers check `is_available`
    instead of catching import-time errors.
    """

    def __init__(
        self,
        flow: Optional[ExpenseFlow],
        app_settings: AppSettings,
        audit_logger: AuditLogger,
        unavailable: Optional[dict[str, str]] = None,
    ):
        self.flow = flow
        self.app_settings = app_settings
        self.audit_logger = audit_logger
        self.unavailable = unavailable or {}

    @property
    def is_available(self) -> bool:
        return self.flow is not None


def create_app_components(
    settings: Optional[Settings] = None,
    verify_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use (defaults to get_settings())
        verify_storage: Open the spreadsheet now so bad credentials
                        show up at startup rather than on the first message

    Returns:
        AppComponents, with `flow` None if Gemini or Sheets is unusable
    """
    settings = settings or get_settings()
    app_settings = settings.app
    audit_logger = AuditLogger()
    unavailable: dict[str, str] = {}

    agent = None
    try:
        gemini_settings = settings.gemini
        agent = ExpenseExtractionAgent(
            transport=GeminiTransport(gemini_settings),
            settings=gemini_settings,
            timezone=app_settings.timezone,
        )
    except Exception as e:
        unavailable["gemini"] = str(e)
        audit_logger.log_external_service_error(service="gemini", error_message=str(e))

    store = None
    try:
        sheets_settings = settings.google_sheets
        client = GoogleSheetsClient(sheets_settings)
        if verify_storage:
            client.get_spreadsheet()
        store = GoogleSheetsDocumentStore(
            client,
            sheets_settings,
            currency_code=app_settings.currency_code,
            audit_logger=audit_logger,
        )
    except Exception as e:
        unavailable["google_sheets"] = str(e)
        audit_logger.log_external_service_error(service="google_sheets", error_message=str(e))

    flow = None
    if agent is not None and store is not None:
        flow = ExpenseFlow(
            extraction_agent=agent,
            store=store,
            currency_code=app_settings.currency_code,
            audit_logger=audit_logger,
        )

    return AppComponents(
        flow=flow,
        app_settings=app_settings,
        audit_logger=audit_logger,
        unavailable=unavailable,
    )
