"""
Integration tests for the record and statistics flows.

Gemini and Sheets are replaced by FakeTransport and InMemoryDocumentStore.
"""

import asyncio
import json

import pytest
from decimal import Decimal

from kwentako.agents import EmptyInputError, ErrorKind, TransportError
from kwentako.config import Settings
from kwentako.ledger import parse, render
from kwentako.models.expense import ExpenseCategory
from kwentako.orchestrator import DocumentLocks, ExpenseFlow, create_app_components
from kwentako.services.storage import StorageError

from tests.fakes import FIXED_DATE, FakeTransport, InMemoryDocumentStore, make_record


def response(*items) -> str:
    return json.dumps([
        {"description": description, "amount": amount, "category": category}
        for description, amount, category in items
    ])


class TestRecordExpenses:
    """Tests for text → extract → read → merge → write."""

    async def test_first_message_creates_document(self, make_flow):
        store = InMemoryDocumentStore()
        transport = FakeTransport(response(("Lunch at Jollibee", 185, "Food"), ("Taxi", 250, "Transportation")))

        result = await make_flow(transport, store).record_expenses("Lunch 185, taxi 250")

        assert result.new_count == 2
        assert result.new_subtotal == Decimal("435")
        assert result.grand_total == Decimal("435")
        assert result.total_count == 2
        assert result.used_fallback is False
        assert result.location.view_url == "https://example.test/view"
        assert store.writes == 1
        assert [r.description for r in parse(store.text)] == ["Lunch at Jollibee", "Taxi"]

    async def test_new_records_are_appended(self, make_flow):
        existing = [make_record("A", "100", ExpenseCategory.FOOD), make_record("B", "50")]
        store = InMemoryDocumentStore(render(existing))
        transport = FakeTransport(response(("C", 25, "Personal")))

        result = await make_flow(transport, store).record_expenses("C 25")

        records = parse(store.text)
        assert [r.description for r in records] == ["A", "B", "C"]
        assert records[:2] == existing
        assert records[2].date == FIXED_DATE
        assert result.new_subtotal == Decimal("25")
        assert result.grand_total == Decimal("175")
        assert result.total_count == 3

    async def test_corrupt_rows_are_dropped_on_rewrite(self, make_flow):
        store = InMemoryDocumentStore(
            render([make_record("A", "100")]) + '10/17/2026,"Broken",abc,Food\n'
        )
        await make_flow(FakeTransport(response(("C", 25, "Food"))), store).record_expenses("C 25")
        assert [r.description for r in parse(store.text)] == ["A", "C"]

    async def test_nothing_extracted_skips_the_write(self, make_flow):
        store = InMemoryDocumentStore()
        result = await make_flow(FakeTransport("[]"), store).record_expenses("hmm")

        assert result.new_count == 0
        assert result.location is None
        assert store.writes == 0
        assert store.text is None

    async def test_fallback_is_reported(self, make_flow):
        store = InMemoryDocumentStore()
        transport = FakeTransport(TransportError("overloaded", kind=ErrorKind.TRANSIENT))

        result = await make_flow(transport, store).record_expenses("taxi fare 80")

        assert result.used_fallback is True
        assert result.new_count == 1
        assert parse(store.text)[0].category == ExpenseCategory.TRANSPORTATION

    async def test_empty_input_raises(self, make_flow):
        with pytest.raises(EmptyInputError):
            await make_flow(FakeTransport(), InMemoryDocumentStore()).record_expenses("  ")

    async def test_read_failure_propagates(self, make_flow):
        store = InMemoryDocumentStore()
        store.read_error = StorageError("sheet unavailable")
        with pytest.raises(StorageError):
            await make_flow(FakeTransport(response(("A", 1, "Food"))), store).record_expenses("A 1")

    async def test_write_failure_leaves_document_unchanged(self, make_flow):
        original = render([make_record("A", "100")])
        store = InMemoryDocumentStore(original)
        store.write_error = StorageError("quota exceeded")

        with pytest.raises(StorageError):
            await make_flow(FakeTransport(response(("B", 1, "Food"))), store).record_expenses("B 1")
        assert store.text == original

    async def test_concurrent_messages_do_not_lose_records(self, make_agent):
        """Messages handled at the same time all end up in the document."""
        store = InMemoryDocumentStore()
        locks = DocumentLocks()
        flows = [
            ExpenseFlow(make_agent(FakeTransport(response((name, 10, "Food")))), store, locks=locks)
            for name in ("First", "Second", "Third")
        ]

        await asyncio.gather(*(flow.record_expenses("lunch 10") for flow in flows))

        descriptions = sorted(r.description for r in parse(store.text))
        assert descriptions == ["First", "Second", "Third"]
        assert store.writes == 3


class TestStatistics:
    """Tests for read → parse → summarize."""

    async def test_statistics_over_document(self, make_flow):
        store = InMemoryDocumentStore(render([
            make_record("Lunch", "100", ExpenseCategory.FOOD),
            make_record("Meralco", "1200", ExpenseCategory.UTILITIES),
        ]))
        summary, location = await make_flow(FakeTransport(), store).get_statistics()

        assert summary.record_count == 2
        assert summary.total_amount == Decimal("1300")
        assert summary.top_category == ExpenseCategory.UTILITIES
        assert location.download_url.endswith(".csv")

    async def test_statistics_on_missing_document(self, make_flow):
        summary, _ = await make_flow(FakeTransport(), InMemoryDocumentStore()).get_statistics()
        assert summary.has_records is False


class TestDocumentLocks:
    """Tests for the per-document lock registry."""

    def test_same_name_same_lock(self):
        locks = DocumentLocks()
        assert locks.for_document("a") is locks.for_document("a")
        assert locks.for_document("a") is not locks.for_document("b")


class TestCreateAppComponents:
    """Tests for startup with missing configuration."""

    def test_missing_configuration_is_reported(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        for name in (
            "GEMINI_API_KEY",
            "GOOGLE_SHEETS_CREDENTIALS_PATH",
            "GOOGLE_SHEETS_SPREADSHEET_ID",
        ):
            monkeypatch.delenv(name, raising=False)

        components = create_app_components(Settings(), verify_storage=False)

        assert components.is_available is False
        assert components.flow is None
        assert set(components.unavailable) == {"gemini", "google_sheets"}


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
