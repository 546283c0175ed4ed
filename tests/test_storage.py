"""
Tests for the Google Sheets document store.

gspread is mocked at the client boundary; no network access.
"""

from unittest.mock import MagicMock

import pytest

from kwentako.audit import AuditLogger
from kwentako.config import GoogleSheetsSettings
from kwentako.ledger import header_line, parse, render
from kwentako.models.audit import AuditEventType
from kwentako.models.expense import ExpenseCategory
from kwentako.services.storage import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    StorageError,
    rows_to_text,
    text_to_rows,
)

from tests.fakes import make_record


@pytest.fixture
def sheets_settings(tmp_path):
    credentials = tmp_path / "credentials.json"
    credentials.write_text("{}")

    def _make(**overrides) -> GoogleSheetsSettings:
        return GoogleSheetsSettings(
            credentials_path=str(credentials),
            spreadsheet_id="sheet-123",
            **overrides,
        )
    return _make


@pytest.fixture
def worksheet():
    sheet = MagicMock()
    sheet.id = 42
    sheet.row_count = 1000
    sheet.col_count = 26
    sheet.get_all_values.return_value = []
    return sheet


@pytest.fixture
def client(worksheet):
    client = MagicMock(spec=GoogleSheetsClient)
    client.spreadsheet_id = "sheet-123"
    client.find_worksheet.return_value = worksheet
    client.get_or_create_worksheet.return_value = worksheet
    client.get_spreadsheet.return_value = MagicMock()
    return client


@pytest.fixture
def audit_logger():
    return MagicMock(spec=AuditLogger)


@pytest.fixture
def make_store(client, sheets_settings, audit_logger):
    def _make(**overrides) -> GoogleSheetsDocumentStore:
        return GoogleSheetsDocumentStore(
            client,
            sheets_settings(**overrides),
            audit_logger=audit_logger,
        )
    return _make


@pytest.fixture
def records():
    return [
        make_record("Lunch at Jollibee", "185", ExpenseCategory.FOOD),
        make_record('Pens, "blue"', "500", ExpenseCategory.SUPPLIES),
    ]


class TestRowConversion:
    """Tests for mapping document text to worksheet cells and back."""

    def test_text_to_rows_is_rectangular(self, records):
        rows = text_to_rows(render(records))
        assert len({len(row) for row in rows}) == 1
        assert rows[0][0] == "# KwentaKo Expense Log"

    def test_rows_to_text_trims_padding(self):
        rows = [["# KwentaKo Expense Log", "", "", ""], ["", "", "", ""], ["a", "b", "", "d"]]
        assert rows_to_text(rows) == "# KwentaKo Expense Log\na,b,,d\n"

    def test_records_survive_the_sheet(self, records):
        text = rows_to_text(text_to_rows(render(records)))
        assert parse(text) == records


class TestRead:
    """Tests for reading the document."""

    async def test_missing_worksheet_reads_as_initial_document(self, make_store, client):
        client.find_worksheet.return_value = None
        text = await make_store().read()
        assert header_line() in text
        assert parse(text) == []

    async def test_empty_worksheet_reads_as_initial_document(self, make_store):
        text = await make_store().read()
        assert header_line() in text

    async def test_reads_existing_rows(self, make_store, worksheet, records):
        worksheet.get_all_values.return_value = text_to_rows(render(records))
        assert parse(await make_store().read()) == records

    async def test_read_failure_is_a_storage_error(self, make_store, client):
        client.find_worksheet.side_effect = RuntimeError("network down")
        with pytest.raises(StorageError):
            await make_store().read()

    async def test_worksheet_looked_up_on_every_read(self, make_store, client):
        store = make_store()
        await store.read()
        await store.read()
        assert client.find_worksheet.call_count == 2


class TestWrite:
    """Tests for replacing the document."""

    async def test_single_batch_update(self, make_store, client, records):
        text = render(records)
        location = await make_store().write(text)

        spreadsheet = client.get_spreadsheet.return_value
        spreadsheet.batch_update.assert_called_once()
        body = spreadsheet.batch_update.call_args.args[0]
        requests = body["requests"]
        assert len(requests) == 3
        assert "updateSheetProperties" in requests[0]
        assert "rows" not in requests[1]["updateCells"]

        written = requests[2]["updateCells"]["rows"]
        assert len(written) == len(text_to_rows(text))
        first_cell = written[0]["values"][0]["userEnteredValue"]
        assert first_cell == {"stringValue": "# KwentaKo Expense Log"}

        assert location.view_url == "https://docs.google.com/spreadsheets/d/sheet-123/edit#gid=42"
        assert "export?format=csv&gid=42" in location.download_url

    async def test_grid_grows_for_large_documents(self, make_store, client, worksheet):
        worksheet.row_count = 5
        text = render([make_record(f"Item {i}", "1") for i in range(20)])
        await make_store().write(text)

        requests = client.get_spreadsheet.return_value.batch_update.call_args.args[0]["requests"]
        grid = requests[0]["updateSheetProperties"]["properties"]["gridProperties"]
        assert grid["rowCount"] == len(text_to_rows(text))

    async def test_write_failure_is_a_storage_error(self, make_store, client, records):
        client.get_spreadsheet.return_value.batch_update.side_effect = RuntimeError("quota")
        with pytest.raises(StorageError):
            await make_store().write(render(records))

    async def test_no_backup_by_default(self, make_store, client, records):
        await make_store().write(render(records))
        client.get_spreadsheet.return_value.duplicate_sheet.assert_not_called()

    async def test_backup_copies_the_worksheet(self, make_store, client, records):
        await make_store(backup_enabled=True, backup_prefix="Backup").write(render(records))

        duplicate = client.get_spreadsheet.return_value.duplicate_sheet
        duplicate.assert_called_once()
        assert duplicate.call_args.kwargs["source_sheet_id"] == 42
        assert duplicate.call_args.kwargs["new_sheet_name"].startswith("Backup ")

    async def test_only_newest_backups_are_kept(self, make_store, client, worksheet, records):
        def backup_sheet(sheet_id, title):
            sheet = MagicMock()
            sheet.id = sheet_id
            sheet.title = title
            return sheet

        worksheet.title = "Backup log"
        oldest = backup_sheet(1, "Backup 2026-10-01 080000")
        older = backup_sheet(2, "Backup 2026-10-02 080000")
        newer = backup_sheet(3, "Backup 2026-10-03 080000")
        newest = backup_sheet(4, "Backup 2026-10-04 080000")
        unrelated = backup_sheet(5, "Budget 2026")
        spreadsheet = client.get_spreadsheet.return_value
        spreadsheet.worksheets.return_value = [newest, worksheet, oldest, unrelated, newer, older]

        store = make_store(worksheet_name="Backup log", backup_enabled=True, backup_keep=2)
        await store.write(render(records))

        deleted = [c.args[0] for c in spreadsheet.del_worksheet.call_args_list]
        assert deleted == [oldest, older]

    async def test_prune_failure_is_logged_not_raised(self, make_store, client, audit_logger, records):
        spreadsheet = client.get_spreadsheet.return_value
        spreadsheet.worksheets.side_effect = RuntimeError("rate limited")

        location = await make_store(backup_enabled=True).write(render(records))

        assert location.view_url.endswith("#gid=42")
        assert audit_logger.log.call_args.args[0].event_type == AuditEventType.BACKUP_FAILED

    async def test_backup_failure_does_not_fail_the_write(
        self, make_store, client, audit_logger, records
    ):
        spreadsheet = client.get_spreadsheet.return_value
        spreadsheet.duplicate_sheet.side_effect = RuntimeError("too many sheets")

        location = await make_store(backup_enabled=True).write(render(records))

        assert location.view_url.endswith("#gid=42")
        event = audit_logger.log.call_args.args[0]
        assert event.event_type == AuditEventType.BACKUP_FAILED
        assert "too many sheets" in event.error_message


class TestLocation:
    """Tests for document links."""

    async def test_location_of_existing_sheet(self, make_store):
        location = await make_store().location()
        assert location.view_url.endswith("/edit#gid=42")

    async def test_location_without_sheet(self, make_store, client):
        client.find_worksheet.return_value = None
        location = await make_store().location()
        assert location.view_url.endswith("/edit")

    def test_name_includes_worksheet(self, make_store):
        assert make_store(worksheet_name="Ledger").name == "sheet-123/Ledger"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
