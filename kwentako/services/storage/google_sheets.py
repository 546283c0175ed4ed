"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the storage backend because:
1. Users can open their expense log directly in Sheets
2. No database setup required
3. Built-in version history (Google's infrastructure)
4. Easy to export as CSV or Excel

The expense document lives in one worksheet: every CSV line of the
document is one row, every field one cell.

TRADEOFFS:
- No transactions across API calls. A write is therefore ONE batch_update
  request (grow grid + clear + write rows), which Sheets applies atomically:
  a concurrent reader sees either the old document or the new one.
- Cells are written as plain strings so that what we read back is
  byte-for-byte what we rendered.
"""

import asyncio
import csv
import io
from datetime import datetime, timezone
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from kwentako.audit import AuditLogger
from kwentako.config.settings import GoogleSheetsSettings
from kwentako.ledger.document import initial_document
from kwentako.models.audit import AuditEventBuilder
from kwentako.models.expense import DocumentLocation
from kwentako.services.storage.interface import (
    ConnectionError,
    DocumentStore,
    NotFoundError,
    StorageError,
)


SHEETS_URL = "https://docs.google.com/spreadsheets/d/{spreadsheet_id}"

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]


def rows_to_text(rows: list[list[str]]) -> str:
    """Serialize worksheet values back into CSV document text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in rows:
        cells = list(row)
        # get_all_values pads every row to the sheet width
        while cells and cells[-1] == "":
            cells.pop()
        if cells:
            writer.writerow(cells)
    return buffer.getvalue()


def text_to_rows(text: str) -> list[list[str]]:
    """Split CSV document text into rectangular worksheet rows."""
    rows = [row for row in csv.reader(io.StringIO(text)) if row]
    width = max((len(row) for row in rows), default=0)
    return [row + [""] * (width - len(row)) for row in rows]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings

    @property
    def spreadsheet_id(self) -> str:
        return self._settings.spreadsheet_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=SCOPES,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise NotFoundError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def find_worksheet(self, title: str) -> Optional[gspread.Worksheet]:
        """
        Look the worksheet up by title on every call.

        Never cached: the sheet may have been replaced or edited by hand.
        """
        try:
            return self.get_spreadsheet().worksheet(title)
        except gspread.WorksheetNotFound:
            return None

    def get_or_create_worksheet(self, title: str, rows: int, cols: int) -> gspread.Worksheet:
        """Get the worksheet, creating an empty one if needed."""
        sheet = self.find_worksheet(title)
        if sheet is None:
            sheet = self.get_spreadsheet().add_worksheet(
                title=title,
                rows=max(rows, 1),
                cols=max(cols, 1),
            )
        return sheet


class GoogleSheetsDocumentStore(DocumentStore):
    """
    Google Sheets implementation of the expense document.

    The worksheet keeps a stable id (and so a stable URL); each write
    replaces its contents in a single atomic batch_update.
    """

    def __init__(
        self,
        client: GoogleSheetsClient,
        settings: GoogleSheetsSettings,
        currency_code: str = "PHP",
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._client = client
        self._settings = settings
        self._currency_code = currency_code
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def name(self) -> str:
        return f"{self._client.spreadsheet_id}/{self._settings.worksheet_name}"

    def _location_for(self, sheet_id: Optional[int]) -> DocumentLocation:
        base = SHEETS_URL.format(spreadsheet_id=self._client.spreadsheet_id)
        if sheet_id is None:
            return DocumentLocation(
                view_url=f"{base}/edit",
                download_url=f"{base}/export?format=xlsx",
            )
        return DocumentLocation(
            view_url=f"{base}/edit#gid={sheet_id}",
            download_url=f"{base}/export?format=csv&gid={sheet_id}",
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    @retry(
        retry=retry_if_exception_type(gspread.exceptions.APIError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_values(self, sheet: gspread.Worksheet) -> list[list[str]]:
        return sheet.get_all_values()

    def _read_sync(self) -> str:
        try:
            sheet = self._client.find_worksheet(self._settings.worksheet_name)
            if sheet is None:
                return initial_document(self._currency_code)
            values = self._fetch_values(sheet)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read expense document: {e}") from e

        text = rows_to_text(values)
        if not text.strip():
            return initial_document(self._currency_code)
        return text

    async def read(self) -> str:
        """Fetch the worksheet fresh and return it as document text."""
        return await asyncio.to_thread(self._read_sync)

    # ------------------------------------------------------------------
    # Write
    # ------------------------------------------------------------------

    def _replace_requests(self, sheet: gspread.Worksheet, rows: list[list[str]]) -> list[dict]:
        """Grow the grid, clear every old value, write the new rows from A1."""
        width = len(rows[0]) if rows else 0
        return [
            {
                "updateSheetProperties": {
                    "properties": {
                        "sheetId": sheet.id,
                        "gridProperties": {
                            "rowCount": max(sheet.row_count, len(rows), 1),
                            "columnCount": max(sheet.col_count, width, 1),
                        },
                    },
                    "fields": "gridProperties.rowCount,gridProperties.columnCount",
                }
            },
            {
                # No rows + a field mask clears that field across the range
                "updateCells": {
                    "range": {"sheetId": sheet.id},
                    "fields": "userEnteredValue",
                }
            },
            {
                "updateCells": {
                    "start": {"sheetId": sheet.id, "rowIndex": 0, "columnIndex": 0},
                    "rows": [
                        {"values": [{"userEnteredValue": {"stringValue": cell}} for cell in row]}
                        for row in rows
                    ],
                    "fields": "userEnteredValue",
                }
            },
        ]

    def _prune_backups(self, spreadsheet: gspread.Spreadsheet, live_sheet_id: int) -> None:
        """Delete all but the newest `backup_keep` backup worksheets."""
        prefix = f"{self._settings.backup_prefix} "
        # Timestamped titles sort chronologically
        backups = sorted(
            (
                ws for ws in spreadsheet.worksheets()
                if ws.title.startswith(prefix) and ws.id != live_sheet_id
            ),
            key=lambda ws: ws.title,
        )
        for old in backups[:-self._settings.backup_keep]:
            spreadsheet.del_worksheet(old)

    def _backup(self, sheet: gspread.Worksheet) -> None:
        """Timestamped copy of the new snapshot. Failure is logged, never raised."""
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H%M%S")
        title = f"{self._settings.backup_prefix} {stamp}"
        try:
            spreadsheet = self._client.get_spreadsheet()
            spreadsheet.duplicate_sheet(
                source_sheet_id=sheet.id,
                new_sheet_name=title,
            )
            self._prune_backups(spreadsheet, sheet.id)
        except Exception as e:
            self._audit_logger.log(AuditEventBuilder.backup_failed(
                backup_title=title,
                error_message=str(e),
            ))

    def _write_sync(self, full_text: str) -> DocumentLocation:
        rows = text_to_rows(full_text)
        try:
            sheet = self._client.get_or_create_worksheet(
                self._settings.worksheet_name,
                rows=len(rows),
                cols=len(rows[0]) if rows else 1,
            )
            self._client.get_spreadsheet().batch_update(
                {"requests": self._replace_requests(sheet, rows)}
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write expense document: {e}") from e

        if self._settings.backup_enabled:
            self._backup(sheet)

        return self._location_for(sheet.id)

    async def write(self, full_text: str) -> DocumentLocation:
        """Replace the worksheet contents with the given document."""
        return await asyncio.to_thread(self._write_sync, full_text)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    def _location_sync(self) -> DocumentLocation:
        try:
            sheet = self._client.find_worksheet(self._settings.worksheet_name)
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to resolve expense document: {e}") from e
        return self._location_for(sheet.id if sheet is not None else None)

    async def location(self) -> DocumentLocation:
        return await asyncio.to_thread(self._location_sync)
