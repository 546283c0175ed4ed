"""
Expense Document Codec

The whole expense history is one CSV document:

    # KwentaKo Expense Log
    # Generated: 2026-10-18T09:15:00+08:00
    # Total Amount: 265.00
    # Total Records: 2
    # Food: 185.00 (69.8%)
    # Transportation: 80.00 (30.2%)
    # ...one line per category...
    Date,Description,Amount (PHP),Category
    10/18/2026,"Lunch at Jollibee",185,Food
    10/18/2026,"Taxi fare",80,Transportation

DESIGN DECISION: The document is the unit of storage.
Every write replaces it with preamble + header + all existing rows + new rows,
so `parse` must read back exactly what `render` wrote (round trip), and
must tolerate rows it did not write (hand edits, corrupt amounts).
"""

import csv
import io
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional, Sequence
from zoneinfo import ZoneInfo

from kwentako.models.expense import (
    COMMENT_MARKER,
    HEADER_FIRST_CELL,
    ExpenseCategory,
    ExpenseRecord,
)


DEFAULT_CURRENCY = "PHP"


def header_fields(currency_code: str = DEFAULT_CURRENCY) -> list[str]:
    """Column titles, in the fixed field order."""
    return ["Date", "Description", f"Amount ({currency_code})", "Category"]


def header_line(currency_code: str = DEFAULT_CURRENCY) -> str:
    return ",".join(header_fields(currency_code))


def format_capture_date(tz_name: str = "Asia/Manila", now: Optional[datetime] = None) -> str:
    """
    Today's date in the en-PH short form, e.g. 10/18/2026.

    This is the day the expense was captured, not the day it happened.
    """
    now = now or datetime.now(timezone.utc)
    local = now.astimezone(ZoneInfo(tz_name))
    return f"{local.month}/{local.day}/{local.year}"


# =============================================================================
# PARSE
# =============================================================================

def _parse_amount(raw: str) -> Optional[Decimal]:
    """Amount cell to Decimal; None for anything that is not a finite, non-negative number."""
    try:
        amount = Decimal(raw.strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite() or amount < 0:
        return None
    return amount


def _is_header(row: Sequence[str]) -> bool:
    return row[0].strip().lower() == HEADER_FIRST_CELL


def parse(text: str) -> list[ExpenseRecord]:
    """
    Parse a document into records, in document order.

    Skipped silently (never fatal):
    - comment / metadata lines starting with '#'
    - the header row
    - blank rows and rows with fewer than three fields
    - rows whose amount is not a finite, non-negative number

    A missing, blank or unknown category becomes Other.
    """
    records: list[ExpenseRecord] = []
    if not text:
        return records

    for row in csv.reader(io.StringIO(text)):
        if not row or not any(cell.strip() for cell in row):
            continue
        if row[0].lstrip().startswith(COMMENT_MARKER):
            continue
        if _is_header(row):
            continue
        if len(row) < 3:
            continue

        amount = _parse_amount(row[2])
        if amount is None:
            continue

        records.append(ExpenseRecord(
            date=row[0],
            description=row[1],
            amount=amount,
            category=row[3] if len(row) > 3 else None,
        ))

    return records


# =============================================================================
# RENDER
# =============================================================================

def _quote(value: str) -> str:
    return '"' + value.replace('"', '""') + '"'


def _plain(value: str) -> str:
    """Quote only when the value would otherwise break the row."""
    if any(ch in value for ch in ',"\r\n') or value != value.strip():
        return _quote(value)
    return value


def _format_amount(amount: Decimal) -> str:
    # Fixed-point, never scientific notation
    return format(amount, "f")


def category_totals(records: Iterable[ExpenseRecord]) -> dict[ExpenseCategory, Decimal]:
    """Sum per category for every category in enum order, 0 when unused."""
    totals = {category: Decimal("0") for category in ExpenseCategory}
    for record in records:
        totals[record.category] += record.amount
    return totals


def render(
    records: Sequence[ExpenseRecord],
    currency_code: str = DEFAULT_CURRENCY,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    Render the full document: metadata preamble, header, one line per record.

    The description is always double-quoted. Category percentages are 0.0%
    across the board when the total is zero.
    """
    generated_at = generated_at or datetime.now(timezone.utc)
    totals = category_totals(records)
    grand_total = sum(totals.values(), Decimal("0"))

    lines = [
        f"{COMMENT_MARKER} KwentaKo Expense Log",
        f"{COMMENT_MARKER} Generated: {generated_at.isoformat()}",
        f"{COMMENT_MARKER} Total Amount: {grand_total:.2f}",
        f"{COMMENT_MARKER} Total Records: {len(records)}",
    ]
    for category, amount in totals.items():
        share = (amount / grand_total * 100) if grand_total else Decimal("0")
        lines.append(f"{COMMENT_MARKER} {category.value}: {amount:.2f} ({share:.1f}%)")

    lines.append(header_line(currency_code))

    for record in records:
        lines.append(",".join([
            _plain(record.date),
            _quote(record.description),
            _format_amount(record.amount),
            record.category.value,
        ]))

    return "\n".join(lines) + "\n"


def initial_document(currency_code: str = DEFAULT_CURRENCY) -> str:
    """The canonical document for a store that has never been written."""
    return render([], currency_code=currency_code)


# =============================================================================
# MERGE
# =============================================================================

def merge(
    existing: Sequence[ExpenseRecord],
    new: Sequence[ExpenseRecord],
) -> list[ExpenseRecord]:
    """Existing records first, in their original order, then new ones in extraction order."""
    return [*existing, *new]
