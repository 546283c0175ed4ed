"""
Core Data Models for KwentaKo

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep the category set closed (never free text)
3. Be serializable for the expense document and for logging

DESIGN DECISION: Amounts are Decimal, never float.
A record written to the document and read back must compare equal,
and money should not pick up binary rounding noise along the way.
"""

from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using explicit categories rather than free text ensures
    consistent per-category totals. Anything unrecognized becomes OTHER.
    """
    FOOD = "Food"
    TRANSPORTATION = "Transportation"
    SUPPLIES = "Supplies"
    UTILITIES = "Utilities"
    PERSONAL = "Personal"
    OTHER = "Other"

    @classmethod
    def normalize(cls, value: Any) -> "ExpenseCategory":
        """Map any value to a category; unknown, blank or missing is OTHER."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.OTHER
        text = str(value).strip().lower()
        for category in cls:
            if category.value.lower() == text:
                return category
        return cls.OTHER


# First-cell markers the expense document reserves for non-data rows
COMMENT_MARKER = "#"
HEADER_FIRST_CELL = "date"


def _require_data_date(value: str) -> str:
    cell = value.strip()
    if cell.startswith(COMMENT_MARKER) or cell.lower() == HEADER_FIRST_CELL:
        raise ValueError(f"Date {value!r} would be read back as a comment or header row")
    return value


def _require_finite(value: Decimal) -> Decimal:
    if not value.is_finite():
        raise ValueError("Amount must be a finite number")
    return value


# =============================================================================
# EXPENSE RECORDS
# =============================================================================

class ExtractedExpense(BaseModel):
    """
    One expense as returned by the model.

    The model never supplies the date; it is stamped locally
    when the extraction is turned into an ExpenseRecord.
    """

    description: str = Field(
        ...,
        description="A brief description of the expense item, e.g. 'Lunch at Jollibee'"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="The numerical value of the expense in Philippine Peso"
    )
    category: ExpenseCategory = Field(
        default=ExpenseCategory.OTHER,
        description="The assigned expense category"
    )

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> ExpenseCategory:
        return ExpenseCategory.normalize(v)

    @field_validator("amount")
    @classmethod
    def amount_is_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)

    def to_record(self, date: str) -> "ExpenseRecord":
        """Stamp the capture date and produce the persisted record."""
        return ExpenseRecord(
            date=date,
            description=self.description,
            amount=self.amount,
            category=self.category,
        )


class ExpenseRecord(BaseModel):
    """
    One persisted expense.

    Records are created once per inbound message and never mutated.
    The document is append-only: records are only ever added at the end.
    """
    model_config = ConfigDict(frozen=True)

    date: str = Field(
        ...,
        description="Capture date in the en-PH short form (M/D/YYYY)"
    )
    description: str = Field(
        ...,
        description="Free-text label; may contain commas, quotes or newlines"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount in the configured currency. 0 means no amount was found"
    )
    category: ExpenseCategory = Field(
        default=ExpenseCategory.OTHER,
        description="Normalized expense category"
    )

    @field_validator("date")
    @classmethod
    def date_is_data_cell(cls, v: str) -> str:
        """A date like '# note' or 'Date' could not be told apart from the preamble or header."""
        return _require_data_date(v)

    @field_validator("category", mode="before")
    @classmethod
    def normalize_category(cls, v: Any) -> ExpenseCategory:
        return ExpenseCategory.normalize(v)

    @field_validator("amount")
    @classmethod
    def amount_is_finite(cls, v: Decimal) -> Decimal:
        return _require_finite(v)


# =============================================================================
# AGGREGATES AND RESULTS
# =============================================================================

class ExpenseSummary(BaseModel):
    """
    Aggregate statistics over the whole expense document.

    average_amount and top_category are None when there are no records;
    callers render the "no records" message instead of dividing by zero.
    """

    record_count: int = Field(default=0, ge=0)
    total_amount: Decimal = Field(default=Decimal("0"))
    average_amount: Optional[Decimal] = None
    top_category: Optional[ExpenseCategory] = None
    top_category_amount: Decimal = Field(default=Decimal("0"))

    # Insertion order = first time each category was seen
    category_totals: dict[ExpenseCategory, Decimal] = Field(default_factory=dict)

    @property
    def has_records(self) -> bool:
        return self.record_count > 0

    def to_report(
        self,
        currency_symbol: str = "₱",
        source_label: str = "Google Sheet",
        creator_name: Optional[str] = None,
    ) -> str:
        """Format the statistics as a plain-text chat message."""
        if not self.has_records:
            return "No expenses recorded yet."

        lines = [
            "📊 KwentaKo Statistics Summary",
            "---",
            f"• Total Expenses Recorded: {self.record_count}",
            f"• Total Spending (Lifetime): {currency_symbol}{self.total_amount:,.2f}",
            f"• Average Expense Amount: {currency_symbol}{self.average_amount:,.2f}",
            f"• Top Category: {self.top_category.value} "
            f"({currency_symbol}{self.top_category_amount:,.2f})",
            "",
            "Category Breakdown:",
        ]
        for category, amount in self.category_totals.items():
            lines.append(f"   - {category.value}: {currency_symbol}{amount:,.2f}")

        lines.append("")
        lines.append(f"📁 Data Source: {source_label}")
        if creator_name:
            lines.append(f"Created by: {creator_name}")
        return "\n".join(lines)


class DocumentLocation(BaseModel):
    """Where the current document snapshot can be viewed and downloaded."""

    view_url: str
    download_url: str


class SaveResult(BaseModel):
    """Outcome of merging one message's expenses into the document."""

    new_count: int = Field(ge=0)
    new_subtotal: Decimal
    grand_total: Decimal
    total_count: int = Field(ge=0)
    location: Optional[DocumentLocation] = None
    used_fallback: bool = False


# =============================================================================
# INBOUND / OUTBOUND MESSAGES
# =============================================================================

class InboundMessage(BaseModel):
    """One text message received from Telegram."""
    model_config = ConfigDict(frozen=True)

    sender_id: int
    chat_id: int
    message_id: int
    text: Optional[str] = None

    @property
    def dedup_key(self) -> tuple[int, int]:
        return (self.chat_id, self.message_id)


class BotReply(BaseModel):
    """The single reply produced for an inbound message."""

    text: str
    is_error: bool = False
