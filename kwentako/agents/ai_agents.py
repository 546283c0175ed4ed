"""
AI Agents for KwentaKo

DESIGN DECISION: The model is an EXTRACTOR, not a bookkeeper.
It turns one free-form message into a list of {description, amount, category}.
It never sees the document, never computes totals, never picks the date.

CRITICAL BOUNDARIES:

1. EXPENSE EXTRACTION AGENT:
   - CAN: Split a message into separate expenses and categorize them
   - CANNOT: Invent categories outside the fixed set (normalized to Other)
   - CANNOT: Decide the date (stamped locally at extraction time)
   - MUST: Degrade to the heuristic parser when Gemini stays overloaded

Failure handling:
- Empty input → EmptyInputError before any model call
- Transient transport failure → retried with exponential backoff,
  then the heuristic parser answers instead
- Anything else (bad JSON, schema violation, auth, ...) → raised as is
"""

import json
from datetime import datetime
from typing import Callable, Optional

from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from kwentako.agents.heuristics import HeuristicExpenseParser
from kwentako.agents.transport import ExpenseTransport, TransportError
from kwentako.config.settings import GeminiSettings
from kwentako.ledger.document import format_capture_date
from kwentako.models.expense import ExpenseCategory, ExpenseRecord, ExtractedExpense


TRUNCATION_MARKER = " …[truncated]"


class ExtractionError(Exception):
    """Base exception for extraction errors."""
    pass


class EmptyInputError(ExtractionError):
    """The message had no text worth sending to the model."""
    pass


class ResponseFormatError(ExtractionError):
    """The model answered, but not with a JSON array of expenses."""
    pass


class ExtractionOutcome(BaseModel):
    """What one extraction produced, and how."""

    records: list[ExpenseRecord] = Field(default_factory=list)
    used_fallback: bool = False
    attempts: int = Field(default=0, ge=0)
    error_message: Optional[str] = None


_RESPONSE_ADAPTER = TypeAdapter(list[ExtractedExpense])


def _is_transient(error: BaseException) -> bool:
    return isinstance(error, TransportError) and error.is_transient


def build_prompt(text: str) -> str:
    """Embed the user's message in the fixed extraction instructions."""
    categories = ", ".join(category.value for category in ExpenseCategory)
    return f"""You are an expert financial assistant operating in the Philippines.
Analyze the following user input and extract all separate expenses.
Assume all currency is in Philippine Peso (PHP) unless otherwise specified.

For each expense return:
- description: a brief description, e.g. 'Lunch at Jollibee' or 'Taxi fare'
- amount: the numerical value of the expense
- category: one of {categories}

If the input contains no expenses, return an empty array.

Input: "{text}"
"""


class ExpenseExtractionAgent:
    """
    Turns free text into ExpenseRecords.

    RESPONSIBILITIES:
    - Validate and truncate input before it costs anything
    - Call the model through an ExpenseTransport, retrying transient failures
    - Validate the JSON the model returns
    - Fall back to HeuristicExpenseParser when retries run out

    BOUNDARIES:
    - NEVER persists data
    - NEVER retries a permanent failure
    """

    def __init__(
        self,
        transport: ExpenseTransport,
        settings: GeminiSettings,
        fallback_parser: Optional[HeuristicExpenseParser] = None,
        timezone: str = "Asia/Manila",
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self._transport = transport
        self._settings = settings
        self._fallback = fallback_parser or HeuristicExpenseParser()
        self._timezone = timezone
        self._clock = clock

    def prepare_input(self, text: Optional[str]) -> str:
        """
        Trim and bound the input.

        Raises:
            EmptyInputError: if nothing is left after trimming
        """
        cleaned = (text or "").strip()
        if not cleaned:
            raise EmptyInputError("Please send a description of your expense, e.g. 'Lunch 150'.")

        limit = self._settings.max_input_chars
        if len(cleaned) > limit:
            cleaned = cleaned[:limit] + TRUNCATION_MARKER
        return cleaned

    def _capture_date(self) -> str:
        now = self._clock() if self._clock else None
        return format_capture_date(self._timezone, now)

    def _parse_response(self, raw: str, date: str) -> list[ExpenseRecord]:
        """Validate the model's JSON and stamp each expense with today's date."""
        text = (raw or "").strip()

        # Find the JSON array in the response (tolerates code fences)
        start = text.find("[")
        end = text.rfind("]") + 1
        if start < 0 or end <= start:
            raise ResponseFormatError(f"Expected a JSON array, got: {text[:200]!r}")

        try:
            data = json.loads(text[start:end])
            expenses = _RESPONSE_ADAPTER.validate_python(data)
        except json.JSONDecodeError as e:
            raise ResponseFormatError(f"Model returned invalid JSON: {e}") from e
        except ValidationError as e:
            raise ResponseFormatError(f"Model response does not match the expense schema: {e}") from e

        return [expense.to_record(date) for expense in expenses]

    async def extract_with_source(self, text: Optional[str]) -> ExtractionOutcome:
        """
        Extract expenses and report whether the heuristic fallback was used.

        Raises:
            EmptyInputError: for empty input
            ResponseFormatError: for a malformed model response
            TransportError: for a permanent transport failure
        """
        prepared = self.prepare_input(text)
        prompt = build_prompt(prepared)
        date = self._capture_date()
        attempts = 0

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._settings.max_attempts),
            wait=wait_exponential(
                multiplier=self._settings.backoff_multiplier,
                max=self._settings.backoff_max,
            ),
            retry=retry_if_exception(_is_transient),
        )

        try:
            async for attempt in retrying:
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    raw = await self._transport.generate(prompt)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            source = text.strip()[:self._settings.max_input_chars]
            return ExtractionOutcome(
                records=[self._fallback.parse(source, date)],
                used_fallback=True,
                attempts=attempts,
                error_message=str(last_error),
            )

        return ExtractionOutcome(
            records=self._parse_response(raw, date),
            attempts=attempts,
        )

    async def extract(self, text: Optional[str]) -> list[ExpenseRecord]:
        """Extract expenses from text. An empty list means nothing was found."""
        outcome = await self.extract_with_source(text)
        return outcome.records
