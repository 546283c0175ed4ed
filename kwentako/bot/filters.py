"""
Inbound message filtering.

Decides which texts are worth sending to Gemini. Everything else gets
the static guidance reply without costing an API call.
"""

import re
from typing import Optional

from kwentako.agents.heuristics import guess_category
from kwentako.ledger.document import COMMENT_MARKER
from kwentako.models.expense import ExpenseCategory

GREETINGS = frozenset({
    "hi", "hello", "hey", "yo", "sup", "good morning", "good afternoon",
    "good evening", "thanks", "thank you", "ty", "ok", "okay", "salamat",
    "kumusta", "musta", "hello po", "hi po", "salamat po",
})

MIN_LENGTH = 3

_CSV_HEADER = re.compile(r"^\s*date\s*,\s*description\s*,\s*amount\b", re.IGNORECASE | re.MULTILINE)
_PREAMBLE_LINE = re.compile(rf"^\s*{re.escape(COMMENT_MARKER)}\s*(total amount|total records|generated):", re.IGNORECASE | re.MULTILINE)
_DIGIT = re.compile(r"\d")


def rejection_reason(text: Optional[str]) -> Optional[str]:
    """
    Why this text should not be treated as an expense, or None if it should.

    Rejected: empty text, /commands, very short strings, greetings,
    pasted copies of the expense document itself, and chatter with
    neither a number nor a category keyword.
    """
    if text is None or not text.strip():
        return "empty"

    stripped = text.strip()
    if stripped.startswith("/"):
        return "command"
    if len(stripped) < MIN_LENGTH:
        return "too short"

    normalized = re.sub(r"[^\w\s]", "", stripped.lower()).strip()
    if normalized in GREETINGS:
        return "greeting"

    if _CSV_HEADER.search(stripped) or _PREAMBLE_LINE.search(stripped):
        return "looks like exported CSV"

    if not _DIGIT.search(stripped) and guess_category(stripped) == ExpenseCategory.OTHER:
        return "no amount or keyword"

    return None


def is_probable_expense(text: Optional[str]) -> bool:
    return rejection_reason(text) is None
