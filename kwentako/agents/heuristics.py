"""
Heuristic Expense Parser

Used when Gemini stays unavailable after every retry. It is deliberately
simple and deterministic: find one amount, strip it from the text to get
the description, and pick a category by keyword.

DESIGN DECISION: We use keyword matching rather than anything clever because:
1. It must never fail (it is the last line of defense)
2. The result is easy to explain to the user
3. The AI path handles the hard cases when it is up
"""

import re
from decimal import Decimal, InvalidOperation
from typing import Optional

from kwentako.models.expense import ExpenseCategory, ExpenseRecord


_NUMBER = r"(?P<amount>\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)"
_CURRENCY_SUFFIX = r"(?:\s*(?:php|pesos?)\b)?"

# Tried in order; the first that matches wins
AMOUNT_PATTERNS = [
    # "paid 250 for taxi", "Lunch ₱185", "total: php 90", "load p150"
    re.compile(
        r"(?:\b(?:php|pesos?|paid|spent|cost|price|amount|total|for)\b|\bp(?=\s*\d)|₱)"
        r"\s*[:=]?\s*₱?\s*" + _NUMBER + _CURRENCY_SUFFIX,
        re.IGNORECASE,
    ),
    # "80 taxi", "₱120 coffee"
    re.compile(
        r"^\s*₱?\s*" + _NUMBER + _CURRENCY_SUFFIX + r"\s+(?=\D)",
        re.IGNORECASE,
    ),
    # "taxi fare 80", "load - 100 pesos"
    re.compile(
        r"[\s:=\-]*₱?\s*" + _NUMBER + _CURRENCY_SUFFIX + r"\s*[.!]?\s*$",
        re.IGNORECASE,
    ),
]

CATEGORY_KEYWORDS: dict[ExpenseCategory, tuple[str, ...]] = {
    ExpenseCategory.FOOD: (
        "lunch", "dinner", "breakfast", "brunch", "meal", "food", "snack", "snacks",
        "merienda", "coffee", "restaurant", "jollibee", "mcdo", "mcdonalds",
        "grocery", "groceries", "rice", "drinks",
    ),
    ExpenseCategory.TRANSPORTATION: (
        "taxi", "bus", "fare", "grab", "jeep", "jeepney", "tricycle", "trike",
        "mrt", "lrt", "train", "gas", "gasoline", "fuel", "diesel", "parking",
        "toll", "angkas", "uber",
    ),
    ExpenseCategory.SUPPLIES: (
        "supplies", "pen", "pens", "paper", "notebook", "ink", "printer",
        "stationery", "office", "folder",
    ),
    ExpenseCategory.UTILITIES: (
        "electricity", "electric", "meralco", "water", "internet", "wifi",
        "pldt", "converge", "load", "bill", "bills", "rent",
    ),
    ExpenseCategory.PERSONAL: (
        "haircut", "salon", "clothes", "shirt", "shoes", "medicine", "gym",
        "movie", "shampoo", "personal", "gift",
    ),
}

_CATEGORY_PATTERNS = [
    (category, re.compile(r"\b(?:" + "|".join(map(re.escape, words)) + r")\b", re.IGNORECASE))
    for category, words in CATEGORY_KEYWORDS.items()
]

_EDGE_PUNCTUATION = " \t\r\n,;:-–—=."


def guess_category(text: str) -> ExpenseCategory:
    """First category (in table order) with a keyword in the text; OTHER if none."""
    for category, pattern in _CATEGORY_PATTERNS:
        if pattern.search(text):
            return category
    return ExpenseCategory.OTHER


def find_amount(text: str) -> Optional[tuple[Decimal, str]]:
    """
    Locate an amount in the text.

    Returns (amount, text_without_amount), or None if no pattern matched.
    """
    for pattern in AMOUNT_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        try:
            amount = Decimal(match.group("amount").replace(",", ""))
        except InvalidOperation:
            continue
        remainder = (text[:match.start()] + " " + text[match.end():])
        return amount, remainder
    return None


class HeuristicExpenseParser:
    """Deterministic, non-AI fallback. Always returns exactly one record."""

    def parse(self, text: str, date: str) -> ExpenseRecord:
        raw = text.strip()
        found = find_amount(raw)

        if found is None:
            amount = Decimal("0")
            description = raw
        else:
            amount, remainder = found
            description = " ".join(remainder.split()).strip(_EDGE_PUNCTUATION) or raw

        return ExpenseRecord(
            date=date,
            description=description,
            amount=amount,
            category=guess_category(raw),
        )
