"""
Expense Statistics

DESIGN DECISION: Statistics are DETERMINISTIC and computed from the
parsed document only. The AI never sees or produces totals.
"""

from decimal import Decimal
from typing import Sequence

from kwentako.models.expense import ExpenseCategory, ExpenseRecord, ExpenseSummary


def summarize(records: Sequence[ExpenseRecord]) -> ExpenseSummary:
    """
    Aggregate statistics over all records.

    - Top category is the one with the highest summed amount; on a tie
      the category seen first in the document wins.
    - With no records the summary is empty (no average is computed).
    """
    if not records:
        return ExpenseSummary()

    total = Decimal("0")
    totals: dict[ExpenseCategory, Decimal] = {}
    for record in records:
        total += record.amount
        totals[record.category] = totals.get(record.category, Decimal("0")) + record.amount

    top_category = None
    top_amount = Decimal("0")
    for category, amount in totals.items():
        # Strict comparison keeps the first-seen category on ties
        if top_category is None or amount > top_amount:
            top_category, top_amount = category, amount

    return ExpenseSummary(
        record_count=len(records),
        total_amount=total,
        average_amount=total / len(records),
        top_category=top_category,
        top_category_amount=top_amount,
        category_totals=totals,
    )
