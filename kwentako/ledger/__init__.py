"""
Ledger Package

Parsing, rendering, merging and summarizing the expense document.
"""

from kwentako.ledger.document import (
    COMMENT_MARKER,
    category_totals,
    format_capture_date,
    header_fields,
    header_line,
    initial_document,
    merge,
    parse,
    render,
)
from kwentako.ledger.summary import summarize

__all__ = [
    "COMMENT_MARKER",
    "category_totals",
    "format_capture_date",
    "header_fields",
    "header_line",
    "initial_document",
    "merge",
    "parse",
    "render",
    "summarize",
]
