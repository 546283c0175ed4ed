"""
KwentaKo - Source Package

A Telegram expense logger for Filipino households. Users send free-form
expense text, Gemini turns it into structured records, and every record
is appended to a single shared expense document in Google Sheets.

DESIGN PRINCIPLES:
1. The AI extracts → the ledger computes → the store persists
2. A flaky AI never loses a user's message (heuristic fallback)
3. Every inbound message gets exactly one reply
4. Every step is logged with a correlation ID
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "KwentaKo Team"
