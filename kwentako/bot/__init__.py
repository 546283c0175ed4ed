"""Telegram bot package."""

from kwentako.bot.filters import is_probable_expense, rejection_reason
from kwentako.bot.handler import ExpenseMessageHandler, RecentMessageCache

__all__ = [
    "ExpenseMessageHandler",
    "RecentMessageCache",
    "is_probable_expense",
    "rejection_reason",
]
