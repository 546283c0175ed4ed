"""
Test doubles for the two external boundaries.

Gemini is replaced at the ExpenseTransport boundary and Google Sheets
at the DocumentStore boundary.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Union

from kwentako.agents import ExpenseTransport
from kwentako.ledger import initial_document
from kwentako.models.expense import DocumentLocation, ExpenseCategory, ExpenseRecord
from kwentako.services.storage import DocumentStore


# 02:00 UTC is 10:00 in Manila
FIXED_NOW = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)
FIXED_DATE = "10/18/2026"


class FakeTransport(ExpenseTransport):
    """Replays scripted responses; an exception in the script is raised."""

    def __init__(self, *responses: Union[str, BaseException]):
        self._responses = list(responses) or ["[]"]
        self.calls = 0
        self.prompts: list[str] = []

    async def generate(self, prompt: str) -> str:
        self.calls += 1
        self.prompts.append(prompt)
        item = self._responses[min(self.calls, len(self._responses)) - 1]
        if isinstance(item, BaseException):
            raise item
        return item


class InMemoryDocumentStore(DocumentStore):
    """Document store backed by a string; yields to the loop mid-read."""

    def __init__(self, text: Optional[str] = None, name: str = "memory/Expenses"):
        self.text = text
        self.writes = 0
        self._name = name
        self.read_error: Optional[Exception] = None
        self.write_error: Optional[Exception] = None

    @property
    def name(self) -> str:
        return self._name

    async def read(self) -> str:
        if self.read_error is not None:
            raise self.read_error
        snapshot = self.text
        # Let other tasks run between read and write
        await asyncio.sleep(0)
        return snapshot if snapshot is not None else initial_document()

    async def write(self, full_text: str) -> DocumentLocation:
        await asyncio.sleep(0)
        if self.write_error is not None:
            raise self.write_error
        self.text = full_text
        self.writes += 1
        return await self.location()

    async def location(self) -> DocumentLocation:
        return DocumentLocation(
            view_url="https://example.test/view",
            download_url="https://example.test/download.csv",
        )


def make_record(
    description: str,
    amount: str,
    category: ExpenseCategory = ExpenseCategory.OTHER,
    date: str = "10/17/2026",
) -> ExpenseRecord:
    return ExpenseRecord(
        date=date,
        description=description,
        amount=Decimal(amount),
        category=category,
    )
