"""
Shared fixtures for KwentaKo tests.

No real API calls in tests: see tests/fakes.py for the doubles.
"""

from typing import Optional

import pytest

from kwentako.agents import ExpenseExtractionAgent, ExpenseTransport
from kwentako.audit import AuditLogger
from kwentako.config import AppSettings, GeminiSettings
from kwentako.orchestrator import AppComponents, DocumentLocks, ExpenseFlow
from kwentako.services.storage import DocumentStore

from tests.fakes import FIXED_NOW


@pytest.fixture
def gemini_settings() -> GeminiSettings:
    return GeminiSettings(
        api_key="test-key",
        max_attempts=3,
        backoff_multiplier=0,
        backoff_max=0,
    )


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(debug_mode=False)


@pytest.fixture
def make_agent(gemini_settings):
    def _make(transport: ExpenseTransport, settings: Optional[GeminiSettings] = None) -> ExpenseExtractionAgent:
        return ExpenseExtractionAgent(
            transport=transport,
            settings=settings or gemini_settings,
            clock=lambda: FIXED_NOW,
        )
    return _make


@pytest.fixture
def make_flow(make_agent):
    def _make(transport: ExpenseTransport, store: DocumentStore) -> ExpenseFlow:
        return ExpenseFlow(
            extraction_agent=make_agent(transport),
            store=store,
            audit_logger=AuditLogger(),
            locks=DocumentLocks(),
        )
    return _make


@pytest.fixture
def make_components(make_flow, app_settings):
    def _make(transport=None, store=None, settings: Optional[AppSettings] = None) -> AppComponents:
        flow = None
        if transport is not None and store is not None:
            flow = make_flow(transport, store)
        return AppComponents(
            flow=flow,
            app_settings=settings or app_settings,
            audit_logger=AuditLogger(),
            unavailable={} if flow is not None else {"gemini": "GEMINI_API_KEY missing"},
        )
    return _make
