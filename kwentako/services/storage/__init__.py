"""
Storage Services Package

Provides the abstract document store interface and its Google Sheets
implementation.
"""

from kwentako.services.storage.interface import (
    ConnectionError,
    DocumentStore,
    NotFoundError,
    StorageError,
)
from kwentako.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    rows_to_text,
    text_to_rows,
)

__all__ = [
    # Interfaces
    "DocumentStore",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # Google Sheets implementation
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "rows_to_text",
    "text_to_rows",
]
