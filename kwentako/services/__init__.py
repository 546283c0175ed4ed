"""Services package."""

from kwentako.services.storage import (
    ConnectionError,
    DocumentStore,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    NotFoundError,
    StorageError,
)

__all__ = [
    "ConnectionError",
    "DocumentStore",
    "GoogleSheetsClient",
    "GoogleSheetsDocumentStore",
    "NotFoundError",
    "StorageError",
]
