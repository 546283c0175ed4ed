"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for the expense document.
This allows us to:
1. Swap Google Sheets for a blob store or a local file later
2. Use an in-memory store for testing
3. Keep the merge logic decoupled from storage implementation

The interface is intentionally tiny. The whole document is the unit of
storage: there is no per-record addressing, only read-everything and
replace-everything.
"""

from abc import ABC, abstractmethod

from kwentako.models.expense import DocumentLocation


class DocumentStore(ABC):
    """
    Abstract interface for the single shared expense document.

    Any storage implementation must implement these methods.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """
        Stable name of the document.

        Used as the key for the per-document lock around read...write.
        """
        pass

    @abstractmethod
    async def read(self) -> str:
        """
        Fetch the freshest full document text.

        A document that does not exist yet is NOT an error: the
        canonical initial document is returned instead.

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def write(self, full_text: str) -> DocumentLocation:
        """
        Replace the whole document.

        Readers must never observe a partially written document.

        Args:
            full_text: The complete rendered document

        Returns:
            Where the new snapshot can be viewed and downloaded

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def location(self) -> DocumentLocation:
        """Links to the current document snapshot."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
