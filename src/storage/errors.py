"""Exceptions for the storage layer."""

from src.news.errors import HemerotecaError


class StorageError(HemerotecaError):
    """Base exception for storage errors."""


class StoreConnectionError(StorageError):
    """Raised when the database is used before ``connect``."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class FeedbackFileError(StorageError):
    """Raised when a feedback file is missing columns or holds bad values."""
