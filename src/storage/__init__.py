"""Persistence: SQLite item log and feedback CSV and Parquet files."""

from src.storage.errors import FeedbackFileError, StorageError, StoreConnectionError
from src.storage.feedback_csv import (
    FEEDBACK_CSV_HEADER,
    read_feedback_csv,
    write_feedback_csv,
)
from src.storage.feedback_parquet import (
    read_feedback_file,
    read_feedback_parquet,
    write_feedback_parquet,
)
from src.storage.store import InsertResult, ItemStore, decode_error


__all__ = [
    "FEEDBACK_CSV_HEADER",
    "FeedbackFileError",
    "InsertResult",
    "ItemStore",
    "StorageError",
    "StoreConnectionError",
    "decode_error",
    "read_feedback_csv",
    "read_feedback_file",
    "read_feedback_parquet",
    "write_feedback_csv",
    "write_feedback_parquet",
]
