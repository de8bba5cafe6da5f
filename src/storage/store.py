"""SQLite log of processed news items."""

import sqlite3
import time
import uuid
from collections.abc import Generator, Iterable
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

import structlog

from src.news.errors import PipelineError, PipelineErrorParseError
from src.news.models import NewsItem
from src.storage.errors import StoreConnectionError


logger = structlog.get_logger()

_CREATE_TABLE = """
CREATE TABLE IF NOT EXISTS news_item (
    id              INTEGER PRIMARY KEY,
    channel         TEXT NOT NULL,
    title           TEXT NOT NULL,
    link            TEXT NOT NULL UNIQUE,
    description     TEXT NOT NULL,
    creators        TEXT,
    pub_date        TEXT,
    categories      TEXT,
    keywords        TEXT,
    clean_content   TEXT,
    error           TEXT
)
"""

_COLUMNS = (
    "channel",
    "title",
    "link",
    "description",
    "creators",
    "pub_date",
    "categories",
    "keywords",
    "clean_content",
    "error",
)


@dataclass(frozen=True)
class InsertResult:
    """Outcome of an insert batch.

    Attributes:
        inserted: Rows written.
        duplicates: Items skipped because their link was already stored.
    """

    inserted: int
    duplicates: int


def decode_error(value: str | None) -> PipelineError | None:
    """Restore a stored pipeline error.

    Args:
        value: Stored text (NULL and the literal ``None`` mean no error).

    Returns:
        Decoded error; Unknown when the text is not a known variant.
    """
    if value is None or value == "None":
        return None
    try:
        return PipelineError.from_text(value)
    except PipelineErrorParseError:
        logger.warning("stored_error_unreadable", value=value)
        return PipelineError.unknown()


class ItemStore:
    """SQLite store for news items, unique by link.

    Uses WAL mode. The table is created on connect.
    """

    def __init__(self, db_path: Path | str, run_id: str | None = None) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite file (``:memory:`` for tests).
            run_id: Optional run ID for logging context.
        """
        self._db_path = str(db_path)
        self._conn: sqlite3.Connection | None = None
        self._log = logger.bind(
            component="store",
            run_id=run_id or str(uuid.uuid4()),
            db_path=self._db_path,
        )

    @property
    def is_connected(self) -> bool:
        """Check if connected to database."""
        return self._conn is not None

    def connect(self) -> None:
        """Open the database and create the table if needed."""
        if self._conn is not None:
            return

        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)

        self._conn = sqlite3.connect(self._db_path)
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute(_CREATE_TABLE)
        self._conn.commit()
        self._log.info("database_connected")

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None
            self._log.info("database_closed")

    def __enter__(self) -> "ItemStore":
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(
        self,
        exc_type: type | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        """Context manager exit."""
        self.close()

    def _ensure_connected(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StoreConnectionError("Database not connected. Call connect() first.")
        return self._conn

    @contextmanager
    def _transaction(self, operation: str) -> Generator[sqlite3.Connection]:
        conn = self._ensure_connected()
        start_ns = time.perf_counter_ns()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            self._log.error(
                "transaction_failed",
                op=operation,
                duration_ms=round((time.perf_counter_ns() - start_ns) / 1_000_000, 2),
            )
            raise

    def insert_items(self, items: Iterable[NewsItem]) -> InsertResult:
        """Insert items, skipping links that are already stored.

        Args:
            items: Items to store.

        Returns:
            InsertResult with inserted and duplicate counts.
        """
        inserted = 0
        duplicates = 0
        placeholders = ", ".join(f":{column}" for column in _COLUMNS)
        sql = (
            f"INSERT OR IGNORE INTO news_item ({', '.join(_COLUMNS)}) "  # noqa: S608
            f"VALUES ({placeholders})"
        )

        with self._transaction("insert_items") as conn:
            for item in items:
                cursor = conn.execute(sql, self._to_row(item))
                if cursor.rowcount:
                    inserted += 1
                else:
                    duplicates += 1
                    self._log.debug("duplicate_item_skipped", link=item.link)

        self._log.info("items_inserted", inserted=inserted, duplicates=duplicates)
        return InsertResult(inserted=inserted, duplicates=duplicates)

    def query_all(self) -> list[NewsItem]:
        """Read every stored item in insertion order.

        Returns:
            Stored items; relevance is not persisted and comes back None.
        """
        conn = self._ensure_connected()
        rows = conn.execute(
            f"SELECT {', '.join(_COLUMNS)} FROM news_item ORDER BY id"  # noqa: S608
        ).fetchall()
        return [self._from_row(row) for row in rows]

    def count(self) -> int:
        """Number of stored items."""
        conn = self._ensure_connected()
        return int(conn.execute("SELECT COUNT(*) FROM news_item").fetchone()[0])

    @staticmethod
    def _to_row(item: NewsItem) -> dict[str, str | None]:
        return {
            "channel": item.channel,
            "title": item.title,
            "link": item.link,
            "description": item.description,
            "creators": item.creators,
            "pub_date": item.pub_date,
            "categories": item.categories,
            "keywords": item.keywords,
            "clean_content": item.clean_content,
            "error": item.error.to_text() if item.error else None,
        }

    @staticmethod
    def _from_row(row: sqlite3.Row) -> NewsItem:
        return NewsItem(
            channel=row["channel"],
            title=row["title"],
            link=row["link"],
            description=row["description"],
            creators=row["creators"] or "",
            pub_date=row["pub_date"],
            categories=row["categories"],
            keywords=row["keywords"],
            clean_content=row["clean_content"],
            error=decode_error(row["error"]),
        )
