"""CSV persistence of feedback records."""

import csv
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

import structlog
from pydantic import ValidationError

from src.news.models import Embedding, FeedbackRecord, NewsItem
from src.storage.errors import FeedbackFileError
from src.storage.store import decode_error


logger = structlog.get_logger()

FEEDBACK_CSV_HEADER: tuple[str, ...] = (
    "Channel",
    "Title",
    "Link",
    "Description",
    "Creators",
    "Publication Date",
    "Categories",
    "Keywords",
    "Clean Content",
    "Error",
    "Feedback Date",
    "Relevance",
    "Title Embedding",
    "Bag Of Words Embedding",
)


def _encode_embedding(embedding: Embedding) -> str:
    return ",".join(repr(value) for value in embedding)


def _decode_embedding(text: str, column: str, line: int) -> Embedding:
    if not text:
        return ()
    try:
        return tuple(float(value) for value in text.split(","))
    except ValueError as e:
        raise FeedbackFileError(f"Line {line}: bad number in {column!r}: {e}") from e


def write_feedback_csv(
    records: Iterable[FeedbackRecord],
    path: Path | str,
    *,
    feedback_date: datetime | None = None,
) -> int:
    """Write feedback records to a CSV file.

    Args:
        records: Records to write.
        path: Destination file (overwritten).
        feedback_date: Date the ratings were given (local now when omitted).

    Returns:
        Number of records written.
    """
    rated_at = (feedback_date or datetime.now().astimezone()).isoformat()
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with destination.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(FEEDBACK_CSV_HEADER)
        for record in records:
            item = record.news_item
            writer.writerow(
                [
                    item.channel,
                    item.title,
                    item.link,
                    item.description,
                    item.creators,
                    item.pub_date or "",
                    item.categories or "",
                    item.keywords or "",
                    item.clean_content or "",
                    item.error.to_text() if item.error else "",
                    rated_at,
                    "" if item.relevance is None else repr(item.relevance),
                    _encode_embedding(record.title_embedding),
                    _encode_embedding(record.bow_embedding),
                ]
            )
            count += 1

    logger.info("feedback_csv_written", path=str(destination), count=count)
    return count


def read_feedback_csv(path: Path | str) -> list[FeedbackRecord]:
    """Read feedback records written by ``write_feedback_csv``.

    Args:
        path: Source file.

    Returns:
        Records in file order.

    Raises:
        FeedbackFileError: If columns are missing or values are malformed.
        OSError: If the file cannot be read.
    """
    records: list[FeedbackRecord] = []
    with Path(path).open(encoding="utf-8", newline="") as handle:
        reader = csv.DictReader(handle)
        missing = set(FEEDBACK_CSV_HEADER) - set(reader.fieldnames or ())
        if missing:
            raise FeedbackFileError(f"Missing columns: {sorted(missing)}")

        for line, row in enumerate(reader, start=2):
            relevance_text = row["Relevance"]
            try:
                relevance = float(relevance_text) if relevance_text else None
            except ValueError as e:
                raise FeedbackFileError(f"Line {line}: bad relevance {relevance_text!r}") from e

            try:
                item = NewsItem(
                    channel=row["Channel"],
                    title=row["Title"],
                    link=row["Link"],
                    description=row["Description"],
                    creators=row["Creators"],
                    pub_date=row["Publication Date"] or None,
                    categories=row["Categories"] or None,
                    keywords=row["Keywords"] or None,
                    clean_content=row["Clean Content"] or None,
                    error=decode_error(row["Error"] or None),
                    relevance=relevance,
                )
            except ValidationError as e:
                raise FeedbackFileError(f"Line {line}: invalid item: {e}") from e

            records.append(
                FeedbackRecord(
                    news_item=item,
                    title_embedding=_decode_embedding(
                        row["Title Embedding"], "Title Embedding", line
                    ),
                    bow_embedding=_decode_embedding(
                        row["Bag Of Words Embedding"], "Bag Of Words Embedding", line
                    ),
                )
            )

    logger.info("feedback_csv_read", path=str(path), count=len(records))
    return records
