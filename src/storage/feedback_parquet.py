"""Parquet persistence of feedback records.

Columns are named as in the CSV file. Embeddings are stored as fixed-size
float32 lists, everything else as strings (relevance as a nullable double).
Files are snappy-compressed.
"""

from collections.abc import Iterable, Sequence
from datetime import datetime
from pathlib import Path

import pyarrow as pa  # type: ignore[import-untyped]
import pyarrow.parquet as pq  # type: ignore[import-untyped]
import structlog
from pydantic import ValidationError

from src.news.models import FeedbackRecord, NewsItem
from src.storage.errors import FeedbackFileError
from src.storage.feedback_csv import FEEDBACK_CSV_HEADER, read_feedback_csv
from src.storage.store import decode_error


logger = structlog.get_logger()

_TEXT_COLUMNS: tuple[str, ...] = FEEDBACK_CSV_HEADER[:11]
_TITLE_EMBEDDING = "Title Embedding"
_BOW_EMBEDDING = "Bag Of Words Embedding"


def _embedding_type(embeddings: Sequence[Sequence[float]]) -> pa.DataType:
    dims = {len(embedding) for embedding in embeddings}
    assert len(dims) <= 1, f"Mixed embedding dimensions: {sorted(dims)}"
    dim = dims.pop() if dims else 0
    # A fixed-size list needs a positive size
    return pa.list_(pa.float32(), dim) if dim else pa.list_(pa.float32())


def feedback_schema(title_type: pa.DataType, bow_type: pa.DataType) -> pa.Schema:
    """Build the feedback table schema.

    Args:
        title_type: Arrow type of the title embedding column.
        bow_type: Arrow type of the bag-of-words embedding column.

    Returns:
        Schema with the CSV column names.
    """
    fields = [pa.field(name, pa.string(), nullable=False) for name in _TEXT_COLUMNS]
    fields.append(pa.field("Relevance", pa.float64()))
    fields.append(pa.field(_TITLE_EMBEDDING, title_type, nullable=False))
    fields.append(pa.field(_BOW_EMBEDDING, bow_type, nullable=False))
    return pa.schema(fields)


def write_feedback_parquet(
    records: Iterable[FeedbackRecord],
    path: Path | str,
    *,
    feedback_date: datetime | None = None,
) -> int:
    """Write feedback records to a Parquet file.

    Args:
        records: Records to write.
        path: Destination file (overwritten).
        feedback_date: Date the ratings were given (local now when omitted).

    Returns:
        Number of records written.
    """
    rated_at = (feedback_date or datetime.now().astimezone()).isoformat()
    rows = list(records)
    destination = Path(path)
    destination.parent.mkdir(parents=True, exist_ok=True)

    columns: dict[str, list[object]] = {name: [] for name in FEEDBACK_CSV_HEADER}
    for record in rows:
        item = record.news_item
        values = (
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
            item.relevance,
            list(record.title_embedding),
            list(record.bow_embedding),
        )
        for name, value in zip(FEEDBACK_CSV_HEADER, values, strict=True):
            columns[name].append(value)

    schema = feedback_schema(
        _embedding_type([r.title_embedding for r in rows]),
        _embedding_type([r.bow_embedding for r in rows]),
    )
    table = pa.table(columns, schema=schema)
    pq.write_table(table, destination, compression="snappy")

    logger.info("feedback_parquet_written", path=str(destination), count=len(rows))
    return len(rows)


def read_feedback_parquet(path: Path | str) -> list[FeedbackRecord]:
    """Read feedback records written by ``write_feedback_parquet``.

    Args:
        path: Source file.

    Returns:
        Records in file order.

    Raises:
        FeedbackFileError: If the file is not Parquet, columns are missing
            or values are malformed.
        OSError: If the file cannot be read.
    """
    try:
        table = pq.read_table(path)
    except pa.ArrowInvalid as e:
        raise FeedbackFileError(f"Unreadable Parquet file {path}: {e}") from e

    missing = set(FEEDBACK_CSV_HEADER) - set(table.column_names)
    if missing:
        raise FeedbackFileError(f"Missing columns: {sorted(missing)}")

    records: list[FeedbackRecord] = []
    for index, row in enumerate(table.to_pylist()):
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
                relevance=row["Relevance"],
            )
        except ValidationError as e:
            raise FeedbackFileError(f"Row {index}: invalid item: {e}") from e

        records.append(
            FeedbackRecord(
                news_item=item,
                title_embedding=tuple(row[_TITLE_EMBEDDING] or ()),
                bow_embedding=tuple(row[_BOW_EMBEDDING] or ()),
            )
        )

    logger.info("feedback_parquet_read", path=str(path), count=len(records))
    return records


def read_feedback_file(path: Path | str) -> list[FeedbackRecord]:
    """Read feedback records from a Parquet or CSV file, chosen by suffix.

    Args:
        path: ``.parquet`` file, anything else is read as CSV.

    Returns:
        Records in file order.

    Raises:
        FeedbackFileError: If the file is malformed.
        OSError: If the file cannot be read.
    """
    if Path(path).suffix.lower() == ".parquet":
        return read_feedback_parquet(path)
    return read_feedback_csv(path)
