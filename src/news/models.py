"""Data models for news items and rated feedback."""

from collections.abc import Iterable, Sequence
from datetime import datetime
from email.utils import parsedate_to_datetime
from enum import Enum
from typing import Annotated

import numpy as np
from pydantic import BaseModel, ConfigDict, Field

from src.news.errors import PipelineError


class Operator(str, Enum):
    """How an opt-in term list is combined.

    - AND: every term must be present
    - OR: at least one term must be present
    """

    AND = "and"
    OR = "or"


def split_tokens(value: str | None) -> list[str]:
    """Split a comma-joined field into its raw tokens.

    Args:
        value: Comma-joined string or None.

    Returns:
        Tokens exactly as stored (no trimming), empty list for None.
    """
    if value is None:
        return []
    return value.split(",")


class NewsItem(BaseModel):
    """A single item read from a feed.

    The link is the unique key. Items are immutable: every pipeline stage
    returns an updated copy instead of mutating in place.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    channel: Annotated[str, Field(description="Feed channel title")]
    title: Annotated[str, Field(min_length=1, description="Item title")]
    link: Annotated[str, Field(min_length=1, description="Item link (unique key)")]
    description: Annotated[str, Field(description="Feed-provided summary")]
    creators: str = Field(default="", description="Comma-joined creator names")
    pub_date: str | None = Field(
        default=None, description="RFC-2822 publication timestamp"
    )
    categories: str | None = Field(
        default=None, description="Comma-joined lowercase categories"
    )
    keywords: str | None = Field(
        default=None, description="Comma-joined lowercase keywords"
    )
    clean_content: str | None = Field(default=None, description="Cleaned body text")
    error: PipelineError | None = Field(
        default=None, description="Terminal pipeline error"
    )
    relevance: float | None = Field(default=None, description="Computed relevance")

    @property
    def has_error(self) -> bool:
        """Whether a terminal pipeline error was recorded."""
        return self.error is not None

    def with_relevance(self, relevance: float | None) -> "NewsItem":
        """Return a copy carrying the given relevance."""
        return self.model_copy(update={"relevance": relevance})

    def with_content(self, clean_content: str) -> "NewsItem":
        """Return a copy carrying cleaned body text and no error."""
        return self.model_copy(update={"clean_content": clean_content, "error": None})

    def with_error(self, error: PipelineError) -> "NewsItem":
        """Return a copy carrying a pipeline error and no body text."""
        return self.model_copy(update={"clean_content": None, "error": error})

    def bag_of_words(self) -> str:
        """Build the bag of words used as an embedding query.

        Deduplicated, lowercased union of keyword and category tokens,
        joined with a single space. Tokens are sorted so the same item
        always yields the same string.

        Returns:
            Space-joined tokens (empty string if the item has none).
        """
        words: set[str] = set()
        for token in split_tokens(self.keywords) + split_tokens(self.categories):
            word = token.strip().lower()
            if word:
                words.add(word)
        return " ".join(sorted(words))

    def published_at(self) -> datetime | None:
        """Parse the publication date.

        Returns:
            Timezone-aware datetime, or None if absent or unparseable.
        """
        if not self.pub_date:
            return None
        try:
            parsed = parsedate_to_datetime(self.pub_date)
        except (TypeError, ValueError, IndexError):
            return None
        # Naive results are interpreted as local time
        return parsed.astimezone()


Embedding = tuple[float, ...]


class FeedbackRecord(BaseModel):
    """A previously rated item with its embeddings.

    Attributes:
        news_item: The rated item; its relevance is the rating.
        title_embedding: Embedding of the item title.
        bow_embedding: Embedding of the item bag of words.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    news_item: NewsItem
    title_embedding: Embedding
    bow_embedding: Embedding

    @property
    def relevance(self) -> float:
        """Known relevance of the rated item (0.0 when missing)."""
        return self.news_item.relevance or 0.0


class FeedbackCorpus:
    """Immutable snapshot of feedback records shared by a scoring batch.

    All embeddings must share one dimensionality. Mixing dimensions is a
    programmer error and fails loudly on construction.
    """

    def __init__(self, records: Iterable[FeedbackRecord]) -> None:
        """Initialize the corpus.

        Args:
            records: Feedback records to snapshot.
        """
        self._records: tuple[FeedbackRecord, ...] = tuple(records)

        dims = {len(r.title_embedding) for r in self._records}
        dims |= {len(r.bow_embedding) for r in self._records}
        assert len(dims) <= 1, f"Mixed embedding dimensions in corpus: {sorted(dims)}"
        self._dimension = dims.pop() if dims else 0

        self._relevances = np.array([r.relevance for r in self._records], dtype=np.float64)
        self._titles = self._as_matrix([r.title_embedding for r in self._records])
        self._bows = self._as_matrix([r.bow_embedding for r in self._records])

    def _as_matrix(self, rows: Sequence[Embedding]) -> np.ndarray:
        matrix = np.array(rows, dtype=np.float64).reshape(len(rows), self._dimension)
        matrix.setflags(write=False)
        return matrix

    @property
    def records(self) -> tuple[FeedbackRecord, ...]:
        """The snapshotted records."""
        return self._records

    @property
    def dimension(self) -> int:
        """Shared embedding dimensionality (0 for an empty corpus)."""
        return self._dimension

    @property
    def relevances(self) -> np.ndarray:
        """Known relevance per record."""
        return self._relevances

    def title_matrix(self) -> np.ndarray:
        """Title embeddings stacked row-wise (read-only)."""
        return self._titles

    def bow_matrix(self) -> np.ndarray:
        """Bag-of-words embeddings stacked row-wise (read-only)."""
        return self._bows

    def __len__(self) -> int:
        return len(self._records)
