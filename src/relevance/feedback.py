"""Relevance feedback scoring by embedding similarity.

An item's relevance is estimated from previously rated items: every rated
record whose embedding is similar enough to the item's embedding votes with
its known relevance, and the votes are averaged. The estimate then decays
with the item's age.

Both the title query and the bag-of-words query are compared against the
stored *title* embedding of each record by default (``SimilarityTarget.TITLE``),
which is how existing relevance reports were produced. ``SimilarityTarget.PAIRED``
compares the bag-of-words query against the stored bag-of-words embedding
instead.
"""

import math
from datetime import datetime
from enum import Enum

import numpy as np
import structlog

from src.embeddings.embedder import Embedder
from src.news.models import Embedding, FeedbackCorpus, NewsItem
from src.relevance.constants import (
    DECAY_CEILING,
    DECAY_FLOOR,
    DECAY_PER_DAY,
    DEFAULT_SIMILARITY_THRESHOLD,
)
from src.relevance.lexical import LexicalScorer


logger = structlog.get_logger()

_SECONDS_PER_DAY = 24 * 60 * 60


class SimilarityTarget(str, Enum):
    """Which stored embedding the bag-of-words query is compared against.

    - TITLE: both queries are compared against the stored title embedding
    - PAIRED: title vs. title, bag of words vs. bag of words
    """

    TITLE = "title"
    PAIRED = "paired"


def _as_vector(embedding: Embedding | np.ndarray) -> np.ndarray:
    return np.asarray(embedding, dtype=np.float64).reshape(-1)


def cosine_similarity(a: Embedding | np.ndarray, b: Embedding | np.ndarray) -> float:
    """Compute the cosine similarity of two vectors.

    Args:
        a: First vector.
        b: Second vector.

    Returns:
        Similarity in [-1.0, 1.0]; NaN if either vector has zero norm.

    Raises:
        AssertionError: If the vectors differ in length.
    """
    va = _as_vector(a)
    vb = _as_vector(b)
    assert va.shape == vb.shape, f"Embedding length mismatch: {va.shape} vs {vb.shape}"
    with np.errstate(invalid="ignore", divide="ignore"):
        return float(np.dot(va, vb) / (np.linalg.norm(va) * np.linalg.norm(vb)))


def similarities(query: Embedding | np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of a query against every row of a matrix.

    Args:
        query: Query vector.
        matrix: One stored embedding per row.

    Returns:
        One similarity per row (NaN for zero-norm rows).

    Raises:
        AssertionError: If the query length differs from the row length.
    """
    q = _as_vector(query)
    assert matrix.shape[1] == q.shape[0], (
        f"Query has {q.shape[0]} dimensions, corpus has {matrix.shape[1]}"
    )
    with np.errstate(invalid="ignore", divide="ignore"):
        return (matrix @ q) / (np.linalg.norm(matrix, axis=1) * np.linalg.norm(q))


def relevance_by_similarity(
    query: Embedding | np.ndarray,
    corpus: FeedbackCorpus,
    threshold: float,
    matrix: np.ndarray | None = None,
) -> float:
    """Average the known relevance of records similar to a query.

    Only records whose similarity strictly exceeds ``threshold`` vote; the
    average is not weighted by similarity.

    Args:
        query: Query embedding.
        corpus: Rated records.
        threshold: Similarity a record must strictly exceed.
        matrix: Stored embeddings to compare against (title embeddings
            when omitted).

    Returns:
        Mean relevance of the passing records, 0.0 if none pass.
    """
    if len(corpus) == 0:
        return 0.0

    stored = corpus.title_matrix() if matrix is None else matrix
    passing = similarities(query, stored) > threshold
    if not passing.any():
        return 0.0

    average = float(corpus.relevances[passing].mean())
    if not math.isfinite(average) or average < 0.0:
        return 0.0
    return average


def elapsed_days(published: datetime, now: datetime) -> int:
    """Whole days between publication and now, truncated toward zero."""
    return int((now - published).total_seconds() / _SECONDS_PER_DAY)


def decay_multiplier(days: int) -> float:
    """Age penalty applied to a feedback estimate.

    10% per elapsed day, never reducing the estimate by more than 30% and
    never raising it for future-dated items.

    Args:
        days: Whole days since publication (may be negative).

    Returns:
        Multiplier in [0.7, 1.0].
    """
    return min(max(1.0 - DECAY_PER_DAY * days, DECAY_FLOOR), DECAY_CEILING)


def score_feedback(  # noqa: PLR0913
    item: NewsItem,
    item_title_embedding: Embedding | np.ndarray,
    item_bow_embedding: Embedding | np.ndarray,
    corpus: FeedbackCorpus,
    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    *,
    now: datetime | None = None,
    target: SimilarityTarget = SimilarityTarget.TITLE,
) -> float:
    """Estimate an item's relevance from rated feedback records.

    Args:
        item: Item being scored.
        item_title_embedding: Embedding of the item title.
        item_bow_embedding: Embedding of the item bag of words.
        corpus: Rated records (immutable snapshot).
        similarity_threshold: Similarity a record must strictly exceed.
        now: Evaluation time for decay (local now when omitted).
        target: Which stored embedding the bag-of-words query is compared to.

    Returns:
        Non-negative, finite relevance estimate.

    Raises:
        AssertionError: If an embedding length differs from the corpus.
    """
    if item.has_error:
        return 0.0

    bow_matrix = corpus.bow_matrix() if target is SimilarityTarget.PAIRED else None
    title_relevance = relevance_by_similarity(
        item_title_embedding, corpus, similarity_threshold
    )
    bow_relevance = relevance_by_similarity(
        item_bow_embedding, corpus, similarity_threshold, matrix=bow_matrix
    )
    relevance = max(title_relevance, bow_relevance)

    published = item.published_at()
    if published is not None:
        current = now or datetime.now().astimezone()
        relevance *= decay_multiplier(elapsed_days(published, current))

    if not math.isfinite(relevance) or relevance < 0.0:
        return 0.0
    return relevance


class FeedbackScorer:
    """Scores items against a feedback corpus.

    Embeds each item's title and bag of words through the embedder and
    applies ``score_feedback``. The corpus is an immutable snapshot shared
    by every unit of work in a batch.
    """

    def __init__(  # noqa: PLR0913
        self,
        corpus: FeedbackCorpus,
        embedder: Embedder,
        similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
        target: SimilarityTarget = SimilarityTarget.TITLE,
        run_id: str = "",
        now: datetime | None = None,
    ) -> None:
        """Initialize the scorer.

        Args:
            corpus: Rated records.
            embedder: Embedder producing vectors of the corpus dimensionality.
            similarity_threshold: Similarity a record must strictly exceed.
            target: Which stored embedding the bag-of-words query uses.
            run_id: Run identifier for logging.
            now: Fixed evaluation time (local now per call when omitted).
        """
        self._corpus = corpus
        self._embedder = embedder
        self._threshold = similarity_threshold
        self._target = target
        self._now = now
        self._log = logger.bind(
            component="relevance",
            subcomponent="feedback",
            run_id=run_id,
        )

    @property
    def corpus(self) -> FeedbackCorpus:
        """The feedback corpus snapshot."""
        return self._corpus

    def score(self, item: NewsItem) -> float:
        """Estimate the relevance of one item.

        Args:
            item: Item to score.

        Returns:
            Feedback relevance (0.0 for items carrying an error).
        """
        if item.has_error:
            return 0.0

        title_embedding, bow_embedding = self._embedder.embed(
            [item.title, item.bag_of_words()]
        )
        relevance = score_feedback(
            item,
            title_embedding,
            bow_embedding,
            self._corpus,
            self._threshold,
            now=self._now,
            target=self._target,
        )
        self._log.debug("feedback_relevance_computed", link=item.link, relevance=relevance)
        return relevance

    def __call__(self, item: NewsItem) -> NewsItem:
        """Return a copy of the item carrying its feedback relevance."""
        return item.with_relevance(self.score(item))


class CompositeScorer:
    """Lexical screening followed by feedback relevance.

    The lexical breakdown decides whether an item is analysed at all
    (error-flagged items score 0.0); the feedback estimate becomes the
    item relevance.
    """

    def __init__(self, lexical: LexicalScorer, feedback: FeedbackScorer) -> None:
        """Initialize the composite scorer.

        Args:
            lexical: Lexical scorer.
            feedback: Feedback scorer.
        """
        self._lexical = lexical
        self._feedback = feedback

    def __call__(self, item: NewsItem) -> NewsItem:
        """Score an item with both scorers."""
        breakdown = self._lexical.breakdown(item)
        if breakdown.has_error:
            return item.with_relevance(0.0)
        return item.with_relevance(self._feedback.score(item))
