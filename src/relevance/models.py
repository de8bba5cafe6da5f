"""Data models for relevance scoring."""

from dataclasses import dataclass, field
from functools import total_ordering

from src.news.models import NewsItem


@total_ordering
@dataclass(frozen=True)
class RelevanceBreakdown:
    """Explanation of a lexical relevance score.

    Ordering ranks error-free breakdowns above errored ones, then compares
    the five-field subtotal, then the body-text component. Elapsed time is
    not part of equality or ordering.

    Attributes:
        has_error: Whether the item carried a pipeline error.
        creator: Creator component.
        categories: Categories component.
        keywords: Keywords component.
        title: Title component.
        description: Description component.
        clean_content: Body-text component, computed in a separate pass.
        elapsed_ms: Time spent computing the breakdown.
    """

    has_error: bool = False
    creator: int = 0
    categories: int = 0
    keywords: int = 0
    title: int = 0
    description: int = 0
    clean_content: int = 0
    elapsed_ms: float = field(default=0.0, compare=False)

    @classmethod
    def errored(cls, elapsed_ms: float = 0.0) -> "RelevanceBreakdown":
        """All-zero breakdown for an item that carries an error."""
        return cls(has_error=True, elapsed_ms=elapsed_ms)

    @property
    def subtotal(self) -> int:
        """Sum of the five feed-metadata components."""
        return self.creator + self.categories + self.keywords + self.title + self.description

    @property
    def net_relevance(self) -> int:
        """Sum of all six components."""
        return self.subtotal + self.clean_content

    def sort_key(self) -> tuple[bool, int, int]:
        """Key implementing the breakdown ordering."""
        return (not self.has_error, self.subtotal, self.clean_content)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, RelevanceBreakdown):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def to_dict(self) -> dict[str, float | int | bool]:
        """Convert to dictionary for logging and reports.

        Returns:
            Dictionary of component name to value.
        """
        return {
            "has_error": self.has_error,
            "creator": self.creator,
            "categories": self.categories,
            "keywords": self.keywords,
            "title": self.title,
            "description": self.description,
            "clean_content": self.clean_content,
            "net_relevance": self.net_relevance,
            "elapsed_ms": round(self.elapsed_ms, 3),
        }


@dataclass(frozen=True)
class ScoringOutcome:
    """Result of one fanned-out unit of work.

    Attributes:
        item: The item as returned by the unit (unscored on failure).
        error: Failure description when the unit raised.
        duration_ms: Wall time of the unit.
    """

    item: NewsItem
    error: str | None = None
    duration_ms: float = 0.0

    @property
    def succeeded(self) -> bool:
        """Whether the unit completed without raising."""
        return self.error is None


@dataclass
class BatchScoringResult:
    """Result of scoring a whole batch.

    Attributes:
        run_id: Run identifier.
        outcomes: One outcome per input item, in input order.
        duration_ms: Wall time of the batch.
        relevance_percentiles: p50/p90/p99 of the relevances assigned in
            this batch (empty for an empty batch).
    """

    run_id: str
    outcomes: list[ScoringOutcome] = field(default_factory=list)
    duration_ms: float = 0.0
    relevance_percentiles: dict[str, float] = field(default_factory=dict)

    @property
    def items(self) -> list[NewsItem]:
        """Items in input order, scored where the unit succeeded."""
        return [o.item for o in self.outcomes]

    @property
    def failures(self) -> list[ScoringOutcome]:
        """Outcomes whose unit raised."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def failed_count(self) -> int:
        """Number of failed units."""
        return len(self.failures)
