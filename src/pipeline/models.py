"""Data models for pipeline runs."""

from dataclasses import dataclass, field

from src.news.models import NewsItem


@dataclass
class PipelineResult:
    """Result of a dossier run.

    Attributes:
        run_id: Run identifier.
        fetched: Items read from the feeds after opt-in filtering.
        prefiltered: Lexical top-k kept for content cleaning.
        cleaned: Prefiltered items after content cleaning.
        selected: Final top-k after rescoring.
        duration_ms: Wall time of the run.
        lexical_percentiles: Relevance percentiles of the lexical pass.
        relevance_percentiles: Relevance percentiles of the rescoring pass.
        scoring_failures: Scoring units that raised and were isolated.
    """

    run_id: str
    fetched: list[NewsItem] = field(default_factory=list)
    prefiltered: list[NewsItem] = field(default_factory=list)
    cleaned: list[NewsItem] = field(default_factory=list)
    selected: list[NewsItem] = field(default_factory=list)
    duration_ms: float = 0.0
    lexical_percentiles: dict[str, float] = field(default_factory=dict)
    relevance_percentiles: dict[str, float] = field(default_factory=dict)
    scoring_failures: int = 0

    @property
    def is_empty(self) -> bool:
        """Whether the feeds produced nothing to report."""
        return not self.fetched

    @property
    def cleaning_errors(self) -> int:
        """Number of cleaned items carrying a pipeline error."""
        return sum(1 for item in self.cleaned if item.has_error)

    def to_dict(self) -> dict[str, object]:
        """Convert counts to dictionary for logging."""
        return {
            "fetched": len(self.fetched),
            "prefiltered": len(self.prefiltered),
            "cleaned": len(self.cleaned),
            "cleaning_errors": self.cleaning_errors,
            "selected": len(self.selected),
            "scoring_failures": self.scoring_failures,
            "lexical_percentiles": self.lexical_percentiles,
            "relevance_percentiles": self.relevance_percentiles,
            "duration_ms": round(self.duration_ms, 2),
        }
