"""Metrics collection for relevance scoring."""

from collections.abc import Iterable
from dataclasses import dataclass, field
from threading import Lock


_metrics_instance: "ScoringMetrics | None" = None
_metrics_lock: Lock = Lock()


def relevance_percentiles(values: Iterable[float]) -> dict[str, float]:
    """Calculate relevance percentiles (p50/p90/p99).

    Args:
        values: Relevance values.

    Returns:
        Dictionary with p50, p90, p99 values (zeros for no values).
    """
    ordered = sorted(values)
    if not ordered:
        return {"p50": 0.0, "p90": 0.0, "p99": 0.0}

    n = len(ordered)

    def percentile(p: float) -> float:
        idx = int(p * n / 100)
        return ordered[min(idx, n - 1)]

    return {
        "p50": percentile(50),
        "p90": percentile(90),
        "p99": percentile(99),
    }


@dataclass
class ScoringMetrics:
    """Thread-safe metrics for scoring batches.

    Scoring units run on worker threads, so every update takes the
    instance lock. Counters accumulate over the process; relevance values
    cover the current batch only. Use get_instance() for singleton access.
    """

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    items_scored: int = 0
    failures: int = 0
    error_items: int = 0
    batches: int = 0
    total_batch_duration_ms: float = 0.0
    relevance_values: list[float] = field(default_factory=list)

    @classmethod
    def get_instance(cls) -> "ScoringMetrics":
        """Get the singleton instance (thread-safe).

        Returns:
            The shared ScoringMetrics instance.
        """
        global _metrics_instance  # noqa: PLW0603
        if _metrics_instance is None:
            with _metrics_lock:
                # Double-checked locking
                if _metrics_instance is None:
                    _metrics_instance = cls()
        return _metrics_instance

    @classmethod
    def reset(cls) -> None:
        """Reset the singleton instance (for testing)."""
        global _metrics_instance  # noqa: PLW0603
        with _metrics_lock:
            _metrics_instance = None

    def begin_batch(self) -> None:
        """Start a batch, dropping the previous batch's relevance values."""
        with self._lock:
            self.relevance_values.clear()

    def record_scored(self, relevance: float | None, *, has_error: bool = False) -> None:
        """Record one successfully scored item.

        Args:
            relevance: Relevance assigned to the item.
            has_error: Whether the item carried a pipeline error.
        """
        with self._lock:
            self.items_scored += 1
            if has_error:
                self.error_items += 1
            if relevance is not None:
                self.relevance_values.append(relevance)

    def record_failure(self) -> None:
        """Record a scoring unit that raised."""
        with self._lock:
            self.failures += 1

    def record_batch(self, duration_ms: float) -> None:
        """Record a completed batch.

        Args:
            duration_ms: Wall time of the batch in milliseconds.
        """
        with self._lock:
            self.batches += 1
            self.total_batch_duration_ms += duration_ms

    def get_relevance_percentiles(self) -> dict[str, float]:
        """Calculate relevance percentiles (p50/p90/p99) of the current batch.

        Returns:
            Dictionary with p50, p90, p99 values.
        """
        with self._lock:
            values = list(self.relevance_values)
        return relevance_percentiles(values)

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        percentiles = self.get_relevance_percentiles()
        with self._lock:
            return {
                "items_scored": self.items_scored,
                "failures": self.failures,
                "error_items": self.error_items,
                "batches": self.batches,
                "total_batch_duration_ms": round(self.total_batch_duration_ms, 2),
                "relevance_percentiles": percentiles,
            }
