"""Unit tests for scoring metrics."""

from collections.abc import Generator

import pytest

from src.relevance.metrics import ScoringMetrics, relevance_percentiles


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None]:
    ScoringMetrics.reset()
    yield
    ScoringMetrics.reset()


class TestScoringMetrics:
    """Tests for ScoringMetrics."""

    def test_singleton(self) -> None:
        """Test get_instance returns the same object until reset."""
        first = ScoringMetrics.get_instance()
        assert ScoringMetrics.get_instance() is first
        ScoringMetrics.reset()
        assert ScoringMetrics.get_instance() is not first

    def test_record_scored(self) -> None:
        """Test scored items and error items are counted."""
        metrics = ScoringMetrics()
        metrics.record_scored(3.0)
        metrics.record_scored(0.0, has_error=True)
        metrics.record_scored(None)
        assert metrics.items_scored == 3
        assert metrics.error_items == 1
        assert metrics.relevance_values == [3.0, 0.0]

    def test_percentiles(self) -> None:
        """Test percentiles over recorded relevances."""
        metrics = ScoringMetrics()
        for value in range(1, 101):
            metrics.record_scored(float(value))
        percentiles = metrics.get_relevance_percentiles()
        assert percentiles["p50"] == 51.0
        assert percentiles["p90"] == 91.0
        assert percentiles["p99"] == 100.0

    def test_percentiles_empty(self) -> None:
        """Test empty metrics report zeros."""
        assert ScoringMetrics().get_relevance_percentiles() == {
            "p50": 0.0,
            "p90": 0.0,
            "p99": 0.0,
        }

    def test_to_dict(self) -> None:
        """Test the dictionary view."""
        metrics = ScoringMetrics()
        metrics.record_batch(12.5)
        metrics.record_batch(7.5)
        metrics.record_failure()
        data = metrics.to_dict()
        assert data["batches"] == 2
        assert data["failures"] == 1
        assert data["total_batch_duration_ms"] == 20.0

    def test_begin_batch_keeps_only_current_relevances(self) -> None:
        """Test relevance values cover one batch while counters accumulate."""
        metrics = ScoringMetrics()
        metrics.begin_batch()
        metrics.record_scored(9.0)
        metrics.record_batch(1.0)
        metrics.begin_batch()
        metrics.record_scored(2.0)
        metrics.record_batch(1.0)
        assert metrics.relevance_values == [2.0]
        assert metrics.get_relevance_percentiles()["p99"] == 2.0
        assert metrics.items_scored == 2
        assert metrics.batches == 2


class TestRelevancePercentiles:
    """Tests for relevance_percentiles."""

    def test_unsorted_input(self) -> None:
        """Test values are ranked before picking percentiles."""
        assert relevance_percentiles([5.0, 1.0, 3.0]) == {"p50": 3.0, "p90": 5.0, "p99": 5.0}

    def test_empty(self) -> None:
        """Test no values report zeros."""
        assert relevance_percentiles([]) == {"p50": 0.0, "p90": 0.0, "p99": 0.0}
