"""Unit tests for the scoring orchestrator."""

import threading
import time
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

import pytest
from pydantic import ValidationError

from src.news.errors import PipelineError
from src.news.models import NewsItem
from src.relevance.lexical import LexicalScorer
from src.relevance.metrics import ScoringMetrics
from src.relevance.orchestrator import (
    BatchScoringError,
    FailurePolicy,
    FanOutPolicy,
    ScoringOrchestrator,
    score_all,
)
from src.relevance.vocabulary import Vocabulary
from tests.helpers.items import make_item


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None]:
    ScoringMetrics.reset()
    yield
    ScoringMetrics.reset()


def _items(count: int) -> list[NewsItem]:
    return [make_item(link=f"https://example.com/{i}", title=f"Item {i}") for i in range(count)]


def _index_scorer(item: NewsItem) -> NewsItem:
    index = int(item.link.rsplit("/", 1)[1])
    # Later items finish first
    time.sleep(0.001 * (10 - index))
    return item.with_relevance(float(index))


class _FailingScorer:
    """Raises for the given links, scores 1.0 otherwise."""

    def __init__(self, failing: set[str]) -> None:
        self._failing = failing

    def __call__(self, item: NewsItem) -> NewsItem:
        if item.link in self._failing:
            raise RuntimeError(f"cannot score {item.link}")
        return item.with_relevance(1.0)


class TestPolicies:
    """Tests for policy validation."""

    def test_fan_out_defaults(self) -> None:
        """Test fan-out is unbounded by default."""
        policy = FanOutPolicy()
        assert policy.max_workers >= 1
        assert policy.max_in_flight is None

    def test_fan_out_rejects_zero(self) -> None:
        """Test pool sizes must be positive."""
        with pytest.raises(ValidationError):
            FanOutPolicy(max_workers=0)
        with pytest.raises(ValidationError):
            FanOutPolicy(max_in_flight=0)

    def test_failure_defaults(self) -> None:
        """Test a single failure fails the batch by default."""
        policy = FailurePolicy()
        assert not policy.isolate
        assert policy.max_failures == 0


class TestScoreAll:
    """Tests for ScoringOrchestrator.score_all."""

    def test_empty(self) -> None:
        """Test an empty batch returns an empty list."""
        assert ScoringOrchestrator().score_all([], _index_scorer) == []

    def test_output_in_input_order(self) -> None:
        """Test results follow the input order whatever the completion order."""
        items = _items(10)
        scored = ScoringOrchestrator(fan_out=FanOutPolicy(max_workers=8)).score_all(
            items, _index_scorer
        )
        assert [i.link for i in scored] == [i.link for i in items]
        assert [i.relevance for i in scored] == [float(n) for n in range(10)]

    def test_error_items_still_scored(self) -> None:
        """Test items with pipeline errors get a zero score, not dropped."""
        items = [
            make_item(link="https://a", title="Gobierno", creators="Ana"),
            make_item(link="https://b", title="Gobierno", error=PipelineError.no_content()),
        ]
        scored = ScoringOrchestrator().score_all(items, LexicalScorer(Vocabulary(["Gobierno"])))
        assert [i.relevance for i in scored] == [20.0, 0.0]

    def test_shared_executor(self) -> None:
        """Test a caller-supplied pool is used and left open."""
        with ThreadPoolExecutor(max_workers=2) as executor:
            orchestrator = ScoringOrchestrator(executor=executor)
            scored = orchestrator.score_all(_items(5), _index_scorer)
            assert len(scored) == 5
            # Still usable after the batch
            assert executor.submit(lambda: 1).result() == 1

    def test_max_in_flight_bounds_concurrency(self) -> None:
        """Test no more than max_in_flight units run at once."""
        lock = threading.Lock()
        running = 0
        peak = 0

        def scorer(item: NewsItem) -> NewsItem:
            nonlocal running, peak
            with lock:
                running += 1
                peak = max(peak, running)
            time.sleep(0.005)
            with lock:
                running -= 1
            return item.with_relevance(1.0)

        policy = FanOutPolicy(max_workers=8, max_in_flight=2)
        ScoringOrchestrator(fan_out=policy).score_all(_items(12), scorer)
        assert peak <= 2


class TestFailureHandling:
    """Tests for unit failures."""

    def test_fail_batch_by_default(self) -> None:
        """Test a single raising unit aborts the batch."""
        scorer = _FailingScorer({"https://example.com/3"})
        with pytest.raises(BatchScoringError) as exc_info:
            ScoringOrchestrator().score_all(_items(5), scorer)
        assert [f.item.link for f in exc_info.value.failures] == ["https://example.com/3"]
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_isolation_within_tolerance(self) -> None:
        """Test isolated failures come back unscored with their error."""
        scorer = _FailingScorer({"https://example.com/1"})
        orchestrator = ScoringOrchestrator(
            failure_policy=FailurePolicy(isolate=True, max_failures=1)
        )
        result = orchestrator.score_batch(_items(3), scorer)
        assert result.failed_count == 1
        assert [i.relevance for i in result.items] == [1.0, None, 1.0]
        assert "cannot score" in (result.failures[0].error or "")

    def test_isolation_over_tolerance(self) -> None:
        """Test exceeding max_failures still aborts."""
        scorer = _FailingScorer({"https://example.com/0", "https://example.com/2"})
        orchestrator = ScoringOrchestrator(
            failure_policy=FailurePolicy(isolate=True, max_failures=1)
        )
        with pytest.raises(BatchScoringError):
            orchestrator.score_all(_items(3), scorer)

    def test_failures_recorded_in_metrics(self) -> None:
        """Test failed units are counted."""
        scorer = _FailingScorer({"https://example.com/0"})
        orchestrator = ScoringOrchestrator(
            failure_policy=FailurePolicy(isolate=True, max_failures=5)
        )
        orchestrator.score_all(_items(4), scorer)
        metrics = ScoringMetrics.get_instance()
        assert metrics.failures == 1
        assert metrics.items_scored == 3
        assert metrics.batches == 1

    def test_batch_percentiles(self) -> None:
        """Test each batch reports the percentiles of its own relevances."""
        orchestrator = ScoringOrchestrator(fan_out=FanOutPolicy(max_workers=4))
        first = orchestrator.score_batch(_items(10), _index_scorer)
        second = orchestrator.score_batch(_items(2), _index_scorer)

        assert first.relevance_percentiles == {"p50": 5.0, "p90": 9.0, "p99": 9.0}
        assert second.relevance_percentiles == {"p50": 1.0, "p90": 1.0, "p99": 1.0}
        metrics = ScoringMetrics.get_instance()
        assert sorted(metrics.relevance_values) == [0.0, 1.0]
        assert metrics.items_scored == 12

    def test_failed_units_excluded_from_percentiles(self) -> None:
        """Test only scored units feed the batch percentiles."""
        scorer = _FailingScorer({"https://example.com/0"})
        orchestrator = ScoringOrchestrator(
            failure_policy=FailurePolicy(isolate=True, max_failures=5)
        )
        result = orchestrator.score_batch(_items(3), scorer)
        assert result.relevance_percentiles == {"p50": 1.0, "p90": 1.0, "p99": 1.0}

    def test_empty_batch(self) -> None:
        """Test an empty batch has no percentiles."""
        assert ScoringOrchestrator().score_batch([], _index_scorer).relevance_percentiles == {}


class TestPureFunction:
    """Tests for the module-level score_all."""

    def test_score_all(self) -> None:
        """Test the pure API scores every item in order."""
        scored = score_all(_items(3), _index_scorer, fan_out=FanOutPolicy(max_workers=2))
        assert [i.relevance for i in scored] == [0.0, 1.0, 2.0]
