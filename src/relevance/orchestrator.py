"""Concurrent scoring of item batches.

Every item becomes one unit of work on a thread pool. All units are
submitted at once; results are re-associated with their input position so
the output order always matches the input order, whatever order the units
finish in.
"""

import os
import threading
import time
from collections.abc import Sequence
from concurrent.futures import Executor, Future, ThreadPoolExecutor, as_completed
from contextlib import nullcontext
from typing import Annotated, Protocol

import structlog
from pydantic import Field

from src.data_model import StrictBaseModel
from src.news.errors import HemerotecaError
from src.news.models import NewsItem
from src.relevance.metrics import ScoringMetrics, relevance_percentiles
from src.relevance.models import BatchScoringResult, ScoringOutcome


logger = structlog.get_logger()


class ItemScorer(Protocol):
    """A unit of scoring work: returns a copy of the item with its relevance."""

    def __call__(self, item: NewsItem) -> NewsItem:
        """Score one item."""
        ...


class FanOutPolicy(StrictBaseModel):
    """How a batch is spread over the thread pool.

    Attributes:
        max_workers: Pool size when the orchestrator owns its pool.
        max_in_flight: Upper bound on units running at the same time
            (None leaves it to the pool).
    """

    max_workers: Annotated[int, Field(ge=1)] = Field(
        default_factory=lambda: os.cpu_count() or 1
    )
    max_in_flight: Annotated[int, Field(ge=1)] | None = None


class FailurePolicy(StrictBaseModel):
    """What happens when a unit raises.

    Attributes:
        isolate: Keep going and return the failed item unscored instead of
            failing the whole batch.
        max_failures: Failed units tolerated while isolating; one more
            aborts the batch.
    """

    isolate: bool = False
    max_failures: Annotated[int, Field(ge=0)] = 0


class BatchScoringError(HemerotecaError):
    """A scoring batch was aborted because units raised."""

    def __init__(self, failures: Sequence[ScoringOutcome]) -> None:
        """Initialize the error.

        Args:
            failures: Outcomes of the units that raised.
        """
        self.failures = list(failures)
        links = ", ".join(f.item.link for f in self.failures[:3])
        super().__init__(f"{len(self.failures)} scoring unit(s) failed: {links}")


class ScoringOrchestrator:
    """Fans a batch of items out to a scorer and collects the results.

    Provides:
    - One unit of work per item, all dispatched together
    - Optional bound on concurrently running units
    - Fail-the-batch by default, per-item isolation on request
    - Input-order output
    - Structured logging and metrics
    """

    def __init__(
        self,
        run_id: str = "",
        fan_out: FanOutPolicy | None = None,
        failure_policy: FailurePolicy | None = None,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            run_id: Run identifier for logging.
            fan_out: Pool sizing policy.
            failure_policy: Unit failure policy.
            executor: Pool shared with other stages; a private pool sized by
                ``fan_out.max_workers`` is used per batch when omitted.
        """
        self._run_id = run_id
        self._fan_out = fan_out or FanOutPolicy()
        self._failure_policy = failure_policy or FailurePolicy()
        self._executor = executor
        self._metrics = ScoringMetrics.get_instance()
        self._log = logger.bind(
            component="relevance",
            subcomponent="orchestrator",
            run_id=run_id,
        )

    def score_all(self, items: Sequence[NewsItem], scorer: ItemScorer) -> list[NewsItem]:
        """Score every item.

        Args:
            items: Items to score; items carrying a pipeline error are
                scored too.
            scorer: Unit of work applied to each item.

        Returns:
            Scored items in input order.

        Raises:
            BatchScoringError: If a unit raised and the policy does not
                tolerate it.
        """
        return self.score_batch(items, scorer).items

    def score_batch(
        self,
        items: Sequence[NewsItem],
        scorer: ItemScorer,
    ) -> BatchScoringResult:
        """Score every item and report per-unit outcomes.

        Args:
            items: Items to score.
            scorer: Unit of work applied to each item.

        Returns:
            BatchScoringResult with one outcome per input item.

        Raises:
            BatchScoringError: If a unit raised and the policy does not
                tolerate it.
        """
        start = time.perf_counter()
        if not items:
            return BatchScoringResult(run_id=self._run_id)

        self._metrics.begin_batch()
        self._log.info(
            "scoring_batch_started",
            item_count=len(items),
            max_in_flight=self._fan_out.max_in_flight,
            isolate=self._failure_policy.isolate,
        )

        gate = (
            threading.BoundedSemaphore(self._fan_out.max_in_flight)
            if self._fan_out.max_in_flight is not None
            else None
        )
        outcomes: list[ScoringOutcome | None] = [None] * len(items)
        failures: list[ScoringOutcome] = []

        pool = (
            nullcontext(self._executor)
            if self._executor is not None
            else ThreadPoolExecutor(max_workers=self._fan_out.max_workers)
        )
        with pool as executor:
            future_to_index: dict[Future[ScoringOutcome], int] = {
                executor.submit(self._run_unit, item, scorer, gate): index
                for index, item in enumerate(items)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                item = items[index]
                try:
                    outcome = future.result()
                except Exception as e:  # noqa: BLE001
                    outcome = ScoringOutcome(item=item.with_relevance(None), error=str(e))
                    failures.append(outcome)
                    self._metrics.record_failure()
                    self._log.error(
                        "scoring_unit_failed",
                        link=item.link,
                        error=str(e),
                        error_type=type(e).__name__,
                    )
                    if self._should_abort(len(failures)):
                        for pending in future_to_index:
                            pending.cancel()
                        self._log.error(
                            "scoring_batch_aborted",
                            failed_count=len(failures),
                            max_failures=self._failure_policy.max_failures,
                        )
                        raise BatchScoringError(failures) from e

                outcomes[index] = outcome
                if outcome.succeeded:
                    self._metrics.record_scored(
                        outcome.item.relevance, has_error=outcome.item.has_error
                    )

        duration_ms = (time.perf_counter() - start) * 1000
        self._metrics.record_batch(duration_ms)
        completed = [o for o in outcomes if o is not None]
        result = BatchScoringResult(
            run_id=self._run_id,
            outcomes=completed,
            duration_ms=duration_ms,
            relevance_percentiles=relevance_percentiles(
                o.item.relevance for o in completed if o.item.relevance is not None
            ),
        )
        self._log.info(
            "scoring_batch_complete",
            item_count=len(result.outcomes),
            failed_count=result.failed_count,
            duration_ms=round(duration_ms, 2),
            relevance_percentiles=result.relevance_percentiles,
            totals=self._metrics.to_dict(),
        )
        return result

    def _should_abort(self, failed_count: int) -> bool:
        if not self._failure_policy.isolate:
            return True
        return failed_count > self._failure_policy.max_failures

    @staticmethod
    def _run_unit(
        item: NewsItem,
        scorer: ItemScorer,
        gate: threading.BoundedSemaphore | None,
    ) -> ScoringOutcome:
        with gate if gate is not None else nullcontext():
            start = time.perf_counter()
            scored = scorer(item)
            return ScoringOutcome(
                item=scored,
                duration_ms=(time.perf_counter() - start) * 1000,
            )


def score_all(  # noqa: PLR0913
    items: Sequence[NewsItem],
    scorer: ItemScorer,
    *,
    fan_out: FanOutPolicy | None = None,
    failure_policy: FailurePolicy | None = None,
    executor: Executor | None = None,
    run_id: str = "pure",
) -> list[NewsItem]:
    """Pure function API for batch scoring.

    Args:
        items: Items to score.
        scorer: Unit of work applied to each item.
        fan_out: Pool sizing policy.
        failure_policy: Unit failure policy.
        executor: Optional shared pool.
        run_id: Run identifier.

    Returns:
        Scored items in input order.

    Raises:
        BatchScoringError: If a unit raised and the policy does not
            tolerate it.
    """
    orchestrator = ScoringOrchestrator(
        run_id=run_id,
        fan_out=fan_out,
        failure_policy=failure_policy,
        executor=executor,
    )
    return orchestrator.score_all(items, scorer)
