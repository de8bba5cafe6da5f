"""End-to-end dossier flow.

fetch -> opt-in filter -> lexical top-k -> content cleaning -> rescoring
-> final top-k. Every concurrent stage runs on one shared thread pool.
"""

import random
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor

import structlog

from src.ingest.cleaner import ContentFiller
from src.ingest.feeds import FeedReader
from src.ingest.filter import select_opted_in
from src.ingest.http import HttpFetcher
from src.news.models import NewsItem, Operator
from src.pipeline.models import PipelineResult
from src.relevance.constants import PREFILTER_TOP_K, REPORT_TOP_K
from src.relevance.feedback import CompositeScorer, FeedbackScorer
from src.relevance.lexical import LexicalScorer
from src.relevance.orchestrator import FailurePolicy, FanOutPolicy, ItemScorer, ScoringOrchestrator
from src.relevance.selector import top_k
from src.relevance.vocabulary import Vocabulary


logger = structlog.get_logger()


class DigestPipeline:
    """Runs the dossier and relevance flows.

    Freshly read items are shuffled before any scoring, so feed order never
    decides ties. Rescoring after cleaning uses the feedback scorer when
    one is given, otherwise the lexical scorer (which then also counts body
    words).
    """

    def __init__(  # noqa: PLR0913
        self,
        run_id: str,
        client: HttpFetcher,
        vocabulary: Vocabulary,
        *,
        fan_out: FanOutPolicy | None = None,
        failure_policy: FailurePolicy | None = None,
        feedback: FeedbackScorer | None = None,
        top_k_prefilter: int = PREFILTER_TOP_K,
        top_k_report: int = REPORT_TOP_K,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the pipeline.

        Args:
            run_id: Run identifier.
            client: HTTP fetcher for feeds and articles.
            vocabulary: Reference vocabulary for lexical scoring.
            fan_out: Pool sizing policy.
            failure_policy: Scoring unit failure policy.
            feedback: Feedback scorer for the final rescoring.
            top_k_prefilter: Items kept for content cleaning.
            top_k_report: Items kept for the dossier.
            rng: Random source for shuffling fetched items.
        """
        self._run_id = run_id
        self._client = client
        self._fan_out = fan_out or FanOutPolicy()
        self._failure_policy = failure_policy or FailurePolicy()
        self._lexical = LexicalScorer(vocabulary, run_id=run_id)
        self._feedback = feedback
        self._top_k_prefilter = top_k_prefilter
        self._top_k_report = top_k_report
        self._rng = rng or random.Random()  # noqa: S311
        self._log = logger.bind(component="pipeline", run_id=run_id)

    def run(
        self,
        urls: Sequence[str],
        terms: Sequence[str] = (),
        operator: Operator = Operator.OR,
    ) -> PipelineResult:
        """Run the dossier flow.

        Args:
            urls: Feed URLs.
            terms: Opt-in terms (empty keeps everything).
            operator: How the terms combine.

        Returns:
            PipelineResult with every intermediate stage.

        Raises:
            BatchScoringError: If scoring fails under the failure policy.
        """
        start = time.perf_counter()
        result = PipelineResult(run_id=self._run_id)
        self._log.info("pipeline_started", feed_count=len(urls), opt_in=list(terms))

        with ThreadPoolExecutor(max_workers=self._fan_out.max_workers) as executor:
            items = FeedReader(self._client, self._run_id, executor=executor).fetch_items(urls)
            result.fetched = select_opted_in(items, terms, operator, rng=self._rng)
            if result.is_empty:
                self._log.warning("no_items_found")
                result.duration_ms = (time.perf_counter() - start) * 1000
                return result

            orchestrator = self._orchestrator(executor)
            lexical = orchestrator.score_batch(result.fetched, self._lexical)
            result.lexical_percentiles = lexical.relevance_percentiles
            result.prefiltered = top_k(lexical.items, self._top_k_prefilter)

            filler = ContentFiller(self._client, self._run_id, executor=executor)
            result.cleaned = filler.fill(result.prefiltered)

            rescored = orchestrator.score_batch(result.cleaned, self._rescorer())
            result.relevance_percentiles = rescored.relevance_percentiles
            result.scoring_failures = lexical.failed_count + rescored.failed_count
            result.selected = top_k(rescored.items, self._top_k_report)

        result.duration_ms = (time.perf_counter() - start) * 1000
        self._log.info("pipeline_complete", **result.to_dict())
        return result

    def score_feeds(self, urls: Sequence[str]) -> list[NewsItem]:
        """Read every feed and score all items lexically.

        Args:
            urls: Feed URLs.

        Returns:
            Every item with its lexical relevance, in random order.

        Raises:
            BatchScoringError: If scoring fails under the failure policy.
        """
        with ThreadPoolExecutor(max_workers=self._fan_out.max_workers) as executor:
            items = FeedReader(self._client, self._run_id, executor=executor).fetch_items(urls)
            self._rng.shuffle(items)
            return self._orchestrator(executor).score_all(items, self._lexical)

    def _orchestrator(self, executor: ThreadPoolExecutor) -> ScoringOrchestrator:
        return ScoringOrchestrator(
            run_id=self._run_id,
            fan_out=self._fan_out,
            failure_policy=self._failure_policy,
            executor=executor,
        )

    def _rescorer(self) -> ItemScorer:
        if self._feedback is None:
            return self._lexical
        return CompositeScorer(self._lexical, self._feedback)
