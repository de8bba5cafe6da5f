"""Integration tests for the dossier and relevance flows."""

import random
from collections.abc import Generator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from src.news.errors import PipelineErrorKind
from src.news.models import FeedbackCorpus, Operator
from src.pipeline import DigestPipeline, ReportFolder
from src.relevance.feedback import FeedbackScorer
from src.relevance.metrics import ScoringMetrics
from src.relevance.orchestrator import BatchScoringError, FailurePolicy, FanOutPolicy
from src.relevance.vocabulary import Vocabulary
from src.storage.store import ItemStore
from tests.helpers.embedder import FakeEmbedder
from tests.helpers.feeds import mock_fetcher, rss, rss_item
from tests.helpers.items import make_record
from tests.helpers.news_site import FEED_URLS, site_routes
from tests.helpers.time import FIXED_NOW


@pytest.fixture(autouse=True)
def _reset_metrics() -> Generator[None]:
    ScoringMetrics.reset()
    yield
    ScoringMetrics.reset()


def _pipeline(**kwargs: object) -> DigestPipeline:
    return DigestPipeline(
        "integration",
        mock_fetcher(site_routes()),
        Vocabulary.default(),
        fan_out=FanOutPolicy(max_workers=4),
        **kwargs,  # type: ignore[arg-type]
    )


class _ReversingRandom(random.Random):
    """Random source whose shuffle reverses the list."""

    def shuffle(self, x: list[object]) -> None:  # type: ignore[override]
        x.reverse()


class _ExplodingEmbedder:
    dimension = 2

    def embed(self, texts: list[str]) -> list[tuple[float, ...]]:
        raise RuntimeError("embedding service down")


class TestDossierFlow:
    """Tests for DigestPipeline.run."""

    def test_full_run(self) -> None:
        """Test fetch, prefilter, cleaning and selection."""
        result = _pipeline().run(FEED_URLS)

        assert len(result.fetched) == 3
        assert len(result.prefiltered) == 3
        assert result.cleaning_errors == 1

        by_link = {item.link: item for item in result.cleaned}
        senado = by_link["https://elpais.example/senado"]
        assert senado.error is not None
        assert senado.error.kind == PipelineErrorKind.NETWORK_FAILURE
        assert by_link["https://blog.example/tortilla"].clean_content == "Bate los huevos."

        assert result.selected[0].title == "Gobierno aprueba el Presupuesto"
        assert {item.title for item in result.selected[1:]} == {
            "Crisis en el Senado",
            "Receta de tortilla",
        }
        # Body words count once the article is cleaned
        assert result.selected[0].relevance > result.prefiltered[0].relevance  # type: ignore[operator]
        assert all(item.relevance == 0.0 for item in result.selected[1:])
        assert set(result.lexical_percentiles) == {"p50", "p90", "p99"}
        assert result.relevance_percentiles["p99"] == result.selected[0].relevance
        assert result.scoring_failures == 0

    def test_opt_in(self) -> None:
        """Test only opted-in items reach the report."""
        result = _pipeline().run(FEED_URLS, ["cocina"], Operator.OR)
        assert [item.title for item in result.selected] == ["Receta de tortilla"]

    def test_top_k_limits(self) -> None:
        """Test the configured sizes bound each stage."""
        result = _pipeline(top_k_prefilter=2, top_k_report=1).run(FEED_URLS)
        assert len(result.prefiltered) == 2
        assert len(result.selected) == 1

    def test_nothing_fetched(self) -> None:
        """Test an empty run stops before scoring."""
        result = _pipeline().run(["https://nowhere.example/rss"])
        assert result.is_empty
        assert result.selected == []

    def test_feedback_rescoring(self) -> None:
        """Test the feedback corpus decides the final order."""
        corpus = FeedbackCorpus([make_record(4.0, (1.0, 0.0))])
        embedder = FakeEmbedder({"Receta de tortilla": (1.0, 0.0)}, default=(0.0, 1.0))
        feedback = FeedbackScorer(corpus, embedder, now=FIXED_NOW)

        result = _pipeline(feedback=feedback).run(FEED_URLS)

        assert result.selected[0].title == "Receta de tortilla"
        assert result.selected[0].relevance == pytest.approx(4.0)
        assert all(item.relevance == 0.0 for item in result.selected[1:])

    def test_scoring_failure_fails_run(self) -> None:
        """Test a raising scoring unit fails the whole run by default."""
        feedback = FeedbackScorer(
            FeedbackCorpus([make_record(4.0, (1.0, 0.0))]), _ExplodingEmbedder()
        )
        with pytest.raises(BatchScoringError):
            _pipeline(feedback=feedback).run(FEED_URLS)

    def test_scoring_failure_isolated(self) -> None:
        """Test isolated failures leave the failed items unscored."""
        feedback = FeedbackScorer(
            FeedbackCorpus([make_record(4.0, (1.0, 0.0))]), _ExplodingEmbedder()
        )
        policy = FailurePolicy(isolate=True, max_failures=10)
        result = _pipeline(feedback=feedback, failure_policy=policy).run(FEED_URLS)
        # Only the errored item skips the embedder
        assert [item.relevance for item in result.selected] == [0.0, None, None]
        assert result.scoring_failures == 2
        assert result.relevance_percentiles == {"p50": 0.0, "p90": 0.0, "p99": 0.0}


class TestFeedOrderTies:
    """Tests that feed order does not decide ties between equal items."""

    URLS = ["https://a.example/rss", "https://b.example/rss"]

    def _tied_pipeline(self, rng: random.Random) -> DigestPipeline:
        routes = {
            url: rss(url, rss_item("Gobierno aprueba la ley", url.replace("rss", "1")))
            for url in self.URLS
        }
        return DigestPipeline(
            "ties",
            mock_fetcher(routes),
            Vocabulary.default(),
            fan_out=FanOutPolicy(max_workers=2),
            top_k_prefilter=1,
            rng=rng,
        )

    def test_later_feed_can_win(self) -> None:
        """Test the tie goes to whichever item the shuffle puts first."""
        result = self._tied_pipeline(_ReversingRandom()).run(self.URLS)
        assert result.fetched[0].relevance == result.fetched[1].relevance
        assert [item.link for item in result.prefiltered] == ["https://b.example/1"]

    def test_winners_vary_between_runs(self) -> None:
        """Test repeated runs do not always pick the first feed."""
        winners = {
            self._tied_pipeline(random.Random(seed)).run(self.URLS).prefiltered[0].link
            for seed in range(40)
        }
        assert winners == {"https://a.example/1", "https://b.example/1"}


class TestRelevanceFlow:
    """Tests for DigestPipeline.score_feeds."""

    def test_scores_every_item(self) -> None:
        """Test every item is scored lexically."""
        items = _pipeline().score_feeds(FEED_URLS)
        by_link = {item.link: item for item in items}
        assert set(by_link) == {
            "https://elpais.example/presupuesto",
            "https://elpais.example/senado",
            "https://blog.example/tortilla",
        }
        assert all(item.relevance is not None for item in items)
        assert (
            by_link["https://elpais.example/presupuesto"].relevance
            > by_link["https://blog.example/tortilla"].relevance  # type: ignore[operator]
        )

    def test_shuffled_with_given_random_source(self) -> None:
        """Test items are returned in the order the random source gives."""
        items = _pipeline(rng=_ReversingRandom()).score_feeds(FEED_URLS)
        assert [item.link for item in items] == [
            "https://blog.example/tortilla",
            "https://elpais.example/senado",
            "https://elpais.example/presupuesto",
        ]


class TestReportFolder:
    """Tests for writing a run's reports."""

    def test_writes_dossier_log_and_database(self, tmp_path: Path) -> None:
        """Test the run folder layout."""
        result = _pipeline().run(FEED_URLS)
        now = datetime(2024, 3, 15, 12, 30, 5, tzinfo=UTC)
        folder = ReportFolder(tmp_path, "daily", "integration", now=now)

        written = folder.write_dossier(result, log_items=True, store=True)

        stem = "daily_2024-03-15-12-30-05"
        assert folder.path == tmp_path / stem
        assert [Path(g.absolute_path).name for g in written] == [f"{stem}.md", f"dossier-{stem}.md"]
        dossier = (folder.path / f"dossier-{stem}.md").read_text(encoding="utf-8")
        assert "# Dossier" in dossier
        assert "### Gobierno aprueba el Presupuesto" in dossier
        with ItemStore(folder.path / f"{stem}.db") as store:
            assert store.count() == 3

    def test_writes_relevance(self, tmp_path: Path) -> None:
        """Test the relevance report file."""
        items = _pipeline().score_feeds(FEED_URLS)
        folder = ReportFolder(tmp_path, "report", "integration", now=FIXED_NOW)
        generated = folder.write_relevance(items)
        text = Path(generated.absolute_path).read_text(encoding="utf-8")
        assert Path(generated.absolute_path).name == f"relevance-{folder.stem}.md"
        assert "- **EL PAÍS:** Items: 2" in text
        assert "[Cocina casera] Receta de tortilla" in text
