"""Unit tests for pipeline result models."""

from src.news.errors import PipelineError
from src.pipeline.models import PipelineResult
from tests.helpers.items import make_item


class TestPipelineResult:
    """Tests for PipelineResult."""

    def test_empty(self) -> None:
        """Test a run without fetched items is empty."""
        assert PipelineResult(run_id="r").is_empty

    def test_counts(self) -> None:
        """Test stage counts and cleaning errors."""
        result = PipelineResult(
            run_id="r",
            fetched=[make_item(link="https://a"), make_item(link="https://b")],
            cleaned=[
                make_item(link="https://a", clean_content="x"),
                make_item(link="https://b", error=PipelineError.no_content()),
            ],
            selected=[make_item(link="https://a")],
        )
        assert not result.is_empty
        assert result.cleaning_errors == 1
        data = result.to_dict()
        assert data["fetched"] == 2
        assert data["cleaning_errors"] == 1
        assert data["selected"] == 1

    def test_scoring_metrics_in_dict(self) -> None:
        """Test percentiles and isolated failures are part of the log record."""
        result = PipelineResult(
            run_id="r",
            lexical_percentiles={"p50": 1.0, "p90": 4.0, "p99": 5.0},
            relevance_percentiles={"p50": 0.0, "p90": 2.5, "p99": 3.0},
            scoring_failures=2,
        )
        data = result.to_dict()
        assert data["scoring_failures"] == 2
        assert data["lexical_percentiles"] == {"p50": 1.0, "p90": 4.0, "p99": 5.0}
        assert data["relevance_percentiles"]["p90"] == 2.5
