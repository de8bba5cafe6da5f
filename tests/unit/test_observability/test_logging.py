"""Unit tests for logging configuration."""

import io
import json

import structlog

from src.observability import bind_run_context, clear_run_context, configure_logging


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_output_with_run_context(self) -> None:
        """Test JSON lines carry the bound run id."""
        output = io.StringIO()
        configure_logging(output=output, json_format=True)
        try:
            bind_run_context("run-123")
            structlog.get_logger().info("scoring_batch_complete", item_count=3)
        finally:
            clear_run_context()
            structlog.reset_defaults()

        line = json.loads(output.getvalue().strip().splitlines()[-1])
        assert line["event"] == "scoring_batch_complete"
        assert line["run_id"] == "run-123"
        assert line["item_count"] == 3
        assert line["level"] == "info"
