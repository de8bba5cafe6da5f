"""Unit tests for environment settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from src.relevance.feedback import SimilarityTarget
from src.settings import AppSettings, get_settings


class TestAppSettings:
    """Tests for AppSettings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test defaults without environment overrides."""
        monkeypatch.chdir(tmp_path)
        settings = get_settings()
        assert settings.threads >= 1
        assert settings.similarity_threshold == 0.8
        assert settings.top_k_prefilter == 100
        assert settings.top_k_report == 20
        assert settings.vocabulary_path is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test HEMEROTECA_ variables override defaults."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HEMEROTECA_THREADS", "3")
        monkeypatch.setenv("HEMEROTECA_SIMILARITY_THRESHOLD", "0.65")
        monkeypatch.setenv("HEMEROTECA_VOCABULARY_PATH", "words.txt")
        settings = AppSettings()
        assert settings.threads == 3
        assert settings.similarity_threshold == 0.65
        assert settings.vocabulary_path == Path("words.txt")

    def test_invalid_threshold(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test out-of-range similarity thresholds are rejected."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("HEMEROTECA_SIMILARITY_THRESHOLD", "1.5")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_similarity_target(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        """Test the similarity target defaults to title and accepts paired."""
        monkeypatch.chdir(tmp_path)
        assert AppSettings().similarity_target is SimilarityTarget.TITLE
        monkeypatch.setenv("HEMEROTECA_SIMILARITY_TARGET", "paired")
        assert AppSettings().similarity_target is SimilarityTarget.PAIRED
