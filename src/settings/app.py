"""Application settings powered by Pydantic BaseSettings."""

import os
from pathlib import Path
from typing import Annotated

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.relevance.feedback import SimilarityTarget


def _default_threads() -> int:
    return os.cpu_count() or 1


class AppSettings(BaseSettings):
    """Centralized environment configuration.

    Every field can be set through a ``HEMEROTECA_``-prefixed environment
    variable or a ``.env`` file; CLI flags take precedence over both.
    """

    model_config = SettingsConfigDict(
        env_prefix="HEMEROTECA_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    threads: Annotated[int, Field(ge=1)] = Field(default_factory=_default_threads)
    similarity_threshold: Annotated[float, Field(ge=-1.0, le=1.0)] = 0.8
    similarity_target: SimilarityTarget = SimilarityTarget.TITLE
    vocabulary_path: Path | None = None
    embedding_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    top_k_prefilter: Annotated[int, Field(ge=1)] = 100
    top_k_report: Annotated[int, Field(ge=1)] = 20
    user_agent: Annotated[str, Field(min_length=1)] = "hemeroteca/0.1"
    request_timeout_seconds: Annotated[float, Field(gt=0.0, le=300.0)] = 30.0


def get_settings() -> AppSettings:
    """Get a settings instance."""
    return AppSettings()
