"""News item models and per-item pipeline errors."""

from src.news.errors import (
    HemerotecaError,
    MalformedEntryError,
    PipelineError,
    PipelineErrorException,
    PipelineErrorKind,
    PipelineErrorParseError,
)
from src.news.models import (
    FeedbackCorpus,
    FeedbackRecord,
    NewsItem,
    Operator,
    split_tokens,
)


__all__ = [
    "FeedbackCorpus",
    "FeedbackRecord",
    "HemerotecaError",
    "MalformedEntryError",
    "NewsItem",
    "Operator",
    "PipelineError",
    "PipelineErrorException",
    "PipelineErrorKind",
    "PipelineErrorParseError",
    "split_tokens",
]
