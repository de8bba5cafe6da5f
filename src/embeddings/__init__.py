"""Text embeddings for feedback scoring."""

from src.embeddings.embedder import (
    DEFAULT_MODEL,
    Embedder,
    FastEmbedEmbedder,
    is_available,
)
from src.embeddings.feedback_records import generate_feedback_records


__all__ = [
    "DEFAULT_MODEL",
    "Embedder",
    "FastEmbedEmbedder",
    "generate_feedback_records",
    "is_available",
]
