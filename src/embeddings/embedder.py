"""Text embedders used by feedback scoring.

``FastEmbedEmbedder`` uses fastembed (ONNX-based). fastembed is an optional
dependency; ``is_available`` reports whether it can be used.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol

import structlog

from src.news.models import Embedding


logger = structlog.get_logger()

try:
    from fastembed import TextEmbedding

    _FASTEMBED_AVAILABLE = True
except ImportError:
    _FASTEMBED_AVAILABLE = False

# Lightweight model: 384 dimensions
DEFAULT_MODEL = "sentence-transformers/all-MiniLM-L6-v2"


def is_available() -> bool:
    """Check if fastembed is installed and usable."""
    return _FASTEMBED_AVAILABLE


class Embedder(Protocol):
    """Anything that turns texts into fixed-length vectors.

    Every vector produced by one embedder instance must share the same
    dimensionality.
    """

    @property
    def dimension(self) -> int:
        """Length of every produced vector."""
        ...

    def embed(self, texts: Sequence[str]) -> list[Embedding]:
        """Embed each text.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per text, in order.
        """
        ...


class FastEmbedEmbedder:
    """Embedder backed by a fastembed ``TextEmbedding`` model.

    Requires the ``fastembed`` extra.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL) -> None:
        """Initialize the embedder.

        Args:
            model_name: fastembed model identifier.

        Raises:
            RuntimeError: If fastembed is not installed.
        """
        if not _FASTEMBED_AVAILABLE:
            msg = (
                "fastembed is required for feedback scoring. "
                "Install with: pip install 'hemeroteca[embeddings]'"
            )
            raise RuntimeError(msg)

        self._model_name = model_name
        self._model = TextEmbedding(model_name=model_name)
        self._dimension: int | None = None
        logger.info("embedder_initialized", model=model_name)

    @property
    def model_name(self) -> str:
        """The fastembed model identifier."""
        return self._model_name

    @property
    def dimension(self) -> int:
        """Length of every produced vector, measured on first use."""
        if self._dimension is None:
            self._dimension = len(self.embed(["dimension"])[0])
        return self._dimension

    def embed(self, texts: Sequence[str]) -> list[Embedding]:
        """Embed each text with the model.

        Args:
            texts: Texts to embed.

        Returns:
            One vector per text, in order.
        """
        vectors = self._model.embed(list(texts))
        return [tuple(float(x) for x in vector) for vector in vectors]
