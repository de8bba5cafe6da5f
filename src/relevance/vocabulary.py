"""Vocabulary matching by character-bigram similarity.

A word is topically relevant when its Sørensen–Dice coefficient against any
vocabulary term reaches a fixed threshold. Bigram profiles of the terms are
computed once when the vocabulary is built, so matching is a pure read and
a single Vocabulary can be shared by every scoring thread.
"""

from collections import Counter
from collections.abc import Iterable
from pathlib import Path

import structlog

from src.news.errors import HemerotecaError
from src.relevance.constants import DICE_COEFFICIENT_THRESHOLD, ROOT_WORDS


logger = structlog.get_logger()

Bigrams = Counter[str]


class VocabularyLoadError(HemerotecaError):
    """Raised when an external word list cannot be read."""


def _bigrams(text: str) -> Bigrams:
    return Counter(text[i : i + 2] for i in range(len(text) - 1))


def _strip_whitespace(text: str) -> str:
    return "".join(text.split())


def _dice(a: str, a_bigrams: Bigrams, b: str, b_bigrams: Bigrams) -> float:
    if a == b:
        return 1.0
    if len(a) < 2 or len(b) < 2:
        return 0.0
    shared = sum((a_bigrams & b_bigrams).values())
    return (2.0 * shared) / ((len(a) - 1) + (len(b) - 1))


def sorensen_dice(a: str, b: str) -> float:
    """Compute the Sørensen–Dice coefficient over character bigrams.

    Whitespace is ignored and bigrams are counted as a multiset. Identical
    strings score 1.0; a string shorter than two characters cannot share a
    bigram and scores 0.0 against anything but itself.

    Args:
        a: First string.
        b: Second string.

    Returns:
        Coefficient in [0.0, 1.0].
    """
    a = _strip_whitespace(a)
    b = _strip_whitespace(b)
    return _dice(a, _bigrams(a), b, _bigrams(b))


class Vocabulary:
    """Read-only set of reference terms with precomputed bigram profiles."""

    def __init__(self, terms: Iterable[str]) -> None:
        """Initialize the vocabulary.

        Args:
            terms: Reference terms. Empty and whitespace-only terms are dropped.
        """
        cleaned = {_strip_whitespace(t) for t in terms}
        cleaned.discard("")
        self._terms: frozenset[str] = frozenset(cleaned)
        self._profiles: tuple[tuple[str, Bigrams], ...] = tuple(
            (term, _bigrams(term)) for term in sorted(self._terms)
        )

    @classmethod
    def default(cls) -> "Vocabulary":
        """Build the built-in bilingual root-word vocabulary."""
        return cls(ROOT_WORDS)

    @classmethod
    def from_file(cls, path: Path) -> "Vocabulary":
        """Load a vocabulary from a word list.

        One term per line; blank lines and lines starting with ``#`` are
        ignored.

        Args:
            path: Word list path.

        Returns:
            Vocabulary with only the listed terms.

        Raises:
            VocabularyLoadError: If the file cannot be read.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as e:
            msg = f"Cannot read vocabulary file {path}: {e}"
            raise VocabularyLoadError(msg) from e

        terms = [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.lstrip().startswith("#")
        ]
        return cls(terms)

    def extend(self, other: "Vocabulary | Iterable[str]") -> "Vocabulary":
        """Return a new vocabulary with the terms of both."""
        extra = other.terms if isinstance(other, Vocabulary) else other
        return Vocabulary(self._terms | set(extra))

    @property
    def terms(self) -> frozenset[str]:
        """The reference terms."""
        return self._terms

    def __len__(self) -> int:
        return len(self._terms)

    def __contains__(self, term: object) -> bool:
        return term in self._terms

    def matches(
        self, word: str, coefficient: float = DICE_COEFFICIENT_THRESHOLD
    ) -> bool:
        """Check whether a word is close to any vocabulary term.

        Args:
            word: Word to test (not case-normalized).
            coefficient: Minimum Dice coefficient.

        Returns:
            True on the first term reaching the coefficient.
        """
        word = _strip_whitespace(word)
        word_bigrams = _bigrams(word)
        return any(
            _dice(word, word_bigrams, term, term_bigrams) >= coefficient
            for term, term_bigrams in self._profiles
        )


def is_relevant_word(
    word: str,
    vocabulary: Vocabulary,
    coefficient: float = DICE_COEFFICIENT_THRESHOLD,
) -> bool:
    """Decide whether a word is topically close to the vocabulary.

    Args:
        word: Word or phrase to test. Callers normalize case if they want to.
        vocabulary: Reference vocabulary.
        coefficient: Minimum Sørensen–Dice coefficient.

    Returns:
        True if any term scores at least ``coefficient``.
    """
    return vocabulary.matches(word, coefficient)


def load_vocabulary(extra_words_path: Path | None = None) -> Vocabulary:
    """Build the process vocabulary once at startup.

    Args:
        extra_words_path: Optional user word list merged into the built-in set.

    Returns:
        The vocabulary to thread through every scoring call.

    Raises:
        VocabularyLoadError: If the word list cannot be read.
    """
    vocabulary = Vocabulary.default()
    if extra_words_path is None:
        logger.info("vocabulary_loaded", terms=len(vocabulary), extra_terms=0)
        return vocabulary

    extra = Vocabulary.from_file(extra_words_path)
    merged = vocabulary.extend(extra)
    logger.info(
        "vocabulary_loaded",
        terms=len(merged),
        extra_terms=len(extra),
        path=str(extra_words_path),
    )
    return merged
