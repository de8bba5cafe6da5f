"""Lexical relevance scoring against the root-word vocabulary."""

import time

import structlog

from src.news.models import NewsItem, split_tokens
from src.relevance.constants import (
    CATEGORY_WEIGHT,
    CONTENT_WORD_WEIGHT,
    CREATOR_WEIGHT,
    DESCRIPTION_WORD_WEIGHT,
    DICE_COEFFICIENT_THRESHOLD,
    KEYWORD_WEIGHT,
    TITLE_WORD_WEIGHT,
)
from src.relevance.models import RelevanceBreakdown
from src.relevance.vocabulary import Vocabulary


logger = structlog.get_logger()


def _count_relevant(words: list[str], vocabulary: Vocabulary, coefficient: float) -> int:
    return sum(1 for word in words if vocabulary.matches(word, coefficient))


def score_lexical(
    item: NewsItem,
    vocabulary: Vocabulary,
    coefficient: float = DICE_COEFFICIENT_THRESHOLD,
) -> RelevanceBreakdown:
    """Compute the lexical relevance breakdown of an item.

    Scoring formula:
        creator       = 10 if creators is non-empty
        categories    = 5 per relevant comma-separated category
        keywords      = 5 per relevant comma-separated keyword
        title         = 10 per relevant title word
        description   = 1 per relevant description word
        clean_content = 1 per relevant body word (only if body text exists)

    Items carrying a pipeline error are not analysed at all.

    Args:
        item: Item to score.
        vocabulary: Reference vocabulary.
        coefficient: Minimum Dice coefficient for a word to count.

    Returns:
        RelevanceBreakdown with per-component values.
    """
    start = time.perf_counter()

    if item.has_error:
        return RelevanceBreakdown.errored((time.perf_counter() - start) * 1000)

    creator = CREATOR_WEIGHT if item.creators else 0
    categories = CATEGORY_WEIGHT * _count_relevant(
        split_tokens(item.categories), vocabulary, coefficient
    )
    keywords = KEYWORD_WEIGHT * _count_relevant(
        split_tokens(item.keywords), vocabulary, coefficient
    )
    title = TITLE_WORD_WEIGHT * _count_relevant(item.title.split(), vocabulary, coefficient)
    description = DESCRIPTION_WORD_WEIGHT * _count_relevant(
        item.description.split(), vocabulary, coefficient
    )

    # Body text is the most expensive pass and only exists after cleaning
    clean_content = 0
    if item.clean_content is not None:
        clean_content = CONTENT_WORD_WEIGHT * _count_relevant(
            item.clean_content.split(), vocabulary, coefficient
        )

    return RelevanceBreakdown(
        has_error=False,
        creator=creator,
        categories=categories,
        keywords=keywords,
        title=title,
        description=description,
        clean_content=clean_content,
        elapsed_ms=(time.perf_counter() - start) * 1000,
    )


class LexicalScorer:
    """Scores items with the lexical heuristic.

    Callable as an orchestrator unit of work: returns a copy of the item
    carrying its net lexical relevance.
    """

    def __init__(
        self,
        vocabulary: Vocabulary,
        run_id: str = "",
        coefficient: float = DICE_COEFFICIENT_THRESHOLD,
    ) -> None:
        """Initialize the scorer.

        Args:
            vocabulary: Reference vocabulary, shared read-only.
            run_id: Run identifier for logging.
            coefficient: Minimum Dice coefficient for a word to count.
        """
        self._vocabulary = vocabulary
        self._coefficient = coefficient
        self._log = logger.bind(
            component="relevance",
            subcomponent="lexical",
            run_id=run_id,
        )

    @property
    def vocabulary(self) -> Vocabulary:
        """The reference vocabulary."""
        return self._vocabulary

    def breakdown(self, item: NewsItem) -> RelevanceBreakdown:
        """Compute the breakdown for an item."""
        result = score_lexical(item, self._vocabulary, self._coefficient)
        self._log.debug(
            "lexical_relevance_computed",
            link=item.link,
            **result.to_dict(),
        )
        return result

    def __call__(self, item: NewsItem) -> NewsItem:
        """Score an item.

        Args:
            item: Item to score.

        Returns:
            Copy of the item with ``relevance`` set to the net lexical score.
        """
        return item.with_relevance(float(self.breakdown(item).net_relevance))
