"""Relevance scoring for news items.

Lexical scoring against a root-word vocabulary, feedback scoring by
embedding similarity to rated items, concurrent batch orchestration and
top-k selection.
"""

from src.relevance.feedback import (
    CompositeScorer,
    FeedbackScorer,
    SimilarityTarget,
    cosine_similarity,
    decay_multiplier,
    relevance_by_similarity,
    score_feedback,
)
from src.relevance.lexical import LexicalScorer, score_lexical
from src.relevance.metrics import ScoringMetrics
from src.relevance.models import BatchScoringResult, RelevanceBreakdown, ScoringOutcome
from src.relevance.orchestrator import (
    BatchScoringError,
    FailurePolicy,
    FanOutPolicy,
    ItemScorer,
    ScoringOrchestrator,
    score_all,
)
from src.relevance.selector import sort_by_relevance, top_k
from src.relevance.vocabulary import (
    Vocabulary,
    VocabularyLoadError,
    is_relevant_word,
    load_vocabulary,
    sorensen_dice,
)


__all__ = [
    "BatchScoringError",
    "BatchScoringResult",
    "CompositeScorer",
    "FailurePolicy",
    "FanOutPolicy",
    "FeedbackScorer",
    "ItemScorer",
    "LexicalScorer",
    "RelevanceBreakdown",
    "ScoringMetrics",
    "ScoringOrchestrator",
    "ScoringOutcome",
    "SimilarityTarget",
    "Vocabulary",
    "VocabularyLoadError",
    "cosine_similarity",
    "decay_multiplier",
    "is_relevant_word",
    "load_vocabulary",
    "relevance_by_similarity",
    "score_all",
    "score_feedback",
    "score_lexical",
    "sort_by_relevance",
    "sorensen_dice",
    "top_k",
]
