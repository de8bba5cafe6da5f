"""Selection of the most relevant items."""

from collections.abc import Iterable

from src.news.models import NewsItem


def _relevance_key(item: NewsItem) -> tuple[bool, float]:
    # Missing relevance sorts below every number and ties with other Nones
    if item.relevance is None:
        return (False, 0.0)
    return (True, item.relevance)


def sort_by_relevance(items: Iterable[NewsItem]) -> list[NewsItem]:
    """Sort items by descending relevance.

    The sort is stable: equal relevances keep their input order.

    Args:
        items: Items to sort.

    Returns:
        New sorted list.
    """
    return sorted(items, key=_relevance_key, reverse=True)


def top_k(items: Iterable[NewsItem], k: int) -> list[NewsItem]:
    """Return the k most relevant items.

    Args:
        items: Candidate items.
        k: Number of items to keep.

    Returns:
        At most k items in descending relevance order.

    Raises:
        ValueError: If k is negative.
    """
    if k < 0:
        raise ValueError(f"k must be non-negative, got {k}")
    return sort_by_relevance(items)[:k]
