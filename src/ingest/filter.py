"""Opt-in filtering of freshly read items."""

import random
from collections.abc import Sequence

from src.news.models import NewsItem, Operator


def matches_opt_in(item: NewsItem, terms: Sequence[str], operator: Operator) -> bool:
    """Check an item's categories and keywords against opt-in terms.

    A term is present when it is a substring of the comma-joined categories
    or of the comma-joined keywords (missing fields count as empty).

    Args:
        item: Item to check.
        terms: Opt-in terms.
        operator: AND requires every term, OR requires at least one.

    Returns:
        True if the item passes; always True for no terms.
    """
    categories = item.categories or ""
    keywords = item.keywords or ""

    def present(term: str) -> bool:
        return term in categories or term in keywords

    if operator is Operator.AND:
        return all(present(term) for term in terms)
    return not terms or any(present(term) for term in terms)


def filter_opt_in(
    items: Sequence[NewsItem],
    terms: Sequence[str],
    operator: Operator,
    *,
    rng: random.Random | None = None,
) -> list[NewsItem]:
    """Keep the items matching the opt-in terms, in random order.

    With no terms the items are returned unchanged and in input order.

    Args:
        items: Items to filter.
        terms: Opt-in terms.
        operator: How the terms combine.
        rng: Random source for the shuffle.

    Returns:
        Matching items, shuffled.
    """
    if not terms:
        return list(items)

    kept = [item for item in items if matches_opt_in(item, terms, operator)]
    (rng or random.Random()).shuffle(kept)  # noqa: S311
    return kept


def select_opted_in(
    items: Sequence[NewsItem],
    terms: Sequence[str],
    operator: Operator,
    *,
    rng: random.Random | None = None,
) -> list[NewsItem]:
    """Keep the opted-in items and shuffle them, with or without terms.

    The result carries no trace of feed order, so ties in the later
    stable top-k selections do not favour the first feeds listed.

    Args:
        items: Freshly read items.
        terms: Opt-in terms (empty keeps everything).
        operator: How the terms combine.
        rng: Random source for the shuffle.

    Returns:
        Matching items in random order.
    """
    kept = [item for item in items if matches_opt_in(item, terms, operator)]
    (rng or random.Random()).shuffle(kept)  # noqa: S311
    return kept
