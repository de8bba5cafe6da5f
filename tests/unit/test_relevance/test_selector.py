"""Unit tests for top-k selection."""

import pytest

from src.news.models import NewsItem
from src.relevance.selector import sort_by_relevance, top_k
from tests.helpers.items import make_item


def _item(name: str, relevance: float | None) -> NewsItem:
    return make_item(link=f"https://example.com/{name}", title=name, relevance=relevance)


def _names(items: list[NewsItem]) -> list[str]:
    return [i.title for i in items]


class TestTopK:
    """Tests for top_k."""

    def test_none_excluded_and_ties_stable(self) -> None:
        """Test missing relevance sorts last and equal values keep input order."""
        items = [_item("x", None), _item("y", 5.0), _item("z", 5.0)]
        assert _names(top_k(items, 2)) == ["y", "z"]

    def test_idempotent_on_sorted_input(self) -> None:
        """Test sorted input no longer than k comes back unchanged."""
        items = [_item("a", 9.0), _item("b", 4.0), _item("c", 4.0), _item("d", None)]
        assert top_k(items, 4) == items
        assert top_k(top_k(items, 10), 10) == items

    def test_k_larger_than_input(self) -> None:
        """Test the whole input is returned sorted."""
        items = [_item("a", 1.0), _item("b", 3.0)]
        assert _names(top_k(items, 20)) == ["b", "a"]

    def test_k_zero(self) -> None:
        """Test k of zero selects nothing."""
        assert top_k([_item("a", 1.0)], 0) == []

    def test_negative_k(self) -> None:
        """Test negative k is rejected."""
        with pytest.raises(ValueError):
            top_k([_item("a", 1.0)], -1)

    def test_negative_relevance_above_none(self) -> None:
        """Test any number outranks a missing relevance."""
        items = [_item("none", None), _item("neg", -3.0)]
        assert _names(top_k(items, 1)) == ["neg"]


class TestSortByRelevance:
    """Tests for sort_by_relevance."""

    def test_nones_keep_order(self) -> None:
        """Test missing values compare equal."""
        items = [_item("a", None), _item("b", 2.0), _item("c", None)]
        assert _names(sort_by_relevance(items)) == ["b", "a", "c"]

    def test_accepts_iterables(self) -> None:
        """Test generators are accepted."""
        items = (_item(str(n), float(n)) for n in range(3))
        assert _names(sort_by_relevance(items)) == ["2", "1", "0"]
