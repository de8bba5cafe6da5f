"""Unit tests for feed reading."""

import random
from pathlib import Path

import feedparser  # type: ignore[import-untyped]
import pytest

from src.ingest.feeds import FeedReader, fetch_items_opted_in, item_from_entry, read_urls
from src.news.errors import MalformedEntryError
from src.news.models import Operator
from tests.helpers.feeds import mock_fetcher, rss, rss_item


def _entry(**fields: object) -> feedparser.FeedParserDict:
    return feedparser.FeedParserDict(fields)


class TestReadUrls:
    """Tests for read_urls."""

    def test_skips_comments_and_invalid_lines(self, tmp_path: Path) -> None:
        """Test only URL lines are returned, in order."""
        path = tmp_path / "feeds.txt"
        path.write_text(
            "# Spanish press\n"
            "https://feeds.elpais.com/portada\n"
            "\n"
            "not a url\n"
            "ftp://example.com/feed\n"
            "http://www.20minutos.es/rss/\n",
            encoding="utf-8",
        )
        assert read_urls(path) == [
            "https://feeds.elpais.com/portada",
            "http://www.20minutos.es/rss/",
        ]

    def test_missing_file(self, tmp_path: Path) -> None:
        """Test a missing file raises OSError."""
        with pytest.raises(OSError):
            read_urls(tmp_path / "missing.txt")


class TestItemFromEntry:
    """Tests for item_from_entry."""

    def test_full_entry(self) -> None:
        """Test every field is mapped and lowercased where required."""
        entry = _entry(
            title="Titular",
            link="https://example.com/a",
            summary="Resumen",
            authors=[{"name": "Ana"}, {"name": "Luis"}],
            published="Fri, 15 Mar 2024 10:00:00 +0100",
            tags=[{"term": "Politica"}, {"term": "Economia"}],
            media_keywords="Gobierno, Bolsa",
        )
        item = item_from_entry("El País", entry)
        assert item.channel == "El País"
        assert item.description == "Resumen"
        assert item.creators == "Ana,Luis"
        assert item.categories == "politica,economia"
        assert item.keywords == "gobierno, bolsa"
        assert item.pub_date == "Fri, 15 Mar 2024 10:00:00 +0100"

    def test_single_author_fallback(self) -> None:
        """Test the plain author field is used without an author list."""
        entry = _entry(title="T", link="https://example.com/a", summary="", author="Marta")
        assert item_from_entry("c", entry).creators == "Marta"

    def test_optional_fields_absent(self) -> None:
        """Test missing optional fields stay empty."""
        item = item_from_entry("c", _entry(title="T", link="https://example.com/a", summary=""))
        assert item.creators == ""
        assert item.categories is None
        assert item.keywords is None
        assert item.pub_date is None

    @pytest.mark.parametrize(
        ("fields", "missing"),
        [
            ({"link": "https://example.com/a", "summary": "s"}, "title"),
            ({"title": "T", "summary": "s"}, "link"),
            ({"title": "T", "link": "https://example.com/a"}, "description"),
        ],
    )
    def test_required_fields(self, fields: dict[str, str], missing: str) -> None:
        """Test entries without title, link or description are rejected."""
        with pytest.raises(MalformedEntryError) as exc_info:
            item_from_entry("c", _entry(**fields))
        assert exc_info.value.field == missing


class TestFeedReader:
    """Tests for FeedReader."""

    def test_reads_feeds_in_url_order(self) -> None:
        """Test items are grouped per feed in URL order."""
        first = rss("Feed One", rss_item("A", "https://one/a") + rss_item("B", "https://one/b"))
        second = rss("Feed Two", rss_item("C", "https://two/c", categories=("Politica",)))
        fetcher = mock_fetcher({"https://one/rss": first, "https://two/rss": second})

        items = FeedReader(fetcher).fetch_items(["https://one/rss", "https://two/rss"])

        assert [i.title for i in items] == ["A", "B", "C"]
        assert items[0].channel == "Feed One"
        assert items[0].creators == "Ana Pérez"
        assert items[2].categories == "politica"

    def test_failed_feed_is_skipped(self) -> None:
        """Test an unreachable feed does not stop the others."""
        feed = rss("Feed", rss_item("A", "https://ok/a"))
        fetcher = mock_fetcher({"https://ok/rss": feed, "https://down/rss": 500})
        items = FeedReader(fetcher).fetch_items(["https://down/rss", "https://ok/rss"])
        assert [i.title for i in items] == ["A"]

    def test_unreadable_feed_is_skipped(self) -> None:
        """Test a document that is not a feed yields nothing."""
        fetcher = mock_fetcher({"https://bad/rss": b"\x00\x01 not xml at all <"})
        assert FeedReader(fetcher).fetch_items(["https://bad/rss"]) == []

    def test_malformed_entries_skipped(self) -> None:
        """Test entries without a description are dropped."""
        feed = rss("Feed", rss_item("A", "https://f/a", description=None) + rss_item("B", "https://f/b"))
        items = FeedReader(mock_fetcher({"https://f/rss": feed})).fetch_items(["https://f/rss"])
        assert [i.title for i in items] == ["B"]


class TestFetchItemsOptedIn:
    """Tests for fetch_items_opted_in."""

    def test_filters(self) -> None:
        """Test only opted-in items are returned."""
        feed = rss(
            "Feed",
            rss_item("A", "https://f/a", categories=("Politica",))
            + rss_item("B", "https://f/b", categories=("Deportes",)),
        )
        items = fetch_items_opted_in(
            ["https://f/rss"], ["politica"], Operator.OR, mock_fetcher({"https://f/rss": feed})
        )
        assert [i.title for i in items] == ["A"]

    def test_shuffled_without_terms(self) -> None:
        """Test items from several feeds come back in random order."""
        routes = {
            f"https://{name}/rss": rss(
                name, "".join(rss_item(f"{name} {i}", f"https://{name}/{i}") for i in range(4))
            )
            for name in ("a", "b")
        }
        urls = list(routes)
        in_feed_order = [i.link for i in FeedReader(mock_fetcher(routes)).fetch_items(urls)]

        items = fetch_items_opted_in(
            urls, [], Operator.OR, mock_fetcher(routes), rng=random.Random(5)
        )

        expected = list(in_feed_order)
        random.Random(5).shuffle(expected)
        assert [i.link for i in items] == expected
