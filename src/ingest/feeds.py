"""Feed reading: URL lists, feed downloads and entry conversion."""

import random
import re
import time
from collections.abc import Sequence
from concurrent.futures import Executor, ThreadPoolExecutor, as_completed
from contextlib import nullcontext
from pathlib import Path
from typing import Any

import feedparser  # type: ignore[import-untyped]
import structlog

from src.ingest.filter import select_opted_in
from src.ingest.http import HttpFetcher
from src.news.errors import MalformedEntryError
from src.news.models import NewsItem, Operator


logger = structlog.get_logger()

_URL_PATTERN = re.compile(r"(http|https)://[^\s/$.?#].[^\s]*")


def read_urls(path: Path | str) -> list[str]:
    """Read feed URLs from a text file, one per line.

    Blank lines, ``#`` comments and lines without a URL are skipped.

    Args:
        path: Path to the URL list.

    Returns:
        Accepted lines in file order.

    Raises:
        OSError: If the file cannot be read.
    """
    urls: list[str] = []
    for raw_line in Path(path).read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if line and not line.startswith("#") and _URL_PATTERN.match(line):
            urls.append(line)
        elif line:
            logger.warning("feed_url_ignored", line=line)
    return urls


def _join_lower(values: Sequence[str]) -> str | None:
    tokens = [value.lower() for value in values if value]
    return ",".join(tokens) if tokens else None


def _creators(entry: Any) -> str:
    names = [author.get("name", "") for author in entry.get("authors", [])]
    names = [name for name in names if name]
    if not names and entry.get("author"):
        names = [entry["author"]]
    return ",".join(names)


def item_from_entry(channel: str, entry: Any) -> NewsItem:
    """Convert a feedparser entry into a NewsItem.

    Args:
        channel: Title of the feed the entry belongs to.
        entry: feedparser entry.

    Returns:
        NewsItem with categories and keywords lowercased.

    Raises:
        MalformedEntryError: If the entry lacks a title, link or description.
    """
    for field in ("title", "link"):
        if not entry.get(field):
            raise MalformedEntryError(field, channel)
    # feedparser exposes <description> as summary
    description = entry.get("summary")
    if description is None:
        raise MalformedEntryError("description", channel)

    keywords = entry.get("media_keywords")

    return NewsItem(
        channel=channel,
        title=entry["title"],
        link=entry["link"],
        description=description,
        creators=_creators(entry),
        pub_date=entry.get("published") or None,
        categories=_join_lower([tag.get("term", "") for tag in entry.get("tags", [])]),
        keywords=keywords.lower() if keywords else None,
    )


class FeedReader:
    """Downloads feeds concurrently and converts their entries.

    A feed that cannot be fetched or parsed is logged and skipped; entries
    lacking required fields are logged and skipped.
    """

    def __init__(
        self,
        client: HttpFetcher,
        run_id: str = "",
        max_workers: int = 4,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the reader.

        Args:
            client: HTTP fetcher shared by all downloads.
            run_id: Run identifier for logging.
            max_workers: Pool size when no executor is shared.
            executor: Pool shared with other stages.
        """
        self._client = client
        self._max_workers = max_workers
        self._executor = executor
        self._log = logger.bind(component="ingest", subcomponent="feeds", run_id=run_id)

    def fetch_items(self, urls: Sequence[str]) -> list[NewsItem]:
        """Read every feed and return all of their items.

        Args:
            urls: Feed URLs.

        Returns:
            Items of every readable feed, grouped by feed in URL order;
            empty when nothing could be read.
        """
        start = time.perf_counter()
        per_feed: dict[int, list[NewsItem]] = {}

        pool = (
            nullcontext(self._executor)
            if self._executor is not None
            else ThreadPoolExecutor(max_workers=self._max_workers)
        )
        with pool as executor:
            future_to_index = {
                executor.submit(self._read_feed, url): index for index, url in enumerate(urls)
            }
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                try:
                    per_feed[index] = future.result()
                except Exception as e:  # noqa: BLE001
                    self._log.error("feed_read_failed", url=urls[index], error=str(e))

        items = [item for index in sorted(per_feed) for item in per_feed[index]]
        self._log.info(
            "feeds_read",
            feed_count=len(urls),
            feeds_failed=len(urls) - len(per_feed),
            item_count=len(items),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return items

    def _read_feed(self, url: str) -> list[NewsItem]:
        result = self._client.fetch(url)
        if not result.is_success:
            msg = str(result.error) if result.error else f"HTTP {result.status_code}"
            raise OSError(msg)

        feed = feedparser.parse(result.body_bytes)
        if feed.bozo and not feed.entries:
            raise ValueError(f"Unreadable feed: {feed.get('bozo_exception')}")

        channel = feed.feed.get("title", "")
        items: list[NewsItem] = []
        for entry in feed.entries:
            try:
                items.append(item_from_entry(channel, entry))
            except MalformedEntryError as e:
                self._log.warning("feed_entry_skipped", url=url, field=e.field)

        self._log.debug("feed_read", url=url, channel=channel, item_count=len(items))
        return items


def fetch_items_opted_in(  # noqa: PLR0913
    urls: Sequence[str],
    terms: Sequence[str],
    operator: Operator,
    client: HttpFetcher,
    *,
    run_id: str = "",
    max_workers: int = 4,
    rng: random.Random | None = None,
) -> list[NewsItem]:
    """Read every feed and keep the items matching the opt-in terms.

    Args:
        urls: Feed URLs.
        terms: Opt-in terms (empty keeps everything).
        operator: How the terms combine.
        client: HTTP fetcher.
        run_id: Run identifier for logging.
        max_workers: Maximum parallel downloads.
        rng: Random source for the shuffle.

    Returns:
        Matching items in random order.
    """
    items = FeedReader(client, run_id=run_id, max_workers=max_workers).fetch_items(urls)
    return select_opted_in(items, terms, operator, rng=rng)
