"""Article body extraction.

Each known publisher wraps its article text differently; the channel title
of the feed decides which extraction rule applies. Unknown publishers fall
back to the whole page body.
"""

import time
from collections.abc import Sequence
from concurrent.futures import Executor, ThreadPoolExecutor
from contextlib import nullcontext
from enum import Enum

import structlog
from bs4 import BeautifulSoup, Tag
from bs4.builder import ParserRejectedMarkup

from src.ingest.http import HttpFetcher
from src.news.errors import PipelineError, PipelineErrorException
from src.news.models import NewsItem


logger = structlog.get_logger()

_NON_TEXT_TAGS = ("script", "style", "noscript", "template")


class ChannelType(str, Enum):
    """Publisher families with a dedicated extraction rule."""

    EL_PAIS = "el_pais"
    VEINTE_MINUTOS = "20minutos"
    EL_DIARIO = "eldiario"
    EL_MUNDO = "elmundo"
    OTHER = "other"


# Checked in order against the uppercased channel title
_CHANNEL_MARKERS: tuple[tuple[str, ChannelType], ...] = (
    ("EL PAÍS", ChannelType.EL_PAIS),
    ("20MINUTOS", ChannelType.VEINTE_MINUTOS),
    ("ELDIARIO.ES", ChannelType.EL_DIARIO),
    ("ELMUNDO", ChannelType.EL_MUNDO),
)


def get_channel_type(channel: str) -> ChannelType:
    """Detect the publisher family from a feed channel title.

    Args:
        channel: Channel title.

    Returns:
        Matching ChannelType, OTHER when no marker is present.
    """
    upper = channel.upper()
    for marker, channel_type in _CHANNEL_MARKERS:
        if marker in upper:
            return channel_type
    return ChannelType.OTHER


def _paragraphs(scope: Tag | None) -> list[Tag]:
    return scope.find_all("p") if scope is not None else []


def _el_pais(soup: BeautifulSoup) -> list[Tag]:
    article = soup.find("article")
    if not isinstance(article, Tag):
        return []
    paragraphs: list[Tag] = []
    for div in article.find_all("div", attrs={"data-dtm-region": "articulo_cuerpo"}):
        paragraphs.extend(_paragraphs(div))
    return paragraphs


def _veinte_minutos(soup: BeautifulSoup) -> list[Tag]:
    article = soup.find("article")
    return _paragraphs(article if isinstance(article, Tag) else None)


def _el_diario(soup: BeautifulSoup) -> list[Tag]:
    main = soup.find("main")
    if not isinstance(main, Tag):
        return _body(soup)
    return [p for p in main.find_all("p") if "article-text" in (p.get("class") or [])]


def _el_mundo(soup: BeautifulSoup) -> list[Tag]:
    article = soup.find("article")
    if not isinstance(article, Tag):
        return _body(soup)
    return _paragraphs(article)


def _body(soup: BeautifulSoup) -> list[Tag]:
    body = soup.find("body")
    return [body] if isinstance(body, Tag) else []


_EXTRACTORS = {
    ChannelType.EL_PAIS: _el_pais,
    ChannelType.VEINTE_MINUTOS: _veinte_minutos,
    ChannelType.EL_DIARIO: _el_diario,
    ChannelType.EL_MUNDO: _el_mundo,
    ChannelType.OTHER: _body,
}


def clean_content(channel: str, html: str) -> str:
    """Extract the plain article text from a page.

    Args:
        channel: Feed channel title, selects the extraction rule.
        html: Page HTML.

    Returns:
        Plain text, one block per line; empty when the rule found nothing.

    Raises:
        PipelineErrorException: EmptyInput for empty HTML, ParseFailure
            when the HTML cannot be parsed.
    """
    if not html:
        raise PipelineErrorException(PipelineError.empty_input())

    try:
        soup = BeautifulSoup(html, "lxml")
    except (ParserRejectedMarkup, ValueError, TypeError) as e:
        raise PipelineErrorException(PipelineError.parse_failure(str(e))) from e

    for tag in soup.find_all(_NON_TEXT_TAGS):
        tag.decompose()

    blocks = [
        element.get_text("\n", strip=True)
        for element in _EXTRACTORS[get_channel_type(channel)](soup)
    ]
    return "\n".join(block for block in blocks if block)


class ContentFiller:
    """Downloads and cleans the article behind every item.

    Each item comes back either with ``clean_content`` set or with an
    ``error`` describing why it has none. Never raises per item.
    """

    def __init__(
        self,
        client: HttpFetcher,
        run_id: str = "",
        max_workers: int = 4,
        executor: Executor | None = None,
    ) -> None:
        """Initialize the filler.

        Args:
            client: HTTP fetcher shared by all downloads.
            run_id: Run identifier for logging.
            max_workers: Pool size when no executor is shared.
            executor: Pool shared with other stages.
        """
        self._client = client
        self._max_workers = max_workers
        self._executor = executor
        self._log = logger.bind(component="ingest", subcomponent="cleaner", run_id=run_id)

    def fill(self, items: Sequence[NewsItem]) -> list[NewsItem]:
        """Fill every item with its cleaned article text.

        Args:
            items: Items to fill.

        Returns:
            Updated items in input order.
        """
        start = time.perf_counter()
        pool = (
            nullcontext(self._executor)
            if self._executor is not None
            else ThreadPoolExecutor(max_workers=self._max_workers)
        )
        with pool as executor:
            filled = list(executor.map(self.fill_one, items))

        errors = sum(1 for item in filled if item.has_error)
        self._log.info(
            "contents_filled",
            item_count=len(filled),
            error_count=errors,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return filled

    def fill_one(self, item: NewsItem) -> NewsItem:
        """Fill a single item.

        Args:
            item: Item to fill.

        Returns:
            Copy with clean content, or with the error that prevented it.
        """
        try:
            result = self._client.fetch(item.link)
            if not result.is_success:
                detail = str(result.error) if result.error else f"HTTP {result.status_code}"
                return self._failed(item, PipelineError.network_failure(detail))

            text = clean_content(item.channel, result.text)
            if not text:
                return self._failed(item, PipelineError.no_content())
            return item.with_content(text)

        except PipelineErrorException as e:
            return self._failed(item, e.error)

        except Exception as e:  # noqa: BLE001
            self._log.error("content_fill_unexpected_error", link=item.link, error=str(e))
            return self._failed(item, PipelineError.unknown())

    def _failed(self, item: NewsItem, error: PipelineError) -> NewsItem:
        self._log.warning("content_fill_failed", link=item.link, error=error.to_text())
        return item.with_error(error)
