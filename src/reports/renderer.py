"""Markdown reports rendered with Jinja2 templates."""

import re
import time
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import structlog
from jinja2 import Environment, PackageLoader

from src.news.models import NewsItem
from src.relevance.selector import sort_by_relevance
from src.reports.io import AtomicWriter, GeneratedFile


logger = structlog.get_logger()

_NON_ALPHANUMERIC = re.compile(r"[^a-z0-9]+")


def generate_anchor(title: str) -> str:
    """Build a Markdown anchor link for a heading.

    Args:
        title: Heading text.

    Returns:
        ``#`` followed by the lowercased title with every run of
        non-ASCII-alphanumeric characters collapsed into one hyphen.
    """
    slug = _NON_ALPHANUMERIC.sub("-", title.lower()).strip("-")
    return f"#{slug}"


def _format_relevance(value: float | None) -> str:
    return f"{value or 0.0:.2f}"


@dataclass(frozen=True)
class ChannelStats:
    """Relevance totals for one channel.

    Attributes:
        channel: Channel title.
        items: Number of items.
        total: Sum of relevance (missing counts as 0).
        average: Mean relevance.
    """

    channel: str
    items: int
    total: float

    @property
    def average(self) -> float:
        """Mean relevance per item."""
        return self.total / self.items


def channel_stats(items: Sequence[NewsItem]) -> list[ChannelStats]:
    """Aggregate relevance per channel.

    Args:
        items: Scored items.

    Returns:
        One entry per channel, highest average first.
    """
    totals: dict[str, tuple[float, int]] = {}
    for item in items:
        total, count = totals.get(item.channel, (0.0, 0))
        totals[item.channel] = (total + (item.relevance or 0.0), count + 1)

    stats = [
        ChannelStats(channel=channel, items=count, total=total)
        for channel, (total, count) in totals.items()
    ]
    return sorted(stats, key=lambda s: s.average, reverse=True)


class ReportRenderer:
    """Renders and writes the Markdown reports.

    - dossier: the selected items with their cleaned text
    - relevance: per-channel relevance statistics and the ranked item list
    - items: the item log with a table of contents
    """

    def __init__(self, run_id: str, output_dir: Path) -> None:
        """Initialize the renderer.

        Args:
            run_id: Run identifier.
            output_dir: Directory the report files are written to.
        """
        self._output_dir = output_dir
        self._log = logger.bind(run_id=run_id, component="reports")
        self._writer = AtomicWriter(output_dir, run_id)

        # Markdown output: nothing to escape
        self._env = Environment(  # noqa: S701
            loader=PackageLoader("src.reports", "templates"),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self._env.filters["anchor"] = generate_anchor
        self._env.filters["relevance"] = _format_relevance

    def render_dossier(self, items: Sequence[NewsItem], now: datetime | None = None) -> str:
        """Render the dossier.

        Args:
            items: Selected items, already in report order.
            now: Generation time (local now when omitted).

        Returns:
            Markdown text.
        """
        generated_at = (now or datetime.now().astimezone()).isoformat(timespec="seconds")
        return self._render("dossier.md.j2", items=list(items), generated_at=generated_at)

    def render_relevance(self, items: Sequence[NewsItem]) -> str:
        """Render the relevance report.

        Args:
            items: Scored items.

        Returns:
            Markdown text.
        """
        return self._render(
            "relevance.md.j2",
            items=sort_by_relevance(items),
            channels=channel_stats(items),
        )

    def render_items(self, items: Sequence[NewsItem]) -> str:
        """Render the item log.

        Args:
            items: Items to log.

        Returns:
            Markdown text, most relevant first.
        """
        return self._render("items.md.j2", items=sort_by_relevance(items))

    def write(self, file_name: str, content: str) -> GeneratedFile:
        """Append a rendered report to a file in the output directory.

        Args:
            file_name: File name relative to the output directory.
            content: Rendered report.

        Returns:
            GeneratedFile describing the written file.
        """
        generated = self._writer.append(self._output_dir / file_name, content + "\n")
        self._log.info("report_written", path=generated.path, bytes=generated.bytes_written)
        return generated

    def _render(self, template_name: str, **context: object) -> str:
        start = time.perf_counter()
        content = self._env.get_template(template_name).render(**context)
        self._log.debug(
            "template_rendered",
            template=template_name,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return content
