"""Report folder layout for a run."""

from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

import structlog

from src.news.models import NewsItem
from src.pipeline.models import PipelineResult
from src.reports.io import GeneratedFile
from src.reports.renderer import ReportRenderer
from src.storage.store import ItemStore


logger = structlog.get_logger()

STAMP_FORMAT = "%Y-%m-%d-%H-%M-%S"


class ReportFolder:
    """Writes the files of one run under ``<root>/<report_name>_<stamp>/``.

    File names:
    - ``dossier-<name>_<stamp>.md``: the dossier
    - ``relevance-<name>_<stamp>.md``: the relevance report
    - ``<name>_<stamp>.md``: the item log
    - ``<name>_<stamp>.db``: the SQLite item log
    """

    def __init__(
        self,
        root: Path,
        report_name: str,
        run_id: str,
        now: datetime | None = None,
    ) -> None:
        """Initialize the folder.

        Args:
            root: Root directory for reports.
            report_name: Report name prefix.
            run_id: Run identifier.
            now: Run time used for the stamp (local now when omitted).
        """
        self._now = now or datetime.now().astimezone()
        self._stem = f"{report_name}_{self._now.strftime(STAMP_FORMAT)}"
        self._path = root / self._stem
        self._run_id = run_id
        self._renderer = ReportRenderer(run_id, self._path)
        self._log = logger.bind(component="pipeline", run_id=run_id, folder=str(self._path))

    @property
    def path(self) -> Path:
        """The run folder."""
        return self._path

    @property
    def stem(self) -> str:
        """``<report_name>_<stamp>``."""
        return self._stem

    def write_dossier(
        self,
        result: PipelineResult,
        *,
        log_items: bool = False,
        store: bool = False,
    ) -> list[GeneratedFile]:
        """Write the dossier and, optionally, the item logs.

        Args:
            result: Pipeline result.
            log_items: Also write the Markdown item log of cleaned items.
            store: Also insert the cleaned items into the SQLite log.

        Returns:
            Written report files (the database is not listed).
        """
        written: list[GeneratedFile] = []

        if log_items:
            written.append(
                self._renderer.write(f"{self._stem}.md", self._renderer.render_items(result.cleaned))
            )

        if store:
            db_path = self._path / f"{self._stem}.db"
            with ItemStore(db_path, run_id=self._run_id) as item_store:
                inserted = item_store.insert_items(result.cleaned)
            self._log.info("items_stored", path=str(db_path), inserted=inserted.inserted)

        dossier = self._renderer.render_dossier(result.selected, now=self._now)
        written.append(self._renderer.write(f"dossier-{self._stem}.md", dossier))
        return written

    def write_relevance(self, items: Sequence[NewsItem]) -> GeneratedFile:
        """Write the relevance report.

        Args:
            items: Scored items.

        Returns:
            The written file.
        """
        report = self._renderer.render_relevance(items)
        return self._renderer.write(f"relevance-{self._stem}.md", report)
