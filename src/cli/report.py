"""CLI commands for hemeroteca."""

import logging
import sys
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import click
import structlog

from src.embeddings import FastEmbedEmbedder, generate_feedback_records, is_available
from src.ingest.config import FetchConfig
from src.ingest.feeds import FeedReader, read_urls
from src.ingest.filter import select_opted_in
from src.ingest.http import HttpFetcher
from src.news.errors import HemerotecaError
from src.news.models import FeedbackCorpus, NewsItem, Operator
from src.observability.logging import bind_run_context, configure_logging
from src.pipeline import DigestPipeline, ReportFolder
from src.relevance.feedback import FeedbackScorer, SimilarityTarget, elapsed_days
from src.relevance.orchestrator import FanOutPolicy
from src.relevance.vocabulary import Vocabulary, load_vocabulary
from src.settings.app import AppSettings, get_settings
from src.storage.feedback_csv import write_feedback_csv
from src.storage.feedback_parquet import read_feedback_file, write_feedback_parquet


logger = structlog.get_logger()

SKIP_ANSWER = "/q"
MIN_RATING = 1
MAX_RATING = 5


@dataclass
class CliContext:
    """Options shared by every subcommand."""

    run_id: str
    settings: AppSettings
    feeds_file: Path
    threads: int
    opt_in: list[str]
    operator: Operator
    root: Path
    vocabulary_path: Path | None

    def read_feed_urls(self, log: structlog.typing.FilteringBoundLogger) -> list[str]:
        """Read the feed list, exit on failure."""
        try:
            urls = read_urls(self.feeds_file)
        except OSError as e:
            log.error("feeds_file_unreadable", path=str(self.feeds_file), error=str(e))
            click.echo(f"Error: could not read feeds file '{self.feeds_file}': {e}", err=True)
            sys.exit(1)
        log.info("feed_urls_read", path=str(self.feeds_file), count=len(urls))
        return urls

    def load_vocabulary(self, log: structlog.typing.FilteringBoundLogger) -> Vocabulary:
        """Load the vocabulary, exit on failure."""
        try:
            return load_vocabulary(self.vocabulary_path)
        except HemerotecaError as e:
            log.error("vocabulary_load_failed", error=str(e))
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    def http_client(self) -> HttpFetcher:
        """Build the HTTP fetcher from settings."""
        return HttpFetcher(
            FetchConfig(
                user_agent=self.settings.user_agent,
                timeout_seconds=self.settings.request_timeout_seconds,
            ),
            run_id=self.run_id,
        )


@click.group()
@click.version_option(version="0.1.0")
@click.option(
    "--feeds-file",
    "-f",
    type=click.Path(path_type=Path),
    default=Path("feeds.txt"),
    show_default=True,
    help="File with the feed URLs to read.",
)
@click.option("--threads", "-t", type=click.IntRange(min=1), help="Worker threads.")
@click.option(
    "--opt-in",
    "-o",
    "opt_in",
    multiple=True,
    help="Category or keyword to opt in (repeatable).",
)
@click.option(
    "--operator",
    type=click.Choice([op.value for op in Operator], case_sensitive=False),
    default=Operator.OR.value,
    show_default=True,
    help="How opt-in terms combine.",
)
@click.option(
    "--root",
    "-r",
    type=click.Path(file_okay=False, path_type=Path),
    default=Path("."),
    show_default=True,
    help="Root folder for the reports.",
)
@click.option(
    "--vocabulary",
    "vocabulary_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Extra vocabulary word list, one word per line.",
)
@click.option(
    "--json-logs/--console-logs",
    default=True,
    help="Use JSON format for logs (default: JSON).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging.")
@click.pass_context
def cli(  # noqa: PLR0913
    ctx: click.Context,
    feeds_file: Path,
    threads: int | None,
    opt_in: Sequence[str],
    operator: str,
    root: Path,
    vocabulary_path: Path | None,
    json_logs: bool,
    verbose: bool,
) -> None:
    """Read news feeds and build relevance-ranked reports."""
    configure_logging(level=logging.DEBUG if verbose else logging.INFO, json_format=json_logs)
    run_id = str(uuid.uuid4())
    bind_run_context(run_id)

    settings = get_settings()
    terms = [term.lower() for term in opt_in]
    if not terms:
        logger.info("opt_in_empty", detail="keeping every item from the feeds")

    ctx.obj = CliContext(
        run_id=run_id,
        settings=settings,
        feeds_file=feeds_file,
        threads=threads or settings.threads,
        opt_in=terms,
        operator=Operator(operator.lower()),
        root=root,
        vocabulary_path=vocabulary_path or settings.vocabulary_path,
    )


def _require_embeddings(log: structlog.typing.FilteringBoundLogger) -> None:
    if not is_available():
        log.error("embeddings_unavailable")
        click.echo(
            "Error: fastembed is required for feedback. "
            "Install with: pip install 'hemeroteca[embeddings]'",
            err=True,
        )
        sys.exit(1)


def _feedback_scorer(
    options: CliContext,
    feedback_file: Path,
    similarity_threshold: float,
    target: SimilarityTarget,
    log: structlog.typing.FilteringBoundLogger,
) -> FeedbackScorer:
    _require_embeddings(log)
    try:
        records = read_feedback_file(feedback_file)
        embedder = FastEmbedEmbedder(options.settings.embedding_model)
    except (HemerotecaError, OSError, RuntimeError) as e:
        log.error("feedback_setup_failed", path=str(feedback_file), error=str(e))
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    corpus = FeedbackCorpus(records)
    if corpus.dimension and embedder.dimension != corpus.dimension:
        log.error(
            "feedback_dimension_mismatch",
            path=str(feedback_file),
            corpus_dimension=corpus.dimension,
            model_dimension=embedder.dimension,
        )
        click.echo(
            f"Error: feedback embeddings in '{feedback_file}' have {corpus.dimension} "
            f"dimensions but the embedding model produces {embedder.dimension}.",
            err=True,
        )
        sys.exit(1)

    log.info(
        "feedback_corpus_loaded",
        path=str(feedback_file),
        records=len(records),
        target=target.value,
    )
    return FeedbackScorer(
        corpus,
        embedder,
        similarity_threshold=similarity_threshold,
        target=target,
        run_id=options.run_id,
    )


@cli.command()
@click.option("--report-name", "-n", default="report", show_default=True, help="Report name.")
@click.option("--log", "log_items", is_flag=True, help="Also write the Markdown item log.")
@click.option("--db", "store", is_flag=True, help="Also write the SQLite item log.")
@click.option(
    "--feedback-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Feedback Parquet or CSV file used to rescore items by similarity.",
)
@click.option(
    "--similarity-threshold",
    type=click.FloatRange(-1.0, 1.0),
    help="Similarity a feedback record must exceed (default from settings).",
)
@click.option(
    "--similarity-target",
    type=click.Choice([target.value for target in SimilarityTarget], case_sensitive=False),
    help="Stored embedding the bag-of-words query is compared with (default from settings).",
)
@click.pass_obj
def dossier(  # noqa: PLR0913
    options: CliContext,
    report_name: str,
    log_items: bool,
    store: bool,
    feedback_file: Path | None,
    similarity_threshold: float | None,
    similarity_target: str | None,
) -> None:
    """Generate a dossier of the most relevant items."""
    log = logger.bind(component="cli", command="dossier", run_id=options.run_id)
    urls = options.read_feed_urls(log)
    vocabulary = options.load_vocabulary(log)

    feedback = None
    if feedback_file is not None:
        threshold = (
            similarity_threshold
            if similarity_threshold is not None
            else options.settings.similarity_threshold
        )
        target = (
            SimilarityTarget(similarity_target.lower())
            if similarity_target is not None
            else options.settings.similarity_target
        )
        feedback = _feedback_scorer(options, feedback_file, threshold, target, log)

    with options.http_client() as client:
        pipeline = DigestPipeline(
            options.run_id,
            client,
            vocabulary,
            fan_out=FanOutPolicy(max_workers=options.threads),
            feedback=feedback,
            top_k_prefilter=options.settings.top_k_prefilter,
            top_k_report=options.settings.top_k_report,
        )
        try:
            result = pipeline.run(urls, options.opt_in, options.operator)
        except HemerotecaError as e:
            log.error("dossier_failed", error=str(e))
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if result.is_empty:
        click.echo("No news items found.", err=True)
        sys.exit(1)

    folder = ReportFolder(options.root, report_name, options.run_id)
    written = folder.write_dossier(result, log_items=log_items, store=store)
    for generated in written:
        click.echo(generated.absolute_path)


@cli.command()
@click.option("--report-name", "-n", default="report", show_default=True, help="Report name.")
@click.pass_obj
def relevance(options: CliContext, report_name: str) -> None:
    """Generate a relevance report of every item in the feeds."""
    log = logger.bind(component="cli", command="relevance", run_id=options.run_id)
    urls = options.read_feed_urls(log)
    vocabulary = options.load_vocabulary(log)

    with options.http_client() as client:
        pipeline = DigestPipeline(
            options.run_id,
            client,
            vocabulary,
            fan_out=FanOutPolicy(max_workers=options.threads),
        )
        try:
            items = pipeline.score_feeds(urls)
        except HemerotecaError as e:
            log.error("relevance_failed", error=str(e))
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)

    if not items:
        click.echo("No news items found.", err=True)
        sys.exit(1)

    generated = ReportFolder(options.root, report_name, options.run_id).write_relevance(items)
    click.echo(generated.absolute_path)


def _describe(item: NewsItem, count: int, number: int, now: datetime) -> None:
    published = item.published_at()
    days = elapsed_days(published, now) if published is not None else 0

    click.echo("\n====================================")
    click.echo(f"Count: {count}/{number}")
    click.echo(f"Channel: {item.channel}")
    click.echo(f"Title: {item.title}")
    click.echo(f"Days since publication: {days}")
    click.echo(f"Creators: {item.creators}")
    click.echo(f"Categories: {item.categories or 'N/A'}")
    click.echo(f"Keywords: {item.keywords or 'N/A'}")
    click.echo()


def ask_rating(item: NewsItem, count: int, number: int, now: datetime | None = None) -> int | None:
    """Ask the user to rate an item.

    Args:
        item: Item to rate.
        count: Position of the item in the session.
        number: Items in the session.
        now: Time used for the age display (local now when omitted).

    Returns:
        Rating from 1 to 5, or None when skipped.
    """
    _describe(item, count, number, now or datetime.now().astimezone())
    while True:
        answer = click.prompt(
            f"Please provide a relevance feedback for the item from {MIN_RATING} "
            f"to {MAX_RATING} ({SKIP_ANSWER} to skip)",
            type=str,
        ).strip()
        if answer == SKIP_ANSWER:
            return None
        try:
            rating = int(answer)
        except ValueError:
            click.echo(f"Relevance feedback must be an integer between {MIN_RATING} and {MAX_RATING}!")
            continue
        if MIN_RATING <= rating <= MAX_RATING:
            return rating
        click.echo(f"Relevance feedback must be between {MIN_RATING} and {MAX_RATING}!")


@cli.command()
@click.option(
    "--file-name",
    default="feedback.parquet",
    show_default=True,
    help=(
        "Feedback file name, relative to the root folder. Records are written "
        "as Parquet and as CSV under the same stem."
    ),
)
@click.option(
    "--number",
    "-n",
    type=click.IntRange(min=1),
    default=20,
    show_default=True,
    help="Number of items to rate.",
)
@click.option("--model-id", help="fastembed model (default from settings).")
@click.pass_obj
def feedback(options: CliContext, file_name: str, number: int, model_id: str | None) -> None:
    """Rate items interactively and store them as feedback records."""
    log = logger.bind(component="cli", command="feedback", run_id=options.run_id)
    _require_embeddings(log)
    urls = options.read_feed_urls(log)

    with options.http_client() as client:
        reader = FeedReader(client, options.run_id, max_workers=options.threads)
        items = select_opted_in(reader.fetch_items(urls), options.opt_in, options.operator)

    if not items:
        click.echo("No news items found.", err=True)
        sys.exit(1)

    candidates = items[:number]
    rated: list[NewsItem] = []
    for count, item in enumerate(candidates, start=1):
        rating = ask_rating(item, count, len(candidates))
        if rating is not None:
            rated.append(item.with_relevance(float(rating)))

    if not rated:
        log.warning("no_feedback_given")
        click.echo("No feedback items.", err=True)
        sys.exit(1)

    try:
        embedder = FastEmbedEmbedder(model_id or options.settings.embedding_model)
    except RuntimeError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)

    records = generate_feedback_records(rated, embedder)
    destination = options.root / file_name
    rated_at = datetime.now().astimezone()
    written: list[Path] = []
    for path, writer in (
        (destination.with_suffix(".parquet"), write_feedback_parquet),
        (destination.with_suffix(".csv"), write_feedback_csv),
    ):
        try:
            writer(records, path, feedback_date=rated_at)
        except OSError as e:
            log.error("feedback_write_failed", path=str(path), error=str(e))
            click.echo(f"Error: could not write '{path}': {e}", err=True)
            continue
        written.append(path)

    if not written:
        sys.exit(1)
    for path in written:
        click.echo(str(path.resolve()))


def main() -> None:
    """Console script entry point."""
    cli()


if __name__ == "__main__":
    main()
