"""Build feedback records from rated items."""

from collections.abc import Iterable

import structlog

from src.embeddings.embedder import Embedder
from src.news.models import FeedbackRecord, NewsItem


logger = structlog.get_logger()


def generate_feedback_records(
    items: Iterable[NewsItem],
    embedder: Embedder,
) -> list[FeedbackRecord]:
    """Embed rated items into feedback records.

    Items carrying a pipeline error or lacking a rating are skipped.

    Args:
        items: Rated items.
        embedder: Embedder producing title and bag-of-words vectors.

    Returns:
        One record per usable item, in input order.
    """
    records: list[FeedbackRecord] = []
    skipped = 0

    for item in items:
        if item.has_error or item.relevance is None:
            skipped += 1
            logger.warning(
                "feedback_item_skipped",
                link=item.link,
                error=str(item.error) if item.error else None,
            )
            continue

        title_embedding, bow_embedding = embedder.embed([item.title, item.bag_of_words()])
        records.append(
            FeedbackRecord(
                news_item=item,
                title_embedding=title_embedding,
                bow_embedding=bow_embedding,
            )
        )

    logger.info("feedback_records_generated", count=len(records), skipped=skipped)
    return records
