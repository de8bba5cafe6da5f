"""Ingestion: feed reading, opt-in filtering and article cleaning."""

from src.ingest.cleaner import ChannelType, ContentFiller, clean_content, get_channel_type
from src.ingest.config import FetchConfig, RetryPolicy
from src.ingest.feeds import FeedReader, fetch_items_opted_in, item_from_entry, read_urls
from src.ingest.filter import filter_opt_in, matches_opt_in, select_opted_in
from src.ingest.http import FetchError, FetchErrorClass, FetchResult, HttpFetcher


__all__ = [
    "ChannelType",
    "ContentFiller",
    "FeedReader",
    "FetchConfig",
    "FetchError",
    "FetchErrorClass",
    "FetchResult",
    "HttpFetcher",
    "RetryPolicy",
    "clean_content",
    "fetch_items_opted_in",
    "filter_opt_in",
    "get_channel_type",
    "item_from_entry",
    "matches_opt_in",
    "read_urls",
    "select_opted_in",
]
