"""Hemeroteca: feed ingestion, relevance scoring and top-k selection."""
