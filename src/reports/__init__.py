"""Markdown reports: dossier, relevance report and item log."""

from src.reports.io import AtomicWriter, GeneratedFile
from src.reports.renderer import ChannelStats, ReportRenderer, channel_stats, generate_anchor


__all__ = [
    "AtomicWriter",
    "ChannelStats",
    "GeneratedFile",
    "ReportRenderer",
    "channel_stats",
    "generate_anchor",
]
