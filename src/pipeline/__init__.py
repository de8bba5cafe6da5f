"""End-to-end dossier and relevance flows."""

from src.pipeline.digest import DigestPipeline
from src.pipeline.models import PipelineResult
from src.pipeline.output import ReportFolder


__all__ = [
    "DigestPipeline",
    "PipelineResult",
    "ReportFolder",
]
