"""Pydantic schemas package."""

from report_collector.schemas.metadata import (
    ArtifactEntry,
    ArtifactIndex,
    BuildActivity,
    BuildActivityCreate,
)
from report_collector.schemas.summary import SummaryDocument

__all__ = [
    "ArtifactEntry",
    "ArtifactIndex",
    "BuildActivity",
    "BuildActivityCreate",
    "SummaryDocument",
]
