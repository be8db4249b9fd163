"""Database models package."""

from report_collector.models.artifact_index import ArtifactIndexRecord
from report_collector.models.build_activity import BuildActivityRecord

__all__ = ["ArtifactIndexRecord", "BuildActivityRecord"]
