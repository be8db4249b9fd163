"""Services package."""

from report_collector.services.artifact_store import ArtifactKey, ArtifactStore
from report_collector.services.index_sink import IndexSinkClient
from report_collector.services.ingestion import IngestionCoordinator
from report_collector.services.location import LocationResolver
from report_collector.services.metadata_store import MetadataStore

__all__ = [
    "ArtifactKey",
    "ArtifactStore",
    "IndexSinkClient",
    "IngestionCoordinator",
    "LocationResolver",
    "MetadataStore",
]
