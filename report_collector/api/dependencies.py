"""API dependencies.

Collaborators are built once in the application lifespan and kept on
``app.state``; tests replace them through ``dependency_overrides``.
"""

from fastapi import Request

from report_collector.services.ingestion import IngestionCoordinator
from report_collector.services.metadata_store import MetadataStore


def get_coordinator(request: Request) -> IngestionCoordinator:
    return request.app.state.coordinator


def get_metadata_store(request: Request) -> MetadataStore:
    return request.app.state.metadata_store
