"""Ingestion coordinator: the per-upload pipeline."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path

from report_collector.exceptions import (
    DeliveryError,
    IngestionError,
    InvalidFile,
    TranscodeError,
    ValidationError,
)
from report_collector.services.artifact_store import ArtifactKey, ArtifactStore
from report_collector.services.index_sink import IndexSinkClient
from report_collector.services.location import LocationResolver
from report_collector.services.metadata_store import MetadataStore
from report_collector.services.transcoder import to_summary

logger = logging.getLogger(__name__)

SUCCESS = "SUCCESS"

# (attribute, header it comes from), checked in this order
REQUIRED_FIELDS = (
    ("org", "X-Org"),
    ("app", "X-App"),
    ("version", "X-Version"),
    ("branch", "X-Branch"),
    ("build_number", "X-Build-Number"),
)


@dataclass
class UploadedFile:
    filename: str | None
    content: bytes


@dataclass
class UploadRequest:
    """One upload as seen by the pipeline.

    ``read_file`` receives the size limit and returns the file part; it is
    only called after the header fields have been validated.
    """

    org: str
    app: str
    version: str
    branch: str
    build_number: str
    filename: str
    content_type: str
    read_file: Callable[[int], Awaitable[UploadedFile]]


@dataclass
class IngestionResult:
    key: ArtifactKey
    path: Path
    url: str = ""
    indexed: bool = False
    warnings: list[str] = field(default_factory=list)


class IngestionCoordinator:
    """Runs validation, storage, indexing and metadata merges for each upload."""

    def __init__(
        self,
        artifact_store: ArtifactStore,
        index_sink: IndexSinkClient,
        resolver: LocationResolver,
        metadata_store: MetadataStore,
        max_upload_size: int,
        junit_content_type: str = "text/vnd.junit-xml",
        deadline_seconds: float | None = None,
    ) -> None:
        self.artifact_store = artifact_store
        self.index_sink = index_sink
        self.resolver = resolver
        self.metadata_store = metadata_store
        self.max_upload_size = max_upload_size
        self.junit_content_type = junit_content_type
        self.deadline_seconds = deadline_seconds

    def is_junit(self, content_type: str) -> bool:
        """Match the declared media type, ignoring parameters and case."""
        media_type = content_type.split(";", 1)[0].strip().lower()
        return media_type == self.junit_content_type.lower()

    @staticmethod
    def validate(request: UploadRequest) -> None:
        """Fail on the first missing required field."""
        for attr, header in REQUIRED_FIELDS:
            if not getattr(request, attr):
                logger.warning(f"Rejected upload without {header} header")
                raise ValidationError.missing(header)

    async def handle_upload(self, request: UploadRequest) -> IngestionResult:
        """Process one upload.

        Raises an ``IngestionError`` for request errors, storage failures and
        metadata merge failures. Indexing failures only add warnings.
        """
        deadline = None
        if self.deadline_seconds is not None:
            deadline = asyncio.get_running_loop().time() + self.deadline_seconds

        self.validate(request)

        uploaded = await request.read_file(self.max_upload_size)
        filename = request.filename or uploaded.filename
        if not filename:
            raise InvalidFile("No file name in the URL path or the upload part")

        key = ArtifactKey(request.org, request.app, request.version, filename)
        path = await self.artifact_store.write(key, uploaded.content)
        result = IngestionResult(key=key, path=path)

        if self.is_junit(request.content_type):
            result.indexed = await self._index(key, uploaded.content, result)

        result.url = self.resolver.resolve(key)

        failures: list[IngestionError] = []
        try:
            await self.metadata_store.merge_artifact_index(
                key.org, key.app, key.version, key.filename, result.url, deadline=deadline
            )
        except IngestionError as e:
            logger.error(f"Artifact index update failed for {path}: {e.detail}")
            failures.append(e)

        try:
            await self.metadata_store.merge_build_activity(
                key.org,
                key.app,
                request.branch,
                request.build_number,
                key.filename,
                result.url,
                deadline=deadline,
            )
        except IngestionError as e:
            logger.error(f"Build activity update failed for {path}: {e.detail}")
            failures.append(e)

        if failures:
            # Artifact is stored but not discoverable
            raise failures[0]

        logger.info(
            f"Ingested {path} as {result.url}",
            extra={
                "extra_data": {
                    "org": key.org,
                    "app": key.app,
                    "version": key.version,
                    "filename": key.filename,
                    "indexed": result.indexed,
                    "warnings": result.warnings,
                }
            },
        )
        return result

    async def _index(self, key: ArtifactKey, content: bytes, result: IngestionResult) -> bool:
        try:
            summary = to_summary(content, key.org, key.app, key.version)
            await self.index_sink.send(summary)
        except (TranscodeError, DeliveryError) as e:
            logger.error(f"Could not index {key.filename}: {e.detail}")
            result.warnings.append(e.code)
            return False
        return self.index_sink.enabled
