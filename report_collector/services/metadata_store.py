"""Metadata store client: optimistic merge of shared report records.

Both record types are read-modify-write under concurrent uploads. Every write
is a conditional UPDATE on the revision read in the same attempt; zero
updated rows means another writer got there first, so the merge is redone on
a fresh read. Reads and writes run in separate short transactions and no
in-process lock is held, so several service replicas can share one database.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from report_collector.exceptions import MergeConflict, MergeTimeout, NotFound
from report_collector.models.artifact_index import ArtifactIndexRecord
from report_collector.models.build_activity import BuildActivityRecord
from report_collector.schemas.metadata import ArtifactIndex, BuildActivity, BuildActivityCreate

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETRIES = 5

RecordT = TypeVar("RecordT", ArtifactIndex, BuildActivity)


class MetadataStore:
    """Get-or-create and merge-update of artifact index and build activity records."""

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        max_retries: int = DEFAULT_MAX_RETRIES,
    ) -> None:
        self.session_maker = session_maker
        self.max_retries = max_retries

    # --- Artifact index records ---

    async def get_artifact_index(self, org: str, app: str) -> ArtifactIndex | None:
        return await self._read_artifact_index(org, app)

    async def merge_artifact_index(
        self,
        org: str,
        app: str,
        version: str,
        filename: str,
        url: str,
        deadline: float | None = None,
    ) -> ArtifactIndex:
        """Add or replace ``filename -> url`` under ``version`` for (org, app).

        The record is created on first use. Entries for other versions and
        filenames written concurrently are preserved.
        """

        async def read() -> ArtifactIndex:
            record = await self._read_artifact_index(org, app)
            if record is None:
                await self._create_artifact_index(org, app)
                record = await self._read_artifact_index(org, app)
            if record is None:
                # Created and removed between our two reads
                raise MergeConflict(f"Artifact index {org}/{app} vanished during merge")
            return record

        return await self._optimistic_merge(
            f"artifact index {org}/{app}",
            read,
            lambda current: current.with_entry(version, filename, url),
            self._write_artifact_index,
            deadline,
        )

    async def _read_artifact_index(self, org: str, app: str) -> ArtifactIndex | None:
        async with self.session_maker() as db:
            result = await db.execute(
                select(ArtifactIndexRecord).where(
                    ArtifactIndexRecord.org == org,
                    ArtifactIndexRecord.app == app,
                )
            )
            record = result.scalar_one_or_none()
            return ArtifactIndex.model_validate(record) if record else None

    async def _create_artifact_index(self, org: str, app: str) -> None:
        """Insert an empty record; losing a creation race is not an error."""
        async with self.session_maker() as db:
            db.add(ArtifactIndexRecord(org=org, app=app, versions={}, revision=0))
            try:
                await db.commit()
                logger.info(f"Created artifact index record for {org}/{app}")
            except IntegrityError:
                await db.rollback()
                logger.debug(f"Artifact index record for {org}/{app} created concurrently")

    async def _write_artifact_index(self, record: ArtifactIndex, expected_revision: int) -> bool:
        async with self.session_maker() as db:
            result = await db.execute(
                update(ArtifactIndexRecord)
                .where(
                    ArtifactIndexRecord.org == record.org,
                    ArtifactIndexRecord.app == record.app,
                    ArtifactIndexRecord.revision == expected_revision,
                )
                .values(versions=record.to_column(), revision=expected_revision + 1)
            )
            await db.commit()
            return result.rowcount == 1

    # --- Build activity records ---

    async def get_build_activity(
        self, org: str, app: str, branch: str, build_number: str
    ) -> BuildActivity | None:
        return await self._read_build_activity(org, app, branch, build_number)

    async def register_build_activity(self, data: BuildActivityCreate) -> tuple[BuildActivity, bool]:
        """Create a build activity record if absent.

        Returns the record and whether this call created it.
        """
        created = False
        async with self.session_maker() as db:
            db.add(
                BuildActivityRecord(
                    org=data.org,
                    app=data.app,
                    branch=data.branch,
                    build_number=data.build_number,
                    annotations=[],
                    revision=0,
                )
            )
            try:
                await db.commit()
                created = True
            except IntegrityError:
                await db.rollback()

        record = await self._read_build_activity(data.org, data.app, data.branch, data.build_number)
        if record is None:
            raise NotFound(
                f"Build activity {data.org}/{data.app}/{data.branch}/{data.build_number} "
                "vanished after registration"
            )
        if created:
            logger.info(
                f"Registered build activity {data.org}/{data.app}/{data.branch}/{data.build_number}"
            )
        return record, created

    async def merge_build_activity(
        self,
        org: str,
        app: str,
        branch: str,
        build_number: str,
        filename: str,
        url: str,
        deadline: float | None = None,
    ) -> BuildActivity:
        """Append a ``(filename, url)`` annotation line to an existing build record."""
        key = f"{org}/{app}/{branch}/{build_number}"

        async def read() -> BuildActivity:
            record = await self._read_build_activity(org, app, branch, build_number)
            if record is None:
                raise NotFound(f"No build activity record for {key}")
            return record

        return await self._optimistic_merge(
            f"build activity {key}",
            read,
            lambda current: current.with_annotation(filename, url),
            self._write_build_activity,
            deadline,
        )

    async def _read_build_activity(
        self, org: str, app: str, branch: str, build_number: str
    ) -> BuildActivity | None:
        async with self.session_maker() as db:
            result = await db.execute(
                select(BuildActivityRecord).where(
                    BuildActivityRecord.org == org,
                    BuildActivityRecord.app == app,
                    BuildActivityRecord.branch == branch,
                    BuildActivityRecord.build_number == build_number,
                )
            )
            record = result.scalar_one_or_none()
            return BuildActivity.model_validate(record) if record else None

    async def _write_build_activity(self, record: BuildActivity, expected_revision: int) -> bool:
        async with self.session_maker() as db:
            result = await db.execute(
                update(BuildActivityRecord)
                .where(
                    BuildActivityRecord.org == record.org,
                    BuildActivityRecord.app == record.app,
                    BuildActivityRecord.branch == record.branch,
                    BuildActivityRecord.build_number == record.build_number,
                    BuildActivityRecord.revision == expected_revision,
                )
                .values(annotations=record.to_column(), revision=expected_revision + 1)
            )
            await db.commit()
            return result.rowcount == 1

    # --- Shared retry loop ---

    async def _optimistic_merge(
        self,
        description: str,
        read: Callable[[], Awaitable[RecordT]],
        mutate: Callable[[RecordT], RecordT],
        write: Callable[[RecordT, int], Awaitable[bool]],
        deadline: float | None,
    ) -> RecordT:
        for attempt in range(1, self.max_retries + 1):
            self._check_deadline(deadline, description)

            # A slow store call is cut off at the deadline; the write is a
            # single conditional UPDATE, so nothing is left half-written.
            try:
                async with asyncio.timeout_at(deadline):
                    current = await read()
                    merged = mutate(current)
                    if merged == current:
                        # Nothing to add, skip the write
                        return current
                    written = await write(merged, current.revision)
            except TimeoutError as e:
                raise MergeTimeout(f"Deadline expired while merging {description}") from e

            if written:
                return merged.model_copy(update={"revision": current.revision + 1})

            logger.info(
                f"Concurrent update of {description} "
                f"(attempt {attempt}/{self.max_retries}), retrying"
            )

        logger.error(f"Giving up merging {description} after {self.max_retries} attempts")
        raise MergeConflict(
            f"Could not merge {description} after {self.max_retries} attempts"
        )

    @staticmethod
    def _check_deadline(deadline: float | None, description: str) -> None:
        if deadline is not None and asyncio.get_running_loop().time() >= deadline:
            raise MergeTimeout(f"Deadline expired while merging {description}")
