"""Filesystem storage for uploaded report artifacts."""

import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import aiofiles
import aiofiles.os

from report_collector.exceptions import StorageError, ValidationError

logger = logging.getLogger(__name__)

_FORBIDDEN_COMPONENTS = {"", ".", ".."}


@dataclass(frozen=True)
class ArtifactKey:
    """Identity of a stored artifact."""

    org: str
    app: str
    version: str
    filename: str

    @property
    def parts(self) -> tuple[str, str, str, str]:
        return (self.org, self.app, self.version, self.filename)


class ArtifactStore:
    """Stores artifacts under ``<root>/<org>/<app>/<version>/<filename>``."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, key: ArtifactKey) -> Path:
        """Map a key to its file path, refusing components that escape the root."""
        for part in key.parts:
            if part in _FORBIDDEN_COMPONENTS or "/" in part or "\\" in part or "\x00" in part:
                raise ValidationError(f"Invalid path component: {part!r}")
        return self.root.joinpath(*key.parts)

    async def write(self, key: ArtifactKey, data: bytes) -> Path:
        """Write ``data`` at ``key``, replacing any previous upload.

        The bytes go to a temporary file next to the target and are renamed
        into place, so concurrent readers see either the old or the new file.
        """
        path = self.path_for(key)
        directory = path.parent

        try:
            await aiofiles.os.makedirs(directory, mode=0o755, exist_ok=True)
        except OSError as e:
            logger.error(f"Cannot create directory {directory}: {e}")
            raise StorageError(f"Cannot create directory {directory}: {e}") from e

        tmp_path = directory / f".{key.filename}.{uuid.uuid4().hex}.tmp"
        try:
            async with aiofiles.open(tmp_path, "wb") as f:
                await f.write(data)
            await aiofiles.os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Cannot write artifact {path}: {e}")
            try:
                await aiofiles.os.remove(tmp_path)
            except FileNotFoundError:
                pass
            raise StorageError(f"Cannot write artifact {path}: {e}") from e

        logger.info(f"Stored {len(data)} bytes at {path}")
        return path

    async def read(self, key: ArtifactKey) -> bytes:
        async with aiofiles.open(self.path_for(key), "rb") as f:
            return await f.read()

    async def exists(self, key: ArtifactKey) -> bool:
        return await aiofiles.os.path.exists(self.path_for(key))
