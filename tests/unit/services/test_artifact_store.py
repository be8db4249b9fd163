"""Unit tests for the artifact store."""

import pytest

from report_collector.exceptions import StorageError, ValidationError
from report_collector.services.artifact_store import ArtifactKey, ArtifactStore


class TestArtifactStore:
    """Tests for ArtifactStore."""

    @pytest.mark.asyncio
    async def test_write_stores_exact_bytes(self, artifact_store, upload_dir):
        """Bytes land at <root>/<org>/<app>/<version>/<filename> unchanged."""
        key = ArtifactKey("acme", "widget", "1.0.0", "report.xml")
        data = b"\x00\x01<xml/>\xff"

        path = await artifact_store.write(key, data)

        assert path == upload_dir / "acme" / "widget" / "1.0.0" / "report.xml"
        assert path.read_bytes() == data
        assert await artifact_store.read(key) == data

    @pytest.mark.asyncio
    async def test_distinct_keys_do_not_interfere(self, artifact_store):
        keys = [
            ArtifactKey("acme", "widget", "1.0.0", "a.xml"),
            ArtifactKey("acme", "widget", "1.0.0", "b.xml"),
            ArtifactKey("acme", "widget", "2.0.0", "a.xml"),
            ArtifactKey("acme", "gadget", "1.0.0", "a.xml"),
        ]
        for i, key in enumerate(keys):
            await artifact_store.write(key, f"content-{i}".encode())

        for i, key in enumerate(keys):
            assert await artifact_store.read(key) == f"content-{i}".encode()

    @pytest.mark.asyncio
    async def test_rewrite_overwrites(self, artifact_store):
        """Same key, new bytes: last write wins, no temp files left behind."""
        key = ArtifactKey("acme", "widget", "1.0.0", "report.xml")

        await artifact_store.write(key, b"first version, longer")
        path = await artifact_store.write(key, b"second")

        assert await artifact_store.read(key) == b"second"
        assert [p.name for p in path.parent.iterdir()] == ["report.xml"]

    @pytest.mark.parametrize(
        "key",
        [
            ArtifactKey("..", "widget", "1.0.0", "report.xml"),
            ArtifactKey("acme", "widget", "1.0.0", "../../escape.xml"),
            ArtifactKey("acme", "wid/get", "1.0.0", "report.xml"),
            ArtifactKey("acme", "widget", ".", "report.xml"),
        ],
    )
    @pytest.mark.asyncio
    async def test_escaping_keys_rejected(self, artifact_store, upload_dir, key):
        with pytest.raises(ValidationError) as exc_info:
            await artifact_store.write(key, b"data")

        assert exc_info.value.code == "INVALID_PATH"
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_directory_creation_failure(self, tmp_path):
        """A root that is a regular file cannot hold directories."""
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("occupied")
        store = ArtifactStore(blocker)

        with pytest.raises(StorageError) as exc_info:
            await store.write(ArtifactKey("acme", "widget", "1.0.0", "r.xml"), b"data")

        assert exc_info.value.code == "STORAGE_WRITE_FAILED"
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_exists(self, artifact_store):
        key = ArtifactKey("acme", "widget", "1.0.0", "report.xml")
        assert await artifact_store.exists(key) is False

        await artifact_store.write(key, b"x")

        assert await artifact_store.exists(key) is True
