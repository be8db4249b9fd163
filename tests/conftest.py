"""Pytest configuration and fixtures for Report Collector tests."""

import json
import os
import tempfile

os.environ.setdefault("SKIP_ALEMBIC_MIGRATIONS", "1")
os.environ.setdefault("LOGS_DIR", tempfile.mkdtemp(prefix="report-collector-logs-"))

from collections.abc import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from report_collector.database import Base
from report_collector.schemas.metadata import BuildActivity, BuildActivityCreate
from report_collector.services.artifact_store import ArtifactStore
from report_collector.services.index_sink import IndexSinkClient
from report_collector.services.ingestion import IngestionCoordinator
from report_collector.services.location import LocationResolver
from report_collector.services.metadata_store import MetadataStore

REPORT_HOST = "http://reports.example.com"
INDEX_URL = "http://index.example.com/tests/junit/"
MAX_UPLOAD_SIZE = 64 * 1024


class FakeIndex:
    """Stand-in for the index backend behind an httpx MockTransport."""

    def __init__(self) -> None:
        self.documents: list[dict] = []
        self.status_code = 201
        self.unreachable = False

    def handler(self, request: httpx.Request) -> httpx.Response:
        if self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)
        self.documents.append(json.loads(request.content))
        return httpx.Response(self.status_code, json={"result": "created"})


@pytest_asyncio.fixture(scope="function")
async def test_engine(tmp_path):
    """Create a throwaway SQLite database for one test."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test_metadata.db'}",
        echo=False,
        future=True,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_maker(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def metadata_store(session_maker) -> MetadataStore:
    return MetadataStore(session_maker, max_retries=5)


@pytest.fixture
def upload_dir(tmp_path):
    path = tmp_path / "reports"
    path.mkdir()
    return path


@pytest.fixture
def artifact_store(upload_dir) -> ArtifactStore:
    return ArtifactStore(upload_dir)


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()


@pytest_asyncio.fixture
async def index_sink(fake_index) -> AsyncGenerator[IndexSinkClient, None]:
    async with httpx.AsyncClient(transport=httpx.MockTransport(fake_index.handler)) as client:
        yield IndexSinkClient(INDEX_URL, client)


@pytest.fixture
def coordinator(artifact_store, index_sink, metadata_store) -> IngestionCoordinator:
    return IngestionCoordinator(
        artifact_store=artifact_store,
        index_sink=index_sink,
        resolver=LocationResolver(REPORT_HOST),
        metadata_store=metadata_store,
        max_upload_size=MAX_UPLOAD_SIZE,
        deadline_seconds=30.0,
    )


@pytest_asyncio.fixture
async def test_client(coordinator, metadata_store) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with test collaborators injected."""
    from report_collector.api.dependencies import get_coordinator, get_metadata_store
    from report_collector.main import app as fastapi_app

    fastapi_app.dependency_overrides[get_coordinator] = lambda: coordinator
    fastapi_app.dependency_overrides[get_metadata_store] = lambda: metadata_store

    transport = ASGITransport(app=fastapi_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    fastapi_app.dependency_overrides.clear()


# --- Factory fixtures ---


@pytest_asyncio.fixture
async def activity_factory(metadata_store: MetadataStore):
    """Factory registering build activity records the way the build system does."""

    async def _register(
        org: str = "acme",
        app: str = "widget",
        branch: str = "master",
        build_number: str = "7",
    ) -> BuildActivity:
        record, _ = await metadata_store.register_build_activity(
            BuildActivityCreate(org=org, app=app, branch=branch, build_number=build_number)
        )
        return record

    yield _register


@pytest.fixture
def upload_headers() -> dict[str, str]:
    return {
        "X-Org": "acme",
        "X-App": "widget",
        "X-Version": "1.0.0",
        "X-Branch": "master",
        "X-Build-Number": "7",
        "X-Content-Type": "text/vnd.junit-xml",
    }
