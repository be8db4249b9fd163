"""Main FastAPI application entry point."""

import logging
import os
import subprocess
import sys
from contextlib import asynccontextmanager
from datetime import UTC, datetime

import httpx
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text

from report_collector import __version__
from report_collector.api import api_router
from report_collector.config import get_settings
from report_collector.database import async_session_maker, close_db, init_db
from report_collector.exceptions import IngestionError
from report_collector.logging import configure_logging
from report_collector.services.artifact_store import ArtifactStore
from report_collector.services.index_sink import IndexSinkClient
from report_collector.services.ingestion import IngestionCoordinator
from report_collector.services.location import LocationResolver
from report_collector.services.metadata_store import MetadataStore

settings = get_settings()

configure_logging(settings)
logger = logging.getLogger(__name__)


def run_migrations() -> None:
    """Run ``alembic upgrade head`` in a subprocess."""
    logger.info("Running database migrations...")
    try:
        result = subprocess.run(
            [sys.executable, "-m", "alembic", "upgrade", "head"],
            check=True,
            capture_output=True,
            text=True,
            cwd=settings.base_dir,
        )
        logger.info(f"Migrations completed: {result.stdout}")
    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed: {e.stderr}")
        raise


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle manager."""
    logger.info("Starting Report Collector...")

    settings.ensure_directories()

    if os.getenv("SKIP_ALEMBIC_MIGRATIONS"):
        logger.info("Skipping database migrations (SKIP_ALEMBIC_MIGRATIONS is set)")
        await init_db()
    else:
        run_migrations()
    logger.info("Database initialized")

    http_client = httpx.AsyncClient(timeout=settings.index_timeout)
    metadata_store = MetadataStore(async_session_maker, max_retries=settings.merge_max_retries)
    index_sink = IndexSinkClient(settings.index_url, http_client)
    if not index_sink.enabled:
        logger.warning("INDEX_URL is empty, report summaries will not be indexed")

    app.state.metadata_store = metadata_store
    app.state.index_sink = index_sink
    app.state.coordinator = IngestionCoordinator(
        artifact_store=ArtifactStore(settings.upload_dir),
        index_sink=index_sink,
        resolver=LocationResolver(settings.report_host),
        metadata_store=metadata_store,
        max_upload_size=settings.max_upload_size,
        junit_content_type=settings.junit_content_type,
        deadline_seconds=settings.request_deadline_seconds,
    )

    logger.info(f"Report Collector is running on http://{settings.host}:{settings.port}")

    yield

    logger.info("Shutting down Report Collector...")
    await http_client.aclose()
    await close_db()
    logger.info("Report Collector stopped")


app = FastAPI(
    title=settings.app_name,
    description="Collects CI test reports and records where they can be found",
    version=__version__,
    lifespan=lifespan,
)


@app.exception_handler(IngestionError)
async def ingestion_error_handler(request: Request, exc: IngestionError):
    """Render pipeline errors as their plain-text code."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.detail}")
    else:
        logger.warning(f"{exc.code} on {request.url.path}: {exc.detail}")
    return PlainTextResponse(exc.code, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handle validation errors with detailed information."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "detail": "Validation error",
            "errors": exc.errors(),
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle all unhandled exceptions."""
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return PlainTextResponse(
        IngestionError.code,
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@app.get("/health")
async def health_check():
    """Health check with database status and pipeline configuration."""
    checks = {
        "status": "healthy",
        "app": settings.app_name,
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
        "components": {
            "database": "unknown",
            "upload_dir": "unknown",
            "index_sink": "enabled" if settings.index_url else "disabled",
        },
    }

    try:
        async with async_session_maker() as db:
            await db.execute(text("SELECT 1"))
        checks["components"]["database"] = "healthy"
    except Exception as e:
        checks["components"]["database"] = f"unhealthy: {type(e).__name__}"
        checks["status"] = "degraded"
        logger.error(f"Database health check failed: {e}")

    if settings.upload_dir.is_dir() and os.access(settings.upload_dir, os.W_OK):
        checks["components"]["upload_dir"] = "writable"
    else:
        checks["components"]["upload_dir"] = "not writable"
        checks["status"] = "degraded"

    status_code = 200 if checks["status"] == "healthy" else 503
    return JSONResponse(content=checks, status_code=status_code)


# Registered after /health so the catch-all upload route comes last
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "report_collector.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
