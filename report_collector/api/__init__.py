"""API routes package."""

from fastapi import APIRouter

from report_collector.api.metadata import router as metadata_router
from report_collector.api.uploads import router as uploads_router

api_router = APIRouter()

api_router.include_router(metadata_router, prefix="/api", tags=["metadata"])

# Catch-all upload route, must stay last. POST /api/activities is the only
# upload path it cannot receive; every other POST path, /api/... included, is
# an upload.
api_router.include_router(uploads_router, tags=["uploads"])

__all__ = ["api_router"]
