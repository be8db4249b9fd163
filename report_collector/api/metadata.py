"""API routes for the shared metadata records."""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from report_collector.api.dependencies import get_metadata_store
from report_collector.schemas.metadata import ArtifactIndex, BuildActivity, BuildActivityCreate
from report_collector.services.metadata_store import MetadataStore

router = APIRouter()


@router.get("/index/{org}/{app}", response_model=ArtifactIndex)
async def get_artifact_index(
    org: str,
    app: str,
    store: MetadataStore = Depends(get_metadata_store),
):
    """Get the versions and report locations recorded for an application."""
    record = await store.get_artifact_index(org, app)
    if not record:
        raise HTTPException(status_code=404, detail="Artifact index not found")
    return record


@router.post("/activities", response_model=BuildActivity, status_code=status.HTTP_201_CREATED)
async def register_build_activity(
    data: BuildActivityCreate,
    response: Response,
    store: MetadataStore = Depends(get_metadata_store),
):
    """Register a build so report uploads can annotate it.

    Registering an existing build returns it unchanged with status 200.
    """
    record, created = await store.register_build_activity(data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return record


# Branch names may contain slashes
@router.get(
    "/activities/{org}/{app}/{branch:path}/{build_number}",
    response_model=BuildActivity,
)
async def get_build_activity(
    org: str,
    app: str,
    branch: str,
    build_number: str,
    store: MetadataStore = Depends(get_metadata_store),
):
    """Get a build activity record with its report annotations."""
    record = await store.get_build_activity(org, app, branch, build_number)
    if not record:
        raise HTTPException(status_code=404, detail="Build activity not found")
    return record
