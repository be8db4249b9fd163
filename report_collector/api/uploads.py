"""Report upload endpoint."""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse
from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.types import Message, Receive

from report_collector.api.dependencies import get_coordinator
from report_collector.config import get_settings
from report_collector.exceptions import InvalidFile, PayloadTooLarge
from report_collector.services.ingestion import (
    SUCCESS,
    IngestionCoordinator,
    UploadedFile,
    UploadRequest,
)

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()


def limit_receive(receive: Receive, limit: int) -> Receive:
    """Wrap an ASGI receive callable so the body stops at ``limit`` bytes.

    The check runs per chunk while the body streams in, so an oversized
    upload is rejected without ever being held in memory in full.
    """
    received = 0

    async def limited() -> Message:
        nonlocal received
        message = await receive()
        if message["type"] == "http.request":
            received += len(message.get("body", b""))
            if received > limit:
                raise PayloadTooLarge(f"Request body exceeds {limit} bytes")
        return message

    return limited


async def read_upload(request: Request, field_name: str, limit: int) -> UploadedFile:
    """Read the single file part of a multipart upload under a size limit."""
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > limit:
        raise PayloadTooLarge(f"Declared body of {declared} bytes exceeds {limit} bytes")

    limited = Request(request.scope, receive=limit_receive(request.receive, limit))
    try:
        async with limited.form() as form:
            upload = form.get(field_name)
            if not isinstance(upload, UploadFile):
                raise InvalidFile(f"No file in form field '{field_name}'")
            content = await upload.read()
            return UploadedFile(filename=upload.filename, content=content)
    except (MultiPartException, HTTPException) as e:
        message = getattr(e, "message", None) or getattr(e, "detail", "")
        logger.warning(f"Could not parse multipart upload: {message}")
        raise InvalidFile(f"Malformed multipart body: {message}") from e


@router.post("/{path:path}", response_class=PlainTextResponse)
async def upload_report(
    path: str,
    request: Request,
    coordinator: IngestionCoordinator = Depends(get_coordinator),
):
    """Store an uploaded report and register where it can be downloaded.

    Identification comes from the X-Org, X-App, X-Version, X-Branch and
    X-Build-Number headers; the file name is the last segment of the path.
    """
    headers = request.headers

    async def read_file(limit: int) -> UploadedFile:
        return await read_upload(request, settings.upload_field, limit)

    upload = UploadRequest(
        org=headers.get("X-Org", ""),
        app=headers.get("X-App", ""),
        version=headers.get("X-Version", ""),
        branch=headers.get("X-Branch", ""),
        build_number=headers.get("X-Build-Number", ""),
        filename=path.rsplit("/", 1)[-1],
        content_type=headers.get("X-Content-Type", ""),
        read_file=read_file,
    )

    result = await coordinator.handle_upload(upload)
    if result.warnings:
        logger.warning(f"Upload {result.url} stored with warnings: {', '.join(result.warnings)}")
    return PlainTextResponse(SUCCESS)
