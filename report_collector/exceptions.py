"""Error taxonomy of the ingestion pipeline.

Every error carries the code string returned to the uploader and the HTTP
status it maps to. Transcoding and delivery errors never reach the uploader;
they are logged and recorded as warnings on the ingestion result.
"""


class IngestionError(Exception):
    """Base class for all pipeline errors."""

    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, detail: str = "", code: str | None = None) -> None:
        if code is not None:
            self.code = code
        self.detail = detail or self.code
        super().__init__(self.detail)


class ValidationError(IngestionError):
    """A required field is missing or a key component is unusable."""

    code = "INVALID_PATH"
    status_code = 400

    @classmethod
    def missing(cls, header: str) -> "ValidationError":
        return cls(f"Missing required header {header}", code=f"MISSING_FIELD:{header}")


class PayloadTooLarge(IngestionError):
    code = "PAYLOAD_TOO_LARGE"
    status_code = 400


class InvalidFile(IngestionError):
    code = "INVALID_FILE"
    status_code = 400


class StorageError(IngestionError):
    """Artifact could not be written; the upload is lost."""

    code = "STORAGE_WRITE_FAILED"
    status_code = 500


class TranscodeError(IngestionError):
    code = "TRANSCODE_FAILED"


class DeliveryError(IngestionError):
    """Index sink unreachable or rejected the document."""

    code = "INDEX_DELIVERY_FAILED"

    def __init__(self, detail: str, status: int | None = None, body: str = "") -> None:
        self.status = status
        self.body = body
        super().__init__(detail)


class MergeConflict(IngestionError):
    """Retry budget exhausted while merging a metadata record."""

    code = "MERGE_CONFLICT"
    status_code = 500


class MergeTimeout(IngestionError):
    """Request deadline expired before a metadata merge could be written."""

    code = "MERGE_TIMEOUT"
    status_code = 500


class NotFound(IngestionError):
    code = "ACTIVITY_NOT_FOUND"
    status_code = 500
