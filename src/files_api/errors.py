"""
Error taxonomy for the Files API and the FastAPI handlers that render it.

Every service raises a subclass of ``FilesApiError``. Each class carries the
HTTP status and the short message the API returns in ``{"error": ...}``.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class FilesApiError(Exception):
    """Base class for all errors raised by the Files API core."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"

    def __init__(self, message=None):
        super().__init__(message or self.message)
        self.message = message or self.message


class Unauthorized(FilesApiError):
    """Missing, invalid or expired token, or a credential mismatch."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class ValidationError(FilesApiError):
    """Malformed input; ``field`` names the offending attribute."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, field: str, message: str | None = None):
        self.field = field
        super().__init__(message or f"Missing {field}")


class ParentNotFound(FilesApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Parent not found"


class DuplicateUser(FilesApiError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Already exists"


class FileNotFound(FilesApiError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"


class StorageWriteError(FilesApiError):
    """A blob could not be written; the triggering create must fail."""

    message = "Could not store file data"


class QueueEnqueueError(FilesApiError):
    """A post-processing job could not be handed to the queue."""

    message = "Could not enqueue post-processing job"


class StoreUnavailable(FilesApiError):
    """The key-value store did not acknowledge a write."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    message = "Session store unavailable"


class JobNotProcessable(FilesApiError):
    """Permanent worker-side failure: the job is dropped without retry."""

    message = "Job cannot be processed"


async def handle_files_api_errors(request: Request, exc: FilesApiError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def handle_pydantic_validation_errors(request: Request, exc) -> JSONResponse:
    """Render pydantic and request validation failures as a 400 naming the first bad field."""
    errors = exc.errors()
    field = str(errors[0]["loc"][-1]) if errors and errors[0]["loc"] else "body"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": f"Invalid {field}", "detail": [error["msg"] for error in errors]},
    )


async def handle_broad_exceptions(request: Request, call_next):
    """Handle any exception that goes unhandled by a more specific exception handler."""
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "Internal server error"},
        )
