"""
Error taxonomy and FastAPI exception handlers for the rendition pipeline
"""
import traceback
from typing import Dict, Optional

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
import structlog

logger = structlog.get_logger()


class PipelineError(Exception):
    """Base exception for pipeline-specific errors."""

    def __init__(self, message: str, code: str = "PIPELINE_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(message)


class StorageError(PipelineError):
    """Output directory or manifest cannot be created or written."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message, "STORAGE_ERROR", 500)


class ValidationError(PipelineError):
    """Input validation errors."""

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message, "VALIDATION_ERROR", 400)


class EncodeError(PipelineError):
    """One rendition's codec engine invocation failed."""

    def __init__(self, message: str, label: Optional[str] = None):
        self.label = label
        super().__init__(message, "ENCODE_ERROR", 500)


class InvalidTransitionError(PipelineError):
    """A rendition job was asked to leave a state it cannot leave."""

    def __init__(self, message: str):
        super().__init__(message, "INVALID_TRANSITION", 500)


class AggregateFailure(PipelineError):
    """One or more rendition jobs failed and the asset could not be published."""

    def __init__(self, asset_id: str, failures: Dict[str, str]):
        self.asset_id = asset_id
        self.failures = dict(failures)
        if failures:
            detail = "; ".join(f"{label}: {reason}" for label, reason in self.failures.items())
        else:
            detail = "no renditions produced"
        super().__init__(
            f"Transcoding failed for asset {asset_id} ({detail})",
            "AGGREGATE_FAILURE",
            500,
        )


def _error_body(exc: PipelineError, request: Request) -> dict:
    body = {
        "code": exc.code,
        "message": exc.message,
        "type": type(exc).__name__,
        "path": str(request.url.path),
    }
    if isinstance(exc, AggregateFailure):
        body["failures"] = [
            {"rendition": label, "reason": reason}
            for label, reason in exc.failures.items()
        ]
    return {"error": body}


async def pipeline_exception_handler(request: Request, exc: PipelineError):
    """Handle pipeline-specific exceptions."""
    logger.error(
        "Pipeline error",
        error_code=exc.code,
        error_message=exc.message,
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
    )

    return JSONResponse(status_code=exc.status_code, content=_error_body(exc, request))


async def http_exception_handler(request: Request, exc: HTTPException):
    """Render HTTP errors in the same envelope as pipeline errors."""
    logger.warning(
        "HTTP error",
        status_code=exc.status_code,
        detail=exc.detail,
        path=request.url.path,
        method=request.method,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": f"HTTP_{exc.status_code}",
                "message": exc.detail,
                "status_code": exc.status_code,
                "path": str(request.url.path),
            }
        },
    )


async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    tb = traceback.format_exc()

    logger.error(
        "Unhandled exception",
        exc_type=type(exc).__name__,
        exc_message=str(exc),
        traceback=tb,
        path=request.url.path,
        method=request.method,
    )

    from api.config import settings

    # Don't expose internal details in production
    message = str(exc) if settings.DEBUG else "An internal error occurred"
    details = tb if settings.DEBUG else None

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": message,
                "type": type(exc).__name__,
                "path": str(request.url.path),
                "details": details,
            }
        },
    )
