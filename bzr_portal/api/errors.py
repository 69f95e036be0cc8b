"""Maps pipeline exceptions to HTTP responses."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from bzr_portal.core.exceptions import (
    BZRPortalError,
    EmbeddingUnavailableError,
    ExtractionError,
    IndexUnavailableError,
    IngestionError,
    LLMUnavailableError,
    OCRNotSupportedError,
    ObjectNotFoundError,
    StorageUnavailableError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = [
    (ObjectNotFoundError, 404),
    (OCRNotSupportedError, 415),
    (ExtractionError, 422),
    (StorageUnavailableError, 503),
    (IndexUnavailableError, 503),
    (EmbeddingUnavailableError, 503),
    (LLMUnavailableError, 503),
]


def status_for_error(error: Exception) -> int:
    """HTTP status for a pipeline error; ingestion errors use their cause."""
    if isinstance(error, IngestionError):
        error = error.cause
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status_code
    return 500


async def pipeline_error_handler(request: Request, exc: BZRPortalError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}", exc_info=exc)
    else:
        logger.warning(f"{request.method} {request.url.path} rejected ({status_code}): {exc}")

    content = {"detail": str(exc), "error": type(exc).__name__}
    if isinstance(exc, IngestionError):
        content.update({"stage": exc.stage, "key": exc.key, "cause": type(exc.cause).__name__})
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(BZRPortalError, pipeline_error_handler)
