"""Exception handlers mapping service errors to JSON responses.

Register with register_exception_handlers(app).
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.errors import ErrorResponse, TaskTrackerError, classify_error_with_response


logger = logging.getLogger(__name__)


def _to_json(response: ErrorResponse, **extra: object) -> JSONResponse:
    content: dict[str, object] = {
        "code": response.code,
        "message": response.message,
        "suggestion": response.suggestion,
        "severity": response.severity.value,
        **{key: value for key, value in extra.items() if value is not None},
    }
    return JSONResponse(status_code=response.status_code, content=content)


def _task_tracker_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return the classified error for known service errors."""
    response = classify_error_with_response(exc)
    logger.warning(
        "request_failed",
        extra={"path": request.url.path, "code": response.code, "error": str(exc)},
    )
    return _to_json(response, current_version=getattr(exc, "current_version", None))


def _permission_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 403 for permission failures raised by the service layer."""
    logger.warning("permission_denied", extra={"path": request.url.path, "error": str(exc)})
    return _to_json(classify_error_with_response(exc), detail=str(exc))


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only outside production."""
    logger.exception("Unhandled exception: %s", exc)
    detail = None if settings.is_production else str(exc)
    return _to_json(classify_error_with_response(exc), detail=detail)


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""
    app.add_exception_handler(TaskTrackerError, _task_tracker_exception_handler)
    app.add_exception_handler(PermissionError, _permission_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
