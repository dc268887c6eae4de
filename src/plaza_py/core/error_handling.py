"""Error handling and exception handlers for plaza-py.

Every error leaving the HTTP surface is rendered as the same JSON body::

    {"status": "error", "code": "session_not_found", "message": "...", "details": [...]}

``details`` is only present when there is something to point at.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import structlog
from litestar import MediaType, Response
from litestar.exceptions import HTTPException
from litestar.status_codes import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from plaza_py.exceptions import (
    InvalidMessageError,
    PlazaError,
    PluginNotInitializedError,
    SessionNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar import Request

logger = structlog.get_logger(__name__)

# Most specific first; looked up along the exception's MRO.
PLAZA_ERROR_STATUS: dict[type[PlazaError], tuple[int, str]] = {
    SessionNotFoundError: (HTTP_404_NOT_FOUND, "session_not_found"),
    InvalidMessageError: (HTTP_400_BAD_REQUEST, "invalid_message"),
    PluginNotInitializedError: (HTTP_503_SERVICE_UNAVAILABLE, "not_ready"),
    PlazaError: (HTTP_400_BAD_REQUEST, "bad_request"),
}

HTTP_ERROR_CODES = {
    400: "bad_request",
    404: "not_found",
    405: "method_not_allowed",
    500: "internal_error",
    503: "service_unavailable",
}


@dataclass
class ErrorDetail:
    """One field-level detail of an error."""

    field: str | None = None
    message: str = ""
    code: str = "error"


@dataclass
class ErrorResponse:
    """Structured error body."""

    message: str = ""
    code: str = "internal_error"
    details: list[ErrorDetail] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        body: dict[str, Any] = {"status": "error", "code": self.code, "message": self.message}
        if self.details:
            body["details"] = [{"field": d.field, "message": d.message, "code": d.code} for d in self.details]
        return body

    def to_response(self, status_code: int) -> Response[dict[str, Any]]:
        """Wrap the body in a JSON response."""
        return Response(content=self.to_dict(), status_code=status_code, media_type=MediaType.JSON)


def _plaza_status(exc: PlazaError) -> tuple[int, str]:
    for cls in type(exc).__mro__:
        if cls in PLAZA_ERROR_STATUS:
            return PLAZA_ERROR_STATUS[cls]
    return HTTP_400_BAD_REQUEST, "bad_request"


def http_exception_handler(request: Request, exc: HTTPException) -> Response[dict[str, Any]]:
    """Render Litestar's own HTTP errors, including unknown routes."""
    code = HTTP_ERROR_CODES.get(exc.status_code, "error")
    log = logger.warning if exc.status_code < HTTP_500_INTERNAL_SERVER_ERROR else logger.error
    log("HTTP exception", path=request.url.path, method=request.method, status_code=exc.status_code, error_code=code)

    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return ErrorResponse(message=message, code=code).to_response(exc.status_code)


def plaza_error_handler(request: Request, exc: PlazaError) -> Response[dict[str, Any]]:
    """Render a :class:`PlazaError` with the status registered for its type.

    A missing session additionally points at the ``session_id`` path parameter.
    """
    status_code, code = _plaza_status(exc)
    logger.warning(
        "Request rejected",
        path=request.url.path,
        error_type=type(exc).__name__,
        error_code=code,
        error=str(exc),
    )

    response = ErrorResponse(message=str(exc), code=code)
    if isinstance(exc, SessionNotFoundError):
        response.message = f"Session not found: {exc.session_id}"
        response.details.append(ErrorDetail(field="session_id", message=str(exc), code="not_found"))
    return response.to_response(status_code)


def generic_exception_handler(request: Request, exc: Exception) -> Response[dict[str, Any]]:
    """Log an unexpected exception and hide it behind a generic message."""
    logger.exception("Unhandled exception", path=request.url.path, method=request.method, exc_info=exc)
    return ErrorResponse(
        message="An unexpected error occurred. Please try again later.",
        code="internal_error",
    ).to_response(HTTP_500_INTERNAL_SERVER_ERROR)


def get_exception_handlers() -> dict[type[Exception], Callable[..., Response[dict[str, Any]]]]:
    """Get the exception handlers installed by the plugin.

    Returns:
        Mapping of exception types to handler functions.
    """
    return {
        HTTPException: http_exception_handler,
        PlazaError: plaza_error_handler,
        Exception: generic_exception_handler,
    }
