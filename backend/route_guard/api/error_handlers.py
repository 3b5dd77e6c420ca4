"""Error Handlers — JSON envelopes for the guard's own API surface.

Invariants:
    - RouteGuardError → its to_response() envelope at its http_status
    - Any other exception → generic 500 envelope, no internal details
    - Only /api routes reach these handlers: guarded page requests are decided
      by the middleware, which fails open instead of raising

Design Decisions:
    - Log level follows the error's severity: a not-ready probe every few
      seconds is not an ERROR-level event
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from route_guard.core.errors import ErrorSeverity, RouteGuardError

logger = logging.getLogger(__name__)

_SEVERITY_LEVEL = {
    ErrorSeverity.INFO: logging.INFO,
    ErrorSeverity.WARNING: logging.WARNING,
    ErrorSeverity.ERROR: logging.WARNING,
    ErrorSeverity.CRITICAL: logging.ERROR,
}

INTERNAL_ERROR_RESPONSE = {
    "error": {
        "code": "INTERNAL_ERROR",
        "message": "An unexpected error occurred",
        "category": "internal",
        "severity": ErrorSeverity.CRITICAL.value,
    },
}


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RouteGuardError, route_guard_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


async def route_guard_error_handler(request: Request, exc: RouteGuardError) -> JSONResponse:
    exc.context.request_path = request.url.path
    logger.log(
        _SEVERITY_LEVEL[exc.severity],
        f"{exc.code} on {request.url.path}: {exc.message}",
        extra={"error_code": exc.code, "path": request.url.path},
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        exc_info=True, extra={"path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=INTERNAL_ERROR_RESPONSE,
    )
