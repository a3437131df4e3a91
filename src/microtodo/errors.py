"""Error taxonomy and the JSON error responses both services return.

Learn: Service code raises these exceptions; the handlers registered by
register_exception_handlers() turn them into {"error": "..."} bodies with
the matching status code. Routes never build error responses by hand.

    AuthFailure            401  bad credentials at login
    Forbidden              403  authenticated but not allowed
      OwnershipViolation   403  resource belongs to another user
    NotFound               404  resource id absent
    Conflict               409  unique field already taken
    DependencyUnavailable  503  a downstream service could not answer
    PrincipalMissing       500  handler ran without an authenticated principal

Token rejections (401) are answered by the authentication middleware
itself, before any route runs.
"""

from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger()


class ServiceError(Exception):
    """Base class for errors that map onto an HTTP status."""

    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthFailure(ServiceError):
    status_code = 401
    default_message = "Unauthorized: Invalid username or password"


class Forbidden(ServiceError):
    status_code = 403
    default_message = "Forbidden"


class OwnershipViolation(Forbidden):
    default_message = "Forbidden: resource belongs to another user"


class NotFound(ServiceError):
    status_code = 404
    default_message = "Not found"


class Conflict(ServiceError):
    status_code = 409
    default_message = "Already exists"


class DependencyUnavailable(ServiceError):
    status_code = 503
    default_message = "Dependency unavailable"


class PrincipalMissing(ServiceError):
    """A protected handler ran without an authenticated principal.

    This is a wiring bug (the authentication middleware is missing or the
    path was wrongly allow-listed), never an anonymous request.
    """

    status_code = 500
    default_message = "Internal server error"


# ─── Handlers ────────────────────────────────────────────


async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "request.service_error",
            error=type(exc).__name__,
            message=exc.message,
            status_code=exc.status_code,
            path=request.url.path,
        )
    else:
        logger.warning(
            "request.service_error",
            error=type(exc).__name__,
            status_code=exc.status_code,
            path=request.url.path,
        )
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Router-level errors (404 unknown route, 405) in the same shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"error": "validation_error", "details": details},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, service_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
