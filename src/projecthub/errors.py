"""Domain errors and their HTTP rendering.

Learn: Services raise these instead of HTTPException so they stay usable
outside a request (CLI, tests). Each error knows its status code; the
handlers registered in main.py turn them into `{"detail": ...}` responses.

Validation errors keep their field-level detail. Anything unexpected is
logged and answered with a generic 500 — no stack traces, no internal ids.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class AppError(Exception):
    """Base class for errors that map to a client-facing response."""

    status_code = 500
    default_message = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequestError(AppError):
    status_code = 400
    default_message = "Bad request"


class InvalidStateError(BadRequestError):
    """The entity exists but is not in a state that allows the operation."""

    default_message = "Invalid state"


class InvalidOrExpiredTokenError(BadRequestError):
    default_message = "Invalid or expired token"


class InvalidTokenTypeError(BadRequestError):
    default_message = "Invalid token type"


class UnauthorizedError(AppError):
    status_code = 401
    default_message = "Unauthorized"


class ForbiddenError(AppError):
    status_code = 403
    default_message = "Forbidden"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not found"


class ServiceUnavailableError(AppError):
    status_code = 503
    default_message = "Service temporarily unavailable"


# ─── Handlers ───────────────────────────────────────────


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "detail": "Validation error",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "projecthub.unhandled_error",
        method=request.method,
        path=request.url.path,
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
