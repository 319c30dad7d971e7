"""Application error taxonomy and the FastAPI handlers that render it.

Every error a handler raises on purpose is an :class:`AppError`, which is an
``HTTPException`` carrying its status code. The handlers installed by
:func:`register_error_handlers` render all errors as ``{"error": message}``.
"""

from core.logging import logger
from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

GENERIC_ERROR_MESSAGE = "An error occurred. Please try again later."


class AppError(HTTPException):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"

    def __init__(self, message: str | None = None, headers: dict | None = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class AuthenticationError(AppError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Not authenticated"


class AuthorizationError(AppError):
    """Identity established but not allowed to do this."""

    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Unauthorized"


class ValidationError(AppError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request parameters"


class NotFoundError(AppError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class ConflictError(AppError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "A record with this unique field already exists"


class InternalError(AppError):
    pass


def sanitize_error(error: Exception, production: bool) -> str:
    """Return the message safe to show a client for an unexpected error."""

    if production:
        return GENERIC_ERROR_MESSAGE
    return str(error) or GENERIC_ERROR_MESSAGE


def register_error_handlers(app: FastAPI, production: bool = False) -> None:
    """Install JSON error handlers on ``app``.

    Args:
        app: The FastAPI application.
        production: Hide unexpected error details from clients when True.
    """

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail
        if isinstance(exc, InternalError) and production:
            message = GENERIC_ERROR_MESSAGE
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": message},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        logger.debug("Rejected request body path={} errors={}", request.url.path, exc.errors())
        first = exc.errors()[0] if exc.errors() else {}
        field = ".".join(str(part) for part in first.get("loc", ())[1:])
        message = f"Invalid or missing field: {field}" if field else "Invalid request body"
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST, content={"error": message}
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        logger.warning("Constraint violation path={}: {}", request.url.path, exc.orig)
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content={"error": ConflictError.default_message},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error path={}", request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": sanitize_error(exc, production)},
        )
