"""
Error taxonomy for the overlay API.

Every error carries a short machine-stable ``error`` string and the HTTP
status it maps to. ``register_exception_handlers`` renders them as
``{"error": ...}`` JSON bodies.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)

INVALID_REQUEST_BODY = "Invalid request body"


class OverlayKitError(Exception):
    """Base exception for API-visible failures."""

    http_status: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Bad request"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(OverlayKitError):
    http_status = status.HTTP_400_BAD_REQUEST
    default_message = INVALID_REQUEST_BODY


class UnauthenticatedError(OverlayKitError):
    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Unauthorized"


class ForbiddenError(OverlayKitError):
    http_status = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFoundError(OverlayKitError):
    http_status = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class MethodNotAllowedError(OverlayKitError):
    http_status = status.HTTP_405_METHOD_NOT_ALLOWED
    default_message = "Method not allowed"


class ConflictError(OverlayKitError):
    http_status = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class ServiceError(OverlayKitError):
    http_status = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"


def error_response(message: str, http_status: int) -> JSONResponse:
    return JSONResponse(status_code=http_status, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OverlayKitError)
    async def _overlaykit_error(request: Request, exc: OverlayKitError):
        if exc.http_status >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return error_response(exc.message, exc.http_status)

    @app.exception_handler(RequestValidationError)
    async def _request_validation_error(request: Request, exc: RequestValidationError):
        logger.info(f"Rejected body for {request.method} {request.url.path}: {exc.errors()}")
        return error_response(INVALID_REQUEST_BODY, status.HTTP_400_BAD_REQUEST)

    @app.exception_handler(StarletteHTTPException)
    async def _http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            message = MethodNotAllowedError.default_message
        elif exc.status_code == status.HTTP_404_NOT_FOUND:
            message = NotFoundError.default_message
        else:
            message = str(exc.detail)
        return error_response(message, exc.status_code)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return error_response(ServiceError.default_message, status.HTTP_500_INTERNAL_SERVER_ERROR)
