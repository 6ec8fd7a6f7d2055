"""Exception handlers that render every failure as the response envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from backoffice.core.exceptions import AppError

logger = logging.getLogger(__name__)

# SQLSTATE codes (PostgreSQL) and message fragments (SQLite) for constraint kinds
_UNIQUE_MARKERS = ("23505", "unique constraint", "duplicate key")
_FOREIGN_KEY_MARKERS = ("23503", "foreign key constraint")


def envelope(status_code: int, message: str, data=None, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": jsonable_encoder(data)},
        headers=headers,
    )


def classify_integrity_error(exc: IntegrityError) -> tuple[int, str]:
    """Map a constraint violation to a status code and a client-safe message."""
    code = getattr(exc.orig, "pgcode", None) or ""
    text = f"{code} {exc.orig}".lower()

    if any(marker in text for marker in _UNIQUE_MARKERS):
        return status.HTTP_409_CONFLICT, "Duplicate entry"
    if any(marker in text for marker in _FOREIGN_KEY_MARKERS):
        return status.HTTP_400_BAD_REQUEST, "Related record not found"
    return status.HTTP_400_BAD_REQUEST, "Invalid data"


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.__class__.__name__, request.method, request.url.path, exc.detail)
    else:
        logger.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.detail)
    return envelope(exc.status_code, exc.detail, headers=getattr(exc, "headers", None))


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    logger.info("%s %s -> HTTP %d %s", request.method, request.url.path, exc.status_code, exc.detail)
    return envelope(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = jsonable_encoder(exc.errors())
    logger.info("Validation error on %s %s: %s", request.method, request.url.path, errors)
    return envelope(status.HTTP_400_BAD_REQUEST, "Validation error", data=errors)


async def integrity_error_handler(request: Request, exc: IntegrityError):
    status_code, message = classify_integrity_error(exc)
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return envelope(status_code, message)


async def general_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
    return envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)
