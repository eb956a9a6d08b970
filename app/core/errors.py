"""Domain errors and their mapping to HTTP responses.

Services raise the subclasses of :class:`AppError`; only the handlers
registered by :func:`register_exception_handlers` know about status codes and
response bodies.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError, TimeoutError as PoolTimeoutError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for every error the API reports to clients."""

    category = "Internal Server Error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Optional[List[Any]] = None,
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details
        if status_code is not None:
            self.status_code = status_code

    def to_payload(self) -> dict:
        payload: dict[str, Any] = {"error": self.category, "message": self.message}
        if self.code:
            payload["code"] = self.code
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(AppError):
    category = "Validation Error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str, *, details: Optional[List[Any]] = None, **kwargs):
        super().__init__(message, details=details if details is not None else [], **kwargs)


class AuthenticationError(AppError):
    category = "Authentication Error"
    status_code = status.HTTP_401_UNAUTHORIZED


class NotFoundError(AppError):
    category = "Not Found"
    status_code = status.HTTP_404_NOT_FOUND


class ConflictError(AppError):
    category = "Conflict Error"
    status_code = status.HTTP_409_CONFLICT


class UnprocessableError(AppError):
    category = "Unprocessable Entity"
    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InternalError(AppError):
    category = "Internal Server Error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


_HTTP_CATEGORIES = {
    status.HTTP_400_BAD_REQUEST: ValidationError.category,
    status.HTTP_401_UNAUTHORIZED: AuthenticationError.category,
    status.HTTP_403_FORBIDDEN: AuthenticationError.category,
    status.HTTP_404_NOT_FOUND: NotFoundError.category,
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method Not Allowed",
    status.HTTP_409_CONFLICT: ConflictError.category,
    status.HTTP_422_UNPROCESSABLE_ENTITY: UnprocessableError.category,
}


def _internal_message(exc: Exception) -> str:
    if settings.is_development:
        return str(exc) or type(exc).__name__
    return "Something went wrong"


def _format_validation_details(errors: list[dict]) -> list[dict]:
    details = []
    for error in errors:
        location = [str(part) for part in error.get("loc", ()) if part != "body"]
        details.append(
            {
                "field": ".".join(location),
                "message": error.get("msg", "Invalid value"),
                "type": error.get("type"),
            }
        )
    return details


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError):
        logger.error("Erreur interne sur %s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = _format_validation_details(exc.errors())
    message = details[0]["message"] if details else "Invalid request"
    if details and details[0]["field"]:
        message = f"{details[0]['field']}: {message}"
    error = ValidationError(message, details=details)
    return JSONResponse(status_code=error.status_code, content=jsonable_encoder(error.to_payload()))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    category = _HTTP_CATEGORIES.get(exc.status_code, "Error")
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": category, "message": message},
        headers=getattr(exc, "headers", None),
    )


async def pool_timeout_handler(request: Request, exc: PoolTimeoutError) -> JSONResponse:
    logger.warning("Pool de connexions saturé pour %s %s", request.method, request.url.path)
    error = InternalError(
        "Database temporarily unavailable, please retry",
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
    )
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Erreur inattendue sur %s %s", request.method, request.url.path)
    error = InternalError(_internal_message(exc))
    return JSONResponse(status_code=error.status_code, content=error.to_payload())


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(PoolTimeoutError, pool_timeout_handler)
    app.add_exception_handler(SQLAlchemyError, unexpected_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
