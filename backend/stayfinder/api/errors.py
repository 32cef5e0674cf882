"""Exception handlers that render every failure into the response envelope."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from stayfinder.config import settings
from stayfinder.errors import DomainError
from stayfinder.schemas.common import ErrorEnvelope

logger = logging.getLogger(__name__)

# Leading location segments that name the request part rather than the field
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie"}


def _error_response(status_code: int, message: str, error: str | None = None, headers: dict | None = None) -> JSONResponse:
    body = ErrorEnvelope(message=message, error=error)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(body, exclude_none=True),
        headers=headers,
    )


def _first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Validation error"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ()) if part not in _LOCATION_PREFIXES)
    message = first.get("msg", "Invalid value")
    return f"{field}: {message}" if field else message


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    return _error_response(exc.status_code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _error_response(exc.status_code, message, headers=getattr(exc, "headers", None))


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return _error_response(status.HTTP_400_BAD_REQUEST, _first_validation_message(exc))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    error = str(exc) if settings.expose_error_details else None
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", error=error)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
