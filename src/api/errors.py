"""
Translation of errors into HTTP responses.

Every error body has the shape {"message": str, "errorCode": str}. Expected
client errors are logged as warnings; anything unexpected is logged with its
traceback and returned as a generic 500.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schemas.errors import ErrorResponse
from services.exceptions import (
    AccessDeniedError,
    DomainError,
    DuplicateEntityError,
    EntityNotFoundError,
    InvalidArgumentError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)

ENTITY_NOT_FOUND = "ENTITY_NOT_FOUND"
DUPLICATE_ENTITY = "DUPLICATE_ENTITY"
ACCESS_DENIED = "ACCESS_DENIED"
UNAUTHORIZED = "UNAUTHORIZED"
INVALID_ARGUMENT = "INVALID_ARGUMENT"
INTERNAL_ERROR = "INTERNAL_ERROR"

DOMAIN_ERROR_STATUS: dict[type[DomainError], tuple[int, str]] = {
    EntityNotFoundError: (status.HTTP_404_NOT_FOUND, ENTITY_NOT_FOUND),
    DuplicateEntityError: (status.HTTP_409_CONFLICT, DUPLICATE_ENTITY),
    AccessDeniedError: (status.HTTP_403_FORBIDDEN, ACCESS_DENIED),
    UnauthenticatedError: (status.HTTP_401_UNAUTHORIZED, UNAUTHORIZED),
    InvalidArgumentError: (status.HTTP_400_BAD_REQUEST, INVALID_ARGUMENT),
}

HTTP_STATUS_CODES: dict[int, str] = {
    status.HTTP_400_BAD_REQUEST: INVALID_ARGUMENT,
    status.HTTP_401_UNAUTHORIZED: UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ACCESS_DENIED,
    status.HTTP_404_NOT_FOUND: ENTITY_NOT_FOUND,
    status.HTTP_409_CONFLICT: DUPLICATE_ENTITY,
}


def error_response(
    status_code: int, message: str, error_code: str, headers: dict | None = None,
) -> JSONResponse:
    """Build the JSON error body."""
    body = ErrorResponse(message=message, error_code=error_code)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True),
        headers=headers,
    )


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Map a domain error to its status code and error code."""
    status_code, error_code = DOMAIN_ERROR_STATUS.get(
        type(exc), (status.HTTP_400_BAD_REQUEST, INVALID_ARGUMENT),
    )
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method, request.url.path, status_code, error_code, exc.message,
    )
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthenticatedError) else None
    return error_response(status_code, exc.message, error_code, headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Request body/query validation failures are invalid-argument errors."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
    message = "; ".join(messages) or "Invalid request"
    logger.warning("%s %s -> 400 %s: %s", request.method, request.url.path, INVALID_ARGUMENT, message)
    return error_response(status.HTTP_400_BAD_REQUEST, message, INVALID_ARGUMENT)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException,
) -> JSONResponse:
    """Keep the status of framework HTTP errors (e.g. 404 route, 405) with the common body."""
    error_code = HTTP_STATUS_CODES.get(exc.status_code, INTERNAL_ERROR)
    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        error_code = INVALID_ARGUMENT
    logger.warning(
        "%s %s -> %d: %s", request.method, request.url.path, exc.status_code, exc.detail,
    )
    return error_response(
        exc.status_code, str(exc.detail), error_code, getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Anything unexpected: log the traceback and hide details from the client."""
    logger.exception(
        "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred",
        INTERNAL_ERROR,
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Install the handlers on the application."""
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
