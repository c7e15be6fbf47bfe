"""
Service error taxonomy and the FastAPI handlers that render it.

Managers raise these; the HTTP layer only maps them to a status code and
an ``{"error": message}`` body. ``InternalError`` never carries its detail
to the client.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Bad request"

    def __init__(self, message: str | None = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidCredentials(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class NoToken(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "No refresh token"


class InvalidToken(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid refresh token"


class TokenExpired(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Refresh token expired"


class Unauthorized(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Unauthorized"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Resource not found"

    def __init__(self, entity: str | None = None):
        super().__init__(f"{entity} not found" if entity else None)


class EmailAlreadyExists(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    message = "Email already exists"


class ValidationError(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid input"


class InternalError(ServiceError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    message = "Internal server error"


def error_response(error: ServiceError) -> JSONResponse:
    return JSONResponse(status_code=error.status_code, content={"error": error.message})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        # detail was logged where the error was raised
        if isinstance(exc, InternalError):
            return error_response(InternalError())
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = "Invalid input"
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
        return error_response(ValidationError(message))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path, exc_info=exc)
        return error_response(InternalError())
