from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """Base class for failures the API reports to callers.

    Subclasses fix the HTTP status, a stable machine-readable ``code`` and the
    default client-facing message.
    """

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "internal_error"
    message = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)


class InvalidInput(ServiceError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_input"
    message = "Invalid input"


class AuthenticationFailure(ServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_failed"
    message = "Authentication required"


class InvalidCredentials(AuthenticationFailure):
    message = "Invalid credentials"


class InvalidToken(AuthenticationFailure):
    message = "Invalid or expired token"


class Conflict(ServiceError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"
    message = "Conflict"


class AlreadyExists(Conflict):
    code = "already_exists"
    message = "Email already registered"


class SessionAlreadyOpen(Conflict):
    code = "session_already_open"
    message = "Session already running"


class NotFound(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"
    message = "Not found"


class NoOpenSession(NotFound):
    code = "no_open_session"
    message = "No open session"


class InternalFault(ServiceError):
    pass


class ErrorEnvelope(JSONResponse):
    def __init__(
        self,
        *,
        status_code: int,
        code: str,
        message: str,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        payload: dict[str, Any] = {"code": code, "message": message}
        if details is not None:
            payload["details"] = details
        super().__init__(payload, status_code=status_code, headers=headers)


async def service_error_handler(request: Request, exc: ServiceError):
    headers = None
    if isinstance(exc, AuthenticationFailure):
        headers = {"WWW-Authenticate": "Bearer"}
    return ErrorEnvelope(status_code=exc.status_code, code=exc.code, message=exc.message, headers=headers)


async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error(
        "storage.failure",
        exc_info=exc,
        extra={"extra_data": {"path": request.url.path, "error": type(exc).__name__}},
    )
    fault = InternalFault()
    return ErrorEnvelope(status_code=fault.status_code, code=fault.code, message=fault.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    message = detail if isinstance(detail, str) else "Error"
    details = detail if isinstance(detail, dict) else None
    return ErrorEnvelope(
        status_code=exc.status_code,
        code="http_error",
        message=message,
        details=details,
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Malformed bodies are the caller's problem to fix, same as a policy violation.
    return ErrorEnvelope(
        status_code=status.HTTP_400_BAD_REQUEST,
        code=InvalidInput.code,
        message="Validation failed",
        details={"errors": _jsonable_errors(exc.errors())},
    )


def _jsonable_errors(errors) -> list[dict[str, Any]]:
    cleaned: list[dict[str, Any]] = []
    for error in errors:
        cleaned.append(
            {
                "loc": [str(part) for part in error.get("loc", ())],
                "msg": str(error.get("msg", "")),
                "type": str(error.get("type", "")),
            }
        )
    return cleaned
