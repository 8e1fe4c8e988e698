"""
Error envelopes and message sanitization.

Every failure leaves the API as::

    {"error": {"code": ..., "message": ..., "path": ..., "method": ...}}

with an optional ``details`` entry. Messages are scrubbed of credentials
and CPFs before they reach a response or a log line.
"""

import logging
import re
import traceback
from typing import Any, Callable, Optional

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.errors import DomainError

logger = logging.getLogger(__name__)

_CREDENTIAL_RE = re.compile(
    r'(?:password|token|secret)["\s:=]+[^"\s,}]+|authorization["\s:]+[^"\s,}]+',
    re.IGNORECASE,
)
_CPF_RE = re.compile(r'\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b')

# (exception type, status, code, public message), first match wins
_DATABASE_FAILURES = (
    (IntegrityError, status.HTTP_409_CONFLICT, "INTEGRITY_ERROR",
     "Database integrity constraint violated"),
    (OperationalError, status.HTTP_503_SERVICE_UNAVAILABLE, "DATABASE_ERROR",
     "Database service temporarily unavailable"),
    (SQLAlchemyError, status.HTTP_500_INTERNAL_SERVER_ERROR, "DATABASE_ERROR",
     "A database error occurred"),
)


def sanitize_error_message(message: Any) -> str:
    """Replace credentials and CPFs in ``message`` with ``[REDACTED]``."""
    text = _CREDENTIAL_RE.sub("[REDACTED]", str(message))
    return _CPF_RE.sub("[REDACTED]", text)


def get_safe_error_details(exc: Exception, include_details: bool = False) -> dict[str, Any]:
    """
    Describe ``exc`` for a debug response.

    The traceback is only attached when ``include_details`` is set, which
    the handlers do in debug mode only.
    """
    details = {
        "type": type(exc).__name__,
        "message": sanitize_error_message(exc),
    }
    if include_details:
        details["traceback"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return details


def format_validation_errors(exc: RequestValidationError) -> list[dict[str, Any]]:
    return [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": sanitize_error_message(error["msg"]),
            "type": error["type"],
        }
        for error in exc.errors()
    ]


def error_response(
    request_path: str,
    request_method: str,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
) -> JSONResponse:
    error = {
        "code": code,
        "message": message,
        "path": request_path,
        "method": request_method,
    }
    if details is not None:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def classify_exception(exc: Exception) -> tuple[int, str, str]:
    """Status code, error code and client-facing message for ``exc``."""
    if isinstance(exc, DomainError):
        return exc.status_code, exc.code, exc.message
    for exc_type, status_code, code, message in _DATABASE_FAILURES:
        if isinstance(exc, exc_type):
            return status_code, code, message
    return (
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "INTERNAL_SERVER_ERROR",
        "An unexpected error occurred",
    )


def _log_failure(exc: Exception, method: str, path: str, status_code: int, code: str) -> None:
    where = f"{method} {path}"
    if status_code < 500 and not isinstance(exc, SQLAlchemyError):
        logger.warning(f"{code} on {where}: {sanitize_error_message(exc)}")
    elif isinstance(exc, IntegrityError):
        logger.error(f"{code} on {where}")
    else:
        logger.error(
            f"{code} on {where}: {type(exc).__name__}: {sanitize_error_message(exc)}",
            exc_info=True,
        )


def _failure_response(
    exc: Exception, method: str, path: str, debug: bool
) -> JSONResponse:
    status_code, code, message = classify_exception(exc)
    _log_failure(exc, method, path, status_code, code)
    details: Optional[dict] = None
    if debug and status_code >= 500:
        details = get_safe_error_details(exc, include_details=True)
    return error_response(path, method, status_code, code, message, details)


class ErrorHandlingMiddleware:
    """
    Pure ASGI catch-all around the routed app.

    Anything the exception handlers did not turn into a response is
    classified here, so clients always receive the JSON envelope.
    """

    def __init__(self, app: Callable, debug: bool = False):
        self.app = app
        self.debug = debug

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        try:
            await self.app(scope, receive, send)
        except Exception as exc:
            response = _failure_response(
                exc,
                scope.get("method", "unknown"),
                scope.get("path", "unknown"),
                self.debug,
            )
            await response(scope, receive, send)


def setup_error_handlers(app, debug: bool = False):
    """
    Register the envelope-producing exception handlers on ``app``.

    Args:
        app: FastAPI application instance
        debug: Include tracebacks in 5xx responses
    """

    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError):
        if exc.status_code >= 403:
            logger.info(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return error_response(
            request.url.path, request.method, exc.status_code, exc.code, exc.message
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return error_response(
            request.url.path,
            request.method,
            exc.status_code,
            "HTTP_EXCEPTION",
            sanitize_error_message(exc.detail),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return error_response(
            request.url.path,
            request.method,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            "VALIDATION_ERROR",
            "Request validation failed",
            format_validation_errors(exc),
        )

    @app.exception_handler(IntegrityError)
    async def integrity_error_handler(request: Request, exc: IntegrityError):
        return _failure_response(exc, request.method, request.url.path, debug)

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        return _failure_response(exc, request.method, request.url.path, debug)
