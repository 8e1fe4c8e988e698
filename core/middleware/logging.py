"""
Structured logging with PII masking.

``setup_logging`` configures the root logger once at startup;
``StructuredLoggingMiddleware`` writes a JSON line as each request comes in
and another once the response status is known.
"""

import json
import logging
import re
import time
import traceback
import uuid
from typing import Any, Callable, Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

# Key names masked wholesale, wherever they appear
SENSITIVE_KEY_RE = re.compile(
    r"password|senha|token|secret|authorization|cookie|cpf",
    re.IGNORECASE,
)

# Substitutions applied to free text
PII_PATTERNS = [
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b\d{3}\.?\d{3}\.?\d{3}-?\d{2}\b"), "[CPF]"),
    (re.compile(r"\(?\b\d{2}\)?\s?9?\d{4}-?\d{4}\b"), "[PHONE]"),
]

QUIET_PATHS = ("/health", "/ready")

BODY_METHODS = frozenset({"POST", "PUT", "PATCH"})


def is_sensitive_field(field_name: str) -> bool:
    return SENSITIVE_KEY_RE.search(field_name) is not None


def _scrub_text(text: str) -> str:
    for pattern, placeholder in PII_PATTERNS:
        text = pattern.sub(placeholder, text)
    return text


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Return a copy of ``data`` that is safe to log.

    Values under sensitive keys become ``[REDACTED]``; emails, CPFs and
    phone numbers inside strings are replaced by placeholders. Nesting
    beyond ``max_depth`` collapses to a marker.
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, str):
        return _scrub_text(data)

    if isinstance(data, list):
        return [mask_sensitive_data(value, depth + 1, max_depth) for value in data]

    if isinstance(data, dict):
        return {
            key: REDACTED if is_sensitive_field(str(key))
            else mask_sensitive_data(value, depth + 1, max_depth)
            for key, value in data.items()
        }

    return data


def mask_headers(headers: dict) -> dict:
    """Redact credential headers, keeping the Authorization scheme visible."""
    result = {}
    for name, value in headers.items():
        if not is_sensitive_field(name):
            result[name] = value
            continue
        scheme, sep, _ = value.partition(" ")
        if name.lower() == "authorization" and sep:
            result[name] = f"{scheme} {REDACTED}"
        else:
            result[name] = REDACTED
    return result


def get_client_ip(request: Request) -> str:
    """Caller's IPv4 address with the host octet hidden."""
    address = request.headers.get("x-forwarded-for", "").split(",")[0].strip()
    if not address and request.client:
        address = request.client.host

    octets = address.split(".") if address else []
    if len(octets) != 4:
        return "unknown"
    return ".".join(octets[:3] + ["xxx"])


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging tagged with a request id.

    A client-supplied ``x-request-id`` is reused, otherwise a uuid4 is
    generated; either way it is returned on the response. Once the
    authentication middleware has run, the completion line carries the
    caller's user id.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
    ):
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        path = request.url.path

        if path.startswith(QUIET_PATHS):
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response

        started = time.perf_counter()
        entry = {
            "event": "request_started",
            "request_id": request_id,
            "method": request.method,
            "path": path,
            "client_ip": get_client_ip(request),
            "query_params": mask_sensitive_data(dict(request.query_params)),
            "headers": mask_headers(dict(request.headers)),
        }
        if self.log_request_body and request.method in BODY_METHODS:
            body = await self._read_json_body(request)
            if body is not None:
                entry["body"] = mask_sensitive_data(body)
        logger.info(json.dumps(entry))

        response: Optional[Response] = None
        try:
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            status_code = response.status_code if response is not None else 500
            claims = request.scope.get("claims")
            logger.log(_level_for(status_code), json.dumps({
                "event": "request_completed",
                "request_id": request_id,
                "method": request.method,
                "path": path,
                "status_code": status_code,
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
                "user_id": getattr(claims, "user_id", None),
            }))

    async def _read_json_body(self, request: Request) -> Any:
        if "application/json" not in request.headers.get("content-type", ""):
            return None
        raw = await request.body()
        if len(raw) > self.max_body_size:
            return {"_truncated": True, "_size": len(raw)}
        try:
            return json.loads(raw)
        except ValueError:
            return {"_unparseable": True}


class StructuredFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id is not None:
            payload["request_id"] = request_id

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            payload["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        return json.dumps(payload, default=str)


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Replace the root logger's handlers with a single stderr handler.

    Args:
        log_level: Level name such as ``INFO`` or ``DEBUG``
        json_logs: Emit ``StructuredFormatter`` JSON instead of plain text
    """
    level = logging.getLevelName(log_level.upper())

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(
        StructuredFormatter() if json_logs
        else logging.Formatter("%(asctime)s %(levelname)-8s %(name)s: %(message)s")
    )

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for noisy in ("uvicorn.access", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
