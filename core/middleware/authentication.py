"""
Session token authentication.

Runs before routing: a request to a protected path must carry
``Authorization: Bearer <token>``. The verified ``SessionClaims`` are put
in ``scope["claims"]``, where ``get_session_claims`` picks them up. If the
session acts as an institution that has since been deactivated, the
request is refused with ``TENANT_SUSPENDED``.

Role checks happen per route through ``require_roles``.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from fastapi import Request
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.errors import DomainError, InvalidTokenError, TenantSuspendedError
from core.security import SessionClaims, TokenService
from database.models.institutions import Institution

logger = logging.getLogger(__name__)

# Exact paths open to anonymous callers
OPEN_PATHS = ("/", "/health", "/ready", "/docs", "/redoc", "/openapi.json")

# Same, relative to the versioned API prefix
OPEN_API_PATHS = ("/auth/login", "/auth/register", "/institutions")

# Anything under these is open as well
OPEN_PREFIXES = ("/health", "/docs", "/redoc", "/openapi")


def bearer_token(request: Request) -> Optional[str]:
    """The token from a well-formed ``Bearer`` header, else None."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme != "Bearer" or not token or " " in token:
        return None
    return token


class AuthenticationMiddleware:
    """
    Pure ASGI middleware guarding every non-public route.

    Args:
        app: Wrapped ASGI application
        token_service: Verifies session tokens
        session_factory: Used for the institution status lookup
        api_prefix: Prefix of the versioned routes
        public_paths: Additional exact paths left open
    """

    def __init__(
        self,
        app: Callable,
        token_service: TokenService,
        session_factory: async_sessionmaker[AsyncSession],
        api_prefix: str = "/api/v1",
        public_paths: Optional[Iterable[str]] = None,
    ):
        self.app = app
        self.token_service = token_service
        self.session_factory = session_factory
        self.open_paths = {*OPEN_PATHS, *(api_prefix + p for p in OPEN_API_PATHS)}
        self.open_paths.update(public_paths or ())

    def is_public(self, method: str, path: str) -> bool:
        return (
            method == "OPTIONS"
            or path in self.open_paths
            or path.startswith(OPEN_PREFIXES)
        )

    async def __call__(self, scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] != "http" or self.is_public(scope["method"], scope["path"]):
            await self.app(scope, receive, send)
            return

        try:
            claims = await self.authenticate(Request(scope))
        except DomainError as e:
            logger.warning(f"Rejected {scope['method']} {scope['path']}: {e.code}")
            await self._reject(e, scope, receive, send)
            return

        scope["claims"] = claims
        await self.app(scope, receive, send)

    async def authenticate(self, request: Request) -> SessionClaims:
        token = bearer_token(request)
        if token is None:
            raise InvalidTokenError("No authentication token provided")
        claims = self.token_service.verify(token)
        if claims.active_institution_id is not None:
            await self._ensure_institution_active(claims.active_institution_id)
        return claims

    async def _ensure_institution_active(self, institution_id: int) -> None:
        # Unknown ids pass; role checks find no membership for them.
        async with self.session_factory() as db:
            is_active = await db.scalar(
                select(Institution.is_active).where(Institution.id == institution_id)
            )
        if is_active is False:
            raise TenantSuspendedError()

    async def _reject(self, error: DomainError, scope: dict, receive: Callable, send: Callable) -> None:
        response = JSONResponse(
            status_code=error.status_code,
            content={
                "error": {
                    "code": error.code,
                    "message": error.message,
                    "path": scope.get("path"),
                    "method": scope.get("method"),
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }
            },
            headers={"WWW-Authenticate": "Bearer"} if error.status_code == 401 else None,
        )
        await response(scope, receive, send)
