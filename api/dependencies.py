"""FastAPI dependencies for dependency injection."""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from database.engine import get_db
from core.config import Settings
from core.integrations.email import MailDispatcher
from core.middleware.authorization import (
    RolePolicy,
    check_role,
    get_role_policy,
    get_session_claims,
)
from core.security import SessionClaims, TokenService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_service(request: Request) -> TokenService:
    return request.app.state.token_service


def get_dispatcher(request: Request) -> MailDispatcher:
    return request.app.state.dispatcher


async def require_manager(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
    policy: RolePolicy = Depends(get_role_policy),
    settings: Settings = Depends(get_settings),
) -> SessionClaims:
    """Require one of the configured manager roles (``MANAGER_ROLES``)."""
    await check_role(db, claims, settings.manager_roles, policy)
    return claims
