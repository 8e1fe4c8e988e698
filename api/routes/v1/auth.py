"""
Authentication endpoints.

Provides:
- Email/password registration and login
- Profile of the current session
- Password change
- Tenant context switch (token reissue)
"""

import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_dispatcher, get_settings, get_token_service
from api.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    ProfileResponse,
    RegisterRequest,
    SwitchInstitutionRequest,
)
from api.schemas.common import TokenResponse
from api.services import users as user_service
from core.config import Settings
from core.integrations.email import MailDispatcher
from core.middleware.authorization import get_session_claims
from core.security import SessionClaims, TokenService
from database.engine import get_db

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/register",
    response_model=TokenResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register",
)
async def register(
    payload: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
    dispatcher: MailDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings),
):
    """Create an account as a member of one institution and log in."""
    token = await user_service.register(
        db,
        token_service,
        dispatcher,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        password=payload.password,
        institution_id=payload.institution_id,
        member_role=settings.default_member_role,
    )
    return TokenResponse(access_token=token)


@router.post("/login", response_model=TokenResponse, summary="Login")
async def login(
    payload: LoginRequest,
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """Exchange email and password for a session token."""
    token = await user_service.login(db, token_service, payload.email, payload.password)
    return TokenResponse(access_token=token)


@router.get("/me", response_model=ProfileResponse, summary="Current User")
async def me(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    """Profile, memberships and the session's active institution."""
    return await user_service.get_profile(db, claims)


@router.post("/change-password", summary="Change Password")
async def change_password(
    payload: ChangePasswordRequest,
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
    dispatcher: MailDispatcher = Depends(get_dispatcher),
):
    await user_service.change_password(
        db,
        dispatcher,
        claims.user_id,
        payload.old_password,
        payload.new_password,
    )
    return {"message": "Password updated"}


@router.post(
    "/switch-institution",
    response_model=TokenResponse,
    summary="Switch Active Institution",
)
async def switch_institution(
    payload: SwitchInstitutionRequest,
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
    token_service: TokenService = Depends(get_token_service),
):
    """
    Reissue the session token acting as another institution, or none.

    Membership is not required to select an institution; role checks on
    each endpoint decide what the new token may do.
    """
    token = await user_service.switch_institution(
        db, token_service, claims, payload.institution_id
    )
    return TokenResponse(access_token=token)
