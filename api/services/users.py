"""
User service functions for API endpoints.

Registration, login, profile lookup, password changes and the tenant
context switch. Every path that hands out a session token goes through
``TokenService.issue``.
"""

from typing import Any, Dict, Optional
from datetime import datetime, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import ConflictError, NotFoundError, UnauthenticatedError
from core.integrations.email import MailDispatcher
from core.security import (
    AuditAction,
    ResourceType,
    SessionClaims,
    TokenService,
    hash_password,
    log_audit_event,
    verify_password,
)
from database.models.institutions import Institution, Role, UserInstitutionRole
from database.models.users import User

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid email or password"


async def get_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register(
    db: AsyncSession,
    token_service: TokenService,
    dispatcher: MailDispatcher,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    institution_id: int,
    member_role: str = "student",
) -> str:
    """
    Create a user as ``member_role`` of ``institution_id`` and log them in.

    Args:
        db: Database session
        token_service: Issues the session token
        dispatcher: Sends the welcome email
        first_name: First name
        last_name: Last name
        email: Unique login email
        password: Plain password (hashed with bcrypt)
        institution_id: Institution the user joins
        member_role: Role granted in that institution

    Returns:
        Session token acting as ``institution_id``

    Raises:
        ConflictError: Email already registered
        NotFoundError: Institution or role missing
    """
    email = email.lower()
    if await get_user_by_email(db, email) is not None:
        raise ConflictError("Email already registered")

    institution = await db.get(Institution, institution_id)
    if institution is None or not institution.is_active:
        raise NotFoundError("Institution not found")

    role = (
        await db.execute(select(Role).where(Role.name == member_role))
    ).scalar_one_or_none()
    if role is None:
        logger.error(f"Default member role '{member_role}' is not seeded")
        raise NotFoundError(f"Role '{member_role}' not found")

    user = User(
        email=email,
        password_hash=hash_password(password),
        first_name=first_name,
        last_name=last_name,
        active_institution_id=institution.id,
    )
    db.add(user)

    try:
        await db.flush()
        db.add(UserInstitutionRole(
            user_id=user.id,
            institution_id=institution.id,
            role_id=role.id,
        ))
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email already registered")

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.USER,
        resource_id=user.id,
        user_id=user.id,
        institution_id=institution.id,
    )

    dispatcher.dispatch("welcome", user.email, user_name=user.first_name)

    return token_service.issue(user, institution.id)


async def login(
    db: AsyncSession,
    token_service: TokenService,
    email: str,
    password: str,
) -> str:
    """
    Verify credentials and issue a token acting as the stored preferred
    institution.

    Raises:
        UnauthenticatedError: Unknown email or wrong password
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("Failed login attempt")
        raise UnauthenticatedError(INVALID_CREDENTIALS)

    user.last_login_at = datetime.now(timezone.utc)
    active_institution_id = user.active_institution_id
    await db.commit()

    log_audit_event(
        action=AuditAction.LOGIN,
        resource_type=ResourceType.SESSION,
        user_id=user.id,
        institution_id=active_institution_id,
    )

    return token_service.issue(user, active_institution_id)


async def get_profile(db: AsyncSession, claims: SessionClaims) -> Dict[str, Any]:
    """
    Profile of the caller with every membership.

    ``active_institution_id`` is the token's claim, not the stored
    preference.

    Raises:
        NotFoundError: User deleted since the token was issued
    """
    result = await db.execute(
        select(User)
        .options(
            selectinload(User.memberships).selectinload(UserInstitutionRole.institution)
        )
        .where(User.id == claims.user_id)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User not found")

    return {
        "id": user.id,
        "email": user.email,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "phone": user.phone,
        "bio": user.bio,
        "avatar_url": user.avatar_url,
        "resume_url": user.resume_url,
        "linkedin_url": user.linkedin_url,
        "lattes_url": user.lattes_url,
        "github_url": user.github_url,
        "portfolio_url": user.portfolio_url,
        "course": user.course,
        "education_level": user.education_level,
        "graduation_year": user.graduation_year,
        "last_login_at": user.last_login_at,
        "created_at": user.created_at,
        "active_institution_id": claims.active_institution_id,
        "memberships": [
            {
                "institution": {"id": m.institution.id, "name": m.institution.name},
                "role": m.role.name,
            }
            for m in user.memberships
        ],
    }


async def change_password(
    db: AsyncSession,
    dispatcher: MailDispatcher,
    user_id: int,
    old_password: str,
    new_password: str,
) -> None:
    """
    Replace the caller's password and send a security alert.

    Raises:
        UnauthenticatedError: Old password does not match
    """
    user = await db.get(User, user_id)
    if user is None or not verify_password(old_password, user.password_hash):
        raise UnauthenticatedError("Current password is incorrect")

    user.password_hash = hash_password(new_password)
    await db.commit()

    log_audit_event(
        action=AuditAction.UPDATE,
        resource_type=ResourceType.USER,
        resource_id=user_id,
        user_id=user_id,
        details={"field": "password"},
    )

    dispatcher.dispatch("security_alert", user.email)


async def switch_institution(
    db: AsyncSession,
    token_service: TokenService,
    claims: SessionClaims,
    institution_id: Optional[int],
) -> str:
    """
    Reissue the caller's token acting as ``institution_id`` (or none).

    Membership is not checked here: selecting a context is free, and the
    role checks on each action decide what the caller may do in it. The
    choice is also stored as the user's preferred institution for the next
    login. Previously issued tokens stay valid until they expire.

    Raises:
        NotFoundError: User deleted since the token was issued
    """
    user = await db.get(User, claims.user_id)
    if user is None:
        raise NotFoundError("User not found")

    user.active_institution_id = institution_id
    try:
        await db.commit()
    except IntegrityError:
        # Unknown institution id: keep the stored preference, still reissue.
        await db.rollback()
        logger.info(f"User {claims.user_id} switched to unknown institution {institution_id}")
        user = await db.get(User, claims.user_id)

    log_audit_event(
        action=AuditAction.SWITCH_TENANT,
        resource_type=ResourceType.SESSION,
        user_id=claims.user_id,
        institution_id=institution_id,
        details={"from": claims.active_institution_id, "to": institution_id},
    )

    return token_service.issue(user, institution_id)
