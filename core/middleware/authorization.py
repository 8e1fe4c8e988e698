"""
Authorization engine for role checks and tenant-scoped access control.

This module implements:
1. A role-scope policy (global vs. per-institution roles) resolved once
   from configuration
2. ``check_role``: the allowed-role check run before protected endpoints
3. Manager visibility (superadmin / institution admin / job author) used by
   the application lifecycle
4. FastAPI dependencies wiring the check into routes
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Iterable, Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.errors import (
    InsufficientPermissionError,
    NoActiveTenantError,
    UnauthenticatedError,
)
from core.security import SessionClaims
from database.engine import get_db
from database.models.institutions import Role, RoleScope, UserInstitutionRole

logger = logging.getLogger(__name__)

SUPERADMIN_ROLE = "superadmin"
INSTITUTION_ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class RolePolicy:
    """
    Scope assignment for role names.

    Roles named in ``global_roles`` are GLOBAL; every other name, including
    names the policy has never seen, is TENANT scoped. Holding the
    superadmin role satisfies any GLOBAL requirement.
    """

    global_roles: FrozenSet[str] = frozenset({SUPERADMIN_ROLE, INSTITUTION_ADMIN_ROLE})
    superadmin_role: str = SUPERADMIN_ROLE
    admin_role: str = INSTITUTION_ADMIN_ROLE

    @classmethod
    def from_names(cls, global_roles: Iterable[str]) -> "RolePolicy":
        return cls(global_roles=frozenset(global_roles))

    def scope_of(self, role_name: str) -> RoleScope:
        return RoleScope.GLOBAL if role_name in self.global_roles else RoleScope.TENANT

    def partition(self, allowed_roles: Iterable[str]) -> Tuple[FrozenSet[str], FrozenSet[str]]:
        """Split allowed role names into (global, tenant) sets."""
        allowed = frozenset(allowed_roles)
        global_part = frozenset(r for r in allowed if self.scope_of(r) is RoleScope.GLOBAL)
        return global_part, allowed - global_part


async def holds_global_role(
    db: AsyncSession,
    user_id: int,
    role_names: FrozenSet[str],
) -> bool:
    """True if the user holds any of ``role_names`` in any institution."""
    result = await db.execute(
        select(UserInstitutionRole.id)
        .join(Role, Role.id == UserInstitutionRole.role_id)
        .where(
            UserInstitutionRole.user_id == user_id,
            Role.name.in_(role_names),
        )
        .limit(1)
    )
    return result.first() is not None


async def get_membership_role(
    db: AsyncSession,
    user_id: int,
    institution_id: int,
) -> Optional[str]:
    """Name of the role the user holds in one institution, if any."""
    result = await db.execute(
        select(Role.name)
        .join(UserInstitutionRole, UserInstitutionRole.role_id == Role.id)
        .where(
            UserInstitutionRole.user_id == user_id,
            UserInstitutionRole.institution_id == institution_id,
        )
    )
    return result.scalar_one_or_none()


async def check_role(
    db: AsyncSession,
    claims: SessionClaims,
    allowed_roles: Iterable[str],
    policy: RolePolicy,
) -> None:
    """
    Check that the caller may act with one of ``allowed_roles``.

    Global roles are looked up across every institution and ignore the
    token's active institution. Tenant roles are only honoured in the
    active institution.

    Args:
        db: Database session
        claims: Verified session claims
        allowed_roles: Role names the endpoint accepts
        policy: Role scope policy

    Raises:
        NoActiveTenantError: Tenant role required but no active institution
        InsufficientPermissionError: No matching role
    """
    global_roles, tenant_roles = policy.partition(allowed_roles)

    if global_roles:
        lookup = global_roles | {policy.superadmin_role}
        if await holds_global_role(db, claims.user_id, lookup):
            return

    if tenant_roles:
        if claims.active_institution_id is None:
            raise NoActiveTenantError()

        role_name = await get_membership_role(db, claims.user_id, claims.active_institution_id)
        if role_name not in tenant_roles:
            logger.warning(
                f"User {claims.user_id} lacks roles {sorted(tenant_roles)} "
                f"in institution {claims.active_institution_id}"
            )
            raise InsufficientPermissionError(
                "Access denied: insufficient permissions for this institution"
            )
        return

    logger.warning(
        f"User {claims.user_id} attempted action requiring roles: {sorted(global_roles)}"
    )
    raise InsufficientPermissionError()


# ==================== Manager visibility ==================== #

@dataclass
class ManagerAccess:
    """What a caller may see and manage among applications."""

    user_id: int
    is_superadmin: bool = False
    admin_institution_ids: set[int] = field(default_factory=set)

    def is_admin_of(self, institution_id: Optional[int]) -> bool:
        return institution_id is not None and institution_id in self.admin_institution_ids

    def can_manage_job(self, job) -> bool:
        """Superadmin, admin of the job's institution, or the job's author."""
        return (
            self.is_superadmin
            or self.is_admin_of(job.institution_id)
            or job.author_id == self.user_id
        )


async def get_manager_access(
    db: AsyncSession,
    user_id: int,
    policy: RolePolicy,
) -> ManagerAccess:
    """Resolve superadmin status and admin institutions from live role rows."""
    result = await db.execute(
        select(UserInstitutionRole.institution_id, Role.name)
        .join(Role, Role.id == UserInstitutionRole.role_id)
        .where(UserInstitutionRole.user_id == user_id)
    )
    access = ManagerAccess(user_id=user_id)
    for institution_id, role_name in result.all():
        if role_name == policy.superadmin_role:
            access.is_superadmin = True
        elif role_name == policy.admin_role:
            access.admin_institution_ids.add(institution_id)
    return access


# ==================== Dependencies ==================== #

def get_role_policy(request: Request) -> RolePolicy:
    return request.app.state.role_policy


def get_session_claims(request: Request) -> SessionClaims:
    """
    Get the verified claims placed in scope by the authentication middleware.

    Raises:
        UnauthenticatedError: If the request carries no verified token
    """
    claims = request.scope.get("claims")
    if claims is None:
        raise UnauthenticatedError()
    return claims


def require_roles(*allowed_roles: str) -> Callable:
    """
    Dependency to require one of ``allowed_roles``.

    Args:
        allowed_roles: Role names accepted by the endpoint

    Returns:
        FastAPI dependency returning the caller's claims
    """
    async def dependency(
        claims: SessionClaims = Depends(get_session_claims),
        db: AsyncSession = Depends(get_db),
        policy: RolePolicy = Depends(get_role_policy),
    ) -> SessionClaims:
        await check_role(db, claims, allowed_roles, policy)
        return claims

    return dependency
