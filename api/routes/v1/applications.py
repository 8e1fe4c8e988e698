"""
Application lifecycle endpoints.

Applicants apply, list and withdraw their applications; managers
(``MANAGER_ROLES``) list, inspect and move applications through
PENDING -> REVIEWING -> ACCEPTED | REJECTED.
"""

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_dispatcher, require_manager
from api.schemas.applications import (
    ApplicationResponse,
    ApplyRequest,
    HasAppliedResponse,
    ManagedApplicationResponse,
    MyApplicationResponse,
    StatusUpdateRequest,
)
from api.services import applications as application_service
from core.integrations.email import MailDispatcher
from core.middleware.authorization import RolePolicy, get_role_policy, get_session_claims
from core.security import SessionClaims
from database.engine import get_db

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post(
    "/apply",
    response_model=ApplicationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Apply to Job",
)
async def apply(
    payload: ApplyRequest,
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
    dispatcher: MailDispatcher = Depends(get_dispatcher),
):
    """Create a PENDING application. The confirmation email is sent in the background."""
    return await application_service.apply(
        db,
        user_id=claims.user_id,
        job_id=payload.job_id,
        dispatcher=dispatcher,
        profile={
            "phone": payload.phone,
            "linkedin_url": payload.linkedin_url,
            "lattes_url": payload.lattes_url,
        },
    )


@router.get(
    "/my-applications",
    response_model=list[MyApplicationResponse],
    summary="List My Applications",
)
async def list_my_applications(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    return await application_service.list_mine(db, claims.user_id)


@router.get(
    "/check/{job_id}",
    response_model=HasAppliedResponse,
    summary="Check Application",
)
async def check_application(
    job_id: int = Path(..., description="Job ID"),
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    """Whether the caller already applied to the job."""
    return {"has_applied": await application_service.has_applied(db, claims.user_id, job_id)}


@router.get(
    "/manage/all",
    response_model=list[ManagedApplicationResponse],
    summary="List Managed Applications",
)
async def list_managed_applications(
    claims: SessionClaims = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    policy: RolePolicy = Depends(get_role_policy),
):
    """
    Superadmin sees all applications, an admin of the active institution
    sees that institution's, and other managers see those to jobs they
    authored.
    """
    return await application_service.list_managed(db, claims, policy)


@router.get(
    "/manage/{application_id}",
    response_model=ManagedApplicationResponse,
    summary="Get Managed Application",
)
async def get_managed_application(
    application_id: int = Path(..., description="Application ID"),
    claims: SessionClaims = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    policy: RolePolicy = Depends(get_role_policy),
):
    return await application_service.get_managed(db, application_id, claims.user_id, policy)


@router.patch(
    "/manage/{application_id}/status",
    response_model=ApplicationResponse,
    summary="Update Application Status",
)
async def update_application_status(
    payload: StatusUpdateRequest,
    application_id: int = Path(..., description="Application ID"),
    claims: SessionClaims = Depends(require_manager),
    db: AsyncSession = Depends(get_db),
    policy: RolePolicy = Depends(get_role_policy),
    dispatcher: MailDispatcher = Depends(get_dispatcher),
):
    """Change the status and notify the applicant in-app and by email."""
    return await application_service.update_status(
        db,
        application_id,
        payload.status,
        caller_id=claims.user_id,
        policy=policy,
        dispatcher=dispatcher,
    )


@router.delete(
    "/{application_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel Application",
)
async def cancel_application(
    application_id: int = Path(..., description="Application ID"),
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    """Withdraw a PENDING application. Reviewed applications cannot be withdrawn."""
    await application_service.cancel(db, application_id, claims.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
