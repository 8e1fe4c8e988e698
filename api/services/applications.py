"""
Application lifecycle service functions for API endpoints.

Covers applying to a job, the applicant's own list, the manager views and
status transitions, and applicant withdrawal. Visible states are
PENDING -> REVIEWING -> ACCEPTED | REJECTED; withdrawal is only allowed
from PENDING and deletes the row.
"""

from typing import Any, Dict, List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.errors import (
    DuplicateApplicationError,
    ForbiddenError,
    InvalidStateError,
    InvalidStatusError,
    JobNotAcceptingApplicationsError,
    NotFoundError,
    UnauthenticatedError,
)
from core.integrations.email import MailDispatcher
from core.middleware.authorization import RolePolicy, get_manager_access
from core.security import AuditAction, ResourceType, SessionClaims, log_audit_event
from database.models.applications import Application, ApplicationStatus
from database.models.jobs import ACCEPTING_STATUSES, Job
from database.models.notifications import Notification
from database.models.users import User

logger = logging.getLogger(__name__)

STATUS_NOTIFICATION_TITLE = "Status da Candidatura"

# Profile fields an applicant may update while applying
APPLY_PROFILE_FIELDS = ("phone", "linkedin_url", "lattes_url")


# ==================== Serialization ==================== #

def _ref(obj) -> Optional[Dict[str, Any]]:
    return {"id": obj.id, "name": obj.name} if obj is not None else None


def serialize_job_summary(job: Job) -> Dict[str, Any]:
    return {
        "id": job.id,
        "title": job.title,
        "status": job.status.value,
        "institution": _ref(job.institution),
        "area": _ref(job.area),
        "category": _ref(job.category),
        "author": {
            "first_name": job.author.first_name,
            "last_name": job.author.last_name,
        } if job.author else None,
    }


def serialize_application(application: Application) -> Dict[str, Any]:
    return {
        "id": application.id,
        "user_id": application.user_id,
        "job_id": application.job_id,
        "status": application.status.value,
        "created_at": application.created_at,
        "updated_at": application.updated_at,
    }


def serialize_applicant(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "email": user.email,
        "phone": user.phone,
        "avatar_url": user.avatar_url,
        "resume_url": user.resume_url,
        "linkedin_url": user.linkedin_url,
        "lattes_url": user.lattes_url,
        "portfolio_url": user.portfolio_url,
        "course": user.course,
        "education_level": user.education_level,
        "graduation_year": user.graduation_year,
        "bio": user.bio,
    }


def _job_details():
    """Loader options for the job projection shown next to an application."""
    return selectinload(Application.job).options(
        selectinload(Job.institution),
        selectinload(Job.area),
        selectinload(Job.category),
        selectinload(Job.author),
    )


def status_message(status: ApplicationStatus, job_title: str) -> str:
    """Notification text for a status change, in the applicant's language."""
    if status == ApplicationStatus.ACCEPTED:
        return f'Parabéns! Você foi aprovado para a vaga "{job_title}".'
    if status == ApplicationStatus.REJECTED:
        return f'Atualização sobre a vaga "{job_title}": Perfil não selecionado.'
    return f'O status da sua candidatura para "{job_title}" mudou para: {status.value}'


# ==================== Applicant operations ==================== #

async def has_applied(db: AsyncSession, user_id: int, job_id: int) -> bool:
    """Check whether the user already has an application for the job."""
    result = await db.execute(
        select(Application.id).where(
            Application.user_id == user_id,
            Application.job_id == job_id,
        )
    )
    return result.first() is not None


def _apply_profile_updates(user: User, profile: Dict[str, Optional[str]]) -> List[str]:
    """Copy non-empty, changed profile values onto the user. Returns changed fields."""
    changed = []
    for field in APPLY_PROFILE_FIELDS:
        value = profile.get(field)
        if value and getattr(user, field) != value:
            setattr(user, field, value)
            changed.append(field)
    return changed


async def apply(
    db: AsyncSession,
    user_id: int,
    job_id: int,
    dispatcher: MailDispatcher,
    profile: Optional[Dict[str, Optional[str]]] = None,
) -> Dict[str, Any]:
    """
    Apply the user to a job.

    The existence pre-check only improves the error; the unique constraint
    on (user_id, job_id) decides concurrent attempts, and the loser gets
    ``DuplicateApplicationError`` as well.

    Args:
        db: Database session
        user_id: Applicant
        job_id: Target job
        dispatcher: Mail dispatcher for the confirmation email
        profile: Optional phone / linkedin_url / lattes_url to store

    Returns:
        The created application

    Raises:
        NotFoundError: Job missing or soft-deleted
        JobNotAcceptingApplicationsError: Job not published/open
        DuplicateApplicationError: Already applied
    """
    job = await db.get(Job, job_id)
    if job is None or job.deleted_at is not None:
        raise NotFoundError("Job not found")

    if job.status not in ACCEPTING_STATUSES:
        raise JobNotAcceptingApplicationsError()

    if await has_applied(db, user_id, job_id):
        raise DuplicateApplicationError()

    user = await db.get(User, user_id)
    if user is None:
        raise UnauthenticatedError("User no longer exists")

    changed = _apply_profile_updates(user, profile or {})
    if changed:
        logger.info(f"Profile of user {user_id} updated while applying: {changed}")

    application = Application(
        user_id=user_id,
        job_id=job_id,
        status=ApplicationStatus.PENDING,
    )
    db.add(application)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info(f"Concurrent duplicate application by user {user_id} for job {job_id}")
        raise DuplicateApplicationError()

    await db.refresh(application)

    log_audit_event(
        action=AuditAction.CREATE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=user_id,
        institution_id=job.institution_id,
        details={"job_id": job_id},
    )

    dispatcher.dispatch("application_feedback", user.email, job_title=job.title)

    return serialize_application(application)


async def list_mine(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """List the user's applications with their job projection, newest first."""
    result = await db.execute(
        select(Application)
        .options(_job_details())
        .where(Application.user_id == user_id)
        .order_by(Application.created_at.desc(), Application.id.desc())
    )
    return [
        {**serialize_application(app), "job": serialize_job_summary(app.job)}
        for app in result.scalars().all()
    ]


async def cancel(db: AsyncSession, application_id: int, user_id: int) -> None:
    """
    Withdraw a PENDING application. The row is deleted.

    Raises:
        NotFoundError: Unknown application
        ForbiddenError: Caller is not the applicant
        InvalidStateError: Application already reviewed
    """
    application = await db.get(Application, application_id)
    if application is None:
        raise NotFoundError("Application not found")

    if application.user_id != user_id:
        raise ForbiddenError("Permission denied")

    if application.status != ApplicationStatus.PENDING:
        raise InvalidStateError("Cannot cancel a reviewed application")

    job_id = application.job_id
    await db.delete(application)
    await db.commit()

    log_audit_event(
        action=AuditAction.DELETE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application_id,
        user_id=user_id,
        details={"job_id": job_id},
    )


# ==================== Manager operations ==================== #

async def list_managed(
    db: AsyncSession,
    claims: SessionClaims,
    policy: RolePolicy,
) -> List[Dict[str, Any]]:
    """
    List applications the caller manages.

    Superadmin sees every application; an admin of the active institution
    sees that institution's applications; anyone else sees applications to
    jobs they authored.
    """
    access = await get_manager_access(db, claims.user_id, policy)

    query = (
        select(Application)
        .join(Job, Job.id == Application.job_id)
        .options(selectinload(Application.user), _job_details())
        .order_by(Application.created_at.desc(), Application.id.desc())
    )

    if access.is_superadmin:
        pass
    elif access.is_admin_of(claims.active_institution_id):
        query = query.where(Job.institution_id == claims.active_institution_id)
    else:
        query = query.where(Job.author_id == claims.user_id)

    result = await db.execute(query)
    return [
        {
            **serialize_application(app),
            "user": serialize_applicant(app.user),
            "job": serialize_job_summary(app.job),
        }
        for app in result.scalars().all()
    ]


async def _load_managed(
    db: AsyncSession,
    application_id: int,
    caller_id: int,
    policy: RolePolicy,
) -> Application:
    result = await db.execute(
        select(Application)
        .options(selectinload(Application.user), _job_details())
        .where(Application.id == application_id)
    )
    application = result.scalar_one_or_none()
    if application is None:
        raise NotFoundError("Application not found")

    access = await get_manager_access(db, caller_id, policy)
    if not access.can_manage_job(application.job):
        logger.warning(
            f"User {caller_id} denied management of application {application_id}"
        )
        raise ForbiddenError("No permission to manage this application")

    return application


async def get_managed(
    db: AsyncSession,
    application_id: int,
    caller_id: int,
    policy: RolePolicy,
) -> Dict[str, Any]:
    """
    Get one application with full applicant details.

    Raises:
        NotFoundError: Unknown application
        ForbiddenError: Caller is not superadmin, admin of the job's
            institution, or the job's author
    """
    application = await _load_managed(db, application_id, caller_id, policy)
    return {
        **serialize_application(application),
        "user": serialize_applicant(application.user),
        "job": serialize_job_summary(application.job),
    }


async def update_status(
    db: AsyncSession,
    application_id: int,
    new_status: str,
    caller_id: int,
    policy: RolePolicy,
    dispatcher: MailDispatcher,
) -> Dict[str, Any]:
    """
    Move an application to ``new_status`` and notify the applicant.

    The status change and the applicant's notification are committed
    together. Concurrent updates are last-write-wins.

    Raises:
        InvalidStatusError: Unknown status value
        NotFoundError: Unknown application
        ForbiddenError: Caller may not manage the application
    """
    try:
        status = ApplicationStatus(new_status)
    except ValueError:
        raise InvalidStatusError(f"Invalid status: {new_status}")

    application = await _load_managed(db, application_id, caller_id, policy)
    job = application.job
    applicant = application.user
    previous = application.status

    message = status_message(status, job.title)

    application.status = status
    db.add(Notification(
        user_id=application.user_id,
        title=STATUS_NOTIFICATION_TITLE,
        message=message,
        link=f"/jobs/{application.job_id}",
    ))
    await db.commit()
    await db.refresh(application)

    log_audit_event(
        action=AuditAction.STATUS_CHANGE,
        resource_type=ResourceType.APPLICATION,
        resource_id=application.id,
        user_id=caller_id,
        institution_id=job.institution_id,
        details={"from": previous.value, "to": status.value},
    )

    dispatcher.dispatch(
        "status_update",
        applicant.email,
        job_title=job.title,
        job_id=job.id,
        message=message,
    )

    return serialize_application(application)
