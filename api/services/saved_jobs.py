"""
Saved job service functions and the reminder sweep.

The sweep is run daily by Celery beat (``workers.tasks.reminders``) and
reminds users of jobs they saved a while ago that are still taking
applications.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime, timedelta, timezone
import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from api.services.applications import serialize_job_summary
from core.errors import ConflictError, NotFoundError
from core.integrations.email import MailDispatcher
from database.models.jobs import ACCEPTING_STATUSES, Job, SavedJob

logger = logging.getLogger(__name__)


def _serialize(saved: SavedJob) -> Dict[str, Any]:
    return {
        "id": saved.id,
        "job_id": saved.job_id,
        "created_at": saved.created_at,
        "job": serialize_job_summary(saved.job),
    }


def _with_job():
    return selectinload(SavedJob.job).options(
        selectinload(Job.institution),
        selectinload(Job.area),
        selectinload(Job.category),
        selectinload(Job.author),
    )


async def save_job(db: AsyncSession, user_id: int, job_id: int) -> Dict[str, Any]:
    """
    Bookmark a job.

    Raises:
        NotFoundError: Job missing or soft-deleted
        ConflictError: Already saved
    """
    job = await db.get(Job, job_id)
    if job is None or job.deleted_at is not None:
        raise NotFoundError("Job not found")

    saved = SavedJob(user_id=user_id, job_id=job_id)
    db.add(saved)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Job already saved")

    result = await db.execute(
        select(SavedJob).options(_with_job()).where(SavedJob.id == saved.id)
    )
    return _serialize(result.scalar_one())


async def unsave_job(db: AsyncSession, user_id: int, job_id: int) -> None:
    """
    Remove a bookmark.

    Raises:
        NotFoundError: The job was not saved by the user
    """
    result = await db.execute(
        select(SavedJob).where(
            SavedJob.user_id == user_id,
            SavedJob.job_id == job_id,
        )
    )
    saved = result.scalar_one_or_none()
    if saved is None:
        raise NotFoundError("Saved job not found")

    await db.delete(saved)
    await db.commit()


async def list_saved_jobs(db: AsyncSession, user_id: int) -> List[Dict[str, Any]]:
    """List the user's saved jobs, newest first."""
    result = await db.execute(
        select(SavedJob)
        .options(_with_job())
        .where(SavedJob.user_id == user_id)
        .order_by(SavedJob.created_at.desc(), SavedJob.id.desc())
    )
    return [_serialize(saved) for saved in result.scalars().all()]


async def find_due_reminders(
    db: AsyncSession,
    after_days: int,
    now: Optional[datetime] = None,
) -> List[SavedJob]:
    """Saved jobs older than ``after_days`` whose job still takes applications."""
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(days=after_days)
    result = await db.execute(
        select(SavedJob)
        .join(Job, Job.id == SavedJob.job_id)
        .options(selectinload(SavedJob.user), selectinload(SavedJob.job))
        .where(
            SavedJob.created_at <= cutoff,
            Job.status.in_(ACCEPTING_STATUSES),
            Job.deleted_at.is_(None),
        )
        .order_by(SavedJob.id)
    )
    return list(result.scalars().all())


async def send_saved_job_reminders(
    db: AsyncSession,
    dispatcher: MailDispatcher,
    after_days: int,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Dispatch one reminder per due saved job. A failing entry is logged and
    skipped.

    Returns:
        Counts of found, dispatched and failed reminders
    """
    due = await find_due_reminders(db, after_days, now)
    logger.info(f"Found {len(due)} saved job reminders to send")

    dispatched = 0
    failed = 0
    for saved in due:
        try:
            dispatcher.dispatch(
                "saved_job_reminder",
                saved.user.email,
                job_title=saved.job.title,
                job_id=saved.job_id,
            )
            dispatched += 1
        except Exception as e:
            failed += 1
            logger.error(f"Failed to dispatch reminder for saved job {saved.id}: {e}")

    return {"found": len(due), "dispatched": dispatched, "failed": failed}
