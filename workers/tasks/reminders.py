"""Periodic saved-job reminder sweep."""

import asyncio
import logging

from workers.celery_app import celery_app
from core.config import settings
from core.integrations.email import CeleryMailDispatcher
from database.engine import close_db, create_engine, create_session_factory
from api.services.saved_jobs import send_saved_job_reminders as sweep

logger = logging.getLogger(__name__)


async def _run_sweep() -> dict:
    engine = create_engine(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    session_factory = create_session_factory(engine)
    try:
        async with session_factory() as db:
            return await sweep(
                db,
                CeleryMailDispatcher(celery_app),
                after_days=settings.reminder_after_days,
            )
    finally:
        await close_db(engine)


@celery_app.task(name="workers.tasks.reminders.send_saved_job_reminders")
def send_saved_job_reminders() -> dict:
    """Remind users of saved jobs that are still open.

    Scheduled daily by Celery beat at ``REMINDER_HOUR_UTC``:00.

    Returns:
        Counts of found, dispatched and failed reminders
    """
    logger.info("Starting saved job reminder sweep")
    result = asyncio.run(_run_sweep())
    logger.info(f"Saved job reminder sweep finished: {result}")
    return result
