"""Notification service functions. Notifications are only visible to their recipient."""

from typing import Any, Dict
import logging

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from database.models.notifications import Notification

logger = logging.getLogger(__name__)

NOTIFICATION_PAGE_SIZE = 20


async def list_notifications(
    db: AsyncSession,
    user_id: int,
    limit: int = NOTIFICATION_PAGE_SIZE,
) -> Dict[str, Any]:
    """
    Newest notifications for the user plus the total unread count.

    Args:
        db: Database session
        user_id: Recipient
        limit: Maximum notifications returned

    Returns:
        Dictionary with notifications and unread_count
    """
    result = await db.execute(
        select(Notification)
        .where(Notification.user_id == user_id)
        .order_by(Notification.created_at.desc(), Notification.id.desc())
        .limit(limit)
    )
    notifications = result.scalars().all()

    unread = await db.execute(
        select(func.count(Notification.id)).where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
    )

    return {
        "notifications": [
            {
                "id": n.id,
                "title": n.title,
                "message": n.message,
                "link": n.link,
                "read": n.read,
                "created_at": n.created_at,
            }
            for n in notifications
        ],
        "unread_count": unread.scalar() or 0,
    }


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Mark one of the user's notifications read. Returns False if none matched."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
        )
        .values(read=True)
    )
    await db.commit()
    return result.rowcount > 0


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark every unread notification of the user read. Returns the count."""
    result = await db.execute(
        update(Notification)
        .where(
            Notification.user_id == user_id,
            Notification.read.is_(False),
        )
        .values(read=True)
    )
    await db.commit()
    return result.rowcount
