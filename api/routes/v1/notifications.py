"""Notification endpoints. Every route only touches the caller's notifications."""

from fastapi import APIRouter, Depends, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.notifications import NotificationListResponse
from api.services import notifications as notification_service
from core.middleware.authorization import get_session_claims
from core.security import SessionClaims
from database.engine import get_db

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse, summary="List Notifications")
async def list_notifications(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    """The 20 newest notifications and the unread count."""
    return await notification_service.list_notifications(db, claims.user_id)


# Declared before /{notification_id}/read so "read-all" is not parsed as an id
@router.patch("/read-all", status_code=status.HTTP_204_NO_CONTENT, summary="Mark All Read")
async def mark_all_read(
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    await notification_service.mark_all_as_read(db, claims.user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch(
    "/{notification_id}/read",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Mark Read",
)
async def mark_read(
    notification_id: int = Path(..., description="Notification ID"),
    claims: SessionClaims = Depends(get_session_claims),
    db: AsyncSession = Depends(get_db),
):
    """Mark a notification read. Another user's notification is left untouched."""
    await notification_service.mark_as_read(db, claims.user_id, notification_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
