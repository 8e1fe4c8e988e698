"""Schemas for notifications, saved jobs and institutions."""

from datetime import datetime
from typing import Optional

from api.schemas.common import CamelModel
from api.schemas.applications import JobSummary


class NotificationResponse(CamelModel):
    id: int
    title: str
    message: str
    link: Optional[str] = None
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    notifications: list[NotificationResponse]
    unread_count: int


class SavedJobResponse(CamelModel):
    id: int
    job_id: int
    created_at: datetime
    job: JobSummary


class InstitutionResponse(CamelModel):
    id: int
    name: str
    type: str
    is_active: bool
