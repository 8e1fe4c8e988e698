"""Schemas for the application lifecycle endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import Field

from api.schemas.common import CamelModel, NamedRef, PersonRef


class ApplyRequest(CamelModel):
    """Optional profile fields are copied onto the applicant's profile."""

    job_id: int
    phone: Optional[str] = Field(None, max_length=20)
    linkedin_url: Optional[str] = Field(None, max_length=500)
    lattes_url: Optional[str] = Field(None, max_length=500)


class StatusUpdateRequest(CamelModel):
    # Validated by the service so an unknown value is INVALID_STATUS, not 422.
    status: str


class ApplicationResponse(CamelModel):
    id: int
    user_id: int
    job_id: int
    status: str
    created_at: datetime
    updated_at: datetime


class JobSummary(CamelModel):
    id: int
    title: str
    status: str
    institution: Optional[NamedRef] = None
    area: Optional[NamedRef] = None
    category: Optional[NamedRef] = None
    author: Optional[PersonRef] = None


class MyApplicationResponse(ApplicationResponse):
    job: JobSummary


class ApplicantSummary(CamelModel):
    id: int
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    lattes_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    course: Optional[str] = None
    education_level: Optional[str] = None
    graduation_year: Optional[int] = None
    bio: Optional[str] = None


class ManagedApplicationResponse(ApplicationResponse):
    user: ApplicantSummary
    job: JobSummary


class HasAppliedResponse(CamelModel):
    has_applied: bool
