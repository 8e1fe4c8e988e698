"""Schemas for registration, login, profile and tenant switching."""

from datetime import datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from api.schemas.common import CamelModel, InstitutionSummary


class RegisterRequest(CamelModel):
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8, max_length=128)
    institution_id: int

    @field_validator("first_name", "last_name")
    @classmethod
    def strip_names(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class ChangePasswordRequest(CamelModel):
    old_password: str = Field(min_length=1, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


class SwitchInstitutionRequest(CamelModel):
    """``institutionId: null`` clears the active institution."""

    institution_id: Optional[int] = None


class MembershipResponse(CamelModel):
    institution: InstitutionSummary
    role: str


class ProfileResponse(CamelModel):
    id: int
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    lattes_url: Optional[str] = None
    github_url: Optional[str] = None
    portfolio_url: Optional[str] = None
    course: Optional[str] = None
    education_level: Optional[str] = None
    graduation_year: Optional[int] = None
    last_login_at: Optional[datetime] = None
    created_at: datetime
    active_institution_id: Optional[int] = None
    memberships: list[MembershipResponse] = []
