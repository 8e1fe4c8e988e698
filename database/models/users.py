from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    Integer,
    func,
    Text,
    Index,
)
from database.engine import Base, BigInt
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database.models.institutions import Institution, UserInstitutionRole
    from database.models.applications import Application
    from database.models.notifications import Notification
    from database.models.jobs import SavedJob


class User(Base):
    """
    Core user identity. Tenant membership lives in UserInstitutionRole.
    """

    __tablename__: str = "users"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    # Profile
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20))
    bio: Mapped[str | None] = mapped_column(Text)
    avatar_url: Mapped[str | None] = mapped_column(String(500))
    resume_url: Mapped[str | None] = mapped_column(String(500))
    linkedin_url: Mapped[str | None] = mapped_column(String(500))
    lattes_url: Mapped[str | None] = mapped_column(String(500))
    github_url: Mapped[str | None] = mapped_column(String(500))
    portfolio_url: Mapped[str | None] = mapped_column(String(500))
    course: Mapped[str | None] = mapped_column(String(255))
    education_level: Mapped[str | None] = mapped_column(String(100))
    graduation_year: Mapped[int | None] = mapped_column(Integer)

    # Institution the next login starts in; the token claim is the live value.
    active_institution_id: Mapped[int | None] = mapped_column(
        BigInt, ForeignKey("institutions.id", ondelete="SET NULL"), nullable=True
    )

    # Timestamps
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # Relationships
    memberships: Mapped[list["UserInstitutionRole"]] = relationship(
        "UserInstitutionRole",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    active_institution: Mapped["Institution | None"] = relationship(
        "Institution", foreign_keys=[active_institution_id]
    )
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    notifications: Mapped[list["Notification"]] = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    saved_jobs: Mapped[list["SavedJob"]] = relationship(
        "SavedJob",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (Index("idx_user_created_at", "created_at"),)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
