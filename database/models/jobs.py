from typing import TYPE_CHECKING

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    ForeignKey,
    DateTime,
    func,
    Text,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigInt
from datetime import datetime
from enum import Enum as PyEnum

if TYPE_CHECKING:
    from database.models.institutions import Institution
    from database.models.users import User
    from database.models.applications import Application


# ==================== Enums ===================== #
class JobStatus(str, PyEnum):
    """
    Publication status of a job posting.
    """

    DRAFT = "rascunho"
    PUBLISHED = "published"
    OPEN = "open"
    CLOSED = "closed"


# Statuses in which a job takes new applications
ACCEPTING_STATUSES: frozenset[JobStatus] = frozenset({JobStatus.PUBLISHED, JobStatus.OPEN})


class JobVisibility(str, PyEnum):
    PUBLIC = "public"
    PRIVATE = "private"


class Area(Base):
    __tablename__: str = "areas"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Category(Base):
    __tablename__: str = "categories"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)


class Job(Base):
    """
    Job posting owned by an institution and authored by one of its members.
    """

    __tablename__: str = "jobs"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[JobStatus] = mapped_column(
        SQLEnum(
            JobStatus,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=JobStatus.DRAFT,
    )
    visibility: Mapped[JobVisibility] = mapped_column(
        SQLEnum(JobVisibility, native_enum=False, length=20),
        nullable=False,
        default=JobVisibility.PUBLIC,
    )
    institution_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[int | None] = mapped_column(
        BigInt, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    area_id: Mapped[int | None] = mapped_column(
        BigInt, ForeignKey("areas.id", ondelete="SET NULL"), nullable=True
    )
    category_id: Mapped[int | None] = mapped_column(
        BigInt, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True
    )

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    institution: Mapped["Institution"] = relationship(
        "Institution", back_populates="jobs"
    )
    author: Mapped["User | None"] = relationship("User", foreign_keys=[author_id])
    area: Mapped["Area | None"] = relationship("Area")
    category: Mapped["Category | None"] = relationship("Category")
    applications: Mapped[list["Application"]] = relationship(
        "Application",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_job_institution", "institution_id"),
        Index("idx_job_author", "author_id"),
        Index("idx_job_status", "status"),
    )

    @property
    def is_accepting_applications(self) -> bool:
        return self.deleted_at is None and self.status in ACCEPTING_STATUSES


class SavedJob(Base):
    """
    A job bookmarked by a user; feeds the daily reminder sweep.
    """

    __tablename__: str = "saved_jobs"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="saved_jobs")
    job: Mapped["Job"] = relationship("Job")

    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="uq_saved_job_user_job"),
        Index("idx_saved_job_created_at", "created_at"),
    )
