from typing import TYPE_CHECKING

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    ForeignKey,
    DateTime,
    func,
    Enum as SQLEnum,
    Index,
    UniqueConstraint,
)
from database.engine import Base, BigInt
from datetime import datetime
from enum import Enum as PyEnum

if TYPE_CHECKING:
    from database.models.users import User
    from database.models.jobs import Job


# ==================== Enums ===================== #
class ApplicationStatus(str, PyEnum):
    """
    Visible lifecycle of an application.

    PENDING -> REVIEWING -> ACCEPTED | REJECTED. Withdrawal from PENDING
    deletes the row instead of adding a fifth state.
    """

    PENDING = "PENDING"
    REVIEWING = "REVIEWING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"


class Application(Base):
    """
    A user's application to a job. At most one per (user, job).
    """

    __tablename__: str = "applications"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    job_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False
    )
    status: Mapped[ApplicationStatus] = mapped_column(
        SQLEnum(ApplicationStatus, native_enum=False, length=20),
        nullable=False,
        default=ApplicationStatus.PENDING,
    )
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
    user: Mapped["User"] = relationship("User", back_populates="applications")
    job: Mapped["Job"] = relationship("Job", back_populates="applications")

    __table_args__ = (
        UniqueConstraint("user_id", "job_id", name="uq_application_user_job"),
        Index("idx_application_job", "job_id"),
        Index("idx_application_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Application(id={self.id}, user={self.user_id}, job={self.job_id}, status={self.status})>"
