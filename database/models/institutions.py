from typing import TYPE_CHECKING

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
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
class InstitutionType(str, PyEnum):
    """
    Kinds of tenants on the platform.
    """

    UNIVERSITY = "university"
    COMPANY = "company"


class RoleScope(str, PyEnum):
    """
    Where a role's authority applies.

    GLOBAL roles are honoured no matter which institution a session is
    acting as; TENANT roles only inside the session's active institution.
    """

    GLOBAL = "global"
    TENANT = "tenant"


class Institution(Base):
    """
    A tenant: a university or company that owns jobs and memberships.
    """

    __tablename__: str = "institutions"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    type: Mapped[InstitutionType] = mapped_column(
        SQLEnum(InstitutionType, native_enum=False, length=50),
        nullable=False,
        default=InstitutionType.UNIVERSITY,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
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
    members: Mapped[list["UserInstitutionRole"]] = relationship(
        "UserInstitutionRole",
        back_populates="institution",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    jobs: Mapped[list["Job"]] = relationship(
        "Job",
        back_populates="institution",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<Institution(id={self.id}, name={self.name}, active={self.is_active})>"


class Role(Base):
    """
    Named role. The scope is seeded from configuration and is what the
    authorization engine partitions on.
    """

    __tablename__: str = "roles"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    scope: Mapped[RoleScope] = mapped_column(
        SQLEnum(RoleScope, native_enum=False, length=20),
        nullable=False,
        default=RoleScope.TENANT,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    def __repr__(self) -> str:
        return f"<Role(name={self.name}, scope={self.scope})>"


class UserInstitutionRole(Base):
    """
    Tenant membership edge. One role per user per institution; this table is
    the source of truth for authorization, token claims only cache a slice.
    """

    __tablename__: str = "user_institution_roles"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    institution_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("institutions.id", ondelete="CASCADE"), nullable=False
    )
    role_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("roles.id", ondelete="RESTRICT"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="memberships")
    institution: Mapped["Institution"] = relationship(
        "Institution", back_populates="members"
    )
    role: Mapped["Role"] = relationship("Role", lazy="joined")

    __table_args__ = (
        UniqueConstraint("user_id", "institution_id", name="uq_user_institution"),
        Index("idx_uir_user", "user_id"),
        Index("idx_uir_institution", "institution_id"),
    )
