from typing import TYPE_CHECKING

from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy import (
    String,
    Boolean,
    ForeignKey,
    DateTime,
    func,
    Text,
    Index,
)
from database.engine import Base, BigInt
from datetime import datetime

if TYPE_CHECKING:
    from database.models.users import User


class Notification(Base):
    """
    In-app notification owned by its recipient.
    """

    __tablename__: str = "notifications"
    id: Mapped[int] = mapped_column(
        BigInt, primary_key=True, nullable=False, autoincrement=True
    )
    user_id: Mapped[int] = mapped_column(
        BigInt, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    link: Mapped[str | None] = mapped_column(String(500))
    read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )

    user: Mapped["User"] = relationship("User", back_populates="notifications")

    __table_args__ = (
        Index("idx_notification_user_read", "user_id", "read"),
        Index("idx_notification_created_at", "created_at"),
    )
