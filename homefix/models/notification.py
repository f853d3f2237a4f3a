"""
SQLAlchemy model for in-app notifications.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, UUIDPrimaryKeyMixin, utcnow


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class NotificationType(str, enum.Enum):
    """Classification of notification events.

    Stored as plain text so new types never need a schema migration.
    """
    REQUEST_ASSIGNED = "request_assigned"
    NEW_ASSIGNMENT = "new_assignment"
    NO_PROVIDERS_AVAILABLE = "no_providers_available"
    REQUEST_IN_PROGRESS = "request_in_progress"
    REQUEST_COMPLETED = "request_completed"
    REQUEST_CANCELLED = "request_cancelled"


# ---------------------------------------------------------------------------
# Notification
# ---------------------------------------------------------------------------

class Notification(UUIDPrimaryKeyMixin, Base):
    """A message shown in a user's notification center.

    Rows are written after the triggering transaction commits, so a
    notification never refers to a state change that was rolled back.
    """
    __tablename__ = "notifications"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    related_request_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("service_requests.id", ondelete="CASCADE"),
        nullable=True,
    )
    read: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    __table_args__ = (
        Index("ix_notifications_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Notification(id={self.id}, user_id={self.user_id}, "
            f"type={self.type}, read={self.read})>"
        )
