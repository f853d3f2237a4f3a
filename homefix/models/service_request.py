"""
SQLAlchemy models for service_requests and request_status_history.
"""

import enum
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Numeric, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin, utcnow


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def _enum_values(enum_cls: type[enum.Enum]) -> list[str]:
    return [member.value for member in enum_cls]


RequestStatusType = Enum(
    RequestStatus,
    name="request_status",
    values_callable=_enum_values,
)


class ServiceRequest(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "service_requests"

    # Parties
    resident_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    provider_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    status: Mapped[RequestStatus] = mapped_column(
        RequestStatusType,
        nullable=False,
        default=RequestStatus.PENDING,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    photos: Mapped[list[Any]] = mapped_column(JSONType, nullable=False, default=list)

    # Location of the job site
    location_lat: Mapped[Decimal] = mapped_column(Numeric(10, 8), nullable=False)
    location_lng: Mapped[Decimal] = mapped_column(Numeric(11, 8), nullable=False)
    location_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Lifecycle timestamps, each set once
    assigned_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Relationships
    history: Mapped[list["RequestStatusHistory"]] = relationship(
        "RequestStatusHistory",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestStatusHistory.created_at",
    )

    __table_args__ = (
        Index("ix_service_requests_status_category", "status", "category_id"),
        Index("ix_service_requests_resident", "resident_id"),
        Index("ix_service_requests_provider", "provider_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ServiceRequest(id={self.id}, status={self.status}, "
            f"provider_id={self.provider_id})>"
        )


class RequestStatusHistory(UUIDPrimaryKeyMixin, Base):
    """Append-only audit row; one per creation and per status change."""

    __tablename__ = "request_status_history"

    request_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_requests.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[RequestStatus] = mapped_column(RequestStatusType, nullable=False)
    changed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="SET NULL"),
        nullable=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    request: Mapped["ServiceRequest"] = relationship(
        "ServiceRequest", back_populates="history"
    )

    __table_args__ = (
        Index("ix_request_status_history_request", "request_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<RequestStatusHistory(request_id={self.request_id}, "
            f"status={self.status})>"
        )
