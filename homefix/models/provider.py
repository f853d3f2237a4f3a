"""
SQLAlchemy models for provider_profiles and provider_categories.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin, utcnow

# Service radius applied when a provider never set one
DEFAULT_SERVICE_RADIUS_KM = Decimal("10.00")


class ProviderProfile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "provider_profiles"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    # Service radius (km) and availability, both owner-controlled
    service_radius_km: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
        default=DEFAULT_SERVICE_RADIUS_KM,
        server_default="10.00",
    )
    is_available: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="true"
    )

    # Relationships
    user: Mapped["Profile"] = relationship("Profile", back_populates="provider_profile")
    categories: Mapped[list["ProviderCategory"]] = relationship(
        "ProviderCategory", back_populates="provider", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return (
            f"<ProviderProfile(id={self.id}, user_id={self.user_id}, "
            f"radius={self.service_radius_km}, available={self.is_available})>"
        )


class ProviderCategory(UUIDPrimaryKeyMixin, Base):
    """Membership row: the provider offers services in this category."""

    __tablename__ = "provider_categories"

    provider_profile_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("provider_profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    category_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("service_categories.id", ondelete="CASCADE"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    # Relationships
    provider: Mapped["ProviderProfile"] = relationship(
        "ProviderProfile", back_populates="categories"
    )
    category: Mapped["ServiceCategory"] = relationship("ServiceCategory")

    __table_args__ = (
        UniqueConstraint(
            "provider_profile_id", "category_id", name="uq_provider_categories_pair"
        ),
        Index("ix_provider_categories_category", "category_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ProviderCategory(provider={self.provider_profile_id}, "
            f"category={self.category_id})>"
        )
