"""
SQLAlchemy model for the profiles table.

A profile is any person known to the platform: residents who create
service requests, providers who fulfil them, and administrators.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class Profile(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "profiles"

    # Identity & contact
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(320), unique=True, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Location (entered through the map picker; may be missing)
    location_lat: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 8), nullable=True)
    location_lng: Mapped[Optional[Decimal]] = mapped_column(Numeric(11, 8), nullable=True)

    # Roles
    role_resident: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role_provider: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    role_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    provider_profile: Mapped[Optional["ProviderProfile"]] = relationship(
        "ProviderProfile", back_populates="user", uselist=False
    )

    @property
    def has_location(self) -> bool:
        return self.location_lat is not None and self.location_lng is not None

    def __repr__(self) -> str:
        return f"<Profile(id={self.id}, name={self.name}, admin={self.role_admin})>"
