"""
SQLAlchemy model for service_categories.

Categories are a flat list (Plumbing, Electrical, ...). Providers join
them through ``provider_categories``; every service request names one.
"""

from typing import Optional

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UUIDPrimaryKeyMixin

# Seeded on a fresh database by scripts/seed.py
DEFAULT_CATEGORIES: list[tuple[str, str]] = [
    ("Plumbing", "Pipes, leaks, drains, and water fixtures"),
    ("Electrical", "Wiring, outlets, switches, and lighting"),
    ("Carpentry", "Doors, cabinets, framing, and woodwork"),
    ("HVAC", "Heating, ventilation, and air conditioning"),
    ("Painting", "Interior and exterior painting"),
    ("General Maintenance", "Small repairs and upkeep around the home"),
]


class ServiceCategory(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "service_categories"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<ServiceCategory(id={self.id}, name={self.name})>"
