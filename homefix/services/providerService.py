"""
Provider Service
================

Owner-only operations on a provider's profile: availability, service
radius, and the set of categories offered. Becoming available is the
trigger for batch assignment, which the route layer runs after the
availability change is committed.

All operations use async SQLAlchemy sessions.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Sequence

from sqlalchemy import delete, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.models.provider import ProviderCategory, ProviderProfile
from homefix.services.assignmentEngine import ProviderNotFoundError
from homefix.services.requestService import NotOwnerError
from homefix.services.taxonomy_service import ensure_categories_exist

logger = logging.getLogger(__name__)


class InvalidRadiusError(Exception):
    """Raised when a service radius is not a positive number of km."""

    def __init__(self, radius_km: float) -> None:
        self.radius_km = radius_km
        super().__init__(f"Service radius must be greater than 0 km, got {radius_km}.")


@dataclass(frozen=True)
class AvailabilityChange:
    """Availability before and after a toggle."""

    profile: ProviderProfile
    was_available: bool

    @property
    def became_available(self) -> bool:
        return self.profile.is_available and not self.was_available


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

async def get_provider_profile(
    db: AsyncSession,
    user_id: uuid.UUID,
) -> ProviderProfile:
    """Fetch the provider profile owned by ``user_id``.

    Raises:
        ProviderNotFoundError: If the user has no provider profile.
    """
    stmt = (
        select(ProviderProfile)
        .where(ProviderProfile.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    profile = (await db.execute(stmt)).scalar_one_or_none()
    if profile is None:
        raise ProviderNotFoundError(user_id)
    return profile


async def get_category_ids(
    db: AsyncSession,
    provider_profile_id: uuid.UUID,
) -> list[uuid.UUID]:
    result = await db.execute(
        select(ProviderCategory.category_id)
        .where(ProviderCategory.provider_profile_id == provider_profile_id)
        .order_by(ProviderCategory.category_id)
    )
    return list(result.scalars().all())


def _check_owner(user_id: uuid.UUID, actor_id: uuid.UUID) -> None:
    if actor_id != user_id:
        raise NotOwnerError(actor_id, f"provider profile of '{user_id}'")


# ---------------------------------------------------------------------------
# Owner operations
# ---------------------------------------------------------------------------

async def set_availability(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    actor_id: uuid.UUID,
    is_available: bool,
) -> AvailabilityChange:
    """Set the provider's availability flag and commit it.

    Raises:
        NotOwnerError: If ``actor_id`` is not the provider.
        ProviderNotFoundError: If the user has no provider profile.
    """
    _check_owner(user_id, actor_id)
    profile = await get_provider_profile(db, user_id)

    was_available = profile.is_available
    profile.is_available = is_available
    await db.commit()
    await db.refresh(profile)

    logger.info(
        "Provider %s availability: %s -> %s", user_id, was_available, is_available
    )
    return AvailabilityChange(profile=profile, was_available=was_available)


async def update_service_radius(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    actor_id: uuid.UUID,
    radius_km: float,
) -> ProviderProfile:
    """Change how far the provider is willing to travel.

    Raises:
        NotOwnerError: If ``actor_id`` is not the provider.
        InvalidRadiusError: If ``radius_km`` is not positive.
        ProviderNotFoundError: If the user has no provider profile.
    """
    _check_owner(user_id, actor_id)
    if radius_km <= 0:
        raise InvalidRadiusError(radius_km)

    profile = await get_provider_profile(db, user_id)
    profile.service_radius_km = Decimal(str(round(radius_km, 2)))
    await db.flush()
    await db.refresh(profile)

    logger.info("Provider %s service radius set to %.2f km", user_id, radius_km)
    return profile


async def set_categories(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    actor_id: uuid.UUID,
    category_ids: Sequence[uuid.UUID],
) -> list[uuid.UUID]:
    """Replace the provider's category memberships.

    Returns:
        The category ids now offered, sorted.

    Raises:
        NotOwnerError: If ``actor_id`` is not the provider.
        CategoryNotFoundError: If any category id is unknown.
        ProviderNotFoundError: If the user has no provider profile.
    """
    _check_owner(user_id, actor_id)
    profile = await get_provider_profile(db, user_id)

    unique_ids = list(dict.fromkeys(category_ids))
    await ensure_categories_exist(db, unique_ids)

    await db.execute(
        delete(ProviderCategory).where(
            ProviderCategory.provider_profile_id == profile.id
        )
    )
    if unique_ids:
        await db.execute(
            insert(ProviderCategory),
            [
                {"provider_profile_id": profile.id, "category_id": category_id}
                for category_id in unique_ids
            ],
        )
    await db.flush()

    logger.info("Provider %s now offers %d categories", user_id, len(unique_ids))
    return await get_category_ids(db, profile.id)
