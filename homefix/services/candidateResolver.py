"""
Candidate Resolver
==================

Given a service request's category, finds every provider that may be
considered for assignment:

  1. Providers with a membership row for the category.
  2. ...whose provider profile is marked available.
  3. ...whose owning profile has both latitude and longitude set.

Providers without a coordinate are dropped silently; incomplete profile
data is not an error. The number of membership rows is reported
alongside the candidates so the caller can tell "nobody offers this
category" apart from "nobody is close enough".
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.models.profile import Profile
from homefix.models.provider import ProviderCategory, ProviderProfile

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderCandidate:
    """A provider that may be ranked for a request."""

    provider_id: uuid.UUID          # Profile id of the provider (owner)
    provider_name: str
    latitude: float
    longitude: float
    service_radius_km: float


@dataclass
class CandidateResolution:
    """Result of resolving candidates for one category."""

    membership_count: int
    candidates: list[ProviderCandidate] = field(default_factory=list)

    @property
    def has_members(self) -> bool:
        return self.membership_count > 0


async def resolve_candidates(
    db: AsyncSession,
    category_id: uuid.UUID,
    *,
    default_radius_km: float = 10.0,
) -> CandidateResolution:
    """Resolve available, located providers offering ``category_id``.

    Rows come back ordered by provider id so that discovery order is
    stable across runs.

    Args:
        db: Async database session.
        category_id: The request's service category.
        default_radius_km: Radius used when a provider row carries none.

    Returns:
        A ``CandidateResolution``; ``candidates`` is empty when no provider
        qualifies, which is a normal outcome.
    """
    count_stmt = select(func.count(ProviderCategory.id)).where(
        ProviderCategory.category_id == category_id
    )
    membership_count: int = (await db.execute(count_stmt)).scalar_one()

    if membership_count == 0:
        logger.info("No providers registered for category %s", category_id)
        return CandidateResolution(membership_count=0)

    stmt = (
        select(
            Profile.id,
            Profile.name,
            Profile.location_lat,
            Profile.location_lng,
            ProviderProfile.service_radius_km,
        )
        .join(ProviderProfile, ProviderProfile.user_id == Profile.id)
        .join(
            ProviderCategory,
            ProviderCategory.provider_profile_id == ProviderProfile.id,
        )
        .where(
            ProviderCategory.category_id == category_id,
            ProviderProfile.is_available.is_(True),
            Profile.location_lat.is_not(None),
            Profile.location_lng.is_not(None),
        )
        .order_by(Profile.id)
    )
    rows = (await db.execute(stmt)).all()

    candidates = [
        ProviderCandidate(
            provider_id=row.id,
            provider_name=row.name,
            latitude=float(row.location_lat),
            longitude=float(row.location_lng),
            service_radius_km=(
                float(row.service_radius_km)
                if row.service_radius_km is not None
                else default_radius_km
            ),
        )
        for row in rows
    ]

    logger.info(
        "Category %s: %d membership rows, %d available located candidates",
        category_id,
        membership_count,
        len(candidates),
    )
    return CandidateResolution(membership_count=membership_count, candidates=candidates)
