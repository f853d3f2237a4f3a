"""
Pydantic v2 schemas for the Provider API
========================================

Owner-only provider settings: availability, service radius, and offered
categories. All schemas use camelCase aliases.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import Field

from homefix.api.schemas.request import CamelModel


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------

class AvailabilityUpdate(CamelModel):
    """Body for PATCH /providers/{user_id}/availability."""

    actor_id: uuid.UUID = Field(description="Profile id of the caller; must be the provider")
    is_available: bool


class ServiceRadiusUpdate(CamelModel):
    """Body for PATCH /providers/{user_id}/service-radius."""

    actor_id: uuid.UUID
    service_radius_km: float = Field(gt=0, le=500, description="Radius in km")


class CategoriesUpdate(CamelModel):
    """Body for PUT /providers/{user_id}/categories."""

    actor_id: uuid.UUID
    category_ids: list[uuid.UUID] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------

class ProviderProfileOut(CamelModel):
    id: uuid.UUID
    user_id: uuid.UUID
    service_radius_km: float
    is_available: bool


class AvailabilityResponse(CamelModel):
    """Availability after the update, plus the batch result when it ran."""

    data: ProviderProfileOut
    assigned_count: Optional[int] = Field(
        default=None,
        description="Pending requests assigned because the provider became available",
    )


class ProviderCategoriesResponse(CamelModel):
    user_id: uuid.UUID
    category_ids: list[uuid.UUID]
