"""
Provider API Routes
===================

Owner-only provider settings.

Routes:
  PATCH /api/v1/providers/{user_id}/availability    -- Toggle availability (may batch-assign)
  PATCH /api/v1/providers/{user_id}/service-radius  -- Change service radius
  PUT   /api/v1/providers/{user_id}/categories      -- Replace offered categories
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, HTTPException, status

from homefix.api.deps import AppSettings, DBSession
from homefix.api.schemas.provider import (
    AvailabilityResponse,
    AvailabilityUpdate,
    CategoriesUpdate,
    ProviderCategoriesResponse,
    ProviderProfileOut,
    ServiceRadiusUpdate,
)
from homefix.services import assignmentEngine, providerService
from homefix.services.requestService import NotOwnerError
from homefix.services.taxonomy_service import CategoryNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/providers", tags=["Providers"])


def _forbidden(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


# ---------------------------------------------------------------------------
# PATCH /api/v1/providers/{user_id}/availability
# ---------------------------------------------------------------------------

@router.patch(
    "/{user_id}/availability",
    response_model=AvailabilityResponse,
    summary="Set provider availability",
    description=(
        "Turning availability on triggers assignment of pending requests in "
        "range to this provider; the number claimed is returned as "
        "assignedCount. Batch problems with the provider's own data (no "
        "location, no categories) do not fail the toggle."
    ),
)
async def set_availability(
    db: DBSession,
    config: AppSettings,
    user_id: uuid.UUID,
    body: AvailabilityUpdate,
) -> AvailabilityResponse:
    try:
        change = await providerService.set_availability(
            db,
            user_id,
            actor_id=body.actor_id,
            is_available=body.is_available,
        )
    except NotOwnerError as exc:
        raise _forbidden(exc)
    except assignmentEngine.ProviderNotFoundError as exc:
        raise _not_found(exc)

    assigned_count = None
    if change.became_available and config.auto_assign_on_available:
        try:
            outcome = await assignmentEngine.assign_pending_for_provider(
                db,
                user_id,
                default_radius_km=config.default_service_radius_km,
            )
            assigned_count = outcome.assigned_count
        except (
            assignmentEngine.ProviderLocationMissingError,
            assignmentEngine.ProviderHasNoCategoriesError,
        ) as exc:
            logger.warning("Batch assignment skipped for provider %s: %s", user_id, exc)
            assigned_count = 0

    return AvailabilityResponse(
        data=ProviderProfileOut.model_validate(change.profile),
        assigned_count=assigned_count,
    )


# ---------------------------------------------------------------------------
# PATCH /api/v1/providers/{user_id}/service-radius
# ---------------------------------------------------------------------------

@router.patch(
    "/{user_id}/service-radius",
    response_model=ProviderProfileOut,
    summary="Set provider service radius",
)
async def update_service_radius(
    db: DBSession,
    user_id: uuid.UUID,
    body: ServiceRadiusUpdate,
) -> ProviderProfileOut:
    try:
        profile = await providerService.update_service_radius(
            db,
            user_id,
            actor_id=body.actor_id,
            radius_km=body.service_radius_km,
        )
    except NotOwnerError as exc:
        raise _forbidden(exc)
    except assignmentEngine.ProviderNotFoundError as exc:
        raise _not_found(exc)
    except providerService.InvalidRadiusError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))

    return ProviderProfileOut.model_validate(profile)


# ---------------------------------------------------------------------------
# PUT /api/v1/providers/{user_id}/categories
# ---------------------------------------------------------------------------

@router.put(
    "/{user_id}/categories",
    response_model=ProviderCategoriesResponse,
    summary="Replace the categories a provider offers",
)
async def set_categories(
    db: DBSession,
    user_id: uuid.UUID,
    body: CategoriesUpdate,
) -> ProviderCategoriesResponse:
    try:
        category_ids = await providerService.set_categories(
            db,
            user_id,
            actor_id=body.actor_id,
            category_ids=body.category_ids,
        )
    except NotOwnerError as exc:
        raise _forbidden(exc)
    except (assignmentEngine.ProviderNotFoundError, CategoryNotFoundError) as exc:
        raise _not_found(exc)

    return ProviderCategoriesResponse(user_id=user_id, category_ids=category_ids)
