"""
Assignment API Routes
=====================

REST endpoints that run the provider-assignment engine.

Routes:
  POST /api/v1/assignments/assign-provider  -- Assign the nearest provider to a request
  POST /api/v1/assignments/assign-pending   -- Assign pending requests to a provider

Expected business misses (no providers, none in range, already assigned)
answer HTTP 200 with ``success: false``. Hard failures answer with
``{success: false, error}`` and a 4xx/5xx status.
"""

from __future__ import annotations

import logging
import uuid

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from homefix.api.deps import AppSettings, DBSession
from homefix.api.schemas.assignment import (
    AssignedProviderOut,
    AssignmentErrorResponse,
    AssignPendingRequest,
    AssignPendingResponse,
    AssignProviderRequest,
    AssignProviderResponse,
)
from homefix.services import assignmentEngine
from homefix.services.assignmentEngine import AssignmentOutcome, BatchOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/assignments", tags=["Assignments"])


# ---------------------------------------------------------------------------
# Response helpers
# ---------------------------------------------------------------------------

def _json(model: BaseModel, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=model.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


def _error(message: str, status_code: int) -> JSONResponse:
    return _json(AssignmentErrorResponse(error=message), status_code)


def _parse_id(raw: str | None, field: str) -> uuid.UUID | JSONResponse:
    if not raw:
        return _error(f"{field} is required", status.HTTP_400_BAD_REQUEST)
    try:
        return uuid.UUID(raw)
    except ValueError:
        return _error(f"{field} must be a valid UUID", status.HTTP_400_BAD_REQUEST)


def outcome_to_response(outcome: AssignmentOutcome) -> AssignProviderResponse:
    provider = None
    if outcome.success:
        provider = AssignedProviderOut(
            id=outcome.provider_id,
            name=outcome.provider_name,
            distance=round(outcome.distance_km, 2),
        )
    return AssignProviderResponse(
        success=outcome.success,
        message=outcome.message,
        outcome=outcome.result.value,
        provider=provider,
        request_id=outcome.request_id,
    )


def batch_to_response(outcome: BatchOutcome) -> AssignPendingResponse:
    return AssignPendingResponse(
        success=True,
        message=outcome.message,
        assigned_count=outcome.assigned_count,
    )


# ---------------------------------------------------------------------------
# POST /api/v1/assignments/assign-provider
# ---------------------------------------------------------------------------

@router.post(
    "/assign-provider",
    response_model=AssignProviderResponse,
    responses={
        400: {"model": AssignmentErrorResponse},
        500: {"model": AssignmentErrorResponse},
    },
    summary="Assign the nearest eligible provider to a pending request",
    description=(
        "Resolves available providers offering the request's category, keeps "
        "those whose service radius covers the job site, and conditionally "
        "assigns the nearest one. A request that is no longer pending is "
        "reported with outcome race_lost."
    ),
)
async def assign_provider(
    db: DBSession,
    config: AppSettings,
    body: AssignProviderRequest,
) -> JSONResponse:
    request_id = _parse_id(body.request_id, "requestId")
    if isinstance(request_id, JSONResponse):
        return request_id

    try:
        outcome = await assignmentEngine.assign_request(
            db,
            request_id,
            default_radius_km=config.default_service_radius_km,
        )
    except assignmentEngine.RequestNotFoundError as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST)
    except Exception:
        await db.rollback()
        logger.exception("Assignment failed for request %s", request_id)
        return _error("Internal error while assigning provider", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _json(outcome_to_response(outcome))


# ---------------------------------------------------------------------------
# POST /api/v1/assignments/assign-pending
# ---------------------------------------------------------------------------

@router.post(
    "/assign-pending",
    response_model=AssignPendingResponse,
    responses={
        400: {"model": AssignmentErrorResponse},
        404: {"model": AssignmentErrorResponse},
        500: {"model": AssignmentErrorResponse},
    },
    summary="Assign pending requests to a newly available provider",
    description=(
        "Claims every pending, unassigned request in the provider's "
        "categories that lies within their service radius, oldest first. "
        "An unavailable provider gets assignedCount 0."
    ),
)
async def assign_pending(
    db: DBSession,
    config: AppSettings,
    body: AssignPendingRequest,
) -> JSONResponse:
    user_id = _parse_id(body.user_id, "userId")
    if isinstance(user_id, JSONResponse):
        return user_id

    try:
        outcome = await assignmentEngine.assign_pending_for_provider(
            db,
            user_id,
            default_radius_km=config.default_service_radius_km,
        )
    except assignmentEngine.ProviderNotFoundError as exc:
        return _error(str(exc), status.HTTP_404_NOT_FOUND)
    except (
        assignmentEngine.ProviderLocationMissingError,
        assignmentEngine.ProviderHasNoCategoriesError,
    ) as exc:
        return _error(str(exc), status.HTTP_400_BAD_REQUEST)
    except Exception:
        await db.rollback()
        logger.exception("Batch assignment failed for provider %s", user_id)
        return _error("Internal error while assigning pending requests", status.HTTP_500_INTERNAL_SERVER_ERROR)

    return _json(batch_to_response(outcome))
