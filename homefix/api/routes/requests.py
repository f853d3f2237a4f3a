"""
Service Request API Routes
==========================

REST endpoints for the service request lifecycle.

Routes:
  POST   /api/v1/requests                            -- Create a request (may auto-assign)
  GET    /api/v1/requests/{request_id}               -- Get one request
  GET    /api/v1/requests/{request_id}/history       -- Status history, oldest first
  PATCH  /api/v1/requests/{request_id}/status        -- Provider/admin transition
  POST   /api/v1/requests/{request_id}/cancel        -- Cancel a request
  GET    /api/v1/requests/resident/{resident_id}     -- Requests by resident (paginated)
  GET    /api/v1/requests/provider/{provider_id}     -- Requests by provider (paginated)
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, status

from homefix.api.deps import AppSettings, DBSession
from homefix.api.routes.assignments import outcome_to_response
from homefix.api.schemas.assignment import AssignmentErrorResponse
from homefix.api.schemas.request import (
    PaginationMeta,
    RequestCancel,
    RequestCreate,
    RequestCreateResponse,
    RequestListResponse,
    RequestStatusUpdate,
    ServiceRequestOut,
    StatusHistoryOut,
)
from homefix.services import assignmentEngine, requestService
from homefix.services.requestService import PaginatedResult
from homefix.services.taxonomy_service import CategoryNotFoundError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requests", tags=["Service Requests"])


def _not_found(exc: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


def _to_list_response(result: PaginatedResult) -> RequestListResponse:
    return RequestListResponse(
        data=[ServiceRequestOut.model_validate(r) for r in result.items],
        meta=PaginationMeta(
            page=result.page,
            page_size=result.page_size,
            total_items=result.total_items,
            total_pages=result.total_pages,
        ),
    )


# ---------------------------------------------------------------------------
# POST /api/v1/requests -- Create a new request
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=RequestCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a service request",
    description=(
        "Creates a request in 'pending' status with its first history row. "
        "When automatic assignment on creation is enabled, the assignment "
        "engine runs immediately and its result is returned alongside."
    ),
)
async def create_request(
    db: DBSession,
    config: AppSettings,
    body: RequestCreate,
) -> RequestCreateResponse:
    try:
        request = await requestService.create_request(
            db,
            resident_id=body.resident_id,
            category_id=body.category_id,
            description=body.description,
            location=body.location.model_dump(),
            photos=body.photos,
        )
    except (requestService.ProfileNotFoundError, CategoryNotFoundError) as exc:
        raise _not_found(exc)

    await db.commit()
    request_id = request.id

    # The request is committed at this point; assignment failures are
    # reported in the body instead of failing the create.
    assignment = None
    if config.auto_assign_on_create:
        try:
            outcome = await assignmentEngine.assign_request(
                db,
                request_id,
                default_radius_km=config.default_service_radius_km,
            )
        except Exception:
            await db.rollback()
            logger.exception("Automatic assignment failed for request %s", request_id)
            assignment = AssignmentErrorResponse(
                error="Internal error while assigning provider"
            ).model_dump(mode="json", by_alias=True)
        else:
            assignment = outcome_to_response(outcome).model_dump(
                mode="json", by_alias=True, exclude_none=True
            )

    refreshed = await requestService.get_request(db, request_id)
    return RequestCreateResponse(
        data=ServiceRequestOut.model_validate(refreshed),
        assignment=assignment,
    )


# ---------------------------------------------------------------------------
# GET /api/v1/requests/{request_id}
# ---------------------------------------------------------------------------

@router.get(
    "/{request_id}",
    response_model=ServiceRequestOut,
    summary="Get a service request",
)
async def get_request(
    db: DBSession,
    request_id: uuid.UUID,
) -> ServiceRequestOut:
    request = await requestService.get_request(db, request_id)
    if request is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Service request with id '{request_id}' not found.",
        )
    return ServiceRequestOut.model_validate(request)


# ---------------------------------------------------------------------------
# GET /api/v1/requests/{request_id}/history
# ---------------------------------------------------------------------------

@router.get(
    "/{request_id}/history",
    response_model=list[StatusHistoryOut],
    summary="Status history of a request, oldest first",
)
async def get_request_history(
    db: DBSession,
    request_id: uuid.UUID,
) -> list[StatusHistoryOut]:
    try:
        rows = await requestService.get_request_history(db, request_id)
    except assignmentEngine.RequestNotFoundError as exc:
        raise _not_found(exc)
    return [StatusHistoryOut.model_validate(row) for row in rows]


# ---------------------------------------------------------------------------
# PATCH /api/v1/requests/{request_id}/status
# ---------------------------------------------------------------------------

@router.patch(
    "/{request_id}/status",
    response_model=ServiceRequestOut,
    summary="Transition a request to a new status",
    description=(
        "Validated by the request state machine. Assignment is not possible "
        "here; use the assignment endpoints."
    ),
)
async def update_request_status(
    db: DBSession,
    request_id: uuid.UUID,
    body: RequestStatusUpdate,
) -> ServiceRequestOut:
    try:
        request = await requestService.update_request_status(
            db,
            request_id,
            body.status,
            actor_id=body.actor_id,
            actor_type=body.actor_type,
            notes=body.notes,
        )
    except assignmentEngine.RequestNotFoundError as exc:
        raise _not_found(exc)
    except requestService.NotOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except (requestService.InvalidTransitionError, requestService.StaleStatusError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return ServiceRequestOut.model_validate(request)


# ---------------------------------------------------------------------------
# POST /api/v1/requests/{request_id}/cancel
# ---------------------------------------------------------------------------

@router.post(
    "/{request_id}/cancel",
    response_model=ServiceRequestOut,
    summary="Cancel a service request",
)
async def cancel_request(
    db: DBSession,
    request_id: uuid.UUID,
    body: RequestCancel,
) -> ServiceRequestOut:
    try:
        request = await requestService.cancel_request(
            db,
            request_id,
            cancelled_by=body.cancelled_by,
            actor_type=body.actor_type,
            reason=body.reason,
        )
    except assignmentEngine.RequestNotFoundError as exc:
        raise _not_found(exc)
    except requestService.NotOwnerError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except (requestService.InvalidTransitionError, requestService.StaleStatusError) as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))

    return ServiceRequestOut.model_validate(request)


# ---------------------------------------------------------------------------
# GET /api/v1/requests/resident/{resident_id}
# ---------------------------------------------------------------------------

@router.get(
    "/resident/{resident_id}",
    response_model=RequestListResponse,
    summary="List a resident's requests",
)
async def list_resident_requests(
    db: DBSession,
    config: AppSettings,
    resident_id: uuid.UUID,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, alias="pageSize"),
) -> RequestListResponse:
    size = min(page_size or config.default_page_size, config.max_page_size)
    try:
        result = await requestService.list_requests_for_resident(
            db, resident_id, status_filter=status_filter, page=page, page_size=size
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return _to_list_response(result)


# ---------------------------------------------------------------------------
# GET /api/v1/requests/provider/{provider_id}
# ---------------------------------------------------------------------------

@router.get(
    "/provider/{provider_id}",
    response_model=RequestListResponse,
    summary="List requests assigned to a provider",
)
async def list_provider_requests(
    db: DBSession,
    config: AppSettings,
    provider_id: uuid.UUID,
    status_filter: Optional[str] = Query(default=None, alias="status"),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1, alias="pageSize"),
) -> RequestListResponse:
    size = min(page_size or config.default_page_size, config.max_page_size)
    try:
        result = await requestService.list_requests_for_provider(
            db, provider_id, status_filter=status_filter, page=page, page_size=size
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return _to_list_response(result)
