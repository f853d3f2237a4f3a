"""
Request Service
===============

Business logic for the service request lifecycle outside of assignment.
All operations use async SQLAlchemy sessions and enforce:

  - Category must exist (closed reference list)
  - State machine enforcement via requestStateManager
  - Compare-and-swap status writes, so a concurrent change is reported
    instead of logged twice
  - Exactly one history row per transition, in the same transaction
  - Event emission on every state change

Key functions:
  - create_request        -- insert as pending with its first history row
  - update_request_status -- state machine transition
  - cancel_request        -- cancellation with actor enforcement
  - get_request           -- single request retrieval
  - list_requests_for_resident / list_requests_for_provider -- paginated lists
"""

from __future__ import annotations

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.events.requestEvents import emit_request_created, emit_request_status_changed
from homefix.models.profile import Profile
from homefix.models.service_request import (
    RequestStatus,
    RequestStatusHistory,
    ServiceRequest,
)
from homefix.services.assignmentEngine import RequestNotFoundError
from homefix.services.auditService import get_request_history as _get_history
from homefix.services.auditService import record_status_change
from homefix.services.notificationService import notify_status_change
from homefix.services.requestStateManager import ActorType, validate_transition
from homefix.services.taxonomy_service import get_category

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pagination helper
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PaginatedResult:
    """Generic container for a page of results plus metadata."""

    items: Sequence
    total_items: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total_items == 0:
            return 0
        return math.ceil(self.total_items / self.page_size)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class ProfileNotFoundError(Exception):
    """Raised when a user profile cannot be found by ID."""

    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"Profile with id '{user_id}' not found.")


class InvalidTransitionError(Exception):
    """Raised when a request status transition is not allowed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class StaleStatusError(Exception):
    """Raised when the status changed between read and conditional write."""

    def __init__(self, request_id: uuid.UUID, expected: RequestStatus) -> None:
        self.request_id = request_id
        self.expected = expected
        super().__init__(
            f"Service request '{request_id}' is no longer '{expected.value}'."
        )


class NotOwnerError(Exception):
    """Raised when an actor acts on a resource that is not theirs."""

    def __init__(self, actor_id: uuid.UUID | None, resource: str) -> None:
        self.actor_id = actor_id
        self.resource = resource
        super().__init__(f"User '{actor_id}' is not allowed to modify {resource}.")


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

async def create_request(
    db: AsyncSession,
    *,
    resident_id: uuid.UUID,
    category_id: uuid.UUID,
    description: str,
    location: dict[str, Any],
    photos: list[str] | None = None,
) -> ServiceRequest:
    """Create a pending service request with its first history row.

    Args:
        db: Async database session.
        resident_id: Profile id of the resident creating the request.
        category_id: The requested service category.
        description: Free-text problem description.
        location: Dict with ``latitude``, ``longitude`` and optional ``address``.
        photos: Photo URLs already uploaded by the client.

    Returns:
        The newly created ServiceRequest, flushed but not committed.

    Raises:
        ProfileNotFoundError: If the resident does not exist.
        CategoryNotFoundError: If the category does not exist.
    """
    if await db.get(Profile, resident_id) is None:
        raise ProfileNotFoundError(resident_id)
    await get_category(db, category_id)

    request = ServiceRequest(
        resident_id=resident_id,
        category_id=category_id,
        status=RequestStatus.PENDING,
        description=description,
        photos=photos or [],
        location_lat=Decimal(str(location["latitude"])),
        location_lng=Decimal(str(location["longitude"])),
        location_address=location.get("address"),
    )
    db.add(request)
    await db.flush()

    await record_status_change(
        db,
        request.id,
        RequestStatus.PENDING,
        changed_by=resident_id,
    )

    emit_request_created(request.id, resident_id, category_id)
    logger.info(
        "Service request created: %s (resident=%s, category=%s)",
        request.id,
        resident_id,
        category_id,
    )
    return request


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def _check_party(
    request: ServiceRequest,
    actor_id: uuid.UUID | None,
    actor: ActorType,
) -> None:
    """Residents and providers may only act on their own requests."""
    if actor == ActorType.RESIDENT and actor_id != request.resident_id:
        raise NotOwnerError(actor_id, f"service request '{request.id}'")
    if actor == ActorType.PROVIDER and (
        request.provider_id is None or actor_id != request.provider_id
    ):
        raise NotOwnerError(actor_id, f"service request '{request.id}'")


async def update_request_status(
    db: AsyncSession,
    request_id: uuid.UUID,
    new_status: str,
    *,
    actor_id: uuid.UUID | None = None,
    actor_type: str = "system",
    notes: str | None = None,
) -> ServiceRequest:
    """Transition a request to a new status using the state machine.

    The write is conditional on the status that was validated, so two
    concurrent transitions cannot both succeed. The status change and its
    history row commit together; notifications follow in the caller's
    transaction.

    Raises:
        RequestNotFoundError: If the request does not exist.
        InvalidTransitionError: If the transition is not allowed.
        NotOwnerError: If a resident or provider acts on someone else's request.
        StaleStatusError: If the status changed concurrently.
    """
    stmt = (
        select(ServiceRequest)
        .where(ServiceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = (await db.execute(stmt)).scalar_one_or_none()
    if request is None:
        raise RequestNotFoundError(request_id)

    old_status = request.status
    target_status = RequestStatus(new_status)
    actor = ActorType(actor_type)

    if target_status == RequestStatus.ASSIGNED:
        raise InvalidTransitionError(
            "Providers are assigned through the assignment endpoints."
        )

    transition_result = validate_transition(old_status, target_status, actor)
    if not transition_result.allowed:
        raise InvalidTransitionError(transition_result.reason or "Transition not allowed.")

    _check_party(request, actor_id, actor)

    now = datetime.now(timezone.utc)
    values: dict[str, Any] = {"status": target_status, "updated_at": now}
    if target_status == RequestStatus.COMPLETED:
        values["completed_at"] = func.coalesce(ServiceRequest.completed_at, now)

    result = await db.execute(
        update(ServiceRequest)
        .where(
            ServiceRequest.id == request_id,
            ServiceRequest.status == old_status,
        )
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        await db.rollback()
        raise StaleStatusError(request_id, old_status)

    await record_status_change(
        db,
        request_id,
        target_status,
        changed_by=actor_id,
        notes=notes,
    )
    await db.commit()
    await db.refresh(request)

    emit_request_status_changed(
        request_id,
        old_status.value,
        target_status.value,
        actor_id=actor_id,
    )
    await notify_status_change(db, request, target_status, actor)

    logger.info(
        "Request %s transitioned: %s -> %s (actor=%s, type=%s)",
        request_id,
        old_status.value,
        target_status.value,
        actor_id,
        actor_type,
    )
    return request


async def cancel_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    *,
    cancelled_by: uuid.UUID,
    actor_type: str = "resident",
    reason: str | None = None,
) -> ServiceRequest:
    """Cancel a request. A provider assigned before cancellation stays
    recorded on the request for audit."""
    return await update_request_status(
        db,
        request_id,
        RequestStatus.CANCELLED.value,
        actor_id=cancelled_by,
        actor_type=actor_type,
        notes=reason,
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

async def get_request(
    db: AsyncSession,
    request_id: uuid.UUID,
) -> ServiceRequest | None:
    """Fetch a single request by primary key. Returns None if not found."""
    stmt = (
        select(ServiceRequest)
        .where(ServiceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    return (await db.execute(stmt)).scalar_one_or_none()


async def get_request_history(
    db: AsyncSession,
    request_id: uuid.UUID,
) -> Sequence[RequestStatusHistory]:
    """Return the status history of an existing request, oldest first.

    Raises:
        RequestNotFoundError: If the request does not exist.
    """
    if await get_request(db, request_id) is None:
        raise RequestNotFoundError(request_id)
    return await _get_history(db, request_id)


async def _paginate(
    db: AsyncSession,
    filters: list[Any],
    *,
    status_filter: str | None,
    page: int,
    page_size: int,
) -> PaginatedResult:
    if status_filter:
        filters.append(ServiceRequest.status == RequestStatus(status_filter))

    count_stmt = select(func.count(ServiceRequest.id)).where(*filters)
    total_items: int = (await db.execute(count_stmt)).scalar_one()

    data_stmt = (
        select(ServiceRequest)
        .where(*filters)
        .order_by(ServiceRequest.created_at.desc(), ServiceRequest.id)
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    requests = (await db.execute(data_stmt)).scalars().all()

    return PaginatedResult(
        items=requests,
        total_items=total_items,
        page=page,
        page_size=page_size,
    )


async def list_requests_for_resident(
    db: AsyncSession,
    resident_id: uuid.UUID,
    *,
    status_filter: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Return a resident's requests, newest first, optionally by status."""
    return await _paginate(
        db,
        [ServiceRequest.resident_id == resident_id],
        status_filter=status_filter,
        page=page,
        page_size=page_size,
    )


async def list_requests_for_provider(
    db: AsyncSession,
    provider_id: uuid.UUID,
    *,
    status_filter: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> PaginatedResult:
    """Return the requests assigned to a provider, newest first."""
    return await _paginate(
        db,
        [ServiceRequest.provider_id == provider_id],
        status_filter=status_filter,
        page=page,
        page_size=page_size,
    )
