"""
Provider Assignment Engine
==========================

Selects a provider for a pending service request and binds it with a
conditional write. The pipeline for one request is:

  1. Load the request (hard failure if it does not exist)
  2. Resolve candidates for its category   -- candidateResolver
  3. Filter by service radius and rank      -- providerRanking
  4. Conditionally assign the nearest one   -- commit_assignment
  5. Notify resident and provider, or alert admins when nobody is in range

The only concurrency guard is the conditional UPDATE in
``commit_assignment``: it requires ``status = 'pending' AND provider_id IS
NULL`` in the same statement that sets the provider, so at most one
concurrent run wins. A run that loses does not retry with the next
candidate and does not notify anyone.

Transaction boundaries:
  - The assignment UPDATE and its history row commit together.
  - Notifications are written afterwards in their own transaction, so a
    notification failure leaves the assignment intact.

Key functions:
  - assign_request              -- single-request pipeline
  - assign_pending_for_provider -- batch mode for a newly available provider
  - commit_assignment           -- the conditional write plus history row
"""

from __future__ import annotations

import enum
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.algorithms.providerRanking import rank_candidates
from homefix.events.requestEvents import (
    emit_assignment_race_lost,
    emit_no_providers,
    emit_provider_assigned,
    emit_request_status_changed,
)
from homefix.models.profile import Profile
from homefix.models.provider import ProviderCategory, ProviderProfile
from homefix.models.service_request import RequestStatus, ServiceRequest
from homefix.services.auditService import assignment_note, record_status_change
from homefix.services.candidateResolver import resolve_candidates
from homefix.services.geoService import haversine_distance
from homefix.services.notificationService import (
    notify_admins_no_providers,
    notify_assignment,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class RequestNotFoundError(Exception):
    def __init__(self, request_id: uuid.UUID) -> None:
        self.request_id = request_id
        super().__init__(f"Service request with id '{request_id}' not found.")


class ProviderNotFoundError(Exception):
    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"Provider profile for user '{user_id}' not found.")


class ProviderLocationMissingError(Exception):
    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"Provider '{user_id}' has no location set.")


class ProviderHasNoCategoriesError(Exception):
    def __init__(self, user_id: uuid.UUID) -> None:
        self.user_id = user_id
        super().__init__(f"Provider '{user_id}' offers no service categories.")


# ---------------------------------------------------------------------------
# Outcomes
# ---------------------------------------------------------------------------

class AssignmentResult(str, enum.Enum):
    ASSIGNED = "assigned"
    NO_CANDIDATES = "no_candidates"
    NONE_IN_RANGE = "none_in_range"
    RACE_LOST = "race_lost"


_MESSAGES: dict[AssignmentResult, str] = {
    AssignmentResult.ASSIGNED: "Provider assigned successfully",
    AssignmentResult.NO_CANDIDATES: "no providers available",
    AssignmentResult.NONE_IN_RANGE: "no providers within range",
    AssignmentResult.RACE_LOST: "request already assigned",
}


@dataclass
class AssignmentOutcome:
    """Business result of one single-request assignment run.

    Only ``ASSIGNED`` is a success; the other results are expected
    outcomes, not errors.
    """

    result: AssignmentResult
    request_id: uuid.UUID
    provider_id: uuid.UUID | None = None
    provider_name: str | None = None
    distance_km: float | None = None
    notifications_written: int = 0
    admins_alerted: int = 0
    detail: str | None = None

    @property
    def success(self) -> bool:
        return self.result == AssignmentResult.ASSIGNED

    @property
    def message(self) -> str:
        return self.detail or _MESSAGES[self.result]


@dataclass
class BatchOutcome:
    """Result of assigning pending requests to one newly available provider."""

    provider_user_id: uuid.UUID
    provider_available: bool = True
    assigned_request_ids: list[uuid.UUID] = field(default_factory=list)
    races_lost: int = 0
    out_of_range: int = 0

    @property
    def assigned_count(self) -> int:
        return len(self.assigned_request_ids)

    @property
    def message(self) -> str:
        if not self.provider_available:
            return "provider is not available"
        return f"Assigned {self.assigned_count} pending request(s)"


# ---------------------------------------------------------------------------
# Conditional write
# ---------------------------------------------------------------------------

async def commit_assignment(
    db: AsyncSession,
    request_id: uuid.UUID,
    provider_id: uuid.UUID,
    *,
    changed_by: uuid.UUID | None,
    notes: str | None = None,
) -> bool:
    """Bind ``provider_id`` to a still-pending, still-unassigned request.

    The UPDATE carries the preconditions itself; no prior read is trusted.
    When it matches a row, the ``assigned`` history row is appended and
    both are committed together. When it matches nothing the request was
    assigned (or moved on) elsewhere and nothing is written.

    Returns:
        True if this call won the assignment, False if it matched no row.
    """
    now = datetime.now(timezone.utc)
    stmt = (
        update(ServiceRequest)
        .where(
            ServiceRequest.id == request_id,
            ServiceRequest.status == RequestStatus.PENDING,
            ServiceRequest.provider_id.is_(None),
        )
        .values(
            provider_id=provider_id,
            status=RequestStatus.ASSIGNED,
            assigned_at=func.coalesce(ServiceRequest.assigned_at, now),
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)

    if result.rowcount == 0:
        # End the transaction; the zero-row update changed nothing
        await db.commit()
        return False

    await record_status_change(
        db,
        request_id,
        RequestStatus.ASSIGNED,
        changed_by=changed_by,
        notes=notes,
    )
    await db.commit()
    return True


async def _notify_committed_assignment(
    db: AsyncSession,
    *,
    request_id: uuid.UUID,
    resident_id: uuid.UUID,
    provider_id: uuid.UUID,
    provider_name: str,
    distance_km: float,
) -> int:
    """Write the assignment notifications in their own transaction.

    The assignment is already committed, so a failure here is logged and
    reported as zero notifications instead of being raised.
    """
    try:
        written = await notify_assignment(
            db,
            request_id=request_id,
            resident_id=resident_id,
            provider_id=provider_id,
            provider_name=provider_name,
            distance_km=distance_km,
        )
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(
            "Request %s assigned to %s but notifications could not be written",
            request_id,
            provider_id,
        )
        return 0
    return written


# ---------------------------------------------------------------------------
# Single-request assignment
# ---------------------------------------------------------------------------

async def _load_request(db: AsyncSession, request_id: uuid.UUID) -> ServiceRequest:
    stmt = (
        select(ServiceRequest)
        .where(ServiceRequest.id == request_id)
        .execution_options(populate_existing=True)
    )
    request = (await db.execute(stmt)).scalar_one_or_none()
    if request is None:
        raise RequestNotFoundError(request_id)
    return request


async def assign_request(
    db: AsyncSession,
    request_id: uuid.UUID,
    *,
    default_radius_km: float = 10.0,
) -> AssignmentOutcome:
    """Run the full assignment pipeline for one request.

    Args:
        db: Async database session.
        request_id: The service request to assign.
        default_radius_km: Radius for providers that have none stored.

    Returns:
        An ``AssignmentOutcome`` describing what happened.

    Raises:
        RequestNotFoundError: If the request does not exist.
    """
    request = await _load_request(db, request_id)
    resident_id = request.resident_id

    # Already assigned or moved on: the conditional write would match
    # nothing, so skip resolution entirely
    if request.status != RequestStatus.PENDING or request.provider_id is not None:
        logger.warning(
            "Request %s is '%s' with provider %s; nothing to assign",
            request_id,
            request.status.value,
            request.provider_id,
        )
        detail = None
        if request.status in (RequestStatus.COMPLETED, RequestStatus.CANCELLED):
            detail = f"request is no longer pending (status: {request.status.value})"
        return AssignmentOutcome(
            result=AssignmentResult.RACE_LOST, request_id=request_id, detail=detail
        )

    request_lat = float(request.location_lat)
    request_lon = float(request.location_lng)

    # 1. Candidates
    resolution = await resolve_candidates(
        db, request.category_id, default_radius_km=default_radius_km
    )
    if not resolution.has_members:
        emit_no_providers(request_id, reason="no providers registered for category")
        return AssignmentOutcome(
            result=AssignmentResult.NO_CANDIDATES, request_id=request_id
        )

    # 2. Eligibility and ranking
    ranked = rank_candidates(resolution.candidates, request_lat, request_lon)
    if not ranked:
        emit_no_providers(request_id, reason="no providers within range")
        admins = await notify_admins_no_providers(
            db, request_id=request_id, reason="no providers within range"
        )
        await db.commit()
        return AssignmentOutcome(
            result=AssignmentResult.NONE_IN_RANGE,
            request_id=request_id,
            admins_alerted=admins,
        )

    best = ranked[0]
    logger.info(
        "Request %s: %d eligible provider(s); nearest %s at %.2f km",
        request_id,
        len(ranked),
        best.provider_id,
        best.distance_km,
    )

    # 3. Conditional write
    won = await commit_assignment(
        db,
        request_id,
        best.provider_id,
        changed_by=resident_id,
        notes=assignment_note(best.provider_name, best.distance_km),
    )
    if not won:
        emit_assignment_race_lost(request_id, best.provider_id)
        return AssignmentOutcome(result=AssignmentResult.RACE_LOST, request_id=request_id)

    emit_request_status_changed(
        request_id,
        RequestStatus.PENDING.value,
        RequestStatus.ASSIGNED.value,
    )
    emit_provider_assigned(request_id, best.provider_id, best.distance_km)

    # 4. Notifications, after the commit
    written = await _notify_committed_assignment(
        db,
        request_id=request_id,
        resident_id=resident_id,
        provider_id=best.provider_id,
        provider_name=best.provider_name,
        distance_km=best.distance_km,
    )

    return AssignmentOutcome(
        result=AssignmentResult.ASSIGNED,
        request_id=request_id,
        provider_id=best.provider_id,
        provider_name=best.provider_name,
        distance_km=best.distance_km,
        notifications_written=written,
    )


# ---------------------------------------------------------------------------
# Batch assignment for a newly available provider
# ---------------------------------------------------------------------------

async def assign_pending_for_provider(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    default_radius_km: float = 10.0,
) -> BatchOutcome:
    """Assign every pending request this provider can serve to them.

    Requests are taken oldest first (ties by id). Each one inside the
    provider's radius goes through the same conditional write as the
    single-request pipeline; a lost race skips that request.

    Raises:
        ProviderNotFoundError: If the user has no provider profile.
        ProviderLocationMissingError: If the provider has no coordinate.
        ProviderHasNoCategoriesError: If the provider offers no category.
    """
    provider_profile = (
        await db.execute(
            select(ProviderProfile)
            .where(ProviderProfile.user_id == user_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one_or_none()
    if provider_profile is None:
        raise ProviderNotFoundError(user_id)

    outcome = BatchOutcome(provider_user_id=user_id)
    if not provider_profile.is_available:
        logger.info("Provider %s is not available; batch assignment skipped", user_id)
        outcome.provider_available = False
        return outcome

    profile = await db.get(Profile, user_id)
    if profile is None or not profile.has_location:
        raise ProviderLocationMissingError(user_id)

    category_ids = (
        await db.execute(
            select(ProviderCategory.category_id).where(
                ProviderCategory.provider_profile_id == provider_profile.id
            )
        )
    ).scalars().all()
    if not category_ids:
        raise ProviderHasNoCategoriesError(user_id)

    provider_name = profile.name
    provider_lat = float(profile.location_lat)
    provider_lon = float(profile.location_lng)
    radius_km = (
        float(provider_profile.service_radius_km)
        if provider_profile.service_radius_km is not None
        else default_radius_km
    )

    pending_stmt = (
        select(
            ServiceRequest.id,
            ServiceRequest.resident_id,
            ServiceRequest.location_lat,
            ServiceRequest.location_lng,
        )
        .where(
            ServiceRequest.status == RequestStatus.PENDING,
            ServiceRequest.provider_id.is_(None),
            ServiceRequest.category_id.in_(category_ids),
        )
        .order_by(ServiceRequest.created_at, ServiceRequest.id)
    )
    pending = (await db.execute(pending_stmt)).all()

    logger.info(
        "Batch assignment for provider %s: %d pending request(s) in %d categories",
        user_id,
        len(pending),
        len(category_ids),
    )

    for row in pending:
        distance = haversine_distance(
            float(row.location_lat),
            float(row.location_lng),
            provider_lat,
            provider_lon,
        )
        if distance > radius_km:
            outcome.out_of_range += 1
            continue

        won = await commit_assignment(
            db,
            row.id,
            user_id,
            changed_by=row.resident_id,
            notes=assignment_note(provider_name, distance),
        )
        if not won:
            emit_assignment_race_lost(row.id, user_id)
            outcome.races_lost += 1
            continue

        emit_request_status_changed(
            row.id,
            RequestStatus.PENDING.value,
            RequestStatus.ASSIGNED.value,
        )
        emit_provider_assigned(row.id, user_id, distance)
        await _notify_committed_assignment(
            db,
            request_id=row.id,
            resident_id=row.resident_id,
            provider_id=user_id,
            provider_name=provider_name,
            distance_km=distance,
        )
        outcome.assigned_request_ids.append(row.id)

    logger.info(
        "Batch assignment for provider %s done: assigned=%d, out_of_range=%d, "
        "races_lost=%d",
        user_id,
        outcome.assigned_count,
        outcome.out_of_range,
        outcome.races_lost,
    )
    return outcome
