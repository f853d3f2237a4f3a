"""
E2E: Assignment engine against a real database.

Runs the engine's service functions on SQLite and checks what ends up in
the tables:

- Nearest eligible provider is assigned, with history and notifications
- Nobody in range: admins are alerted, the request stays pending
- Nobody offers the category: no alert at all
- Unavailable or unlocated providers are never chosen
- Re-running assignment on an assigned request changes nothing
- Batch mode for a provider who just became available
"""

from __future__ import annotations

import uuid

import pytest
from sqlalchemy import update

from homefix.models import ProviderProfile, RequestStatus
from homefix.models.notification import NotificationType
from homefix.services.assignmentEngine import (
    AssignmentResult,
    ProviderHasNoCategoriesError,
    ProviderLocationMissingError,
    ProviderNotFoundError,
    RequestNotFoundError,
    assign_pending_for_provider,
    assign_request,
    commit_assignment,
)
from homefix.services.auditService import get_request_history
from homefix.services.candidateResolver import resolve_candidates
from tests.e2e.conftest import (
    ADMIN_ID,
    ELECTRICAL_ID,
    FAR_15KM,
    NEAR_1KM,
    NEAR_3KM,
    PLUMBING_ID,
    RESIDENT_ID,
    SITE,
    count_notifications,
    create_pending_request,
    create_provider,
    history_statuses,
    load_request,
    notifications_for,
)


pytestmark = pytest.mark.asyncio


class TestSingleAssignment:

    async def test_provider_in_range_is_assigned(self, seeded_db):
        provider_id = await create_provider(seeded_db, name="Ravi Kumar", location=NEAR_3KM)
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.result == AssignmentResult.ASSIGNED
        assert outcome.provider_id == provider_id
        assert outcome.provider_name == "Ravi Kumar"
        assert outcome.distance_km == pytest.approx(3.0, abs=0.01)
        assert outcome.notifications_written == 2

        request = await load_request(seeded_db, request_id)
        assert request.status == RequestStatus.ASSIGNED
        assert request.provider_id == provider_id
        assert request.assigned_at is not None

        assert await history_statuses(seeded_db, request_id) == ["pending", "assigned"]
        assigned_row = (await get_request_history(seeded_db, request_id))[-1]
        assert assigned_row.changed_by == RESIDENT_ID
        assert assigned_row.notes == (
            "Automatically assigned to provider Ravi Kumar (3.00 km away)"
        )

        (resident_note,) = await notifications_for(seeded_db, RESIDENT_ID)
        assert resident_note.type == NotificationType.REQUEST_ASSIGNED.value
        assert resident_note.related_request_id == request_id
        (provider_note,) = await notifications_for(seeded_db, provider_id)
        assert provider_note.type == NotificationType.NEW_ASSIGNMENT.value
        assert await notifications_for(seeded_db, ADMIN_ID) == []

    async def test_nearest_provider_wins(self, seeded_db):
        await create_provider(seeded_db, name="Three Km", location=NEAR_3KM)
        nearest = await create_provider(seeded_db, name="One Km", location=NEAR_1KM)
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.provider_id == nearest
        assert outcome.distance_km == pytest.approx(1.0, abs=0.01)

    async def test_equal_distance_goes_to_lower_provider_id(self, seeded_db):
        low = uuid.UUID("00000000-0000-0000-0000-00000000000a")
        high = uuid.UUID("ffffffff-0000-0000-0000-00000000000a")
        await create_provider(seeded_db, name="High", location=NEAR_3KM, user_id=high)
        await create_provider(seeded_db, name="Low", location=NEAR_3KM, user_id=low)
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.provider_id == low

    async def test_all_digit_ids_survive_the_round_trip(self, seeded_db):
        # PLUMBING_ID is all digits too; neither may come back as a number
        provider_id = uuid.UUID("11111111-2222-3333-4444-555555555555")
        await create_provider(
            seeded_db, name="Digits", location=NEAR_3KM, user_id=provider_id
        )
        request_id = await create_pending_request(seeded_db, category_id=PLUMBING_ID)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.provider_id == provider_id
        request = await load_request(seeded_db, request_id)
        assert request.provider_id == provider_id
        assert request.category_id == PLUMBING_ID
        resolution = await resolve_candidates(seeded_db, PLUMBING_ID)
        assert [c.provider_id for c in resolution.candidates] == [provider_id]

    async def test_provider_out_of_range_alerts_admins(self, seeded_db):
        await create_provider(seeded_db, name="Far Away", location=FAR_15KM)
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.result == AssignmentResult.NONE_IN_RANGE
        assert outcome.admins_alerted == 1

        request = await load_request(seeded_db, request_id)
        assert request.status == RequestStatus.PENDING
        assert request.provider_id is None
        assert await history_statuses(seeded_db, request_id) == ["pending"]

        (alert,) = await notifications_for(seeded_db, ADMIN_ID)
        assert alert.type == NotificationType.NO_PROVIDERS_AVAILABLE.value
        assert alert.related_request_id == request_id

    async def test_wider_radius_brings_provider_in_range(self, seeded_db):
        provider_id = await create_provider(
            seeded_db, name="Far Away", location=FAR_15KM, radius_km="20.00"
        )
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.provider_id == provider_id

    async def test_no_providers_for_category(self, seeded_db):
        await create_provider(
            seeded_db, name="Electrician", location=NEAR_3KM, categories=[ELECTRICAL_ID]
        )
        request_id = await create_pending_request(seeded_db, category_id=PLUMBING_ID)

        outcome = await assign_request(seeded_db, request_id)

        assert outcome.result == AssignmentResult.NO_CANDIDATES
        assert outcome.message == "no providers available"
        assert await count_notifications(seeded_db) == 0
        assert (await load_request(seeded_db, request_id)).status == RequestStatus.PENDING

    async def test_unavailable_and_unlocated_providers_are_skipped(self, seeded_db):
        await create_provider(
            seeded_db, name="Off Duty", location=NEAR_1KM, is_available=False
        )
        await create_provider(seeded_db, name="No Location", location=None)
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_request(seeded_db, request_id)

        # Members exist, so this is "nobody in range" rather than "nobody at all"
        assert outcome.result == AssignmentResult.NONE_IN_RANGE
        assert (await load_request(seeded_db, request_id)).provider_id is None

    async def test_unknown_request(self, seeded_db):
        with pytest.raises(RequestNotFoundError):
            await assign_request(seeded_db, uuid.uuid4())


class TestIdempotence:

    async def test_second_run_changes_nothing(self, seeded_db):
        provider_id = await create_provider(seeded_db, name="Ravi Kumar", location=NEAR_3KM)
        request_id = await create_pending_request(seeded_db)
        await assign_request(seeded_db, request_id)

        # A closer provider appears afterwards; the assignment must not move
        await create_provider(seeded_db, name="Closer", location=NEAR_1KM)
        outcome = await assign_request(seeded_db, request_id)

        assert outcome.result == AssignmentResult.RACE_LOST
        assert outcome.message == "request already assigned"
        assert (await load_request(seeded_db, request_id)).provider_id == provider_id
        assert await history_statuses(seeded_db, request_id) == ["pending", "assigned"]
        assert await count_notifications(seeded_db) == 2

    async def test_conditional_write_only_succeeds_once(self, seeded_db):
        first = await create_provider(seeded_db, name="First", location=NEAR_3KM)
        second = await create_provider(seeded_db, name="Second", location=NEAR_1KM)
        request_id = await create_pending_request(seeded_db)

        assert await commit_assignment(
            seeded_db, request_id, first, changed_by=RESIDENT_ID
        ) is True
        assert await commit_assignment(
            seeded_db, request_id, second, changed_by=RESIDENT_ID
        ) is False

        request = await load_request(seeded_db, request_id)
        assert request.provider_id == first
        assert await history_statuses(seeded_db, request_id) == ["pending", "assigned"]


class TestCandidateResolver:

    async def test_reports_members_and_orders_by_id(self, seeded_db):
        ids = sorted(uuid.uuid4() for _ in range(3))
        for user_id in reversed(ids):
            await create_provider(seeded_db, name=str(user_id), location=SITE, user_id=user_id)
        await create_provider(seeded_db, name="Off Duty", location=SITE, is_available=False)

        resolution = await resolve_candidates(seeded_db, PLUMBING_ID)

        assert resolution.membership_count == 4
        assert [c.provider_id for c in resolution.candidates] == ids
        assert all(c.service_radius_km == 10.0 for c in resolution.candidates)

    async def test_empty_category(self, seeded_db):
        resolution = await resolve_candidates(seeded_db, ELECTRICAL_ID)
        assert resolution.has_members is False
        assert resolution.candidates == []


class TestBatchAssignment:

    async def _make_available(self, db, user_id):
        await db.execute(
            update(ProviderProfile)
            .where(ProviderProfile.user_id == user_id)
            .values(is_available=True)
        )
        await db.commit()

    async def test_claims_pending_requests_in_range_oldest_first(self, seeded_db):
        provider_id = await create_provider(
            seeded_db, name="Ravi Kumar", location=NEAR_3KM, is_available=False
        )
        first = await create_pending_request(seeded_db, description="first")
        second = await create_pending_request(seeded_db, description="second")
        await create_pending_request(seeded_db, location=FAR_15KM, description="too far")
        await create_pending_request(
            seeded_db, category_id=ELECTRICAL_ID, description="other category"
        )
        await self._make_available(seeded_db, provider_id)

        outcome = await assign_pending_for_provider(seeded_db, provider_id)

        assert outcome.assigned_request_ids == [first, second]
        assert outcome.out_of_range == 1
        assert outcome.races_lost == 0
        for request_id in (first, second):
            request = await load_request(seeded_db, request_id)
            assert request.provider_id == provider_id
            assert await history_statuses(seeded_db, request_id) == ["pending", "assigned"]
        assert len(await notifications_for(seeded_db, provider_id)) == 2
        assert len(await notifications_for(seeded_db, RESIDENT_ID)) == 2

    async def test_already_assigned_requests_are_left_alone(self, seeded_db):
        other = await create_provider(seeded_db, name="Other", location=NEAR_1KM)
        request_id = await create_pending_request(seeded_db)
        await assign_request(seeded_db, request_id)

        provider_id = await create_provider(seeded_db, name="Late", location=NEAR_3KM)
        outcome = await assign_pending_for_provider(seeded_db, provider_id)

        assert outcome.assigned_count == 0
        assert (await load_request(seeded_db, request_id)).provider_id == other

    async def test_unavailable_provider_claims_nothing(self, seeded_db):
        provider_id = await create_provider(
            seeded_db, name="Off Duty", location=NEAR_3KM, is_available=False
        )
        request_id = await create_pending_request(seeded_db)

        outcome = await assign_pending_for_provider(seeded_db, provider_id)

        assert outcome.provider_available is False
        assert outcome.assigned_count == 0
        assert (await load_request(seeded_db, request_id)).status == RequestStatus.PENDING

    async def test_unknown_provider(self, seeded_db):
        with pytest.raises(ProviderNotFoundError):
            await assign_pending_for_provider(seeded_db, RESIDENT_ID)

    async def test_provider_without_location(self, seeded_db):
        provider_id = await create_provider(seeded_db, name="Nowhere", location=None)
        with pytest.raises(ProviderLocationMissingError):
            await assign_pending_for_provider(seeded_db, provider_id)

    async def test_provider_without_categories(self, seeded_db):
        provider_id = await create_provider(
            seeded_db, name="Idle", location=NEAR_3KM, categories=[]
        )
        with pytest.raises(ProviderHasNoCategoriesError):
            await assign_pending_for_provider(seeded_db, provider_id)
