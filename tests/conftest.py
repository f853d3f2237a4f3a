"""
Shared pytest fixtures for HomeFix backend unit tests.

Provides mock database sessions and sample domain objects that mirror
production ORM models without requiring a live database connection.
"""

import uuid
from decimal import Decimal
from typing import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from homefix.models.service_request import RequestStatus, ServiceRequest
from homefix.services.candidateResolver import ProviderCandidate


# ---------------------------------------------------------------------------
# Database session mock
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_db() -> AsyncMock:
    """Async mock of ``AsyncSession``.

    Provides a mock that supports ``db.execute()``, ``db.add()``,
    ``db.flush()``, ``db.commit()`` and ``db.rollback()`` out of the box.
    Individual tests configure ``mock_db.execute`` to control query results.
    """
    session = AsyncMock()
    session.add = MagicMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


def scalar_result(value) -> MagicMock:
    """A mock ``Result`` whose ``scalar_one_or_none()`` returns ``value``."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


# ---------------------------------------------------------------------------
# Service request fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sample_request() -> ServiceRequest:
    """A pending plumbing request in central Bangalore."""
    request = MagicMock(spec=ServiceRequest)
    request.id = uuid.uuid4()
    request.resident_id = uuid.uuid4()
    request.provider_id = None
    request.category_id = uuid.uuid4()
    request.status = RequestStatus.PENDING
    request.location_lat = Decimal("12.97160000")
    request.location_lng = Decimal("77.59460000")
    return request


# ---------------------------------------------------------------------------
# Candidate factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_candidate() -> Callable[..., ProviderCandidate]:
    """Factory for ``ProviderCandidate`` values with sensible defaults."""

    def _make(
        *,
        provider_id: uuid.UUID | None = None,
        name: str = "Ravi Kumar",
        latitude: float = 12.9716,
        longitude: float = 77.5946,
        radius_km: float = 10.0,
    ) -> ProviderCandidate:
        return ProviderCandidate(
            provider_id=provider_id or uuid.uuid4(),
            provider_name=name,
            latitude=latitude,
            longitude=longitude,
            service_radius_km=radius_km,
        )

    return _make
