"""
Service Request Events
======================

Event emission for service request lifecycle changes. Each function emits
an event that downstream consumers (analytics, push delivery, admin
dashboards) can subscribe to.

There is no transport yet: each emitter logs the event and returns the
payload dict so callers can integrate with it immediately.

Events emitted:
  - request.created
  - request.status_changed
  - request.provider_assigned
  - request.no_providers
  - request.assignment_race_lost
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def _build_event(
    event_type: str,
    request_id: uuid.UUID,
    *,
    data: dict[str, Any] | None = None,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Construct a standardised event payload."""
    return {
        "event_type": event_type,
        "request_id": str(request_id),
        "actor_id": str(actor_id) if actor_id else None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "data": data or {},
    }


def emit_request_created(
    request_id: uuid.UUID,
    resident_id: uuid.UUID,
    category_id: uuid.UUID,
) -> dict[str, Any]:
    """Emit event when a resident creates a new request."""
    event = _build_event(
        "request.created",
        request_id,
        actor_id=resident_id,
        data={"category_id": str(category_id)},
    )
    logger.info("Event emitted: %s for request %s", event["event_type"], request_id)
    return event


def emit_request_status_changed(
    request_id: uuid.UUID,
    old_status: str,
    new_status: str,
    actor_id: uuid.UUID | None = None,
) -> dict[str, Any]:
    """Emit event when a request transitions between states."""
    event = _build_event(
        "request.status_changed",
        request_id,
        actor_id=actor_id,
        data={
            "old_status": old_status,
            "new_status": new_status,
        },
    )
    logger.info(
        "Event emitted: %s for request %s (%s -> %s)",
        event["event_type"],
        request_id,
        old_status,
        new_status,
    )
    return event


def emit_provider_assigned(
    request_id: uuid.UUID,
    provider_id: uuid.UUID,
    distance_km: float,
) -> dict[str, Any]:
    """Emit event when the engine binds a provider to a request."""
    event = _build_event(
        "request.provider_assigned",
        request_id,
        data={
            "provider_id": str(provider_id),
            "distance_km": round(distance_km, 2),
        },
    )
    logger.info(
        "Event emitted: %s for request %s -> provider %s",
        event["event_type"],
        request_id,
        provider_id,
    )
    return event


def emit_no_providers(
    request_id: uuid.UUID,
    reason: str,
) -> dict[str, Any]:
    """Emit event when no provider could be chosen for a request."""
    event = _build_event(
        "request.no_providers",
        request_id,
        data={"reason": reason},
    )
    logger.warning(
        "Event emitted: %s for request %s (%s)",
        event["event_type"],
        request_id,
        reason,
    )
    return event


def emit_assignment_race_lost(
    request_id: uuid.UUID,
    provider_id: uuid.UUID,
) -> dict[str, Any]:
    """Emit event when a conditional assignment write matched no row."""
    event = _build_event(
        "request.assignment_race_lost",
        request_id,
        data={"provider_id": str(provider_id)},
    )
    logger.warning(
        "Event emitted: %s for request %s (provider %s)",
        event["event_type"],
        request_id,
        provider_id,
    )
    return event
