"""
Notification Service
====================

Writes in-app notifications for service request events and serves the
notification center. Each public ``notify_*`` function:

  1. Builds the title and message for the event.
  2. Resolves every recipient.
  3. Writes all rows for the event in a single multi-row INSERT.

Notifications are only written after the state change they describe has
been committed. The functions here flush; committing is left to the
caller so a notification failure can never undo an assignment.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any, Sequence

from sqlalchemy import func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.models.notification import Notification, NotificationType
from homefix.models.profile import Profile
from homefix.models.service_request import RequestStatus, ServiceRequest
from homefix.services.requestStateManager import ActorType

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------

class NotificationNotFoundError(Exception):
    """Raised when a notification does not exist for the given user."""

    def __init__(self, notification_id: uuid.UUID) -> None:
        self.notification_id = notification_id
        super().__init__(f"Notification with id '{notification_id}' not found.")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

def _row(
    user_id: uuid.UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    request_id: uuid.UUID | None,
) -> dict[str, Any]:
    return {
        "user_id": user_id,
        "type": notification_type.value,
        "title": title,
        "message": message,
        "related_request_id": request_id,
        "read": False,
    }


async def _insert_batch(db: AsyncSession, rows: list[dict[str, Any]]) -> int:
    """Insert all rows with one INSERT statement and return the row count."""
    if not rows:
        return 0
    await db.execute(insert(Notification), rows)
    await db.flush()
    return len(rows)


# ---------------------------------------------------------------------------
# Assignment notifications
# ---------------------------------------------------------------------------

async def notify_assignment(
    db: AsyncSession,
    *,
    request_id: uuid.UUID,
    resident_id: uuid.UUID,
    provider_id: uuid.UUID,
    provider_name: str,
    distance_km: float,
) -> int:
    """Tell the resident and the provider about a committed assignment.

    Returns:
        Number of notifications written (always 2).
    """
    rows = [
        _row(
            resident_id,
            NotificationType.REQUEST_ASSIGNED,
            "Service Provider Assigned",
            f"Your request has been assigned to provider {provider_name} "
            f"({distance_km:.2f} km away).",
            request_id,
        ),
        _row(
            provider_id,
            NotificationType.NEW_ASSIGNMENT,
            "New Service Assignment",
            f"You have been assigned a new service request "
            f"({distance_km:.2f} km away).",
            request_id,
        ),
    ]
    written = await _insert_batch(db, rows)

    logger.info(
        "Assignment notifications written: request=%s, resident=%s, provider=%s",
        request_id,
        resident_id,
        provider_id,
    )
    return written


async def notify_admins_no_providers(
    db: AsyncSession,
    *,
    request_id: uuid.UUID,
    reason: str,
) -> int:
    """Warn every admin that a request could not be assigned.

    One row per admin, all written by a single INSERT.

    Returns:
        Number of admins notified. Zero when no admin exists.
    """
    result = await db.execute(
        select(Profile.id).where(Profile.role_admin.is_(True)).order_by(Profile.id)
    )
    admin_ids = [row[0] for row in result.all()]

    if not admin_ids:
        logger.warning(
            "No admin to alert about unassigned request %s (%s)", request_id, reason
        )
        return 0

    message = f"Request {request_id} could not be assigned: {reason}."
    rows = [
        _row(
            admin_id,
            NotificationType.NO_PROVIDERS_AVAILABLE,
            "No Providers Available",
            message,
            request_id,
        )
        for admin_id in admin_ids
    ]
    written = await _insert_batch(db, rows)

    logger.warning(
        "Alerted %d admin(s): request %s unassigned (%s)", written, request_id, reason
    )
    return written


# ---------------------------------------------------------------------------
# Lifecycle notifications
# ---------------------------------------------------------------------------

async def notify_status_change(
    db: AsyncSession,
    request: ServiceRequest,
    new_status: RequestStatus,
    actor_type: ActorType,
) -> int:
    """Notify the parties affected by a provider- or user-driven transition.

    in_progress and completed go to the resident. A cancellation goes to
    the other party: the provider when the resident cancels, the resident
    when the provider cancels, and both when an admin or the system does.
    """
    rows: list[dict[str, Any]] = []

    if new_status == RequestStatus.IN_PROGRESS:
        rows.append(_row(
            request.resident_id,
            NotificationType.REQUEST_IN_PROGRESS,
            "Work Started",
            "Your service provider has started working on your request.",
            request.id,
        ))
    elif new_status == RequestStatus.COMPLETED:
        rows.append(_row(
            request.resident_id,
            NotificationType.REQUEST_COMPLETED,
            "Request Completed",
            "Your service request has been marked as completed.",
            request.id,
        ))
    elif new_status == RequestStatus.CANCELLED:
        recipients: list[uuid.UUID] = []
        if actor_type != ActorType.RESIDENT:
            recipients.append(request.resident_id)
        if actor_type != ActorType.PROVIDER and request.provider_id is not None:
            recipients.append(request.provider_id)
        for user_id in recipients:
            rows.append(_row(
                user_id,
                NotificationType.REQUEST_CANCELLED,
                "Request Cancelled",
                "A service request you are part of has been cancelled.",
                request.id,
            ))

    written = await _insert_batch(db, rows)
    if written:
        logger.info(
            "Status notifications written: request=%s, status=%s, count=%d",
            request.id,
            new_status.value,
            written,
        )
    return written


# ---------------------------------------------------------------------------
# Notification center
# ---------------------------------------------------------------------------

async def list_notifications(
    db: AsyncSession,
    user_id: uuid.UUID,
    *,
    unread_only: bool = False,
    limit: int = 50,
) -> Sequence[Notification]:
    """Return a user's notifications, newest first."""
    filters = [Notification.user_id == user_id]
    if unread_only:
        filters.append(Notification.read.is_(False))

    stmt = (
        select(Notification)
        .where(*filters)
        .order_by(Notification.created_at.desc(), Notification.id)
        .limit(limit)
    )
    return (await db.execute(stmt)).scalars().all()


async def mark_notification_read(
    db: AsyncSession,
    notification_id: uuid.UUID,
    user_id: uuid.UUID,
) -> Notification:
    """Mark one of the user's notifications as read.

    Raises:
        NotificationNotFoundError: If the notification does not exist or
            belongs to another user.
    """
    notification = await db.get(Notification, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotificationNotFoundError(notification_id)

    notification.read = True
    await db.flush()
    return notification


async def count_unread(db: AsyncSession, user_id: uuid.UUID) -> int:
    stmt = select(func.count(Notification.id)).where(
        Notification.user_id == user_id,
        Notification.read.is_(False),
    )
    return (await db.execute(stmt)).scalar_one()
