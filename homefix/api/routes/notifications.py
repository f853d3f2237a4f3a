"""
Notification API Routes
=======================

In-app notification center.

Routes:
  GET  /api/v1/notifications/{user_id}                 -- List notifications, newest first
  POST /api/v1/notifications/{notification_id}/read    -- Mark one as read
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, Query, status

from homefix.api.deps import DBSession
from homefix.api.schemas.notification import (
    MarkReadRequest,
    NotificationListResponse,
    NotificationOut,
)
from homefix.services import notificationService

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get(
    "/{user_id}",
    response_model=NotificationListResponse,
    summary="List a user's notifications",
)
async def list_notifications(
    db: DBSession,
    user_id: uuid.UUID,
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(default=50, ge=1, le=200),
) -> NotificationListResponse:
    notifications = await notificationService.list_notifications(
        db, user_id, unread_only=unread_only, limit=limit
    )
    unread = await notificationService.count_unread(db, user_id)
    return NotificationListResponse(
        data=[NotificationOut.model_validate(n) for n in notifications],
        unread_count=unread,
    )


@router.post(
    "/{notification_id}/read",
    response_model=NotificationOut,
    summary="Mark a notification as read",
)
async def mark_read(
    db: DBSession,
    notification_id: uuid.UUID,
    body: MarkReadRequest,
) -> NotificationOut:
    try:
        notification = await notificationService.mark_notification_read(
            db, notification_id, body.user_id
        )
    except notificationService.NotificationNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return NotificationOut.model_validate(notification)
