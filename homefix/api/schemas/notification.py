"""
Pydantic v2 schemas for the Notifications API
=============================================

Response schemas for the in-app notification center.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from homefix.api.schemas.request import CamelModel


class NotificationOut(CamelModel):
    """Single notification in the history list."""

    id: uuid.UUID
    user_id: uuid.UUID
    type: str
    title: str
    message: str
    related_request_id: Optional[uuid.UUID] = None
    read: bool
    created_at: datetime


class NotificationListResponse(CamelModel):
    data: list[NotificationOut]
    unread_count: int = Field(ge=0)


class MarkReadRequest(CamelModel):
    """Body for POST /notifications/{notification_id}/read."""

    user_id: uuid.UUID = Field(description="Owner of the notification")
