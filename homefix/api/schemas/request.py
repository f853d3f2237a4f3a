"""
Pydantic v2 schemas for the Service Request API
===============================================

These schemas define the public API contract for request creation, status
updates, cancellation, history, and retrieval. All schemas use camelCase
aliases to match what the web client sends and expects.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from homefix.models.service_request import RequestStatus


# ---------------------------------------------------------------------------
# Shared camelCase config
# ---------------------------------------------------------------------------

def _to_camel(snake: str) -> str:
    parts = snake.split("_")
    return parts[0] + "".join(w.capitalize() for w in parts[1:])


class CamelModel(BaseModel):
    """Base model that serialises field names to camelCase."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=_to_camel,
    )


# ---------------------------------------------------------------------------
# Shared pagination (re-usable across modules)
# ---------------------------------------------------------------------------

class PaginationMeta(CamelModel):
    """Pagination metadata included in every paginated response."""

    page: int = Field(ge=1, description="Current page number (1-indexed)")
    page_size: int = Field(ge=1, description="Number of items per page")
    total_items: int = Field(ge=0, description="Total number of matching items")
    total_pages: int = Field(ge=0, description="Total number of pages")


# ---------------------------------------------------------------------------
# Actor constants
# ---------------------------------------------------------------------------

VALID_ACTOR_TYPES = {"resident", "provider", "system", "admin"}
VALID_STATUSES = {"pending", "assigned", "in_progress", "completed", "cancelled"}


# ---------------------------------------------------------------------------
# Request schemas (input)
# ---------------------------------------------------------------------------

class RequestLocationInput(CamelModel):
    """Job site picked by the resident on the map."""

    latitude: Decimal = Field(description="Job site latitude", ge=-90, le=90)
    longitude: Decimal = Field(description="Job site longitude", ge=-180, le=180)
    address: Optional[str] = Field(default=None, max_length=500)


class RequestCreate(CamelModel):
    """Request body for POST /requests."""

    resident_id: uuid.UUID = Field(description="Profile id of the requesting resident")
    category_id: uuid.UUID = Field(description="Service category of the request")
    description: str = Field(min_length=1, max_length=5000)
    location: RequestLocationInput
    photos: list[str] = Field(
        default_factory=list,
        max_length=10,
        description="URLs of photos already uploaded by the client",
    )


class RequestStatusUpdate(CamelModel):
    """Request body for PATCH /requests/{id}/status."""

    status: str = Field(description="Target status")
    actor_id: Optional[uuid.UUID] = Field(
        default=None, description="Profile id of the user performing the transition"
    )
    actor_type: str = Field(
        default="system",
        description="Type of actor: resident, provider, system, admin",
    )
    notes: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        if v not in VALID_STATUSES:
            raise ValueError(
                f"Invalid status '{v}'. Must be one of: {', '.join(sorted(VALID_STATUSES))}"
            )
        return v

    @field_validator("actor_type")
    @classmethod
    def validate_actor_type(cls, v: str) -> str:
        if v not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"Invalid actor_type '{v}'. Must be one of: "
                f"{', '.join(sorted(VALID_ACTOR_TYPES))}"
            )
        return v


class RequestCancel(CamelModel):
    """Request body for POST /requests/{id}/cancel."""

    cancelled_by: uuid.UUID = Field(description="Profile id of the user cancelling")
    actor_type: str = Field(default="resident")
    reason: Optional[str] = Field(default=None, max_length=1000)

    @field_validator("actor_type")
    @classmethod
    def validate_actor_type(cls, v: str) -> str:
        if v not in VALID_ACTOR_TYPES:
            raise ValueError(
                f"Invalid actor_type '{v}'. Must be one of: "
                f"{', '.join(sorted(VALID_ACTOR_TYPES))}"
            )
        return v


# ---------------------------------------------------------------------------
# Response schemas (output)
# ---------------------------------------------------------------------------

class ServiceRequestOut(CamelModel):
    """Full request representation."""

    id: uuid.UUID
    resident_id: uuid.UUID
    provider_id: Optional[uuid.UUID] = None
    category_id: uuid.UUID
    status: RequestStatus
    description: str
    photos: list[str] = Field(default_factory=list)
    location_lat: float
    location_lng: float
    location_address: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    assigned_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class StatusHistoryOut(CamelModel):
    """One row of a request's status history."""

    id: uuid.UUID
    request_id: uuid.UUID
    status: RequestStatus
    changed_by: Optional[uuid.UUID] = None
    notes: Optional[str] = None
    created_at: datetime


class RequestListResponse(CamelModel):
    """Paginated list of requests."""

    data: list[ServiceRequestOut]
    meta: PaginationMeta


class RequestCreateResponse(CamelModel):
    """Created request plus the automatic assignment result, if it ran."""

    data: ServiceRequestOut
    assignment: Optional[dict[str, Any]] = None
