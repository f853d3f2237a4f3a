"""
Pydantic v2 schemas for the Assignment API
==========================================

Request and response bodies of the two assignment endpoints. The JSON
shape is a fixed contract with existing clients:

  single:  {success, message, provider: {id, name, distance}, requestId}
  batch:   {success, message, assignedCount}
  failure: {success: false, error}

``outcome`` is an additional machine-readable field on single responses.
"""

from __future__ import annotations

import uuid
from typing import Optional

from pydantic import Field

from homefix.api.schemas.request import CamelModel


# ---------------------------------------------------------------------------
# Request bodies
# ---------------------------------------------------------------------------

class AssignProviderRequest(CamelModel):
    """Body for POST /assignments/assign-provider.

    Kept as a plain string so that a missing or malformed id is reported
    with the contract's error body instead of a validation error.
    """

    request_id: Optional[str] = Field(default=None, description="Service request id")


class AssignPendingRequest(CamelModel):
    """Body for POST /assignments/assign-pending."""

    user_id: Optional[str] = Field(
        default=None, description="User id of the provider that became available"
    )


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------

class AssignedProviderOut(CamelModel):
    id: uuid.UUID
    name: str
    distance: float = Field(description="Distance in km, rounded to 2 decimals")


class AssignProviderResponse(CamelModel):
    """Single-request result. ``success`` is False for expected misses."""

    success: bool
    message: str
    outcome: str
    provider: Optional[AssignedProviderOut] = None
    request_id: uuid.UUID


class AssignPendingResponse(CamelModel):
    success: bool = True
    message: str
    assigned_count: int = Field(ge=0)


class AssignmentErrorResponse(CamelModel):
    """Hard failure body: not found, bad input, or an unexpected error."""

    success: bool = False
    error: str
