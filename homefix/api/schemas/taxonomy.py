"""
Pydantic v2 schemas for the service category API.
"""

from __future__ import annotations

import uuid
from typing import Optional

from homefix.api.schemas.request import CamelModel


class CategoryOut(CamelModel):
    """Category representation returned by the list endpoint."""

    id: uuid.UUID
    name: str
    description: Optional[str] = None


class CategoryListResponse(CamelModel):
    data: list[CategoryOut]
