"""
Category API Routes
===================

Routes:
  GET /api/v1/categories  -- List all service categories
"""

from __future__ import annotations

from fastapi import APIRouter

from homefix.api.deps import DBSession
from homefix.api.schemas.taxonomy import CategoryListResponse, CategoryOut
from homefix.services import taxonomy_service

router = APIRouter(prefix="/categories", tags=["Categories"])


@router.get(
    "",
    response_model=CategoryListResponse,
    summary="List service categories",
)
async def list_categories(db: DBSession) -> CategoryListResponse:
    categories = await taxonomy_service.list_categories(db)
    return CategoryListResponse(
        data=[CategoryOut.model_validate(c) for c in categories],
    )
