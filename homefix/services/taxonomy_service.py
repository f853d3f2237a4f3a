"""
Category Service
================

Read access to the service category reference list, plus the
idempotent loader that seeds the default categories.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.models.taxonomy import DEFAULT_CATEGORIES, ServiceCategory

logger = logging.getLogger(__name__)


class CategoryNotFoundError(Exception):
    """Raised when a service category cannot be found by ID."""

    def __init__(self, category_id: uuid.UUID) -> None:
        self.category_id = category_id
        super().__init__(f"Service category with id '{category_id}' not found.")


async def list_categories(db: AsyncSession) -> Sequence[ServiceCategory]:
    """Return all categories ordered by name."""
    stmt = select(ServiceCategory).order_by(ServiceCategory.name)
    return (await db.execute(stmt)).scalars().all()


async def get_category(db: AsyncSession, category_id: uuid.UUID) -> ServiceCategory:
    """Fetch one category or raise ``CategoryNotFoundError``."""
    category = await db.get(ServiceCategory, category_id)
    if category is None:
        raise CategoryNotFoundError(category_id)
    return category


async def ensure_categories_exist(
    db: AsyncSession,
    category_ids: Sequence[uuid.UUID],
) -> None:
    """Raise ``CategoryNotFoundError`` for the first unknown id, if any."""
    if not category_ids:
        return
    result = await db.execute(
        select(ServiceCategory.id).where(ServiceCategory.id.in_(category_ids))
    )
    known = {row[0] for row in result.all()}
    for category_id in category_ids:
        if category_id not in known:
            raise CategoryNotFoundError(category_id)


async def seed_default_categories(db: AsyncSession) -> int:
    """Insert any missing default category. Safe to run repeatedly.

    Returns:
        Number of categories inserted.
    """
    result = await db.execute(select(ServiceCategory.name))
    existing = {row[0] for row in result.all()}

    inserted = 0
    for name, description in DEFAULT_CATEGORIES:
        if name in existing:
            continue
        db.add(ServiceCategory(name=name, description=description))
        inserted += 1

    await db.flush()
    logger.info(
        "Seeded %d service categories (%d already present)", inserted, len(existing)
    )
    return inserted
