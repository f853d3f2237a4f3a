"""
Audit Service
=============

Append-only status history for service requests. Exactly one row is
written per transition, including the initial ``pending`` insert, and
always inside the same transaction as the status change it records.
Rows are never updated or deleted.
"""

from __future__ import annotations

import logging
import uuid
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from homefix.models.service_request import RequestStatus, RequestStatusHistory

logger = logging.getLogger(__name__)


def assignment_note(provider_name: str, distance_km: float) -> str:
    """Build the history note recorded for an automatic assignment."""
    return f"Automatically assigned to provider {provider_name} ({distance_km:.2f} km away)"


async def record_status_change(
    db: AsyncSession,
    request_id: uuid.UUID,
    status: RequestStatus,
    *,
    changed_by: uuid.UUID | None = None,
    notes: str | None = None,
) -> RequestStatusHistory:
    """Append one history row for a transition into ``status``.

    The row is flushed but not committed; the caller owns the
    transaction that also carries the status write.
    """
    entry = RequestStatusHistory(
        request_id=request_id,
        status=status,
        changed_by=changed_by,
        notes=notes,
    )
    db.add(entry)
    await db.flush()

    logger.debug(
        "History row for request %s: status=%s changed_by=%s",
        request_id,
        status.value,
        changed_by,
    )
    return entry


async def get_request_history(
    db: AsyncSession,
    request_id: uuid.UUID,
) -> Sequence[RequestStatusHistory]:
    """Return every history row of a request, oldest first."""
    stmt = (
        select(RequestStatusHistory)
        .where(RequestStatusHistory.request_id == request_id)
        .order_by(RequestStatusHistory.created_at, RequestStatusHistory.id)
    )
    return (await db.execute(stmt)).scalars().all()
