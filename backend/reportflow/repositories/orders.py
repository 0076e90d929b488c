"""
Order repository — terminal status updates for the orders table.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit

Both updates only match rows still in `pending`, so a terminal order
is never rewritten and the caller learns whether it won the transition.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.core.constants import OrderStatus
from reportflow.db.models.base import utcnow
from reportflow.db.models.order import Order


@dataclass(frozen=True)
class FinalizedOrder:
    """Owner fields of an order as stored after its terminal update."""

    order_id: uuid.UUID
    status: str
    user_id: uuid.UUID | None
    payment_source: str | None


async def get_order(db: AsyncSession, order_id: uuid.UUID) -> Order | None:
    """Fetch an order by primary key (insert events carry only the id)."""
    return await db.get(Order, order_id)


async def _finalize(
    db: AsyncSession,
    order_id: uuid.UUID,
    values: dict[str, object],
) -> FinalizedOrder | None:
    stmt = (
        update(Order)
        .where(Order.id == order_id, Order.status == OrderStatus.PENDING.value)
        .values(**values, updated_at=utcnow())
        .returning(Order.id, Order.status, Order.user_id, Order.payment_source)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    row = result.one_or_none()
    await db.flush()
    if row is None:
        return None
    return FinalizedOrder(
        order_id=row.id,
        status=row.status,
        user_id=row.user_id,
        payment_source=row.payment_source,
    )


async def mark_order_failed(
    db: AsyncSession,
    order_id: uuid.UUID,
    reason: str,
) -> FinalizedOrder | None:
    """pending → failed. Returns None when the order is missing or already terminal."""
    return await _finalize(db, order_id, {
        "status": OrderStatus.FAILED.value,
        "failure_reason": reason,
    })


async def mark_order_completed(
    db: AsyncSession,
    order_id: uuid.UUID,
    *,
    ai_report_url: str,
    similarity_report_url: str,
) -> FinalizedOrder | None:
    """pending → completed with both report URLs."""
    if not ai_report_url or not similarity_report_url:
        raise ValueError("Both report URLs are required to complete an order")
    return await _finalize(db, order_id, {
        "status": OrderStatus.COMPLETED.value,
        "ai_report_url": ai_report_url,
        "similarity_report_url": similarity_report_url,
    })
