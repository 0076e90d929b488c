"""
User repository — credit counter adjustments used by refunds.

Repository rules:
- Pure data-access logic only
- Every function receives AsyncSession explicitly
- Functions flush, but never commit
"""

from __future__ import annotations

import uuid

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from reportflow.db.models.base import utcnow
from reportflow.db.models.user import User


async def increment_checks(db: AsyncSession, user_id: uuid.UUID, amount: int = 1) -> bool:
    """Add consumable credits. Returns True when the user exists."""
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(checks=User.checks + amount, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount > 0


async def decrement_daily_credits_used(
    db: AsyncSession,
    user_id: uuid.UUID,
    amount: int = 1,
) -> bool:
    """Give back part of today's allowance. Returns True when the user exists."""
    stmt = (
        update(User)
        .where(User.id == user_id)
        .values(
            daily_credits_used_today=User.daily_credits_used_today - amount,
            updated_at=utcnow(),
        )
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.flush()
    return result.rowcount > 0
