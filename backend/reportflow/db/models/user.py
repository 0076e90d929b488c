"""
User model — the credit balances touched by refunds.

Only the two counters are mapped here; the rest of the user record
belongs to the storefront that owns this table.
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from reportflow.db.models.base import Base, generate_uuid, utcnow


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid
    )

    # Consumable credits (one per regular order)
    checks: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Daily allowance already spent today (unlimited plans)
    daily_credits_used_today: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return (
            f"<User id={self.id} checks={self.checks} "
            f"daily_used={self.daily_credits_used_today}>"
        )
