"""
Order model — one row per user submission.

Created externally as `pending`; the pipeline moves it exactly once
to `failed` (with a reason) or `completed` (with both report URLs).
The CHECK constraints mirror those rules at the database level.
"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from reportflow.core.constants import OrderStatus
from reportflow.db.models.base import Base, generate_uuid, utcnow


class Order(Base):
    __tablename__ = "orders"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'failed', 'completed')",
            name="ck_orders_status",
        ),
        CheckConstraint(
            "(status = 'failed') = (failure_reason IS NOT NULL)",
            name="ck_orders_failure_reason",
        ),
        CheckConstraint(
            "(status = 'completed') = "
            "(ai_report_url IS NOT NULL AND similarity_report_url IS NOT NULL)",
            name="ck_orders_report_urls",
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=generate_uuid
    )
    file_name: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # ── Owner / payment ──────────────────────
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True, index=True)
    payment_source: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    # ── Source file ──────────────────────────
    user_file_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_file_filename: Mapped[Optional[str]] = mapped_column(String(512), nullable=True)

    # ── Status ───────────────────────────────
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value, index=True
    )
    failure_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # ── Reports (set on completion) ──────────
    ai_report_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    similarity_report_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Order id={self.id} status={self.status} payment={self.payment_source}>"
