"""
Order finalizer — the single writer of terminal order state.

Finalization is the conditional pending → failed/completed update,
followed by a refund when (and only when) this call is the one that
moved the order to `failed`.  The refund uses the owner fields returned
by the update itself, not the caller's possibly stale snapshot.

The update and the refund are separate transactions: a crash between
them leaves a failed order without its refund.
"""

from __future__ import annotations

import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.logging import get_logger
from reportflow.repositories import orders as order_repository
from reportflow.repositories.orders import FinalizedOrder
from reportflow.services.refunds import RefundIssuer

logger = get_logger(__name__)


class OrderFinalizer:
    """Writes terminal order state and triggers refunds for failures."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        refunds: RefundIssuer,
    ) -> None:
        self._session_factory = session_factory
        self.refunds = refunds

    async def fail(self, order_id: uuid.UUID, reason: str) -> FinalizedOrder | None:
        """Mark the order failed with `reason` and refund its owner."""
        log = logger.bind(order_id=str(order_id))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    finalized = await order_repository.mark_order_failed(session, order_id, reason)
        except SQLAlchemyError as exc:
            log.error("Failed to mark order as failed", error=str(exc))
            return None

        if finalized is None:
            log.warning("Order missing or already finalized, nothing to fail")
            return None

        log.info("Order failed", reason=reason)
        await self.refunds.refund(finalized.user_id, finalized.payment_source)
        return finalized

    async def complete(
        self,
        order_id: uuid.UUID,
        *,
        ai_report_url: str,
        similarity_report_url: str,
    ) -> FinalizedOrder | None:
        """Mark the order completed with both report URLs. No refund."""
        log = logger.bind(order_id=str(order_id))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    finalized = await order_repository.mark_order_completed(
                        session,
                        order_id,
                        ai_report_url=ai_report_url,
                        similarity_report_url=similarity_report_url,
                    )
        except SQLAlchemyError as exc:
            log.error("Failed to mark order as completed", error=str(exc))
            return None

        if finalized is None:
            log.warning("Order missing or already finalized, nothing to complete")
            return None

        log.info("Order completed")
        return finalized
