"""
Refund issuer — compensates a user when their order fails.

    regular → +1 consumable credit
    daily   → -1 daily allowance used
    other   → nothing

Refunds are best-effort: persistence errors are logged as RefundError
and never retried or re-raised.
"""

from __future__ import annotations

import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.core.constants import PaymentSource
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import RefundError
from reportflow.repositories import users as user_repository

logger = get_logger(__name__)


class RefundIssuer:
    """Applies the refund rule for a payment source."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def refund(self, user_id: uuid.UUID | None, payment_source: str | None) -> bool:
        """Returns True when a counter was adjusted."""
        log = logger.bind(user_id=str(user_id), payment_source=payment_source)

        if user_id is None:
            log.warning("Refund skipped, order has no user")
            return False

        if payment_source not in (PaymentSource.REGULAR, PaymentSource.DAILY):
            log.info("Refund skipped, payment source has no refund rule")
            return False

        try:
            applied = await self._apply(user_id, PaymentSource(payment_source))
        except RefundError as exc:
            log.error("Failed to refund credit", error=str(exc))
            return False

        if applied:
            log.info("Credit refunded")
        else:
            log.warning("Refund target user not found")
        return applied

    async def _apply(self, user_id: uuid.UUID, source: PaymentSource) -> bool:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    if source is PaymentSource.REGULAR:
                        return await user_repository.increment_checks(session, user_id)
                    return await user_repository.decrement_daily_credits_used(session, user_id)
        except SQLAlchemyError as exc:
            raise RefundError(
                f"Could not persist refund: {exc}",
                details={"user_id": str(user_id), "payment_source": source.value},
            ) from exc
