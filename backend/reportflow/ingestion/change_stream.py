"""
Insert notifications for the orders table over PostgreSQL LISTEN/NOTIFY.

The `orders_notify_insert` trigger (see the initial migration) publishes
only the new row's id on the configured channel, which keeps every
payload far below the 8000-byte NOTIFY limit.  A subscription holds
one dedicated asyncpg connection, loads each announced row through an
OrderLoader and yields it as an OrderDocument.  Losing the connection
ends the iteration with ListenerError, which the ChangeListener turns
into a reconnect.
"""

from __future__ import annotations

import asyncio
import uuid
from typing import AsyncIterator, Awaitable, Callable, Protocol

import asyncpg
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from reportflow.api.schemas.orders import OrderDocument, OrderInsertEvent
from reportflow.core.logging import get_logger
from reportflow.pipeline.errors import ListenerError
from reportflow.repositories import orders as order_repository

logger = get_logger(__name__)

_TERMINATED = object()

OrderLoader = Callable[[uuid.UUID], Awaitable[OrderDocument | None]]


class ChangeSubscription(Protocol):
    """An open insert subscription."""

    def __aiter__(self) -> AsyncIterator[OrderDocument]: ...

    async def close(self) -> None: ...


class ChangeStream(Protocol):
    """Something that can open insert subscriptions."""

    async def open(self) -> ChangeSubscription: ...


class StoredOrderLoader:
    """Reads an announced order row in its own session."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def __call__(self, order_id: uuid.UUID) -> OrderDocument | None:
        async with self._session_factory() as session:
            order = await order_repository.get_order(session, order_id)
            return OrderDocument.from_order(order) if order is not None else None


class PostgresSubscription:
    """One LISTEN session on a dedicated connection."""

    def __init__(
        self,
        connection: asyncpg.Connection,
        channel: str,
        loader: OrderLoader,
    ) -> None:
        self._connection = connection
        self.channel = channel
        self._loader = loader
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    async def start(self) -> None:
        await self._connection.add_listener(self.channel, self._on_notify)
        self._connection.add_termination_listener(self._on_terminate)

    def _on_notify(self, connection, pid: int, channel: str, payload: str) -> None:
        self._queue.put_nowait(payload)

    def _on_terminate(self, connection) -> None:
        if not self._closed:
            self._queue.put_nowait(_TERMINATED)

    def __aiter__(self) -> "PostgresSubscription":
        return self

    async def __anext__(self) -> OrderDocument:
        while True:
            if self._closed:
                raise StopAsyncIteration

            item = await self._queue.get()
            if item is _TERMINATED:
                raise ListenerError(f"Notification connection lost on '{self.channel}'")

            try:
                event = OrderInsertEvent.model_validate_json(item)
            except ValidationError as exc:
                logger.error("Discarding malformed order event", error=str(exc), payload=item)
                continue

            order = await self._load(event.id)
            if order is not None:
                return order

    async def _load(self, order_id: uuid.UUID) -> OrderDocument | None:
        try:
            order = await self._loader(order_id)
        except SQLAlchemyError as exc:
            logger.error("Could not load inserted order", order_id=str(order_id), error=str(exc))
            return None
        if order is None:
            logger.warning("Inserted order no longer exists", order_id=str(order_id))
        return order

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await self._connection.remove_listener(self.channel, self._on_notify)
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            logger.warning("Could not unlisten cleanly", error=str(exc))
        finally:
            await self._connection.close()


class PostgresChangeStream:
    """Opens LISTEN subscriptions on `channel`."""

    def __init__(self, dsn: str, channel: str, loader: OrderLoader) -> None:
        self.dsn = dsn
        self.channel = channel
        self.loader = loader

    async def open(self) -> PostgresSubscription:
        try:
            connection = await asyncpg.connect(self.dsn)
        except (asyncpg.PostgresError, OSError) as exc:
            raise ListenerError(f"Could not connect for notifications: {exc}") from exc

        subscription = PostgresSubscription(connection, self.channel, self.loader)
        try:
            await subscription.start()
        except asyncpg.PostgresError as exc:
            await connection.close()
            raise ListenerError(f"Could not LISTEN on '{self.channel}': {exc}") from exc

        logger.info("Subscribed to order inserts", channel=self.channel)
        return subscription
