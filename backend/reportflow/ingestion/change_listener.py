"""
ChangeListener — supervises the order insert subscription.

States::

    stopped ──start()──▶ starting ──opened──▶ running ──stop()──▶ stopped
                                                │  ▲
                                   stream error │  │ reconnect after backoff
                                                ▼  │
                                            reconnecting ──retries exhausted──▶ stopped

Only this class moves between states.  Every insert event is handed to
the dispatch callback as its own task, so a slow workflow never holds
up the next event.

Each start() begins a new generation and stop() ends the current one.
An open that returns after its generation has ended closes the fresh
subscription and leaves the state alone.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

from reportflow.api.schemas.orders import OrderDocument
from reportflow.core.constants import ListenerState
from reportflow.core.logging import get_logger
from reportflow.ingestion.backoff import ReconnectPolicy
from reportflow.ingestion.change_stream import ChangeStream, ChangeSubscription
from reportflow.pipeline.errors import ListenerError

logger = get_logger(__name__)

Dispatch = Callable[[OrderDocument], Awaitable[Any]]


class ChangeListener:
    """Start/stop, reconnect and fire-and-forget dispatch for order inserts."""

    def __init__(
        self,
        stream: ChangeStream,
        dispatch: Dispatch,
        *,
        policy: ReconnectPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.stream = stream
        self.dispatch = dispatch
        self.policy = policy or ReconnectPolicy()
        self._sleep = sleep

        self._state = ListenerState.STOPPED
        self._generation = 0
        self._retry_count = 0
        self._subscription: ChangeSubscription | None = None
        self._consume_task: asyncio.Task | None = None
        self._reconnect_task: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    # ── Read-only state ───────────────────────────

    @property
    def state(self) -> ListenerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state is ListenerState.RUNNING

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def in_flight(self) -> int:
        return len(self._in_flight)

    def _transition(self, new_state: ListenerState, **fields) -> None:
        if new_state is not self._state:
            logger.info(
                "Listener state changed",
                from_state=self._state.value,
                to_state=new_state.value,
                **fields,
            )
        self._state = new_state

    # ── Control ───────────────────────────────────

    async def start(self) -> bool:
        """Open the subscription. Returns False if already running or starting."""
        if self._state in (ListenerState.RUNNING, ListenerState.STARTING):
            logger.info("Change stream already running", state=self._state.value)
            return False

        if self._state is ListenerState.RECONNECTING:
            await self._cancel_reconnect()

        self._generation += 1
        self._retry_count = 0
        self._transition(ListenerState.STARTING)
        await self._open(self._generation)
        return True

    async def stop(self) -> bool:
        """Close the subscription. Returns False if already stopped."""
        if self._state is ListenerState.STOPPED:
            logger.info("Change stream already stopped")
            return False

        # Any open still awaiting the stream now belongs to a dead generation
        self._generation += 1
        await self._cancel_reconnect()
        await self._cancel_consumer()
        await self._close_subscription()
        self._transition(ListenerState.STOPPED)
        logger.info("Stopped listening for new orders")
        return True

    async def drain(self, timeout: float | None = None) -> int:
        """Wait for dispatched workflows. Returns how many are still running."""
        if not self._in_flight:
            return 0
        _, pending = await asyncio.wait(list(self._in_flight), timeout=timeout)
        return len(pending)

    async def cancel_in_flight(self) -> None:
        """Cancel dispatched workflows (process shutdown)."""
        tasks = list(self._in_flight)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ── Subscription lifecycle ────────────────────

    async def _open(self, generation: int) -> None:
        try:
            subscription = await self.stream.open()
        except Exception as exc:
            if generation != self._generation:
                logger.info("Abandoned change stream open failed", error=str(exc))
                return
            await self._handle_error(exc)
            return

        if generation != self._generation:
            logger.info("Change stream opened after stop; closing it")
            await self._close_quietly(subscription)
            return

        self._subscription = subscription
        self._transition(ListenerState.RUNNING, retry_count=self._retry_count)
        self._consume_task = asyncio.create_task(
            self._consume(subscription),
            name="order-change-listener",
        )
        logger.info("Listening for new orders")

    async def _consume(self, subscription: ChangeSubscription) -> None:
        try:
            async for order in subscription:
                self._dispatch(order)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self._consume_task = None
            await self._handle_error(exc)
            return

        # Iteration ended without an error: the stream was closed under us.
        if self._subscription is subscription:
            self._consume_task = None
            await self._handle_error(ListenerError("Change stream closed unexpectedly"))

    def _dispatch(self, order: OrderDocument) -> None:
        task = asyncio.create_task(self.dispatch(order), name=f"order-{order.id}")
        self._in_flight.add(task)
        task.add_done_callback(self._on_dispatch_done)

    def _on_dispatch_done(self, task: asyncio.Task) -> None:
        self._in_flight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Order workflow raised", task=task.get_name(), error=str(exc))

    async def _handle_error(self, exc: BaseException) -> None:
        logger.error("Change stream error", error=str(exc), retry_count=self._retry_count)
        await self._close_subscription()

        retry = self._retry_count
        if not self.policy.allows(retry):
            self._transition(ListenerState.STOPPED)
            logger.error(
                "Max retries reached. Change stream will not restart automatically.",
                max_retries=self.policy.max_retries,
                error=str(exc),
            )
            return

        delay = self.policy.delay_for(retry)
        self._retry_count = retry + 1
        self._transition(ListenerState.RECONNECTING)
        logger.info(
            "Scheduling change stream restart",
            delay_seconds=delay,
            retry=self._retry_count,
            max_retries=self.policy.max_retries,
        )
        self._reconnect_task = asyncio.create_task(
            self._reconnect_after(delay, self._generation),
            name="order-change-reconnect",
        )

    async def _reconnect_after(self, delay: float, generation: int) -> None:
        await self._sleep(delay)
        if generation != self._generation or self._state is not ListenerState.RECONNECTING:
            return
        # Stays registered while opening so stop() can cancel the open
        await self._open(generation)
        if self._reconnect_task is asyncio.current_task():
            self._reconnect_task = None

    # ── Teardown helpers ──────────────────────────

    async def _close_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await self._close_quietly(subscription)

    async def _close_quietly(self, subscription: ChangeSubscription) -> None:
        try:
            await subscription.close()
        except Exception as exc:
            logger.warning("Error closing change stream", error=str(exc))

    async def _cancel_consumer(self) -> None:
        task, self._consume_task = self._consume_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    async def _cancel_reconnect(self) -> None:
        task, self._reconnect_task = self._reconnect_task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
