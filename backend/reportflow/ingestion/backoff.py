"""Reconnect backoff for the change listener."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ReconnectPolicy:
    """
    Exponential backoff: base, 2*base, 4*base ... capped at `cap_seconds`.

    `max_retries` reconnects are attempted after consecutive failures;
    the next failure leaves the listener stopped.
    """

    base_seconds: float = 1.0
    cap_seconds: float = 30.0
    max_retries: int = 10

    def delay_for(self, retry: int) -> float:
        """Delay before reconnect number `retry + 1`."""
        return min(self.cap_seconds, self.base_seconds * (2 ** retry))

    def allows(self, retry: int) -> bool:
        return retry < self.max_retries

