"""Fan-out of accepted ticks to connected subscribers."""

from __future__ import annotations

import asyncio
import logging

from .interface import Subscriber
from .models import RelaySnapshot, Tick
from .state import RelayState

logger = logging.getLogger(__name__)


class TickBroadcaster:
    """Updates the shared price from matching ticks and pushes every tick out.

    The broadcaster holds non-owning references to subscribers: the streaming
    endpoint registers a socket on connect and removes it on disconnect. A
    subscriber whose send fails is dropped here as well.
    """

    def __init__(self, state: RelayState) -> None:
        self._state = state
        self._subscribers: set[Subscriber] = set()

    def add_subscriber(self, subscriber: Subscriber) -> None:
        self._subscribers.add(subscriber)
        logger.debug("Subscriber added (%d connected)", len(self._subscribers))

    def remove_subscriber(self, subscriber: Subscriber) -> None:
        """Forget a subscriber. No-op if it was already dropped."""
        self._subscribers.discard(subscriber)
        logger.debug("Subscriber removed (%d connected)", len(self._subscribers))

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self, tick: Tick) -> None:
        """Record the tick's price if its source owns the current mode, then fan out.

        Sends run concurrently and independently. A failing subscriber is
        logged and removed; the failure never reaches the caller.
        """
        if tick.source is self._state.mode:
            self._state.record_price(tick.price)

        subscribers = list(self._subscribers)
        if not subscribers:
            return

        payload = tick.to_dict(mode=self._state.mode)
        results = await asyncio.gather(
            *(subscriber.send_json(payload) for subscriber in subscribers),
            return_exceptions=True,
        )
        for subscriber, result in zip(subscribers, results):
            if isinstance(result, BaseException):
                logger.warning("Dropping subscriber after failed send: %r", result)
                self._subscribers.discard(subscriber)

    def info_message(self) -> dict:
        """Greeting sent to a subscriber right after it connects."""
        return {
            "type": "info",
            "message": "Connected to tick stream",
            "mode": self._state.mode.value,
        }

    def snapshot(self) -> RelaySnapshot:
        return self._state.snapshot()
