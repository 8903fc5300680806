"""Abstract interfaces for tick producers and subscribers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

from .models import Tick

TickSink = Callable[[Tick], Awaitable[None]]


class TickProducer(ABC):
    """Contract for the two price producers (live feed and synthetic generator).

    Producers push ticks into the sink handed to start() on their own
    schedule. Only the ModeController starts and stops them.

    Lifecycle:
        await producer.start(sink)
        # ... ticks flow into sink ...
        await producer.stop()
    """

    @abstractmethod
    async def start(self, sink: TickSink) -> None:
        """Begin producing ticks into `sink`.

        No-op if already running, so a redundant call never creates a second
        subscription or timer.
        """

    @abstractmethod
    async def stop(self) -> None:
        """Stop producing. Returns once the background task has finished.

        Safe to call multiple times. After stop(), the producer will not call
        its sink again.
        """

    @property
    @abstractmethod
    def is_running(self) -> bool:
        """True while the producer's background task is alive."""


class Subscriber(Protocol):
    """A connected push channel (a FastAPI WebSocket satisfies this)."""

    async def send_json(self, data: Any) -> None: ...
