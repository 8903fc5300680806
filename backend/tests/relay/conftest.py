"""Fixtures for relay tests.

Provides fake producers and subscribers so controller and broadcaster tests
don't need a network connection or real timers.
"""

import pytest

from app.relay.broadcaster import TickBroadcaster
from app.relay.controller import ModeController
from app.relay.interface import TickProducer
from app.relay.models import Mode
from app.relay.state import RelayState


class FakeProducer(TickProducer):
    """Records start/stop calls and exposes the sink it was started with."""

    def __init__(self) -> None:
        self.sink = None
        self.start_calls = 0
        self.stop_calls = 0
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self, sink) -> None:
        if self._running:
            return
        self.start_calls += 1
        self.sink = sink
        self._running = True

    async def stop(self) -> None:
        self.stop_calls += 1
        self._running = False

    async def push(self, tick) -> None:
        """Deliver a tick through the sink, even after stop() (a late callback)."""
        await self.sink(tick)


class FakeSubscriber:
    """Collects every payload sent to it; optionally fails on send."""

    def __init__(self, broken: bool = False) -> None:
        self.broken = broken
        self.messages: list[dict] = []

    async def send_json(self, data) -> None:
        if self.broken:
            raise ConnectionError("socket closed")
        self.messages.append(data)


@pytest.fixture
def live_producer():
    return FakeProducer()


@pytest.fixture
def manual_producer():
    return FakeProducer()


@pytest.fixture
def make_controller(live_producer, manual_producer):
    """Build a controller around fake producers, starting in the given mode."""

    def _make(mode: Mode = Mode.LIVE) -> ModeController:
        state = RelayState(mode=mode)
        return ModeController(
            state=state,
            broadcaster=TickBroadcaster(state),
            live_source=live_producer,
            synthetic_source=manual_producer,
            symbol="BTCUSD",
        )

    return _make


@pytest.fixture
def make_subscriber():
    """Factory for fake WebSocket subscribers."""
    return FakeSubscriber
