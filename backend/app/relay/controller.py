"""Mode controller: owns the LIVE/MANUAL switch and the producer lifecycle."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from .broadcaster import TickBroadcaster
from .interface import TickProducer, TickSink
from .models import Direction, Mode, RelaySnapshot, Tick
from .state import RelayState

logger = logging.getLogger(__name__)


class ModeController:
    """Keeps exactly one producer active and routes its ticks to the broadcaster.

    Invariants:
      - at most one producer is running; a switch stops the old one before
        starting the new one
      - every set_mode() call leaves direction at NONE
      - ticks whose source no longer matches the mode are discarded, which
        covers ticks already in flight while a producer is being cancelled

    Transitions are serialized with an asyncio.Lock so a second switch cannot
    interleave with the stop/start awaits of the first.
    """

    def __init__(
        self,
        state: RelayState,
        broadcaster: TickBroadcaster,
        live_source: TickProducer,
        synthetic_source: TickProducer,
        symbol: str = "",
    ) -> None:
        self._state = state
        self._broadcaster = broadcaster
        self._producers: dict[Mode, TickProducer] = {
            Mode.LIVE: live_source,
            Mode.MANUAL: synthetic_source,
        }
        self._active: TickProducer | None = None
        self._lock = asyncio.Lock()
        self.symbol = symbol

    @property
    def state(self) -> RelayState:
        return self._state

    @property
    def broadcaster(self) -> TickBroadcaster:
        return self._broadcaster

    @property
    def active_producer(self) -> TickProducer | None:
        return self._active

    def snapshot(self) -> RelaySnapshot:
        return self._broadcaster.snapshot()

    # --- Lifecycle ---

    async def start(self) -> None:
        """Activate the producer for the configured initial mode."""
        async with self._lock:
            await self._activate(self._state.mode)
        logger.info("Relay started in %s mode", self._state.mode.value)

    async def shutdown(self) -> None:
        """Stop whichever producer is active."""
        async with self._lock:
            await self._deactivate()
        logger.info("Relay shut down")

    # --- Control operations ---

    async def set_mode(self, target: Any) -> RelaySnapshot:
        """Switch to `target` (a Mode, wire flag or mode name).

        Raises InvalidArgumentError before touching any state if `target` is
        not recognized. Switching to the current mode only resets direction.
        """
        target = Mode.parse(target)
        async with self._lock:
            if target is self._state.mode:
                self._state.direction = Direction.NONE
                logger.debug("Mode already %s; producers untouched", target.value)
                return self._state.snapshot()

            previous = self._state.mode
            # Flip the mode first so anything the old producer still emits is discarded.
            self._state.mode = target
            await self._deactivate()
            # No await between the reset and start(): a direction change made
            # while the old producer was stopping must not survive the switch.
            self._state.direction = Direction.NONE
            await self._activate(target)
            logger.info("Mode changed: %s -> %s", previous.value, target.value)
            return self._state.snapshot()

    def set_direction(self, direction: Any) -> Direction:
        """Set the synthetic generator's direction. Accepted in any mode."""
        direction = Direction.parse(direction)
        previous = self._state.direction
        self._state.direction = direction
        logger.info("Manual direction changed: %s -> %s", previous.value, direction.value)
        return direction

    # --- Internals ---

    async def _activate(self, mode: Mode) -> None:
        producer = self._producers[mode]
        if producer.is_running:
            self._active = producer
            return
        await producer.start(self._sink_for(mode))
        self._active = producer

    async def _deactivate(self) -> None:
        producer, self._active = self._active, None
        if producer is None:
            return
        try:
            await producer.stop()
        except Exception:
            logger.exception("Failed to stop %s; continuing", type(producer).__name__)

    def _sink_for(self, mode: Mode) -> TickSink:
        """Build the guarded callback a producer pushes its ticks into."""

        async def forward(tick: Tick) -> None:
            if self._state.mode is not mode or tick.source is not mode:
                logger.debug("Discarding stale %s tick in %s mode", tick.source.value, self._state.mode.value)
                return
            await self._broadcaster.publish(tick)

        return forward
