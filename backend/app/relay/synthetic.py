"""Synthetic price generator used in MANUAL mode."""

from __future__ import annotations

import asyncio
import logging

from .interface import TickProducer, TickSink
from .models import Direction, Mode, Tick, now_ms
from .state import RelayState

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0  # seconds between ticks
DEFAULT_STEP = 10.0
DEFAULT_PRICE = 100.0


def next_price(price: float, direction: Direction, step: float = DEFAULT_STEP) -> float:
    """Apply one directional step to `price`."""
    if direction is Direction.UP:
        return price + step
    if direction is Direction.DOWN:
        return price - step
    return price


class SyntheticTickSource(TickProducer):
    """TickProducer that steps the shared price on a fixed cadence.

    Holds no price of its own: every tick reads the current price and
    direction from RelayState and the resulting MANUAL tick is written back
    by the broadcaster.
    """

    def __init__(
        self,
        state: RelayState,
        symbol: str,
        interval: float = DEFAULT_INTERVAL,
        step: float = DEFAULT_STEP,
        default_price: float = DEFAULT_PRICE,
    ) -> None:
        self._state = state
        self._symbol = symbol
        self._interval = interval
        self._step = step
        self._default_price = default_price
        self._sink: TickSink | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, sink: TickSink) -> None:
        if self.is_running:
            return
        self._sink = sink
        price = self._state.ensure_price(self._default_price)
        self._task = asyncio.create_task(self._run_loop(), name="synthetic-ticker")
        logger.info(
            "Synthetic generator started for %s at %.2f (every %.1fs, step %.2f)",
            self._symbol,
            price,
            self._interval,
            self._step,
        )

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            logger.info("Synthetic generator stopped")
        self._task = None
        self._sink = None

    async def _tick_once(self) -> None:
        """Emit one MANUAL tick derived from the current shared price."""
        if self._sink is None:
            return
        price = self._state.ensure_price(self._default_price)
        tick = Tick(
            symbol=self._symbol,
            price=next_price(price, self._state.direction, self._step),
            timestamp=now_ms(),
            source=Mode.MANUAL,
        )
        await self._sink(tick)

    async def _run_loop(self) -> None:
        """Core loop: sleep one interval, then emit a tick."""
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self._tick_once()
            except Exception:
                logger.exception("Synthetic tick failed")
