"""Delta Exchange WebSocket ticker feed used in LIVE mode."""

from __future__ import annotations

import asyncio
import json
import logging
import math
from typing import Any

import websockets
from websockets.exceptions import WebSocketException

from .interface import TickProducer, TickSink
from .models import Mode, Tick, now_ms

logger = logging.getLogger(__name__)

DEFAULT_URL = "wss://socket.india.delta.exchange"
DEFAULT_CHANNEL = "v2/ticker"
DEFAULT_RECONNECT_DELAY = 5.0


def subscribe_message(symbol: str, channel: str = DEFAULT_CHANNEL) -> dict:
    """Control message that subscribes one symbol to a Delta channel."""
    return {
        "type": "subscribe",
        "payload": {
            "channels": [
                {"name": channel, "symbols": [symbol.upper()]},
            ],
        },
    }


def _number(value: Any) -> float:
    """Loose numeric conversion: anything unparsable or NaN becomes 0.0."""
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    return 0.0 if math.isnan(result) else result


def parse_ticker_message(msg: Any) -> Tick | None:
    """Normalize a Delta ticker payload into a LIVE tick.

    Ticker messages are bare objects such as
    {"symbol": "BTCUSD", "mark_price": "1234.56", "timestamp": 123456789}.
    Anything without a symbol or a usable price is a heartbeat or
    subscription ack and yields None. A price of exactly 0 is dropped too.
    """
    if not isinstance(msg, dict) or not msg.get("symbol"):
        return None
    if not msg.get("mark_price") and not msg.get("close"):
        return None

    price = _number(msg.get("mark_price")) or _number(msg.get("close")) or _number(msg.get("spot_price"))
    if not price:
        return None

    timestamp = msg.get("timestamp")
    try:
        timestamp = int(timestamp) if timestamp else now_ms()
    except (TypeError, ValueError):
        timestamp = now_ms()

    return Tick(symbol=msg["symbol"], price=price, timestamp=timestamp, source=Mode.LIVE)


class DeltaFeedSource(TickProducer):
    """TickProducer backed by the Delta Exchange public WebSocket.

    One background task per activation: connect, send the subscribe message,
    forward every parsed tick to the sink. If the connection cannot be opened
    or drops while active, the task waits `reconnect_delay` seconds and
    subscribes again. Cancelling the task closes the socket.
    """

    def __init__(
        self,
        symbol: str,
        url: str = DEFAULT_URL,
        channel: str = DEFAULT_CHANNEL,
        reconnect_delay: float = DEFAULT_RECONNECT_DELAY,
        connect: Any = None,
    ) -> None:
        self._symbol = symbol.upper()
        self._url = url
        self._channel = channel
        self._reconnect_delay = reconnect_delay
        self._connect = connect or websockets.connect
        self._sink: TickSink | None = None
        self._task: asyncio.Task | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self, sink: TickSink) -> None:
        if self.is_running:
            return
        self._sink = sink
        self._task = asyncio.create_task(self._run(), name="delta-feed")
        logger.info("Delta feed started for %s (%s)", self._symbol, self._url)

    async def stop(self) -> None:
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                # The task is done either way; the mode guard discards anything stale.
                logger.error("Error closing Delta feed: %s", e)
            logger.info("Delta feed stopped")
        self._task = None
        self._sink = None

    # --- Internal ---

    async def _run(self) -> None:
        """Connect, subscribe and stream; reconnect after failures."""
        while True:
            try:
                await self._stream_once()
                logger.warning("Delta WebSocket closed")
            except (OSError, asyncio.TimeoutError, WebSocketException) as e:
                logger.error("Delta feed unavailable: %s", e)
            except Exception:
                logger.exception("Delta feed failed")
            await asyncio.sleep(self._reconnect_delay)

    async def _stream_once(self) -> None:
        """One connection lifetime: returns when the server closes the socket."""
        logger.info("Connecting to Delta WebSocket: %s", self._url)
        async with self._connect(self._url) as ws:
            await ws.send(json.dumps(subscribe_message(self._symbol, self._channel)))
            logger.info("Subscribed to %s on %s", self._symbol, self._channel)
            async for raw in ws:
                await self._handle_message(raw)

    async def _handle_message(self, raw: str | bytes) -> None:
        """Parse one frame and forward it if it is a usable tick."""
        try:
            msg = json.loads(raw)
        except ValueError as e:
            logger.warning("Error parsing Delta message: %s", e)
            return

        tick = parse_ticker_message(msg)
        if tick is None or self._sink is None:
            return
        try:
            await self._sink(tick)
        except Exception:
            # Skip this tick; the upstream connection itself is fine.
            logger.exception("Failed to forward Delta tick for %s", tick.symbol)
