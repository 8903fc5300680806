"""Factory that wires the relay from environment variables."""

from __future__ import annotations

import logging
import os

from .broadcaster import TickBroadcaster
from .controller import ModeController
from .delta_feed import DEFAULT_RECONNECT_DELAY, DEFAULT_URL, DeltaFeedSource
from .models import Mode
from .state import RelayState
from .synthetic import DEFAULT_INTERVAL, DEFAULT_PRICE, DEFAULT_STEP, SyntheticTickSource

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "BTCUSD"


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def initial_mode() -> Mode:
    """FEED_MODE=manual starts in MANUAL; anything else (default "api") is LIVE."""
    feed_mode = os.environ.get("FEED_MODE", "api").strip().lower()
    return Mode.MANUAL if feed_mode == "manual" else Mode.LIVE


def create_mode_controller() -> ModeController:
    """Build an unstarted ModeController with both producers.

    - SYMBOL                 instrument to relay (default BTCUSD)
    - FEED_MODE              "manual" or "api" (LIVE)
    - DELTA_WS_URL           upstream WebSocket address
    - FEED_RECONNECT_DELAY   seconds between reconnect attempts
    - MANUAL_INTERVAL / MANUAL_STEP / MANUAL_DEFAULT_PRICE  generator settings

    Caller must await controller.start().
    """
    symbol = (os.environ.get("SYMBOL", "").strip() or DEFAULT_SYMBOL).upper()
    mode = initial_mode()

    state = RelayState(mode=mode)
    live = DeltaFeedSource(
        symbol=symbol,
        url=os.environ.get("DELTA_WS_URL", "").strip() or DEFAULT_URL,
        reconnect_delay=_env_float("FEED_RECONNECT_DELAY", DEFAULT_RECONNECT_DELAY),
    )
    synthetic = SyntheticTickSource(
        state=state,
        symbol=symbol,
        interval=_env_float("MANUAL_INTERVAL", DEFAULT_INTERVAL),
        step=_env_float("MANUAL_STEP", DEFAULT_STEP),
        default_price=_env_float("MANUAL_DEFAULT_PRICE", DEFAULT_PRICE),
    )

    logger.info("Relay configured: symbol=%s initial mode=%s", symbol, mode.value)
    return ModeController(
        state=state,
        broadcaster=TickBroadcaster(state),
        live_source=live,
        synthetic_source=synthetic,
        symbol=symbol,
    )
