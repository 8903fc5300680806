"""In-memory relay state shared by the controller, producers and broadcaster."""

from __future__ import annotations

from .models import Direction, Mode, RelaySnapshot


class RelayState:
    """Mode, direction and last accepted price for the single relayed symbol.

    Writers: ModeController (mode, direction), TickBroadcaster (price),
    SyntheticTickSource (initial MANUAL price only).
    Readers: everything else, through snapshot().

    All access happens on the event loop thread, so there is no lock.
    """

    def __init__(self, mode: Mode = Mode.LIVE) -> None:
        self.mode: Mode = mode
        self.direction: Direction = Direction.NONE
        self._current_price: float | None = None

    @property
    def current_price(self) -> float | None:
        return self._current_price

    def record_price(self, price: float) -> None:
        """Accept a new price. There is no way back to 'absent'."""
        self._current_price = price

    def ensure_price(self, default: float) -> float:
        """Initialize the price to `default` if nothing has been recorded yet."""
        if self._current_price is None:
            self.record_price(default)
        return self._current_price

    def snapshot(self) -> RelaySnapshot:
        return RelaySnapshot(
            mode=self.mode,
            direction=self.direction,
            current_price=self._current_price,
        )
