"""Data models for the tick relay."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


def now_ms() -> int:
    """Current wall-clock time as Unix milliseconds."""
    return int(time.time() * 1000)


class InvalidArgumentError(ValueError):
    """Raised when a mode or direction value is not recognized."""


class Mode(str, Enum):
    """Which producer drives the current price."""

    LIVE = "LIVE"
    MANUAL = "MANUAL"

    @property
    def flag(self) -> int:
        """Wire flag used by the control surface: 1 = LIVE, 0 = MANUAL."""
        return 1 if self is Mode.LIVE else 0

    @classmethod
    def from_flag(cls, flag: Any) -> Mode:
        """Parse a control-surface flag: the numbers 0 and 1 (1.0 counts as 1)."""
        # bool is an int subclass; True/False are not flags
        if isinstance(flag, bool) or not isinstance(flag, (int, float)) or flag not in (0, 1):
            raise InvalidArgumentError("flag must be 0 or 1")
        return cls.LIVE if flag == 1 else cls.MANUAL

    @classmethod
    def parse(cls, value: Any) -> Mode:
        """Accept a Mode, a wire flag, or a mode name ("live"/"manual")."""
        if isinstance(value, Mode):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().upper())
            except ValueError:
                raise InvalidArgumentError(f"unknown mode: {value!r}") from None
        return cls.from_flag(value)


class Direction(str, Enum):
    """Per-tick step applied by the synthetic generator."""

    UP = "up"
    DOWN = "down"
    NONE = "none"

    @classmethod
    def parse(cls, value: Any) -> Direction:
        if isinstance(value, Direction):
            return value
        if isinstance(value, str):
            try:
                return cls(value)
            except ValueError:
                pass
        raise InvalidArgumentError("direction must be 'up', 'down' or 'none'")


@dataclass(frozen=True, slots=True)
class Tick:
    """Immutable normalized price observation from one producer."""

    symbol: str
    price: float
    timestamp: int = field(default_factory=now_ms)  # Unix milliseconds
    source: Mode = Mode.LIVE

    def to_dict(self, mode: Mode) -> dict:
        """Serialize for WebSocket transmission, tagged with the relay's mode."""
        return {
            "type": "tick",
            "symbol": self.symbol,
            "price": self.price,
            "timestamp": self.timestamp,
            "source": self.source.value,
            "mode": mode.value,
        }


@dataclass(frozen=True, slots=True)
class RelaySnapshot:
    """Read-only view of the relay's state for polling clients."""

    mode: Mode
    direction: Direction
    current_price: float | None

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "direction": self.direction.value,
            "currentPrice": self.current_price,
        }
