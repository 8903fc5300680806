"""Single-symbol tick relay.

Public API:
    Mode, Direction, Tick     - Relay enums and the immutable tick record
    RelayState                - Shared mode/direction/price state
    TickBroadcaster           - Fan-out of ticks to WebSocket subscribers
    ModeController            - LIVE/MANUAL switch owning the producers
    create_mode_controller    - Factory that wires everything from env vars
    create_control_router     - FastAPI router for the REST control surface
    create_stream_router      - FastAPI router for the /ticks WebSocket
"""

from .broadcaster import TickBroadcaster
from .control import create_control_router
from .controller import ModeController
from .factory import create_mode_controller
from .models import Direction, InvalidArgumentError, Mode, Tick
from .state import RelayState
from .stream import create_stream_router

__all__ = [
    "Direction",
    "InvalidArgumentError",
    "Mode",
    "Tick",
    "RelayState",
    "TickBroadcaster",
    "ModeController",
    "create_mode_controller",
    "create_control_router",
    "create_stream_router",
]
