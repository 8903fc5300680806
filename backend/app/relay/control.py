"""REST control surface: health, mode switching, price polling, direction."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .controller import ModeController
from .models import InvalidArgumentError, Mode, RelaySnapshot

logger = logging.getLogger(__name__)


class ModeRequest(BaseModel):
    # Validated by Mode.from_flag so every bad value is a 400, not a 422
    flag: Any = None


class DirectionRequest(BaseModel):
    direction: Any = None


def _mode_view(snapshot: RelaySnapshot) -> dict:
    return {
        "flag": snapshot.mode.flag,
        "mode": snapshot.mode.value,
        "direction": snapshot.direction.value,
    }


def create_control_router(controller: ModeController) -> APIRouter:
    """Create the control router bound to one ModeController."""
    router = APIRouter(tags=["control"])

    @router.get("/health")
    async def health() -> dict:
        return {"status": "ok", "symbol": controller.symbol, **controller.snapshot().to_dict()}

    @router.get("/mode")
    async def get_mode() -> dict:
        return _mode_view(controller.snapshot())

    @router.post("/mode")
    async def set_mode(request: ModeRequest) -> dict:
        """Switch feeds: flag 1 = LIVE (Delta), flag 0 = MANUAL."""
        try:
            target = Mode.from_flag(request.flag)
        except InvalidArgumentError as e:
            logger.warning("Rejected mode flag %r", request.flag)
            raise HTTPException(status_code=400, detail=str(e)) from e
        snapshot = await controller.set_mode(target)
        return _mode_view(snapshot)

    @router.get("/price")
    @router.get("/btc-price")
    async def get_price() -> dict:
        """Polled by clients that don't hold a WebSocket open."""
        snapshot = controller.snapshot()
        return {
            "price": snapshot.current_price,
            "mode": snapshot.mode.value,
            "direction": snapshot.direction.value,
        }

    @router.post("/manual-direction")
    async def set_direction(request: DirectionRequest) -> dict:
        try:
            direction = controller.set_direction(request.direction)
        except InvalidArgumentError as e:
            logger.warning("Rejected manual direction %r", request.direction)
            raise HTTPException(status_code=400, detail=str(e)) from e
        return {"direction": direction.value}

    return router
