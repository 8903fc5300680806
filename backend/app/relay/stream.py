"""WebSocket streaming endpoint for relayed ticks."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket

from .controller import ModeController

logger = logging.getLogger(__name__)


def create_stream_router(controller: ModeController) -> APIRouter:
    """Create the tick streaming router with a reference to the controller.

    This factory pattern lets us inject the relay without globals.
    """
    router = APIRouter(tags=["streaming"])
    broadcaster = controller.broadcaster

    @router.websocket("/ticks")
    async def stream_ticks(websocket: WebSocket) -> None:
        """Push every broadcast tick to the client.

        On connect the client first receives:

            {"type": "info", "message": "Connected to tick stream", "mode": "LIVE"}

        followed by {"type": "tick", ...} events. Messages from the client
        are read only to notice the disconnect.
        """
        await websocket.accept()
        client_ip = websocket.client.host if websocket.client else "unknown"
        logger.info("WebSocket client connected: %s", client_ip)

        await websocket.send_json(broadcaster.info_message())
        broadcaster.add_subscriber(websocket)
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        finally:
            broadcaster.remove_subscriber(websocket)
            logger.info("WebSocket client disconnected: %s", client_ip)

    return router
