"""FastAPI application for the tick relay."""

from __future__ import annotations

import logging
import os
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from .relay import ModeController, create_control_router, create_mode_controller, create_stream_router

logger = logging.getLogger(__name__)

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def configure_logging() -> None:
    """Console logging, plus a file when LOG_FILE is set."""
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    log_file = os.environ.get("LOG_FILE", "").strip()
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
        handlers=handlers,
    )


def create_app(controller: ModeController | None = None) -> FastAPI:
    """Build the app. The controller is started and stopped by the lifespan."""
    controller = controller or create_mode_controller()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await controller.start()
        try:
            yield
        finally:
            await controller.shutdown()

    app = FastAPI(title="Tick Relay", lifespan=lifespan)
    app.state.controller = controller

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.time()
        response = await call_next(request)
        duration_ms = (time.time() - start) * 1000
        logger.info(
            "HTTP %s %s -> %d in %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    app.include_router(create_control_router(controller))
    app.include_router(create_stream_router(controller))
    return app


def main() -> None:
    import uvicorn

    configure_logging()
    port = int(os.environ.get("PORT", "3000"))
    app = create_app()
    logger.info("Server running at http://localhost:%d", port)
    uvicorn.run(app, host="0.0.0.0", port=port, log_config=None)


if __name__ == "__main__":
    main()
