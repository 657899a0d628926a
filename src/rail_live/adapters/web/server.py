"""uvicorn server lifecycle for the web application."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from starlette.applications import Starlette

logger = logging.getLogger(__name__)


class WebServer:
    """Runs a Starlette application under uvicorn until stopped."""

    def __init__(self, app: Starlette, host: str = "0.0.0.0", port: int = 8080) -> None:
        self.app = app
        self.host = host
        self.port = port
        self._server: Any | None = None

    async def start(self) -> None:
        """Serve until stop() is called or the process is signalled."""
        import uvicorn

        config = uvicorn.Config(
            self.app,
            host=self.host,
            port=self.port,
            log_level="info",
        )
        self._server = uvicorn.Server(config)
        logger.info(f"Serving rail-live on http://{self.host}:{self.port}")

        await self._server.serve()

    async def stop(self) -> None:
        """Ask the server to exit."""
        if self._server:
            self._server.should_exit = True
