"""Kiosk API service.

Serves the control API with uvicorn.
"""

import logging
from typing import Optional

import uvicorn

from .gateway import APIGateway


class APIService:
    """API gateway service wrapper."""

    def __init__(self, gateway: APIGateway, host: str = "127.0.0.1", port: int = 8080,
                 log_level: str = "info"):
        """Initialize service."""
        self.gateway = gateway
        self.host = host
        self.port = port
        self.log_level = log_level
        self.server: Optional[uvicorn.Server] = None
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the API service; returns when the server exits."""
        self.logger.info(f"Starting kiosk API on {self.host}:{self.port}")

        server_config = uvicorn.Config(
            app=self.gateway.app,
            host=self.host,
            port=self.port,
            log_level=self.log_level,
            access_log=True,
            # Keep our logging configuration
            log_config=None,
        )
        self.server = uvicorn.Server(server_config)
        await self.server.serve()

