"""
Bright Guard - Health Check Server
==================================

HTTP health check endpoint for external monitoring.

DESIGN:
    A lightweight aiohttp server inside the bot's event loop. The /health
    endpoint reports connection state plus a few guard gauges (tracked
    actors, pending reviews) without exposing guild data.

Author: حَـــــنَّـــــا
"""

from aiohttp import web
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from bright.core.logger import logger
from bright.core.config import NY_TZ

if TYPE_CHECKING:
    from bright.bot import BrightBot


# =============================================================================
# Health Check Server
# =============================================================================

class HealthCheckServer:
    """
    Simple HTTP health check server for monitoring.

    Attributes:
        bot: Reference to the main bot instance.
        port: Port number for the HTTP server.
        app: aiohttp Application instance.
        runner: aiohttp AppRunner for lifecycle management.
    """

    def __init__(self, bot: "BrightBot", port: int = 8080) -> None:
        self.bot = bot
        self.port = port
        self.app = web.Application()
        self.runner: Optional[web.AppRunner] = None

        self.app.router.add_get("/health", self.health_handler)
        self.app.router.add_get("/", self.health_handler)

    # =========================================================================
    # Request Handlers
    # =========================================================================

    def build_status(self) -> dict:
        """Collect the status payload served by /health."""
        is_connected = self.bot.is_ready()
        status = {
            "status": "healthy" if is_connected else "starting",
            "bot": "Bright",
            "connected": is_connected,
            "guilds": len(self.bot.guilds),
            "timestamp": datetime.now(NY_TZ).isoformat(),
        }

        antinuke = getattr(self.bot, "antinuke", None)
        if antinuke is not None:
            status.update(antinuke.state.stats())

        return status

    async def health_handler(self, request: web.Request) -> web.Response:
        """
        Handle health check requests.

        Args:
            request: Incoming HTTP request.

        Returns:
            JSON response with bot status.
        """
        try:
            status = self.build_status()
        except Exception as e:
            logger.error("Health Check Error", [
                ("Error", str(e)[:100]),
            ])
            return web.json_response(
                {"status": "error", "error": str(e)},
                status=500,
            )

        logger.debug(f"Health check: {status['status']}")
        return web.json_response(status)

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def start(self) -> None:
        """Start serving on 0.0.0.0:port; failures are logged, not raised."""
        try:
            self.runner = web.AppRunner(self.app)
            await self.runner.setup()
            site = web.TCPSite(self.runner, "0.0.0.0", self.port)
            await site.start()
        except OSError as e:
            logger.error("Health Server Startup Failed", [
                ("Port", str(self.port)),
                ("Error", str(e)[:100]),
            ])
            return

        logger.tree("Health Server Started", [
            ("Port", str(self.port)),
            ("Endpoint", f"http://0.0.0.0:{self.port}/health"),
        ], emoji="🏥")

    async def stop(self) -> None:
        """Stop the server. Safe to call even if it never started."""
        if self.runner:
            await self.runner.cleanup()
            self.runner = None
            logger.info("Health check server stopped")


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["HealthCheckServer"]
