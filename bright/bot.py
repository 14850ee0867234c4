"""
Bright Guard - Main Bot Class
=============================

Core Discord client for the Bright anti-nuke guard.

Features:
- Kick-first review of bots with dangerous permissions
- Abuse counters with guild-wide permission lockdown
- Human role-strip defense with owner restore panels
- Restore capsules for deleted channels and derolled members
- Threat message scanning with moderation buttons
- Health check HTTP endpoint

Author: حَـــــنَّـــــا
"""

from datetime import datetime
from typing import Optional

import discord
from discord.ext import commands, tasks

from bright.core.config import Config, get_config
from bright.core.health import HealthCheckServer
from bright.core.logger import logger
from bright.services.antinuke import AntiNukeService


# =============================================================================
# BrightBot Class
# =============================================================================

class BrightBot(commands.Bot):
    """
    Main Discord bot class for the Bright guard.

    DESIGN: Holds the AntiNukeService that every event cog and button
    calls into as `bot.antinuke`.

    SERVICE INITIALIZATION ORDER:
    1. __init__: Config, AntiNukeService (state is empty on every start)
    2. setup_hook (before on_ready):
       - Command and event cog loading
       - Persistent button registration
       - Command tree syncing
       - Guard state sweep loop
       - Health Check Server
    """

    # =========================================================================
    # Initialization
    # =========================================================================

    def __init__(self, config: Optional[Config] = None) -> None:
        """Initialize the bot with the intents the guard needs."""
        self.config = config or get_config()

        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.moderation = True
        intents.webhooks = True

        super().__init__(
            command_prefix=self.config.command_prefix,
            intents=intents,
            help_command=None,
        )

        self.start_time: datetime = datetime.now()
        self.antinuke = AntiNukeService(self, self.config)
        self.health_server: Optional[HealthCheckServer] = None

        # Ready state guard
        self._ready_initialized: bool = False

        logger.info("Bot Instance Created")

    # =========================================================================
    # Setup Hook
    # =========================================================================

    async def setup_hook(self) -> None:
        """Load cogs, register buttons, and sync commands before on_ready."""
        from bright.commands import COMMAND_COGS
        for cog in COMMAND_COGS:
            try:
                await self.load_extension(cog)
                logger.info(f"Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Cog", [("Cog", cog), ("Error", str(e))])

        from bright.events import EVENT_COGS
        for cog in EVENT_COGS:
            try:
                await self.load_extension(cog)
                logger.debug(f"Event Cog Loaded: {cog.split('.')[-1]}")
            except commands.ExtensionError as e:
                logger.error("Failed to Load Event Cog", [("Cog", cog), ("Error", str(e))])

        # Register persistent views
        from bright.views import setup_antinuke_views
        setup_antinuke_views(self)

        # Sync commands
        try:
            synced = await self.tree.sync()
            logger.tree("Commands Synced", [("Count", str(len(synced)))], emoji="✅")
        except discord.HTTPException as e:
            logger.error("Command Sync Failed", [("Error", str(e))])

        self.sweep_state.change_interval(seconds=self.config.sweep_interval)
        self.sweep_state.start()

        if self.config.health_port:
            self.health_server = HealthCheckServer(self, self.config.health_port)
            await self.health_server.start()

    # =========================================================================
    # On Ready
    # =========================================================================

    async def on_ready(self) -> None:
        if self._ready_initialized:
            logger.info("Bot Reconnected (skipping re-initialization)")
            return

        self._ready_initialized = True

        if not self.user:
            return

        if self.config.error_webhook_url:
            logger.set_webhook(self.config.error_webhook_url)

        logger.tree("BRIGHT READY", [
            ("Name", self.user.name),
            ("ID", str(self.user.id)),
            ("Guilds", str(len(self.guilds))),
            ("Prefix", self.config.command_prefix),
            ("Super Admin", str(self.config.super_admin_id) if self.config.super_admin_id else "Disabled"),
            ("Victim Restore", "Enabled" if self.config.role_strip_restore_victims else "Disabled"),
            ("Health Server", "Running" if self.health_server else "Stopped"),
        ], emoji="🛡️")

    # =========================================================================
    # Background Tasks
    # =========================================================================

    @tasks.loop(seconds=30)
    async def sweep_state(self) -> None:
        """Evict expired counters, role-strip records, and dedupe stamps."""
        self.antinuke.sweep()

    @sweep_state.before_loop
    async def _before_sweep(self) -> None:
        await self.wait_until_ready()

    # =========================================================================
    # Shutdown
    # =========================================================================

    async def shutdown(self) -> None:
        """Graceful shutdown with proper cleanup."""
        logger.info("Initiating Graceful Shutdown")

        if self.sweep_state.is_running():
            self.sweep_state.cancel()

        if self.health_server:
            await self.health_server.stop()

        await super().close()

        logger.tree("SHUTDOWN COMPLETE", [
            ("Uptime", str(datetime.now() - self.start_time)),
        ], emoji="🛑")

    async def close(self) -> None:
        """Override close to ensure proper shutdown."""
        await self.shutdown()


# =============================================================================
# Module Export
# =============================================================================

__all__ = ["BrightBot"]
