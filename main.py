#!/usr/bin/env python3
"""
Bright Guard - Entry Point
==========================

Anti-nuke guard bot for Discord guilds.

Features:
- Bright Review (kick-first bot gate)
- Abuse counters and lockdown
- Role-strip defense and admin-grant revert
- Restore capsules (no database)
- Threat scanning
- Graceful error handling

Author: حَـــــنَّـــــا
"""

import asyncio
import sys

from dotenv import load_dotenv

from bright.core.config import ConfigValidationError, validate_and_log_config
from bright.core.logger import logger
from bright.utils.error_handler import ErrorHandler


async def main() -> None:
    """
    Main entry point for the Bright guard.

    Handles the complete bot lifecycle:
    1. Loads environment configuration
    2. Validates configuration (token, IDs, windows)
    3. Initializes the bot instance
    4. Establishes connection to Discord API

    Raises:
        SystemExit: If configuration is invalid or the bot fails to start
    """
    load_dotenv()

    logger.tree("BRIGHT STARTING", [
        ("Guard", "Anti-nuke, Bright Review, Threats"),
        ("Commands", "=help, /antinuke"),
    ], "🛡️")

    try:
        config = validate_and_log_config()
    except ConfigValidationError as e:
        logger.error("Invalid Configuration", [("Error", str(e))])
        sys.exit(1)

    from bright.bot import BrightBot

    try:
        bot = BrightBot(config)
        logger.info("🤖 Bot instance created successfully")

        async with bot:
            await bot.start(config.discord_token)

    except Exception as e:
        ErrorHandler.handle(
            e,
            location="main.main",
            critical=True,
            token_present=bool(config.discord_token),
        )
        sys.exit(1)


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("🛑 Bot stopped by user (Ctrl+C)")
    except Exception as e:
        ErrorHandler.handle(
            e,
            location="main.__main__",
            critical=True,
        )
        sys.exit(1)
