"""
Bright Guard - Message Events
=============================

Feeds guild messages to the threat scanner.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from bright.core.logger import logger

if TYPE_CHECKING:
    from bright.bot import BrightBot


class MessageEvents(commands.Cog):
    def __init__(self, bot: "BrightBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        # DMs, bots and commands are filtered by the scanner itself
        await self.bot.antinuke.on_message(message)


async def setup(bot: "BrightBot") -> None:
    """Add the message events cog to the bot."""
    await bot.add_cog(MessageEvents(bot))
    logger.debug("Message Events Loaded")
