"""
Bright Guard - Channel & Role Events
====================================

Channel, role, and webhook listeners. Every handler attributes the
change through the audit log inside the service and feeds the abuse
counters.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from bright.core.logger import logger

if TYPE_CHECKING:
    from bright.bot import BrightBot


class ChannelEvents(commands.Cog):
    """Channel, role, and webhook event handlers."""

    def __init__(self, bot: "BrightBot") -> None:
        self.bot = bot

    # =========================================================================
    # Channel Events
    # =========================================================================

    @commands.Cog.listener()
    async def on_guild_channel_create(self, channel: discord.abc.GuildChannel) -> None:
        if channel.guild.unavailable:
            return
        await self.bot.antinuke.on_channel_create(channel)

    @commands.Cog.listener()
    async def on_guild_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        """Capsule the channel for restore, then count the deletion."""
        if channel.guild.unavailable:
            return
        await self.bot.antinuke.on_channel_delete(channel)

    @commands.Cog.listener()
    async def on_guild_channel_update(
        self,
        before: discord.abc.GuildChannel,
        after: discord.abc.GuildChannel,
    ) -> None:
        if after.guild.unavailable:
            return
        await self.bot.antinuke.on_channel_update(before, after)

    # =========================================================================
    # Role Events
    # =========================================================================

    @commands.Cog.listener()
    async def on_guild_role_create(self, role: discord.Role) -> None:
        if role.guild.unavailable:
            return
        await self.bot.antinuke.on_role_create(role)

    @commands.Cog.listener()
    async def on_guild_role_delete(self, role: discord.Role) -> None:
        if role.guild.unavailable:
            return
        await self.bot.antinuke.on_role_delete(role)

    @commands.Cog.listener()
    async def on_guild_role_update(self, before: discord.Role, after: discord.Role) -> None:
        if after.guild.unavailable:
            return
        await self.bot.antinuke.on_role_update(before, after)

    # =========================================================================
    # Webhook Events
    # =========================================================================

    @commands.Cog.listener()
    async def on_webhooks_update(self, channel: discord.abc.GuildChannel) -> None:
        if channel.guild.unavailable:
            return
        await self.bot.antinuke.on_webhooks_update(channel)


async def setup(bot: "BrightBot") -> None:
    """Add the channel events cog to the bot."""
    await bot.add_cog(ChannelEvents(bot))
    logger.debug("Channel Events Loaded")
