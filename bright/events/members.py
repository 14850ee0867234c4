"""
Bright Guard - Member Events
============================

Member join, member update, and ban listeners.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, Union

import discord
from discord.ext import commands

from bright.core.logger import logger

if TYPE_CHECKING:
    from bright.bot import BrightBot


class MemberEvents(commands.Cog):
    """Routes member events to the anti-nuke service."""

    def __init__(self, bot: "BrightBot") -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_member_join(self, member: discord.Member) -> None:
        """Bots are gated by the review flow; humans are ignored."""
        if member.guild.unavailable or not member.bot:
            return
        await self.bot.antinuke.on_member_join(member)

    @commands.Cog.listener()
    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if after.guild.unavailable:
            return
        await self.bot.antinuke.on_member_update(before, after)

    @commands.Cog.listener()
    async def on_member_ban(self, guild: discord.Guild, user: Union[discord.User, discord.Member]) -> None:
        if guild.unavailable:
            return
        await self.bot.antinuke.on_member_ban(guild, user)


async def setup(bot: "BrightBot") -> None:
    """Add the member events cog to the bot."""
    await bot.add_cog(MemberEvents(bot))
    logger.debug("Member Events Loaded")
