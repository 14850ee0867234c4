"""
Bright Guard - Anti-Nuke Guide
==============================

/antinuke: ephemeral overview of the guard with a permission checklist
for the bot in the current server.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, List, Tuple

import discord
from discord import app_commands
from discord.ext import commands

from bright.core.config import EmbedColors, get_config
from bright.core.logger import logger
from bright.services.antinuke.constants import LIMITS

if TYPE_CHECKING:
    from bright.bot import BrightBot


def permission_checklist(permissions: discord.Permissions) -> List[Tuple[bool, str, str]]:
    """(granted, permission, what it is used for) for each permission the guard needs."""
    return [
        (permissions.view_audit_log, "View Audit Log", "identify who added bots, edited roles, or deleted things"),
        (permissions.kick_members, "Kick Members", "kick dangerous bots immediately"),
        (permissions.manage_roles, "Manage Roles", "derole executors, revert admin grants, strip perms in lockdown"),
        (permissions.manage_channels, "Manage Channels", "create the review/log/threat channels, recreate deleted ones"),
        (permissions.manage_webhooks, "Manage Webhooks", "detect webhook nukes"),
        (
            permissions.send_messages and permissions.embed_links,
            "Send Messages + Embed Links",
            "post panels and alerts",
        ),
    ]


def build_guide_embed(guild: discord.Guild) -> discord.Embed:
    config = get_config()
    me = guild.me
    checklist = permission_checklist(me.guild_permissions if me is not None else discord.Permissions.none())
    checklist_text = "\n".join(
        f"{'✅' if ok else '❌'} **{name}**: {why}" for ok, name, why in checklist
    )
    limits_text = ", ".join(f"`{kind.value}` {limit}" for kind, limit in LIMITS.items())

    embed = discord.Embed(
        title="🛡️ Bright Anti-Nuke Guide",
        description=(
            "**Bright Review**: a bot with dangerous permissions is kicked first and the owner "
            f"gets Accept / Deny buttons in #{config.review_channel_name}.\n\n"
            f"**Role stripping**: removing {config.role_strip_threshold}+ roles within "
            f"{config.role_strip_window // 60} minutes derolls the executor (managed roles kept) "
            "and the owner decides Restore Roles / Keep Derolled.\n\n"
            f"**Lockdown**: too many destructive actions within {config.counter_window}s strips dangerous "
            "permissions from every role. Nothing is restored automatically.\n\n"
            f"**Restore capsules**: deleted channels and derolled members are snapshotted in "
            f"#{config.log_channel_name}. Message history cannot be restored.\n\n"
            f"**Threats**: threatening messages are deleted and logged in #{config.threats_channel_name}."
        ),
        color=EmbedColors.INFO,
    )
    embed.add_field(name="Limits per actor", value=limits_text, inline=False)
    embed.add_field(name="Permissions", value=checklist_text, inline=False)
    embed.set_footer(text=f"Manage the whitelist with {config.command_prefix}help")
    return embed


class AntiNukeGuideCog(commands.Cog):
    def __init__(self, bot: "BrightBot") -> None:
        self.bot = bot

    @app_commands.command(name="antinuke", description="Explain the anti-nuke guard and check bot permissions")
    @app_commands.guild_only()
    async def antinuke(self, interaction: discord.Interaction) -> None:
        if interaction.guild is None:
            await interaction.response.send_message("This command can only be used in a server.", ephemeral=True)
            return

        logger.tree("Anti-Nuke Guide Requested", [
            ("User", f"{interaction.user} ({interaction.user.id})"),
            ("Guild", f"{interaction.guild.name} ({interaction.guild.id})"),
        ], emoji="📖")
        await interaction.response.send_message(embed=build_guide_embed(interaction.guild), ephemeral=True)


async def setup(bot: "BrightBot") -> None:
    """Add the guide cog to the bot."""
    await bot.add_cog(AntiNukeGuideCog(bot))
    logger.debug("Anti-Nuke Guide Loaded")
