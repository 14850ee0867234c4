"""
Bright Guard - Reserved Channels
================================

Finds or creates the private review, log, and threat channels.

Each reserved channel hides from @everyone and is visible to the owner,
the bot, and the super-admin (when they are in the guild). If creation
fails the first text channel the bot can write to is used instead.

Author: حَـــــنَّـــــا
"""

from typing import Dict, Optional, Union

import discord

from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error


Overwrites = Dict[Union[discord.Role, discord.Member, discord.Object], discord.PermissionOverwrite]


def can_send(channel: discord.abc.GuildChannel, me: discord.Member) -> bool:
    perms = channel.permissions_for(me)
    return perms.view_channel and perms.send_messages


def first_writable_text_channel(guild: discord.Guild) -> Optional[discord.TextChannel]:
    """First text channel (by position) the bot can view and send in."""
    me = guild.me
    if me is None:
        return None
    for channel in guild.text_channels:
        if can_send(channel, me):
            return channel
    return None


def _private_overwrites(guild: discord.Guild, super_admin_id: Optional[int]) -> Overwrites:
    reader = discord.PermissionOverwrite(
        view_channel=True,
        send_messages=True,
        read_message_history=True,
    )
    overwrites: Overwrites = {
        guild.default_role: discord.PermissionOverwrite(view_channel=False),
        guild.me: discord.PermissionOverwrite(
            view_channel=True,
            send_messages=True,
            embed_links=True,
            read_message_history=True,
        ),
    }

    owner = guild.owner or discord.Object(id=guild.owner_id, type=discord.Member)
    overwrites[owner] = reader

    if super_admin_id:
        super_admin = guild.get_member(super_admin_id)
        if super_admin is not None:
            overwrites[super_admin] = reader

    return overwrites


async def ensure_guard_channel(
    guild: discord.Guild,
    name: str,
    reason: str,
    super_admin_id: Optional[int] = None,
) -> Optional[discord.TextChannel]:
    """
    Return the reserved text channel `name`, creating it if needed.

    Args:
        guild: Guild to look in.
        name: Reserved channel name.
        reason: Audit log reason for creation.
        super_admin_id: Super-admin to grant access, if present in the guild.

    Returns:
        The reserved channel, a writable fallback channel, or None.
    """
    me = guild.me
    if me is None:
        return None

    existing = discord.utils.get(guild.text_channels, name=name)
    if existing is not None:
        if can_send(existing, me):
            return existing
        # Locked out of our own channel, never create a same-named duplicate
        logger.warning("Guard Channel Not Writable", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel", f"#{existing.name} ({existing.id})"),
        ])
        return first_writable_text_channel(guild)

    try:
        channel = await guild.create_text_channel(
            name,
            overwrites=_private_overwrites(guild, super_admin_id),
            reason=reason,
        )
    except discord.Forbidden:
        logger.warning("Guard Channel Create Forbidden", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel", name),
        ])
        return first_writable_text_channel(guild)
    except discord.HTTPException as e:
        log_http_error(e, "Guard Channel Create", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Channel", name),
        ])
        return first_writable_text_channel(guild)

    logger.tree("Guard Channel Created", [
        ("Guild", f"{guild.name} ({guild.id})"),
        ("Channel", f"#{channel.name} ({channel.id})"),
    ], emoji="📁")
    return channel


__all__ = ["ensure_guard_channel", "first_writable_text_channel", "can_send"]
