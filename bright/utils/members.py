"""
Bright Guard - Member Helpers
=============================

Role-hierarchy checks before the bot acts on a member.

Author: حَـــــنَّـــــا
"""

from typing import Optional

import discord

from bright.utils.discord_rate_limit import log_http_error


def bot_can_action(target: discord.Member, permission: Optional[str] = None) -> bool:
    """
    Check if the bot can act on `target`.

    The bot needs a higher top role than the target, the target must not
    own the guild, and when `permission` is given the bot must hold that
    guild permission (e.g. "kick_members").

    Args:
        target: Member the bot wants to act on.
        permission: discord.Permissions attribute the action requires.

    Returns:
        True if Discord would allow the action.
    """
    guild = target.guild
    me = guild.me
    if me is None or target.id == guild.owner_id:
        return False
    if permission is not None:
        perms = me.guild_permissions
        if not (perms.administrator or getattr(perms, permission)):
            return False
    return me.top_role > target.top_role


async def fetch_member(guild: discord.Guild, member_id: int) -> Optional[discord.Member]:
    """Cached member, falling back to an API fetch. None if they left."""
    member = guild.get_member(member_id)
    if member is not None:
        return member
    try:
        return await guild.fetch_member(member_id)
    except discord.NotFound:
        return None
    except discord.HTTPException as e:
        log_http_error(e, "Member Fetch", [("Member", str(member_id))])
        return None


__all__ = ["bot_can_action", "fetch_member"]
