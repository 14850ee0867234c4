"""
Bright Guard - Audit Log Attribution
====================================

Resolves who performed a destructive action by reading the guild's
audit log. Only entries younger than ATTRIBUTION_MAX_AGE count; an
event without a fresh matching entry stays unattributed and is not
counted against anyone.

Author: حَـــــنَّـــــا
"""

from datetime import datetime, timedelta
from typing import Optional, Sequence, Union

import discord

from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error


AUDIT_LOG_LIMIT = 8
"""Entries fetched per lookup."""

Executor = Union[discord.Member, discord.User]


async def find_executor(
    guild: discord.Guild,
    action: discord.AuditLogAction,
    target_id: Optional[int],
    max_age: int,
    now: Optional[datetime] = None,
) -> Optional[Executor]:
    """
    Find the executor of the most recent fresh audit entry.

    Args:
        guild: Guild to query.
        action: Audit log action to filter on.
        target_id: Required entry target, or None to accept any target.
        max_age: Maximum entry age in seconds.
        now: Reference time (defaults to current UTC time).

    Returns:
        The entry's user, or None if nothing fresh matched.
    """
    now = now or discord.utils.utcnow()
    cutoff = timedelta(seconds=max_age)

    try:
        async for entry in guild.audit_logs(limit=AUDIT_LOG_LIMIT, action=action):
            if now - entry.created_at > cutoff:
                continue
            if target_id is not None:
                target = entry.target
                if target is None or getattr(target, "id", None) != target_id:
                    continue
            return entry.user
    except discord.Forbidden:
        logger.debug(f"Audit log access denied for {action.name} lookup in {guild.name}")
    except discord.HTTPException as e:
        log_http_error(e, "Audit Log Lookup", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Action", action.name),
        ])

    return None


async def find_any_executor(
    guild: discord.Guild,
    actions: Sequence[discord.AuditLogAction],
    max_age: int,
    now: Optional[datetime] = None,
) -> Optional[Executor]:
    """First executor found across several actions, tried in order, with no target filter."""
    for action in actions:
        executor = await find_executor(guild, action, None, max_age, now=now)
        if executor is not None:
            return executor
    return None


__all__ = ["find_executor", "find_any_executor", "AUDIT_LOG_LIMIT", "Executor"]
