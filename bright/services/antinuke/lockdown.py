"""
Bright Guard - Lockdown
=======================

Guild-wide permission lockdown.

Every non-managed role other than @everyone that holds a dangerous
permission loses exactly those flags. The bot never restores them; an
operator has to re-grant permissions by hand after reviewing the audit
log.

Author: حَـــــنَّـــــا
"""

import asyncio
from dataclasses import dataclass, field
from typing import List, Optional

import discord

from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error

from .attribution import Executor
from .channels import first_writable_text_channel
from .constants import has_dangerous, strip_dangerous


@dataclass
class LockdownResult:
    stripped: List[discord.Role] = field(default_factory=list)
    failed: List[discord.Role] = field(default_factory=list)
    alert_channel: Optional[discord.TextChannel] = None


def build_lockdown_alert(executor: Optional[Executor], reason: str) -> str:
    executor_line = f"{executor} ({executor.id})" if executor is not None else "Unknown"
    return (
        "🚨 **BRIGHT ANTI-NUKE LOCKDOWN ACTIVATED**\n"
        f"**Reason:** {reason}\n"
        f"**Executor:** {executor_line}\n"
        "✅ Removed destructive permissions from roles.\n"
        "⚠️ Review **Audit Logs** immediately."
    )


async def lockdown_guild(
    guild: discord.Guild,
    executor: Optional[Executor],
    reason: str,
    delay: float = 0.0,
) -> LockdownResult:
    """
    Strip dangerous permissions from every eligible role and post an alert.

    Role edit failures are logged and skipped.

    Args:
        guild: Guild to lock down.
        executor: Actor that tripped the limit, for the alert text.
        reason: Human-readable trigger description.
        delay: Pause between role edits.

    Returns:
        Which roles were stripped, which failed, and where the alert went.
    """
    result = LockdownResult()
    audit_reason = f"[BRIGHT][ANTINUKE] {reason}"

    for role in guild.roles:
        if role.managed or role.is_default():
            continue
        if not has_dangerous(role.permissions):
            continue

        try:
            await role.edit(permissions=strip_dangerous(role.permissions), reason=audit_reason)
            result.stripped.append(role)
        except discord.Forbidden:
            result.failed.append(role)
            logger.warning("Lockdown Role Edit Forbidden", [
                ("Role", f"{role.name} ({role.id})"),
            ])
        except discord.HTTPException as e:
            result.failed.append(role)
            log_http_error(e, "Lockdown Role Edit", [
                ("Role", f"{role.name} ({role.id})"),
            ])

        if delay:
            await asyncio.sleep(delay)

    channel = first_writable_text_channel(guild)
    if channel is not None:
        try:
            await channel.send(build_lockdown_alert(executor, reason))
            result.alert_channel = channel
        except discord.HTTPException as e:
            log_http_error(e, "Lockdown Alert", [
                ("Channel", f"#{channel.name} ({channel.id})"),
            ])

    logger.tree("LOCKDOWN TRIGGERED", [
        ("Guild", f"{guild.name} ({guild.id})"),
        ("Executor", f"{executor} ({executor.id})" if executor is not None else "Unknown"),
        ("Reason", reason),
        ("Roles Stripped", str(len(result.stripped))),
        ("Roles Failed", str(len(result.failed))),
        ("Alert", f"#{channel.name}" if result.alert_channel else "Not sent"),
    ], emoji="🔒")

    return result


__all__ = ["lockdown_guild", "build_lockdown_alert", "LockdownResult"]
