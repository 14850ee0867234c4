"""
Bright Guard - Abuse Counter Engine
===================================

Counts attributed destructive actions per (guild, actor) and fires a
lockdown when any action kind reaches its limit.

Counters expire COUNTER_WINDOW seconds after the actor's last action.
Once lockdown fires for an actor it stays armed-off until that actor's
counter expires, so a single raid triggers one lockdown.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, Optional

import discord

from bright.core.logger import logger

from .attribution import Executor
from .constants import LIMITS, ActionKind
from .lockdown import lockdown_guild
from .state import ActorCounter, ActorKey, GuardState
from .whitelist import is_whitelisted_for

if TYPE_CHECKING:
    from bright.bot import BrightBot


class AbuseCounterEngine:
    """Per-actor windowed counters with lockdown on limit."""

    def __init__(self, bot: "BrightBot", state: GuardState) -> None:
        self.bot = bot
        self.state = state

    def is_exempt(self, guild: discord.Guild, executor_id: int, kind: ActionKind) -> bool:
        """The bot itself, the owner, the super-admin, and scoped users are never counted."""
        if self.bot.user is not None and executor_id == self.bot.user.id:
            return True
        return is_whitelisted_for(self.state, guild, executor_id, kind)

    def count_for(self, guild_id: int, user_id: int, kind: ActionKind) -> int:
        counter = self.state.counters.get(ActorKey(guild_id, user_id))
        return counter.counts.get(kind, 0) if counter else 0

    async def bump(
        self,
        guild: discord.Guild,
        executor: Optional[Executor],
        kind: ActionKind,
        reason: str,
    ) -> bool:
        """
        Count one attributed action and lock the guild down at the limit.

        Args:
            guild: Guild the action happened in.
            executor: Attributed actor, or None when attribution failed.
            kind: Action kind being counted.
            reason: Lockdown reason if this bump trips the limit.

        Returns:
            True only if this call fired a lockdown.
        """
        if executor is None or self.is_exempt(guild, executor.id, kind):
            return False

        key = ActorKey(guild.id, executor.id)
        now = self.state.now()
        counter = self.state.counters.get(key) or ActorCounter(last_action=now)
        count = counter.bump(kind, now)
        self.state.counters.set(key, counter)

        limit = LIMITS[kind]
        logger.debug("Action Counted", [
            ("Guild", str(guild.id)),
            ("Executor", f"{executor} ({executor.id})"),
            ("Kind", kind.value),
            ("Count", f"{count}/{limit}"),
        ])

        if counter.locked or count < limit:
            return False

        # Marked before awaiting so interleaved bumps cannot fire a second lockdown
        counter.locked = True
        await lockdown_guild(guild, executor, reason, delay=self.state.config.rate_limit_delay)
        return True


__all__ = ["AbuseCounterEngine"]
