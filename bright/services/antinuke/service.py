"""
Bright Guard - Anti-Nuke Service
================================

Facade the event cogs call into. Owns the shared GuardState and wires
the counter engine, bot review gate, role-strip defense, capsule store
and threat scanner to it.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, Optional

import discord

from bright.core.config import Config, EmbedColors
from bright.core.logger import logger

from .attribution import find_any_executor, find_executor
from .bot_review import BotReviewGate
from .capsules import TYPE_CHANNEL_RECREATE, CapsuleStore, snapshot_channel
from .constants import ActionKind, gained_dangerous
from .counters import AbuseCounterEngine
from .role_strip import RoleStripDefense
from .state import GuardState
from .threats import ThreatScanner

if TYPE_CHECKING:
    from bright.bot import BrightBot


WEBHOOK_ACTIONS = (
    discord.AuditLogAction.webhook_create,
    discord.AuditLogAction.webhook_delete,
    discord.AuditLogAction.webhook_update,
)

OVERWRITE_ACTIONS = (
    discord.AuditLogAction.overwrite_update,
    discord.AuditLogAction.overwrite_create,
    discord.AuditLogAction.overwrite_delete,
)


def overwrites_changed(before: discord.abc.GuildChannel, after: discord.abc.GuildChannel) -> bool:
    """True if any permission overwrite was added, removed, or edited."""
    def _pairs(channel: discord.abc.GuildChannel):
        return {target.id: tuple(p.value for p in ow.pair()) for target, ow in channel.overwrites.items()}

    return _pairs(before) != _pairs(after)


class AntiNukeService:
    """
    Entry points for every guarded gateway event.

    Attributes:
        state: Shared guard state.
        engine: Abuse counters and lockdown.
        capsules: Restore capsule store.
        bot_review: Kick-first bot gate.
        role_strip: Human role-strip defense and admin-grant revert.
        threats: Threat text scanner.
    """

    def __init__(self, bot: "BrightBot", config: Config, state: Optional[GuardState] = None) -> None:
        self.bot = bot
        self.config = config
        self.state = state or GuardState(config)

        self.engine = AbuseCounterEngine(bot, self.state)
        self.capsules = CapsuleStore(bot, self.state)
        self.bot_review = BotReviewGate(bot, self.state)
        self.role_strip = RoleStripDefense(bot, self.state, self.capsules)
        self.threats = ThreatScanner(bot, self.state)

    async def _executor(self, guild: discord.Guild, action: discord.AuditLogAction, target_id: int):
        return await find_executor(guild, action, target_id, self.config.attribution_max_age, now=self.state.now())

    # =========================================================================
    # Members
    # =========================================================================

    async def on_member_join(self, member: discord.Member) -> None:
        if member.bot:
            await self.bot_review.on_bot_join(member)

    async def on_member_update(self, before: discord.Member, after: discord.Member) -> None:
        if after.bot:
            await self.bot_review.on_bot_update(before, after)
            return
        await self.role_strip.on_roles_removed(before, after)
        await self.role_strip.on_admin_grant(before, after)

    async def on_member_ban(self, guild: discord.Guild, user: discord.abc.User) -> None:
        executor = await self._executor(guild, discord.AuditLogAction.ban, user.id)
        await self.engine.bump(guild, executor, ActionKind.MEMBER_BAN, "Mass ban detected")

    # =========================================================================
    # Channels
    # =========================================================================

    async def on_channel_delete(self, channel: discord.abc.GuildChannel) -> None:
        """Store a recreate capsule for the channel, then count the deletion."""
        guild = channel.guild
        executor = await self._executor(guild, discord.AuditLogAction.channel_delete, channel.id)
        kind = ActionKind.CATEGORY_DELETE if isinstance(channel, discord.CategoryChannel) else ActionKind.CHANNEL_DELETE

        capsule_message = await self.capsules.post_restore_capsule(guild, "Recreate deleted channel", {
            "type": TYPE_CHANNEL_RECREATE,
            "channel": snapshot_channel(channel),
            "executorId": str(executor.id) if executor is not None else None,
            "reason": "Channel deleted (anti-nuke restore capsule)",
        })

        if capsule_message is not None:
            embed = discord.Embed(
                title="🧯 Bright Restore: Channel Deleted",
                description=(
                    f"<@{guild.owner_id}>\n\n"
                    "A channel was deleted.\n\n"
                    "✅ **Restore** will recreate the channel with stored settings + overwrites "
                    "(messages cannot be restored)."
                ),
                color=EmbedColors.CAPSULE,
                timestamp=discord.utils.utcnow(),
            )
            embed.add_field(name="Channel", value=f"`{channel.name}`", inline=True)
            embed.add_field(
                name="Executor",
                value=f"<@{executor.id}> ({executor})" if executor is not None else "Unknown",
                inline=True,
            )
            embed.set_footer(text="Restore button uses the in-server capsule (no database).")
            await self.capsules.post_restore_panel(guild, embed, capsule_message)

        await self.engine.bump(guild, executor, kind, "Channel/Category nuke detected")

    async def on_channel_create(self, channel: discord.abc.GuildChannel) -> None:
        executor = await self._executor(channel.guild, discord.AuditLogAction.channel_create, channel.id)
        await self.engine.bump(channel.guild, executor, ActionKind.CHANNEL_CREATE, "Mass channel creation detected")

    async def on_channel_update(self, before: discord.abc.GuildChannel, after: discord.abc.GuildChannel) -> None:
        if not overwrites_changed(before, after):
            return

        guild = after.guild
        executor = None
        for action in OVERWRITE_ACTIONS:
            executor = await self._executor(guild, action, after.id)
            if executor is not None:
                break
        await self.engine.bump(
            guild, executor, ActionKind.CHANNEL_PERM_EDIT, "Mass channel permission overwrite edits detected",
        )

    # =========================================================================
    # Roles
    # =========================================================================

    async def on_role_create(self, role: discord.Role) -> None:
        executor = await self._executor(role.guild, discord.AuditLogAction.role_create, role.id)
        await self.engine.bump(role.guild, executor, ActionKind.ROLE_CREATE, "Mass role creation detected")

    async def on_role_delete(self, role: discord.Role) -> None:
        executor = await self._executor(role.guild, discord.AuditLogAction.role_delete, role.id)
        await self.engine.bump(role.guild, executor, ActionKind.ROLE_DELETE, "Role nuke detected")

    async def on_role_update(self, before: discord.Role, after: discord.Role) -> None:
        if not gained_dangerous(before.permissions, after.permissions):
            return
        executor = await self._executor(after.guild, discord.AuditLogAction.role_update, after.id)
        await self.engine.bump(
            after.guild, executor, ActionKind.ROLE_PERM_EDIT, "Dangerous role permission edits detected",
        )

    # =========================================================================
    # Webhooks & Messages
    # =========================================================================

    async def on_webhooks_update(self, channel: discord.abc.GuildChannel) -> None:
        guild = channel.guild
        executor = await find_any_executor(
            guild, WEBHOOK_ACTIONS, self.config.attribution_max_age, now=self.state.now(),
        )
        await self.engine.bump(guild, executor, ActionKind.WEBHOOK_CHANGE, "Webhook nuking detected")

    async def on_message(self, message: discord.Message) -> None:
        await self.threats.on_message(message)

    # =========================================================================
    # Maintenance
    # =========================================================================

    def sweep(self) -> int:
        removed = self.state.sweep()
        if removed:
            logger.debug("Guard State Swept", [("Removed", str(removed))])
        return removed


__all__ = ["AntiNukeService", "overwrites_changed"]
