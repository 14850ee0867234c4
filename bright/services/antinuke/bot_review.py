"""
Bright Guard - Bot Review Gate
==============================

Kick-first review for bots holding dangerous permissions.

DESIGN:
    Per (guild, bot) the gate is in one of four states:

        unseen ──► pending ──► approved
                      │
                      └──────► denied

    A bot that joins (or gains roles) with a dangerous permission and is
    not approved is kicked first, or stripped of every role when the bot
    cannot kick it, and a panel asks the owner to Accept or Deny. Denied
    bots are kicked again every time they return. Approved bots are left
    alone. A 60 second dedupe per (guild, bot) keeps cascaded events from
    posting several panels for one incident.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, List, Optional

import discord

from bright.core.config import EmbedColors
from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error
from bright.utils.members import bot_can_action

from .attribution import Executor, find_executor
from .channels import ensure_guard_channel
from .constants import dangerous_labels, has_dangerous
from .state import ActorKey, GuardState, PendingBotReview

if TYPE_CHECKING:
    from bright.bot import BrightBot


ORIGIN_JOIN = "JOIN"
ORIGIN_ROLE_UPDATE = "ROLE_UPDATE"

STATUS_UNSEEN = "unseen"
STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_DENIED = "denied"

REASON_DENIED = "Bot is DENIED in Bright Review (blocked from re-adding)."
REASON_JOINED_DANGEROUS = "Bot joined with dangerous permissions."
REASON_GRANTED_DANGEROUS = "Bot was granted dangerous permissions after joining."


def roles_changed(before: discord.Member, after: discord.Member) -> bool:
    return {r.id for r in before.roles} != {r.id for r in after.roles}


def build_review_embed(
    guild: discord.Guild,
    bot_member: discord.Member,
    adder: Optional[Executor],
    reason: str,
    permissions: List[str],
    origin: str,
) -> discord.Embed:
    adder_line = f"<@{adder.id}> ({adder})" if adder is not None else "Unknown (audit log missing)"

    embed = discord.Embed(
        title="🚨 Bright Review: Bot Kicked",
        description=(
            f"<@{guild.owner_id}>\n\n"
            "A bot was **kicked first** because it had **dangerous permissions**.\n\n"
            "✅ **Accept** = allow future re-adds (no auto-kick)\n"
            "❌ **Deny** = block this bot ID (auto-kick every time)\n"
        ),
        color=EmbedColors.REVIEW,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Bot", value=f"**{bot_member}**\n`{bot_member.id}`", inline=False)
    embed.add_field(name="Added / Changed by", value=adder_line, inline=False)
    embed.add_field(name="Dangerous Permissions", value=", ".join(permissions) or "(unknown)", inline=False)
    embed.add_field(name="Reason", value=reason, inline=False)
    embed.add_field(name="Event", value=origin, inline=True)
    embed.set_footer(text="Buttons require owner/super-admin or whitelist scope: bot-adds/all.")
    return embed


class BotReviewGate:
    """Kick-first gate for bots with dangerous permissions."""

    def __init__(self, bot: "BrightBot", state: GuardState) -> None:
        self.bot = bot
        self.state = state
        self.config = state.config

    # =========================================================================
    # State
    # =========================================================================

    def status(self, guild_id: int, bot_id: int) -> str:
        guild_state = self.state.guild(guild_id)
        if bot_id in guild_state.approved_bots:
            return STATUS_APPROVED
        if bot_id in guild_state.denied_bots:
            return STATUS_DENIED
        if bot_id in guild_state.pending_bots:
            return STATUS_PENDING
        return STATUS_UNSEEN

    def decide(self, guild_id: int, bot_id: int, approve: bool) -> None:
        """Record an Accept/Deny decision. Repeating a decision is harmless."""
        guild_state = self.state.guild(guild_id)
        if approve:
            guild_state.approved_bots.add(bot_id)
            guild_state.denied_bots.discard(bot_id)
        else:
            guild_state.denied_bots.add(bot_id)
            guild_state.approved_bots.discard(bot_id)
        guild_state.pending_bots.pop(bot_id, None)

        logger.tree("Bot Review Decision", [
            ("Guild", str(guild_id)),
            ("Bot", str(bot_id)),
            ("Decision", STATUS_APPROVED if approve else STATUS_DENIED),
        ], emoji="✅" if approve else "⛔")

    # =========================================================================
    # Events
    # =========================================================================

    async def on_bot_join(self, member: discord.Member) -> bool:
        """
        Gate a bot that just joined.

        Returns:
            True if the bot was kicked (or stripped) and a panel posted.
        """
        guild = member.guild
        status = self.status(guild.id, member.id)

        if status == STATUS_DENIED:
            reason = REASON_DENIED
        elif status == STATUS_APPROVED:
            return False
        elif has_dangerous(member.guild_permissions):
            reason = REASON_JOINED_DANGEROUS
        else:
            return False

        adder = await find_executor(
            guild, discord.AuditLogAction.bot_add, member.id, self.config.attribution_max_age,
            now=self.state.now(),
        )
        return await self.kick_first(guild, member, adder, ORIGIN_JOIN, reason)

    async def on_bot_update(self, before: discord.Member, after: discord.Member) -> bool:
        """
        Gate a bot whose member record changed.

        Returns:
            True if the bot was kicked (or stripped) and a panel posted.
        """
        guild = after.guild
        pending = self.state.guild(guild.id).pending_bots.get(after.id)
        if pending is not None and (self.state.now() - pending.at).total_seconds() < self.config.bot_review_dedupe:
            return False

        status = self.status(guild.id, after.id)
        if status == STATUS_DENIED:
            reason = REASON_DENIED
        elif status == STATUS_APPROVED:
            return False
        elif roles_changed(before, after) and has_dangerous(after.guild_permissions):
            reason = REASON_GRANTED_DANGEROUS
        else:
            return False

        executor = await find_executor(
            guild, discord.AuditLogAction.member_role_update, after.id, self.config.attribution_max_age,
            now=self.state.now(),
        )
        return await self.kick_first(guild, after, executor, ORIGIN_ROLE_UPDATE, reason)

    # =========================================================================
    # Kick First
    # =========================================================================

    async def kick_first(
        self,
        guild: discord.Guild,
        bot_member: discord.Member,
        actor: Optional[Executor],
        origin: str,
        reason: str,
    ) -> bool:
        """
        Remove a bot's power, then ask the owner.

        Kicks the bot when possible, otherwise strips all its roles, and
        posts the review panel. At most once per (guild, bot) per dedupe
        window.

        Returns:
            False when suppressed by the dedupe window.
        """
        key = ActorKey(guild.id, bot_member.id)
        if key in self.state.bot_review_dedupe:
            logger.debug("Bot Review Deduped", [
                ("Guild", str(guild.id)),
                ("Bot", str(bot_member.id)),
            ])
            return False
        self.state.bot_review_dedupe.set(key, self.state.now())

        permissions = dangerous_labels(bot_member.guild_permissions) or ["(unknown)"]
        self.state.guild(guild.id).pending_bots[bot_member.id] = PendingBotReview(
            reason=reason,
            permissions=permissions,
            origin=origin,
            adder_id=actor.id if actor is not None else None,
            at=self.state.now(),
        )

        audit_reason = f"Bright Review: {reason}"
        action = "Kicked"
        try:
            if bot_can_action(bot_member, "kick_members"):
                await bot_member.kick(reason=audit_reason)
            else:
                action = "Roles Stripped"
                await bot_member.edit(roles=[], reason=audit_reason)
        except discord.Forbidden:
            action = "Failed (Forbidden)"
            logger.warning("Bot Review Kick Forbidden", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Bot", f"{bot_member} ({bot_member.id})"),
            ])
        except discord.HTTPException as e:
            action = "Failed"
            log_http_error(e, "Bot Review Kick", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Bot", f"{bot_member} ({bot_member.id})"),
            ])

        logger.tree("BOT REVIEW: KICK FIRST", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Bot", f"{bot_member} ({bot_member.id})"),
            ("Origin", origin),
            ("Actor", f"{actor} ({actor.id})" if actor is not None else "Unknown"),
            ("Permissions", ", ".join(permissions)),
            ("Action", action),
        ], emoji="🤖")

        await self.post_panel(guild, bot_member, actor, reason, permissions, origin)
        return True

    async def post_panel(
        self,
        guild: discord.Guild,
        bot_member: discord.Member,
        actor: Optional[Executor],
        reason: str,
        permissions: List[str],
        origin: str,
    ) -> Optional[discord.Message]:
        from bright.views.antinuke import BotReviewView

        channel = await ensure_guard_channel(
            guild, self.config.review_channel_name, "Bright Review approvals channel", self.config.super_admin_id,
        )
        if channel is None:
            return None

        embed = build_review_embed(guild, bot_member, actor, reason, permissions, origin)
        try:
            return await channel.send(
                content=f"<@{guild.owner_id}>",
                embed=embed,
                view=BotReviewView(guild.id, bot_member.id),
                allowed_mentions=discord.AllowedMentions(users=[discord.Object(id=guild.owner_id)]),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Bot Review Panel", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Bot", str(bot_member.id)),
            ])
            return None


__all__ = [
    "BotReviewGate",
    "build_review_embed",
    "roles_changed",
    "ORIGIN_JOIN",
    "ORIGIN_ROLE_UPDATE",
    "STATUS_UNSEEN",
    "STATUS_PENDING",
    "STATUS_APPROVED",
    "STATUS_DENIED",
]
