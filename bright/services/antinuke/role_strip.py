"""
Bright Guard - Role-Strip Defense
=================================

Human mass role removal defense and admin-grant revert.

DESIGN:
    Role removals are attributed through the member_role_update audit
    log entry on the victim. Each executor accumulates removals in a
    window that restarts once ROLE_STRIP_WINDOW passes without a removal.
    At the threshold the count resets and, unless a recent pending review
    exists, the executor is derolled (managed roles kept), their snapshot
    is stored as a restore capsule, and the owner gets a Restore Roles /
    Keep Derolled panel plus a capsule Restore panel.

    When ROLE_STRIP_RESTORE_VICTIMS is on, the pre-removal roles of every
    victim seen in the window go into a second members.roles capsule.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, List, Optional

import discord

from bright.core.config import EmbedColors
from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error
from bright.utils.members import fetch_member

from .attribution import Executor, find_executor
from .capsules import CapsuleStore, TYPE_MEMBER_ROLES, TYPE_MEMBERS_ROLES, resolve_role_set, snapshot_member_roles
from .channels import ensure_guard_channel
from .constants import SCOPE_ADMIN, SCOPE_ROLES
from .state import ActorKey, GuardState, PendingHumanReview, RoleStripRecord, VictimSnapshot
from .whitelist import has_scope

if TYPE_CHECKING:
    from bright.bot import BrightBot


DEROLL_REASON = "[BRIGHT][ANTINUKE] Mass role removal detected"
RESTORE_REASON = "[BRIGHT] Restore roles (owner approved)"
ADMIN_REVERT_REASON = "[BRIGHT][ANTINUKE] Unapproved Administrator grant reverted"


def build_human_review_embed(
    guild: discord.Guild,
    executor: discord.Member,
    reason: str,
    removed_role_ids: List[int],
) -> discord.Embed:
    preview = ", ".join(f"<@&{rid}>" for rid in removed_role_ids[:20]) or "(none)"

    embed = discord.Embed(
        title="🚨 Bright Review: Mass Role Removal Detected",
        description=(
            f"<@{guild.owner_id}>\n\n"
            "A user appears to be stripping roles quickly. They were **derolled** as a precaution.\n\n"
            "✅ **Restore Roles** = puts previous roles back\n"
            "❌ **Keep Derolled** = leave them stripped\n"
        ),
        color=EmbedColors.DEROLL,
        timestamp=discord.utils.utcnow(),
    )
    embed.add_field(name="Executor", value=f"<@{executor.id}> ({executor})", inline=False)
    embed.add_field(name="Reason", value=reason, inline=False)
    embed.add_field(name="Roles Removed (snapshot)", value=preview, inline=False)
    embed.set_footer(text="Buttons require owner/super-admin or whitelist scope: restore/all.")
    return embed


class RoleStripDefense:
    """Derolls executors who strip roles from many members."""

    def __init__(self, bot: "BrightBot", state: GuardState, capsules: CapsuleStore) -> None:
        self.bot = bot
        self.state = state
        self.config = state.config
        self.capsules = capsules

    def _is_exempt(self, guild: discord.Guild, executor_id: int) -> bool:
        if self.bot.user is not None and executor_id == self.bot.user.id:
            return True
        return has_scope(self.state, guild, executor_id, SCOPE_ROLES)

    # =========================================================================
    # Role Removal
    # =========================================================================

    async def on_roles_removed(self, before: discord.Member, after: discord.Member) -> bool:
        """
        Count removals from a human member against the attributed executor.

        Returns:
            True if the executor was derolled by this call.
        """
        removed = len(before.roles) - len(after.roles)
        if removed <= 0:
            return False

        guild = after.guild
        executor = await find_executor(
            guild, discord.AuditLogAction.member_role_update, after.id, self.config.attribution_max_age,
            now=self.state.now(),
        )
        if executor is None or self._is_exempt(guild, executor.id):
            return False

        key = ActorKey(guild.id, executor.id)
        record = self.state.role_strips.get(key) or RoleStripRecord()
        record.count += removed
        if self.config.role_strip_restore_victims and after.id not in record.victims:
            role_ids, managed = snapshot_member_roles(before)
            record.victims[after.id] = VictimSnapshot(after.id, role_ids, managed)
        self.state.role_strips.set(key, record)

        logger.debug("Role Removal Counted", [
            ("Guild", str(guild.id)),
            ("Executor", f"{executor} ({executor.id})"),
            ("Victim", str(after.id)),
            ("Count", f"{record.count}/{self.config.role_strip_threshold}"),
        ])

        if record.count < self.config.role_strip_threshold:
            return False

        record.count = 0
        victims = list(record.victims.values())
        record.victims = {}

        pending = self.state.guild(guild.id).pending_humans.get(executor.id)
        if pending is not None and (self.state.now() - pending.at).total_seconds() <= self.config.role_strip_window:
            return False

        member = await fetch_member(guild, executor.id)
        if member is None:
            return False

        await self.deroll(guild, member)
        if victims:
            await self._post_victim_capsule(guild, member, victims)
        return True

    async def deroll(self, guild: discord.Guild, member: discord.Member) -> None:
        """Strip an executor down to managed roles and ask the owner what to do."""
        role_ids, managed = snapshot_member_roles(member)

        try:
            await member.edit(roles=[r for r in member.roles if r.managed], reason=DEROLL_REASON)
        except discord.Forbidden:
            logger.warning("Deroll Forbidden", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Executor", f"{member} ({member.id})"),
            ])
        except discord.HTTPException as e:
            log_http_error(e, "Deroll", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Executor", f"{member} ({member.id})"),
            ])

        self.state.guild(guild.id).pending_humans[member.id] = PendingHumanReview(
            removed_role_ids=role_ids,
            managed_keep=managed,
            at=self.state.now(),
        )

        logger.tree("EXECUTOR DEROLLED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Executor", f"{member} ({member.id})"),
            ("Roles Removed", str(len(role_ids))),
            ("Managed Kept", str(len(managed))),
        ], emoji="🧯")

        capsule_message = await self.capsules.post_restore_capsule(guild, "Restore executor roles", {
            "type": TYPE_MEMBER_ROLES,
            "targetId": str(member.id),
            "roleIds": [str(rid) for rid in role_ids],
            "managedKeep": [str(rid) for rid in managed],
            "reason": "Mass role removal defense derole",
            "executorId": str(member.id),
        })

        minutes = max(1, round(self.config.role_strip_window / 60))
        reason = f"Removed {self.config.role_strip_threshold}+ roles within ~{minutes} minutes"
        await self.post_panel(guild, member, reason, role_ids)

        if capsule_message is not None:
            embed = discord.Embed(
                title="🧾 Bright Restore: Executor Derolled",
                description=(
                    f"<@{guild.owner_id}>\n\n"
                    f"Bright derolled <@{member.id}> as a precaution.\n"
                    "Click **Restore** to apply the stored role snapshot."
                ),
                color=EmbedColors.CAPSULE,
                timestamp=discord.utils.utcnow(),
            )
            embed.add_field(name="Executor", value=f"<@{member.id}> ({member})", inline=False)
            await self.capsules.post_restore_panel(guild, embed, capsule_message)

    async def post_panel(
        self,
        guild: discord.Guild,
        member: discord.Member,
        reason: str,
        removed_role_ids: List[int],
    ) -> Optional[discord.Message]:
        from bright.views.antinuke import HumanReviewView

        channel = await ensure_guard_channel(
            guild, self.config.review_channel_name, "Bright Review approvals channel", self.config.super_admin_id,
        )
        if channel is None:
            return None

        try:
            return await channel.send(
                content=f"<@{guild.owner_id}>",
                embed=build_human_review_embed(guild, member, reason, removed_role_ids),
                view=HumanReviewView(guild.id, member.id),
                allowed_mentions=discord.AllowedMentions(users=[discord.Object(id=guild.owner_id)]),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Human Review Panel", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Executor", str(member.id)),
            ])
            return None

    async def _post_victim_capsule(
        self,
        guild: discord.Guild,
        executor: discord.Member,
        victims: List[VictimSnapshot],
    ) -> None:
        capsule_message = await self.capsules.post_restore_capsule(guild, "Restore role-strip victims", {
            "type": TYPE_MEMBERS_ROLES,
            "targets": [
                {
                    "targetId": str(v.member_id),
                    "roleIds": [str(rid) for rid in v.role_ids],
                    "managedKeep": [str(rid) for rid in v.managed_keep],
                }
                for v in victims
            ],
            "reason": "Mass role removal victims",
            "executorId": str(executor.id),
        })
        if capsule_message is None:
            return

        embed = discord.Embed(
            title="🧾 Bright Restore: Role Removal Victims",
            description=(
                f"<@{guild.owner_id}>\n\n"
                f"<@{executor.id}> removed roles from {len(victims)} member(s).\n"
                "Click **Restore** to give them their previous roles back."
            ),
            color=EmbedColors.CAPSULE,
            timestamp=discord.utils.utcnow(),
        )
        embed.add_field(
            name="Members",
            value=", ".join(f"<@{v.member_id}>" for v in victims[:20]),
            inline=False,
        )
        await self.capsules.post_restore_panel(guild, embed, capsule_message)

    # =========================================================================
    # Review Decisions
    # =========================================================================

    async def restore_executor(self, guild: discord.Guild, member: discord.Member, pending: PendingHumanReview) -> bool:
        """Re-apply a pending review's snapshot. Deleted roles are skipped."""
        self.state.guild(guild.id).pending_humans.pop(member.id, None)
        roles = resolve_role_set(guild, pending.removed_role_ids, pending.managed_keep)
        try:
            await member.edit(roles=roles, reason=RESTORE_REASON)
        except discord.Forbidden:
            logger.warning("Executor Restore Forbidden", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Executor", f"{member} ({member.id})"),
            ])
            return False
        except discord.HTTPException as e:
            log_http_error(e, "Executor Restore", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Executor", f"{member} ({member.id})"),
            ])
            return False

        logger.tree("Executor Roles Restored", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Executor", f"{member} ({member.id})"),
            ("Roles", str(len(roles))),
        ], emoji="♻️")
        return True

    def keep_derolled(self, guild_id: int, executor_id: int) -> Optional[PendingHumanReview]:
        return self.state.guild(guild_id).pending_humans.pop(executor_id, None)

    # =========================================================================
    # Admin Grant
    # =========================================================================

    async def on_admin_grant(self, before: discord.Member, after: discord.Member) -> bool:
        """
        Revert an Administrator grant nobody approved.

        Returns:
            True if the previous role set was re-applied.
        """
        if before.guild_permissions.administrator or not after.guild_permissions.administrator:
            return False

        guild = after.guild
        if after.id == guild.owner_id or has_scope(self.state, guild, after.id, SCOPE_ADMIN):
            return False

        executor: Optional[Executor] = await find_executor(
            guild, discord.AuditLogAction.member_role_update, after.id, self.config.attribution_max_age,
            now=self.state.now(),
        )
        if executor is not None:
            # The bot's own restores may re-grant Administrator
            if self.bot.user is not None and executor.id == self.bot.user.id:
                return False
            if has_scope(self.state, guild, executor.id, SCOPE_ADMIN):
                return False

        try:
            await after.edit(roles=[r for r in before.roles if not r.is_default()], reason=ADMIN_REVERT_REASON)
        except discord.Forbidden:
            logger.warning("Admin Revert Forbidden", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Member", f"{after} ({after.id})"),
            ])
            return False
        except discord.HTTPException as e:
            log_http_error(e, "Admin Revert", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Member", f"{after} ({after.id})"),
            ])
            return False

        logger.tree("ADMIN GRANT REVERTED", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Member", f"{after} ({after.id})"),
            ("Executor", f"{executor} ({executor.id})" if executor is not None else "Unknown"),
        ], emoji="🛡️")
        return True


__all__ = ["RoleStripDefense", "build_human_review_embed"]
