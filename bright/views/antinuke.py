"""
Bright Guard - Anti-Nuke Buttons
================================

Persistent buttons for review panels, restore capsules, and threat logs.

DESIGN:
    Every button is a DynamicItem whose custom_id carries all the state
    it needs, so panels keep working across restarts:

        bright:(accept|deny):<guild>:<bot>
        bright:(restore_roles|keep_derolled):<guild>:<executor>
        bright:restorecap:<channel>:<message>
        bth:(menu|ignore|info):<guild>:<log message>:<user>
        bth2:(timeout10m|timeout1h|timeout24h|kick|ban|dismiss):<guild>:<log message>:<user>

    Callbacks check the presser's whitelist scope, then call into the
    AntiNukeService hung off the bot as `bot.antinuke`.

Author: حَـــــنَّـــــا
"""

import re
from typing import TYPE_CHECKING, Optional

import discord

from bright.core.config import EmbedColors
from bright.core.logger import logger
from bright.services.antinuke.capsules import RESTORE_PREFIX, CapsuleUnavailable
from bright.services.antinuke.constants import (
    SCOPE_BOT_ADDS,
    SCOPE_RESTORE,
    SCOPE_THREATS,
    THREAT_ACTIONS,
)
from bright.services.antinuke.threats import MISSING_LOG_REPLY, build_user_info_embed
from bright.services.antinuke.whitelist import has_scope
from bright.utils.discord_rate_limit import log_http_error
from bright.utils.members import fetch_member

if TYPE_CHECKING:
    from bright.bot import BrightBot
    from bright.services.antinuke.service import AntiNukeService


PENDING_ID = "pending"


# =============================================================================
# Helpers
# =============================================================================

async def _reject(interaction: discord.Interaction, text: str) -> None:
    if interaction.response.is_done():
        await interaction.followup.send(text, ephemeral=True)
    else:
        await interaction.response.send_message(text, ephemeral=True)


async def _authorize(
    interaction: discord.Interaction,
    guild_id: Optional[int],
    scope: str,
) -> Optional["AntiNukeService"]:
    """
    Resolve the guard service if the presser may use a `scope` button.

    Sends the ephemeral rejection and returns None otherwise.
    """
    guild = interaction.guild
    if guild is None or (guild_id is not None and guild.id != guild_id):
        await _reject(interaction, "⚠️ Guild mismatch.")
        return None

    bot: "BrightBot" = interaction.client
    service = getattr(bot, "antinuke", None)
    if service is None:
        await _reject(interaction, "⚠️ Guard is not running.")
        return None

    if not has_scope(service.state, guild, interaction.user.id, scope):
        logger.warning("Button Press Rejected", [
            ("User", f"{interaction.user} ({interaction.user.id})"),
            ("Scope", scope),
            ("Guild", str(guild.id)),
        ])
        await _reject(interaction, f"⚠️ You need `{scope}` (or `all`) whitelist scope to do that.")
        return None
    return service


def _decided_embed(message: Optional[discord.Message], value: str, color: int) -> discord.Embed:
    embed = message.embeds[0].copy() if message is not None and message.embeds else discord.Embed()
    embed.add_field(name="Decision", value=value, inline=False)
    embed.color = color
    return embed


def _parse_log_id(raw: str) -> Optional[int]:
    return None if raw == PENDING_ID else int(raw)


# =============================================================================
# Bot Review
# =============================================================================

class BotReviewButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"bright:(?P<action>accept|deny):(?P<guild_id>\d+):(?P<bot_id>\d+)",
):
    """Accept or Deny a kicked bot."""

    def __init__(self, action: str, guild_id: int, bot_id: int, disabled: bool = False):
        self.action = action
        self.guild_id = guild_id
        self.bot_id = bot_id
        approve = action == "accept"
        super().__init__(
            discord.ui.Button(
                label="Accept" if approve else "Deny",
                style=discord.ButtonStyle.success if approve else discord.ButtonStyle.danger,
                custom_id=f"bright:{action}:{guild_id}:{bot_id}",
                disabled=disabled,
            )
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "BotReviewButton":
        return cls(match.group("action"), int(match.group("guild_id")), int(match.group("bot_id")))

    async def callback(self, interaction: discord.Interaction) -> None:
        service = await _authorize(interaction, self.guild_id, SCOPE_BOT_ADDS)
        if service is None:
            return

        approve = self.action == "accept"
        service.bot_review.decide(self.guild_id, self.bot_id, approve)

        if approve:
            embed = _decided_embed(interaction.message, f"✅ **ACCEPTED** by <@{interaction.user.id}>", EmbedColors.SUCCESS)
            reply = f"✅ Accepted. You can re-add `{self.bot_id}` and it will NOT be auto-kicked."
        else:
            embed = _decided_embed(interaction.message, f"❌ **DENIED** by <@{interaction.user.id}>", EmbedColors.RED)
            reply = f"❌ Denied. If `{self.bot_id}` is re-added, it will be kicked automatically."

        await interaction.response.edit_message(
            embed=embed,
            view=BotReviewView(self.guild_id, self.bot_id, disabled=True),
        )
        await interaction.followup.send(reply, ephemeral=True)


class BotReviewView(discord.ui.View):
    """Accept / Deny row for a bot review panel."""

    def __init__(self, guild_id: int, bot_id: int, disabled: bool = False):
        super().__init__(timeout=None)
        self.add_item(BotReviewButton("accept", guild_id, bot_id, disabled))
        self.add_item(BotReviewButton("deny", guild_id, bot_id, disabled))


# =============================================================================
# Human Review
# =============================================================================

class HumanReviewButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"bright:(?P<action>restore_roles|keep_derolled):(?P<guild_id>\d+):(?P<executor_id>\d+)",
):
    """Restore Roles or Keep Derolled for a derolled executor."""

    def __init__(self, action: str, guild_id: int, executor_id: int, disabled: bool = False):
        self.action = action
        self.guild_id = guild_id
        self.executor_id = executor_id
        restore = action == "restore_roles"
        super().__init__(
            discord.ui.Button(
                label="Restore Roles" if restore else "Keep Derolled",
                style=discord.ButtonStyle.success if restore else discord.ButtonStyle.danger,
                custom_id=f"bright:{action}:{guild_id}:{executor_id}",
                disabled=disabled,
            )
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "HumanReviewButton":
        return cls(match.group("action"), int(match.group("guild_id")), int(match.group("executor_id")))

    async def callback(self, interaction: discord.Interaction) -> None:
        service = await _authorize(interaction, self.guild_id, SCOPE_RESTORE)
        if service is None:
            return

        guild = interaction.guild
        pending = service.state.guild(guild.id).pending_humans.get(self.executor_id)
        if pending is None:
            await _reject(interaction, "ℹ️ No pending human review found.")
            return

        if self.action == "keep_derolled":
            service.role_strip.keep_derolled(guild.id, self.executor_id)
            embed = _decided_embed(interaction.message, f"❌ **KEPT DEROLED** by <@{interaction.user.id}>", EmbedColors.RED)
            await interaction.response.edit_message(
                embed=embed,
                view=HumanReviewView(self.guild_id, self.executor_id, disabled=True),
            )
            await interaction.followup.send("❌ Kept derolled.", ephemeral=True)
            return

        member = await fetch_member(guild, self.executor_id)
        if member is None:
            await _reject(interaction, "⚠️ Executor not found in guild.")
            return

        await interaction.response.defer(ephemeral=True)
        restored = await service.role_strip.restore_executor(guild, member, pending)

        embed = _decided_embed(interaction.message, f"✅ **RESTORED** by <@{interaction.user.id}>", EmbedColors.SUCCESS)
        try:
            await interaction.message.edit(
                embed=embed,
                view=HumanReviewView(self.guild_id, self.executor_id, disabled=True),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Human Review Panel Update", [("Executor", str(self.executor_id))])

        if restored:
            await interaction.followup.send("✅ Roles restored (best-effort).", ephemeral=True)
        else:
            await interaction.followup.send("⚠️ Failed to restore roles (permissions/hierarchy?).", ephemeral=True)


class HumanReviewView(discord.ui.View):
    """Restore Roles / Keep Derolled row for a role-strip panel."""

    def __init__(self, guild_id: int, executor_id: int, disabled: bool = False):
        super().__init__(timeout=None)
        self.add_item(HumanReviewButton("restore_roles", guild_id, executor_id, disabled))
        self.add_item(HumanReviewButton("keep_derolled", guild_id, executor_id, disabled))


# =============================================================================
# Restore Capsule
# =============================================================================

class RestoreCapsuleButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"bright:restorecap:(?P<channel_id>\d+):(?P<message_id>\d+)",
):
    """Replays the restore capsule stored at (channel, message)."""

    def __init__(self, channel_id: int, message_id: int, disabled: bool = False):
        self.channel_id = channel_id
        self.message_id = message_id
        super().__init__(
            discord.ui.Button(
                label="Restore",
                style=discord.ButtonStyle.primary,
                custom_id=f"bright:restorecap:{channel_id}:{message_id}",
                emoji="♻️",
                disabled=disabled,
            )
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "RestoreCapsuleButton":
        return cls(int(match.group("channel_id")), int(match.group("message_id")))

    async def callback(self, interaction: discord.Interaction) -> None:
        service = await _authorize(interaction, None, SCOPE_RESTORE)
        if service is None:
            return

        guild = interaction.guild
        await interaction.response.defer(ephemeral=True, thinking=True)

        try:
            _, capsule = await service.capsules.load_capsule(guild, self.channel_id, self.message_id, RESTORE_PREFIX)
        except CapsuleUnavailable as e:
            await interaction.followup.send(e.reply, ephemeral=True)
            return

        result = await service.capsules.restore_from_capsule(guild, capsule)
        await interaction.followup.send(f"{'✅' if result.ok else '❌'} {result.message}", ephemeral=True)


class RestoreCapsuleView(discord.ui.View):
    def __init__(self, channel_id: int, message_id: int, disabled: bool = False):
        super().__init__(timeout=None)
        self.add_item(RestoreCapsuleButton(channel_id, message_id, disabled))


# =============================================================================
# Threat Log
# =============================================================================

THREAT_LOG_BUTTONS = {
    "menu": ("Take Action", discord.ButtonStyle.danger, "🛠️"),
    "ignore": ("Ignore", discord.ButtonStyle.secondary, "🙈"),
    "info": ("User Info", discord.ButtonStyle.primary, "👤"),
}


class ThreatLogButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=r"bth:(?P<action>menu|ignore|info):(?P<guild_id>\d+):(?P<log_id>\d+|pending):(?P<user_id>\d+)",
):
    """Take Action / Ignore / User Info on a threat log."""

    def __init__(self, action: str, guild_id: int, log_id: Optional[int], user_id: int, disabled: bool = False):
        self.action = action
        self.guild_id = guild_id
        self.log_id = log_id
        self.user_id = user_id
        label, style, emoji = THREAT_LOG_BUTTONS[action]
        super().__init__(
            discord.ui.Button(
                label=label,
                style=style,
                emoji=emoji,
                custom_id=f"bth:{action}:{guild_id}:{log_id if log_id is not None else PENDING_ID}:{user_id}",
                disabled=disabled,
            )
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "ThreatLogButton":
        return cls(
            match.group("action"),
            int(match.group("guild_id")),
            _parse_log_id(match.group("log_id")),
            int(match.group("user_id")),
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        service = await _authorize(interaction, self.guild_id, SCOPE_THREATS)
        if service is None:
            return

        if self.action == "menu":
            await interaction.response.send_message(
                f"Select an action for <@{self.user_id}>.",
                view=ThreatActionView(self.guild_id, self.log_id, self.user_id),
                ephemeral=True,
            )
        elif self.action == "ignore":
            await self._ignore(interaction, service)
        else:
            await self._info(interaction)

    async def _ignore(self, interaction: discord.Interaction, service: "AntiNukeService") -> None:
        guild = interaction.guild
        await interaction.response.defer(ephemeral=True)
        try:
            log_message, record = await service.threats.load_threat_log(guild, self.log_id)
        except CapsuleUnavailable as e:
            await interaction.followup.send(e.reply, ephemeral=True)
            return

        await service.threats.mark_ignored(guild, log_message, record, interaction.user, self.user_id)
        await interaction.followup.send("✅ Marked as ignored and disabled buttons.", ephemeral=True)

    async def _info(self, interaction: discord.Interaction) -> None:
        guild = interaction.guild
        member = await fetch_member(guild, self.user_id)
        user = member
        if user is None:
            try:
                user = await interaction.client.fetch_user(self.user_id)
            except discord.HTTPException:
                user = None
        if user is None:
            await _reject(interaction, "⚠️ User not found.")
            return

        await interaction.response.send_message(embed=build_user_info_embed(user, member), ephemeral=True)


class ThreatLogView(discord.ui.View):
    """Take Action / Ignore / User Info row for a threat log."""

    def __init__(self, guild_id: int, log_id: Optional[int], user_id: int, disabled: bool = False):
        super().__init__(timeout=None)
        for action in THREAT_LOG_BUTTONS:
            self.add_item(ThreatLogButton(action, guild_id, log_id, user_id, disabled))


# =============================================================================
# Threat Actions
# =============================================================================

THREAT_ACTION_STYLES = {
    "timeout10m": discord.ButtonStyle.secondary,
    "timeout1h": discord.ButtonStyle.secondary,
    "timeout24h": discord.ButtonStyle.secondary,
    "kick": discord.ButtonStyle.danger,
    "ban": discord.ButtonStyle.danger,
    "dismiss": discord.ButtonStyle.success,
}


class ThreatActionButton(
    discord.ui.DynamicItem[discord.ui.Button],
    template=(
        r"bth2:(?P<action>timeout10m|timeout1h|timeout24h|kick|ban|dismiss)"
        r":(?P<guild_id>\d+):(?P<log_id>\d+|pending):(?P<user_id>\d+)"
    ),
):
    """One moderation action from the Take Action menu."""

    def __init__(self, action: str, guild_id: int, log_id: Optional[int], user_id: int, row: Optional[int] = None):
        self.action = action
        self.guild_id = guild_id
        self.log_id = log_id
        self.user_id = user_id
        super().__init__(
            discord.ui.Button(
                label=THREAT_ACTIONS[action],
                style=THREAT_ACTION_STYLES[action],
                custom_id=f"bth2:{action}:{guild_id}:{log_id if log_id is not None else PENDING_ID}:{user_id}",
            ),
            row=row,
        )

    @classmethod
    async def from_custom_id(
        cls,
        interaction: discord.Interaction,
        item: discord.ui.Button,
        match: re.Match[str],
    ) -> "ThreatActionButton":
        return cls(
            match.group("action"),
            int(match.group("guild_id")),
            _parse_log_id(match.group("log_id")),
            int(match.group("user_id")),
        )

    async def callback(self, interaction: discord.Interaction) -> None:
        service = await _authorize(interaction, self.guild_id, SCOPE_THREATS)
        if service is None:
            return

        guild = interaction.guild
        member = await fetch_member(guild, self.user_id)
        if member is None:
            await _reject(interaction, "⚠️ Member not found in guild.")
            return

        await interaction.response.defer(ephemeral=True)
        applied, reply = await service.threats.apply_action(
            guild, member, self.action, interaction.user, self.log_id,
        )

        if applied:
            try:
                log_message, record = await service.threats.load_threat_log(guild, self.log_id)
            except CapsuleUnavailable:
                logger.warning("Threat Log Not Updated", [
                    ("Log", str(self.log_id)),
                    ("Action", THREAT_ACTIONS[self.action]),
                    ("Reason", MISSING_LOG_REPLY),
                ])
            else:
                await service.threats.append_action(log_message, record, interaction.user, THREAT_ACTIONS[self.action])

        await interaction.followup.send(reply, ephemeral=True)


class ThreatActionView(discord.ui.View):
    """
    Ephemeral Take Action menu.

    Layout:
        Row 0: Timeout 10m, Timeout 1h, Timeout 24h
        Row 1: Kick, Ban, Dismiss
    """

    def __init__(self, guild_id: int, log_id: Optional[int], user_id: int):
        super().__init__(timeout=None)
        for index, action in enumerate(THREAT_ACTIONS):
            self.add_item(ThreatActionButton(action, guild_id, log_id, user_id, row=0 if index < 3 else 1))


# =============================================================================
# Registration
# =============================================================================

def setup_antinuke_views(bot: "BrightBot") -> None:
    """Register persistent anti-nuke buttons. Call this on bot startup."""
    bot.add_dynamic_items(
        BotReviewButton,
        HumanReviewButton,
        RestoreCapsuleButton,
        ThreatLogButton,
        ThreatActionButton,
    )


__all__ = [
    "BotReviewButton",
    "BotReviewView",
    "HumanReviewButton",
    "HumanReviewView",
    "RestoreCapsuleButton",
    "RestoreCapsuleView",
    "ThreatLogButton",
    "ThreatLogView",
    "ThreatActionButton",
    "ThreatActionView",
    "setup_antinuke_views",
]
