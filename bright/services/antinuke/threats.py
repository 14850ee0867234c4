"""
Bright Guard - Threat Scanner
=============================

Flags threatening guild messages, deletes them, and logs each one to the
threats channel with moderation buttons.

DESIGN:
    Each log post carries a `threat:<b64>` capsule in its content and an
    embed for humans. The capsule is the log's only state: Ignore and the
    moderation actions rewrite it in place with an appended entry in
    `actions`. Buttons address the log by its message ID, so the log is
    posted with a placeholder and then edited once the ID is known.

Author: حَـــــنَّـــــا
"""

from datetime import timedelta
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple, Union

import discord

from bright.core.config import EmbedColors
from bright.core.logger import logger
from bright.utils.discord_rate_limit import delete_message_safe, log_http_error
from bright.utils.members import bot_can_action

from .capsules import (
    MESSAGE_LIMIT,
    THREAT_PREFIX,
    TYPE_THREAT_LOG,
    CapsuleDecodeError,
    CapsuleUnavailable,
    build_capsule_record,
    decode_capsule,
    extract_capsule,
    render_capsule_message,
)
from .channels import ensure_guard_channel
from .constants import SEVERITY_CRITICAL, THREAT_ACTIONS, THREAT_RULES, TIMEOUT_DURATIONS, ThreatRule
from .state import ActorKey, GuardState

if TYPE_CHECKING:
    from bright.bot import BrightBot


THREAT_HEADER = "🧾 **BRIGHT THREAT CAPSULE**"
CAPSULE_CONTENT_LIMIT = 3500
EMBED_SNIPPET_LIMIT = 900
MISSING_LOG_REPLY = "⚠️ Threat log/capsule missing."


# =============================================================================
# Classification
# =============================================================================

def classify(text: Optional[str]) -> Optional[ThreatRule]:
    """First threat rule matching `text`, or None."""
    if not text:
        return None
    for rule in THREAT_RULES:
        if rule.matches(text):
            return rule
    return None


def should_scan(message: discord.Message, command_prefix: str) -> bool:
    """Guild messages from humans that are not commands."""
    if message.guild is None or message.author.bot:
        return False
    return not (message.content or "").strip().startswith(command_prefix)


# =============================================================================
# Rendering
# =============================================================================

def render_threat_capsule(record: Dict[str, Any]) -> str:
    """
    Threat capsule message text, shrinking `content` until it fits.

    The stored snippet is cut down (never the metadata) when the encoded
    capsule would exceed the message limit.
    """
    rendered = render_capsule_message(THREAT_HEADER, record, THREAT_PREFIX)
    while len(rendered) > MESSAGE_LIMIT and record.get("content"):
        overflow = len(rendered) - MESSAGE_LIMIT
        content = record["content"]
        # base64 spends 4 chars per 3 bytes
        record["content"] = content[:max(0, len(content) - (overflow * 3 // 4) - 8)]
        rendered = render_capsule_message(THREAT_HEADER, record, THREAT_PREFIX)
    return rendered


def build_threat_embed(rule: ThreatRule, message: discord.Message, deleted: bool) -> discord.Embed:
    author = message.author
    embed = discord.Embed(
        title=f"⚠️ Bright Threat Detected: {rule.title}",
        description=(
            f"**Severity:** `{rule.severity}`\n"
            f"**Category:** `{rule.key}`\n"
            f"**Deleted:** {'✅ Yes' if deleted else '❌ No'}\n\n"
            f"**User:** <@{author.id}> (`{author.id}`)\n"
            f"**Channel:** <#{message.channel.id}>\n"
            f"**Message ID:** `{message.id}`\n"
        ),
        color=EmbedColors.THREAT_CRITICAL if rule.severity == SEVERITY_CRITICAL else EmbedColors.THREAT_HIGH,
        timestamp=discord.utils.utcnow(),
    )
    content = message.content or ""
    embed.add_field(
        name="Content (snippet)",
        value=f"```\n{content[:EMBED_SNIPPET_LIMIT]}\n```" if content else "`(no text)`",
        inline=False,
    )
    embed.set_footer(text="Buttons require scope: threats/all.")
    return embed


def build_user_info_embed(user: Union[discord.User, discord.Member], member: Optional[discord.Member]) -> discord.Embed:
    roles = "(none)"
    if member is not None:
        mentions = [r.mention for r in member.roles if not r.is_default()][:25]
        roles = " ".join(mentions) or "(none)"

    embed = discord.Embed(title="👤 User Info", color=EmbedColors.INFO, timestamp=discord.utils.utcnow())
    embed.set_thumbnail(url=user.display_avatar.url)
    embed.add_field(name="User", value=f"{user}\n`{user.id}`", inline=True)
    embed.add_field(name="Bot", value="✅ Yes" if user.bot else "❌ No", inline=True)
    embed.add_field(name="Account Created", value=discord.utils.format_dt(user.created_at, "F"), inline=False)
    embed.add_field(
        name="Joined Server",
        value=discord.utils.format_dt(member.joined_at, "F") if member is not None and member.joined_at else "(not in guild?)",
        inline=False,
    )
    embed.add_field(name="Roles (top 25)", value=roles, inline=False)
    return embed


# =============================================================================
# Threat Scanner
# =============================================================================

class ThreatScanner:
    """Deletes threatening messages and keeps their capsule logs."""

    def __init__(self, bot: "BrightBot", state: GuardState) -> None:
        self.bot = bot
        self.state = state
        self.config = state.config

    # =========================================================================
    # Detection
    # =========================================================================

    async def on_message(self, message: discord.Message) -> Optional[discord.Message]:
        """
        Scan one message.

        Returns:
            The threat log message if the message matched and was logged.
        """
        if not should_scan(message, self.config.command_prefix):
            return None

        rule = classify(message.content)
        if rule is None:
            return None

        key = ActorKey(message.guild.id, message.author.id)
        if key in self.state.threat_dedupe:
            return None
        self.state.threat_dedupe.set(key, self.state.now())

        deleted = await delete_message_safe(message)

        logger.tree("THREAT DETECTED", [
            ("Guild", f"{message.guild.name} ({message.guild.id})"),
            ("Author", f"{message.author} ({message.author.id})"),
            ("Channel", f"#{message.channel} ({message.channel.id})"),
            ("Category", rule.key),
            ("Severity", rule.severity),
            ("Deleted", "Yes" if deleted else "No"),
        ], emoji="⚠️")

        return await self.post_threat_log(message.guild, rule, message, deleted)

    async def post_threat_log(
        self,
        guild: discord.Guild,
        rule: ThreatRule,
        message: discord.Message,
        deleted: bool,
    ) -> Optional[discord.Message]:
        from bright.views.antinuke import ThreatLogView

        channel = await ensure_guard_channel(
            guild, self.config.threats_channel_name, "Bright threats log", self.config.super_admin_id,
        )
        if channel is None:
            return None

        author = message.author
        ttl = self.config.threat_capsule_ttl
        record = build_capsule_record(guild.id, rule.title, {
            "type": TYPE_THREAT_LOG,
            "category": rule.key,
            "categoryTitle": rule.title,
            "severity": rule.severity,
            "deleted": deleted,
            "authorId": str(author.id),
            "authorTag": str(author),
            "channelId": str(message.channel.id),
            "messageId": str(message.id),
            "content": (message.content or "")[:CAPSULE_CONTENT_LIMIT],
            "ignored": False,
            "actions": [],
        }, self.state.now_ms(), ttl)

        try:
            sent = await channel.send(
                content=render_threat_capsule(record),
                embed=build_threat_embed(rule, message, deleted),
                view=ThreatLogView(guild.id, None, author.id),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Threat Log Post", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Author", str(author.id)),
            ])
            return None

        try:
            await sent.edit(view=ThreatLogView(guild.id, sent.id, author.id))
        except discord.HTTPException as e:
            log_http_error(e, "Threat Log Buttons", [
                ("Message", str(sent.id)),
            ])

        if ttl > 0:
            await sent.delete(delay=ttl)
        return sent

    # =========================================================================
    # Log Access
    # =========================================================================

    def threats_channel(self, guild: discord.Guild) -> Optional[discord.TextChannel]:
        return discord.utils.get(guild.text_channels, name=self.config.threats_channel_name)

    async def load_threat_log(self, guild: discord.Guild, message_id: Optional[int]) -> Tuple[discord.Message, Dict[str, Any]]:
        """
        Fetch a threat log and decode its capsule.

        Raises:
            CapsuleUnavailable: If the log or its capsule cannot be read.
        """
        channel = self.threats_channel(guild)
        if channel is None or message_id is None:
            raise CapsuleUnavailable(MISSING_LOG_REPLY)

        try:
            message = await channel.fetch_message(message_id)
        except discord.NotFound:
            raise CapsuleUnavailable(MISSING_LOG_REPLY)
        except discord.HTTPException as e:
            log_http_error(e, "Threat Log Fetch", [("Message", str(message_id))])
            raise CapsuleUnavailable(MISSING_LOG_REPLY)

        encoded = extract_capsule(message.content, THREAT_PREFIX)
        if not encoded:
            raise CapsuleUnavailable(MISSING_LOG_REPLY)
        try:
            record = decode_capsule(encoded)
        except CapsuleDecodeError:
            raise CapsuleUnavailable(MISSING_LOG_REPLY)
        return message, record

    def _record_action(self, record: Dict[str, Any], actor: discord.abc.User, label: str) -> None:
        actions = record.get("actions")
        if not isinstance(actions, list):
            actions = []
        actions.append({"by": str(actor.id), "at": self.state.now_ms(), "action": label})
        record["actions"] = actions

    async def append_action(
        self,
        log_message: discord.Message,
        record: Dict[str, Any],
        actor: discord.abc.User,
        label: str,
    ) -> None:
        """Log an action on the capsule and show it in the embed footer."""
        self._record_action(record, actor, label)

        embed = log_message.embeds[0].copy() if log_message.embeds else discord.Embed()
        embed.set_footer(text=f"Last action: {label} by {actor}")
        embed.timestamp = discord.utils.utcnow()

        try:
            await log_message.edit(content=render_threat_capsule(record), embed=embed)
        except discord.HTTPException as e:
            log_http_error(e, "Threat Log Update", [("Message", str(log_message.id))])

    async def mark_ignored(
        self,
        guild: discord.Guild,
        log_message: discord.Message,
        record: Dict[str, Any],
        actor: discord.abc.User,
        user_id: int,
    ) -> None:
        from bright.views.antinuke import ThreatLogView

        record["ignored"] = True
        self._record_action(record, actor, "Ignored")

        embed = log_message.embeds[0].copy() if log_message.embeds else discord.Embed()
        embed.add_field(name="Status", value=f"✅ Ignored by <@{actor.id}>", inline=False)
        embed.color = EmbedColors.DISMISSED
        embed.timestamp = discord.utils.utcnow()

        try:
            await log_message.edit(
                content=render_threat_capsule(record),
                embed=embed,
                view=ThreatLogView(guild.id, log_message.id, user_id, disabled=True),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Threat Log Ignore", [("Message", str(log_message.id))])

        logger.info("Threat Ignored", [
            ("Guild", str(guild.id)),
            ("Log", str(log_message.id)),
            ("By", f"{actor} ({actor.id})"),
        ])

    # =========================================================================
    # Moderation Actions
    # =========================================================================

    async def apply_action(
        self,
        guild: discord.Guild,
        member: discord.Member,
        action: str,
        actor: discord.abc.User,
        log_message_id: Optional[int],
    ) -> Tuple[bool, str]:
        """
        Run a threat-menu moderation action against `member`.

        Returns:
            (applied, reply) where reply is the ephemeral text for the actor.
        """
        label = THREAT_ACTIONS.get(action, action)
        if action == "dismiss":
            return True, "✅ Dismissed."

        reason = f"[BRIGHT][THREATS] Action by {actor} ({actor.id}) from threat log {log_message_id or 'unknown'}"

        if action in TIMEOUT_DURATIONS:
            if not bot_can_action(member, "moderate_members"):
                return False, "⚠️ Cannot timeout this member (hierarchy/perms)."
            call = member.timeout(timedelta(seconds=TIMEOUT_DURATIONS[action]), reason=reason)
            reply = f"✅ {label} applied to {member}."
        elif action == "kick":
            if not bot_can_action(member, "kick_members"):
                return False, "⚠️ Cannot kick this member (hierarchy/perms)."
            call = member.kick(reason=reason)
            reply = f"✅ Kicked {member.id}."
        elif action == "ban":
            if not bot_can_action(member, "ban_members"):
                return False, "⚠️ Cannot ban this member (hierarchy/perms)."
            call = guild.ban(member, reason=reason, delete_message_seconds=0)
            reply = f"✅ Banned {member.id}."
        else:
            return False, "⚠️ Unknown action."

        try:
            await call
        except discord.Forbidden:
            logger.warning("Threat Action Forbidden", [
                ("Action", label),
                ("Member", f"{member} ({member.id})"),
            ])
            return False, f"⚠️ {label} failed (missing permissions)."
        except discord.HTTPException as e:
            log_http_error(e, f"Threat Action {label}", [
                ("Member", f"{member} ({member.id})"),
            ])
            return False, f"⚠️ {label} failed."

        logger.tree("THREAT ACTION", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Action", label),
            ("Member", f"{member} ({member.id})"),
            ("By", f"{actor} ({actor.id})"),
            ("Log", str(log_message_id)),
        ], emoji="🔨")
        return True, reply


__all__ = [
    "ThreatScanner",
    "classify",
    "should_scan",
    "render_threat_capsule",
    "build_threat_embed",
    "build_user_info_embed",
    "MISSING_LOG_REPLY",
]
