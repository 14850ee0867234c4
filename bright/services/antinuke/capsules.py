"""
Bright Guard - Restore Capsules
===============================

Recoverable state stored inside the guild's own channels.

DESIGN:
    A capsule is a JSON record, base64-encoded and posted in a fenced
    block as `restore:<b64>` (or `threat:<b64>` for threat logs). The
    (channel id, message id) of the post is the capsule's only address;
    buttons carry that pair and re-read the message when pressed.

    Record fields use camelCase and IDs are decimal strings so a capsule
    can be read by hand or by other tools. Times are epoch milliseconds.

    Capsule types:
    - member.roles: one member's role snapshot (executor deroll)
    - members.roles: several members' snapshots (role-strip victims)
    - channel.recreate: a deleted channel's settings and overwrites

    Message history is never part of a capsule and cannot be restored.

Author: حَـــــنَّـــــا
"""

import base64
import binascii
import json
import re
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Tuple

import discord

from bright.core.logger import logger
from bright.utils.discord_rate_limit import log_http_error
from bright.utils.members import fetch_member

from .channels import ensure_guard_channel
from .state import GuardState

if TYPE_CHECKING:
    from bright.bot import BrightBot


# =============================================================================
# Constants
# =============================================================================

CAPSULE_VERSION = 1
RESTORE_PREFIX = "restore"
THREAT_PREFIX = "threat"

TYPE_MEMBER_ROLES = "member.roles"
TYPE_MEMBERS_ROLES = "members.roles"
TYPE_CHANNEL_RECREATE = "channel.recreate"
TYPE_THREAT_LOG = "threat.log"

MESSAGE_LIMIT = 2000
"""Discord message content limit; a capsule post must fit in one message."""

OVERWRITE_ROLE = 0
OVERWRITE_MEMBER = 1

RESTORE_REASON = "Bright restore (capsule)"


# =============================================================================
# Errors
# =============================================================================

class CapsuleDecodeError(ValueError):
    """Capsule text is not valid base64-encoded JSON."""

    pass


class CapsuleUnavailable(Exception):
    """
    A capsule could not be loaded from its message.

    Attributes:
        reply: User-facing rejection text.
    """

    def __init__(self, reply: str) -> None:
        super().__init__(reply)
        self.reply = reply


@dataclass
class RestoreResult:
    ok: bool
    message: str


# =============================================================================
# Codec
# =============================================================================

def encode_capsule(record: Dict[str, Any]) -> str:
    payload = json.dumps(record, separators=(",", ":"), ensure_ascii=False)
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def decode_capsule(encoded: str) -> Dict[str, Any]:
    """
    Decode a base64 capsule body.

    Raises:
        CapsuleDecodeError: If the text is not base64 JSON for an object.
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
        record = json.loads(raw.decode("utf-8"))
    except (binascii.Error, UnicodeDecodeError, ValueError) as e:
        raise CapsuleDecodeError(str(e)) from e
    if not isinstance(record, dict):
        raise CapsuleDecodeError("capsule is not an object")
    return record


def extract_capsule(content: Optional[str], prefix: str = RESTORE_PREFIX) -> Optional[str]:
    """Base64 body of the first `<prefix>:<b64>` token in message text."""
    if not content:
        return None
    match = re.search(rf"{re.escape(prefix)}:([A-Za-z0-9+/=]+)", content)
    return match.group(1) if match else None


def render_capsule_message(header: str, record: Dict[str, Any], prefix: str) -> str:
    expires = int(record.get("expiresAt", 0) // 1000)
    return (
        f"{header}\n"
        f"Expires: <t:{expires}:R>\n"
        f"```txt\n{prefix}:{encode_capsule(record)}\n```"
    )


def build_capsule_record(
    guild_id: int,
    title: str,
    payload: Dict[str, Any],
    now_ms: int,
    ttl_seconds: int,
) -> Dict[str, Any]:
    record: Dict[str, Any] = {
        "v": CAPSULE_VERSION,
        "guildId": str(guild_id),
        "at": now_ms,
        "expiresAt": now_ms + ttl_seconds * 1000,
        "title": title,
    }
    record.update(payload)
    return record


# =============================================================================
# Snapshots
# =============================================================================

def snapshot_member_roles(member: discord.Member) -> Tuple[List[int], List[int]]:
    """
    Split a member's roles into (restorable, managed) ID lists.

    @everyone is never included.
    """
    restorable = [r.id for r in member.roles if not r.is_default() and not r.managed]
    managed = [r.id for r in member.roles if r.managed]
    return restorable, managed


def _overwrite_type(target: Any) -> int:
    if isinstance(target, discord.Role):
        return OVERWRITE_ROLE
    if isinstance(target, discord.Object) and target.type is discord.Role:
        return OVERWRITE_ROLE
    return OVERWRITE_MEMBER


def snapshot_channel(channel: discord.abc.GuildChannel) -> Dict[str, Any]:
    """Serializable settings of a channel, enough to recreate it."""
    overwrites = []
    for target, overwrite in channel.overwrites.items():
        allow, deny = overwrite.pair()
        overwrites.append({
            "id": str(target.id),
            "type": _overwrite_type(target),
            "allow": str(allow.value),
            "deny": str(deny.value),
        })

    snap: Dict[str, Any] = {
        "id": str(channel.id),
        "name": channel.name,
        "type": channel.type.value,
        "parentId": str(channel.category_id) if channel.category_id else None,
        "position": channel.position,
        "permissionOverwrites": overwrites,
    }

    if channel.type in (discord.ChannelType.text, discord.ChannelType.news):
        snap["topic"] = channel.topic
        snap["nsfw"] = bool(channel.nsfw)
        snap["rateLimitPerUser"] = channel.slowmode_delay or 0
    elif channel.type == discord.ChannelType.voice:
        snap["bitrate"] = channel.bitrate
        snap["userLimit"] = channel.user_limit or 0
        snap["rtcRegion"] = channel.rtc_region
        snap["videoQualityMode"] = channel.video_quality_mode.value if channel.video_quality_mode else None

    return snap


def _as_id_list(values: Any) -> List[int]:
    if not isinstance(values, list):
        return []
    ids = []
    for value in values:
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            continue
    return ids


def resolve_role_set(guild: discord.Guild, role_ids: List[int], managed_keep: List[int]) -> List[discord.Role]:
    """
    Roles to apply when restoring a snapshot.

    Stored restorable roles that were deleted or became managed are
    dropped; stored managed roles are kept if they still exist.
    """
    final: Dict[int, discord.Role] = {}
    for rid in managed_keep:
        role = guild.get_role(rid)
        if role is not None:
            final[role.id] = role
    for rid in role_ids:
        role = guild.get_role(rid)
        if role is not None and not role.managed and not role.is_default():
            final[role.id] = role
    return list(final.values())


# =============================================================================
# Capsule Store
# =============================================================================

class CapsuleStore:
    """Posts capsules to the log channel and replays them on request."""

    def __init__(self, bot: "BrightBot", state: GuardState) -> None:
        self.bot = bot
        self.state = state
        self.config = state.config

    # =========================================================================
    # Posting
    # =========================================================================

    async def post_restore_capsule(
        self,
        guild: discord.Guild,
        title: str,
        payload: Dict[str, Any],
        ttl: Optional[int] = None,
    ) -> Optional[discord.Message]:
        """
        Post a restore capsule to the log channel.

        The post deletes itself once the capsule expires.

        Args:
            guild: Guild the capsule belongs to.
            title: Shown in the capsule header.
            payload: Type-specific fields merged into the record.
            ttl: Lifetime in seconds (defaults to RESTORE_CAPSULE_TTL).

        Returns:
            The capsule message, or None if it could not be posted.
        """
        channel = await ensure_guard_channel(
            guild,
            self.config.log_channel_name,
            "Bright temporary restore log",
            self.config.super_admin_id,
        )
        if channel is None:
            return None

        if ttl is None:
            ttl = self.config.restore_capsule_ttl
        record = build_capsule_record(guild.id, title, payload, self.state.now_ms(), ttl)
        content = render_capsule_message(f"🧾 **BRIGHT RESTORE CAPSULE**: {title}", record, RESTORE_PREFIX)

        if len(content) > MESSAGE_LIMIT:
            logger.error("Restore Capsule Too Large", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Type", str(payload.get("type"))),
                ("Length", str(len(content))),
            ])
            return None

        try:
            message = await channel.send(content)
        except discord.HTTPException as e:
            log_http_error(e, "Restore Capsule Post", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Type", str(payload.get("type"))),
            ])
            return None

        await message.delete(delay=ttl)

        logger.tree("Restore Capsule Stored", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Type", str(payload.get("type"))),
            ("Title", title),
            ("Message", f"{channel.id}/{message.id}"),
        ], emoji="🧾")
        return message

    async def post_restore_panel(
        self,
        guild: discord.Guild,
        embed: discord.Embed,
        capsule_message: discord.Message,
    ) -> Optional[discord.Message]:
        """Owner-addressed panel with a Restore button bound to a capsule."""
        from bright.views.antinuke import RestoreCapsuleView

        channel = await ensure_guard_channel(
            guild,
            self.config.review_channel_name,
            "Bright Review approvals channel",
            self.config.super_admin_id,
        )
        if channel is None:
            return None

        embed.add_field(name="Capsule", value=f"Stored in <#{capsule_message.channel.id}>", inline=False)
        try:
            return await channel.send(
                content=f"<@{guild.owner_id}>",
                embed=embed,
                view=RestoreCapsuleView(capsule_message.channel.id, capsule_message.id),
                allowed_mentions=discord.AllowedMentions(users=[discord.Object(id=guild.owner_id)]),
            )
        except discord.HTTPException as e:
            log_http_error(e, "Restore Panel", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Capsule", f"{capsule_message.channel.id}/{capsule_message.id}"),
            ])
            return None

    # =========================================================================
    # Loading
    # =========================================================================

    async def load_capsule(
        self,
        guild: discord.Guild,
        channel_id: int,
        message_id: int,
        prefix: str = RESTORE_PREFIX,
    ) -> Tuple[discord.Message, Dict[str, Any]]:
        """
        Fetch and decode the capsule stored at (channel_id, message_id).

        Raises:
            CapsuleUnavailable: With the rejection text for the user.
        """
        channel = guild.get_channel(channel_id)
        if not isinstance(channel, discord.TextChannel):
            raise CapsuleUnavailable("⚠️ Log channel missing.")

        try:
            message = await channel.fetch_message(message_id)
        except discord.NotFound:
            raise CapsuleUnavailable("⚠️ Capsule message missing (expired or deleted).")
        except discord.HTTPException as e:
            log_http_error(e, "Capsule Fetch", [
                ("Channel", str(channel_id)),
                ("Message", str(message_id)),
            ])
            raise CapsuleUnavailable("⚠️ Capsule message missing (expired or deleted).")

        encoded = extract_capsule(message.content, prefix)
        if not encoded:
            raise CapsuleUnavailable("⚠️ Capsule payload missing/corrupt.")

        try:
            record = decode_capsule(encoded)
        except CapsuleDecodeError:
            raise CapsuleUnavailable("⚠️ Capsule decode failed.")

        return message, record

    # =========================================================================
    # Restoring
    # =========================================================================

    async def restore_from_capsule(self, guild: discord.Guild, capsule: Dict[str, Any]) -> RestoreResult:
        """
        Replay a decoded restore capsule.

        Returns:
            RestoreResult with a user-facing message either way.
        """
        if not capsule or str(capsule.get("guildId")) != str(guild.id):
            return RestoreResult(False, "Capsule guild mismatch.")

        try:
            expires_at = int(capsule.get("expiresAt") or 0)
        except (TypeError, ValueError):
            expires_at = 0
        if self.state.now_ms() > expires_at:
            return RestoreResult(False, "Capsule expired.")

        capsule_type = capsule.get("type")
        if capsule_type == TYPE_MEMBER_ROLES:
            result = await self._restore_member_roles(guild, capsule)
        elif capsule_type == TYPE_MEMBERS_ROLES:
            result = await self._restore_many_member_roles(guild, capsule)
        elif capsule_type == TYPE_CHANNEL_RECREATE:
            result = await self._recreate_channel(guild, capsule.get("channel"))
        else:
            result = RestoreResult(False, "Unknown capsule type.")

        logger.tree("Capsule Restore", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Type", str(capsule_type)),
            ("Result", "OK" if result.ok else "Failed"),
            ("Message", result.message),
        ], emoji="♻️")
        return result

    async def _apply_roles(self, guild: discord.Guild, member: discord.Member, entry: Dict[str, Any]) -> bool:
        roles = resolve_role_set(
            guild,
            _as_id_list(entry.get("roleIds")),
            _as_id_list(entry.get("managedKeep")),
        )
        try:
            await member.edit(roles=roles, reason=RESTORE_REASON)
        except discord.Forbidden:
            logger.warning("Capsule Role Restore Forbidden", [
                ("Member", f"{member} ({member.id})"),
            ])
            return False
        except discord.HTTPException as e:
            log_http_error(e, "Capsule Role Restore", [
                ("Member", f"{member} ({member.id})"),
            ])
            return False
        return True

    async def _restore_member_roles(self, guild: discord.Guild, capsule: Dict[str, Any]) -> RestoreResult:
        try:
            target_id = int(capsule.get("targetId"))
        except (TypeError, ValueError):
            return RestoreResult(False, "Member not found in guild.")

        member = await fetch_member(guild, target_id)
        if member is None:
            return RestoreResult(False, "Member not found in guild.")

        if not await self._apply_roles(guild, member, capsule):
            return RestoreResult(False, "Failed to restore roles (permissions/hierarchy?).")
        return RestoreResult(True, f"Restored roles for {member} (best-effort).")

    async def _restore_many_member_roles(self, guild: discord.Guild, capsule: Dict[str, Any]) -> RestoreResult:
        targets = capsule.get("targets")
        if not isinstance(targets, list) or not targets:
            return RestoreResult(False, "Capsule has no members to restore.")

        restored = missing = failed = 0
        for entry in targets:
            if not isinstance(entry, dict):
                failed += 1
                continue
            try:
                member = await fetch_member(guild, int(entry.get("targetId")))
            except (TypeError, ValueError):
                member = None
            if member is None:
                missing += 1
                continue
            if await self._apply_roles(guild, member, entry):
                restored += 1
            else:
                failed += 1

        summary = f"Restored roles for {restored}/{len(targets)} members"
        if missing:
            summary += f", {missing} not found in guild"
        if failed:
            summary += f", {failed} failed"
        return RestoreResult(restored > 0, summary + ".")

    def _rebuild_overwrites(self, guild: discord.Guild, raw: Any) -> Dict[Any, discord.PermissionOverwrite]:
        overwrites: Dict[Any, discord.PermissionOverwrite] = {}
        if not isinstance(raw, list):
            return overwrites
        for item in raw:
            try:
                target_id = int(item["id"])
                allow = discord.Permissions(int(item.get("allow") or 0))
                deny = discord.Permissions(int(item.get("deny") or 0))
                kind = int(item.get("type", OVERWRITE_ROLE))
            except (KeyError, TypeError, ValueError):
                continue

            if kind == OVERWRITE_ROLE:
                target = guild.get_role(target_id)
                if target is None:
                    continue  # Deleted role, Discord rejects unknown role overwrites
            else:
                target = guild.get_member(target_id) or discord.Object(id=target_id, type=discord.Member)
            overwrites[target] = discord.PermissionOverwrite.from_pair(allow, deny)
        return overwrites

    async def _recreate_channel(self, guild: discord.Guild, snap: Any) -> RestoreResult:
        if not isinstance(snap, dict) or not snap.get("name"):
            return RestoreResult(False, "Capsule missing channel snapshot.")

        try:
            channel_type = discord.ChannelType(int(snap.get("type", 0)))
        except (TypeError, ValueError):
            return RestoreResult(False, "Failed to recreate channel (permissions/hierarchy?).")

        parent = None
        if snap.get("parentId"):
            candidate = guild.get_channel(int(snap["parentId"]))
            if isinstance(candidate, discord.CategoryChannel):
                parent = candidate

        name = snap["name"]
        overwrites = self._rebuild_overwrites(guild, snap.get("permissionOverwrites"))

        try:
            if channel_type in (discord.ChannelType.text, discord.ChannelType.news):
                recreated = await guild.create_text_channel(
                    name,
                    category=parent,
                    overwrites=overwrites,
                    news=channel_type == discord.ChannelType.news,
                    topic=snap.get("topic"),
                    nsfw=bool(snap.get("nsfw")),
                    slowmode_delay=int(snap.get("rateLimitPerUser") or 0),
                    reason=RESTORE_REASON,
                )
            elif channel_type == discord.ChannelType.voice:
                kwargs: Dict[str, Any] = {
                    "category": parent,
                    "overwrites": overwrites,
                    "user_limit": int(snap.get("userLimit") or 0),
                    "rtc_region": snap.get("rtcRegion"),
                    "reason": RESTORE_REASON,
                }
                if snap.get("bitrate"):
                    kwargs["bitrate"] = min(int(snap["bitrate"]), int(guild.bitrate_limit))
                if snap.get("videoQualityMode") is not None:
                    kwargs["video_quality_mode"] = discord.VideoQualityMode(int(snap["videoQualityMode"]))
                recreated = await guild.create_voice_channel(name, **kwargs)
            elif channel_type == discord.ChannelType.category:
                recreated = await guild.create_category(name, overwrites=overwrites, reason=RESTORE_REASON)
            elif channel_type == discord.ChannelType.stage_voice:
                recreated = await guild.create_stage_channel(
                    name, category=parent, overwrites=overwrites, reason=RESTORE_REASON,
                )
            elif channel_type == discord.ChannelType.forum:
                recreated = await guild.create_forum(
                    name, category=parent, overwrites=overwrites, reason=RESTORE_REASON,
                )
            else:
                return RestoreResult(False, "Failed to recreate channel (permissions/hierarchy?).")
        except discord.HTTPException as e:
            log_http_error(e, "Channel Recreate", [
                ("Guild", f"{guild.name} ({guild.id})"),
                ("Channel", name),
            ])
            return RestoreResult(False, "Failed to recreate channel (permissions/hierarchy?).")

        position = snap.get("position")
        if isinstance(position, int):
            try:
                await recreated.edit(position=position, reason=RESTORE_REASON)
            except discord.HTTPException as e:
                log_http_error(e, "Channel Reposition", [
                    ("Channel", f"#{recreated.name} ({recreated.id})"),
                ])

        return RestoreResult(True, f"Recreated channel: #{recreated.name}")


__all__ = [
    "CAPSULE_VERSION",
    "RESTORE_PREFIX",
    "THREAT_PREFIX",
    "TYPE_MEMBER_ROLES",
    "TYPE_MEMBERS_ROLES",
    "TYPE_CHANNEL_RECREATE",
    "TYPE_THREAT_LOG",
    "MESSAGE_LIMIT",
    "CapsuleDecodeError",
    "CapsuleUnavailable",
    "RestoreResult",
    "encode_capsule",
    "decode_capsule",
    "extract_capsule",
    "render_capsule_message",
    "build_capsule_record",
    "snapshot_member_roles",
    "snapshot_channel",
    "resolve_role_set",
    "CapsuleStore",
]
