"""
Tests for bright/services/antinuke/threats.py

Covers classification, which messages are scanned, per-author dedupe,
the threat log capsule, and the moderation actions.
"""

from datetime import timedelta
from unittest.mock import MagicMock

import discord
import pytest

from bright.services.antinuke.capsules import MESSAGE_LIMIT, CapsuleUnavailable, decode_capsule, extract_capsule
from bright.services.antinuke.constants import SEVERITY_CRITICAL, SEVERITY_HIGH
from bright.services.antinuke.threats import (
    MISSING_LOG_REPLY,
    build_user_info_embed,
    classify,
    render_threat_capsule,
    should_scan,
)
from bright.views.antinuke import ThreatLogView

from tests.conftest import FakeMessage, make_http_error


def make_message(guild, author, content, channel=None):
    return FakeMessage(channel or guild.general, content=content, author=author, guild=guild)


def threat_record(content):
    return {
        "v": 1,
        "guildId": "1",
        "at": 0,
        "expiresAt": 1_000_000,
        "type": "threat.log",
        "content": content,
        "actions": [],
    }


# =============================================================================
# Classification Tests
# =============================================================================

class TestClassify:
    """Tests for classify."""

    def test_nuking(self):
        rule = classify("we should NUKE the server tonight")
        assert rule.key == "nuking"
        assert rule.severity == SEVERITY_HIGH

    def test_violence(self):
        rule = classify("I'm going to kill you")
        assert rule.key == "violence"
        assert rule.severity == SEVERITY_CRITICAL

    def test_self_harm(self):
        assert classify("i want to end my life").key == "selfharm"

    def test_first_rule_wins(self):
        assert classify("raid then kill you").key == "nuking"

    def test_word_boundaries(self):
        assert classify("that is a mistab") is None
        assert classify("the nukes museum was great") is None

    def test_clean_text(self):
        assert classify("good morning everyone") is None
        assert classify("") is None
        assert classify(None) is None


class TestShouldScan:
    """Tests for should_scan."""

    def test_human_guild_message(self, guild):
        assert should_scan(make_message(guild, guild.add_member(), "hello"), "=")

    def test_bots_skipped(self, guild):
        assert not should_scan(make_message(guild, guild.add_member(bot=True), "raid"), "=")

    def test_commands_skipped(self, guild):
        assert not should_scan(make_message(guild, guild.add_member(), "  =whitelist raid"), "=")

    def test_dms_skipped(self, guild):
        message = make_message(guild, guild.add_member(), "raid")
        message.guild = None
        assert not should_scan(message, "=")


# =============================================================================
# Scanner Tests
# =============================================================================

class TestThreatScanner:
    """Tests for ThreatScanner.on_message."""

    @pytest.mark.asyncio
    async def test_threat_deleted_and_logged(self, service, guild, config, state):
        author = guild.add_member()
        message = make_message(guild, author, "let's nuke the server")

        log = await service.threats.on_message(message)

        message.delete.assert_awaited_once()
        channel = guild.channel_named(config.threats_channel_name)
        assert log is channel.sent[0]

        record = decode_capsule(extract_capsule(log.content, "threat"))
        assert record["category"] == "nuking"
        assert record["authorId"] == str(author.id)
        assert record["deleted"] is True
        assert record["ignored"] is False
        assert record["actions"] == []
        assert record["expiresAt"] == state.now_ms() + config.threat_capsule_ttl * 1000

        log.delete.assert_awaited_once_with(delay=config.threat_capsule_ttl)

    @pytest.mark.asyncio
    async def test_log_buttons_address_real_message(self, service, guild):
        author = guild.add_member()
        log = await service.threats.on_message(make_message(guild, author, "raid"))

        assert isinstance(log.view, ThreatLogView)
        custom_ids = [child.item.custom_id for child in log.view.children]
        assert custom_ids[0] == f"bth:menu:{guild.id}:{log.id}:{author.id}"

    @pytest.mark.asyncio
    async def test_placeholder_id_before_edit(self, service, guild):
        author = guild.add_member()
        await service.threats.on_message(make_message(guild, author, "raid"))

        channel = guild.channel_named(service.config.threats_channel_name)
        first_view = channel.send.call_args.kwargs["view"]
        assert first_view.children[1].item.custom_id == f"bth:ignore:{guild.id}:pending:{author.id}"

    @pytest.mark.asyncio
    async def test_dedupe_per_author(self, service, guild, config, clock):
        author = guild.add_member()

        assert await service.threats.on_message(make_message(guild, author, "raid")) is not None
        assert await service.threats.on_message(make_message(guild, author, "raid")) is None

        clock.advance(config.threat_dedupe + 1)
        assert await service.threats.on_message(make_message(guild, author, "raid")) is not None

    @pytest.mark.asyncio
    async def test_undeletable_message_still_logged(self, service, guild):
        message = make_message(guild, guild.add_member(), "kill you")
        message.delete.side_effect = make_http_error(discord.Forbidden, 403)

        log = await service.threats.on_message(message)

        assert decode_capsule(extract_capsule(log.content, "threat"))["deleted"] is False

    @pytest.mark.asyncio
    async def test_clean_message_ignored(self, service, guild):
        message = make_message(guild, guild.add_member(), "hello")
        assert await service.threats.on_message(message) is None
        message.delete.assert_not_awaited()


class TestRenderThreatCapsule:
    """Tests for render_threat_capsule."""

    def test_short_content_untouched(self):
        record = threat_record("raid")
        assert len(render_threat_capsule(record)) <= MESSAGE_LIMIT
        assert record["content"] == "raid"

    def test_long_content_shrunk_to_fit(self):
        record = threat_record("raid " * 700)

        rendered = render_threat_capsule(record)

        assert len(rendered) <= MESSAGE_LIMIT
        assert 0 < len(record["content"]) < 3500
        assert decode_capsule(extract_capsule(rendered, "threat"))["content"] == record["content"]


# =============================================================================
# Log Update Tests
# =============================================================================

class TestThreatLogUpdates:
    """Tests for load_threat_log, append_action, mark_ignored."""

    @pytest.mark.asyncio
    async def test_load_missing_channel(self, service, guild):
        with pytest.raises(CapsuleUnavailable) as exc:
            await service.threats.load_threat_log(guild, 123)
        assert exc.value.reply == MISSING_LOG_REPLY

    @pytest.mark.asyncio
    async def test_load_pending_id(self, service, guild):
        await service.threats.on_message(make_message(guild, guild.add_member(), "raid"))
        with pytest.raises(CapsuleUnavailable):
            await service.threats.load_threat_log(guild, None)

    @pytest.mark.asyncio
    async def test_append_action(self, service, guild, state):
        author, moderator = guild.add_member(), guild.add_member()
        log = await service.threats.on_message(make_message(guild, author, "raid"))
        message, record = await service.threats.load_threat_log(guild, log.id)

        await service.threats.append_action(message, record, moderator, "Kick")

        updated = decode_capsule(extract_capsule(log.content, "threat"))
        assert updated["actions"] == [{"by": str(moderator.id), "at": state.now_ms(), "action": "Kick"}]
        assert log.embeds[0].footer.text == f"Last action: Kick by {moderator}"

    @pytest.mark.asyncio
    async def test_mark_ignored_disables_buttons(self, service, guild):
        author, moderator = guild.add_member(), guild.add_member()
        log = await service.threats.on_message(make_message(guild, author, "raid"))
        message, record = await service.threats.load_threat_log(guild, log.id)

        await service.threats.mark_ignored(guild, message, record, moderator, author.id)

        updated = decode_capsule(extract_capsule(log.content, "threat"))
        assert updated["ignored"] is True
        assert updated["actions"][-1]["action"] == "Ignored"
        assert all(child.item.disabled for child in log.view.children)
        status = next(f.value for f in log.embeds[0].fields if f.name == "Status")
        assert status == f"✅ Ignored by <@{moderator.id}>"


# =============================================================================
# Moderation Action Tests
# =============================================================================

class TestApplyAction:
    """Tests for ThreatScanner.apply_action."""

    @pytest.mark.asyncio
    async def test_timeout(self, service, guild):
        target, moderator = guild.add_member(), guild.add_member()

        applied, reply = await service.threats.apply_action(guild, target, "timeout1h", moderator, 5)

        assert applied is True
        assert reply == f"✅ Timeout 1h applied to {target}."
        assert target.timeout.call_args.args[0] == timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_kick(self, service, guild):
        target, moderator = guild.add_member(), guild.add_member()

        applied, reply = await service.threats.apply_action(guild, target, "kick", moderator, 5)

        assert (applied, reply) == (True, f"✅ Kicked {target.id}.")
        target.kick.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_ban_keeps_messages(self, service, guild):
        target, moderator = guild.add_member(), guild.add_member()

        applied, _ = await service.threats.apply_action(guild, target, "ban", moderator, 5)

        assert applied is True
        assert guild.ban.call_args.kwargs["delete_message_seconds"] == 0

    @pytest.mark.asyncio
    async def test_dismiss(self, service, guild):
        target, moderator = guild.add_member(), guild.add_member()
        assert await service.threats.apply_action(guild, target, "dismiss", moderator, 5) == (True, "✅ Dismissed.")
        target.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_hierarchy_blocks(self, service, guild):
        target, moderator = guild.add_member(top_role=999), guild.add_member()

        applied, reply = await service.threats.apply_action(guild, target, "kick", moderator, 5)

        assert (applied, reply) == (False, "⚠️ Cannot kick this member (hierarchy/perms).")
        target.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_permission_blocks(self, service, guild):
        guild.me.guild_permissions = discord.Permissions(kick_members=True)
        target, moderator = guild.add_member(), guild.add_member()

        applied, reply = await service.threats.apply_action(guild, target, "ban", moderator, 5)

        assert (applied, reply) == (False, "⚠️ Cannot ban this member (hierarchy/perms).")

    @pytest.mark.asyncio
    async def test_owner_untouchable(self, service, guild):
        moderator = guild.add_member()
        applied, _ = await service.threats.apply_action(guild, guild.owner, "timeout10m", moderator, 5)
        assert applied is False

    @pytest.mark.asyncio
    async def test_forbidden_reported(self, service, guild):
        target, moderator = guild.add_member(), guild.add_member()
        target.kick.side_effect = make_http_error(discord.Forbidden, 403)

        assert await service.threats.apply_action(guild, target, "kick", moderator, 5) == (
            False, "⚠️ Kick failed (missing permissions).",
        )


class TestUserInfoEmbed:
    def test_roles_listed(self, guild):
        role = guild.add_role()
        member = guild.add_member(roles=[role])

        embed = build_user_info_embed(member, member)

        fields = {f.name: f.value for f in embed.fields}
        assert fields["Roles (top 25)"] == role.mention
        assert fields["Bot"] == "❌ No"

    def test_user_not_in_guild(self):
        user = MagicMock(spec=discord.User)
        user.id = 1
        user.bot = False
        user.created_at = discord.utils.utcnow()
        user.display_avatar.url = "https://cdn.example/a.png"

        embed = build_user_info_embed(user, None)

        fields = {f.name: f.value for f in embed.fields}
        assert fields["Joined Server"] == "(not in guild?)"
        assert fields["Roles (top 25)"] == "(none)"
