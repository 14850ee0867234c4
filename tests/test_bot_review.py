"""
Tests for bright/services/antinuke/bot_review.py

Covers the kick-first gate for bots with dangerous permissions:
approve/deny decisions, dedupe, the role-strip fallback, and the
review panel.
"""

import discord
import pytest

from bright.services.antinuke.bot_review import (
    ORIGIN_JOIN,
    ORIGIN_ROLE_UPDATE,
    REASON_DENIED,
    REASON_GRANTED_DANGEROUS,
    REASON_JOINED_DANGEROUS,
    STATUS_APPROVED,
    STATUS_DENIED,
    STATUS_PENDING,
    STATUS_UNSEEN,
    build_review_embed,
)
from bright.views.antinuke import BotReviewView

from tests.conftest import make_member


ADMIN = discord.Permissions(administrator=True)


@pytest.fixture
def adder(guild):
    return guild.add_member()


def review_channel(guild, config):
    return guild.channel_named(config.review_channel_name)


class TestBotJoin:
    """Tests for BotReviewGate.on_bot_join."""

    @pytest.mark.asyncio
    async def test_dangerous_bot_kicked_and_panel_posted(self, service, guild, config, adder, clock):
        bot_member = guild.add_member(bot=True, permissions=ADMIN)
        guild.log_audit(discord.AuditLogAction.bot_add, adder, bot_member.id, clock())

        assert await service.bot_review.on_bot_join(bot_member) is True

        bot_member.kick.assert_awaited_once_with(reason=f"Bright Review: {REASON_JOINED_DANGEROUS}")
        pending = service.state.guild(guild.id).pending_bots[bot_member.id]
        assert pending.origin == ORIGIN_JOIN
        assert pending.adder_id == adder.id
        assert pending.permissions == ["Administrator"]

        channel = review_channel(guild, config)
        panel = channel.sent[0]
        assert panel.content == f"<@{guild.owner_id}>"
        assert panel.embeds[0].title == "🚨 Bright Review: Bot Kicked"
        assert isinstance(panel.view, BotReviewView)

    @pytest.mark.asyncio
    async def test_unknown_adder(self, service, guild, config):
        bot_member = guild.add_member(bot=True, permissions=ADMIN)

        await service.bot_review.on_bot_join(bot_member)

        embed = review_channel(guild, config).sent[0].embeds[0]
        adder_field = next(f for f in embed.fields if f.name == "Added / Changed by")
        assert adder_field.value == "Unknown (audit log missing)"

    @pytest.mark.asyncio
    async def test_harmless_bot_ignored(self, service, guild):
        bot_member = guild.add_member(bot=True, permissions=discord.Permissions(send_messages=True))

        assert await service.bot_review.on_bot_join(bot_member) is False
        bot_member.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_approved_bot_ignored(self, service, guild):
        bot_member = guild.add_member(bot=True, permissions=ADMIN)
        service.bot_review.decide(guild.id, bot_member.id, approve=True)

        assert await service.bot_review.on_bot_join(bot_member) is False
        bot_member.kick.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_denied_bot_kicked_without_dangerous_perms(self, service, guild):
        bot_member = guild.add_member(bot=True)
        service.bot_review.decide(guild.id, bot_member.id, approve=False)

        assert await service.bot_review.on_bot_join(bot_member) is True
        bot_member.kick.assert_awaited_once_with(reason=f"Bright Review: {REASON_DENIED}")

    @pytest.mark.asyncio
    async def test_dedupe_window(self, service, guild, config, clock):
        bot_member = guild.add_member(bot=True, permissions=ADMIN)

        assert await service.bot_review.on_bot_join(bot_member) is True
        clock.advance(config.bot_review_dedupe - 1)
        assert await service.bot_review.on_bot_join(bot_member) is False
        assert bot_member.kick.await_count == 1

        clock.advance(2)
        assert await service.bot_review.on_bot_join(bot_member) is True
        assert bot_member.kick.await_count == 2

    @pytest.mark.asyncio
    async def test_strips_roles_when_kick_impossible(self, service, guild):
        bot_member = guild.add_member(bot=True, permissions=ADMIN, top_role=500)

        await service.bot_review.on_bot_join(bot_member)

        bot_member.kick.assert_not_awaited()
        bot_member.edit.assert_awaited_once_with(roles=[], reason=f"Bright Review: {REASON_JOINED_DANGEROUS}")

    @pytest.mark.asyncio
    async def test_service_ignores_humans(self, service, guild):
        human = guild.add_member(permissions=ADMIN)
        await service.on_member_join(human)
        human.kick.assert_not_awaited()


class TestBotUpdate:
    """Tests for BotReviewGate.on_bot_update."""

    @pytest.mark.asyncio
    async def test_granted_dangerous_role(self, service, guild, adder, clock):
        admin_role = guild.add_role(permissions=ADMIN)
        before = make_member(guild, member_id=12345678901234567, bot=True)
        after = make_member(guild, member_id=before.id, bot=True, roles=[admin_role], permissions=ADMIN)
        guild.log_audit(discord.AuditLogAction.member_role_update, adder, after.id, clock())

        assert await service.bot_review.on_bot_update(before, after) is True

        after.kick.assert_awaited_once_with(reason=f"Bright Review: {REASON_GRANTED_DANGEROUS}")
        pending = service.state.guild(guild.id).pending_bots[after.id]
        assert pending.origin == ORIGIN_ROLE_UPDATE
        assert pending.adder_id == adder.id

    @pytest.mark.asyncio
    async def test_no_role_change_ignored(self, service, guild):
        before = make_member(guild, member_id=12345678901234567, bot=True, permissions=ADMIN)
        after = make_member(guild, member_id=before.id, bot=True, permissions=ADMIN)

        assert await service.bot_review.on_bot_update(before, after) is False

    @pytest.mark.asyncio
    async def test_recent_pending_suppresses(self, service, guild):
        bot_member = guild.add_member(bot=True, permissions=ADMIN)
        await service.bot_review.on_bot_join(bot_member)

        admin_role = guild.add_role(permissions=ADMIN)
        after = make_member(guild, member_id=bot_member.id, bot=True, roles=[admin_role], permissions=ADMIN)

        assert await service.bot_review.on_bot_update(bot_member, after) is False

    @pytest.mark.asyncio
    async def test_service_routes_bots(self, service, guild):
        admin_role = guild.add_role(permissions=ADMIN)
        before = make_member(guild, member_id=12345678901234567, bot=True)
        after = make_member(guild, member_id=before.id, bot=True, roles=[admin_role], permissions=ADMIN)

        await service.on_member_update(before, after)

        after.kick.assert_awaited_once()


class TestDecisions:
    """Tests for status and decide."""

    @pytest.mark.asyncio
    async def test_status_transitions(self, service, guild):
        gate = service.bot_review
        bot_member = guild.add_member(bot=True, permissions=ADMIN)
        assert gate.status(guild.id, bot_member.id) == STATUS_UNSEEN

        await gate.on_bot_join(bot_member)
        assert gate.status(guild.id, bot_member.id) == STATUS_PENDING

        gate.decide(guild.id, bot_member.id, approve=True)
        assert gate.status(guild.id, bot_member.id) == STATUS_APPROVED
        assert bot_member.id not in service.state.guild(guild.id).pending_bots

        gate.decide(guild.id, bot_member.id, approve=False)
        assert gate.status(guild.id, bot_member.id) == STATUS_DENIED
        assert bot_member.id not in service.state.guild(guild.id).approved_bots

    def test_decide_is_idempotent(self, service, guild):
        service.bot_review.decide(guild.id, 9, approve=False)
        service.bot_review.decide(guild.id, 9, approve=False)
        assert service.state.guild(guild.id).denied_bots == {9}


class TestReviewEmbed:
    def test_fields(self, guild):
        bot_member = make_member(guild, bot=True)
        embed = build_review_embed(guild, bot_member, None, "reason", ["Administrator", "Ban Members"], ORIGIN_JOIN)

        fields = {f.name: f.value for f in embed.fields}
        assert fields["Dangerous Permissions"] == "Administrator, Ban Members"
        assert fields["Event"] == ORIGIN_JOIN
        assert embed.footer.text == "Buttons require owner/super-admin or whitelist scope: bot-adds/all."
