"""
Tests for bright/services/antinuke/whitelist.py and bright/commands/whitelist.py

Covers scope parsing, grant/revoke semantics, implicit owner and
super-admin scopes, and the `=whitelist` / `=removewhitelist` / `=wlman`
text commands.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from bright.commands.whitelist import WhitelistCog, build_help_text
from bright.services.antinuke.constants import ActionKind
from bright.services.antinuke.whitelist import (
    add_scopes,
    format_scopes,
    has_scope,
    is_whitelist_manager,
    is_whitelisted_for,
    normalize_scopes,
    parse_scope_tokens,
    parse_user_id,
    remove_scopes,
)

from tests.conftest import GUILD_ID, OWNER_ID, SUPER_ADMIN_ID


# =============================================================================
# Parsing Tests
# =============================================================================

class TestNormalizeScopes:
    """Tests for normalize_scopes."""

    def test_empty_means_all(self):
        assert normalize_scopes([]) == {"all"}
        assert normalize_scopes(None) == {"all"}

    def test_lowercases_and_strips_commas(self):
        assert normalize_scopes(["Roles,", "CHANNELS"]) == {"roles", "channels"}

    def test_unknown_tokens_dropped(self):
        assert normalize_scopes(["roles", "everything"]) == {"roles"}

    def test_only_unknown_tokens_means_all(self):
        assert normalize_scopes(["nonsense"]) == {"all"}


class TestParseScopeTokens:
    """Tests for parse_scope_tokens."""

    def test_with_for(self):
        tokens = ["=whitelist", "123", "for", "roles", "bans"]
        assert parse_scope_tokens(tokens) == ["roles", "bans"]

    def test_without_for(self):
        tokens = ["=whitelist", "123", "roles", "bans"]
        assert parse_scope_tokens(tokens) == ["roles", "bans"]

    def test_user_only(self):
        assert parse_scope_tokens(["=whitelist", "123"]) == []


class TestParseUserId:
    """Tests for parse_user_id."""

    def test_bare_id(self):
        assert parse_user_id("123456789012345678") == 123456789012345678

    def test_mentions(self):
        assert parse_user_id("<@123456789012345678>") == 123456789012345678
        assert parse_user_id("<@!123456789012345678>") == 123456789012345678

    def test_rejects_short_and_garbage(self):
        assert parse_user_id("12345") is None
        assert parse_user_id("roles") is None
        assert parse_user_id(None) is None


class TestFormatScopes:
    def test_sorted(self):
        assert format_scopes({"roles", "bans"}) == "bans, roles"

    def test_empty(self):
        assert format_scopes(set()) == "none"


# =============================================================================
# Grant / Revoke Tests
# =============================================================================

class TestAddScopes:
    """Tests for add_scopes."""

    def test_merges_scopes(self, state):
        add_scopes(state, GUILD_ID, 1, {"roles"})
        assert add_scopes(state, GUILD_ID, 1, {"bans"}) == {"roles", "bans"}

    def test_all_collapses(self, state):
        add_scopes(state, GUILD_ID, 1, {"roles"})
        assert add_scopes(state, GUILD_ID, 1, {"all"}) == {"all"}

    def test_adding_to_all_stays_all(self, state):
        add_scopes(state, GUILD_ID, 1, {"all"})
        assert add_scopes(state, GUILD_ID, 1, {"roles"}) == {"all"}


class TestRemoveScopes:
    """Tests for remove_scopes."""

    def test_partial_removal(self, state):
        add_scopes(state, GUILD_ID, 1, {"roles", "bans"})
        assert remove_scopes(state, GUILD_ID, 1, {"roles"}) == {"bans"}

    def test_removing_last_scope_deletes_entry(self, state):
        add_scopes(state, GUILD_ID, 1, {"roles"})
        assert remove_scopes(state, GUILD_ID, 1, {"roles"}) is None
        assert 1 not in state.guild(GUILD_ID).whitelist

    def test_no_scopes_removes_entry(self, state):
        add_scopes(state, GUILD_ID, 1, {"roles", "bans"})
        assert remove_scopes(state, GUILD_ID, 1, None) is None
        assert 1 not in state.guild(GUILD_ID).whitelist

    def test_partial_removal_from_all_removes_entry(self, state):
        add_scopes(state, GUILD_ID, 1, {"all"})
        assert remove_scopes(state, GUILD_ID, 1, {"roles"}) is None
        assert 1 not in state.guild(GUILD_ID).whitelist

    def test_unknown_user(self, state):
        assert remove_scopes(state, GUILD_ID, 99, {"roles"}) is None


# =============================================================================
# Check Tests
# =============================================================================

class TestHasScope:
    """Tests for has_scope and friends."""

    def test_owner_and_super_admin_hold_everything(self, state, guild):
        assert has_scope(state, guild, OWNER_ID, "bot-adds")
        assert has_scope(state, guild, SUPER_ADMIN_ID, "threats")

    def test_scoped_user(self, state, guild):
        add_scopes(state, guild.id, 7, {"restore"})
        assert has_scope(state, guild, 7, "restore")
        assert not has_scope(state, guild, 7, "bot-adds")

    def test_all_scope(self, state, guild):
        add_scopes(state, guild.id, 7, {"all"})
        assert has_scope(state, guild, 7, "bot-adds")

    def test_whitelisted_for_action_kind(self, state, guild):
        add_scopes(state, guild.id, 7, {"channels"})
        assert is_whitelisted_for(state, guild, 7, ActionKind.CATEGORY_DELETE)
        assert not is_whitelisted_for(state, guild, 7, ActionKind.ROLE_DELETE)

    def test_whitelist_scopes_are_per_guild(self, state, guild):
        add_scopes(state, guild.id + 1, 7, {"all"})
        assert not has_scope(state, guild, 7, "roles")

    def test_manager_gains_no_scopes(self, state, guild):
        state.guild(guild.id).whitelist_managers.add(7)
        assert is_whitelist_manager(state, guild, 7)
        assert not has_scope(state, guild, 7, "roles")


# =============================================================================
# Command Tests
# =============================================================================

def make_ctx(guild, author, content, mentions=None):
    ctx = MagicMock()
    ctx.guild = guild
    ctx.author = author
    ctx.message.content = content
    ctx.message.mentions = mentions or []
    ctx.reply = AsyncMock()
    return ctx


@pytest.fixture
def cog(bot, service, guild):
    bot.get_user = MagicMock(side_effect=lambda uid: guild.members.get(uid))
    return WhitelistCog(bot)


class TestWhitelistCommand:
    """Tests for =whitelist."""

    @pytest.mark.asyncio
    async def test_owner_whitelists_with_for(self, cog, guild, state):
        target = guild.add_member()
        ctx = make_ctx(guild, guild.owner, f"=whitelist <@{target.id}> for roles, channels")

        await cog.whitelist.callback(cog, ctx)

        assert state.guild(guild.id).whitelist[target.id] == {"roles", "channels"}
        reply = ctx.reply.call_args.args[0]
        assert reply == f"✅ Whitelisted **{target}** for: `channels, roles`"

    @pytest.mark.asyncio
    async def test_defaults_to_all(self, cog, guild, state):
        target = guild.add_member()
        ctx = make_ctx(guild, guild.owner, f"=whitelist {target.id}")

        await cog.whitelist.callback(cog, ctx)

        assert state.guild(guild.id).whitelist[target.id] == {"all"}

    @pytest.mark.asyncio
    async def test_mention_wins_over_token(self, cog, guild, state):
        target = guild.add_member()
        ctx = make_ctx(guild, guild.owner, "=whitelist someone bans", mentions=[target])

        await cog.whitelist.callback(cog, ctx)

        assert state.guild(guild.id).whitelist[target.id] == {"bans"}

    @pytest.mark.asyncio
    async def test_non_manager_rejected(self, cog, guild, state):
        intruder = guild.add_member()
        target = guild.add_member()
        ctx = make_ctx(guild, intruder, f"=whitelist {target.id}")

        await cog.whitelist.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with("⚠️ You are not allowed to manage the whitelist.", mention_author=False)
        assert state.guild(guild.id).whitelist == {}

    @pytest.mark.asyncio
    async def test_manager_may_whitelist(self, cog, guild, state):
        manager = guild.add_member()
        target = guild.add_member()
        state.guild(guild.id).whitelist_managers.add(manager.id)
        ctx = make_ctx(guild, manager, f"=whitelist {target.id} restore")

        await cog.whitelist.callback(cog, ctx)

        assert state.guild(guild.id).whitelist[target.id] == {"restore"}

    @pytest.mark.asyncio
    async def test_invalid_user(self, cog, guild):
        ctx = make_ctx(guild, guild.owner, "=whitelist nobody")

        await cog.whitelist.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with("⚠️ Invalid user ID/mention.", mention_author=False)

    @pytest.mark.asyncio
    async def test_list_empty(self, cog, guild):
        ctx = make_ctx(guild, guild.owner, "=whitelist list")

        await cog.whitelist.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with("✅ Whitelist is empty.", mention_author=False)

    @pytest.mark.asyncio
    async def test_list_shows_entries(self, cog, guild, state):
        add_scopes(state, guild.id, 42, {"bans"})
        ctx = make_ctx(guild, guild.owner, "=whitelist list")

        await cog.whitelist.callback(cog, ctx)

        assert "• **42** → `bans`" in ctx.reply.call_args.args[0]


class TestRemoveWhitelistCommand:
    """Tests for =removewhitelist."""

    @pytest.mark.asyncio
    async def test_not_whitelisted(self, cog, guild):
        target = guild.add_member()
        ctx = make_ctx(guild, guild.owner, f"=removewhitelist {target.id}")

        await cog.removewhitelist.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with(f"ℹ️ {target} is not whitelisted.", mention_author=False)

    @pytest.mark.asyncio
    async def test_partial_removal(self, cog, guild, state):
        target = guild.add_member()
        add_scopes(state, guild.id, target.id, {"roles", "bans"})
        ctx = make_ctx(guild, guild.owner, f"=removewhitelist {target.id} roles")

        await cog.removewhitelist.callback(cog, ctx)

        assert state.guild(guild.id).whitelist[target.id] == {"bans"}
        assert ctx.reply.call_args.args[0] == f"✅ Updated whitelist for **{target}**: `bans`"

    @pytest.mark.asyncio
    async def test_partial_removal_from_all_drops_entry(self, cog, guild, state):
        target = guild.add_member()
        add_scopes(state, guild.id, target.id, {"all"})
        ctx = make_ctx(guild, guild.owner, f"=removewhitelist {target.id} for roles")

        await cog.removewhitelist.callback(cog, ctx)

        assert target.id not in state.guild(guild.id).whitelist
        assert ctx.reply.call_args.args[0].startswith(f"✅ Removed **{target}** from `all` whitelist.")

    @pytest.mark.asyncio
    async def test_full_removal(self, cog, guild, state):
        target = guild.add_member()
        add_scopes(state, guild.id, target.id, {"roles"})
        ctx = make_ctx(guild, guild.owner, f"=removewhitelist {target.id}")

        await cog.removewhitelist.callback(cog, ctx)

        assert target.id not in state.guild(guild.id).whitelist


class TestWlmanCommand:
    """Tests for =wlman."""

    @pytest.mark.asyncio
    async def test_only_privileged(self, cog, guild, state):
        manager = guild.add_member()
        state.guild(guild.id).whitelist_managers.add(manager.id)
        ctx = make_ctx(guild, manager, "=wlman list")

        await cog.wlman.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with(
            "⚠️ Only the server owner / bot admin can manage whitelist managers.", mention_author=False,
        )

    @pytest.mark.asyncio
    async def test_add_and_remove(self, cog, guild, state):
        target = guild.add_member()

        await cog.wlman.callback(cog, make_ctx(guild, guild.owner, f"=wlman add {target.id}"))
        assert target.id in state.guild(guild.id).whitelist_managers

        await cog.wlman.callback(cog, make_ctx(guild, guild.owner, f"=wlman remove {target.id}"))
        assert target.id not in state.guild(guild.id).whitelist_managers

    @pytest.mark.asyncio
    async def test_list_empty(self, cog, guild):
        ctx = make_ctx(guild, guild.owner, "=wlman list")

        await cog.wlman.callback(cog, ctx)

        ctx.reply.assert_awaited_once_with("✅ No whitelist managers set.", mention_author=False)

    @pytest.mark.asyncio
    async def test_unknown_subcommand_shows_usage(self, cog, guild):
        ctx = make_ctx(guild, guild.owner, "=wlman")

        await cog.wlman.callback(cog, ctx)

        assert ctx.reply.call_args.args[0].startswith("**Whitelist manager commands**")


class TestHelpText:
    def test_mentions_prefix_and_channels(self, config):
        text = build_help_text("=", config)
        assert "`=whitelist <@user|id>`" in text
        assert "#bright-log" in text
        assert "#bright-threats" in text
