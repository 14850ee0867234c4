"""
Bright Guard - Whitelist Commands
=================================

`=` prefix text commands for the scoped whitelist.

Commands:
    =help
    =whitelist <@user|id> [for] [scopes...]
    =whitelist list
    =removewhitelist <@user|id> [for] [scopes...]
    =wlman add|remove|list <@user|id>

Arguments are split on whitespace from the raw message, so `for` is
optional and trailing commas on scopes are ignored.

Author: حَـــــنَّـــــا
"""

from typing import TYPE_CHECKING, List, Optional, Union

import discord
from discord.ext import commands

from bright.core.config import Config, get_config
from bright.core.logger import logger
from bright.services.antinuke.constants import SCOPE_ALL
from bright.services.antinuke.whitelist import (
    add_scopes,
    format_scopes,
    is_whitelist_manager,
    normalize_scopes,
    parse_scope_tokens,
    parse_user_id,
    remove_scopes,
)

if TYPE_CHECKING:
    from bright.bot import BrightBot


def build_help_text(prefix: str, config: Config) -> str:
    p = prefix
    return (
        "**Anti-nuke commands**\n"
        f"• `{p}help`\n"
        f"• `{p}whitelist <@user|id>` *(defaults to `all`)*\n"
        f"• `{p}whitelist <@user|id> for <scopes...>`\n"
        f"• `{p}whitelist <@user|id> <scopes...>` *(no \"for\" needed)*\n"
        f"• `{p}whitelist list`\n"
        f"• `{p}removewhitelist <@user|id>`\n"
        f"• `{p}removewhitelist <@user|id> for <scopes...>`\n"
        f"• `{p}removewhitelist <@user|id> <scopes...>` *(no \"for\" needed)*\n\n"
        "**Whitelist manager**\n"
        f"• `{p}wlman add <@user|id>`\n"
        f"• `{p}wlman remove <@user|id>`\n"
        f"• `{p}wlman list`\n\n"
        "**Scopes**:\n"
        "• `roles`, `channels`, `webhooks`, `bans`, `admin`\n"
        "• `restore` (can use restore buttons)\n"
        "• `bot-adds` (can Accept/Deny bot review)\n"
        "• `threats` (can use threat log/action buttons)\n"
        "• `all`\n\n"
        "**Restore (no database)**\n"
        "Panels include restore buttons when Bright takes action. "
        f"Capsules are stored in #{config.log_channel_name}.\n"
        "**Threats**\n"
        f"Threat logs are stored in #{config.threats_channel_name}.\n"
    )


class WhitelistCog(commands.Cog):
    """Whitelist and whitelist-manager text commands."""

    def __init__(self, bot: "BrightBot") -> None:
        self.bot = bot
        self.config = get_config()

    @property
    def state(self):
        return self.bot.antinuke.state

    async def _resolve_user(
        self,
        message: discord.Message,
        token: Optional[str],
    ) -> Optional[Union[discord.User, discord.Member]]:
        if message.mentions:
            return message.mentions[0]
        user_id = parse_user_id(token)
        if user_id is None:
            return None
        user = self.bot.get_user(user_id)
        if user is not None:
            return user
        try:
            return await self.bot.fetch_user(user_id)
        except discord.HTTPException:
            return None

    # =========================================================================
    # Help
    # =========================================================================

    @commands.command(name="help")
    @commands.guild_only()
    async def help_command(self, ctx: commands.Context) -> None:
        await ctx.reply(build_help_text(self.config.command_prefix, self.config), mention_author=False)

    # =========================================================================
    # Whitelist Managers
    # =========================================================================

    @commands.command(name="wlman")
    @commands.guild_only()
    async def wlman(self, ctx: commands.Context) -> None:
        """Owner / super-admin only: manage who may edit the whitelist."""
        guild = ctx.guild
        tokens = ctx.message.content.split()

        if not self.state.is_privileged(guild, ctx.author.id):
            await ctx.reply("⚠️ Only the server owner / bot admin can manage whitelist managers.", mention_author=False)
            return

        sub = tokens[1].lower() if len(tokens) > 1 else ""
        managers = self.state.guild(guild.id).whitelist_managers

        if sub == "list":
            if not managers:
                await ctx.reply("✅ No whitelist managers set.", mention_author=False)
                return
            lines = "\n".join(f"• <@{uid}> (`{uid}`)" for uid in sorted(managers))
            await ctx.reply(f"✅ Whitelist managers:\n{lines}", mention_author=False)
            return

        if sub not in ("add", "remove"):
            p = self.config.command_prefix
            await ctx.reply(
                "**Whitelist manager commands**\n"
                f"• `{p}wlman add <@user|id>`\n"
                f"• `{p}wlman remove <@user|id>`\n"
                f"• `{p}wlman list`",
                mention_author=False,
            )
            return

        target = await self._resolve_user(ctx.message, tokens[2] if len(tokens) > 2 else None)
        if target is None:
            await ctx.reply("⚠️ Invalid user ID/mention.", mention_author=False)
            return

        if sub == "add":
            managers.add(target.id)
            reply = f"✅ Added **{target}** as a whitelist manager."
        else:
            managers.discard(target.id)
            reply = f"✅ Removed **{target}** from whitelist managers."

        logger.tree("Whitelist Managers Updated", [
            ("Guild", f"{guild.name} ({guild.id})"),
            ("Action", sub),
            ("Target", f"{target} ({target.id})"),
            ("By", f"{ctx.author} ({ctx.author.id})"),
        ], emoji="🗝️")
        await ctx.reply(reply, mention_author=False)

    # =========================================================================
    # Whitelist
    # =========================================================================

    @commands.command(name="whitelist")
    @commands.guild_only()
    async def whitelist(self, ctx: commands.Context) -> None:
        guild = ctx.guild
        tokens = ctx.message.content.split()

        if len(tokens) > 1 and tokens[1].lower() == "list":
            entries = self.state.guild(guild.id).whitelist
            if not entries:
                await ctx.reply("✅ Whitelist is empty.", mention_author=False)
                return
            lines = "\n".join(f"• **{uid}** → `{format_scopes(scopes)}`" for uid, scopes in entries.items())
            await ctx.reply(f"✅ Whitelisted users:\n{lines}", mention_author=False)
            return

        target = await self._check_and_resolve(ctx, tokens)
        if target is None:
            return

        scopes = add_scopes(self.state, guild.id, target.id, normalize_scopes(parse_scope_tokens(tokens)))
        self._log_change(ctx, target, "Added", scopes)
        await ctx.reply(f"✅ Whitelisted **{target}** for: `{format_scopes(scopes)}`", mention_author=False)

    @commands.command(name="removewhitelist")
    @commands.guild_only()
    async def removewhitelist(self, ctx: commands.Context) -> None:
        guild = ctx.guild
        tokens = ctx.message.content.split()

        target = await self._check_and_resolve(ctx, tokens)
        if target is None:
            return

        entries = self.state.guild(guild.id).whitelist
        existing = entries.get(target.id)
        if existing is None:
            await ctx.reply(f"ℹ️ {target} is not whitelisted.", mention_author=False)
            return

        named = parse_scope_tokens(tokens)
        scopes = normalize_scopes(named)

        if not named or SCOPE_ALL in scopes:
            remove_scopes(self.state, guild.id, target.id, None)
            self._log_change(ctx, target, "Removed", None)
            await ctx.reply(f"✅ Removed **{target}** from the whitelist.", mention_author=False)
            return

        if SCOPE_ALL in existing:
            remove_scopes(self.state, guild.id, target.id, scopes)
            self._log_change(ctx, target, "Removed", None)
            await ctx.reply(
                f"✅ Removed **{target}** from `all` whitelist.\n"
                f"Re-add partial with: `{self.config.command_prefix}whitelist {target.id} restore bot-adds threats`",
                mention_author=False,
            )
            return

        remaining = remove_scopes(self.state, guild.id, target.id, scopes)
        self._log_change(ctx, target, "Updated", remaining)
        shown = f"`{format_scopes(remaining)}`" if remaining else "`(removed)`"
        await ctx.reply(f"✅ Updated whitelist for **{target}**: {shown}", mention_author=False)

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _check_and_resolve(
        self,
        ctx: commands.Context,
        tokens: List[str],
    ) -> Optional[Union[discord.User, discord.Member]]:
        if not is_whitelist_manager(self.state, ctx.guild, ctx.author.id):
            await ctx.reply("⚠️ You are not allowed to manage the whitelist.", mention_author=False)
            return None

        target = await self._resolve_user(ctx.message, tokens[1] if len(tokens) > 1 else None)
        if target is None:
            await ctx.reply("⚠️ Invalid user ID/mention.", mention_author=False)
        return target

    def _log_change(self, ctx: commands.Context, target, action: str, scopes) -> None:
        logger.tree(f"Whitelist {action}", [
            ("Guild", f"{ctx.guild.name} ({ctx.guild.id})"),
            ("Target", f"{target} ({target.id})"),
            ("Scopes", format_scopes(scopes) if scopes else "(removed)"),
            ("By", f"{ctx.author} ({ctx.author.id})"),
        ], emoji="📝")


async def setup(bot: "BrightBot") -> None:
    """Add the whitelist cog to the bot."""
    await bot.add_cog(WhitelistCog(bot))
    logger.debug("Whitelist Commands Loaded")
