"""
Bright Guard - Test Fixtures
============================

Shared fixtures for all tests.

Guilds, channels and messages are small fakes over MagicMock/AsyncMock;
permissions, overwrites, embeds and views are real discord.py objects.
Every time-dependent component gets the FakeClock so windows and
expiries are deterministic.
"""

import itertools
import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set up test environment before importing modules
os.environ["TESTING"] = "1"
os.environ.setdefault("BRIGHT_LOGS_DIR", tempfile.mkdtemp(prefix="bright-logs-"))

import discord

from bright.core.config import Config, set_config
from bright.services.antinuke.service import AntiNukeService
from bright.services.antinuke.state import GuardState


GUILD_ID = 100000000000000001
OWNER_ID = 200000000000000002
BOT_ID = 300000000000000003
SUPER_ADMIN_ID = 400000000000000004

START = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

_ids = itertools.count(500000000000000000)


def next_id() -> int:
    return next(_ids)


# =============================================================================
# Clock
# =============================================================================

class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


# =============================================================================
# Discord Fakes
# =============================================================================

def make_http_error(cls=discord.Forbidden, status: int = 403):
    response = MagicMock()
    response.status = status
    response.reason = "error"
    return cls(response, "error")


def make_role(
    role_id: Optional[int] = None,
    position: int = 1,
    permissions: Optional[discord.Permissions] = None,
    managed: bool = False,
    default: bool = False,
):
    role = MagicMock(spec=discord.Role)
    role.id = role_id or next_id()
    role.name = f"role-{role.id}"
    role.position = position
    role.permissions = permissions or discord.Permissions.none()
    role.managed = managed
    role.is_default.return_value = default
    role.mention = f"<@&{role.id}>"
    role.edit = AsyncMock()
    return role


def make_member(
    guild,
    member_id: Optional[int] = None,
    roles: Optional[List] = None,
    permissions: Optional[discord.Permissions] = None,
    bot: bool = False,
    top_role: int = 1,
):
    """Member whose top_role is a plain position so hierarchy checks compare ints."""
    member = MagicMock(spec=discord.Member)
    member.id = member_id or next_id()
    member.name = f"user{member.id}"
    member.__str__.return_value = f"user{member.id}"
    member.bot = bot
    member.guild = guild
    member.roles = [guild.default_role] + list(roles or [])
    member.guild_permissions = permissions or discord.Permissions.none()
    member.top_role = top_role
    member.mention = f"<@{member.id}>"
    member.created_at = START - timedelta(days=400)
    member.joined_at = START - timedelta(days=30)
    member.display_avatar = MagicMock(url="https://cdn.example/avatar.png")
    member.edit = AsyncMock()
    member.kick = AsyncMock()
    member.timeout = AsyncMock()
    return member


class FakeMessage:
    """Message that records edits and deletes."""

    def __init__(self, channel=None, content: Optional[str] = None, embed=None, view=None, author=None, guild=None):
        self.id = next_id()
        self.channel = channel
        self.guild = guild if guild is not None else getattr(channel, "guild", None)
        self.author = author
        self.content = content or ""
        self.embeds = [embed] if embed is not None else []
        self.view = view
        self.edit = AsyncMock(side_effect=self._edit)
        self.delete = AsyncMock()

    async def _edit(self, **kwargs):
        if "content" in kwargs:
            self.content = kwargs["content"]
        if "embed" in kwargs:
            self.embeds = [kwargs["embed"]]
        if "view" in kwargs:
            self.view = kwargs["view"]
        return self


def make_text_channel(guild, name: str, channel_id: Optional[int] = None, can_send: bool = True):
    channel = MagicMock(spec=discord.TextChannel)
    channel.id = channel_id or next_id()
    channel.name = name
    channel.guild = guild
    channel.type = discord.ChannelType.text
    channel.mention = f"<#{channel.id}>"
    channel.permissions_for.return_value = (
        discord.Permissions(view_channel=True, send_messages=True) if can_send else discord.Permissions.none()
    )
    channel.sent = []
    channel.stored = {}

    async def _send(content=None, **kwargs):
        message = FakeMessage(channel, content=content, embed=kwargs.get("embed"), view=kwargs.get("view"))
        channel.sent.append(message)
        channel.stored[message.id] = message
        return message

    async def _fetch_message(message_id):
        if message_id not in channel.stored:
            raise make_http_error(discord.NotFound, 404)
        return channel.stored[message_id]

    channel.send = AsyncMock(side_effect=_send)
    channel.fetch_message = AsyncMock(side_effect=_fetch_message)
    channel.edit = AsyncMock()
    return channel


class FakeGuild:
    """Guild with in-memory roles, members, channels and audit log."""

    def __init__(self, guild_id: int = GUILD_ID, owner_id: int = OWNER_ID):
        self.id = guild_id
        self.name = "Test Guild"
        self.owner_id = owner_id
        self.unavailable = False
        self.bitrate_limit = 96000.0
        self.default_role = make_role(guild_id, position=0, default=True)
        self.roles: List = [self.default_role]
        self.members: Dict[int, object] = {}
        self.channels: Dict[int, object] = {}
        self.audit_entries: List = []
        self.audit_error: Optional[Exception] = None
        self.me = None
        self.owner = None

        self.create_text_channel = AsyncMock(side_effect=self._create_text_channel)
        self.create_voice_channel = AsyncMock()
        self.create_category = AsyncMock()
        self.create_stage_channel = AsyncMock()
        self.create_forum = AsyncMock()
        self.fetch_member = AsyncMock(side_effect=self._fetch_member)
        self.ban = AsyncMock()

    @property
    def text_channels(self):
        return [c for c in self.channels.values() if getattr(c, "type", None) == discord.ChannelType.text]

    def get_role(self, role_id):
        return next((r for r in self.roles if r.id == role_id), None)

    def get_member(self, member_id):
        return self.members.get(member_id)

    def get_channel(self, channel_id):
        return self.channels.get(channel_id)

    async def _fetch_member(self, member_id):
        member = self.members.get(member_id)
        if member is None:
            raise make_http_error(discord.NotFound, 404)
        return member

    async def _create_text_channel(self, name, **kwargs):
        return self.add_text_channel(name)

    def add_role(self, **kwargs):
        role = make_role(**kwargs)
        self.roles.append(role)
        return role

    def add_member(self, **kwargs):
        member = make_member(self, **kwargs)
        self.members[member.id] = member
        return member

    def add_text_channel(self, name: str, **kwargs):
        channel = make_text_channel(self, name, **kwargs)
        self.channels[channel.id] = channel
        return channel

    def channel_named(self, name: str):
        return next((c for c in self.text_channels if c.name == name), None)

    def log_audit(self, action: discord.AuditLogAction, user, target_id: Optional[int], at: datetime):
        entry = MagicMock()
        entry.action = action
        entry.user = user
        entry.target = discord.Object(id=target_id) if target_id is not None else None
        entry.created_at = at
        self.audit_entries.insert(0, entry)
        return entry

    def audit_logs(self, limit: int = 100, action=None):
        entries = [e for e in self.audit_entries if action is None or e.action == action][:limit]
        error = self.audit_error

        async def _iterate():
            if error is not None:
                raise error
            for entry in entries:
                yield entry

        return _iterate()


def make_interaction(guild, user, message=None, client=None):
    interaction = MagicMock()
    interaction.guild = guild
    interaction.user = user
    interaction.message = message
    interaction.client = client
    interaction.response.is_done.return_value = False
    interaction.response.send_message = AsyncMock()
    interaction.response.edit_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup.send = AsyncMock()
    return interaction


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    config = Config(
        discord_token="test-token",
        super_admin_id=SUPER_ADMIN_ID,
        health_port=0,
        rate_limit_delay=0,
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def guild():
    guild = FakeGuild()
    guild.me = guild.add_member(member_id=BOT_ID, permissions=discord.Permissions.all(), bot=True, top_role=100)
    guild.owner = guild.add_member(member_id=OWNER_ID, top_role=200)
    guild.general = guild.add_text_channel("general")
    return guild


@pytest.fixture
def bot():
    bot = MagicMock()
    bot.user = MagicMock()
    bot.user.id = BOT_ID
    bot.get_user = MagicMock(return_value=None)
    bot.fetch_user = AsyncMock(side_effect=make_http_error(discord.NotFound, 404))
    return bot


@pytest.fixture
def state(config, clock):
    return GuardState(config, clock=clock)


@pytest.fixture
def service(bot, config, state):
    service = AntiNukeService(bot, config, state)
    bot.antinuke = service
    return service
