"""
Bright Guard - Guard State
==========================

Process-local state shared by every guard component.

DESIGN:
    All mutable guard state lives on one GuardState object that is handed
    to each component, instead of module-level dictionaries. Windowed
    records (actor counters, role-strip records, dedupe stamps) sit in
    TTL caches keyed by ActorKey, so an entry expires a fixed time after
    its last write. Per-guild decisions (whitelist, bot approvals,
    pending reviews) live on GuildGuardState and never expire.

    Nothing here is locked. Handlers interleave at every await, and the
    dedupe windows are the only protection against duplicate panels.

Author: حَـــــنَّـــــا
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Dict, List, NamedTuple, Optional, Set

import discord

from bright.core.config import Config
from bright.utils.cache import TTLCache

from .constants import ActionKind


# =============================================================================
# Keys & Records
# =============================================================================

class ActorKey(NamedTuple):
    """(guild, user) pair that keys every per-actor record."""

    guild_id: int
    user_id: int


@dataclass
class ActorCounter:
    """Destructive actions attributed to one actor in the current window."""

    last_action: datetime
    counts: Dict[ActionKind, int] = field(default_factory=dict)
    locked: bool = False

    def bump(self, kind: ActionKind, now: datetime) -> int:
        self.counts[kind] = self.counts.get(kind, 0) + 1
        self.last_action = now
        return self.counts[kind]


@dataclass
class PendingBotReview:
    reason: str
    permissions: List[str]
    origin: str
    adder_id: Optional[int]
    at: datetime


@dataclass
class PendingHumanReview:
    removed_role_ids: List[int]
    managed_keep: List[int]
    at: datetime


@dataclass
class VictimSnapshot:
    """Roles a member held before an attributed removal."""

    member_id: int
    role_ids: List[int]
    managed_keep: List[int]


@dataclass
class RoleStripRecord:
    """Role removals by one executor in the current window."""

    count: int = 0
    victims: Dict[int, VictimSnapshot] = field(default_factory=dict)


@dataclass
class GuildGuardState:
    """Decisions and pending reviews for a single guild."""

    whitelist: Dict[int, Set[str]] = field(default_factory=dict)
    whitelist_managers: Set[int] = field(default_factory=set)
    approved_bots: Set[int] = field(default_factory=set)
    denied_bots: Set[int] = field(default_factory=set)
    pending_bots: Dict[int, PendingBotReview] = field(default_factory=dict)
    pending_humans: Dict[int, PendingHumanReview] = field(default_factory=dict)


# =============================================================================
# Guard State
# =============================================================================

class GuardState:
    """
    Shared guard state for the whole process.

    Attributes:
        config: Active configuration (windows, thresholds).
        counters: ActorKey -> ActorCounter, expires counter_window after last action.
        role_strips: ActorKey -> RoleStripRecord, expires role_strip_window after last removal.
        bot_review_dedupe: ActorKey(guild, bot) -> time of last kick+panel.
        threat_dedupe: ActorKey(guild, author) -> time of last threat log.
    """

    def __init__(self, config: Config, clock: Optional[Callable[[], datetime]] = None) -> None:
        self.config = config
        self.clock: Callable[[], datetime] = clock or discord.utils.utcnow

        self.counters: TTLCache[ActorKey, ActorCounter] = TTLCache(
            ttl=timedelta(seconds=config.counter_window), max_size=10_000, clock=self.clock,
        )
        self.role_strips: TTLCache[ActorKey, RoleStripRecord] = TTLCache(
            ttl=timedelta(seconds=config.role_strip_window), max_size=10_000, clock=self.clock,
        )
        self.bot_review_dedupe: TTLCache[ActorKey, datetime] = TTLCache(
            ttl=timedelta(seconds=config.bot_review_dedupe), max_size=10_000, clock=self.clock,
        )
        self.threat_dedupe: TTLCache[ActorKey, datetime] = TTLCache(
            ttl=timedelta(seconds=config.threat_dedupe), max_size=10_000, clock=self.clock,
        )

        self._guilds: Dict[int, GuildGuardState] = {}

    # =========================================================================
    # Accessors
    # =========================================================================

    def now(self) -> datetime:
        return self.clock()

    def now_ms(self) -> int:
        """Current time as epoch milliseconds, the unit capsules store."""
        return int(self.clock().timestamp() * 1000)

    def guild(self, guild_id: int) -> GuildGuardState:
        """Per-guild state, created on first access."""
        state = self._guilds.get(guild_id)
        if state is None:
            state = GuildGuardState()
            self._guilds[guild_id] = state
        return state

    def is_privileged(self, guild: discord.Guild, user_id: int) -> bool:
        """Guild owner or the configured super-admin."""
        if user_id == guild.owner_id:
            return True
        return self.config.super_admin_id is not None and user_id == self.config.super_admin_id

    # =========================================================================
    # Maintenance
    # =========================================================================

    def sweep(self) -> int:
        """
        Evict expired windowed records.

        Returns:
            Number of entries removed across all caches.
        """
        return (
            self.counters.cleanup_expired()
            + self.role_strips.cleanup_expired()
            + self.bot_review_dedupe.cleanup_expired()
            + self.threat_dedupe.cleanup_expired()
        )

    def stats(self) -> Dict[str, int]:
        return {
            "tracked_actors": len(self.counters),
            "role_strip_records": len(self.role_strips),
            "pending_bot_reviews": sum(len(g.pending_bots) for g in self._guilds.values()),
            "pending_human_reviews": sum(len(g.pending_humans) for g in self._guilds.values()),
        }


__all__ = [
    "ActorKey",
    "ActorCounter",
    "PendingBotReview",
    "PendingHumanReview",
    "VictimSnapshot",
    "RoleStripRecord",
    "GuildGuardState",
    "GuardState",
]
