"""
Bright Guard - Anti-Nuke Constants
==================================

Action kinds, their limits and whitelist scopes, the dangerous
permission set, and threat classification rules.

Author: حَـــــنَّـــــا
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Tuple

import discord


# =============================================================================
# Dangerous Permissions
# =============================================================================

DANGEROUS_PERMISSIONS: Tuple[Tuple[str, str], ...] = (
    ("administrator", "Administrator"),
    ("manage_guild", "Manage Server"),
    ("manage_roles", "Manage Roles"),
    ("manage_channels", "Manage Channels"),
    ("manage_webhooks", "Manage Webhooks"),
    ("ban_members", "Ban Members"),
    ("kick_members", "Kick Members"),
)
"""(Permissions attribute, display label) pairs shared by the bot gate and lockdown."""

DANGEROUS_PERMISSION_FLAGS = discord.Permissions(**{attr: True for attr, _ in DANGEROUS_PERMISSIONS})


def dangerous_labels(permissions: discord.Permissions) -> List[str]:
    """Labels of every dangerous flag set in `permissions`, in canonical order."""
    return [label for attr, label in DANGEROUS_PERMISSIONS if getattr(permissions, attr)]


def has_dangerous(permissions: discord.Permissions) -> bool:
    return (permissions.value & DANGEROUS_PERMISSION_FLAGS.value) != 0


def strip_dangerous(permissions: discord.Permissions) -> discord.Permissions:
    """Copy of `permissions` with exactly the dangerous flags cleared."""
    return discord.Permissions(permissions.value & ~DANGEROUS_PERMISSION_FLAGS.value)


def gained_dangerous(before: discord.Permissions, after: discord.Permissions) -> bool:
    """True when `after` holds a dangerous flag that `before` did not."""
    return (after.value & ~before.value & DANGEROUS_PERMISSION_FLAGS.value) != 0


# =============================================================================
# Action Kinds
# =============================================================================

class ActionKind(str, Enum):
    """Destructive actions counted per actor."""

    CHANNEL_DELETE = "channel_delete"
    CATEGORY_DELETE = "category_delete"
    CHANNEL_CREATE = "channel_create"
    CHANNEL_PERM_EDIT = "channel_perm_edit"
    ROLE_DELETE = "role_delete"
    ROLE_CREATE = "role_create"
    ROLE_PERM_EDIT = "role_perm_edit"
    WEBHOOK_CHANGE = "webhook_change"
    MEMBER_BAN = "member_ban"


LIMITS: Dict[ActionKind, int] = {
    ActionKind.CHANNEL_DELETE: 4,
    ActionKind.CATEGORY_DELETE: 2,
    ActionKind.CHANNEL_CREATE: 8,
    ActionKind.CHANNEL_PERM_EDIT: 5,
    ActionKind.ROLE_DELETE: 3,
    ActionKind.ROLE_CREATE: 8,
    ActionKind.ROLE_PERM_EDIT: 4,
    ActionKind.WEBHOOK_CHANGE: 4,
    ActionKind.MEMBER_BAN: 4,
}


# =============================================================================
# Whitelist Scopes
# =============================================================================

SCOPE_ROLES = "roles"
SCOPE_CHANNELS = "channels"
SCOPE_WEBHOOKS = "webhooks"
SCOPE_BANS = "bans"
SCOPE_ADMIN = "admin"
SCOPE_RESTORE = "restore"
SCOPE_BOT_ADDS = "bot-adds"
SCOPE_THREATS = "threats"
SCOPE_ALL = "all"

VALID_SCOPES: FrozenSet[str] = frozenset({
    SCOPE_ROLES,
    SCOPE_CHANNELS,
    SCOPE_WEBHOOKS,
    SCOPE_BANS,
    SCOPE_ADMIN,
    SCOPE_RESTORE,
    SCOPE_BOT_ADDS,
    SCOPE_THREATS,
    SCOPE_ALL,
})

ACTION_SCOPE: Dict[ActionKind, str] = {
    ActionKind.CHANNEL_DELETE: SCOPE_CHANNELS,
    ActionKind.CATEGORY_DELETE: SCOPE_CHANNELS,
    ActionKind.CHANNEL_CREATE: SCOPE_CHANNELS,
    ActionKind.CHANNEL_PERM_EDIT: SCOPE_CHANNELS,
    ActionKind.ROLE_DELETE: SCOPE_ROLES,
    ActionKind.ROLE_CREATE: SCOPE_ROLES,
    ActionKind.ROLE_PERM_EDIT: SCOPE_ROLES,
    ActionKind.WEBHOOK_CHANGE: SCOPE_WEBHOOKS,
    ActionKind.MEMBER_BAN: SCOPE_BANS,
}


# =============================================================================
# Threat Rules
# =============================================================================

SEVERITY_HIGH = "HIGH"
SEVERITY_CRITICAL = "CRITICAL"


@dataclass(frozen=True)
class ThreatRule:
    """One threat category; the first rule with a matching pattern wins."""

    key: str
    title: str
    severity: str
    patterns: Tuple[re.Pattern, ...]

    def matches(self, text: str) -> bool:
        return any(p.search(text) for p in self.patterns)


def _compile(*patterns: str) -> Tuple[re.Pattern, ...]:
    return tuple(re.compile(p, re.IGNORECASE) for p in patterns)


THREAT_RULES: Tuple[ThreatRule, ...] = (
    ThreatRule(
        key="nuking",
        title="Nuking / Raid Talk",
        severity=SEVERITY_HIGH,
        patterns=_compile(
            r"\bnuk(e|ing)\b",
            r"nuke\s+the\s+server",
            r"delete\s+all\s+(channels|roles)",
            r"mass\s+ban",
            r"wipe\s+the\s+server",
            r"\braid\b",
        ),
    ),
    ThreatRule(
        key="violence",
        title="Violence / Threats",
        severity=SEVERITY_CRITICAL,
        patterns=_compile(
            r"(i('|’)m|im)\s+going\s+to\s+kill",
            r"kill\s+you",
            r"murder",
            r"\bshoot",
            r"\bstab(s|bed|bing)?\b",
            r"(i('|’)ll|ill)\s+end\s+you",
        ),
    ),
    ThreatRule(
        key="selfharm",
        title="Self-Harm",
        severity=SEVERITY_CRITICAL,
        patterns=_compile(
            r"suicid(e|al)",
            r"kill\s+myself",
            r"end\s+my\s+life",
            r"self\s*harm",
            r"(i('|’)m|im)\s+done\s+with\s+life",
        ),
    ),
)


# =============================================================================
# Button Labels
# =============================================================================

THREAT_ACTIONS: Dict[str, str] = {
    "timeout10m": "Timeout 10m",
    "timeout1h": "Timeout 1h",
    "timeout24h": "Timeout 24h",
    "kick": "Kick",
    "ban": "Ban",
    "dismiss": "Dismiss",
}

TIMEOUT_DURATIONS: Dict[str, int] = {
    "timeout10m": 10 * 60,
    "timeout1h": 60 * 60,
    "timeout24h": 24 * 60 * 60,
}


__all__ = [
    "DANGEROUS_PERMISSIONS",
    "DANGEROUS_PERMISSION_FLAGS",
    "dangerous_labels",
    "has_dangerous",
    "strip_dangerous",
    "gained_dangerous",
    "ActionKind",
    "LIMITS",
    "VALID_SCOPES",
    "ACTION_SCOPE",
    "SCOPE_ROLES",
    "SCOPE_CHANNELS",
    "SCOPE_WEBHOOKS",
    "SCOPE_BANS",
    "SCOPE_ADMIN",
    "SCOPE_RESTORE",
    "SCOPE_BOT_ADDS",
    "SCOPE_THREATS",
    "SCOPE_ALL",
    "ThreatRule",
    "THREAT_RULES",
    "SEVERITY_HIGH",
    "SEVERITY_CRITICAL",
    "THREAT_ACTIONS",
    "TIMEOUT_DURATIONS",
]
