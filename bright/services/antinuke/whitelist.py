"""
Bright Guard - Scoped Whitelist
===============================

Per-guild whitelist of users and the scopes they hold.

The guild owner and the super-admin hold every scope implicitly. Anyone
else holds exactly the scopes granted to them, where `all` covers every
scope. Whitelist managers may edit the whitelist but gain no scopes.

Author: حَـــــنَّـــــا
"""

import re
from typing import Iterable, List, Optional, Sequence, Set

import discord

from .constants import ACTION_SCOPE, SCOPE_ALL, VALID_SCOPES, ActionKind
from .state import GuardState


# =============================================================================
# Scope Parsing
# =============================================================================

def normalize_scopes(tokens: Optional[Iterable[str]]) -> Set[str]:
    """
    Normalize raw scope tokens into a set of valid scopes.

    Tokens are lowercased and stripped of trailing commas; unknown tokens
    are dropped. An empty result means `all`.
    """
    scopes: Set[str] = set()
    for token in tokens or ():
        value = str(token or "").lower().rstrip(",").strip()
        if value in VALID_SCOPES:
            scopes.add(value)
    return scopes or {SCOPE_ALL}


def parse_scope_tokens(tokens: Sequence[str]) -> List[str]:
    """
    Scope tokens of a whitelist command.

    `=whitelist <user> for a b` and `=whitelist <user> a b` both yield
    [a, b]. The first token is the command, the second the user.
    """
    lower = [t.lower() for t in tokens]
    if "for" in lower:
        return list(tokens[lower.index("for") + 1:])
    return list(tokens[2:]) if len(tokens) > 2 else []


def format_scopes(scopes: Iterable[str]) -> str:
    ordered = sorted(scopes)
    return ", ".join(ordered) if ordered else "none"


USER_ID_PATTERN = re.compile(r"^\d{16,22}$")


def parse_user_id(token: Optional[str]) -> Optional[int]:
    """Snowflake from a mention (`<@id>`, `<@!id>`) or a bare ID, else None."""
    if not token:
        return None
    raw = token.strip().removeprefix("<@").removeprefix("!").removesuffix(">")
    return int(raw) if USER_ID_PATTERN.match(raw) else None


# =============================================================================
# Checks
# =============================================================================

def has_scope(state: GuardState, guild: discord.Guild, user_id: int, scope: str) -> bool:
    """True when the user holds `scope` (or `all`) in this guild."""
    if state.is_privileged(guild, user_id):
        return True
    scopes = state.guild(guild.id).whitelist.get(user_id)
    if not scopes:
        return False
    return SCOPE_ALL in scopes or scope in scopes


def is_whitelisted_for(state: GuardState, guild: discord.Guild, user_id: int, kind: ActionKind) -> bool:
    """True when the user's destructive action of this kind is exempt from counting."""
    return has_scope(state, guild, user_id, ACTION_SCOPE.get(kind, SCOPE_ALL))


def is_whitelist_manager(state: GuardState, guild: discord.Guild, user_id: int) -> bool:
    if state.is_privileged(guild, user_id):
        return True
    return user_id in state.guild(guild.id).whitelist_managers


# =============================================================================
# Mutations
# =============================================================================

def add_scopes(state: GuardState, guild_id: int, user_id: int, scopes: Set[str]) -> Set[str]:
    """
    Grant scopes to a user.

    Granting `all`, or granting anything to an `all` entry, collapses the
    entry to {all}.

    Returns:
        The user's resulting scope set.
    """
    whitelist = state.guild(guild_id).whitelist
    existing = whitelist.get(user_id, set())
    if SCOPE_ALL in scopes or SCOPE_ALL in existing:
        whitelist[user_id] = {SCOPE_ALL}
    else:
        whitelist[user_id] = existing | scopes
    return whitelist[user_id]


def remove_scopes(state: GuardState, guild_id: int, user_id: int, scopes: Optional[Set[str]]) -> Optional[Set[str]]:
    """
    Revoke scopes from a user.

    None (no scopes named) or a set containing `all` removes the user
    entirely, as does removing part of an `all` entry. An entry left
    empty is removed.

    Returns:
        Remaining scopes, or None when the user is no longer whitelisted.
    """
    whitelist = state.guild(guild_id).whitelist
    existing = whitelist.get(user_id)
    if existing is None:
        return None

    if not scopes or SCOPE_ALL in scopes or SCOPE_ALL in existing:
        del whitelist[user_id]
        return None

    remaining = existing - scopes
    if not remaining:
        del whitelist[user_id]
        return None
    whitelist[user_id] = remaining
    return remaining


__all__ = [
    "normalize_scopes",
    "parse_user_id",
    "parse_scope_tokens",
    "format_scopes",
    "has_scope",
    "is_whitelisted_for",
    "is_whitelist_manager",
    "add_scopes",
    "remove_scopes",
]
