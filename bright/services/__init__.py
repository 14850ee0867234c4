"""
Bright Guard - Services Package
===============================

Guard services the event cogs and buttons call into.

DESIGN:
    Services are plain classes holding `self.bot`, `self.state` and
    `self.config`. The bot builds one AntiNukeService at startup and
    exposes it as `bot.antinuke`.

Available Services:
    AntiNukeService: Counters, lockdown, bot review, role-strip defense,
    restore capsules, and threat scanning

Author: حَـــــنَّـــــا
"""

# =============================================================================
# Service Imports
# =============================================================================

from .antinuke import AntiNukeService, GuardState


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "AntiNukeService",
    "GuardState",
]
