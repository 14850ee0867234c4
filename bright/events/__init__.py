"""
Bright Guard - Events Package
=============================

Gateway listener Cogs that feed the anti-nuke service.

DESIGN:
    Each event file contains a Cog class with @commands.Cog.listener
    decorators. Listeners only filter and route; all guard logic lives
    in bright.services.antinuke.

    Event routing:
    - members.py: Member join/update and bans
    - channels.py: Channel, role, and webhook events
    - messages.py: Threat scanning

Author: حَـــــنَّـــــا
"""

# =============================================================================
# Event Cog Registry
# =============================================================================

EVENT_COGS = [
    "bright.events.members",
    "bright.events.channels",
    "bright.events.messages",
]
"""Event cog module paths, loaded with load_extension() in setup_hook."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "EVENT_COGS",
]
