"""
Bright Guard - Commands Package
===============================

Command Cogs loaded by the bot with load_extension().

Available Commands:
    =help, =whitelist, =removewhitelist, =wlman: Scoped whitelist (text)
    /antinuke: Guard overview and permission checklist (slash)

Author: حَـــــنَّـــــا
"""

# =============================================================================
# Command Cog Registry
# =============================================================================

COMMAND_COGS = [
    "bright.commands.whitelist",
    "bright.commands.antinuke",
]
"""Command cog module paths, loaded with load_extension() in setup_hook."""


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "COMMAND_COGS",
]
