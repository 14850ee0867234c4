"""
Bright Guard - Source Package
=============================

Anti-nuke guard for Discord guilds. Watches destructive gateway events,
attributes them through the audit log, and answers with lockdowns,
review panels, restore capsules, and threat logs.

Package Structure:
- bot.py: Main Discord bot class and lifecycle
- commands/: Whitelist text commands and the /antinuke guide
- core/: Configuration, logging, and health monitoring
- events/: Gateway listeners that feed the guard
- services/: Anti-nuke engine (counters, reviews, capsules, threats)
- utils/: Caching and error helpers
- views/: Persistent review/restore/threat buttons

Author: حَـــــنَّـــــا
Version: v1.0.0
"""
