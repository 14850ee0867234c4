"""
Bright Guard - Configuration Module
===================================

Centralized configuration loaded from environment variables.

DESIGN:
    A single Config dataclass holds the bot token and every guard tunable
    (rolling windows, dedupe windows, capsule lifetimes, reserved channel
    names). Only DISCORD_TOKEN is required; everything else falls back to
    the values the guard was tuned with.

    Key patterns:
    - Singleton via get_config() ensures one Config instance
    - Invalid numbers fall back to defaults with a warning
    - Out-of-range numbers clamp to the allowed range

Author: حَـــــنَّـــــا
"""

import os
from dataclasses import dataclass
from typing import Optional
from zoneinfo import ZoneInfo


# =============================================================================
# Timezone Configuration
# =============================================================================

NY_TZ = ZoneInfo("America/New_York")
"""Eastern timezone for log and embed timestamps."""


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_SUPER_ADMIN_ID = 1414726263112732775
"""Account that holds every whitelist scope in every guild."""


# =============================================================================
# Configuration Dataclass
# =============================================================================

@dataclass
class Config:
    """
    Bot configuration loaded from environment variables.

    Attributes:
        discord_token: Discord bot authentication token.
        super_admin_id: User ID treated like the guild owner everywhere.
        command_prefix: Prefix for whitelist text commands.
        counter_window: Seconds an actor counter lives after its last action.
        attribution_max_age: Max age (seconds) of an audit entry used for attribution.
        bot_review_dedupe: Seconds between kick+panel runs for the same bot.
        threat_dedupe: Seconds between threat logs for the same author.
        role_strip_window: Rolling window (seconds) for role removals.
        role_strip_threshold: Removals inside the window that trigger a deroll.
        role_strip_restore_victims: Also capsule the victims' roles on deroll.
        restore_capsule_ttl: Lifetime (seconds) of restore capsules.
        threat_capsule_ttl: Lifetime (seconds) of threat logs.
    """

    # -------------------------------------------------------------------------
    # Required: Discord
    # -------------------------------------------------------------------------

    discord_token: str

    # -------------------------------------------------------------------------
    # Optional: Identity
    # -------------------------------------------------------------------------

    super_admin_id: Optional[int] = DEFAULT_SUPER_ADMIN_ID
    command_prefix: str = "="

    # -------------------------------------------------------------------------
    # Optional: Windows (seconds)
    # -------------------------------------------------------------------------

    counter_window: int = 30
    attribution_max_age: int = 12
    bot_review_dedupe: int = 60
    threat_dedupe: int = 25
    sweep_interval: int = 30

    # -------------------------------------------------------------------------
    # Optional: Role-Strip Defense
    # -------------------------------------------------------------------------

    role_strip_window: int = 180
    role_strip_threshold: int = 5
    role_strip_restore_victims: bool = False

    # -------------------------------------------------------------------------
    # Optional: Capsule Lifetimes (seconds)
    # -------------------------------------------------------------------------

    restore_capsule_ttl: int = 24 * 60 * 60
    threat_capsule_ttl: int = 7 * 24 * 60 * 60

    # -------------------------------------------------------------------------
    # Optional: Reserved Channels
    # -------------------------------------------------------------------------

    review_channel_name: str = "bright-review"
    log_channel_name: str = "bright-log"
    threats_channel_name: str = "bright-threats"

    # -------------------------------------------------------------------------
    # Optional: Operations
    # -------------------------------------------------------------------------

    health_port: int = 8080  # 0 disables the health server
    error_webhook_url: Optional[str] = None
    rate_limit_delay: float = 0.5  # Pause between bulk role edits


# =============================================================================
# Embed Colors
# =============================================================================

class EmbedColors:
    """Color palette for guard embeds."""

    GREEN = 0x1F5E2E
    GOLD = 0xE6B84A
    RED = 0xDC3545
    ORANGE = 0xFF9800
    BLUE = 0x3498DB
    GRAY = 0x95A5A6

    SUCCESS = GREEN
    WARNING = GOLD
    INFO = BLUE

    REVIEW = ORANGE     # Bot review panels
    DEROLL = RED        # Human role-strip panels
    CAPSULE = BLUE      # Restore capsule panels
    THREAT_HIGH = ORANGE
    THREAT_CRITICAL = RED
    DISMISSED = GRAY


# =============================================================================
# Validation
# =============================================================================

class ConfigValidationError(Exception):
    """Raised when required configuration is missing or invalid."""

    pass


def _parse_int_optional(value: Optional[str]) -> Optional[int]:
    """
    Parse optional string to integer, returning None on failure.

    Args:
        value: String value from environment variable, may be None.

    Returns:
        Parsed integer or None if parsing fails.
    """
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _parse_int_with_default(value: Optional[str], default: int, name: str, min_val: int = None, max_val: int = None) -> int:
    """
    Parse optional integer with default and range validation.

    Args:
        value: String value from environment variable.
        default: Default value if not set or invalid.
        name: Variable name for warning messages.
        min_val: Minimum allowed value (inclusive).
        max_val: Maximum allowed value (inclusive).

    Returns:
        Parsed integer within valid range, or default.
    """
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        from bright.core.logger import logger
        logger.warning(f"Config {name}='{value}' invalid, using default {default}")
        return default
    if min_val is not None and parsed < min_val:
        from bright.core.logger import logger
        logger.warning(f"Config {name}={parsed} below min {min_val}, using {min_val}")
        return min_val
    if max_val is not None and parsed > max_val:
        from bright.core.logger import logger
        logger.warning(f"Config {name}={parsed} above max {max_val}, using {max_val}")
        return max_val
    return parsed


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _validate_url(value: Optional[str], name: str) -> Optional[str]:
    """
    Validate URL format for webhooks.

    Args:
        value: URL string to validate.
        name: Variable name for warning messages.

    Returns:
        URL if valid, None if invalid or empty.
    """
    if not value:
        return None
    if not value.startswith(("https://", "http://")):
        from bright.core.logger import logger
        logger.warning(f"Config {name} invalid URL format, ignoring")
        return None
    return value


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config() -> Config:
    """
    Load and validate configuration from environment variables.

    Returns:
        Validated Config object with all settings.

    Raises:
        ConfigValidationError: If DISCORD_TOKEN is missing.
    """
    discord_token = os.getenv("DISCORD_TOKEN")
    if not discord_token:
        raise ConfigValidationError("Missing required environment variables: DISCORD_TOKEN")

    super_admin_raw = os.getenv("SUPER_ADMIN_ID")
    if super_admin_raw is None:
        super_admin_id = DEFAULT_SUPER_ADMIN_ID
    else:
        # Empty string disables the super-admin
        super_admin_id = _parse_int_optional(super_admin_raw)

    return Config(
        discord_token=discord_token,
        super_admin_id=super_admin_id,
        command_prefix=os.getenv("COMMAND_PREFIX", "=") or "=",
        counter_window=_parse_int_with_default(
            os.getenv("COUNTER_WINDOW"), 30, "COUNTER_WINDOW", min_val=5, max_val=3600
        ),
        attribution_max_age=_parse_int_with_default(
            os.getenv("ATTRIBUTION_MAX_AGE"), 12, "ATTRIBUTION_MAX_AGE", min_val=1, max_val=300
        ),
        bot_review_dedupe=_parse_int_with_default(
            os.getenv("BOT_REVIEW_DEDUPE"), 60, "BOT_REVIEW_DEDUPE", min_val=0, max_val=3600
        ),
        threat_dedupe=_parse_int_with_default(
            os.getenv("THREAT_DEDUPE"), 25, "THREAT_DEDUPE", min_val=0, max_val=3600
        ),
        sweep_interval=_parse_int_with_default(
            os.getenv("SWEEP_INTERVAL"), 30, "SWEEP_INTERVAL", min_val=5, max_val=3600
        ),
        role_strip_window=_parse_int_with_default(
            os.getenv("ROLE_STRIP_WINDOW"), 180, "ROLE_STRIP_WINDOW", min_val=10, max_val=86400
        ),
        role_strip_threshold=_parse_int_with_default(
            os.getenv("ROLE_STRIP_THRESHOLD"), 5, "ROLE_STRIP_THRESHOLD", min_val=1, max_val=1000
        ),
        role_strip_restore_victims=_parse_bool(os.getenv("ROLE_STRIP_RESTORE_VICTIMS")),
        restore_capsule_ttl=_parse_int_with_default(
            os.getenv("RESTORE_CAPSULE_TTL"), 86400, "RESTORE_CAPSULE_TTL", min_val=60, max_val=30 * 86400
        ),
        threat_capsule_ttl=_parse_int_with_default(
            os.getenv("THREAT_CAPSULE_TTL"), 604800, "THREAT_CAPSULE_TTL", min_val=60, max_val=30 * 86400
        ),
        review_channel_name=os.getenv("REVIEW_CHANNEL_NAME", "bright-review"),
        log_channel_name=os.getenv("LOG_CHANNEL_NAME", "bright-log"),
        threats_channel_name=os.getenv("THREATS_CHANNEL_NAME", "bright-threats"),
        health_port=_parse_int_with_default(
            os.getenv("HEALTH_PORT"), 8080, "HEALTH_PORT", min_val=0, max_val=65535
        ),
        error_webhook_url=_validate_url(os.getenv("ERROR_WEBHOOK_URL"), "ERROR_WEBHOOK_URL"),
    )


# =============================================================================
# Global Config Instance
# =============================================================================

_config: Optional[Config] = None


def get_config() -> Config:
    """
    Get the global configuration instance, loading if needed.

    Returns:
        The global Config instance.

    Raises:
        ConfigValidationError: On first call if config is invalid.
    """
    global _config
    if _config is None:
        _config = load_config()
    return _config


def set_config(config: Optional[Config]) -> None:
    """Replace the global config (None forces a reload on next access)."""
    global _config
    _config = config


def validate_and_log_config() -> Config:
    """
    Load the config and log a startup summary.

    Raises:
        ConfigValidationError: If required configuration is missing.
    """
    from bright.core.logger import logger

    config = get_config()

    logger.tree("Configuration Validated", [
        ("Prefix", config.command_prefix),
        ("Super Admin", str(config.super_admin_id) if config.super_admin_id else "Disabled"),
        ("Counter Window", f"{config.counter_window}s"),
        ("Role Strip", f"{config.role_strip_threshold} in {config.role_strip_window}s"),
        ("Victim Restore", "On" if config.role_strip_restore_victims else "Off"),
        ("Health Port", str(config.health_port) if config.health_port else "Disabled"),
    ], emoji="⚙️")
    return config


# =============================================================================
# Module Export
# =============================================================================

__all__ = [
    "Config",
    "ConfigValidationError",
    "EmbedColors",
    "NY_TZ",
    "DEFAULT_SUPER_ADMIN_ID",
    "get_config",
    "set_config",
    "load_config",
    "validate_and_log_config",
]
