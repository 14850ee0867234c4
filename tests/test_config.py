"""
Tests for bright/core/config.py

Covers environment loading, defaults, clamping of out-of-range
tunables, and the super-admin override.
"""

import pytest

from bright.core.config import (
    DEFAULT_SUPER_ADMIN_ID,
    ConfigValidationError,
    get_config,
    load_config,
    set_config,
)


ENV_VARS = (
    "DISCORD_TOKEN",
    "SUPER_ADMIN_ID",
    "COMMAND_PREFIX",
    "COUNTER_WINDOW",
    "ATTRIBUTION_MAX_AGE",
    "ROLE_STRIP_WINDOW",
    "ROLE_STRIP_THRESHOLD",
    "ROLE_STRIP_RESTORE_VICTIMS",
    "RESTORE_CAPSULE_TTL",
    "THREAT_CAPSULE_TTL",
    "HEALTH_PORT",
    "ERROR_WEBHOOK_URL",
    "LOG_CHANNEL_NAME",
)


@pytest.fixture
def env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("DISCORD_TOKEN", "token")
    yield monkeypatch
    set_config(None)


# =============================================================================
# load_config() Tests
# =============================================================================

class TestLoadConfig:
    """Tests for load_config."""

    def test_missing_token_raises(self, env):
        env.delenv("DISCORD_TOKEN")
        with pytest.raises(ConfigValidationError):
            load_config()

    def test_defaults(self, env):
        config = load_config()
        assert config.discord_token == "token"
        assert config.super_admin_id == DEFAULT_SUPER_ADMIN_ID
        assert config.command_prefix == "="
        assert config.counter_window == 30
        assert config.attribution_max_age == 12
        assert config.role_strip_window == 180
        assert config.role_strip_threshold == 5
        assert config.role_strip_restore_victims is False
        assert config.restore_capsule_ttl == 86400
        assert config.threat_capsule_ttl == 604800
        assert config.review_channel_name == "bright-review"
        assert config.log_channel_name == "bright-log"
        assert config.threats_channel_name == "bright-threats"

    def test_empty_super_admin_disables_it(self, env):
        env.setenv("SUPER_ADMIN_ID", "")
        assert load_config().super_admin_id is None

    def test_super_admin_override(self, env):
        env.setenv("SUPER_ADMIN_ID", "123456789012345678")
        assert load_config().super_admin_id == 123456789012345678

    def test_invalid_number_falls_back_to_default(self, env):
        env.setenv("COUNTER_WINDOW", "soon")
        assert load_config().counter_window == 30

    def test_below_minimum_clamps(self, env):
        env.setenv("COUNTER_WINDOW", "1")
        env.setenv("RESTORE_CAPSULE_TTL", "5")
        config = load_config()
        assert config.counter_window == 5
        assert config.restore_capsule_ttl == 60

    def test_victim_restore_flag(self, env):
        env.setenv("ROLE_STRIP_RESTORE_VICTIMS", "yes")
        assert load_config().role_strip_restore_victims is True
        env.setenv("ROLE_STRIP_RESTORE_VICTIMS", "0")
        assert load_config().role_strip_restore_victims is False

    def test_invalid_webhook_url_ignored(self, env):
        env.setenv("ERROR_WEBHOOK_URL", "discord.com/api/webhooks/1")
        assert load_config().error_webhook_url is None

    def test_channel_name_override(self, env):
        env.setenv("LOG_CHANNEL_NAME", "guard-log")
        assert load_config().log_channel_name == "guard-log"


class TestGetConfig:
    """Tests for the config singleton."""

    def test_get_config_is_cached(self, env):
        set_config(None)
        first = get_config()
        env.setenv("COMMAND_PREFIX", "!")
        assert get_config() is first
        set_config(None)
        assert get_config().command_prefix == "!"
