"""
tests/test_config.py — Configuration Loader Tests
==================================================
"""

from __future__ import annotations

import textwrap

import pytest

from pulse.config import (
    ConfigError,
    PulseConfig,
    load_config,
    load_secrets,
    parse_id_list,
)
from pulse.constants import DEFAULT_POSTHOG_HOST

_OVERRIDE_VARS = (
    "GUILD_ID",
    "LEADERBOARD_CHANNEL_ID",
    "LEADERBOARD_MESSAGE_ID",
    "EXCLUDED_ROLE_IDS",
    "EXCLUDED_USER_IDS",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (*_OVERRIDE_VARS, "DISCORD_TOKEN", "POSTHOG_API_KEY", "POSTHOG_HOST"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def write_config(tmp_path):
    def _write(body: str):
        path = tmp_path / "config.yaml"
        path.write_text(textwrap.dedent(body), encoding="utf-8")
        return path

    return _write


class TestParseIdList:
    def test_comma_separated_string(self):
        assert parse_id_list(" 1, 2,,3 ") == frozenset({1, 2, 3})

    def test_yaml_list(self):
        assert parse_id_list([10, "20"]) == frozenset({10, 20})

    def test_none_is_empty(self):
        assert parse_id_list(None) == frozenset()

    def test_garbage_raises(self):
        with pytest.raises(ConfigError):
            parse_id_list("123,abc")


class TestLoadConfig:
    def test_minimal_file_uses_defaults(self, write_config):
        cfg = load_config(write_config("community_name: Test Community\n"))
        assert cfg.community_name == "Test Community"
        assert cfg.bot_prefix == "!"
        assert cfg.guild_id is None
        assert cfg.leaderboard_channel_id is None
        assert cfg.leaderboard_interval_minutes == 5
        assert cfg.min_message_length == 10
        assert cfg.min_message_interval_seconds == 10
        assert cfg.excluded_role_ids == frozenset()
        assert cfg.stats_api_port is None

    def test_full_file(self, write_config):
        cfg = load_config(write_config("""
            community_name: Test Community
            guild_id: 123
            leaderboard_channel_id: "456"
            leaderboard_footer: See you next week!
            excluded_role_ids: [1, 2]
            excluded_user_ids: "3,4"
            min_message_length: 5
            stats_api_port: 8080
        """))
        assert cfg.guild_id == 123
        assert cfg.leaderboard_channel_id == 456
        assert cfg.leaderboard_footer == "See you next week!"
        assert cfg.excluded_role_ids == frozenset({1, 2})
        assert cfg.excluded_user_ids == frozenset({3, 4})
        assert cfg.min_message_length == 5
        assert cfg.stats_api_port == 8080

    def test_env_overrides_yaml(self, write_config, monkeypatch):
        monkeypatch.setenv("GUILD_ID", "999")
        monkeypatch.setenv("EXCLUDED_ROLE_IDS", "7,8")
        monkeypatch.setenv("LEADERBOARD_MESSAGE_ID", "  ")
        cfg = load_config(write_config("""
            community_name: Test Community
            guild_id: 123
            leaderboard_message_id: 55
        """))
        assert cfg.guild_id == 999
        assert cfg.excluded_role_ids == frozenset({7, 8})
        assert cfg.leaderboard_message_id == 55

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_community_name(self, write_config):
        with pytest.raises(KeyError):
            load_config(write_config("guild_id: 1\n"))

    def test_bad_id(self, write_config):
        with pytest.raises(ConfigError):
            load_config(write_config("community_name: X\nguild_id: not-a-number\n"))


class TestTrackedGuild:
    def test_unscoped_tracks_everything(self):
        cfg = PulseConfig(community_name="X")
        assert cfg.is_tracked_guild(1) is True
        assert cfg.is_tracked_guild(None) is False

    def test_scoped(self):
        cfg = PulseConfig(community_name="X", guild_id=5)
        assert cfg.is_tracked_guild(5) is True
        assert cfg.is_tracked_guild(6) is False


class TestLoadSecrets:
    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "token")
        monkeypatch.setenv("POSTHOG_API_KEY", "phc_key")
        secrets = load_secrets()
        assert secrets.discord_token == "token"
        assert secrets.posthog_api_key == "phc_key"
        assert secrets.posthog_host == DEFAULT_POSTHOG_HOST

    def test_custom_host(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "token")
        monkeypatch.setenv("POSTHOG_API_KEY", "phc_key")
        monkeypatch.setenv("POSTHOG_HOST", "https://eu.posthog.com")
        assert load_secrets().posthog_host == "https://eu.posthog.com"

    def test_missing_token(self, monkeypatch):
        monkeypatch.setenv("POSTHOG_API_KEY", "phc_key")
        with pytest.raises(ConfigError, match="DISCORD_TOKEN"):
            load_secrets()

    def test_placeholder_key(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "token")
        monkeypatch.setenv("POSTHOG_API_KEY", "your-posthog-api-key-here")
        with pytest.raises(ConfigError, match="POSTHOG_API_KEY"):
            load_secrets()
