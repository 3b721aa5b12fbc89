"""
pulse.config — YAML Configuration Loader
=========================================

Soft settings (community scope, leaderboard location, exclusions, tuning)
live in ``config.yaml``.  Secrets live in ``.env`` and are read separately by
:func:`load_secrets` so the YAML file can be committed safely.

A handful of keys can be overridden from the environment (``GUILD_ID``,
``LEADERBOARD_CHANNEL_ID``, ``LEADERBOARD_MESSAGE_ID``, ``EXCLUDED_ROLE_IDS``,
``EXCLUDED_USER_IDS``) which is handy when the same image is deployed to
several communities.

Usage::

    from pulse.config import load_config, load_secrets

    cfg = load_config()              # reads ./config.yaml by default
    secrets = load_secrets()         # DISCORD_TOKEN, POSTHOG_API_KEY, ...
    print(cfg.excluded_role_ids)     # frozenset({1234, 5678})
"""

from __future__ import annotations

import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

import yaml

from pulse.constants import (
    DEFAULT_MESSAGE_STATE_CAPACITY,
    DEFAULT_POSTHOG_HOST,
    LEADERBOARD_INTERVAL_MINUTES,
    MIN_MESSAGE_LENGTH,
    MIN_SECONDS_BETWEEN_MESSAGES,
    MOD_COMMAND_PREFIX,
)

# Env var → config key, applied after the YAML file is read
_ENV_OVERRIDES: dict[str, str] = {
    "GUILD_ID": "guild_id",
    "LEADERBOARD_CHANNEL_ID": "leaderboard_channel_id",
    "LEADERBOARD_MESSAGE_ID": "leaderboard_message_id",
    "EXCLUDED_ROLE_IDS": "excluded_role_ids",
    "EXCLUDED_USER_IDS": "excluded_user_ids",
}

_PLACEHOLDER_SECRETS = {"your-discord-bot-token-here", "your-posthog-api-key-here"}


class ConfigError(RuntimeError):
    """Raised when configuration or secrets are missing or malformed."""


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class PulseConfig:
    """Immutable configuration loaded from ``config.yaml`` (+ env overrides)."""

    # Identity
    community_name: str

    # Discord
    bot_prefix: str = MOD_COMMAND_PREFIX
    guild_id: int | None = None  # None → track every guild the bot is in

    # Leaderboard surface
    leaderboard_channel_id: int | None = None
    leaderboard_message_id: int | None = None
    leaderboard_interval_minutes: int = LEADERBOARD_INTERVAL_MINUTES
    leaderboard_title: str = "Weekly Leaderboards"
    leaderboard_footer: str | None = None

    # Analytics
    announcements_channel_name: str = "announcements"

    # Scoring
    excluded_role_ids: frozenset[int] = frozenset()
    excluded_user_ids: frozenset[int] = frozenset()
    min_message_length: int = MIN_MESSAGE_LENGTH
    min_message_interval_seconds: float = MIN_SECONDS_BETWEEN_MESSAGES
    message_state_capacity: int = DEFAULT_MESSAGE_STATE_CAPACITY

    # Optional read-only stats API
    stats_api_port: int | None = None
    stats_api_host: str = "127.0.0.1"

    def is_tracked_guild(self, guild_id: int | None) -> bool:
        """True if events from *guild_id* should be processed."""
        if guild_id is None:
            return False
        return self.guild_id is None or guild_id == self.guild_id


@dataclass(frozen=True, slots=True)
class Secrets:
    """Credentials read from the environment — never from ``config.yaml``."""

    discord_token: str
    posthog_api_key: str
    posthog_host: str = DEFAULT_POSTHOG_HOST


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def parse_id_list(raw: str | Iterable[int | str] | None) -> frozenset[int]:
    """Parse a comma-separated string (or YAML list) of Discord snowflakes.

    Blank items are skipped.  Non-numeric items raise :class:`ConfigError`.
    """
    if raw is None:
        return frozenset()
    items = raw.split(",") if isinstance(raw, str) else raw

    ids: set[int] = set()
    for item in items:
        text = str(item).strip()
        if not text:
            continue
        try:
            ids.add(int(text))
        except ValueError as exc:
            raise ConfigError(f"Invalid Discord ID in id list: {text!r}") from exc
    return frozenset(ids)


def _optional_int(value) -> int | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Expected an integer, got {value!r}") from exc


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> PulseConfig:
    """Read *path*, apply environment overrides and return a :class:`PulseConfig`.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If ``community_name`` is missing.
    ConfigError
        If an id or number is malformed.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    for env_key, cfg_key in _ENV_OVERRIDES.items():
        value = os.getenv(env_key)
        if value is not None and value.strip():
            raw[cfg_key] = value

    return PulseConfig(
        community_name=raw["community_name"],
        bot_prefix=raw.get("bot_prefix") or MOD_COMMAND_PREFIX,
        guild_id=_optional_int(raw.get("guild_id")),
        leaderboard_channel_id=_optional_int(raw.get("leaderboard_channel_id")),
        leaderboard_message_id=_optional_int(raw.get("leaderboard_message_id")),
        leaderboard_interval_minutes=int(
            raw.get("leaderboard_interval_minutes", LEADERBOARD_INTERVAL_MINUTES)
        ),
        leaderboard_title=raw.get("leaderboard_title") or "Weekly Leaderboards",
        leaderboard_footer=raw.get("leaderboard_footer"),
        announcements_channel_name=raw.get("announcements_channel_name") or "announcements",
        excluded_role_ids=parse_id_list(raw.get("excluded_role_ids")),
        excluded_user_ids=parse_id_list(raw.get("excluded_user_ids")),
        min_message_length=int(raw.get("min_message_length", MIN_MESSAGE_LENGTH)),
        min_message_interval_seconds=float(
            raw.get("min_message_interval_seconds", MIN_SECONDS_BETWEEN_MESSAGES)
        ),
        message_state_capacity=int(
            raw.get("message_state_capacity", DEFAULT_MESSAGE_STATE_CAPACITY)
        ),
        stats_api_port=_optional_int(raw.get("stats_api_port")),
        stats_api_host=raw.get("stats_api_host") or "127.0.0.1",
    )


def load_secrets() -> Secrets:
    """Read credentials from the environment.

    Call ``load_dotenv()`` first if secrets live in a ``.env`` file.

    Raises
    ------
    ConfigError
        If ``DISCORD_TOKEN`` or ``POSTHOG_API_KEY`` is missing or still the
        placeholder value from ``.env.example``.
    """
    token = os.getenv("DISCORD_TOKEN", "").strip()
    if not token or token in _PLACEHOLDER_SECRETS:
        raise ConfigError("DISCORD_TOKEN is not set.")

    api_key = os.getenv("POSTHOG_API_KEY", "").strip()
    if not api_key or api_key in _PLACEHOLDER_SECRETS:
        raise ConfigError("POSTHOG_API_KEY is not set.")

    host = os.getenv("POSTHOG_HOST", "").strip() or DEFAULT_POSTHOG_HOST
    return Secrets(discord_token=token, posthog_api_key=api_key, posthog_host=host)
