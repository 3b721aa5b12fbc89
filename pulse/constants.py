"""
pulse.constants — Shared Constants
===================================

Single source of truth for scoring thresholds, staff permission names and
leaderboard presentation.  Import from here instead of duplicating in cogs,
engine modules and tests.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Anti-spam thresholds
# ---------------------------------------------------------------------------
MOD_COMMAND_PREFIX = "!"
SLASH_COMMAND_PREFIX = "/"
MIN_MESSAGE_LENGTH = 10           # trimmed characters
MIN_SECONDS_BETWEEN_MESSAGES = 10
DEFAULT_MESSAGE_STATE_CAPACITY = 10_000

# ---------------------------------------------------------------------------
# Exclusion policy — any of these guild permissions marks a member as staff
# (names match ``discord.Permissions`` attributes)
# ---------------------------------------------------------------------------
STAFF_PERMISSIONS: frozenset[str] = frozenset({
    "administrator",
    "moderate_members",
    "manage_guild",
    "manage_messages",
    "kick_members",
    "ban_members",
})

# ---------------------------------------------------------------------------
# Leaderboard presentation
# ---------------------------------------------------------------------------
LEADERBOARD_SIZE = 10
LEADERBOARD_INTERVAL_MINUTES = 5
LEADERBOARD_PLACEHOLDER = "\U0001f3c6 Loading leaderboards..."  # 🏆
NO_ENGAGEMENT_TEXT = "_No engagement data yet._"
NO_REFERRAL_TEXT = "_No referral data yet._"

DEFAULT_POSTHOG_HOST = "https://app.posthog.com"
UNKNOWN_ID = "unknown"
