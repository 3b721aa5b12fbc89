"""
pulse.services.leaderboard — Leaderboard rendering & publishing
================================================================

Two halves:

- :func:`render_leaderboard` — a pure formatter from ledger snapshots to the
  message text.  Same snapshots in, byte-identical text out.
- :class:`LeaderboardPublisher` — owns the single leaderboard message in the
  configured channel: reuses the stored message id when it still resolves,
  otherwise posts a fresh message, then edits it on every refresh.

Discord failures are logged and the refresh is skipped until the next cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

import discord

from pulse.constants import (
    LEADERBOARD_PLACEHOLDER,
    LEADERBOARD_SIZE,
    NO_ENGAGEMENT_TEXT,
    NO_REFERRAL_TEXT,
)
from pulse.engine.ledger import LedgerEntry, rank_entries

if TYPE_CHECKING:
    from pulse.config import PulseConfig
    from pulse.engine.scoring import ScoringEngine

logger = logging.getLogger(__name__)

LeaderboardSnapshot = Mapping[int, LedgerEntry] | Iterable[LedgerEntry]

DEFAULT_SUBTITLE = (
    "_(Live community view. Official winners are confirmed from analytics each week.)_"
)


def _entries(snapshot: LeaderboardSnapshot) -> Iterable[LedgerEntry]:
    if isinstance(snapshot, Mapping):
        return snapshot.values()
    return snapshot


def _section(
    heading: str,
    snapshot: LeaderboardSnapshot,
    unit: str,
    empty_text: str,
    limit: int,
) -> list[str]:
    lines = [heading]
    top = rank_entries(_entries(snapshot), limit)
    if not top:
        lines.append(empty_text)
    for rank, entry in enumerate(top, start=1):
        lines.append(f"{rank}. <@{entry.member_id}> — **{entry.value} {unit}**")
    return lines


def render_leaderboard(
    engagement: LeaderboardSnapshot,
    referrals: LeaderboardSnapshot,
    *,
    title: str = "Weekly Leaderboards",
    subtitle: str | None = DEFAULT_SUBTITLE,
    footer: str | None = None,
    limit: int = LEADERBOARD_SIZE,
) -> str:
    """Render both leaderboards as Discord message text."""
    lines = [f"\U0001f3c6 **{title}**"]  # 🏆
    if subtitle:
        lines.append(subtitle)
    lines.append("")

    lines += _section(
        "\U0001f525 **Engagement (non-spammy messages)**",  # 🔥
        engagement, "pts", NO_ENGAGEMENT_TEXT, limit,
    )
    lines.append("")
    lines += _section(
        "\U0001f517 **Referrals (members invited)**",  # 🔗
        referrals, "joins", NO_REFERRAL_TEXT, limit,
    )

    if footer:
        lines += ["", footer]
    return "\n".join(lines) + "\n"


class LeaderboardPublisher:
    """Keeps one leaderboard message up to date."""

    def __init__(self, bot: discord.Client, engine: ScoringEngine, cfg: PulseConfig) -> None:
        self.bot = bot
        self.engine = engine
        self.cfg = cfg
        self.message: discord.Message | None = None

    @property
    def enabled(self) -> bool:
        return self.cfg.leaderboard_channel_id is not None

    def render(self) -> str:
        engagement, referrals = self.engine.leaderboard_snapshot()
        return render_leaderboard(
            engagement,
            referrals,
            title=self.cfg.leaderboard_title,
            footer=self.cfg.leaderboard_footer,
        )

    async def _resolve_channel(self):
        channel_id = self.cfg.leaderboard_channel_id
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except (discord.NotFound, discord.Forbidden, discord.HTTPException):
                logger.warning("Leaderboard channel %s not found or not accessible", channel_id)
                return None
        if not hasattr(channel, "send") or not hasattr(channel, "fetch_message"):
            logger.warning("Leaderboard channel %s is not a text channel", channel_id)
            return None
        return channel

    async def ensure_message(self) -> discord.Message | None:
        """Return the leaderboard message, reusing or creating it as needed."""
        if self.message is not None or not self.enabled:
            return self.message

        channel = await self._resolve_channel()
        if channel is None:
            return None

        stored_id = self.cfg.leaderboard_message_id
        if stored_id is not None:
            try:
                self.message = await channel.fetch_message(stored_id)
                logger.info("Reusing existing leaderboard message %s", stored_id)
                return self.message
            except (discord.NotFound, discord.Forbidden, discord.HTTPException):
                logger.warning(
                    "Leaderboard message %s not found — creating a new one", stored_id,
                )

        try:
            self.message = await channel.send(LEADERBOARD_PLACEHOLDER)
        except (discord.Forbidden, discord.HTTPException):
            logger.exception("Failed to post leaderboard message in channel %s", channel.id)
            return None
        logger.info(
            "Created leaderboard message — save LEADERBOARD_MESSAGE_ID=%s to reuse it",
            self.message.id,
        )
        return self.message

    async def refresh(self) -> bool:
        """Replace the leaderboard text.  Returns True if the edit went through."""
        message = await self.ensure_message()
        if message is None:
            return False
        try:
            await message.edit(content=self.render())
        except discord.NotFound:
            logger.warning("Leaderboard message %s vanished; will re-create next cycle", message.id)
            self.message = None
            return False
        except discord.HTTPException:
            logger.exception("Error updating leaderboard message %s", message.id)
            return False
        return True
