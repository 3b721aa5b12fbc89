"""
tests/test_leaderboard.py — Leaderboard Rendering & Publishing Tests
=====================================================================

Uses ``unittest.mock`` to stand in for the Discord channel and message.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord

from pulse.config import PulseConfig
from pulse.constants import LEADERBOARD_PLACEHOLDER, NO_ENGAGEMENT_TEXT, NO_REFERRAL_TEXT
from pulse.engine.ledger import LedgerEntry
from pulse.engine.scoring import ScoringEngine
from pulse.services.leaderboard import LeaderboardPublisher, render_leaderboard


def run_async(coro):
    return asyncio.run(coro)


def http_error(cls, status: int):
    return cls(MagicMock(status=status, reason="error"), "error")


ENGAGEMENT = {
    1: LedgerEntry(1, 3, "A"),
    2: LedgerEntry(2, 5, "B"),
    3: LedgerEntry(3, 1, "C"),
}


class TestRender:
    def test_sections_in_rank_order(self):
        text = render_leaderboard(ENGAGEMENT, {}, subtitle=None)
        lines = text.splitlines()
        assert lines[0] == "\U0001f3c6 **Weekly Leaderboards**"
        assert lines[2] == "\U0001f525 **Engagement (non-spammy messages)**"
        assert lines[3:6] == [
            "1. <@2> — **5 pts**",
            "2. <@1> — **3 pts**",
            "3. <@3> — **1 pts**",
        ]
        assert lines[-1] == NO_REFERRAL_TEXT
        assert text.endswith("\n")

    def test_highest_score_first(self):
        engagement = [LedgerEntry(1, 5, "A"), LedgerEntry(2, 10, "B"), LedgerEntry(3, 3, "C")]
        text = render_leaderboard(engagement, {})
        assert text.index("<@2>") < text.index("<@1>") < text.index("<@3>")

    def test_same_snapshot_same_text(self):
        referrals = [LedgerEntry(9, 2, "Z")]
        assert render_leaderboard(ENGAGEMENT, referrals) == render_leaderboard(
            dict(reversed(ENGAGEMENT.items())), list(referrals)
        )

    def test_empty_placeholders(self):
        text = render_leaderboard({}, {})
        assert NO_ENGAGEMENT_TEXT in text
        assert NO_REFERRAL_TEXT in text

    def test_truncates_to_limit(self):
        engagement = {i: LedgerEntry(i, i, f"m{i}") for i in range(1, 16)}
        text = render_leaderboard(engagement, {}, limit=10)
        assert "10. <@6> — **6 pts**" in text
        assert "<@5>" not in text

    def test_referral_lines_and_footer(self):
        text = render_leaderboard({}, [LedgerEntry(4, 2, "D")], title="Monthly", footer="bye")
        lines = text.splitlines()
        assert lines[0] == "\U0001f3c6 **Monthly**"
        assert "1. <@4> — **2 joins**" in lines
        assert lines[-2:] == ["", "bye"]


class TestPublisher:
    def _publisher(self, *, message_id=None, channel_id=500):
        cfg = PulseConfig(
            community_name="Test",
            leaderboard_channel_id=channel_id,
            leaderboard_message_id=message_id,
        )
        message = MagicMock(id=321)
        message.edit = AsyncMock()
        channel = MagicMock(id=channel_id)
        channel.send = AsyncMock(return_value=message)
        channel.fetch_message = AsyncMock(return_value=message)
        bot = MagicMock()
        bot.get_channel.return_value = channel
        engine = ScoringEngine()
        engine.engagement.increment(2, "B")
        return LeaderboardPublisher(bot, engine, cfg), channel, message

    def test_disabled_without_channel(self):
        publisher, _, _ = self._publisher(channel_id=None)
        assert publisher.enabled is False
        assert run_async(publisher.refresh()) is False

    def test_creates_message_then_edits(self):
        publisher, channel, message = self._publisher()

        assert run_async(publisher.refresh()) is True

        channel.send.assert_awaited_once_with(LEADERBOARD_PLACEHOLDER)
        message.edit.assert_awaited_once()
        assert "<@2>" in message.edit.await_args.kwargs["content"]

        run_async(publisher.refresh())
        channel.send.assert_awaited_once()
        assert message.edit.await_count == 2

    def test_reuses_stored_message(self):
        publisher, channel, _ = self._publisher(message_id=321)
        run_async(publisher.refresh())
        channel.fetch_message.assert_awaited_once_with(321)
        channel.send.assert_not_awaited()

    def test_stale_stored_message_is_replaced(self):
        publisher, channel, _ = self._publisher(message_id=321)
        channel.fetch_message.side_effect = http_error(discord.NotFound, 404)
        assert run_async(publisher.refresh()) is True
        channel.send.assert_awaited_once()

    def test_fetches_uncached_channel(self):
        publisher, channel, _ = self._publisher()
        publisher.bot.get_channel.return_value = None
        publisher.bot.fetch_channel = AsyncMock(return_value=channel)
        assert run_async(publisher.refresh()) is True

    def test_missing_channel(self):
        publisher, _, _ = self._publisher()
        publisher.bot.get_channel.return_value = None
        publisher.bot.fetch_channel = AsyncMock(side_effect=http_error(discord.Forbidden, 403))
        assert run_async(publisher.refresh()) is False

    def test_deleted_message_is_recreated_next_cycle(self):
        publisher, channel, message = self._publisher()
        run_async(publisher.ensure_message())
        message.edit.side_effect = http_error(discord.NotFound, 404)

        assert run_async(publisher.refresh()) is False
        assert publisher.message is None

        message.edit.side_effect = None
        assert run_async(publisher.refresh()) is True
        assert channel.send.await_count == 2

    def test_http_error_skips_cycle(self):
        publisher, _, message = self._publisher()
        run_async(publisher.ensure_message())
        message.edit.side_effect = http_error(discord.HTTPException, 500)
        assert run_async(publisher.refresh()) is False
        assert publisher.message is message
