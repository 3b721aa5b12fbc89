"""
pulse.bot.cogs.voice — Voice session tracking
==============================================

Feeds every voice-state change into the engine's per-(guild, member) session
tracker, which turns joins, leaves and channel switches into
``discord_voice_joined`` / ``discord_voice_left`` records with session
lengths.  Voice time isn't scored.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from pulse.bot import adapters

if TYPE_CHECKING:
    from pulse.bot.core import PulseBot

logger = logging.getLogger(__name__)


class Voice(commands.Cog, name="Voice"):
    """Tracks voice channel sessions."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_voice_state_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        """Track voice join/leave/switch events."""
        logger.debug(
            "Gateway event: VOICE_STATE %s (%s → %s, bot=%s)",
            member.name,
            getattr(before.channel, "name", "None"),
            getattr(after.channel, "name", "None"),
            member.bot,
        )
        try:
            await self._handle_voice_update(member, before, after)
        except Exception:
            logger.exception("Error processing voice state update for user %s", member.id)

    async def _handle_voice_update(
        self,
        member: discord.Member,
        before: discord.VoiceState,
        after: discord.VoiceState,
    ) -> None:
        if member.bot or not self.bot.is_tracked_guild(member.guild):
            return

        event = adapters.voice_state_changed(member, before, after)
        records = self.bot.scoring.handle(event)
        self.bot.analytics.capture_all(records)

        for record in records:
            props = record.properties
            if "session_seconds" in props:
                logger.info(
                    "%s left voice #%s after %ss",
                    member, props["channel_name"], props["session_seconds"],
                )
            else:
                logger.info("%s joined voice #%s", member, props["channel_name"])


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Voice(bot))
