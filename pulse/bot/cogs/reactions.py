"""
pulse.bot.cogs.reactions — Reaction capture
============================================

Listens for ``on_raw_reaction_add`` (raw so reactions on old, uncached
messages still count) and forwards a ``discord_reaction_added`` record.
Reactions don't affect scores.
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


class Reactions(commands.Cog, name="Reactions"):
    """Captures reaction analytics."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        """Fire when any reaction is added, even on uncached messages."""
        try:
            await self._handle_reaction(payload)
        except Exception:
            logger.exception(
                "Error processing reaction on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    async def _handle_reaction(self, payload: discord.RawReactionActionEvent) -> None:
        """Inner reaction handler (separated for error isolation)."""

        # Gate: guild reactions from humans only (member is None in DMs)
        if payload.member is None or payload.member.bot:
            return

        guild = self.bot.get_guild(payload.guild_id) if payload.guild_id else None
        if not self.bot.is_tracked_guild(guild):
            return

        channel = self.bot.get_channel(payload.channel_id)
        event = adapters.reaction_added(payload, guild, channel)
        self.bot.analytics.capture_all(self.bot.scoring.handle(event))
        logger.info(
            "Reaction added by %s: %s in #%s",
            event.user.username, event.emoji_name, event.channel.name or event.channel.id,
        )


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Reactions(bot))
