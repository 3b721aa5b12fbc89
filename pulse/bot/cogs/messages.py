"""
pulse.bot.cogs.messages — Message scoring & capture
====================================================

Every guild message is normalized into a ``MessageCreated`` event, run
through the anti-spam classifier and exclusion policy, and — if clean and
eligible — earns its author one engagement point.  Every message, scored or
not, is forwarded to analytics.

Pipeline:
1. on_message fires → gate checks (bot, DM, tracked guild)
2. Resolve the author as a guild member (needed for the exclusion policy)
3. ``ScoringEngine.handle_message`` classifies, scores and builds records
4. Records go to the analytics sink, fire-and-forget
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands
from pydantic import ValidationError

from pulse.bot import adapters

if TYPE_CHECKING:
    from pulse.bot.core import PulseBot

logger = logging.getLogger(__name__)


class Messages(commands.Cog, name="Messages"):
    """Scores non-spammy messages and captures message analytics."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        """Core scoring loop — fires on every message the bot can see."""
        logger.debug(
            "Gateway event: MESSAGE from %s in #%s (bot=%s, guild=%s)",
            message.author.name,
            getattr(message.channel, "name", "DM"),
            message.author.bot,
            message.guild.id if message.guild else "None",
        )
        try:
            await self._handle_message(message)
        except ValidationError as exc:
            logger.warning("Dropping malformed message event %s: %s", message.id, exc)
        except Exception:
            logger.exception(
                "Error processing message %s from user %s",
                message.id,
                message.author.id,
                extra={"event_type": "message", "user_id": message.author.id,
                       "message_id": message.id},
            )

    async def _handle_message(self, message: discord.Message) -> None:
        """Inner message handler (separated for error isolation)."""

        # Gate 1: Ignore bots
        if message.author.bot:
            return

        # Gate 2: Ignore DMs and untracked guilds
        if not self.bot.is_tracked_guild(message.guild):
            return

        member = message.author if isinstance(message.author, discord.Member) else None
        if member is None:
            member = await self.bot.resolve_member(message.guild, message.author.id)

        event = adapters.message_created(message, member)
        outcome = self.bot.scoring.handle_message(event)
        if outcome is None:
            return
        self.bot.analytics.capture_all(outcome.records)

        if outcome.scored:
            logger.info(
                "SCORED: %s +1 (total %d) in #%s",
                event.author.username, outcome.new_total, event.channel.name,
            )
        else:
            logger.info("NOT SCORED: %s reason=%s", event.author.username, outcome.reason)

    @commands.Cog.listener()
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent) -> None:
        """Capture deletions, including messages that aren't cached."""
        try:
            if payload.guild_id is None:
                return
            guild = self.bot.get_guild(payload.guild_id)
            if not self.bot.is_tracked_guild(guild):
                return

            channel = self.bot.get_channel(payload.channel_id)
            event = adapters.message_deleted(payload, guild, channel)
            records = self.bot.scoring.handle(event)
            self.bot.analytics.capture_all(records)
            if records:
                logger.info(
                    "Message deleted in #%s (author: %s)",
                    event.channel.name or event.channel.id,
                    event.author.username if event.author else "unknown",
                )
        except Exception:
            logger.exception("Error processing deletion of message %s", payload.message_id)


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Messages(bot))
