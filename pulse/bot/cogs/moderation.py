"""
pulse.bot.cogs.moderation — ``!warn`` command
==============================================

``!warn @member reason…`` logs a warning to analytics and confirms in
channel.  Only members with the Moderate Members permission can use it;
anyone else is silently ignored.  A missing or unresolvable mention gets a
usage reply and nothing is recorded.
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

DEFAULT_REASON = "No reason provided"


class Moderation(commands.Cog, name="Moderation"):
    """Lightweight moderation commands."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    def usage(self) -> str:
        prefix = self.bot.cfg.bot_prefix
        return f"Please mention a user to warn. Example: `{prefix}warn @user Spamming`"

    @commands.command(name="warn")
    @commands.guild_only()
    @commands.has_guild_permissions(moderate_members=True)
    async def warn(
        self,
        ctx: commands.Context,
        member: discord.Member | None = None,
        *,
        reason: str = DEFAULT_REASON,
    ) -> None:
        """Log a warning for a member: !warn @user reason"""
        if not self.bot.is_tracked_guild(ctx.guild):
            return
        await self.issue_warning(ctx, member, reason)

    async def issue_warning(
        self,
        ctx: commands.Context,
        member: discord.Member | None,
        reason: str,
    ) -> None:
        if member is None:
            await ctx.reply(self.usage())
            return

        reason = reason.strip() or DEFAULT_REASON
        record = self.bot.scoring.warning_record(
            warned=adapters.user_info(member),
            moderator=adapters.user_info(ctx.author),
            channel=adapters.channel_ref(ctx.channel),
            reason=reason,
            guild=adapters.guild_ref(ctx.guild),
        )
        self.bot.analytics.capture(record)

        await ctx.reply(f"\u26a0\ufe0f Warning logged for <@{member.id}>. Reason: {reason}")
        logger.info("Warning issued to %s by %s: %s", member, ctx.author, reason)

    async def cog_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.BadArgument):
            await ctx.reply(self.usage())
            return
        if isinstance(error, commands.CheckFailure):
            logger.debug("Ignoring %s from %s: %s", ctx.command, ctx.author, error)
            return
        logger.error("Command %s failed: %s", ctx.command, error)


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Moderation(bot))
