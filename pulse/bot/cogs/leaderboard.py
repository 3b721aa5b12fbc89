"""
pulse.bot.cogs.leaderboard — Periodic leaderboard refresh
==========================================================

A ``discord.ext.tasks`` loop replaces the leaderboard message every
``leaderboard_interval_minutes`` (default 5).  The first iteration runs as
soon as the bot is ready, so the board is fresh right after startup.  The
loop is cancelled when the cog unloads, which ``Bot.close()`` does on
shutdown.

``!leaderboard`` forces a refresh (Manage Server permission required).
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from pulse.constants import LEADERBOARD_INTERVAL_MINUTES

if TYPE_CHECKING:
    from pulse.bot.core import PulseBot

logger = logging.getLogger(__name__)


class Leaderboard(commands.Cog, name="Leaderboard"):
    """Keeps the leaderboard message current."""

    def __init__(self, bot: PulseBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        """Start the refresh loop when the cog is loaded."""
        if not self.bot.leaderboard.enabled:
            logger.info("Leaderboard channel not configured — auto-update disabled.")
            return
        self.refresh_loop.change_interval(minutes=self.bot.cfg.leaderboard_interval_minutes)
        self.refresh_loop.start()
        logger.info(
            "Leaderboard auto-update started (every %d minutes).",
            self.bot.cfg.leaderboard_interval_minutes,
        )

    async def cog_unload(self) -> None:
        """Stop the refresh loop when the cog is unloaded."""
        self.refresh_loop.cancel()

    @tasks.loop(minutes=LEADERBOARD_INTERVAL_MINUTES)
    async def refresh_loop(self) -> None:
        """Re-render and edit the leaderboard message."""
        try:
            await self.bot.leaderboard.refresh()
        except Exception:
            logger.exception("Leaderboard refresh failed", extra={"task": "leaderboard"})

    @refresh_loop.before_loop
    async def _wait_ready(self) -> None:
        await self.bot.wait_until_ready()

    @commands.command(name="leaderboard")
    @commands.guild_only()
    @commands.has_guild_permissions(manage_guild=True)
    async def refresh_now(self, ctx: commands.Context) -> None:
        """Refresh the leaderboard message immediately."""
        if not self.bot.leaderboard.enabled:
            await ctx.reply("No leaderboard channel is configured.")
            return
        ok = await self.bot.leaderboard.refresh()
        await ctx.reply("Leaderboard refreshed." if ok else "Leaderboard refresh failed — check the logs.")

    async def cog_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        if isinstance(error, commands.CheckFailure):
            return
        logger.error("Command %s failed: %s", ctx.command, error)


async def setup(bot: PulseBot) -> None:
    await bot.add_cog(Leaderboard(bot))
