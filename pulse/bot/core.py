"""
pulse.bot.core — Bot Instance & Cog Loader
===========================================

:class:`PulseBot` is a ``commands.Bot`` subclass that carries the
process-wide state every cog needs:

1. ``bot.cfg`` — the parsed :class:`PulseConfig`.
2. ``bot.scoring`` — the single :class:`ScoringEngine` (ledgers, snapshots,
   voice sessions).
3. ``bot.analytics`` — the PostHog sink.
4. ``bot.leaderboard`` — the leaderboard message publisher.

On startup it loads every cog in ``pulse/bot/cogs/``, optionally starts the
read-only stats API, and on the first ``on_ready`` preloads the invite
snapshots the referral tracker diffs against.
"""

from __future__ import annotations

import asyncio
import logging
import signal

import discord
from discord.ext import commands

from pulse.api.main import EmbeddedServer, build_server
from pulse.bot import adapters
from pulse.config import PulseConfig
from pulse.engine.scoring import ScoringEngine
from pulse.services.analytics import AnalyticsSink
from pulse.services.leaderboard import LeaderboardPublisher

logger = logging.getLogger(__name__)

# Cog modules to load on startup.
EXTENSIONS: list[str] = [
    "pulse.bot.cogs.messages",
    "pulse.bot.cogs.reactions",
    "pulse.bot.cogs.membership",
    "pulse.bot.cogs.voice",
    "pulse.bot.cogs.moderation",
    "pulse.bot.cogs.leaderboard",
]


class PulseBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`PulseConfig` from ``config.yaml``.
    analytics:
        Sink that forwards analytics records to PostHog.
    scoring:
        Optional pre-built engine (tests); built from *cfg* otherwise.
    """

    def __init__(
        self,
        cfg: PulseConfig,
        analytics: AnalyticsSink,
        scoring: ScoringEngine | None = None,
    ) -> None:
        # Privileged intents (must be enabled in the Developer Portal):
        #   MESSAGE_CONTENT — spam heuristics need the text
        #   GUILD_MEMBERS   — join/leave, member lookups for exclusions
        # default() already covers guilds, messages, reactions, voice
        # states, invites and moderation (bans).
        intents = discord.Intents.default()
        intents.message_content = True
        intents.members = True
        intents.presences = False

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} engagement & referral tracker",
        )

        self.cfg = cfg
        self.analytics = analytics
        self.scoring = scoring or ScoringEngine.from_config(cfg)
        self.leaderboard = LeaderboardPublisher(self, self.scoring, cfg)

        self._invites_loaded = False
        self._api_server: EmbeddedServer | None = None
        self._api_task: asyncio.Task | None = None
        self._shutdown_task: asyncio.Task | None = None

    def is_tracked_guild(self, guild: discord.Guild | None) -> bool:
        return guild is not None and self.cfg.is_tracked_guild(guild.id)

    async def resolve_member(self, guild: discord.Guild, user_id: int) -> discord.Member | None:
        """Guild member for *user_id* from cache, then the API; ``None`` if gone."""
        member = guild.get_member(user_id)
        if member is not None:
            return member
        try:
            return await guild.fetch_member(user_id)
        except (discord.NotFound, discord.Forbidden, discord.HTTPException):
            return None

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load cogs, install the SIGTERM handler and start the stats API.

        A cog that fails to load is logged and skipped.
        """
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

        self.install_signal_handlers(asyncio.get_running_loop())

        if self.cfg.stats_api_port:
            self._api_server = build_server(
                self.scoring, self.cfg.stats_api_host, self.cfg.stats_api_port,
            )
            self._api_task = asyncio.create_task(self._api_server.serve(), name="stats-api")

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Run :meth:`close` on SIGTERM so queued analytics are flushed.

        ``Client.run()`` only turns Ctrl+C into a clean shutdown.
        """
        try:
            loop.add_signal_handler(signal.SIGTERM, self._on_sigterm)
        except NotImplementedError:
            logger.warning("SIGTERM handler not supported on this platform")

    def _on_sigterm(self) -> None:
        logger.info("SIGTERM received")
        if self._shutdown_task is None:
            self._shutdown_task = asyncio.create_task(self.close(), name="sigterm-close")

    async def on_ready(self) -> None:
        """Fired when the bot has connected and the cache is populated."""
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user, self.user.id)

        # on_ready fires again after reconnects; the baseline is loaded once
        if not self._invites_loaded:
            self._invites_loaded = True
            await self.preload_invites()

    async def preload_invites(self) -> None:
        """Load the invite usage baseline for every tracked guild."""
        for guild in self.guilds:
            if not self.is_tracked_guild(guild):
                continue
            try:
                invites = await guild.invites()
            except (discord.Forbidden, discord.HTTPException):
                logger.exception("Error fetching invites for guild %s", guild.name)
                continue
            count = self.scoring.load_invites(
                guild.id, [adapters.invite_info(inv) for inv in invites],
            )
            logger.info("Loaded %d invites for guild %s", count, guild.name)

    async def on_command_error(self, ctx: commands.Context, error: commands.CommandError) -> None:
        """Unknown ``!`` commands are ordinary chat; everything else is logged."""
        if isinstance(error, commands.CommandNotFound):
            return
        if ctx.command is not None and ctx.command.has_error_handler():
            return
        if ctx.cog is not None and ctx.cog.has_error_handler():
            return
        logger.error("Command %s failed: %s", ctx.command, error)

    async def close(self) -> None:
        """Graceful shutdown — stop the API, flush analytics, disconnect."""
        logger.info("Bot shutting down…")
        if self._api_server is not None and self._api_task is not None:
            self._api_server.should_exit = True
            try:
                await self._api_task
            except Exception:
                logger.exception("Stats API did not stop cleanly")
        await asyncio.to_thread(self.analytics.shutdown)
        await super().close()
