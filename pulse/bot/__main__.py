"""
pulse.bot.__main__ — Entry point for ``python -m pulse.bot``
=============================================================

Wiring:
1. Load .env (secrets) and validate them — exit before connecting if missing.
2. Load config.yaml (soft settings).
3. Build the PostHog sink.
4. Create the PulseBot (which builds the ScoringEngine).
5. Start the bot (blocking — runs the asyncio event loop).

Run with::

    python -m pulse.bot
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from pulse.bot.core import PulseBot
from pulse.config import ConfigError, load_config, load_secrets
from pulse.services.analytics import AnalyticsSink

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pulse")


def main() -> None:
    """Bootstrap and run the Pulse bot."""

    # 1. Secrets.
    load_dotenv()
    try:
        secrets = load_secrets()
    except ConfigError as exc:
        logger.critical("%s  Copy .env.example → .env and fill it in.", exc)
        sys.exit(1)

    # 2. Soft configuration.
    try:
        cfg = load_config(os.getenv("PULSE_CONFIG", "config.yaml"))
    except (FileNotFoundError, KeyError, ConfigError) as exc:
        logger.critical("Invalid configuration: %s", exc)
        sys.exit(1)
    logger.info(
        "Config loaded — %s (guild scope: %s)",
        cfg.community_name, cfg.guild_id or "all guilds",
    )
    if cfg.leaderboard_channel_id is None:
        logger.info("leaderboard_channel_id not set — skipping leaderboard setup.")

    # 3. Analytics.
    analytics = AnalyticsSink.from_secrets(secrets)

    # 4. Bot.
    bot = PulseBot(cfg=cfg, analytics=analytics)

    # 5. Run (blocks until Ctrl+C or SIGTERM; both end in PulseBot.close()).
    logger.info("Starting Pulse bot…")
    try:
        bot.run(secrets.discord_token, log_handler=None)
    except KeyboardInterrupt:
        logger.info("Shutting down gracefully…")


if __name__ == "__main__":
    main()
