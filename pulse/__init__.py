"""
Pulse — Community Engagement & Referral Scoring for Discord
============================================================
Watches a community's activity stream, keeps live engagement and referral
leaderboards, and forwards a rich event stream to PostHog for the weekly
"official" numbers.

Package layout::

    pulse/
    ├── config.py          # YAML + env → typed Python config
    ├── constants.py       # Thresholds, permission names, presentation
    ├── engine/
    │   ├── events.py      # Tagged event variants (pydantic)
    │   ├── exclusion.py   # Who never gets scored
    │   ├── anti_spam.py   # Per-message spam heuristics
    │   ├── ledger.py      # Engagement + referral score stores
    │   ├── referrals.py   # Invite snapshot + diff attribution
    │   ├── voice.py       # Voice session state machine
    │   ├── records.py     # Analytics record type + event names
    │   └── scoring.py     # ScoringEngine — owns all of the above
    ├── services/
    │   ├── analytics.py   # PostHog sink
    │   └── leaderboard.py # Renderer + leaderboard message publisher
    ├── bot/
    │   ├── core.py        # Bot subclass, cog loader
    │   ├── adapters.py    # discord.py objects → event models
    │   └── cogs/          # Gateway listeners and commands
    └── api/
        └── main.py        # Optional read-only FastAPI stats app
"""

__version__ = "0.1.0"
