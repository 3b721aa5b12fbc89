"""
pulse.api.main — Read-only stats API
=====================================

A small FastAPI app exposing the live in-memory leaderboards.  There is no
database behind it: the app reads the running :class:`ScoringEngine`, so it
is served from inside the bot process (see :class:`EmbeddedServer`) when
``stats_api_port`` is configured.

Endpoints::

    GET /api/health
    GET /api/leaderboard?limit=10
    GET /api/members/{member_id}
    GET /api/voice/sessions
"""

from __future__ import annotations

import contextlib
import logging

import uvicorn
from fastapi import APIRouter, Depends, FastAPI, Query, Request
from pydantic import BaseModel

from pulse import __version__
from pulse.constants import LEADERBOARD_SIZE
from pulse.engine.ledger import LedgerEntry
from pulse.engine.scoring import ScoringEngine

logger = logging.getLogger(__name__)

router = APIRouter(tags=["public"])


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------
class LeaderboardEntryOut(BaseModel):
    rank: int
    member_id: str
    display_name: str
    value: int


class LeaderboardOut(BaseModel):
    engagement: list[LeaderboardEntryOut]
    referrals: list[LeaderboardEntryOut]


class MemberScoreOut(BaseModel):
    member_id: str
    engagement_score: int
    referral_count: int


class VoiceSessionsOut(BaseModel):
    open_sessions: int


def _ranked(entries: list[LedgerEntry]) -> list[LeaderboardEntryOut]:
    return [
        LeaderboardEntryOut(
            rank=i,
            member_id=str(e.member_id),
            display_name=e.display_name,
            value=e.value,
        )
        for i, e in enumerate(entries, start=1)
    ]


# ---------------------------------------------------------------------------
# Dependencies
# ---------------------------------------------------------------------------
async def get_engine(request: Request) -> ScoringEngine:
    return request.app.state.engine


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("/leaderboard", response_model=LeaderboardOut)
async def get_leaderboard(
    limit: int = Query(LEADERBOARD_SIZE, ge=1, le=100),
    engine: ScoringEngine = Depends(get_engine),
):
    """Top members by engagement score and by referrals."""
    return LeaderboardOut(
        engagement=_ranked(engine.engagement.top(limit)),
        referrals=_ranked(engine.referrals.top(limit)),
    )


@router.get("/members/{member_id}", response_model=MemberScoreOut)
async def get_member(member_id: int, engine: ScoringEngine = Depends(get_engine)):
    """Scores for one member — zeros if we've never seen them."""
    return MemberScoreOut(
        member_id=str(member_id),
        engagement_score=engine.engagement.get(member_id),
        referral_count=engine.referrals.get(member_id),
    )


@router.get("/voice/sessions", response_model=VoiceSessionsOut)
async def get_voice_sessions(engine: ScoringEngine = Depends(get_engine)):
    return VoiceSessionsOut(open_sessions=len(engine.voice))


def create_app(engine: ScoringEngine) -> FastAPI:
    """Build the API around a live scoring engine."""
    app = FastAPI(title="Pulse Stats API", version=__version__)
    app.state.engine = engine
    app.include_router(router, prefix="/api")

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app


# ---------------------------------------------------------------------------
# In-process serving
# ---------------------------------------------------------------------------
class EmbeddedServer(uvicorn.Server):
    """Uvicorn server that leaves signal handling to the bot's event loop."""

    def install_signal_handlers(self) -> None:  # older uvicorn
        pass

    @contextlib.contextmanager
    def capture_signals(self):  # newer uvicorn
        yield


def build_server(engine: ScoringEngine, host: str, port: int) -> EmbeddedServer:
    config = uvicorn.Config(
        create_app(engine),
        host=host,
        port=port,
        log_config=None,  # keep the bot's logging setup
        lifespan="off",
    )
    logger.info("Stats API configured on http://%s:%d", host, port)
    return EmbeddedServer(config)
