"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from pulse.engine.events import (
    ChannelRef,
    GuildRef,
    MemberInfo,
    MessageCreated,
)
from pulse.engine.exclusion import ExclusionConfig, ExclusionPolicy
from pulse.engine.scoring import ScoringEngine

T0 = datetime(2025, 1, 6, 12, 0, 0, tzinfo=UTC)
GUILD = GuildRef(id=100, name="Test Guild")
GENERAL = ChannelRef(id=500, name="general")
ANNOUNCEMENTS = ChannelRef(id=501, name="announcements")

EXCLUDED_ROLE_ID = 777
EXCLUDED_USER_ID = 4242


@pytest.fixture
def make_member():
    """Factory for :class:`MemberInfo` objects."""

    def _make(
        member_id: int = 1001,
        *,
        bot: bool = False,
        roles: tuple[int, ...] = (),
        permissions: tuple[str, ...] = (),
        name: str | None = None,
    ) -> MemberInfo:
        username = name or f"user{member_id}"
        return MemberInfo(
            id=member_id,
            username=username,
            display_name=username.title(),
            bot=bot,
            role_ids=frozenset(roles),
            permissions=frozenset(permissions),
        )

    return _make


@pytest.fixture
def make_message():
    """Factory for :class:`MessageCreated` events authored by a member."""
    counter = iter(range(1, 1_000_000))

    def _make(
        member: MemberInfo,
        content: str,
        at: datetime = T0,
        *,
        channel: ChannelRef = GENERAL,
        resolved: bool = True,
    ) -> MessageCreated:
        return MessageCreated(
            guild=GUILD,
            message_id=9_000_000 + next(counter),
            author=member,
            member=member if resolved else None,
            channel=channel,
            content=content,
            timestamp=at,
        )

    return _make


@pytest.fixture
def engine() -> ScoringEngine:
    """Scoring engine with one excluded role and one excluded user."""
    policy = ExclusionPolicy(
        ExclusionConfig(
            role_ids=frozenset({EXCLUDED_ROLE_ID}),
            user_ids=frozenset({EXCLUDED_USER_ID}),
        )
    )
    return ScoringEngine(policy)
