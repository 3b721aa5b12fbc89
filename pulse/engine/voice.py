"""
pulse.engine.voice — Voice session state machine
=================================================

Per (guild, member) the tracker is either *absent* or *in a channel since
t*.  Each voice-state change yields the transitions that happened:

- absent → channel ``c``:       one ``joined``
- channel ``c`` → absent:       one ``left`` with the session length
- channel ``c1`` → ``c2``:      ``left`` for ``c1`` then ``joined`` for ``c2``;
  the clock restarts for ``c2``

Durations are whole seconds, never negative.  A leave or switch with no
recorded session (e.g. the bot restarted mid-call) counts as 0 seconds.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum

from pulse.engine.events import ChannelRef


class VoiceTransitionKind(StrEnum):
    JOINED = "joined"
    LEFT = "left"


@dataclass(frozen=True, slots=True)
class VoiceSession:
    channel_id: int
    joined_at: datetime


@dataclass(frozen=True, slots=True)
class VoiceTransition:
    kind: VoiceTransitionKind
    channel: ChannelRef
    joined_at: datetime
    left_at: datetime | None = None
    session_seconds: int | None = None


def session_seconds(joined_at: datetime, left_at: datetime) -> int:
    """Whole seconds between two instants, clamped at zero."""
    return max(0, round((left_at - joined_at).total_seconds()))


class VoiceSessionTracker:
    """At most one open session per (guild_id, member_id)."""

    def __init__(self) -> None:
        self._sessions: dict[tuple[int, int], VoiceSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, guild_id: int, member_id: int) -> VoiceSession | None:
        return self._sessions.get((guild_id, member_id))

    def transition(
        self,
        guild_id: int,
        member_id: int,
        before: ChannelRef | None,
        after: ChannelRef | None,
        now: datetime,
    ) -> list[VoiceTransition]:
        """Apply one voice-state change and return what it meant."""
        key = (guild_id, member_id)

        if before is None and after is not None:
            self._sessions[key] = VoiceSession(after.id, now)
            return [VoiceTransition(VoiceTransitionKind.JOINED, after, joined_at=now)]

        if before is not None and after is None:
            return [self._close(key, before, now)]

        if before is not None and after is not None and before.id != after.id:
            left = self._close(key, before, now)
            self._sessions[key] = VoiceSession(after.id, now)
            return [left, VoiceTransition(VoiceTransitionKind.JOINED, after, joined_at=now)]

        # Same channel (mute/deafen/stream toggles) or nothing at all
        return []

    def _close(self, key: tuple[int, int], channel: ChannelRef, now: datetime) -> VoiceTransition:
        session = self._sessions.pop(key, None)
        joined_at = session.joined_at if session else now
        return VoiceTransition(
            VoiceTransitionKind.LEFT,
            channel,
            joined_at=joined_at,
            left_at=now,
            session_seconds=session_seconds(joined_at, now),
        )
