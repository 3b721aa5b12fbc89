"""
pulse.engine.records — Analytics records produced by the engine
================================================================

The engine never talks to the analytics backend directly.  It returns
:class:`AnalyticsRecord` objects and the caller hands them to
:class:`pulse.services.analytics.AnalyticsSink`.

Ids are emitted as strings: snowflakes exceed the safe integer range of most
JSON consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pulse.constants import UNKNOWN_ID
from pulse.engine.events import ChannelRef, GuildRef, UserInfo


class EventName:
    """Analytics event name constants."""
    USER_JOINED = "discord_user_joined"
    USER_LEFT = "discord_user_left"
    MESSAGE_SENT = "discord_message_sent"
    MESSAGE_SCORED = "discord_message_scored"
    MESSAGE_IN_ANNOUNCEMENTS = "discord_message_in_announcements"
    REACTION_ADDED = "discord_reaction_added"
    MESSAGE_DELETED = "discord_message_deleted_by_mod"
    USER_BANNED = "discord_user_banned"
    VOICE_JOINED = "discord_voice_joined"
    VOICE_LEFT = "discord_voice_left"
    REFERRAL_INVITE_CREATED = "discord_referral_invite_created"
    REFERRAL_JOIN = "discord_referral_join"
    WARNING_ISSUED = "discord_warning_issued"


@dataclass(frozen=True, slots=True)
class AnalyticsRecord:
    """One event for the analytics sink: name, subject and a flat property bag."""

    event: str
    distinct_id: str
    properties: dict[str, Any] = field(default_factory=dict)


def sid(value: int | None) -> str:
    """Stringify a snowflake, ``"unknown"`` for ``None``."""
    return UNKNOWN_ID if value is None else str(value)


def iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def user_props(user: UserInfo) -> dict[str, Any]:
    return {"user_id": sid(user.id), "username": user.username}


def guild_props(guild: GuildRef) -> dict[str, Any]:
    return {"guild_id": sid(guild.id), "guild_name": guild.name}


def channel_props(channel: ChannelRef) -> dict[str, Any]:
    return {"channel_id": sid(channel.id), "channel_name": channel.name}
