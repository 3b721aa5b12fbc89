"""
pulse.engine.events — Tagged event variants
============================================

Every gateway event is normalized into exactly one of the models below before
the scoring engine sees it.  The ``kind`` field is the discriminator, so a raw
payload (e.g. from a replay file) can be validated with :func:`parse_event`
and malformed events are rejected at the boundary instead of half-processed.

discord.py objects are converted by :mod:`pulse.bot.adapters`.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

__all__ = [
    "UserInfo",
    "MemberInfo",
    "GuildRef",
    "ChannelRef",
    "InviteInfo",
    "MemberJoined",
    "MemberLeft",
    "MessageCreated",
    "MessageDeleted",
    "ReactionAdded",
    "BanAdded",
    "VoiceStateChanged",
    "InviteCreated",
    "PulseEvent",
    "parse_event",
]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


# ---------------------------------------------------------------------------
# Building blocks
# ---------------------------------------------------------------------------
class UserInfo(_Frozen):
    """A Discord account as seen in an event."""

    id: int
    username: str
    display_name: str = ""
    bot: bool = False

    @property
    def label(self) -> str:
        return self.display_name or self.username


class MemberInfo(UserInfo):
    """A guild member — a user plus the guild-scoped roles and permissions.

    ``permissions`` holds the names of the *granted* ``discord.Permissions``
    flags (``"manage_messages"``, ``"administrator"``, …).
    """

    role_ids: frozenset[int] = frozenset()
    permissions: frozenset[str] = frozenset()


class GuildRef(_Frozen):
    id: int
    name: str = ""


class ChannelRef(_Frozen):
    id: int
    name: str = ""


class InviteInfo(_Frozen):
    """One entry of a guild's invite list."""

    code: str = Field(min_length=1)
    uses: int = Field(default=0, ge=0)
    inviter: UserInfo | None = None

    @field_validator("uses", mode="before")
    @classmethod
    def _missing_uses_is_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


# ---------------------------------------------------------------------------
# Event variants
# ---------------------------------------------------------------------------
class _GuildEvent(_Frozen):
    guild: GuildRef
    timestamp: datetime = Field(default_factory=_utcnow)


class MemberJoined(_GuildEvent):
    kind: Literal["member_joined"] = "member_joined"
    member: MemberInfo
    joined_at: datetime | None = None


class MemberLeft(_GuildEvent):
    kind: Literal["member_left"] = "member_left"
    user: UserInfo


class MessageCreated(_GuildEvent):
    """A new guild message.

    ``member`` is ``None`` when the author couldn't be resolved to a guild
    member (e.g. left the guild between send and delivery).
    """

    kind: Literal["message_created"] = "message_created"
    message_id: int
    author: UserInfo
    member: MemberInfo | None = None
    channel: ChannelRef
    content: str = ""


class MessageDeleted(_GuildEvent):
    kind: Literal["message_deleted"] = "message_deleted"
    message_id: int
    channel: ChannelRef
    author: UserInfo | None = None  # unknown for uncached messages


class ReactionAdded(_GuildEvent):
    kind: Literal["reaction_added"] = "reaction_added"
    user: UserInfo
    message_id: int
    channel: ChannelRef
    emoji_name: str | None = None
    emoji_id: int | None = None


class BanAdded(_GuildEvent):
    kind: Literal["ban_added"] = "ban_added"
    user: UserInfo


class VoiceStateChanged(_GuildEvent):
    """A member's voice state changed.  ``None`` channel means "not in voice"."""

    kind: Literal["voice_state_changed"] = "voice_state_changed"
    member: UserInfo
    before: ChannelRef | None = None
    after: ChannelRef | None = None


class InviteCreated(_GuildEvent):
    kind: Literal["invite_created"] = "invite_created"
    invite: InviteInfo
    max_uses: int | None = None
    temporary: bool = False


PulseEvent = Annotated[
    Union[
        MemberJoined,
        MemberLeft,
        MessageCreated,
        MessageDeleted,
        ReactionAdded,
        BanAdded,
        VoiceStateChanged,
        InviteCreated,
    ],
    Field(discriminator="kind"),
]

_EVENT_ADAPTER: TypeAdapter[PulseEvent] = TypeAdapter(PulseEvent)


def parse_event(payload: dict[str, Any]) -> PulseEvent:
    """Validate a raw payload into its event variant.

    Raises ``pydantic.ValidationError`` for unknown kinds or missing fields.
    """
    return _EVENT_ADAPTER.validate_python(payload)
