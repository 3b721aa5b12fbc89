"""
pulse.bot.adapters — discord.py objects → event models
=======================================================

The ingestion boundary.  Everything the engine sees is built here from the
live discord.py objects and validated by pydantic; a payload that doesn't fit
raises ``pydantic.ValidationError`` and the calling cog drops it.
"""

from __future__ import annotations

from datetime import UTC, datetime

import discord

from pulse.engine.events import (
    BanAdded,
    ChannelRef,
    GuildRef,
    InviteCreated,
    InviteInfo,
    MemberInfo,
    MemberJoined,
    MemberLeft,
    MessageCreated,
    MessageDeleted,
    ReactionAdded,
    UserInfo,
    VoiceStateChanged,
)


def _now() -> datetime:
    return datetime.now(UTC)


def user_info(user: discord.abc.User) -> UserInfo:
    return UserInfo(
        id=user.id,
        username=str(user),
        display_name=getattr(user, "display_name", "") or user.name,
        bot=user.bot,
    )


def member_info(member: discord.Member) -> MemberInfo:
    """Snapshot a member's roles and *granted* guild-level permissions."""
    return MemberInfo(
        id=member.id,
        username=str(member),
        display_name=member.display_name,
        bot=member.bot,
        role_ids=frozenset(role.id for role in member.roles),
        permissions=frozenset(name for name, granted in member.guild_permissions if granted),
    )


def guild_ref(guild: discord.Guild) -> GuildRef:
    return GuildRef(id=guild.id, name=guild.name or "")


def channel_ref(channel) -> ChannelRef | None:
    if channel is None:
        return None
    return ChannelRef(id=channel.id, name=getattr(channel, "name", None) or "")


def invite_info(invite: discord.Invite) -> InviteInfo:
    return InviteInfo(
        code=invite.code,
        uses=invite.uses,
        inviter=user_info(invite.inviter) if invite.inviter else None,
    )


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------
def message_created(message: discord.Message, member: discord.Member | None) -> MessageCreated:
    return MessageCreated(
        guild=guild_ref(message.guild),
        message_id=message.id,
        author=user_info(message.author),
        member=member_info(member) if member is not None else None,
        channel=channel_ref(message.channel),
        content=message.content or "",
        timestamp=_now(),
    )


def message_deleted(
    payload: discord.RawMessageDeleteEvent,
    guild: discord.Guild,
    channel,
) -> MessageDeleted:
    cached = payload.cached_message
    return MessageDeleted(
        guild=guild_ref(guild),
        message_id=payload.message_id,
        channel=channel_ref(channel) or ChannelRef(id=payload.channel_id),
        author=user_info(cached.author) if cached is not None else None,
        timestamp=_now(),
    )


def reaction_added(
    payload: discord.RawReactionActionEvent,
    guild: discord.Guild,
    channel,
) -> ReactionAdded:
    return ReactionAdded(
        guild=guild_ref(guild),
        user=user_info(payload.member),
        message_id=payload.message_id,
        channel=channel_ref(channel) or ChannelRef(id=payload.channel_id),
        emoji_name=payload.emoji.name,
        emoji_id=payload.emoji.id,
        timestamp=_now(),
    )


def member_joined(member: discord.Member) -> MemberJoined:
    return MemberJoined(
        guild=guild_ref(member.guild),
        member=member_info(member),
        joined_at=member.joined_at,
        timestamp=_now(),
    )


def member_left(member: discord.Member) -> MemberLeft:
    return MemberLeft(guild=guild_ref(member.guild), user=user_info(member), timestamp=_now())


def ban_added(guild: discord.Guild, user: discord.abc.User) -> BanAdded:
    return BanAdded(guild=guild_ref(guild), user=user_info(user), timestamp=_now())


def voice_state_changed(
    member: discord.Member,
    before: discord.VoiceState,
    after: discord.VoiceState,
) -> VoiceStateChanged:
    return VoiceStateChanged(
        guild=guild_ref(member.guild),
        member=user_info(member),
        before=channel_ref(before.channel),
        after=channel_ref(after.channel),
        timestamp=_now(),
    )


def invite_created(invite: discord.Invite) -> InviteCreated:
    return InviteCreated(
        guild=guild_ref(invite.guild),
        invite=invite_info(invite),
        max_uses=invite.max_uses,
        temporary=bool(invite.temporary),
        timestamp=_now(),
    )
