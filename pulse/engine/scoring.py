"""
pulse.engine.scoring — The scoring engine
==========================================

:class:`ScoringEngine` owns every piece of scoring state — the spam
classifier's per-author memory, both ledgers, the invite snapshots and the
open voice sessions — and turns validated events into ledger updates plus
analytics records.

It is synchronous and free of Discord I/O: cogs do the awaiting
(invite fetches, member lookups) and hand the results in.  Every mutation
therefore runs between two suspension points of the event loop.

Usage::

    engine = ScoringEngine.from_config(cfg)
    outcome = engine.handle_message(event)
    sink.capture_all(outcome.records)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from pulse.config import PulseConfig
from pulse.engine.anti_spam import SpamClassifier, SpamVerdict
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
    PulseEvent,
    ReactionAdded,
    UserInfo,
    VoiceStateChanged,
)
from pulse.engine.exclusion import ExclusionConfig, ExclusionPolicy
from pulse.engine.ledger import EngagementLedger, LedgerEntry, ReferralLedger
from pulse.engine.records import (
    AnalyticsRecord,
    EventName,
    channel_props,
    guild_props,
    iso,
    sid,
    user_props,
)
from pulse.engine.referrals import InviteDiff, ReferralTracker
from pulse.engine.voice import VoiceSessionTracker, VoiceTransitionKind

logger = logging.getLogger(__name__)

EXCLUDED_REASON = "excluded_staff_or_bot"


@dataclass(frozen=True, slots=True)
class MessageOutcome:
    verdict: SpamVerdict
    excluded: bool
    new_total: int | None = None
    records: list[AnalyticsRecord] = field(default_factory=list)

    @property
    def scored(self) -> bool:
        return self.new_total is not None

    @property
    def reason(self) -> str | None:
        """Why the message wasn't scored (``None`` if it was)."""
        if self.excluded:
            return EXCLUDED_REASON
        return self.verdict.reason


@dataclass(frozen=True, slots=True)
class ReferralOutcome:
    diff: InviteDiff
    inviter_excluded: bool = False
    new_count: int | None = None
    records: list[AnalyticsRecord] = field(default_factory=list)

    @property
    def credited(self) -> InviteInfo | None:
        return self.diff.credited


class ScoringEngine:
    """Owns all ledgers and snapshots; one instance per process."""

    def __init__(
        self,
        policy: ExclusionPolicy | None = None,
        classifier: SpamClassifier | None = None,
        *,
        announcements_channel_name: str = "announcements",
    ) -> None:
        self.policy = policy or ExclusionPolicy()
        self.classifier = classifier or SpamClassifier()
        self.announcements_channel_name = announcements_channel_name
        self.engagement = EngagementLedger()
        self.referrals = ReferralLedger()
        self.invites = ReferralTracker()
        self.voice = VoiceSessionTracker()

    @classmethod
    def from_config(cls, cfg: PulseConfig) -> ScoringEngine:
        policy = ExclusionPolicy(
            ExclusionConfig(role_ids=cfg.excluded_role_ids, user_ids=cfg.excluded_user_ids)
        )
        classifier = SpamClassifier(
            min_length=cfg.min_message_length,
            min_interval_seconds=cfg.min_message_interval_seconds,
            command_prefixes=("/", cfg.bot_prefix),
            capacity=cfg.message_state_capacity,
        )
        return cls(policy, classifier, announcements_channel_name=cfg.announcements_channel_name)

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------
    def is_excluded(self, member: MemberInfo | None) -> bool:
        return self.policy.is_excluded(member)

    def leaderboard_snapshot(self) -> tuple[Mapping[int, LedgerEntry], Mapping[int, LedgerEntry]]:
        """(engagement, referrals) copies for the renderer."""
        return self.engagement.snapshot(), self.referrals.snapshot()

    # -----------------------------------------------------------------------
    # Dispatch
    # -----------------------------------------------------------------------
    def handle(self, event: PulseEvent) -> list[AnalyticsRecord]:
        """Process any event that needs no Discord I/O and return its records.

        Cogs route every event through here except new messages, whose
        :class:`MessageOutcome` they log.  Replayed payloads validated by
        :func:`pulse.engine.events.parse_event` enter the same way.

        Joins only produce the join record here; referral attribution needs
        the fresh invite list — see :meth:`resolve_join` and :meth:`credit_referral`.
        """
        match event:
            case MessageCreated():
                outcome = self.handle_message(event)
                return outcome.records if outcome else []
            case MemberJoined():
                return self.handle_member_joined(event)
            case MemberLeft():
                return self.handle_member_left(event)
            case MessageDeleted():
                return self.handle_message_deleted(event)
            case ReactionAdded():
                return self.handle_reaction_added(event)
            case BanAdded():
                return self.handle_ban_added(event)
            case VoiceStateChanged():
                return self.handle_voice_state(event)
            case InviteCreated():
                return self.handle_invite_created(event)
        raise TypeError(f"Unsupported event type: {type(event).__name__}")

    # -----------------------------------------------------------------------
    # Messages
    # -----------------------------------------------------------------------
    def handle_message(self, event: MessageCreated) -> MessageOutcome | None:
        """Classify, maybe score, and describe one message.  Bot messages → ``None``."""
        if event.author.bot:
            return None

        excluded = self.is_excluded(event.member)
        verdict = self.classifier.classify(event.author.id, event.timestamp, event.content)

        base = {
            **user_props(event.author),
            **guild_props(event.guild),
            **channel_props(event.channel),
            "message_id": sid(event.message_id),
            "message_length": verdict.trimmed_length,
            "is_command": verdict.is_command,
            "time_since_last_message_sec": verdict.seconds_since_last,
            "is_duplicate_message": verdict.is_duplicate,
            "is_short_message": verdict.is_short,
            "looks_spammy": verdict.looks_spammy,
            "excluded_from_scoring": excluded,
        }
        distinct_id = sid(event.author.id)
        records = [AnalyticsRecord(EventName.MESSAGE_SENT, distinct_id, base)]

        new_total: int | None = None
        if not verdict.looks_spammy and not excluded:
            new_total = self.engagement.record_eligible_message(event.author.id, event.author.label)
            records.append(AnalyticsRecord(
                EventName.MESSAGE_SCORED,
                distinct_id,
                {**base, "is_scored": True, "score_value": 1},
            ))

        if event.channel.name == self.announcements_channel_name:
            records.append(AnalyticsRecord(EventName.MESSAGE_IN_ANNOUNCEMENTS, distinct_id, base))

        return MessageOutcome(verdict=verdict, excluded=excluded, new_total=new_total, records=records)

    def handle_message_deleted(self, event: MessageDeleted) -> list[AnalyticsRecord]:
        if event.author is not None and event.author.bot:
            return []
        author = event.author
        return [AnalyticsRecord(
            EventName.MESSAGE_DELETED,
            sid(author.id if author else None),
            {
                "user_id": sid(author.id if author else None),
                "username": author.username if author else sid(None),
                **channel_props(event.channel),
                "message_id": sid(event.message_id),
                "deleted_at": iso(event.timestamp),
            },
        )]

    def handle_reaction_added(self, event: ReactionAdded) -> list[AnalyticsRecord]:
        if event.user.bot:
            return []
        return [AnalyticsRecord(
            EventName.REACTION_ADDED,
            sid(event.user.id),
            {
                **user_props(event.user),
                "emoji_name": event.emoji_name,
                "emoji_id": sid(event.emoji_id) if event.emoji_id is not None else None,
                **channel_props(event.channel),
                "message_id": sid(event.message_id),
            },
        )]

    # -----------------------------------------------------------------------
    # Membership
    # -----------------------------------------------------------------------
    def handle_member_joined(self, event: MemberJoined) -> list[AnalyticsRecord]:
        return [AnalyticsRecord(
            EventName.USER_JOINED,
            sid(event.member.id),
            {
                **user_props(event.member),
                "joined_at": iso(event.joined_at or event.timestamp),
            },
        )]

    def handle_member_left(self, event: MemberLeft) -> list[AnalyticsRecord]:
        return [AnalyticsRecord(
            EventName.USER_LEFT,
            sid(event.user.id),
            {**user_props(event.user), "left_at": iso(event.timestamp)},
        )]

    def handle_ban_added(self, event: BanAdded) -> list[AnalyticsRecord]:
        return [AnalyticsRecord(
            EventName.USER_BANNED,
            sid(event.user.id),
            {
                **user_props(event.user),
                **guild_props(event.guild),
                "banned_at": iso(event.timestamp),
            },
        )]

    # -----------------------------------------------------------------------
    # Referrals
    # -----------------------------------------------------------------------
    def load_invites(self, guild_id: int, invites: Iterable[InviteInfo]) -> int:
        return self.invites.load(guild_id, invites)

    def resolve_join(self, guild_id: int, invites: Iterable[InviteInfo]) -> InviteDiff:
        return self.invites.resolve_join(guild_id, invites)

    def credit_referral(
        self,
        event: MemberJoined,
        diff: InviteDiff,
        inviter_member: MemberInfo | None = None,
    ) -> ReferralOutcome:
        """Record the referral for an attributed join.

        The ``discord_referral_join`` record is emitted whenever the credited
        invite has an inviter; the referral point only when that inviter is
        not excluded.  *inviter_member* is the inviter resolved as a guild
        member; if that lookup failed only the bot flag and the explicit id
        list are checked.
        """
        invite = diff.credited
        if invite is None or invite.inviter is None:
            return ReferralOutcome(diff=diff)

        inviter = invite.inviter
        record = AnalyticsRecord(
            EventName.REFERRAL_JOIN,
            sid(inviter.id),
            {
                "inviter_id": sid(inviter.id),
                "inviter_username": inviter.username,
                "invited_user_id": sid(event.member.id),
                "invited_username": event.member.username,
                "invite_code": invite.code,
                **guild_props(event.guild),
                "uses_after_join": invite.uses,
                "candidate_count": diff.candidate_count,
            },
        )

        if inviter_member is None:
            # Not resolvable as a member: bot flag and explicit ids still apply
            inviter_member = MemberInfo(**inviter.model_dump())
        if self.is_excluded(inviter_member):
            logger.info(
                "Referral not counted: inviter %s (%s) is %s",
                inviter.username, inviter.id, EXCLUDED_REASON,
            )
            return ReferralOutcome(diff=diff, inviter_excluded=True, records=[record])

        new_count = self.referrals.record_referral(inviter.id, inviter.label)
        return ReferralOutcome(diff=diff, new_count=new_count, records=[record])

    def handle_invite_created(self, event: InviteCreated) -> list[AnalyticsRecord]:
        invite = event.invite
        self.invites.invite_created(event.guild.id, invite.code, invite.uses)
        if invite.inviter is None:
            return []
        return [AnalyticsRecord(
            EventName.REFERRAL_INVITE_CREATED,
            sid(invite.inviter.id),
            {
                "invite_code": invite.code,
                "inviter_id": sid(invite.inviter.id),
                "inviter_username": invite.inviter.username,
                **guild_props(event.guild),
                "max_uses": event.max_uses,
                "temporary": event.temporary,
            },
        )]

    # -----------------------------------------------------------------------
    # Voice
    # -----------------------------------------------------------------------
    def handle_voice_state(self, event: VoiceStateChanged) -> list[AnalyticsRecord]:
        if event.member.bot:
            return []

        transitions = self.voice.transition(
            event.guild.id, event.member.id, event.before, event.after, event.timestamp,
        )
        records: list[AnalyticsRecord] = []
        for tr in transitions:
            props = {
                **user_props(event.member),
                **guild_props(event.guild),
                **channel_props(tr.channel),
                "joined_at": iso(tr.joined_at),
            }
            if tr.kind is VoiceTransitionKind.LEFT:
                props["left_at"] = iso(tr.left_at)
                props["session_seconds"] = tr.session_seconds
                records.append(AnalyticsRecord(EventName.VOICE_LEFT, sid(event.member.id), props))
            else:
                records.append(AnalyticsRecord(EventName.VOICE_JOINED, sid(event.member.id), props))
        return records

    # -----------------------------------------------------------------------
    # Moderation
    # -----------------------------------------------------------------------
    def warning_record(
        self,
        warned: UserInfo,
        moderator: UserInfo,
        channel: ChannelRef,
        reason: str,
        guild: GuildRef | None = None,
    ) -> AnalyticsRecord:
        props = {
            "warned_user_id": sid(warned.id),
            "warned_username": warned.username,
            "moderator_id": sid(moderator.id),
            "moderator_username": moderator.username,
            **channel_props(channel),
            "reason": reason,
        }
        if guild is not None:
            props.update(guild_props(guild))
        return AnalyticsRecord(EventName.WARNING_ISSUED, sid(warned.id), props)
