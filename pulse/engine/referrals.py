"""
pulse.engine.referrals — Invite-diff referral attribution
==========================================================

Discord doesn't say which invite a new member used.  We keep a per-guild
snapshot of invite code → use count and, on every join, compare it with a
freshly fetched invite list: an invite whose count went up is the one that
was used.

Limitations:

- If several counters moved between two reads, only the *last* one in the
  fetched order is credited (``candidate_count`` reports how many moved).
- The fetch is an await; two joins landing together can interleave so one of
  them diffs against a snapshot the other already advanced.  That join is then
  unattributed.  This is accepted, not locked around.
- Use counts are treated as monotonic.  A lower count than the snapshot is an
  unreliable read: it never credits anything and never lowers the baseline.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from pulse.engine.events import InviteInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class InviteDiff:
    """Result of diffing a fresh invite list against the snapshot."""

    credited: InviteInfo | None
    candidates: tuple[InviteInfo, ...] = field(default_factory=tuple)

    @property
    def candidate_count(self) -> int:
        return len(self.candidates)


class ReferralTracker:
    """Per-guild invite usage snapshots."""

    def __init__(self) -> None:
        # {guild_id: {invite_code: uses}}
        self._snapshots: dict[int, dict[str, int]] = {}

    def snapshot(self, guild_id: int) -> Mapping[str, int]:
        return dict(self._snapshots.get(guild_id, {}))

    def load(self, guild_id: int, invites: Iterable[InviteInfo]) -> int:
        """Replace the guild's snapshot wholesale (startup).  Returns the invite count."""
        self._snapshots[guild_id] = {inv.code: inv.uses for inv in invites}
        return len(self._snapshots[guild_id])

    def invite_created(self, guild_id: int, code: str, uses: int = 0) -> None:
        """Upsert one invite so the next diff sees it as a baseline."""
        self._snapshots.setdefault(guild_id, {})[code] = uses

    def resolve_join(self, guild_id: int, invites: Iterable[InviteInfo]) -> InviteDiff:
        """Find the invite used by a join, then advance the snapshot.

        The snapshot is replaced whether or not an invite was found.
        """
        previous = self._snapshots.get(guild_id, {})
        fresh = list(invites)

        candidates: list[InviteInfo] = []
        updated: dict[str, int] = {}
        for inv in fresh:
            old_uses = previous.get(inv.code, 0)
            if inv.uses > old_uses:
                candidates.append(inv)
            elif inv.uses < old_uses:
                logger.warning(
                    "Invite %s in guild %s reported %d uses (< %d known); ignoring decrease",
                    inv.code, guild_id, inv.uses, old_uses,
                )
            updated[inv.code] = max(inv.uses, old_uses)

        self._snapshots[guild_id] = updated

        if len(candidates) > 1:
            logger.info(
                "Join in guild %s moved %d invite counters; crediting the last (%s)",
                guild_id, len(candidates), candidates[-1].code,
            )
        return InviteDiff(
            credited=candidates[-1] if candidates else None,
            candidates=tuple(candidates),
        )
