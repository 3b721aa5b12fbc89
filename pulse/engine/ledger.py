"""
pulse.engine.ledger — In-memory score ledgers
==============================================

Additive per-member counters backing the two leaderboards:

- :class:`EngagementLedger` — one point per scored message.
- :class:`ReferralLedger` — one point per attributed join.

Counts only ever go up and live for the lifetime of the process.  Ranking is
by value descending, ties broken by member id ascending so the same snapshot
always renders the same way.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    member_id: int
    value: int
    display_name: str


def rank_entries(entries: Iterable[LedgerEntry], limit: int | None = None) -> list[LedgerEntry]:
    """Sort by value descending, then member id ascending; keep the first *limit*."""
    ranked = sorted(entries, key=lambda e: (-e.value, e.member_id))
    if limit is not None:
        ranked = ranked[: max(limit, 0)]
    return ranked


class ScoreLedger:
    """Member id → (non-negative count, last known display name)."""

    def __init__(self) -> None:
        self._entries: dict[int, LedgerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, member_id: object) -> bool:
        return member_id in self._entries

    def get(self, member_id: int) -> int:
        entry = self._entries.get(member_id)
        return entry.value if entry else 0

    def increment(self, member_id: int, display_name: str) -> int:
        """Add exactly one point, refresh the display name, return the new total."""
        total = self.get(member_id) + 1
        self._entries[member_id] = LedgerEntry(member_id, total, display_name)
        return total

    def snapshot(self) -> Mapping[int, LedgerEntry]:
        """Copy of the current entries, safe to read across awaits."""
        return dict(self._entries)

    def top(self, n: int) -> list[LedgerEntry]:
        return rank_entries(self._entries.values(), n)


class EngagementLedger(ScoreLedger):
    def record_eligible_message(self, member_id: int, display_name: str) -> int:
        """Credit one scored message.  Callers check exclusion and spam first."""
        return self.increment(member_id, display_name)


class ReferralLedger(ScoreLedger):
    def record_referral(self, inviter_id: int, display_name: str) -> int:
        """Credit one attributed join to *inviter_id*."""
        return self.increment(inviter_id, display_name)
