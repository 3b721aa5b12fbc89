"""
tests/test_referrals.py — Invite-Diff Attribution Tests
========================================================
"""

from __future__ import annotations

import logging

from pulse.engine.events import InviteInfo, UserInfo
from pulse.engine.referrals import ReferralTracker

GUILD_ID = 100
ALICE = UserInfo(id=1, username="alice")
BOB = UserInfo(id=2, username="bob")


def invite(code: str, uses: int, inviter: UserInfo | None = ALICE) -> InviteInfo:
    return InviteInfo(code=code, uses=uses, inviter=inviter)


class TestResolveJoin:
    def test_incremented_invite_is_credited(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3), invite("xyz", 0, BOB)])

        diff = tracker.resolve_join(GUILD_ID, [invite("abc", 4), invite("xyz", 0, BOB)])

        assert diff.credited is not None
        assert diff.credited.code == "abc"
        assert diff.credited.inviter == ALICE
        assert diff.candidate_count == 1
        assert tracker.snapshot(GUILD_ID) == {"abc": 4, "xyz": 0}

    def test_no_change_credits_nothing(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3)])
        diff = tracker.resolve_join(GUILD_ID, [invite("abc", 3)])
        assert diff.credited is None
        assert diff.candidate_count == 0

    def test_unknown_code_counts_from_zero(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3)])
        diff = tracker.resolve_join(GUILD_ID, [invite("abc", 3), invite("new", 1, BOB)])
        assert diff.credited.code == "new"

    def test_unknown_code_with_zero_uses_is_not_a_candidate(self):
        tracker = ReferralTracker()
        diff = tracker.resolve_join(GUILD_ID, [invite("fresh", 0)])
        assert diff.credited is None
        assert tracker.snapshot(GUILD_ID) == {"fresh": 0}

    def test_multiple_candidates_credit_the_last(self, caplog):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("a", 1), invite("b", 1, BOB)])

        with caplog.at_level(logging.INFO, logger="pulse.engine.referrals"):
            diff = tracker.resolve_join(GUILD_ID, [invite("a", 2), invite("b", 2, BOB)])

        assert diff.candidate_count == 2
        assert diff.credited.code == "b"
        assert "crediting the last" in caplog.text

    def test_decrease_is_ignored_and_baseline_kept(self, caplog):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 5)])

        with caplog.at_level(logging.WARNING, logger="pulse.engine.referrals"):
            diff = tracker.resolve_join(GUILD_ID, [invite("abc", 2)])

        assert diff.credited is None
        assert tracker.snapshot(GUILD_ID) == {"abc": 5}
        assert "ignoring decrease" in caplog.text

        # Only a count above the kept baseline is credited afterwards
        assert tracker.resolve_join(GUILD_ID, [invite("abc", 5)]).credited is None
        assert tracker.resolve_join(GUILD_ID, [invite("abc", 6)]).credited.code == "abc"

    def test_snapshot_advances_after_each_join(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3)])
        tracker.resolve_join(GUILD_ID, [invite("abc", 4)])
        assert tracker.resolve_join(GUILD_ID, [invite("abc", 4)]).credited is None

    def test_vanished_codes_are_dropped(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3), invite("gone", 9)])
        tracker.resolve_join(GUILD_ID, [invite("abc", 3)])
        assert tracker.snapshot(GUILD_ID) == {"abc": 3}

    def test_guilds_are_independent(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("abc", 3)])
        tracker.load(200, [invite("abc", 10)])
        assert tracker.resolve_join(GUILD_ID, [invite("abc", 4)]).credited.code == "abc"
        assert tracker.snapshot(200) == {"abc": 10}


class TestSnapshotMaintenance:
    def test_load_replaces_wholesale(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [invite("old", 1)])
        assert tracker.load(GUILD_ID, [invite("a", 1), invite("b", 2)]) == 2
        assert tracker.snapshot(GUILD_ID) == {"a": 1, "b": 2}

    def test_invite_created_upserts(self):
        tracker = ReferralTracker()
        tracker.invite_created(GUILD_ID, "fresh")
        tracker.invite_created(GUILD_ID, "fresh", 2)
        assert tracker.snapshot(GUILD_ID) == {"fresh": 2}

    def test_created_invite_is_credited_on_first_use(self):
        tracker = ReferralTracker()
        tracker.load(GUILD_ID, [])
        tracker.invite_created(GUILD_ID, "fresh")
        diff = tracker.resolve_join(GUILD_ID, [invite("fresh", 1, BOB)])
        assert diff.credited.inviter == BOB

    def test_snapshot_of_unknown_guild_is_empty(self):
        assert ReferralTracker().snapshot(999) == {}
