"""
tests/test_ledger.py — Score Ledger Tests
==========================================
"""

from __future__ import annotations

from pulse.engine.ledger import (
    EngagementLedger,
    LedgerEntry,
    ReferralLedger,
    rank_entries,
)


class TestScoreLedger:
    def test_unknown_member_has_zero(self):
        assert EngagementLedger().get(1) == 0

    def test_increment_returns_running_total(self):
        ledger = EngagementLedger()
        assert ledger.record_eligible_message(1, "Alice") == 1
        assert ledger.record_eligible_message(1, "Alice") == 2
        assert ledger.get(1) == 2
        assert 1 in ledger
        assert len(ledger) == 1

    def test_display_name_is_refreshed(self):
        ledger = ReferralLedger()
        ledger.record_referral(7, "old-name")
        ledger.record_referral(7, "new-name")
        assert ledger.snapshot()[7] == LedgerEntry(7, 2, "new-name")

    def test_snapshot_is_a_copy(self):
        ledger = EngagementLedger()
        ledger.increment(1, "A")
        snap = ledger.snapshot()
        ledger.increment(2, "B")
        assert list(snap) == [1]

    def test_top_orders_by_value_then_member_id(self):
        ledger = EngagementLedger()
        for member_id, count in ((30, 2), (10, 5), (20, 2), (40, 1)):
            for _ in range(count):
                ledger.increment(member_id, f"m{member_id}")
        assert [e.member_id for e in ledger.top(10)] == [10, 20, 30, 40]

    def test_top_truncates(self):
        ledger = EngagementLedger()
        for member_id in range(1, 16):
            for _ in range(member_id):
                ledger.increment(member_id, f"m{member_id}")
        top = ledger.top(10)
        assert len(top) == 10
        assert top[0] == LedgerEntry(15, 15, "m15")
        assert top[-1].member_id == 6


class TestRankEntries:
    def test_without_limit_keeps_everything(self):
        entries = [LedgerEntry(2, 1, "b"), LedgerEntry(1, 1, "a"), LedgerEntry(3, 4, "c")]
        assert [e.member_id for e in rank_entries(entries)] == [3, 1, 2]

    def test_negative_limit_is_empty(self):
        assert rank_entries([LedgerEntry(1, 1, "a")], -3) == []
