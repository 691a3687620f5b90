"""Tests for the group activity feed."""

from datetime import date

from splitbill_engines.activity import build_activity_feed
from splitbill_kernel.domain.dtos import ActivityKind


class TestActivityFeed:
    """Merged expenses and settlements, newest first."""

    def test_empty(self, ledger):
        assert build_activity_feed(ledger.snapshot()) == ()

    def test_merged_newest_first(self, ledger):
        old = ledger.expense("alice", "30", {"bob": "30"}, description="tickets",
                             expense_date=date(2023, 12, 1), category="fun")
        paid = ledger.settle("bob", "alice", "30", note="thanks")
        recent = ledger.expense("bob", "12", {"alice": "12"}, description="coffee",
                                expense_date=date(2024, 1, 1))

        feed = build_activity_feed(ledger.snapshot())

        # settlement is stamped 2024-01-01 12:02, after "coffee" (same day, created 12:03)
        assert [a.record_id for a in feed] == [recent.id, paid.id, old.id]
        assert feed[2].kind is ActivityKind.EXPENSE
        assert feed[2].paid_by_name == "alice"
        assert feed[2].category == "fun"
        assert feed[1].kind is ActivityKind.SETTLEMENT
        assert feed[1].description == "thanks"
        assert (feed[1].from_name, feed[1].to_name) == ("bob", "alice")

    def test_settlement_without_note_gets_default_description(self, ledger):
        ledger.settle("carol", "bob", "5")

        (entry,) = build_activity_feed(ledger.snapshot())

        assert entry.description == "Payment from carol to bob"
        assert entry.occurred_on == date(2024, 1, 1)
