"""
splitbill_engines.activity -- Group activity feed.

Merges a group's expenses and settlements into one list of ActivityEntry
rows, newest first.  A settlement without a note is described as
"Payment from X to Y".
"""

from __future__ import annotations

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import (
    ActivityEntry,
    ActivityKind,
    LedgerSnapshot,
)
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.activity")


class ActivityFeedBuilder:
    """Builds the activity feed from a snapshot."""

    @traced_engine("activity", "1.0", fingerprint_fields=("snapshot",))
    def build(self, snapshot: LedgerSnapshot) -> tuple[ActivityEntry, ...]:
        names = snapshot.member_names()

        def name(member_id):
            return names.get(member_id, str(member_id))

        entries = [
            ActivityEntry(
                kind=ActivityKind.EXPENSE,
                record_id=e.id,
                description=e.description,
                amount=e.amount,
                occurred_on=e.expense_date,
                recorded_at=e.created_at,
                paid_by=e.paid_by,
                paid_by_name=name(e.paid_by),
                category=e.category,
            )
            for e in snapshot.expenses
        ]
        entries.extend(
            ActivityEntry(
                kind=ActivityKind.SETTLEMENT,
                record_id=s.id,
                description=s.note or f"Payment from {name(s.from_member)} to {name(s.to_member)}",
                amount=s.amount,
                occurred_on=s.settled_at.date(),
                recorded_at=s.settled_at,
                from_member=s.from_member,
                from_name=name(s.from_member),
                to_member=s.to_member,
                to_name=name(s.to_member),
            )
            for s in snapshot.settlements
        )

        entries.sort(key=lambda a: (a.occurred_on, a.recorded_at), reverse=True)
        logger.debug("activity_feed_built", extra={"entry_count": len(entries)})
        return tuple(entries)


def build_activity_feed(snapshot: LedgerSnapshot) -> tuple[ActivityEntry, ...]:
    return ActivityFeedBuilder().build(snapshot)
