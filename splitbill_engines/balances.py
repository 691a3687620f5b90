"""
splitbill_engines.balances -- Net balance per member.

Responsibility:
    Aggregate a group's expenses, splits and settlements into one signed
    balance per member.  Positive means the member is owed money; negative
    means the member owes.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import splitbill_kernel/domain and sibling engine modules.

Invariants enforced:
    - Zero-sum: the unrounded balances add up to exactly zero; the rounded
      output is within 0.01 per member of zero.
    - Self-splits are applied like any other split, so a payer's own share
      cancels against the amount they paid.
    - Members referenced by records but absent from the roster are still
      accumulated; dropping them would break zero-sum.

Failure modes:
    - None.  Empty snapshots produce an empty result.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import Balance, LedgerSnapshot
from splitbill_kernel.domain.values import (
    MONEY_TOLERANCE,
    ZERO,
    is_negligible,
    round_money,
)
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.balances")


class BalanceCalculator:
    """
    Computes net member balances from a ledger snapshot.

    Contract:
        Pure function of the snapshot.  Payers are credited the expense
        amount, split members are debited their share, settlement senders
        are credited and receivers debited.
    Guarantees:
        - Output amounts are rounded to cents.
        - Members within tolerance of zero are omitted.
        - Roster members come first in roster order, then any other
          participants in first-seen order.
    """

    def __init__(self, tolerance: Decimal = MONEY_TOLERANCE) -> None:
        self.tolerance = tolerance

    def raw_totals(self, snapshot: LedgerSnapshot) -> dict[UUID, Decimal]:
        """Unrounded totals for every participant, including zeros."""
        totals: dict[UUID, Decimal] = {m.id: ZERO for m in snapshot.members}

        for expense in snapshot.expenses:
            totals[expense.paid_by] = totals.get(expense.paid_by, ZERO) + expense.amount

        for split in snapshot.splits:
            totals[split.member_id] = totals.get(split.member_id, ZERO) - split.amount

        for settlement in snapshot.settlements:
            totals[settlement.from_member] = (
                totals.get(settlement.from_member, ZERO) + settlement.amount
            )
            totals[settlement.to_member] = (
                totals.get(settlement.to_member, ZERO) - settlement.amount
            )

        return totals

    @traced_engine("balances", "1.0", fingerprint_fields=("snapshot",))
    def calculate(self, snapshot: LedgerSnapshot) -> tuple[Balance, ...]:
        """
        Net balance for every member with a non-negligible position.

        Args:
            snapshot: The group's ledger.

        Returns:
            Tuple of Balance, roster order first.
        """
        names = snapshot.member_names()
        totals = self.raw_totals(snapshot)

        balances = tuple(
            Balance(member_id=member_id, name=names.get(member_id, str(member_id)),
                    amount=round_money(amount))
            for member_id, amount in totals.items()
            if not is_negligible(amount, self.tolerance)
        )

        logger.info("balances_calculated", extra={
            "group_id": str(snapshot.group_id),
            "participant_count": len(totals),
            "non_zero_count": len(balances),
        })
        return balances
