"""
splitbill_engines.expense_debts -- Outstanding debt attributed to each expense.

Responsibility:
    For every expense and every non-payer split, work out how much the
    split member still owes the payer after the settlements linked to that
    expense, then group those per-expense debts by (debtor, creditor).
    Also answers whether an expense is fully paid.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Feeds splitbill_engines.consolidation.

Invariants enforced:
    - A settlement only reduces the attribution it is linked to:
      (from_member, to_member, expense_id) must all match.  Unlinked
      settlements never touch this view.
    - Each ExpenseDebt amount is rounded to cents and is > tolerance.
    - A pair's total is the sum of its rounded expense debts.
    - Grouping keys are DirectedPair / AttributionKey tuples.

Failure modes:
    - None.  Overpayment on one expense never carries over to another.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from decimal import Decimal
from uuid import UUID

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import (
    AttributionKey,
    DebtWithDetails,
    DirectedPair,
    ExpenseDebt,
    ExpenseRecord,
    LedgerSnapshot,
    SettlementRecord,
    SplitRecord,
)
from splitbill_kernel.domain.values import (
    MONEY_TOLERANCE,
    ZERO,
    money_sum,
    round_money,
)
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.expense_debts")


def paid_by_attribution(
    settlements: Iterable[SettlementRecord],
) -> dict[AttributionKey, Decimal]:
    """Total settled per (from, to, expense); unlinked settlements are skipped."""
    paid: dict[AttributionKey, Decimal] = {}
    for settlement in settlements:
        key = settlement.attribution
        if key is not None:
            paid[key] = paid.get(key, ZERO) + settlement.amount
    return paid


def is_expense_fully_paid(
    expense: ExpenseRecord,
    splits: Sequence[SplitRecord],
    settlements: Iterable[SettlementRecord],
    tolerance: Decimal = MONEY_TOLERANCE,
) -> bool:
    """
    True if every non-payer share has been covered by linked settlements.

    A share counts as covered when settlements linked to this expense,
    from that member to the payer, total at least share - tolerance.  An
    expense with no non-payer shares is trivially fully paid.
    """
    paid = paid_by_attribution(
        s for s in settlements if s.linked_expense_id == expense.id
    )
    for split in splits:
        if split.member_id == expense.paid_by:
            continue
        key = AttributionKey(split.member_id, expense.paid_by, expense.id)
        if paid.get(key, ZERO) < split.amount - tolerance:
            return False
    return True


class ExpenseDebtTracker:
    """
    Per-expense attributed debt calculator.

    Contract:
        Expenses are visited newest first (date, then created_at), so each
        pair's expense list is in that order.  Pairs appear in first-seen
        order.
    Non-goals:
        - Does not net opposite directions; see DebtConsolidator.
    """

    def __init__(self, tolerance: Decimal = MONEY_TOLERANCE) -> None:
        self.tolerance = tolerance

    def expense_debts(self, snapshot: LedgerSnapshot) -> list[ExpenseDebt]:
        """Every outstanding (expense, debtor, creditor) amount."""
        names = snapshot.member_names()
        paid = paid_by_attribution(snapshot.settlements)
        splits_by_expense = snapshot.splits_by_expense()

        debts: list[ExpenseDebt] = []
        for expense in snapshot.expenses_newest_first():
            for split in splits_by_expense.get(expense.id, ()):
                if split.member_id == expense.paid_by:
                    continue

                key = AttributionKey(split.member_id, expense.paid_by, expense.id)
                remaining = split.amount - paid.get(key, ZERO)
                if remaining <= self.tolerance:
                    continue

                debts.append(ExpenseDebt(
                    expense_id=expense.id,
                    description=expense.description,
                    expense_date=expense.expense_date,
                    category=expense.category,
                    from_member=split.member_id,
                    to_member=expense.paid_by,
                    amount=round_money(remaining),
                    total_expense_amount=expense.amount,
                    from_name=_name(names, split.member_id),
                    to_name=_name(names, expense.paid_by),
                ))
        return debts

    @traced_engine("expense_debts", "1.0", fingerprint_fields=("snapshot",))
    def track(self, snapshot: LedgerSnapshot) -> tuple[DebtWithDetails, ...]:
        """
        Group outstanding expense debts by directed member pair.

        Returns:
            Tuple of DebtWithDetails, one per (debtor, creditor) that still
            owes something.
        """
        grouped: dict[DirectedPair, list[ExpenseDebt]] = {}
        for debt in self.expense_debts(snapshot):
            grouped.setdefault(debt.pair, []).append(debt)

        result = tuple(
            DebtWithDetails(
                from_member=pair.from_member,
                to_member=pair.to_member,
                amount=round_money(money_sum(d.amount for d in debts)),
                expenses=tuple(debts),
                from_name=debts[0].from_name,
                to_name=debts[0].to_name,
            )
            for pair, debts in grouped.items()
        )

        logger.info("expense_debts_tracked", extra={
            "group_id": str(snapshot.group_id),
            "expense_count": len(snapshot.expenses),
            "pair_count": len(result),
        })
        return result


def _name(names: dict[UUID, str], member_id: UUID) -> str:
    return names.get(member_id, str(member_id))
