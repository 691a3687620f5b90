"""
ReconciliationService -- read side of the ledger.

Responsibility:
    Loads one consistent snapshot of a group's ledger and runs the pure
    engines over it: net balances, simplified transfers, attributed and
    consolidated debts, the expense listing with its fully-paid flag, and
    the activity feed.

Architecture position:
    Kernel > Services.  Never writes.

Invariants enforced:
    - Every call reads the snapshot inside one ``repository.transaction()``
      so the four collections are mutually consistent.
    - The net view (balances -> simplification) and the attributed view
      (expense debts -> consolidation) are computed independently.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from splitbill_engines.activity import ActivityFeedBuilder
from splitbill_engines.balances import BalanceCalculator
from splitbill_engines.consolidation import DebtConsolidator
from splitbill_engines.expense_debts import ExpenseDebtTracker, is_expense_fully_paid
from splitbill_engines.simplification import DebtSimplifier
from splitbill_kernel.domain.clock import Clock
from splitbill_kernel.domain.dtos import (
    ActivityEntry,
    Balance,
    Debt,
    DebtWithDetails,
    ExpenseDebt,
    ExpenseSummary,
    LedgerSnapshot,
)
from splitbill_kernel.domain.repository import LedgerRepository
from splitbill_kernel.domain.values import MONEY_TOLERANCE
from splitbill_kernel.logging_config import LogContext, get_logger
from splitbill_kernel.services.base import BaseService

logger = get_logger("services.reconciliation")


class ReconciliationService(BaseService):
    """Answers "who owes whom" for a group."""

    def __init__(
        self,
        repository: LedgerRepository,
        clock: Clock | None = None,
        tolerance: Decimal = MONEY_TOLERANCE,
    ):
        super().__init__(repository, clock)
        self.tolerance = tolerance
        self._balances = BalanceCalculator(tolerance)
        self._simplifier = DebtSimplifier(tolerance)
        self._tracker = ExpenseDebtTracker(tolerance)
        self._consolidator = DebtConsolidator(tolerance)
        self._activity = ActivityFeedBuilder()

    def snapshot(self, group_id: UUID) -> LedgerSnapshot:
        with self.repository.transaction():
            snapshot = self.repository.load_snapshot(group_id)
        logger.debug("snapshot_loaded", extra={
            "group_id": str(group_id),
            "expense_count": len(snapshot.expenses),
            "settlement_count": len(snapshot.settlements),
        })
        return snapshot

    def balances(self, group_id: UUID) -> tuple[Balance, ...]:
        with LogContext.bind(group_id=group_id):
            return self._balances.calculate(self.snapshot(group_id))

    def simplified_debts(self, group_id: UUID) -> tuple[Debt, ...]:
        """Minimal transfer set from net balances (no expense attribution)."""
        with LogContext.bind(group_id=group_id):
            balances = self._balances.calculate(self.snapshot(group_id))
            return self._simplifier.simplify(balances)

    def expense_debts(self, group_id: UUID) -> list[ExpenseDebt]:
        with LogContext.bind(group_id=group_id):
            return self._tracker.expense_debts(self.snapshot(group_id))

    def debts_with_details(
        self,
        group_id: UUID,
        consolidate: bool = True,
    ) -> tuple[DebtWithDetails, ...]:
        """
        Outstanding debts with the expenses behind them.

        With ``consolidate`` (the default) opposite directions between the
        same two members are netted into one debt.
        """
        with LogContext.bind(group_id=group_id):
            debts = self._tracker.track(self.snapshot(group_id))
            if not consolidate:
                return debts
            return self._consolidator.consolidate(debts)

    def list_expenses(self, group_id: UUID) -> list[ExpenseSummary]:
        """Expenses newest first, each with payer name and fully-paid flag."""
        with LogContext.bind(group_id=group_id):
            snapshot = self.snapshot(group_id)
            names = snapshot.member_names()
            splits = snapshot.splits_by_expense()
            return [
                ExpenseSummary(
                    expense=expense,
                    paid_by_name=names.get(expense.paid_by, str(expense.paid_by)),
                    is_fully_paid=is_expense_fully_paid(
                        expense,
                        splits.get(expense.id, ()),
                        snapshot.settlements,
                        self.tolerance,
                    ),
                )
                for expense in snapshot.expenses_newest_first()
            ]

    def activity(self, group_id: UUID) -> tuple[ActivityEntry, ...]:
        with LogContext.bind(group_id=group_id):
            return self._activity.build(self.snapshot(group_id))
