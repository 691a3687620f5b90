"""Snapshot builder for pure engine tests (no repository involved)."""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from splitbill_kernel.domain.dtos import (
    ExpenseRecord,
    LedgerSnapshot,
    SettlementRecord,
    SplitRecord,
)


class LedgerBuilder:
    """Accumulates records and hands out a LedgerSnapshot."""

    def __init__(self, group_id, members):
        self.group_id = group_id
        self.members = members
        self.expenses: list[ExpenseRecord] = []
        self.splits: list[SplitRecord] = []
        self.settlements: list[SettlementRecord] = []
        self._now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def id(self, name):
        return self.members[name].id

    def _tick(self) -> datetime:
        self._now += timedelta(minutes=1)
        return self._now

    def expense(
        self,
        payer,
        amount,
        shares,
        description="expense",
        expense_date=date(2024, 1, 1),
        category=None,
    ) -> ExpenseRecord:
        expense = ExpenseRecord(
            id=uuid4(),
            group_id=self.group_id,
            description=description,
            amount=Decimal(amount),
            paid_by=self.id(payer),
            expense_date=expense_date,
            created_at=self._tick(),
            category=category,
        )
        self.expenses.append(expense)
        for name, share in shares.items():
            self.splits.append(SplitRecord(expense.id, self.id(name), Decimal(share)))
        return expense

    def settle(self, frm, to, amount, expense=None, note=None) -> SettlementRecord:
        settlement = SettlementRecord(
            id=uuid4(),
            group_id=self.group_id,
            from_member=self.id(frm),
            to_member=self.id(to),
            amount=Decimal(amount),
            settled_at=self._tick(),
            note=note,
            linked_expense_id=expense.id if expense is not None else None,
        )
        self.settlements.append(settlement)
        return settlement

    def snapshot(self, roster=None) -> LedgerSnapshot:
        names = roster if roster is not None else list(self.members)
        return LedgerSnapshot(
            group_id=self.group_id,
            members=tuple(self.members[n] for n in names),
            expenses=tuple(self.expenses),
            splits=tuple(self.splits),
            settlements=tuple(self.settlements),
        )


@pytest.fixture
def ledger(group_id, members) -> LedgerBuilder:
    return LedgerBuilder(group_id, members)
