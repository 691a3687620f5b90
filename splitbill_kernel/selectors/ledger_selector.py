"""
Module: splitbill_kernel.selectors.ledger_selector
Responsibility: Read-only queries over members, expenses, splits,
    settlements and the expense change log, returned as domain DTOs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Expenses are returned newest first (expense_date, then created_at).
    - Settlements are returned oldest first.
    - Change rows are returned newest first.
    - No balances are stored anywhere; everything here is raw input for
      the engines.
"""

from uuid import UUID

from sqlalchemy import select

from splitbill_kernel.domain.dtos import (
    ChangeKind,
    ExpenseChange,
    ExpenseField,
    ExpenseRecord,
    FieldChange,
    MemberRecord,
    PaymentEvent,
    SettlementRecord,
    SplitRecord,
)
from splitbill_kernel.models.expense import Expense, ExpenseSplit
from splitbill_kernel.models.expense_change import ExpenseChangeRow
from splitbill_kernel.models.member import Member
from splitbill_kernel.models.settlement import Settlement
from splitbill_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector):
    """Read path for one or more groups' ledgers."""

    def get_member(self, member_id: UUID) -> MemberRecord | None:
        model = self.session.get(Member, member_id)
        return MemberRecord.from_model(model) if model is not None else None

    def list_members(self, group_id: UUID) -> list[MemberRecord]:
        query = select(Member).where(Member.group_id == group_id).order_by(Member.name)
        return [MemberRecord.from_model(m) for m in self.session.scalars(query)]

    def get_expense(self, expense_id: UUID) -> ExpenseRecord | None:
        model = self.session.get(Expense, expense_id)
        return ExpenseRecord.from_model(model) if model is not None else None

    def list_expenses(self, group_id: UUID) -> list[ExpenseRecord]:
        query = (
            select(Expense)
            .where(Expense.group_id == group_id)
            .order_by(Expense.expense_date.desc(), Expense.created_at.desc())
        )
        return [ExpenseRecord.from_model(e) for e in self.session.scalars(query)]

    def list_splits(self, expense_id: UUID) -> list[SplitRecord]:
        query = select(ExpenseSplit).where(ExpenseSplit.expense_id == expense_id)
        return [SplitRecord.from_model(s) for s in self.session.scalars(query)]

    def get_settlement(self, settlement_id: UUID) -> SettlementRecord | None:
        model = self.session.get(Settlement, settlement_id)
        return SettlementRecord.from_model(model) if model is not None else None

    def list_settlements(self, group_id: UUID) -> list[SettlementRecord]:
        query = (
            select(Settlement)
            .where(Settlement.group_id == group_id)
            .order_by(Settlement.settled_at)
        )
        return [SettlementRecord.from_model(s) for s in self.session.scalars(query)]

    def list_expense_changes(self, expense_id: UUID) -> list[ExpenseChange]:
        query = (
            select(ExpenseChangeRow)
            .where(ExpenseChangeRow.expense_id == expense_id)
            .order_by(ExpenseChangeRow.changed_at.desc())
        )
        return [_change_from_row(row) for row in self.session.scalars(query)]


def _change_from_row(row: ExpenseChangeRow) -> ExpenseChange:
    if ChangeKind(row.kind) is ChangeKind.PAYMENT:
        return PaymentEvent(
            id=row.id,
            expense_id=row.expense_id,
            changed_by=row.changed_by,
            changed_at=row.changed_at,
            settlement_id=row.settlement_id,
            description=row.new_value or "",
        )
    return FieldChange(
        id=row.id,
        expense_id=row.expense_id,
        changed_by=row.changed_by,
        changed_at=row.changed_at,
        field_name=ExpenseField(row.field_name),
        old_value=row.old_value,
        new_value=row.new_value,
    )
