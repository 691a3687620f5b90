"""
Module: splitbill_kernel.models.expense
Responsibility: ORM persistence for expenses and their split rows.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Split amounts add up to the expense amount within 0.01.  Enforced by
      ExpenseService at write time; not stored redundantly.
    - Expenses are overwritten in place on edit and never deleted.  Every
      edit is recorded in expense_changes.
    - Splits are replaced wholesale on edit (delete + insert).
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from splitbill_kernel.db.base import Base, GroupScoped, UUIDString


class Expense(GroupScoped, Base):
    """
    A shared expense paid by one member.

    Contract:
        amount is positive.  paid_by references a member of the same group.
    """

    __tablename__ = "expenses"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_expense_amount_positive"),
        Index("idx_expense_group_date", "group_id", "expense_date"),
    )

    description: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    paid_by: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    expense_date: Mapped[date] = mapped_column(
        Date(),
        nullable=False,
    )

    category: Mapped[str | None] = mapped_column(
        String(100),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<Expense {self.description} {self.amount}>"


class ExpenseSplit(Base):
    """Share of one expense owed by one member."""

    __tablename__ = "expense_splits"

    __table_args__ = (
        CheckConstraint("amount >= 0", name="ck_split_amount_non_negative"),
        Index("idx_split_expense", "expense_id"),
    )

    expense_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id"),
        nullable=False,
    )

    member_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<ExpenseSplit {self.member_id} {self.amount}>"
