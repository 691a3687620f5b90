"""
Module: splitbill_kernel.models.expense_change
Responsibility: ORM persistence for the per-expense change log.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: UPDATE and DELETE are rejected by db/immutability.py.
    - kind discriminates the two row shapes:
        field   -- field_name, old_value, new_value set; settlement_id NULL
        payment -- settlement_id and new_value (description) set;
                   field_name and old_value NULL
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from splitbill_kernel.db.base import Base, UUIDString


class ExpenseChangeRow(Base):
    """One row of an expense's history."""

    __tablename__ = "expense_changes"

    __table_args__ = (
        Index("idx_change_expense", "expense_id", "changed_at"),
    )

    expense_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id"),
        nullable=False,
    )

    changed_by: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    changed_at: Mapped[datetime] = mapped_column(nullable=False)

    # "field" or "payment"
    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
    )

    field_name: Mapped[str | None] = mapped_column(
        String(20),
        nullable=True,
    )

    old_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    new_value: Mapped[str | None] = mapped_column(Text, nullable=True)

    settlement_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("settlements.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<ExpenseChangeRow {self.kind} {self.field_name} on {self.expense_id}>"
