"""
Module: splitbill_kernel.models.settlement
Responsibility: ORM persistence for settlements (recorded payments).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Settlements are append-only: UPDATE and DELETE are rejected by the
      ORM listeners in db/immutability.py.
    - amount > 0 (check constraint).

Audit relevance:
    A settlement with linked_expense_id pays down one (from, to, expense)
    attribution and is mirrored by a payment row in expense_changes.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from splitbill_kernel.db.base import Base, GroupScoped, UUIDString


class Settlement(GroupScoped, Base):
    """
    A payment from one member to another, optionally tied to one expense.

    Contract:
        Immutable once flushed.  Corrections are made with new settlements.
    """

    __tablename__ = "settlements"

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_settlement_amount_positive"),
        Index("idx_settlement_group", "group_id"),
        Index("idx_settlement_expense", "linked_expense_id"),
    )

    from_member: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    to_member: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("members.id"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    settled_at: Mapped[datetime] = mapped_column(nullable=False)

    note: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )

    linked_expense_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("expenses.id"),
        nullable=True,
    )

    def __repr__(self) -> str:
        return f"<Settlement {self.from_member}->{self.to_member} {self.amount}>"
