"""
Module: splitbill_kernel.models.member
Responsibility: ORM persistence for group members as the ledger sees them.
Architecture position: Kernel > Models.  May import from db/base.py only.

Group administration (invites, joins, removal) lives outside the ledger.
The ledger only reads member rows to validate references and to resolve
display names for audit descriptions.
"""

from sqlalchemy import Index, String
from sqlalchemy.orm import Mapped, mapped_column

from splitbill_kernel.db.base import Base, GroupScoped


class Member(GroupScoped, Base):
    """
    A member of one group.

    Contract:
        Read-only to the reconciliation core.  Rows are created by the
        membership collaborator.
    """

    __tablename__ = "members"

    __table_args__ = (
        Index("idx_member_group", "group_id"),
    )

    # Display name used in audit descriptions
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Member {self.name} in {self.group_id}>"
