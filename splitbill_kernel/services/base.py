"""
BaseService -- abstract base for the ledger services.

Responsibility:
    Provides the common constructor (repository + clock) and the
    membership / existence checks every write path performs before
    touching storage.

Architecture position:
    Kernel > Services -- imperative shell around the pure engines.

Invariants enforced:
    - Services never commit.  Multi-step writes run inside
      ``repository.transaction()``; the caller's ``session_scope()`` owns
      the outer commit/rollback.
    - Services never read the wall clock directly; they use ``self.clock``.
"""

from abc import ABC
from uuid import UUID

from splitbill_kernel.domain.clock import Clock, SystemClock
from splitbill_kernel.domain.dtos import ExpenseRecord, MemberRecord
from splitbill_kernel.domain.repository import LedgerRepository
from splitbill_kernel.exceptions import ExpenseNotFoundError, MemberNotFoundError


class BaseService(ABC):
    """
    Abstract base class for ledger services.

    Contract:
        Accepts a LedgerRepository from the caller.  Lookups that fail
        raise typed NotFoundError subclasses.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT authorize the acting member.
    """

    def __init__(self, repository: LedgerRepository, clock: Clock | None = None):
        self.repository = repository
        self.clock = clock or SystemClock()

    def _require_member(self, member_id: UUID, group_id: UUID) -> MemberRecord:
        member = self.repository.get_member(member_id)
        if member is None or member.group_id != group_id:
            raise MemberNotFoundError(str(member_id), str(group_id))
        return member

    def _require_expense(
        self,
        expense_id: UUID,
        group_id: UUID | None = None,
    ) -> ExpenseRecord:
        expense = self.repository.get_expense(expense_id)
        if expense is None or (group_id is not None and expense.group_id != group_id):
            raise ExpenseNotFoundError(str(expense_id))
        return expense
