"""
Repository -- storage contract for the reconciliation core.

Responsibility:
    Declares the accessors the services need (members, expenses, splits,
    settlements, change log) and a ``transaction()`` scope for multi-step
    writes.  Services receive an implementation by constructor injection
    instead of reaching for a global database handle.

Architecture position:
    Kernel > Domain -- contract only, zero I/O.
    Implementations: ``splitbill_kernel.db.repository.SqlLedgerRepository``
    (SQLAlchemy) and ``splitbill_kernel.domain.memory_repository.
    InMemoryLedgerRepository`` (dicts, for tests and embedding).

Invariants enforced:
    - Lookups return ``None`` for missing rows; raising NotFoundError is the
      service layer's job.
    - ``list_expenses`` is ordered newest first (date, then created_at).
    - ``list_expense_changes`` is ordered newest first.
    - ``transaction()`` is all-or-nothing: if the block raises, every write
      made inside it is discarded.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from contextlib import AbstractContextManager
from uuid import UUID

from splitbill_kernel.domain.dtos import (
    ExpenseChange,
    ExpenseRecord,
    LedgerSnapshot,
    MemberRecord,
    SettlementRecord,
    SplitRecord,
)


class LedgerRepository(ABC):
    """
    Abstract storage for one or more groups' ledgers.

    Contract:
        Readers return DTOs, never ORM entities.  Writers persist within
        the caller's unit of work and never commit.

    Non-goals:
        - Does NOT validate business rules (split sums, membership).
        - Does NOT manage group membership; members are read-only here.
    """

    # -- members ------------------------------------------------------------

    @abstractmethod
    def get_member(self, member_id: UUID) -> MemberRecord | None:
        ...

    @abstractmethod
    def list_members(self, group_id: UUID) -> list[MemberRecord]:
        ...

    # -- expenses -----------------------------------------------------------

    @abstractmethod
    def get_expense(self, expense_id: UUID) -> ExpenseRecord | None:
        ...

    @abstractmethod
    def list_expenses(self, group_id: UUID) -> list[ExpenseRecord]:
        ...

    @abstractmethod
    def list_splits(self, expense_id: UUID) -> list[SplitRecord]:
        ...

    @abstractmethod
    def add_expense(self, expense: ExpenseRecord, splits: Sequence[SplitRecord]) -> None:
        ...

    @abstractmethod
    def update_expense(self, expense: ExpenseRecord) -> None:
        """Overwrite the stored expense row with ``expense``."""
        ...

    @abstractmethod
    def replace_splits(self, expense_id: UUID, splits: Sequence[SplitRecord]) -> None:
        """Delete every split of the expense and insert ``splits``."""
        ...

    # -- settlements --------------------------------------------------------

    @abstractmethod
    def get_settlement(self, settlement_id: UUID) -> SettlementRecord | None:
        ...

    @abstractmethod
    def list_settlements(self, group_id: UUID) -> list[SettlementRecord]:
        ...

    @abstractmethod
    def add_settlement(self, settlement: SettlementRecord) -> None:
        ...

    # -- change log ---------------------------------------------------------

    @abstractmethod
    def list_expense_changes(self, expense_id: UUID) -> list[ExpenseChange]:
        ...

    @abstractmethod
    def append_change(self, change: ExpenseChange) -> None:
        ...

    # -- unit of work -------------------------------------------------------

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """All-or-nothing scope for multi-step writes (may be nested)."""
        ...

    # -- snapshot -----------------------------------------------------------

    def load_snapshot(self, group_id: UUID) -> LedgerSnapshot:
        """
        Read a group's whole ledger.

        Callers wanting a torn-read-free view wrap this in ``transaction()``
        (or their own read transaction).
        """
        expenses = self.list_expenses(group_id)
        splits: list[SplitRecord] = []
        for expense in expenses:
            splits.extend(self.list_splits(expense.id))
        return LedgerSnapshot(
            group_id=group_id,
            members=tuple(self.list_members(group_id)),
            expenses=tuple(expenses),
            splits=tuple(splits),
            settlements=tuple(self.list_settlements(group_id)),
        )

