"""
InMemoryLedgerRepository -- dict-backed LedgerRepository.

Responsibility:
    A complete, dependency-free implementation of the repository contract
    so the services can run without a database (unit tests, scripts,
    embedding in another process).

Architecture position:
    Kernel > Domain.  No I/O.

Invariants enforced:
    - Settlements and change rows are append-only (no update/delete API).
    - ``transaction()`` snapshots all state on entry and restores it if
      the block raises; nesting is supported.

Non-goals:
    - Not thread-safe.  One instance per caller.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from uuid import UUID

from splitbill_kernel.domain.dtos import (
    ExpenseChange,
    ExpenseRecord,
    MemberRecord,
    SettlementRecord,
    SplitRecord,
)
from splitbill_kernel.domain.repository import LedgerRepository


class InMemoryLedgerRepository(LedgerRepository):
    """LedgerRepository holding everything in Python containers."""

    def __init__(self) -> None:
        self._members: dict[UUID, MemberRecord] = {}
        self._expenses: dict[UUID, ExpenseRecord] = {}
        self._splits: dict[UUID, list[SplitRecord]] = {}
        self._settlements: list[SettlementRecord] = []
        self._changes: list[ExpenseChange] = []

    def add_member(self, member: MemberRecord) -> None:
        """Register a member. Membership is owned outside the ledger."""
        self._members[member.id] = member

    # -- members ------------------------------------------------------------

    def get_member(self, member_id: UUID) -> MemberRecord | None:
        return self._members.get(member_id)

    def list_members(self, group_id: UUID) -> list[MemberRecord]:
        return [m for m in self._members.values() if m.group_id == group_id]

    # -- expenses -----------------------------------------------------------

    def get_expense(self, expense_id: UUID) -> ExpenseRecord | None:
        return self._expenses.get(expense_id)

    def list_expenses(self, group_id: UUID) -> list[ExpenseRecord]:
        return sorted(
            (e for e in self._expenses.values() if e.group_id == group_id),
            key=lambda e: (e.expense_date, e.created_at),
            reverse=True,
        )

    def list_splits(self, expense_id: UUID) -> list[SplitRecord]:
        return list(self._splits.get(expense_id, ()))

    def add_expense(self, expense: ExpenseRecord, splits: Sequence[SplitRecord]) -> None:
        self._expenses[expense.id] = expense
        self._splits[expense.id] = list(splits)

    def update_expense(self, expense: ExpenseRecord) -> None:
        self._expenses[expense.id] = expense

    def replace_splits(self, expense_id: UUID, splits: Sequence[SplitRecord]) -> None:
        self._splits[expense_id] = list(splits)

    # -- settlements --------------------------------------------------------

    def get_settlement(self, settlement_id: UUID) -> SettlementRecord | None:
        for settlement in self._settlements:
            if settlement.id == settlement_id:
                return settlement
        return None

    def list_settlements(self, group_id: UUID) -> list[SettlementRecord]:
        return sorted(
            (s for s in self._settlements if s.group_id == group_id),
            key=lambda s: s.settled_at,
        )

    def add_settlement(self, settlement: SettlementRecord) -> None:
        self._settlements.append(settlement)

    # -- change log ---------------------------------------------------------

    def list_expense_changes(self, expense_id: UUID) -> list[ExpenseChange]:
        rows = [c for c in reversed(self._changes) if c.expense_id == expense_id]
        # Stable sort keeps later-appended rows first on equal timestamps
        return sorted(rows, key=lambda c: c.changed_at, reverse=True)

    def append_change(self, change: ExpenseChange) -> None:
        self._changes.append(change)

    # -- unit of work -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        saved = (
            dict(self._expenses),
            {k: list(v) for k, v in self._splits.items()},
            list(self._settlements),
            list(self._changes),
        )
        try:
            yield
        except BaseException:
            self._expenses, self._splits, self._settlements, self._changes = saved
            raise
