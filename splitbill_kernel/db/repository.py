"""
Module: splitbill_kernel.db.repository
Responsibility: SQLAlchemy implementation of LedgerRepository.
Architecture position: Kernel > DB.  Reads go through LedgerSelector;
    writes add ORM rows to the caller's session and flush.

Invariants enforced:
    - Never commits.  The caller (session_scope or a test fixture) owns the
      outer transaction.
    - transaction() is a SAVEPOINT: a failure inside it discards only the
      writes made inside it.
    - Driver failures surface as PersistenceError with the SQLAlchemy
      exception as __cause__.

Failure modes:
    - PersistenceError on any SQLAlchemyError.
    - ImmutabilityViolationError propagates unchanged from the ORM
      listeners.
"""

from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from uuid import UUID

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from splitbill_kernel.domain.dtos import (
    ExpenseChange,
    ExpenseRecord,
    FieldChange,
    MemberRecord,
    SettlementRecord,
    SplitRecord,
)
from splitbill_kernel.domain.repository import LedgerRepository
from splitbill_kernel.exceptions import ExpenseNotFoundError, PersistenceError
from splitbill_kernel.logging_config import get_logger
from splitbill_kernel.models.expense import Expense, ExpenseSplit
from splitbill_kernel.models.expense_change import ExpenseChangeRow
from splitbill_kernel.models.member import Member
from splitbill_kernel.models.settlement import Settlement
from splitbill_kernel.selectors.ledger_selector import LedgerSelector

logger = get_logger("db.repository")


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.error(
            "persistence_failure",
            extra={"operation": operation, "error_type": type(exc).__name__},
        )
        raise PersistenceError(operation, str(exc)) from exc


class SqlLedgerRepository(LedgerRepository):
    """
    LedgerRepository over a SQLAlchemy Session.

    Contract:
        The session is supplied by the caller and stays open for the
        repository's lifetime.
    """

    def __init__(self, session: Session):
        self.session = session
        self._selector = LedgerSelector(session)

    # -- members ------------------------------------------------------------

    def add_member(self, member: MemberRecord) -> None:
        """Insert a member row. Used by fixtures and the membership layer."""
        with _translate_errors("add_member"):
            self.session.add(
                Member(id=member.id, group_id=member.group_id, name=member.name)
            )
            self.session.flush()

    def get_member(self, member_id: UUID) -> MemberRecord | None:
        with _translate_errors("get_member"):
            return self._selector.get_member(member_id)

    def list_members(self, group_id: UUID) -> list[MemberRecord]:
        with _translate_errors("list_members"):
            return self._selector.list_members(group_id)

    # -- expenses -----------------------------------------------------------

    def get_expense(self, expense_id: UUID) -> ExpenseRecord | None:
        with _translate_errors("get_expense"):
            return self._selector.get_expense(expense_id)

    def list_expenses(self, group_id: UUID) -> list[ExpenseRecord]:
        with _translate_errors("list_expenses"):
            return self._selector.list_expenses(group_id)

    def list_splits(self, expense_id: UUID) -> list[SplitRecord]:
        with _translate_errors("list_splits"):
            return self._selector.list_splits(expense_id)

    def add_expense(self, expense: ExpenseRecord, splits: Sequence[SplitRecord]) -> None:
        with _translate_errors("add_expense"):
            self.session.add(
                Expense(
                    id=expense.id,
                    group_id=expense.group_id,
                    description=expense.description,
                    amount=expense.amount,
                    paid_by=expense.paid_by,
                    expense_date=expense.expense_date,
                    category=expense.category,
                    created_at=expense.created_at,
                )
            )
            self.session.flush()
            self.session.add_all(_split_models(splits))
            self.session.flush()

    def update_expense(self, expense: ExpenseRecord) -> None:
        with _translate_errors("update_expense"):
            model = self.session.get(Expense, expense.id)
            if model is None:
                raise ExpenseNotFoundError(str(expense.id))
            model.description = expense.description
            model.amount = expense.amount
            model.paid_by = expense.paid_by
            model.expense_date = expense.expense_date
            model.category = expense.category
            self.session.flush()

    def replace_splits(self, expense_id: UUID, splits: Sequence[SplitRecord]) -> None:
        with _translate_errors("replace_splits"):
            self.session.execute(
                delete(ExpenseSplit).where(ExpenseSplit.expense_id == expense_id)
            )
            self.session.add_all(_split_models(splits))
            self.session.flush()

    # -- settlements --------------------------------------------------------

    def get_settlement(self, settlement_id: UUID) -> SettlementRecord | None:
        with _translate_errors("get_settlement"):
            return self._selector.get_settlement(settlement_id)

    def list_settlements(self, group_id: UUID) -> list[SettlementRecord]:
        with _translate_errors("list_settlements"):
            return self._selector.list_settlements(group_id)

    def add_settlement(self, settlement: SettlementRecord) -> None:
        with _translate_errors("add_settlement"):
            self.session.add(
                Settlement(
                    id=settlement.id,
                    group_id=settlement.group_id,
                    from_member=settlement.from_member,
                    to_member=settlement.to_member,
                    amount=settlement.amount,
                    settled_at=settlement.settled_at,
                    note=settlement.note,
                    linked_expense_id=settlement.linked_expense_id,
                )
            )
            self.session.flush()

    # -- change log ---------------------------------------------------------

    def list_expense_changes(self, expense_id: UUID) -> list[ExpenseChange]:
        with _translate_errors("list_expense_changes"):
            return self._selector.list_expense_changes(expense_id)

    def append_change(self, change: ExpenseChange) -> None:
        if isinstance(change, FieldChange):
            row = ExpenseChangeRow(
                id=change.id,
                expense_id=change.expense_id,
                changed_by=change.changed_by,
                changed_at=change.changed_at,
                kind=change.kind.value,
                field_name=change.field_name.value,
                old_value=change.old_value,
                new_value=change.new_value,
            )
        else:
            row = ExpenseChangeRow(
                id=change.id,
                expense_id=change.expense_id,
                changed_by=change.changed_by,
                changed_at=change.changed_at,
                kind=change.kind.value,
                new_value=change.description,
                settlement_id=change.settlement_id,
            )
        with _translate_errors("append_change"):
            self.session.add(row)
            self.session.flush()

    # -- unit of work -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator[None]:
        with _translate_errors("savepoint"):
            savepoint = self.session.begin_nested()
        with savepoint:
            yield


def _split_models(splits: Sequence[SplitRecord]) -> list[ExpenseSplit]:
    return [
        ExpenseSplit(expense_id=s.expense_id, member_id=s.member_id, amount=s.amount)
        for s in splits
    ]
