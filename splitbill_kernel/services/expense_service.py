"""
ExpenseService -- the expense write path and expense history.

Responsibility:
    Validates and records new expenses with their splits, applies partial
    edits while appending one change-log row per changed field, and reads
    an expense's history back.

Architecture position:
    Kernel > Services.  Diffing is delegated to
    ``splitbill_engines.change_audit.ChangeAuditor``.

Invariants enforced:
    - Split amounts add up to the expense amount within tolerance after
      every write.  Checked on add and whenever an edit touches the amount
      or the splits.
    - Every rejection happens before the first storage write.
    - An edit's row overwrite, split replacement and change rows are
      written inside one ``repository.transaction()``.

Failure modes:
    - InvalidAmountError: amount not a positive number, or above MAX_AMOUNT.
    - InvalidSplitError: no splits, duplicate members, negative shares.
    - SplitSumMismatchError: shares do not add up to the amount.
    - MemberNotFoundError: payer or split member not in the group.
    - ExpenseNotFoundError: unknown expense on edit or history read.

Audit relevance:
    Field changes are logged with display names for paid_by and
    "name: amount" summaries for splits so the history reads on its own.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from splitbill_engines.change_audit import ChangeAuditor
from splitbill_kernel.domain.clock import Clock
from splitbill_kernel.domain.dtos import (
    ExpenseChange,
    ExpenseRecord,
    ExpenseUpdate,
    SplitRecord,
    SplitSpec,
)
from splitbill_kernel.domain.repository import LedgerRepository
from splitbill_kernel.domain.values import (
    MAX_AMOUNT,
    MONEY_TOLERANCE,
    money_sum,
    to_decimal,
)
from splitbill_kernel.exceptions import (
    InvalidAmountError,
    InvalidSplitError,
    SplitSumMismatchError,
)
from splitbill_kernel.logging_config import LogContext, get_logger
from splitbill_kernel.services.base import BaseService

logger = get_logger("services.expense")


class ExpenseService(BaseService):
    """
    Records and edits shared expenses.

    Contract:
        add_expense and update_expense either fully succeed or leave
        storage untouched.
    """

    def __init__(
        self,
        repository: LedgerRepository,
        clock: Clock | None = None,
        tolerance: Decimal = MONEY_TOLERANCE,
        currency_symbol: str = "",
    ):
        super().__init__(repository, clock)
        self.tolerance = tolerance
        self._auditor = ChangeAuditor(currency_symbol)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _positive_amount(self, value) -> Decimal:
        try:
            amount = to_decimal(value)
        except ValueError as e:
            raise InvalidAmountError(str(value), "not a number") from e
        if amount <= 0:
            raise InvalidAmountError(str(amount), "must be greater than zero")
        if amount > MAX_AMOUNT:
            raise InvalidAmountError(str(amount), f"must not exceed {MAX_AMOUNT}")
        return amount

    def _check_splits(self, splits: Sequence[SplitSpec], amount: Decimal) -> None:
        if not splits:
            raise InvalidSplitError("an expense needs at least one split")

        seen: set[UUID] = set()
        for split in splits:
            if split.member_id in seen:
                raise InvalidSplitError("member appears twice", str(split.member_id))
            seen.add(split.member_id)
            if split.amount < 0:
                raise InvalidSplitError("split amount must not be negative", str(split.member_id))

        self._check_sum([s.amount for s in splits], amount)

    def _check_sum(self, shares: Sequence[Decimal], amount: Decimal) -> None:
        total = money_sum(shares)
        if abs(total - amount) > self.tolerance:
            raise SplitSumMismatchError(
                expected=str(amount),
                actual=str(total),
                tolerance=str(self.tolerance),
            )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def add_expense(
        self,
        group_id: UUID,
        description: str,
        amount: Decimal | int | str,
        paid_by: UUID,
        expense_date: date,
        splits: Sequence[SplitSpec],
        category: str | None = None,
    ) -> ExpenseRecord:
        """
        Record a new expense and its splits.

        Raises:
            InvalidAmountError, InvalidSplitError, SplitSumMismatchError,
            MemberNotFoundError.
        """
        with LogContext.bind(group_id=group_id, actor_id=paid_by):
            total = self._positive_amount(amount)
            self._check_splits(splits, total)
            self._require_member(paid_by, group_id)
            for split in splits:
                self._require_member(split.member_id, group_id)

            expense = ExpenseRecord(
                id=uuid4(),
                group_id=group_id,
                description=description,
                amount=total,
                paid_by=paid_by,
                expense_date=expense_date,
                created_at=self.clock.now(),
                category=category,
            )
            split_records = [
                SplitRecord(expense_id=expense.id, member_id=s.member_id, amount=s.amount)
                for s in splits
            ]

            with self.repository.transaction():
                self.repository.add_expense(expense, split_records)

            logger.info("expense_added", extra={
                "expense_id": str(expense.id),
                "amount": str(expense.amount),
                "split_count": len(split_records),
            })
            return expense

    def update_expense(
        self,
        expense_id: UUID,
        editor_id: UUID,
        update: ExpenseUpdate,
    ) -> ExpenseRecord:
        """
        Overwrite the supplied fields of an expense and log each change.

        Splits, when given, replace the stored set wholesale.  Returns the
        expense as stored after the edit.

        Raises:
            ExpenseNotFoundError, InvalidAmountError, InvalidSplitError,
            SplitSumMismatchError, MemberNotFoundError.
        """
        before = self._require_expense(expense_id)

        with LogContext.bind(
            group_id=before.group_id, actor_id=editor_id, expense_id=expense_id,
        ):
            if update.is_empty:
                logger.debug("expense_update_empty")
                return before

            effective_amount = before.amount
            if update.amount is not None:
                effective_amount = self._positive_amount(update.amount)
            if update.paid_by is not None:
                self._require_member(update.paid_by, before.group_id)

            old_splits = self.repository.list_splits(expense_id)
            if update.splits is not None:
                self._check_splits(update.splits, effective_amount)
                for split in update.splits:
                    self._require_member(split.member_id, before.group_id)
            elif update.amount is not None:
                self._check_sum([s.amount for s in old_splits], effective_amount)

            names = {m.id: m.name for m in self.repository.list_members(before.group_id)}
            diff = self._auditor.diff(
                before,
                update,
                names,
                old_splits,
                changed_by=editor_id,
                changed_at=self.clock.now(),
            )

            if not diff.has_changes:
                logger.debug("expense_update_unchanged")
                return before

            with self.repository.transaction():
                if diff.after != before:
                    self.repository.update_expense(diff.after)
                if diff.splits is not None:
                    self.repository.replace_splits(expense_id, diff.splits)
                for change in diff.changes:
                    self.repository.append_change(change)
                    logger.debug("expense_change_logged", extra={
                        "field_name": change.field_name.value,
                    })

            logger.info("expense_updated", extra={
                "changed_fields": [c.field_name.value for c in diff.changes],
                "splits_replaced": diff.splits is not None,
            })
            return diff.after

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_expense(self, expense_id: UUID) -> ExpenseRecord:
        return self._require_expense(expense_id)

    def get_expense_splits(self, expense_id: UUID) -> list[SplitRecord]:
        self._require_expense(expense_id)
        return self.repository.list_splits(expense_id)

    def get_expense_history(self, expense_id: UUID) -> list[ExpenseChange]:
        """Field changes and payment events for an expense, newest first."""
        self._require_expense(expense_id)
        return self.repository.list_expense_changes(expense_id)
