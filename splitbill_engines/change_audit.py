"""
splitbill_engines.change_audit -- Field-level diff of an expense edit.

Responsibility:
    Compare an expense against a partial update and produce (a) the
    overwritten expense record, (b) the replacement split set if one was
    supplied, and (c) one FieldChange per attribute that actually changed.
    Also renders the human-readable strings stored in the change log.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    The write path (ExpenseService.update_expense) persists the result.

Invariants enforced:
    - A FieldChange is produced only when the new value differs from the
      old one.  Supplying splits always produces a "splits" change, since
      the split set is replaced wholesale.
    - paid_by values are rendered as display names, not ids.
    - Split summaries read "name: amount" joined by ", ".
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import (
    UNSET,
    ExpenseField,
    ExpenseRecord,
    ExpenseUpdate,
    FieldChange,
    SplitRecord,
)
from splitbill_kernel.domain.values import format_money
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.change_audit")


@dataclass(frozen=True)
class ExpenseDiff:
    """Result of applying an ExpenseUpdate to an expense."""

    after: ExpenseRecord
    splits: tuple[SplitRecord, ...] | None
    changes: tuple[FieldChange, ...]

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)


class ChangeAuditor:
    """
    Builds change-log rows for expense edits.

    Contract:
        Pure.  Timestamps and the editor id are passed in by the caller.
    """

    def __init__(self, currency_symbol: str = "") -> None:
        self.currency_symbol = currency_symbol

    def money(self, amount: Decimal) -> str:
        return format_money(amount, self.currency_symbol)

    def summarize_splits(
        self,
        splits: Sequence[SplitRecord],
        member_names: Mapping[UUID, str],
    ) -> str:
        return ", ".join(
            f"{member_names.get(s.member_id, str(s.member_id))}: {self.money(s.amount)}"
            for s in splits
        )

    def describe_payment(self, from_name: str, to_name: str, amount: Decimal) -> str:
        return f"{from_name} paid {self.money(amount)} to {to_name}"

    @traced_engine("change_audit", "1.0", fingerprint_fields=("before", "update"))
    def diff(
        self,
        before: ExpenseRecord,
        update: ExpenseUpdate,
        member_names: Mapping[UUID, str],
        old_splits: Sequence[SplitRecord] = (),
        *,
        changed_by: UUID,
        changed_at: datetime,
    ) -> ExpenseDiff:
        """
        Apply ``update`` to ``before`` and list what changed.

        Args:
            before: The stored expense.
            update: Partial overwrite; None (or UNSET for category) means
                "leave unchanged".
            member_names: id -> display name, for paid_by and split rendering.
            old_splits: The stored split set, rendered in the splits change.
            changed_by: Editor recorded on each change row.
            changed_at: Timestamp recorded on each change row.
        """
        changes: list[FieldChange] = []

        def record(field_name: ExpenseField, old: str | None, new: str | None) -> None:
            changes.append(FieldChange(
                expense_id=before.id,
                changed_by=changed_by,
                changed_at=changed_at,
                field_name=field_name,
                old_value=old,
                new_value=new,
            ))

        overrides: dict[str, object] = {}

        if update.description is not None and update.description != before.description:
            record(ExpenseField.DESCRIPTION, before.description, update.description)
            overrides["description"] = update.description

        if update.amount is not None and update.amount != before.amount:
            record(ExpenseField.AMOUNT, self.money(before.amount), self.money(update.amount))
            overrides["amount"] = update.amount

        if update.paid_by is not None and update.paid_by != before.paid_by:
            record(
                ExpenseField.PAID_BY,
                member_names.get(before.paid_by, str(before.paid_by)),
                member_names.get(update.paid_by, str(update.paid_by)),
            )
            overrides["paid_by"] = update.paid_by

        if update.expense_date is not None and update.expense_date != before.expense_date:
            record(
                ExpenseField.DATE,
                before.expense_date.isoformat(),
                update.expense_date.isoformat(),
            )
            overrides["expense_date"] = update.expense_date

        if update.category is not UNSET and update.category != before.category:
            record(ExpenseField.CATEGORY, before.category, update.category)
            overrides["category"] = update.category

        new_splits = None
        if update.splits is not None:
            new_splits = tuple(
                SplitRecord(expense_id=before.id, member_id=s.member_id, amount=s.amount)
                for s in update.splits
            )
            record(
                ExpenseField.SPLITS,
                self.summarize_splits(old_splits, member_names),
                self.summarize_splits(new_splits, member_names),
            )

        logger.debug("expense_diff_computed", extra={
            "expense_id": str(before.id),
            "changed_fields": [c.field_name.value for c in changes],
        })
        return ExpenseDiff(
            after=replace(before, **overrides),
            splits=new_splits,
            changes=tuple(changes),
        )


def diff_expense(
    before: ExpenseRecord,
    update: ExpenseUpdate,
    member_names: Mapping[UUID, str],
    old_splits: Sequence[SplitRecord] = (),
    *,
    changed_by: UUID,
    changed_at: datetime,
    currency_symbol: str = "",
) -> ExpenseDiff:
    """Module-level shortcut for ChangeAuditor(currency_symbol).diff(...)."""
    return ChangeAuditor(currency_symbol).diff(
        before,
        update,
        member_names,
        old_splits,
        changed_by=changed_by,
        changed_at=changed_at,
    )
