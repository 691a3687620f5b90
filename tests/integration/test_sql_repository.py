"""
Integration tests for SqlLedgerRepository against SQLite.

Covers:
- Round trip of expenses, splits, settlements and both change-row kinds
- Ordering of list_expenses / list_settlements / list_expense_changes
- Driver errors surfacing as PersistenceError with the original cause
- transaction() as a savepoint: inner failure discards inner writes only
- Timestamps read back timezone-aware in UTC
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError

from splitbill_kernel.domain.dtos import (
    ExpenseField,
    ExpenseRecord,
    FieldChange,
    PaymentEvent,
    SettlementRecord,
    SplitRecord,
)
from splitbill_kernel.exceptions import ExpenseNotFoundError, PersistenceError

T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def _expense(group_id, payer, amount="30", expense_date=date(2024, 1, 1), created_at=T0, **kw):
    return ExpenseRecord(
        id=uuid4(),
        group_id=group_id,
        description=kw.pop("description", "expense"),
        amount=Decimal(amount),
        paid_by=payer,
        expense_date=expense_date,
        created_at=created_at,
        **kw,
    )


def _settlement(group_id, frm, to, amount="10", settled_at=T0, linked=None):
    return SettlementRecord(
        id=uuid4(),
        group_id=group_id,
        from_member=frm,
        to_member=to,
        amount=Decimal(amount),
        settled_at=settled_at,
        linked_expense_id=linked,
    )


class TestRoundTrip:
    """Records written through the repository read back intact."""

    def test_members_ordered_by_name(self, sql_repo, group_id, members):
        assert [m.name for m in sql_repo.list_members(group_id)] == ["alice", "bob", "carol"]
        assert sql_repo.get_member(members["bob"].id).name == "bob"
        assert sql_repo.get_member(uuid4()) is None

    def test_expense_and_splits(self, sql_repo, group_id, members):
        alice, bob = members["alice"].id, members["bob"].id
        expense = _expense(group_id, alice, category="travel")
        sql_repo.add_expense(expense, [
            SplitRecord(expense.id, alice, "15"),
            SplitRecord(expense.id, bob, "15"),
        ])

        stored = sql_repo.get_expense(expense.id)
        assert stored.amount == Decimal("30")
        assert stored.category == "travel"
        assert {(s.member_id, s.amount) for s in sql_repo.list_splits(expense.id)} == {
            (alice, Decimal("15")),
            (bob, Decimal("15")),
        }

    def test_update_and_replace_splits(self, sql_repo, group_id, members):
        alice, carol = members["alice"].id, members["carol"].id
        expense = _expense(group_id, alice)
        sql_repo.add_expense(expense, [SplitRecord(expense.id, alice, "30")])

        sql_repo.update_expense(ExpenseRecord(**{**vars(expense), "description": "renamed"}))
        sql_repo.replace_splits(expense.id, [SplitRecord(expense.id, carol, "30")])

        assert sql_repo.get_expense(expense.id).description == "renamed"
        assert [s.member_id for s in sql_repo.list_splits(expense.id)] == [carol]

    def test_update_missing_expense(self, sql_repo, group_id, members):
        with pytest.raises(ExpenseNotFoundError):
            sql_repo.update_expense(_expense(group_id, members["alice"].id))

    def test_change_rows_keep_their_kind(self, sql_repo, group_id, members):
        alice, bob = members["alice"].id, members["bob"].id
        expense = _expense(group_id, alice)
        sql_repo.add_expense(expense, [SplitRecord(expense.id, bob, "30")])
        settlement = _settlement(group_id, bob, alice, linked=expense.id)
        sql_repo.add_settlement(settlement)

        sql_repo.append_change(FieldChange(
            expense_id=expense.id, changed_by=alice, changed_at=T0,
            field_name=ExpenseField.DESCRIPTION, old_value="expense", new_value="dinner",
        ))
        sql_repo.append_change(PaymentEvent(
            expense_id=expense.id, changed_by=bob, changed_at=T0 + timedelta(minutes=1),
            settlement_id=settlement.id, description="bob paid 10.00 to alice",
        ))

        payment, field_change = sql_repo.list_expense_changes(expense.id)
        assert isinstance(payment, PaymentEvent)
        assert payment.settlement_id == settlement.id
        assert payment.description == "bob paid 10.00 to alice"
        assert isinstance(field_change, FieldChange)
        assert field_change.field_name is ExpenseField.DESCRIPTION
        assert (field_change.old_value, field_change.new_value) == ("expense", "dinner")


class TestOrdering:
    """List accessors honour the repository ordering contract."""

    def test_expenses_newest_first(self, sql_repo, group_id, members):
        alice = members["alice"].id
        old = _expense(group_id, alice, expense_date=date(2024, 1, 1))
        new = _expense(group_id, alice, expense_date=date(2024, 3, 1))
        same_day_later = _expense(
            group_id, alice, expense_date=date(2024, 3, 1), created_at=T0 + timedelta(hours=1),
        )
        for expense in (old, new, same_day_later):
            sql_repo.add_expense(expense, [SplitRecord(expense.id, alice, "30")])

        assert [e.id for e in sql_repo.list_expenses(group_id)] == [
            same_day_later.id, new.id, old.id,
        ]

    def test_settlements_oldest_first(self, sql_repo, group_id, members):
        alice, bob = members["alice"].id, members["bob"].id
        later = _settlement(group_id, bob, alice, settled_at=T0 + timedelta(days=1))
        earlier = _settlement(group_id, bob, alice)
        sql_repo.add_settlement(later)
        sql_repo.add_settlement(earlier)

        assert [s.id for s in sql_repo.list_settlements(group_id)] == [earlier.id, later.id]
        assert sql_repo.list_settlements(uuid4()) == []


class TestErrorsAndSavepoints:
    """PersistenceError translation and transaction() semantics."""

    def test_check_constraint_becomes_persistence_error(self, sql_repo, group_id, members):
        bad = _settlement(group_id, members["bob"].id, members["alice"].id, amount="0")

        with pytest.raises(PersistenceError) as exc_info:
            with sql_repo.transaction():
                sql_repo.add_settlement(bad)

        assert exc_info.value.operation == "add_settlement"
        assert isinstance(exc_info.value.__cause__, IntegrityError)
        assert sql_repo.list_settlements(group_id) == []

    def test_failure_inside_transaction_discards_its_writes(self, sql_repo, group_id, members):
        alice, bob = members["alice"].id, members["bob"].id
        kept = _settlement(group_id, bob, alice, amount="5")
        sql_repo.add_settlement(kept)

        with pytest.raises(RuntimeError):
            with sql_repo.transaction():
                sql_repo.add_settlement(_settlement(group_id, bob, alice, amount="7"))
                raise RuntimeError("abort")

        assert [s.id for s in sql_repo.list_settlements(group_id)] == [kept.id]

    def test_snapshot_collects_group(self, sql_repo, group_id, members):
        alice, bob = members["alice"].id, members["bob"].id
        expense = _expense(group_id, alice)
        sql_repo.add_expense(expense, [SplitRecord(expense.id, bob, "30")])
        sql_repo.add_settlement(_settlement(group_id, bob, alice))

        snapshot = sql_repo.load_snapshot(group_id)

        assert len(snapshot.members) == 3
        assert [e.id for e in snapshot.expenses] == [expense.id]
        assert len(snapshot.splits) == 1
        assert len(snapshot.settlements) == 1


class TestTimestamps:
    """UTCDateTime round trip."""

    def test_fresh_reads_are_utc_aware(self, sql_repo, session, group_id, members):
        paris = timezone(timedelta(hours=2))
        settlement = _settlement(
            group_id, members["bob"].id, members["alice"].id,
            settled_at=datetime(2024, 5, 1, 14, 0, tzinfo=paris),
        )
        sql_repo.add_settlement(settlement)
        session.expire_all()

        (stored,) = sql_repo.list_settlements(group_id)

        assert stored.settled_at.tzinfo is not None
        assert stored.settled_at == datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def test_naive_timestamp_rejected(self, sql_repo, group_id, members):
        naive = _settlement(
            group_id, members["bob"].id, members["alice"].id,
            settled_at=datetime(2024, 5, 1, 12, 0),
        )

        with pytest.raises(PersistenceError):
            with sql_repo.transaction():
                sql_repo.add_settlement(naive)
