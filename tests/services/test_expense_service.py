"""
Tests for ExpenseService.

Covers:
- add_expense validation (amount range, splits, membership) with nothing written on rejection
- update_expense field diffs, wholesale split replacement, split-sum re-check
- update_expense all-or-nothing when storage fails partway
- get_expense_history ordering

Every test runs against the in-memory and the SQLite repository.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from splitbill_kernel.domain.dtos import ExpenseField, ExpenseUpdate, FieldChange, SplitSpec
from splitbill_kernel.domain.values import MAX_AMOUNT
from splitbill_kernel.exceptions import (
    ExpenseNotFoundError,
    InvalidAmountError,
    InvalidSplitError,
    LedgerValidationError,
    MemberNotFoundError,
    PersistenceError,
    SplitSumMismatchError,
)


def _splits(members, **shares):
    return [SplitSpec(members[name].id, Decimal(amount)) for name, amount in shares.items()]


class TestAddExpense:
    """Recording new expenses."""

    def test_records_expense_and_splits(self, expense_service, repo, group_id, members):
        expense = expense_service.add_expense(
            group_id=group_id,
            description="groceries",
            amount="90",
            paid_by=members["alice"].id,
            expense_date=date(2024, 2, 1),
            splits=_splits(members, alice="30", bob="30", carol="30"),
            category="food",
        )

        stored = repo.get_expense(expense.id)
        assert stored.description == "groceries"
        assert stored.amount == Decimal("90")
        assert stored.category == "food"
        assert stored.paid_by == members["alice"].id
        assert {s.member_id: s.amount for s in repo.list_splits(expense.id)} == {
            members["alice"].id: Decimal("30"),
            members["bob"].id: Decimal("30"),
            members["carol"].id: Decimal("30"),
        }

    def test_split_mismatch_rejected_nothing_written(self, expense_service, repo, group_id, members):
        """Amount 100 with splits summing to 90 is refused."""
        with pytest.raises(SplitSumMismatchError) as exc_info:
            expense_service.add_expense(
                group_id, "rent", "100", members["alice"].id, date(2024, 2, 1),
                _splits(members, alice="45", bob="45"),
            )

        assert exc_info.value.code == "SPLIT_SUM_MISMATCH"
        assert repo.list_expenses(group_id) == []

    def test_split_within_tolerance_accepted(self, expense_service, group_id, members):
        expense = expense_service.add_expense(
            group_id, "pizza", "100", members["alice"].id, date(2024, 2, 1),
            _splits(members, alice="33.33", bob="33.33", carol="33.33"),
        )

        assert expense.amount == Decimal("100")

    @pytest.mark.parametrize("amount", ["0", "-5", "abc"])
    def test_non_positive_amount_rejected(self, expense_service, repo, group_id, members, amount):
        with pytest.raises(InvalidAmountError):
            expense_service.add_expense(
                group_id, "bad", amount, members["alice"].id, date(2024, 2, 1),
                _splits(members, alice="0"),
            )
        assert repo.list_expenses(group_id) == []

    def test_amount_above_maximum_rejected(self, expense_service, repo, group_id, members):
        huge = "1" + "0" * 27

        with pytest.raises(InvalidAmountError) as exc_info:
            expense_service.add_expense(
                group_id, "yacht", huge, members["alice"].id, date(2024, 2, 1),
                _splits(members, alice=huge),
            )

        assert "must not exceed" in exc_info.value.reason
        assert repo.list_expenses(group_id) == []

    def test_maximum_amount_still_balances(self, expense_service, reconciliation, group_id, members):
        expense_service.add_expense(
            group_id, "yacht", MAX_AMOUNT, members["alice"].id, date(2024, 2, 1),
            _splits(members, bob=str(MAX_AMOUNT)),
        )

        balances = {b.member_id: b.amount for b in reconciliation.balances(group_id)}

        assert balances[members["alice"].id] == MAX_AMOUNT
        assert balances[members["bob"].id] == -MAX_AMOUNT

    def test_empty_splits_rejected(self, expense_service, group_id, members):
        with pytest.raises(InvalidSplitError):
            expense_service.add_expense(
                group_id, "x", "10", members["alice"].id, date(2024, 2, 1), [],
            )

    def test_duplicate_split_member_rejected(self, expense_service, group_id, members):
        splits = [SplitSpec(members["bob"].id, "5"), SplitSpec(members["bob"].id, "5")]

        with pytest.raises(InvalidSplitError) as exc_info:
            expense_service.add_expense(
                group_id, "x", "10", members["alice"].id, date(2024, 2, 1), splits,
            )

        assert exc_info.value.member_id == str(members["bob"].id)

    def test_negative_split_rejected(self, expense_service, group_id, members):
        with pytest.raises(InvalidSplitError):
            expense_service.add_expense(
                group_id, "x", "10", members["alice"].id, date(2024, 2, 1),
                _splits(members, alice="15", bob="-5"),
            )

    def test_unknown_payer_rejected(self, expense_service, repo, group_id, members):
        with pytest.raises(MemberNotFoundError):
            expense_service.add_expense(
                group_id, "x", "10", uuid4(), date(2024, 2, 1),
                _splits(members, alice="10"),
            )
        assert repo.list_expenses(group_id) == []

    def test_split_member_from_other_group_rejected(self, expense_service, group_id, members):
        with pytest.raises(MemberNotFoundError):
            expense_service.add_expense(
                uuid4(), "x", "10", members["alice"].id, date(2024, 2, 1),
                _splits(members, alice="10"),
            )

    def test_validation_errors_share_a_base(self, expense_service, group_id, members):
        with pytest.raises(LedgerValidationError):
            expense_service.add_expense(
                group_id, "x", "0", members["alice"].id, date(2024, 2, 1), [],
            )

    def test_logs_expense_added(self, expense_service, group_id, members, captured_logs):
        expense_service.add_expense(
            group_id, "x", "10", members["alice"].id, date(2024, 2, 1),
            _splits(members, bob="10"),
        )

        (record,) = [r for r in captured_logs() if r["message"] == "expense_added"]
        assert record["group_id"] == str(group_id)
        assert record["amount"] == "10"


class TestUpdateExpense:
    """Editing expenses and the change log."""

    @pytest.fixture
    def dinner(self, expense_service, group_id, members):
        return expense_service.add_expense(
            group_id, "dinner", "60", members["alice"].id, date(2024, 3, 1),
            _splits(members, alice="20", bob="20", carol="20"),
            category="food",
        )

    def test_description_change_logged(self, expense_service, dinner, members):
        updated = expense_service.update_expense(
            dinner.id, members["bob"].id, ExpenseUpdate(description="late dinner"),
        )

        assert updated.description == "late dinner"
        (change,) = expense_service.get_expense_history(dinner.id)
        assert isinstance(change, FieldChange)
        assert change.field_name is ExpenseField.DESCRIPTION
        assert (change.old_value, change.new_value) == ("dinner", "late dinner")
        assert change.changed_by == members["bob"].id

    def test_unchanged_values_not_logged(self, expense_service, dinner, members, captured_logs):
        expense_service.update_expense(
            dinner.id, members["bob"].id,
            ExpenseUpdate(description="dinner", amount=Decimal("60.00"), category="food"),
        )

        assert expense_service.get_expense_history(dinner.id) == []
        messages = [r["message"] for r in captured_logs()]
        assert "expense_update_unchanged" in messages
        assert "expense_updated" not in messages

    def test_empty_update_is_noop(self, expense_service, dinner, members):
        result = expense_service.update_expense(dinner.id, members["bob"].id, ExpenseUpdate())

        assert result.id == dinner.id
        assert result.description == "dinner"
        assert expense_service.get_expense_history(dinner.id) == []

    def test_amount_change_must_match_existing_splits(self, expense_service, repo, dinner, members):
        with pytest.raises(SplitSumMismatchError):
            expense_service.update_expense(
                dinner.id, members["bob"].id, ExpenseUpdate(amount=Decimal("75")),
            )

        assert repo.get_expense(dinner.id).amount == Decimal("60")
        assert expense_service.get_expense_history(dinner.id) == []

    def test_amount_and_splits_together(self, expense_service, repo, dinner, members):
        expense_service.update_expense(
            dinner.id,
            members["alice"].id,
            ExpenseUpdate(amount=Decimal("75"), splits=_splits(members, alice="25", bob="50")),
        )

        assert repo.get_expense(dinner.id).amount == Decimal("75")
        assert {s.member_id: s.amount for s in repo.list_splits(dinner.id)} == {
            members["alice"].id: Decimal("25"),
            members["bob"].id: Decimal("50"),
        }
        changes = {c.field_name: c for c in expense_service.get_expense_history(dinner.id)}
        assert set(changes) == {ExpenseField.AMOUNT, ExpenseField.SPLITS}
        assert (changes[ExpenseField.AMOUNT].old_value, changes[ExpenseField.AMOUNT].new_value) == (
            "$60.00", "$75.00",
        )
        splits_change = changes[ExpenseField.SPLITS]
        assert sorted(splits_change.old_value.split(", ")) == [
            "alice: $20.00", "bob: $20.00", "carol: $20.00",
        ]
        assert sorted(splits_change.new_value.split(", ")) == ["alice: $25.00", "bob: $50.00"]

    def test_new_splits_checked_against_current_amount(self, expense_service, repo, dinner, members):
        with pytest.raises(SplitSumMismatchError):
            expense_service.update_expense(
                dinner.id, members["alice"].id,
                ExpenseUpdate(splits=_splits(members, alice="30", bob="20")),
            )

        assert len(repo.list_splits(dinner.id)) == 3

    def test_paid_by_logged_with_names(self, expense_service, dinner, members):
        expense_service.update_expense(
            dinner.id, members["alice"].id, ExpenseUpdate(paid_by=members["carol"].id),
        )

        (change,) = expense_service.get_expense_history(dinner.id)
        assert (change.old_value, change.new_value) == ("alice", "carol")
        assert expense_service.get_expense(dinner.id).paid_by == members["carol"].id

    def test_paid_by_must_be_member(self, expense_service, dinner, members):
        with pytest.raises(MemberNotFoundError):
            expense_service.update_expense(dinner.id, members["alice"].id, ExpenseUpdate(paid_by=uuid4()))

    def test_category_cleared(self, expense_service, dinner, members):
        updated = expense_service.update_expense(
            dinner.id, members["alice"].id, ExpenseUpdate(category=None),
        )

        assert updated.category is None
        (change,) = expense_service.get_expense_history(dinner.id)
        assert (change.field_name, change.old_value, change.new_value) == (
            ExpenseField.CATEGORY, "food", None,
        )

    def test_history_newest_first(self, expense_service, clock, dinner, members):
        expense_service.update_expense(dinner.id, members["alice"].id, ExpenseUpdate(description="a"))
        clock.advance(60)
        expense_service.update_expense(dinner.id, members["alice"].id, ExpenseUpdate(description="b"))

        history = expense_service.get_expense_history(dinner.id)

        assert [c.new_value for c in history] == ["b", "a"]

    def test_unknown_expense(self, expense_service, members):
        with pytest.raises(ExpenseNotFoundError):
            expense_service.update_expense(uuid4(), members["alice"].id, ExpenseUpdate(description="x"))

    def test_history_of_unknown_expense(self, expense_service):
        with pytest.raises(ExpenseNotFoundError):
            expense_service.get_expense_history(uuid4())

    def test_failed_write_rolls_back_whole_update(
        self, expense_service, repo, dinner, members, monkeypatch,
    ):
        """A storage failure on the second change row discards the row and split writes."""
        original = repo.append_change
        calls = []

        def flaky_append_change(change):
            calls.append(change.field_name)
            if len(calls) == 2:
                raise PersistenceError("append_change", "disk full")
            original(change)

        monkeypatch.setattr(repo, "append_change", flaky_append_change)

        with pytest.raises(PersistenceError):
            expense_service.update_expense(
                dinner.id,
                members["alice"].id,
                ExpenseUpdate(
                    description="brunch",
                    amount=Decimal("75"),
                    splits=_splits(members, alice="25", bob="50"),
                ),
            )

        assert len(calls) == 2
        stored = repo.get_expense(dinner.id)
        assert (stored.description, stored.amount) == ("dinner", Decimal("60"))
        assert {s.member_id: s.amount for s in repo.list_splits(dinner.id)} == {
            members["alice"].id: Decimal("20"),
            members["bob"].id: Decimal("20"),
            members["carol"].id: Decimal("20"),
        }
        assert expense_service.get_expense_history(dinner.id) == []
