"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that flow through the reconciliation
    core: input records read from storage (MemberRecord, ExpenseRecord,
    SplitRecord, SettlementRecord), the LedgerSnapshot handed to engines,
    write requests (SplitSpec, ExpenseUpdate, ExpenseSettlementSpec), the
    tagged audit variant (FieldChange | PaymentEvent), and derived outputs
    (Balance, Debt, ExpenseDebt, DebtWithDetails, ExpenseSummary,
    ActivityEntry).

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods are boundary converters used only by the
    SQL repository.

Invariants enforced:
    - Every monetary field is a Decimal; constructors coerce via to_decimal.
    - Grouping keys are structured tuples (DirectedPair, AttributionKey),
      never concatenated strings.

Failure modes:
    - InvalidAmountError when a monetary field cannot be coerced to Decimal.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, NamedTuple, Union
from uuid import UUID, uuid4

from splitbill_kernel.domain.values import to_decimal
from splitbill_kernel.exceptions import InvalidAmountError

if TYPE_CHECKING:
    from splitbill_kernel.models.expense import Expense as ExpenseModel
    from splitbill_kernel.models.expense import ExpenseSplit as ExpenseSplitModel
    from splitbill_kernel.models.member import Member as MemberModel
    from splitbill_kernel.models.settlement import Settlement as SettlementModel


def _coerce_amount(instance: object, name: str) -> None:
    raw = getattr(instance, name)
    try:
        value = to_decimal(raw)
    except ValueError as e:
        raise InvalidAmountError(str(raw), "not a number") from e
    object.__setattr__(instance, name, value)


# =============================================================================
# Structured keys
# =============================================================================


class DirectedPair(NamedTuple):
    """Ordered (debtor, creditor) pair."""

    from_member: UUID
    to_member: UUID

    def reversed(self) -> DirectedPair:
        return DirectedPair(self.to_member, self.from_member)

    def canonical(self) -> tuple[UUID, UUID]:
        """Direction-independent key; identical for (a, b) and (b, a)."""
        if self.from_member <= self.to_member:
            return (self.from_member, self.to_member)
        return (self.to_member, self.from_member)


class AttributionKey(NamedTuple):
    """A payment attributed to one (debtor, creditor, expense) triple."""

    from_member: UUID
    to_member: UUID
    expense_id: UUID


# =============================================================================
# Input records
# =============================================================================


@dataclass(frozen=True)
class MemberRecord:
    """Group member as seen by the ledger. Read-only to this core."""

    id: UUID
    group_id: UUID
    name: str

    @classmethod
    def from_model(cls, model: MemberModel) -> MemberRecord:
        return cls(id=model.id, group_id=model.group_id, name=model.name)


@dataclass(frozen=True)
class ExpenseRecord:
    """A shared expense paid by one member."""

    id: UUID
    group_id: UUID
    description: str
    amount: Decimal
    paid_by: UUID
    expense_date: date
    created_at: datetime
    category: str | None = None

    def __post_init__(self) -> None:
        _coerce_amount(self, "amount")

    @classmethod
    def from_model(cls, model: ExpenseModel) -> ExpenseRecord:
        return cls(
            id=model.id,
            group_id=model.group_id,
            description=model.description,
            amount=model.amount,
            paid_by=model.paid_by,
            expense_date=model.expense_date,
            created_at=model.created_at,
            category=model.category,
        )


@dataclass(frozen=True)
class SplitRecord:
    """The share of one expense owed by one member."""

    expense_id: UUID
    member_id: UUID
    amount: Decimal

    def __post_init__(self) -> None:
        _coerce_amount(self, "amount")

    @classmethod
    def from_model(cls, model: ExpenseSplitModel) -> SplitRecord:
        return cls(
            expense_id=model.expense_id,
            member_id=model.member_id,
            amount=model.amount,
        )


@dataclass(frozen=True)
class SettlementRecord:
    """
    An immutable payment from one member to another.

    A settlement with ``linked_expense_id`` pays down one
    (from, to, expense) attribution; without it, it is a free-form payment
    that only affects net balances.
    """

    id: UUID
    group_id: UUID
    from_member: UUID
    to_member: UUID
    amount: Decimal
    settled_at: datetime
    note: str | None = None
    linked_expense_id: UUID | None = None

    def __post_init__(self) -> None:
        _coerce_amount(self, "amount")

    @property
    def attribution(self) -> AttributionKey | None:
        if self.linked_expense_id is None:
            return None
        return AttributionKey(self.from_member, self.to_member, self.linked_expense_id)

    @classmethod
    def from_model(cls, model: SettlementModel) -> SettlementRecord:
        return cls(
            id=model.id,
            group_id=model.group_id,
            from_member=model.from_member,
            to_member=model.to_member,
            amount=model.amount,
            settled_at=model.settled_at,
            note=model.note,
            linked_expense_id=model.linked_expense_id,
        )


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    A mutually consistent read of one group's ledger.

    Engines only ever see snapshots; the caller is responsible for loading
    all four collections inside one read transaction.
    """

    group_id: UUID
    members: tuple[MemberRecord, ...] = ()
    expenses: tuple[ExpenseRecord, ...] = ()
    splits: tuple[SplitRecord, ...] = ()
    settlements: tuple[SettlementRecord, ...] = ()

    def member_names(self) -> dict[UUID, str]:
        return {m.id: m.name for m in self.members}

    def splits_by_expense(self) -> dict[UUID, list[SplitRecord]]:
        index: dict[UUID, list[SplitRecord]] = {e.id: [] for e in self.expenses}
        for split in self.splits:
            index.setdefault(split.expense_id, []).append(split)
        return index

    def expenses_newest_first(self) -> list[ExpenseRecord]:
        return sorted(
            self.expenses,
            key=lambda e: (e.expense_date, e.created_at),
            reverse=True,
        )


# =============================================================================
# Write requests
# =============================================================================


@dataclass(frozen=True)
class SplitSpec:
    """Requested share of an expense for one member."""

    member_id: UUID
    amount: Decimal

    def __post_init__(self) -> None:
        _coerce_amount(self, "amount")


@dataclass(frozen=True)
class ExpenseSettlementSpec:
    """One (expense, amount) entry of a whole-debt settlement."""

    expense_id: UUID
    amount: Decimal

    def __post_init__(self) -> None:
        _coerce_amount(self, "amount")


class _Unset:
    """Marker for "field not supplied" where None is a legal value."""

    _instance: ClassVar[_Unset | None] = None

    def __new__(cls) -> _Unset:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET = _Unset()


@dataclass(frozen=True)
class ExpenseUpdate:
    """
    Partial overwrite of an expense.

    ``None`` means "leave unchanged" for every field except ``category``,
    where ``None`` clears the category and ``UNSET`` leaves it alone.
    ``splits`` replaces the whole split set when given.
    """

    description: str | None = None
    amount: Decimal | None = None
    paid_by: UUID | None = None
    expense_date: date | None = None
    category: str | None | _Unset = UNSET
    splits: tuple[SplitSpec, ...] | None = None

    def __post_init__(self) -> None:
        if self.amount is not None:
            _coerce_amount(self, "amount")
        if self.splits is not None:
            object.__setattr__(self, "splits", tuple(self.splits))

    @property
    def is_empty(self) -> bool:
        return (
            self.description is None
            and self.amount is None
            and self.paid_by is None
            and self.expense_date is None
            and self.category is UNSET
            and self.splits is None
        )


# =============================================================================
# Audit log (tagged variant)
# =============================================================================


class ExpenseField(str, Enum):
    """Expense attributes tracked by the change log."""

    DESCRIPTION = "description"
    AMOUNT = "amount"
    PAID_BY = "paid_by"
    DATE = "date"
    CATEGORY = "category"
    SPLITS = "splits"


class ChangeKind(str, Enum):
    """Discriminator for rows of the expense change log."""

    FIELD = "field"
    PAYMENT = "payment"


@dataclass(frozen=True)
class FieldChange:
    """A real mutation of one expense attribute."""

    kind: ClassVar[ChangeKind] = ChangeKind.FIELD

    expense_id: UUID
    changed_by: UUID
    changed_at: datetime
    field_name: ExpenseField
    old_value: str | None
    new_value: str | None
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class PaymentEvent:
    """A settlement recorded against an expense, shown inline in its history."""

    kind: ClassVar[ChangeKind] = ChangeKind.PAYMENT

    expense_id: UUID
    changed_by: UUID
    changed_at: datetime
    settlement_id: UUID
    description: str
    id: UUID = field(default_factory=uuid4)


ExpenseChange = Union[FieldChange, PaymentEvent]


# =============================================================================
# Derived outputs
# =============================================================================


@dataclass(frozen=True)
class Balance:
    """Net position of a member. Positive = is owed money."""

    member_id: UUID
    name: str
    amount: Decimal


@dataclass(frozen=True)
class Debt:
    """Suggested transfer from a debtor to a creditor."""

    from_member: UUID
    to_member: UUID
    amount: Decimal
    from_name: str = ""
    to_name: str = ""


@dataclass(frozen=True)
class ExpenseDebt:
    """What one member still owes another for a single expense."""

    expense_id: UUID
    description: str
    expense_date: date
    category: str | None
    from_member: UUID
    to_member: UUID
    amount: Decimal
    total_expense_amount: Decimal
    from_name: str = ""
    to_name: str = ""

    @property
    def pair(self) -> DirectedPair:
        return DirectedPair(self.from_member, self.to_member)


@dataclass(frozen=True)
class DebtWithDetails:
    """Debt between two members together with the expenses behind it."""

    from_member: UUID
    to_member: UUID
    amount: Decimal
    expenses: tuple[ExpenseDebt, ...] = ()
    from_name: str = ""
    to_name: str = ""

    @property
    def pair(self) -> DirectedPair:
        return DirectedPair(self.from_member, self.to_member)


@dataclass(frozen=True)
class ExpenseSummary:
    """Expense listing row with the derived fully-paid flag."""

    expense: ExpenseRecord
    paid_by_name: str
    is_fully_paid: bool


class ActivityKind(str, Enum):
    EXPENSE = "expense"
    SETTLEMENT = "settlement"


@dataclass(frozen=True)
class ActivityEntry:
    """One row of the group activity feed (expense or settlement)."""

    kind: ActivityKind
    record_id: UUID
    description: str
    amount: Decimal
    occurred_on: date
    recorded_at: datetime
    paid_by: UUID | None = None
    paid_by_name: str | None = None
    from_member: UUID | None = None
    from_name: str | None = None
    to_member: UUID | None = None
    to_name: str | None = None
    category: str | None = None
