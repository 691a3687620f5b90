"""Pure domain layer: values, DTOs, clock and the repository contract."""

from splitbill_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from splitbill_kernel.domain.dtos import (
    UNSET,
    ActivityEntry,
    ActivityKind,
    AttributionKey,
    Balance,
    ChangeKind,
    Debt,
    DebtWithDetails,
    DirectedPair,
    ExpenseChange,
    ExpenseDebt,
    ExpenseField,
    ExpenseRecord,
    ExpenseSettlementSpec,
    ExpenseSummary,
    ExpenseUpdate,
    FieldChange,
    LedgerSnapshot,
    MemberRecord,
    PaymentEvent,
    SettlementRecord,
    SplitRecord,
    SplitSpec,
)
from splitbill_kernel.domain.memory_repository import InMemoryLedgerRepository
from splitbill_kernel.domain.repository import LedgerRepository

__all__ = [
    "UNSET",
    "ActivityEntry",
    "ActivityKind",
    "AttributionKey",
    "Balance",
    "ChangeKind",
    "Clock",
    "Debt",
    "DebtWithDetails",
    "DeterministicClock",
    "DirectedPair",
    "ExpenseChange",
    "ExpenseDebt",
    "ExpenseField",
    "ExpenseRecord",
    "ExpenseSettlementSpec",
    "ExpenseSummary",
    "ExpenseUpdate",
    "FieldChange",
    "InMemoryLedgerRepository",
    "LedgerRepository",
    "LedgerSnapshot",
    "MemberRecord",
    "PaymentEvent",
    "SettlementRecord",
    "SplitRecord",
    "SplitSpec",
    "SystemClock",
]
