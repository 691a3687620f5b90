"""ORM models for the split-bill ledger."""

from splitbill_kernel.models.expense import Expense, ExpenseSplit
from splitbill_kernel.models.expense_change import ExpenseChangeRow
from splitbill_kernel.models.member import Member
from splitbill_kernel.models.settlement import Settlement

__all__ = [
    "Expense",
    "ExpenseChangeRow",
    "ExpenseSplit",
    "Member",
    "Settlement",
]
