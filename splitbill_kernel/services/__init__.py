"""Ledger services: the write paths and the reconciliation read path."""

from splitbill_kernel.services.base import BaseService
from splitbill_kernel.services.expense_service import ExpenseService
from splitbill_kernel.services.reconciliation_service import ReconciliationService
from splitbill_kernel.services.settlement_recorder import (
    EXPENSE_PAYMENT_NOTE,
    SettlementRecorder,
)

__all__ = [
    "BaseService",
    "EXPENSE_PAYMENT_NOTE",
    "ExpenseService",
    "ReconciliationService",
    "SettlementRecorder",
]
