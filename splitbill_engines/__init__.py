"""
Module: splitbill_engines
Responsibility:
    Package entrypoint re-exporting the pure reconciliation engines.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import splitbill_kernel.domain, splitbill_kernel.logging_config
    and sibling engine modules.  MUST NOT import services or the database
    layer.

Invariants enforced:
    - Purity: engines never read the clock; timestamps are parameters.
    - Decimal-only arithmetic.
    - Determinism: identical snapshots give identical outputs.

Two independent pipelines live here:

    net view:        BalanceCalculator -> DebtSimplifier
    attributed view: ExpenseDebtTracker -> DebtConsolidator

Their outputs may disagree and are never reconciled against each other.
"""

from splitbill_engines.activity import ActivityFeedBuilder, build_activity_feed
from splitbill_engines.balances import BalanceCalculator
from splitbill_engines.change_audit import ChangeAuditor, ExpenseDiff, diff_expense
from splitbill_engines.consolidation import DebtConsolidator
from splitbill_engines.expense_debts import (
    ExpenseDebtTracker,
    is_expense_fully_paid,
    paid_by_attribution,
)
from splitbill_engines.simplification import DebtSimplifier
from splitbill_engines.tracer import traced_engine

__all__ = [
    "ActivityFeedBuilder",
    "BalanceCalculator",
    "ChangeAuditor",
    "DebtConsolidator",
    "DebtSimplifier",
    "ExpenseDebtTracker",
    "ExpenseDiff",
    "build_activity_feed",
    "diff_expense",
    "is_expense_fully_paid",
    "paid_by_attribution",
    "traced_engine",
]
