"""
Split-bill ledger kernel.

Reconciliation core for shared group expenses:
- Append-only settlements and expense history
- Net balances and simplified transfers
- Per-expense attributed debts that survive partial payments
- Atomic multi-step writes
"""

__version__ = "0.1.0"
