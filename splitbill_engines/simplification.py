"""
splitbill_engines.simplification -- Minimal set of suggested transfers.

Responsibility:
    Turn net balances into a short list of (debtor -> creditor) transfers
    that, if all paid, bring every member to zero.  This is the net view;
    it does not know which expenses caused the balances.

Architecture position:
    Engines -- pure calculation layer, zero I/O.

Invariants enforced:
    - Every transfer amount is > tolerance.
    - At most (#creditors + #debtors - 1) transfers.
    - Replaying the transfers against the input balances leaves every
      member within tolerance of zero.
    - Deterministic: ties in sort order keep input order.

Failure modes:
    - None.  Unbalanced input simply leaves a residue on the longer side.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import Balance, Debt
from splitbill_kernel.domain.values import MONEY_TOLERANCE, round_money
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.simplification")


class DebtSimplifier:
    """
    Greedy two-cursor debt simplification.

    Contract:
        Creditors are matched largest first against debtors largest first.
        Each step settles min(creditor, |debtor|) and advances whichever
        side has reached zero.
    Non-goals:
        - Does not promise a globally unique or optimal solution, only a
          valid one within the transfer bound.
    """

    def __init__(self, tolerance: Decimal = MONEY_TOLERANCE) -> None:
        self.tolerance = tolerance

    @traced_engine("simplification", "1.0", fingerprint_fields=("balances",))
    def simplify(self, balances: Sequence[Balance]) -> tuple[Debt, ...]:
        """
        Suggest transfers that settle every balance.

        Args:
            balances: Signed net balances (positive = creditor).

        Returns:
            Ordered tuple of Debt.
        """
        creditors = sorted(
            (b for b in balances if b.amount > self.tolerance),
            key=lambda b: b.amount,
            reverse=True,
        )
        debtors = sorted(
            (b for b in balances if b.amount < -self.tolerance),
            key=lambda b: b.amount,
        )

        owed = [c.amount for c in creditors]
        owing = [d.amount for d in debtors]
        transfers: list[Debt] = []

        i = j = 0
        while i < len(creditors) and j < len(debtors):
            amount = min(owed[i], -owing[j])

            if amount > self.tolerance:
                transfers.append(Debt(
                    from_member=debtors[j].member_id,
                    to_member=creditors[i].member_id,
                    amount=round_money(amount),
                    from_name=debtors[j].name,
                    to_name=creditors[i].name,
                ))

            owed[i] -= amount
            owing[j] += amount

            if owed[i] < self.tolerance:
                i += 1
            if owing[j] > -self.tolerance:
                j += 1

        logger.info("debts_simplified", extra={
            "creditor_count": len(creditors),
            "debtor_count": len(debtors),
            "transfer_count": len(transfers),
        })
        return tuple(transfers)
