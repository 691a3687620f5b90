"""
splitbill_engines.consolidation -- Net opposing attributed debts.

Responsibility:
    When A owes B for some expenses and B owes A for others, collapse the
    two directions into one net amount while keeping every contributing
    expense in the attribution list.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    Consumes the output of splitbill_engines.expense_debts.

Invariants enforced:
    - Each unordered pair is processed once (DirectedPair.canonical()).
    - |net| <= tolerance emits nothing.
    - Merged expense lists are ordered by expense date, newest first.
    - Every emitted amount is rounded to cents and > tolerance.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from decimal import Decimal
from uuid import UUID

from splitbill_engines.tracer import traced_engine
from splitbill_kernel.domain.dtos import DebtWithDetails, DirectedPair
from splitbill_kernel.domain.values import MONEY_TOLERANCE, round_money
from splitbill_kernel.logging_config import get_logger

logger = get_logger("engines.consolidation")


class DebtConsolidator:
    """Bidirectional netting of per-pair attributed debts."""

    def __init__(self, tolerance: Decimal = MONEY_TOLERANCE) -> None:
        self.tolerance = tolerance

    @traced_engine("consolidation", "1.0", fingerprint_fields=("debts",))
    def consolidate(
        self,
        debts: Sequence[DebtWithDetails],
    ) -> tuple[DebtWithDetails, ...]:
        """
        Net each pair of opposite debts into one directional debt.

        Args:
            debts: Per-direction debts, at most one per DirectedPair.

        Returns:
            Consolidated debts in first-seen pair order.
        """
        by_pair = {d.pair: d for d in debts}
        processed: set[tuple[UUID, UUID]] = set()
        result: list[DebtWithDetails] = []
        netted_pairs = 0

        for debt in debts:
            canonical = debt.pair.canonical()
            if canonical in processed:
                continue
            processed.add(canonical)

            reverse = by_pair.get(debt.pair.reversed())
            if reverse is None:
                consolidated = replace(debt, amount=round_money(debt.amount))
            else:
                netted_pairs += 1
                consolidated = self._net(debt, reverse)

            if consolidated is not None and consolidated.amount > self.tolerance:
                result.append(consolidated)

        logger.info("debts_consolidated", extra={
            "input_count": len(debts),
            "netted_pair_count": netted_pairs,
            "output_count": len(result),
        })
        return tuple(result)

    def _net(
        self,
        forward: DebtWithDetails,
        backward: DebtWithDetails,
    ) -> DebtWithDetails | None:
        net = forward.amount - backward.amount
        if abs(net) <= self.tolerance:
            return None

        merged = tuple(sorted(
            forward.expenses + backward.expenses,
            key=lambda e: e.expense_date,
            reverse=True,
        ))
        winner = forward if net > 0 else backward
        return DebtWithDetails(
            from_member=winner.from_member,
            to_member=winner.to_member,
            amount=round_money(abs(net)),
            expenses=merged,
            from_name=winner.from_name,
            to_name=winner.to_name,
        )

