"""
SettlementRecorder -- append-only recording of payments between members.

Responsibility:
    Records free-form settlements, single-expense settlements and
    whole-debt settlements (one linked settlement per expense), and
    mirrors every linked settlement into that expense's history as a
    payment event.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Settlements are immutable once written; there is no edit or delete.
    - A whole-debt settlement is N independent per-expense settlements,
      never one net transfer, so each expense's attribution is paid down.
    - All validation happens before the first write; the writes of one
      call share a ``repository.transaction()``.

Failure modes:
    - InvalidAmountError: amount not a positive number, or above MAX_AMOUNT.
    - SelfSettlementError: from_member == to_member.
    - MemberNotFoundError: either member not in the group.
    - ExpenseNotFoundError: linked expense unknown or in another group.
    - SettlementNotFoundError: get_settlement on an unknown id.

Audit relevance:
    The payment event reads "X paid <amount> to Y" and is attributed to
    the acting member (the payer unless told otherwise).
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from uuid import UUID, uuid4

from splitbill_engines.change_audit import ChangeAuditor
from splitbill_kernel.domain.clock import Clock
from splitbill_kernel.domain.dtos import (
    ExpenseSettlementSpec,
    MemberRecord,
    PaymentEvent,
    SettlementRecord,
)
from splitbill_kernel.domain.repository import LedgerRepository
from splitbill_kernel.domain.values import MAX_AMOUNT, to_decimal
from splitbill_kernel.exceptions import (
    InvalidAmountError,
    SelfSettlementError,
    SettlementNotFoundError,
)
from splitbill_kernel.logging_config import LogContext, get_logger
from splitbill_kernel.services.base import BaseService

logger = get_logger("services.settlement")

EXPENSE_PAYMENT_NOTE = "Payment for expense: {description}"


class SettlementRecorder(BaseService):
    """Writes settlements and their payment events."""

    def __init__(
        self,
        repository: LedgerRepository,
        clock: Clock | None = None,
        currency_symbol: str = "",
    ):
        super().__init__(repository, clock)
        self._auditor = ChangeAuditor(currency_symbol)

    def _validate(
        self,
        group_id: UUID,
        from_member: UUID,
        to_member: UUID,
        amount,
        linked_expense_id: UUID | None,
    ) -> tuple[Decimal, MemberRecord, MemberRecord]:
        try:
            value = to_decimal(amount)
        except ValueError as e:
            raise InvalidAmountError(str(amount), "not a number") from e
        if value <= 0:
            raise InvalidAmountError(str(value), "must be greater than zero")
        if value > MAX_AMOUNT:
            raise InvalidAmountError(str(value), f"must not exceed {MAX_AMOUNT}")
        if from_member == to_member:
            raise SelfSettlementError(str(from_member))

        payer = self._require_member(from_member, group_id)
        payee = self._require_member(to_member, group_id)
        if linked_expense_id is not None:
            self._require_expense(linked_expense_id, group_id)
        return value, payer, payee

    def _write(
        self,
        group_id: UUID,
        payer: MemberRecord,
        payee: MemberRecord,
        amount: Decimal,
        note: str | None,
        linked_expense_id: UUID | None,
        actor_id: UUID | None,
    ) -> SettlementRecord:
        settlement = SettlementRecord(
            id=uuid4(),
            group_id=group_id,
            from_member=payer.id,
            to_member=payee.id,
            amount=amount,
            settled_at=self.clock.now(),
            note=note,
            linked_expense_id=linked_expense_id,
        )
        self.repository.add_settlement(settlement)

        if linked_expense_id is not None:
            self.repository.append_change(PaymentEvent(
                expense_id=linked_expense_id,
                changed_by=actor_id or payer.id,
                changed_at=settlement.settled_at,
                settlement_id=settlement.id,
                description=self._auditor.describe_payment(payer.name, payee.name, amount),
            ))

        logger.info("settlement_recorded", extra={
            "settlement_id": str(settlement.id),
            "from_member": str(payer.id),
            "to_member": str(payee.id),
            "amount": str(amount),
            "linked_expense_id": str(linked_expense_id) if linked_expense_id else None,
        })
        return settlement

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def record_settlement(
        self,
        group_id: UUID,
        from_member: UUID,
        to_member: UUID,
        amount: Decimal | int | str,
        note: str | None = None,
        linked_expense_id: UUID | None = None,
        actor_id: UUID | None = None,
    ) -> SettlementRecord:
        """
        Record one payment from ``from_member`` to ``to_member``.

        When ``linked_expense_id`` is set the payment is attributed to that
        expense and a payment event is appended to its history.
        """
        with LogContext.bind(group_id=group_id, actor_id=actor_id or from_member):
            value, payer, payee = self._validate(
                group_id, from_member, to_member, amount, linked_expense_id,
            )
            with self.repository.transaction():
                return self._write(
                    group_id, payer, payee, value, note, linked_expense_id, actor_id,
                )

    def record_expense_settlement(
        self,
        group_id: UUID,
        expense_id: UUID,
        from_member: UUID,
        to_member: UUID,
        amount: Decimal | int | str,
        actor_id: UUID | None = None,
    ) -> SettlementRecord:
        """Pay down one expense; the note names the expense."""
        expense = self._require_expense(expense_id, group_id)
        return self.record_settlement(
            group_id,
            from_member,
            to_member,
            amount,
            note=EXPENSE_PAYMENT_NOTE.format(description=expense.description),
            linked_expense_id=expense_id,
            actor_id=actor_id,
        )

    def record_debt_settlement(
        self,
        group_id: UUID,
        from_member: UUID,
        to_member: UUID,
        expenses: Sequence[ExpenseSettlementSpec],
        actor_id: UUID | None = None,
    ) -> tuple[SettlementRecord, ...]:
        """
        Settle a whole attributed debt, one linked settlement per expense.

        Every entry is validated before anything is written.  If a write
        fails part-way, none of the settlements are kept.
        """
        with LogContext.bind(group_id=group_id, actor_id=actor_id or from_member):
            prepared = []
            for entry in expenses:
                expense = self._require_expense(entry.expense_id, group_id)
                value, payer, payee = self._validate(
                    group_id, from_member, to_member, entry.amount, expense.id,
                )
                prepared.append((expense, value, payer, payee))

            with self.repository.transaction():
                recorded = tuple(
                    self._write(
                        group_id,
                        payer,
                        payee,
                        value,
                        EXPENSE_PAYMENT_NOTE.format(description=expense.description),
                        expense.id,
                        actor_id,
                    )
                    for expense, value, payer, payee in prepared
                )

            logger.info("debt_settled", extra={
                "from_member": str(from_member),
                "to_member": str(to_member),
                "settlement_count": len(recorded),
            })
            return recorded

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_settlement(self, settlement_id: UUID) -> SettlementRecord:
        settlement = self.repository.get_settlement(settlement_id)
        if settlement is None:
            raise SettlementNotFoundError(str(settlement_id))
        return settlement

    def list_settlements(self, group_id: UUID) -> list[SettlementRecord]:
        return self.repository.list_settlements(group_id)
