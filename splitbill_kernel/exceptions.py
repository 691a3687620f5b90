"""
Typed Exception Hierarchy for the Split-Bill Ledger Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the ledger (HTTP handlers, CLIs, background jobs) must be able to
tell a rejected input from a missing record from a storage outage without
parsing message strings.  Every error therefore has:

  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        expenses.add_expense(...)
    except SplitSumMismatchError as e:
        api_response(code=e.code, expected=e.expected, actual=e.actual)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SplitBillError (base)
    |
    +-- LedgerValidationError
    |   +-- SplitSumMismatchError
    |   +-- InvalidAmountError
    |   +-- InvalidSplitError
    |   +-- SelfSettlementError
    |
    +-- NotFoundError
    |   +-- ExpenseNotFoundError
    |   +-- MemberNotFoundError
    |   +-- SettlementNotFoundError
    |
    +-- PersistenceError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                  | When Raised
--------------|-----------------------|---------------------------------------------
Validation    | SPLIT_SUM_MISMATCH    | Splits do not add up to the expense amount
              | INVALID_AMOUNT        | Amount is zero, negative, or not a number
              | INVALID_SPLIT         | Empty split set, duplicate or negative share
              | SELF_SETTLEMENT       | Settlement payer and payee are the same
--------------|-----------------------|---------------------------------------------
Not found     | EXPENSE_NOT_FOUND     | Expense ID does not exist in the group
              | MEMBER_NOT_FOUND      | Member ID does not belong to the group
              | SETTLEMENT_NOT_FOUND  | Settlement ID does not exist
--------------|-----------------------|---------------------------------------------
Persistence   | PERSISTENCE_ERROR     | The storage collaborator failed
--------------|-----------------------|---------------------------------------------
Immutability  | IMMUTABILITY_VIOLATION| UPDATE/DELETE on a settlement or audit row

===============================================================================
PROPAGATION
===============================================================================

Validation errors are raised before the repository is touched, so nothing
is written.  Persistence errors carry the original driver exception as
``__cause__`` and are never retried by the kernel; retry is the caller's
decision.
"""


class SplitBillError(Exception):
    """
    Base exception for all ledger kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SPLIT_BILL_ERROR"


# Validation exceptions


class LedgerValidationError(SplitBillError):
    """Base exception for rejected writes. Raised before any mutation."""

    code: str = "VALIDATION_ERROR"


class SplitSumMismatchError(LedgerValidationError):
    """Split shares do not add up to the expense amount within tolerance."""

    code: str = "SPLIT_SUM_MISMATCH"

    def __init__(self, expected: str, actual: str, tolerance: str):
        self.expected = expected
        self.actual = actual
        self.tolerance = tolerance
        super().__init__(
            f"Splits sum to {actual} but expense amount is {expected} "
            f"(tolerance {tolerance})"
        )


class InvalidAmountError(LedgerValidationError):
    """Monetary amount is not a positive decimal."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: str, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount {amount}: {reason}")


class InvalidSplitError(LedgerValidationError):
    """Split set is structurally invalid."""

    code: str = "INVALID_SPLIT"

    def __init__(self, reason: str, member_id: str | None = None):
        self.reason = reason
        self.member_id = member_id
        if member_id is not None:
            super().__init__(f"Invalid split for member {member_id}: {reason}")
        else:
            super().__init__(f"Invalid split: {reason}")


class SelfSettlementError(LedgerValidationError):
    """A member cannot settle a debt with themself."""

    code: str = "SELF_SETTLEMENT"

    def __init__(self, member_id: str):
        self.member_id = member_id
        super().__init__(f"Settlement payer and payee are both {member_id}")


# Lookup exceptions


class NotFoundError(SplitBillError):
    """Base exception for references to records that do not exist."""

    code: str = "NOT_FOUND"


class ExpenseNotFoundError(NotFoundError):
    """Expense with given ID was not found."""

    code: str = "EXPENSE_NOT_FOUND"

    def __init__(self, expense_id: str):
        self.expense_id = expense_id
        super().__init__(f"Expense not found: {expense_id}")


class MemberNotFoundError(NotFoundError):
    """Member with given ID was not found in the group."""

    code: str = "MEMBER_NOT_FOUND"

    def __init__(self, member_id: str, group_id: str | None = None):
        self.member_id = member_id
        self.group_id = group_id
        if group_id is not None:
            super().__init__(f"Member {member_id} not found in group {group_id}")
        else:
            super().__init__(f"Member not found: {member_id}")


class SettlementNotFoundError(NotFoundError):
    """Settlement with given ID was not found."""

    code: str = "SETTLEMENT_NOT_FOUND"

    def __init__(self, settlement_id: str):
        self.settlement_id = settlement_id
        super().__init__(f"Settlement not found: {settlement_id}")


# Persistence exceptions


class PersistenceError(SplitBillError):
    """
    The storage collaborator failed.

    The driver exception is preserved as ``__cause__``; the kernel does
    not retry.
    """

    code: str = "PERSISTENCE_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Persistence failure during {operation}: {detail}")


# Immutability exceptions


class ImmutabilityError(SplitBillError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Settlements and expense change rows are immutable from creation.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
