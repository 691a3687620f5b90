"""
Values -- Decimal money helpers shared by every reconciliation step.

Responsibility:
    Normalizes inputs to ``Decimal``, rounds to cents using
    round-half-away-from-zero, and answers the "is this amount effectively
    zero" question with a single tolerance epsilon.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by dtos, engines and services. No outward dependencies.

Invariants enforced:
    - All monetary arithmetic uses ``Decimal`` (never float).
    - Rounding happens at aggregation boundaries only, always to
      ``MONEY_QUANTUM`` with ``ROUND_HALF_UP`` (which rounds ties away
      from zero for both signs).
    - Magnitudes at or below ``MONEY_TOLERANCE`` count as zero for
      filtering and cancellation decisions.

Failure modes:
    - ValueError from ``to_decimal`` on non-numeric, NaN or infinite input.
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_PLACES = 2
MONEY_QUANTUM = Decimal("0.01")
MONEY_TOLERANCE = Decimal("0.01")
# Largest accepted amount.  Group totals stay inside the default 28-digit
# context, and values read back from a double-backed Numeric column still
# round to the right cent.
MAX_AMOUNT = Decimal("9999999999999.99")
ZERO = Decimal("0")


def to_decimal(value: Decimal | int | float | str) -> Decimal:
    """
    Coerce a monetary input to Decimal.

    Floats go through ``str`` so that ``0.1`` becomes ``Decimal("0.1")``
    and not its binary expansion.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError) as e:
            raise ValueError(f"Invalid amount: {value!r}") from e
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def round_money(value: Decimal) -> Decimal:
    """Round to cents, ties away from zero."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def is_negligible(value: Decimal, tolerance: Decimal = MONEY_TOLERANCE) -> bool:
    """True if ``|value| <= tolerance``."""
    return abs(value) <= tolerance


def money_sum(values: Iterable[Decimal]) -> Decimal:
    """Exact Decimal sum (no intermediate rounding)."""
    return sum(values, ZERO)


def format_money(value: Decimal, symbol: str = "") -> str:
    """Human-readable amount used in audit descriptions, e.g. ``$12.50``."""
    return f"{symbol}{round_money(value)}"
