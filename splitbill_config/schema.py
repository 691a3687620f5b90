"""
Settings schema (``splitbill_config.schema``).

Frozen dataclasses describing the runtime settings.  Instances are built
by ``splitbill_config.loader`` and handed out by
``splitbill_config.get_settings()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal


@dataclass(frozen=True)
class LedgerSettings:
    """
    Runtime settings for the reconciliation core.

    Guarantees:
        - tolerance is a non-negative Decimal.
    """

    tolerance: Decimal
    currency_symbol: str
    database_url: str
    database_echo: bool
    log_level: str

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError(f"tolerance must be >= 0, got {self.tolerance}")
