"""Read-only query selectors."""

from splitbill_kernel.selectors.base import BaseSelector
from splitbill_kernel.selectors.ledger_selector import LedgerSelector

__all__ = ["BaseSelector", "LedgerSelector"]
