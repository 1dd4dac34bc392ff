"""Domain constants for pricing, ledger, and numbering defaults."""

from decimal import Decimal

DEFAULT_SELLER_STATE = "KA"

# Rupees; waived at or above the threshold.
DEFAULT_SHIPPING_FREE_THRESHOLD = Decimal("1999.00")
DEFAULT_SHIPPING_FLAT_FEE = Decimal("99.00")

DEFAULT_LEDGER_MAX_RETRIES = 5
DEFAULT_SEQUENCE_MAX_RETRIES = 5


__all__ = [
    "DEFAULT_SELLER_STATE",
    "DEFAULT_SHIPPING_FREE_THRESHOLD",
    "DEFAULT_SHIPPING_FLAT_FEE",
    "DEFAULT_LEDGER_MAX_RETRIES",
    "DEFAULT_SEQUENCE_MAX_RETRIES",
]
