"""Domain package for pricing, GST, wallet ledger, and numbering rules."""

from .constants import (
    DEFAULT_LEDGER_MAX_RETRIES,
    DEFAULT_SELLER_STATE,
    DEFAULT_SEQUENCE_MAX_RETRIES,
    DEFAULT_SHIPPING_FLAT_FEE,
    DEFAULT_SHIPPING_FREE_THRESHOLD,
)
from .models import (
    BillingDocument,
    Coupon,
    DocumentType,
    LineItem,
    Money,
    Order,
    PricingBreakdown,
    WalletAccount,
)
from .policies import check_coupon, compute_coupon_discount
from .services import (
    aggregate,
    compute_line,
    price_order,
    replay_ledger,
    summarize_tax,
)

__all__ = [
    "DEFAULT_LEDGER_MAX_RETRIES",
    "DEFAULT_SELLER_STATE",
    "DEFAULT_SEQUENCE_MAX_RETRIES",
    "DEFAULT_SHIPPING_FLAT_FEE",
    "DEFAULT_SHIPPING_FREE_THRESHOLD",
    "BillingDocument",
    "Coupon",
    "DocumentType",
    "LineItem",
    "Money",
    "Order",
    "PricingBreakdown",
    "WalletAccount",
    "check_coupon",
    "compute_coupon_discount",
    "aggregate",
    "compute_line",
    "price_order",
    "replay_ledger",
    "summarize_tax",
]
