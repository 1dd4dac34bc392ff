"""Domain models package."""

from .documents import BillingDocument, DocumentType, Order, TaxRateSummary
from .money import CURRENCY_CODE, Money, validate_rate
from .pricing import (
    Coupon,
    DiscountType,
    LineItem,
    PricedLine,
    PricingBreakdown,
    RoundingConvention,
    ShippingRule,
    TaxSplit,
    TaxTotals,
)
from .wallet import (
    LedgerAudit,
    LedgerResult,
    LedgerTransaction,
    PairingRole,
    PaymentMethod,
    TransactionCategory,
    TransactionDetails,
    TransactionFilter,
    TransactionPairing,
    TransactionStatus,
    TransactionSummary,
    TransactionType,
    WalletAccount,
)

__all__ = [
    "CURRENCY_CODE",
    "Money",
    "validate_rate",
    "LineItem",
    "TaxSplit",
    "PricedLine",
    "TaxTotals",
    "DiscountType",
    "Coupon",
    "ShippingRule",
    "RoundingConvention",
    "PricingBreakdown",
    "TransactionType",
    "TransactionStatus",
    "TransactionCategory",
    "PaymentMethod",
    "PairingRole",
    "TransactionPairing",
    "WalletAccount",
    "TransactionDetails",
    "LedgerTransaction",
    "LedgerResult",
    "TransactionFilter",
    "TransactionSummary",
    "LedgerAudit",
    "DocumentType",
    "Order",
    "BillingDocument",
    "TaxRateSummary",
]
