"""Domain models for numbered documents, orders, and tax reports."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum

from billing_core.domain.models.money import Money
from billing_core.domain.models.pricing import LineItem, PricingBreakdown


class DocumentType(str, Enum):
    """Numbered document kinds and their numbering formats.

    Each member carries ``(prefix, period_format, width)``: the number is
    ``prefix + period_key + zero-padded sequence``.
    """

    INVOICE = "invoice"
    ORDER = "order"
    ESTIMATE = "estimate"
    WALLET_TRANSACTION = "wallet_transaction"

    @property
    def prefix(self) -> str:
        return _NUMBER_FORMATS[self][0]

    @property
    def period_format(self) -> str:
        return _NUMBER_FORMATS[self][1]

    @property
    def width(self) -> int:
        return _NUMBER_FORMATS[self][2]


_NUMBER_FORMATS: dict[DocumentType, tuple[str, str, int]] = {
    DocumentType.INVOICE: ("", "%Y%m", 4),
    DocumentType.ORDER: ("ORD", "%y%m%d", 4),
    DocumentType.ESTIMATE: ("EST", "%Y", 6),
    DocumentType.WALLET_TRANSACTION: ("TXN", "%Y%m%d", 6),
}


@dataclass(frozen=True)
class Order:
    """A placed order with its immutable pricing snapshot."""

    id: str
    order_number: str
    user_id: str
    lines: tuple[LineItem, ...]
    buyer_state: str
    seller_state: str
    pricing: PricingBreakdown
    created_at: datetime
    coupon_code: str | None = None
    wallet_transaction_id: str | None = None


@dataclass(frozen=True)
class BillingDocument:
    """An invoice or estimate derived from an order."""

    id: str
    number: str
    document_type: DocumentType
    order_id: str
    pricing: PricingBreakdown
    created_at: datetime
    gst_applicable: bool = True


@dataclass(frozen=True)
class TaxRateSummary:
    """Tax report row grouped by GST rate and HSN code."""

    gst_rate: Decimal
    hsn_code: str
    taxable_amount: Money
    cgst: Money
    sgst: Money
    igst: Money
    line_count: int

    @property
    def total_gst(self) -> Money:
        return self.cgst + self.sgst + self.igst


__all__ = [
    "DocumentType",
    "Order",
    "BillingDocument",
    "TaxRateSummary",
]
