"""Domain models for line items, GST splits, and order pricing."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum

from billing_core.domain.models.money import Money


@dataclass(frozen=True)
class LineItem:
    """One product line as captured on an order, invoice, or estimate.

    Attributes:
        product_id: Product identifier (opaque to tax computation).
        unit_price: Price of one unit before tax.
        quantity: Number of units, at least 1.
        discount: Flat discount on the whole line.
        gst_rate: GST percentage snapshotted when the order was placed.
        hsn_code: Tax classification code used for reporting.
    """

    product_id: str
    unit_price: Money
    quantity: int
    discount: Money = Money(0)
    gst_rate: Decimal = Decimal("0")
    hsn_code: str = ""

    @property
    def gross_amount(self) -> Money:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class TaxSplit:
    """GST amount split into its central, state, and integrated parts."""

    cgst: Money
    sgst: Money
    igst: Money

    @property
    def total(self) -> Money:
        return self.cgst + self.sgst + self.igst


@dataclass(frozen=True)
class PricedLine:
    """A line item together with its derived tax figures.

    ``taxable_amount`` is the gross amount less the line discount and the
    line's share of any order-level coupon; GST is charged on it.
    """

    item: LineItem
    gross_amount: Money
    taxable_amount: Money
    tax_amount: Money
    line_total: Money
    split: TaxSplit
    coupon_discount: Money = Money(0)


@dataclass(frozen=True)
class TaxTotals:
    """Order-level sums over priced lines."""

    subtotal: Money
    total_discount: Money
    taxable_amount: Money
    total_cgst: Money
    total_sgst: Money
    total_igst: Money
    total_gst: Money
    coupon_discount: Money = Money(0)


class DiscountType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@dataclass(frozen=True)
class Coupon:
    """Coupon definition with its validity and usage limits.

    Attributes:
        code: Upper-cased coupon code.
        discount_type: Percentage or fixed discount.
        discount_value: Percentage for percentage coupons, rupees for fixed.
        valid_from: Start of validity (inclusive).
        valid_until: End of validity (inclusive).
        minimum_order_amount: Minimum taxable amount for the coupon to apply.
        maximum_discount_amount: Cap for percentage coupons, if any.
        usage_limit: Total uses allowed, or None for unlimited.
        used_count: Uses recorded so far.
        user_usage_limit: Uses allowed per user.
        applicable_products: Products the coupon is limited to (empty = all).
        is_active: Whether the coupon is enabled.
    """

    code: str
    discount_type: DiscountType
    discount_value: Decimal
    valid_from: datetime
    valid_until: datetime
    minimum_order_amount: Money = Money(0)
    maximum_discount_amount: Money | None = None
    usage_limit: int | None = None
    used_count: int = 0
    user_usage_limit: int = 1
    applicable_products: frozenset[str] = field(default_factory=frozenset)
    is_active: bool = True


@dataclass(frozen=True)
class ShippingRule:
    """Flat shipping fee, waived at or above a taxable-amount threshold."""

    flat_fee: Money
    free_above: Money | None = None

    def charge_for(self, taxable_amount: Money) -> Money:
        if self.free_above is not None and taxable_amount >= self.free_above:
            return Money.zero()
        return self.flat_fee


class RoundingConvention(str, Enum):
    NONE = "none"
    NEAREST_RUPEE = "nearest_rupee"


@dataclass(frozen=True)
class PricingBreakdown:
    """Immutable order or invoice pricing.

    ``grand_total = taxable_amount + total_gst + shipping_charges
    + round_off - wallet_amount_used``. The coupon discount is spread over
    the lines it applies to, so GST is charged on the discounted amounts;
    it is tracked apart from per-line discounts.
    """

    lines: tuple[PricedLine, ...]
    is_inter_state: bool
    subtotal: Money
    line_discount: Money
    coupon_discount: Money
    total_discount: Money
    taxable_amount: Money
    total_cgst: Money
    total_sgst: Money
    total_igst: Money
    total_gst: Money
    shipping_charges: Money
    wallet_amount_used: Money
    round_off: Money
    grand_total: Money
    coupon_code: str | None = None

    @property
    def payable_before_wallet(self) -> Money:
        return self.grand_total + self.wallet_amount_used

    def to_dict(self) -> dict:
        """Return a JSON-safe representation with amounts in paise."""
        return {
            "lines": [_line_to_dict(line) for line in self.lines],
            "is_inter_state": self.is_inter_state,
            "subtotal": self.subtotal.minor,
            "line_discount": self.line_discount.minor,
            "coupon_discount": self.coupon_discount.minor,
            "total_discount": self.total_discount.minor,
            "taxable_amount": self.taxable_amount.minor,
            "total_cgst": self.total_cgst.minor,
            "total_sgst": self.total_sgst.minor,
            "total_igst": self.total_igst.minor,
            "total_gst": self.total_gst.minor,
            "shipping_charges": self.shipping_charges.minor,
            "wallet_amount_used": self.wallet_amount_used.minor,
            "round_off": self.round_off.minor,
            "grand_total": self.grand_total.minor,
            "coupon_code": self.coupon_code,
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "PricingBreakdown":
        return cls(
            lines=tuple(_line_from_dict(line) for line in payload["lines"]),
            is_inter_state=bool(payload["is_inter_state"]),
            subtotal=Money(payload["subtotal"]),
            line_discount=Money(payload["line_discount"]),
            coupon_discount=Money(payload["coupon_discount"]),
            total_discount=Money(payload["total_discount"]),
            taxable_amount=Money(payload["taxable_amount"]),
            total_cgst=Money(payload["total_cgst"]),
            total_sgst=Money(payload["total_sgst"]),
            total_igst=Money(payload["total_igst"]),
            total_gst=Money(payload["total_gst"]),
            shipping_charges=Money(payload["shipping_charges"]),
            wallet_amount_used=Money(payload["wallet_amount_used"]),
            round_off=Money(payload["round_off"]),
            grand_total=Money(payload["grand_total"]),
            coupon_code=payload.get("coupon_code"),
        )


def _line_to_dict(line: PricedLine) -> dict:
    item = line.item
    return {
        "product_id": item.product_id,
        "unit_price": item.unit_price.minor,
        "quantity": item.quantity,
        "discount": item.discount.minor,
        "gst_rate": str(item.gst_rate),
        "hsn_code": item.hsn_code,
        "coupon_discount": line.coupon_discount.minor,
        "gross_amount": line.gross_amount.minor,
        "taxable_amount": line.taxable_amount.minor,
        "tax_amount": line.tax_amount.minor,
        "line_total": line.line_total.minor,
        "cgst": line.split.cgst.minor,
        "sgst": line.split.sgst.minor,
        "igst": line.split.igst.minor,
    }


def _line_from_dict(payload: dict) -> PricedLine:
    item = LineItem(
        product_id=payload["product_id"],
        unit_price=Money(payload["unit_price"]),
        quantity=payload["quantity"],
        discount=Money(payload["discount"]),
        gst_rate=Decimal(payload["gst_rate"]),
        hsn_code=payload["hsn_code"],
    )
    return PricedLine(
        item=item,
        gross_amount=Money(payload["gross_amount"]),
        taxable_amount=Money(payload["taxable_amount"]),
        tax_amount=Money(payload["tax_amount"]),
        line_total=Money(payload["line_total"]),
        split=TaxSplit(
            cgst=Money(payload["cgst"]),
            sgst=Money(payload["sgst"]),
            igst=Money(payload["igst"]),
        ),
        coupon_discount=Money(payload.get("coupon_discount", 0)),
    )


__all__ = [
    "LineItem",
    "TaxSplit",
    "PricedLine",
    "TaxTotals",
    "DiscountType",
    "Coupon",
    "ShippingRule",
    "RoundingConvention",
    "PricingBreakdown",
]
