"""GST computation for order lines.

Per-line tax is ``round_half_up(taxable_amount * gst_rate / 100)`` in paise,
where the taxable amount already excludes the line's share of any coupon.
Intra-state tax is split evenly into CGST and SGST with any odd paisa on
CGST; inter-state tax is reported entirely as IGST.
"""

from collections.abc import Iterable
from decimal import Decimal

from billing_core.domain.errors import InvalidLineItem
from billing_core.domain.models import (
    LineItem,
    Money,
    PricedLine,
    TaxSplit,
    TaxTotals,
    validate_rate,
)

MAX_GST_RATE = Decimal("100")


def is_inter_state(buyer_state: str | None, seller_state: str | None) -> bool:
    """Return True when buyer and seller are in different states.

    State codes are compared case-insensitively after trimming whitespace.
    """
    buyer = (buyer_state or "").strip().casefold()
    seller = (seller_state or "").strip().casefold()
    return buyer != seller


def split_tax(tax_amount: Money, inter_state: bool) -> TaxSplit:
    """Split a GST amount into CGST/SGST or IGST.

    Args:
        tax_amount: Total GST for a line, non-negative.
        inter_state: Whether the supply crosses state borders.

    Returns:
        TaxSplit: Split whose parts sum exactly to ``tax_amount``.
    """
    if inter_state:
        return TaxSplit(cgst=Money.zero(), sgst=Money.zero(), igst=tax_amount)
    sgst = Money(tax_amount.minor // 2)
    cgst = tax_amount - sgst
    return TaxSplit(cgst=cgst, sgst=sgst, igst=Money.zero())


def compute_line(
    unit_price: Money,
    quantity: int,
    discount: Money,
    gst_rate,
    inter_state: bool,
    *,
    product_id: str = "",
    hsn_code: str = "",
    gst_applicable: bool = True,
    coupon_discount: Money = Money(0),
) -> PricedLine:
    """Compute taxable amount, GST, and split for one line.

    Args:
        unit_price: Price of a single unit.
        quantity: Units ordered, at least 1.
        discount: Flat line discount, between zero and the gross amount.
        gst_rate: GST percentage between 0 and 100 (two decimals at most).
        inter_state: Whether IGST applies instead of CGST/SGST.
        product_id: Product identifier copied onto the line.
        hsn_code: HSN code copied onto the line.
        gst_applicable: False for non-GST documents; tax is then zero.
        coupon_discount: This line's share of the order-level coupon.

    Returns:
        PricedLine: The line with its derived amounts.

    Raises:
        InvalidLineItem: If quantity, price, discount, or rate is out of range.
        InvalidRate: If the rate has more than two decimal places.
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
        raise InvalidLineItem(f"Quantity must be an integer >= 1, got {quantity!r}")
    if unit_price.is_negative():
        raise InvalidLineItem(f"Unit price cannot be negative: {unit_price}")
    rate = validate_rate(gst_rate)
    if rate < 0 or rate > MAX_GST_RATE:
        raise InvalidLineItem(f"GST rate must be between 0 and 100, got {rate}")

    gross_amount = unit_price * quantity
    if discount.is_negative() or discount > gross_amount:
        raise InvalidLineItem(
            f"Discount {discount} must be between 0 and the line amount "
            f"{gross_amount}"
        )

    discounted = gross_amount - discount
    if coupon_discount.is_negative() or coupon_discount > discounted:
        raise InvalidLineItem(
            f"Coupon share {coupon_discount} must be between 0 and the "
            f"discounted line amount {discounted}"
        )

    taxable_amount = discounted - coupon_discount
    if gst_applicable:
        tax_amount = taxable_amount.percent_of(rate)
    else:
        tax_amount = Money.zero()

    item = LineItem(
        product_id=product_id,
        unit_price=unit_price,
        quantity=quantity,
        discount=discount,
        gst_rate=rate,
        hsn_code=hsn_code,
    )
    return PricedLine(
        item=item,
        gross_amount=gross_amount,
        taxable_amount=taxable_amount,
        tax_amount=tax_amount,
        line_total=taxable_amount + tax_amount,
        split=split_tax(tax_amount, inter_state),
        coupon_discount=coupon_discount,
    )


def price_line(
    item: LineItem,
    inter_state: bool,
    gst_applicable: bool = True,
    coupon_discount: Money = Money(0),
) -> PricedLine:
    """Run an existing line item through :func:`compute_line`."""
    return compute_line(
        item.unit_price,
        item.quantity,
        item.discount,
        item.gst_rate,
        inter_state,
        product_id=item.product_id,
        hsn_code=item.hsn_code,
        gst_applicable=gst_applicable,
        coupon_discount=coupon_discount,
    )


def aggregate(lines: Iterable[PricedLine]) -> TaxTotals:
    """Sum priced lines into order-level totals.

    Money addition is exact, so the result does not depend on line order.
    """
    subtotal = 0
    discount = 0
    coupon = 0
    taxable = 0
    cgst = 0
    sgst = 0
    igst = 0
    for line in lines:
        subtotal += line.gross_amount.minor
        discount += line.item.discount.minor
        coupon += line.coupon_discount.minor
        taxable += line.taxable_amount.minor
        cgst += line.split.cgst.minor
        sgst += line.split.sgst.minor
        igst += line.split.igst.minor

    return TaxTotals(
        subtotal=Money(subtotal),
        total_discount=Money(discount),
        taxable_amount=Money(taxable),
        total_cgst=Money(cgst),
        total_sgst=Money(sgst),
        total_igst=Money(igst),
        total_gst=Money(cgst + sgst + igst),
        coupon_discount=Money(coupon),
    )


__all__ = [
    "MAX_GST_RATE",
    "is_inter_state",
    "split_tax",
    "compute_line",
    "price_line",
    "aggregate",
]
