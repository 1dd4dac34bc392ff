"""Order pricing built on the GST line computations."""

from collections.abc import Sequence
from datetime import datetime

from billing_core.domain.errors import EmptyOrder, InvalidAmount, InvalidInput
from billing_core.domain.models import (
    Coupon,
    LineItem,
    Money,
    PricedLine,
    PricingBreakdown,
    RoundingConvention,
    ShippingRule,
    WalletAccount,
)
from billing_core.domain.policies.coupons import (
    allocate_coupon_discount,
    compute_coupon_discount,
)
from billing_core.domain.services.tax import aggregate, is_inter_state, price_line


def price_order(
    items: Sequence[LineItem],
    *,
    buyer_state: str,
    seller_state: str,
    shipping_rule: ShippingRule,
    coupon: Coupon | None = None,
    as_of: datetime | None = None,
    coupon_user_uses: int = 0,
    wallet_requested: Money = Money(0),
    wallet: WalletAccount | None = None,
    rounding: RoundingConvention = RoundingConvention.NONE,
) -> PricingBreakdown:
    """Price an order from its line items.

    Args:
        items: Order lines with snapshotted prices and GST rates.
        buyer_state: Buyer state code (place of supply).
        seller_state: Seller state code.
        shipping_rule: Rule producing the shipping charge.
        coupon: Optional coupon to apply.
        as_of: Pricing instant; required when a coupon is given.
        coupon_user_uses: Times the buyer has already used the coupon.
        wallet_requested: Wallet amount the buyer wants to spend.
        wallet: Buyer wallet, required to spend wallet funds.
        rounding: Round-off convention for the payable amount.

    Returns:
        PricingBreakdown: Immutable, internally consistent pricing.

    Raises:
        EmptyOrder: If no items are given.
        InvalidLineItem: If a line is malformed.
        CouponInapplicable: If the coupon fails a validity check.
        InvalidAmount: If the wallet request is negative.
    """
    if not items:
        raise EmptyOrder("An order needs at least one line item")

    inter_state = is_inter_state(buyer_state, seller_state)
    lines = tuple(price_line(item, inter_state) for item in items)

    coupon_code = None
    if coupon is not None:
        if as_of is None:
            raise InvalidInput("Coupon validation needs an explicit as_of instant")
        coupon_discount = compute_coupon_discount(
            coupon,
            lines,
            aggregate(lines).taxable_amount,
            as_of=as_of,
            user_uses=coupon_user_uses,
        )
        shares = allocate_coupon_discount(coupon, lines, coupon_discount)
        lines = _apply_coupon_shares(lines, shares, inter_state, True)
        coupon_code = coupon.code

    totals = aggregate(lines)
    shipping_charges = shipping_rule.charge_for(totals.taxable_amount)
    payable = totals.taxable_amount + totals.total_gst + shipping_charges
    wallet_used = clamp_wallet_amount(wallet_requested, wallet, payable)
    round_off = compute_round_off(payable - wallet_used, rounding)

    return _assemble(
        lines,
        inter_state=inter_state,
        coupon_code=coupon_code,
        shipping_charges=shipping_charges,
        wallet_amount_used=wallet_used,
        round_off=round_off,
    )


def rebuild_breakdown(
    items: Sequence[LineItem],
    *,
    inter_state: bool,
    coupon_discount: Money = Money(0),
    coupon_code: str | None = None,
    shipping_charges: Money = Money(0),
    wallet_amount_used: Money = Money(0),
    round_off: Money = Money(0),
    gst_applicable: bool = True,
    coupon_allocation: Sequence[Money] | None = None,
) -> PricingBreakdown:
    """Re-derive a breakdown from persisted lines and order adjustments.

    Line taxes are recomputed from the snapshotted rates after each line's
    share of the coupon discount; order-level adjustments are taken as
    recorded.

    Args:
        items: Persisted order lines.
        inter_state: Whether IGST applies instead of CGST and SGST.
        coupon_discount: Order-level coupon discount.
        coupon_code: Code of the applied coupon, if any.
        shipping_charges: Recorded shipping charge.
        wallet_amount_used: Recorded wallet spend.
        round_off: Recorded round-off adjustment.
        gst_applicable: False to price the lines without GST.
        coupon_allocation: Per-line coupon shares as recorded. When omitted
            the discount is spread over all lines by taxable amount.

    Raises:
        EmptyOrder: If no items are given.
        InvalidAmount: If the allocation does not match the discount or the
            adjustments produce a negative total.
    """
    if not items:
        raise EmptyOrder("A breakdown needs at least one line item")
    lines = tuple(price_line(item, inter_state, gst_applicable) for item in items)
    if coupon_allocation is None:
        shares = coupon_discount.allocate(
            [line.taxable_amount.minor for line in lines]
        )
    else:
        shares = tuple(coupon_allocation)
        if len(shares) != len(lines) or sum(shares, Money.zero()) != coupon_discount:
            raise InvalidAmount(
                f"Coupon allocation {shares} does not split {coupon_discount} "
                f"over {len(lines)} lines"
            )
    lines = _apply_coupon_shares(lines, shares, inter_state, gst_applicable)
    return _assemble(
        lines,
        inter_state=inter_state,
        coupon_code=coupon_code,
        shipping_charges=shipping_charges,
        wallet_amount_used=wallet_amount_used,
        round_off=round_off,
    )


def clamp_wallet_amount(
    requested: Money,
    wallet: WalletAccount | None,
    payable: Money,
) -> Money:
    """Return how much wallet money can be applied to the order."""
    if requested.is_negative():
        raise InvalidAmount(f"Wallet amount cannot be negative: {requested}")
    if requested.is_zero() or wallet is None:
        return Money.zero()
    return min(requested, wallet.spendable_balance, payable)


def compute_round_off(payable: Money, rounding: RoundingConvention) -> Money:
    """Return the signed adjustment that applies the rounding convention."""
    if rounding is RoundingConvention.NONE:
        return Money.zero()
    remainder = payable.minor % 100
    if remainder == 0:
        return Money.zero()
    if remainder >= 50:
        return Money(100 - remainder)
    return Money(-remainder)


def _apply_coupon_shares(
    lines: tuple[PricedLine, ...],
    shares: Sequence[Money],
    inter_state: bool,
    gst_applicable: bool,
) -> tuple[PricedLine, ...]:
    return tuple(
        price_line(line.item, inter_state, gst_applicable, coupon_discount=share)
        if not share.is_zero()
        else line
        for line, share in zip(lines, shares)
    )


def _assemble(
    lines: tuple[PricedLine, ...],
    *,
    inter_state: bool,
    coupon_code: str | None,
    shipping_charges: Money,
    wallet_amount_used: Money,
    round_off: Money,
) -> PricingBreakdown:
    totals = aggregate(lines)
    grand_total = (
        totals.taxable_amount
        + totals.total_gst
        + shipping_charges
        + round_off
        - wallet_amount_used
    )
    if grand_total.is_negative():
        raise InvalidAmount(
            f"Pricing adjustments produce a negative total: "
            f"taxable={totals.taxable_amount}, grand_total={grand_total}"
        )
    return PricingBreakdown(
        lines=lines,
        is_inter_state=inter_state,
        subtotal=totals.subtotal,
        line_discount=totals.total_discount,
        coupon_discount=totals.coupon_discount,
        total_discount=totals.total_discount + totals.coupon_discount,
        taxable_amount=totals.taxable_amount,
        total_cgst=totals.total_cgst,
        total_sgst=totals.total_sgst,
        total_igst=totals.total_igst,
        total_gst=totals.total_gst,
        shipping_charges=shipping_charges,
        wallet_amount_used=wallet_amount_used,
        round_off=round_off,
        grand_total=grand_total,
        coupon_code=coupon_code,
    )


__all__ = [
    "price_order",
    "rebuild_breakdown",
    "clamp_wallet_amount",
    "compute_round_off",
]
