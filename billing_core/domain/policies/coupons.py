"""Coupon eligibility and discount rules."""

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from billing_core.domain.errors import CouponInapplicable
from billing_core.domain.models import (
    Coupon,
    DiscountType,
    Money,
    PricedLine,
)


def normalize_coupon_code(code: str | None) -> str | None:
    """Return the canonical upper-cased coupon code, or None when blank."""
    if not code:
        return None
    cleaned = code.strip().upper()
    return cleaned or None


def check_coupon(
    coupon: Coupon,
    lines: Sequence[PricedLine],
    taxable_amount: Money,
    *,
    as_of: datetime,
    user_uses: int = 0,
) -> None:
    """Raise CouponInapplicable when the coupon cannot be used.

    Args:
        coupon: Coupon being applied.
        lines: Priced order lines.
        taxable_amount: Order taxable amount after line discounts.
        as_of: Instant the order is priced at, for validity windows.
        user_uses: Times the buyer has already used this coupon.
    """
    if not coupon.is_active:
        raise CouponInapplicable(coupon.code, "inactive")
    if as_of < coupon.valid_from:
        raise CouponInapplicable(coupon.code, "not_yet_valid")
    if as_of > coupon.valid_until:
        raise CouponInapplicable(coupon.code, "expired")
    if coupon.usage_limit is not None and coupon.used_count >= coupon.usage_limit:
        raise CouponInapplicable(coupon.code, "usage_limit_reached")
    if user_uses >= coupon.user_usage_limit:
        raise CouponInapplicable(coupon.code, "user_limit_reached")
    if taxable_amount < coupon.minimum_order_amount:
        raise CouponInapplicable(coupon.code, "minimum_order_not_met")
    if coupon.discount_value < 0 or (
        coupon.discount_type is DiscountType.PERCENTAGE
        and coupon.discount_value > Decimal("100")
    ):
        raise CouponInapplicable(coupon.code, "invalid_value")
    if not _applicable_lines(coupon, lines):
        raise CouponInapplicable(coupon.code, "no_applicable_items")


def compute_coupon_discount(
    coupon: Coupon,
    lines: Sequence[PricedLine],
    taxable_amount: Money,
    *,
    as_of: datetime,
    user_uses: int = 0,
) -> Money:
    """Validate the coupon and return the discount it grants.

    Percentage coupons take their rate of the eligible taxable amount,
    capped by ``maximum_discount_amount``; fixed coupons grant their flat
    value capped at the eligible taxable amount.
    """
    check_coupon(
        coupon,
        lines,
        taxable_amount,
        as_of=as_of,
        user_uses=user_uses,
    )
    base = Money.total(
        line.taxable_amount for line in _applicable_lines(coupon, lines)
    )
    if coupon.discount_type is DiscountType.PERCENTAGE:
        discount = base.percent_of(coupon.discount_value)
        if coupon.maximum_discount_amount is not None:
            discount = min(discount, coupon.maximum_discount_amount)
    else:
        discount = min(Money.from_decimal(coupon.discount_value), base)
    return min(discount, taxable_amount)


def allocate_coupon_discount(
    coupon: Coupon,
    lines: Sequence[PricedLine],
    discount: Money,
) -> tuple[Money, ...]:
    """Spread a coupon discount over the lines it applies to.

    Shares are proportional to each eligible line's taxable amount; lines
    outside ``applicable_products`` get nothing. See :meth:`Money.allocate`
    for how leftover paise are placed.
    """
    return discount.allocate(
        [
            line.taxable_amount.minor if _applies_to(coupon, line) else 0
            for line in lines
        ]
    )


def _applies_to(coupon: Coupon, line: PricedLine) -> bool:
    return (
        not coupon.applicable_products
        or line.item.product_id in coupon.applicable_products
    )


def _applicable_lines(
    coupon: Coupon,
    lines: Sequence[PricedLine],
) -> list[PricedLine]:
    return [line for line in lines if _applies_to(coupon, line)]


__all__ = [
    "normalize_coupon_code",
    "check_coupon",
    "compute_coupon_discount",
    "allocate_coupon_discount",
]
