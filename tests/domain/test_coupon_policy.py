"""Tests for coupon eligibility and discount rules."""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from billing_core.domain.errors import CouponInapplicable
from billing_core.domain.models import Coupon, DiscountType, Money
from billing_core.domain.policies.coupons import (
    check_coupon,
    compute_coupon_discount,
    normalize_coupon_code,
)
from billing_core.domain.services.tax import price_line

AS_OF = datetime(2025, 7, 15, tzinfo=timezone.utc)


@pytest.fixture
def coupon() -> Coupon:
    return Coupon(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        valid_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        valid_until=datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc),
        maximum_discount_amount=Money.parse("500"),
    )


def _priced(make_line, **kwargs):
    return [price_line(make_line(**kwargs), False)]


def test_percentage_discount_is_capped(coupon, make_line) -> None:
    """10% of ₹10000 with a ₹500 cap grants ₹500, not ₹1000."""
    lines = _priced(make_line, unit_price="10000")

    discount = compute_coupon_discount(
        coupon,
        lines,
        Money.parse("10000"),
        as_of=AS_OF,
    )

    assert discount == Money.parse("500")


def test_percentage_discount_below_cap(coupon, make_line) -> None:
    """Under the cap the plain percentage applies."""
    lines = _priced(make_line, unit_price="1234.50")

    discount = compute_coupon_discount(
        coupon,
        lines,
        Money.parse("1234.50"),
        as_of=AS_OF,
    )

    assert discount == Money(12345)


def test_fixed_discount_never_exceeds_eligible_amount(coupon, make_line) -> None:
    """A ₹300 coupon on a ₹200 basket is worth ₹200."""
    fixed = replace(
        coupon,
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("300"),
    )
    lines = _priced(make_line, unit_price="200")

    discount = compute_coupon_discount(
        fixed,
        lines,
        Money.parse("200"),
        as_of=AS_OF,
    )

    assert discount == Money.parse("200")


def test_discount_only_counts_applicable_products(coupon, make_line) -> None:
    """Product-limited coupons take their rate of matching lines only."""
    limited = replace(coupon, applicable_products=frozenset({"sku-2"}))
    lines = [
        price_line(make_line(product_id="sku-1", unit_price="1000"), False),
        price_line(make_line(product_id="sku-2", unit_price="300"), False),
    ]

    discount = compute_coupon_discount(
        limited,
        lines,
        Money.parse("1300"),
        as_of=AS_OF,
    )

    assert discount == Money.parse("30")


@pytest.mark.parametrize(
    ("changes", "as_of", "user_uses", "reason"),
    [
        ({"is_active": False}, AS_OF, 0, "inactive"),
        ({}, datetime(2024, 12, 31, tzinfo=timezone.utc), 0, "not_yet_valid"),
        ({}, datetime(2026, 1, 1, tzinfo=timezone.utc), 0, "expired"),
        ({"usage_limit": 3, "used_count": 3}, AS_OF, 0, "usage_limit_reached"),
        ({"user_usage_limit": 2}, AS_OF, 2, "user_limit_reached"),
        (
            {"minimum_order_amount": Money.parse("5000")},
            AS_OF,
            0,
            "minimum_order_not_met",
        ),
        ({"discount_value": Decimal("120")}, AS_OF, 0, "invalid_value"),
        (
            {"applicable_products": frozenset({"sku-9"})},
            AS_OF,
            0,
            "no_applicable_items",
        ),
    ],
)
def test_check_coupon_reasons(
    coupon,
    make_line,
    changes,
    as_of,
    user_uses,
    reason,
) -> None:
    """Each failed check should report its own reason."""
    lines = _priced(make_line, unit_price="1000")

    with pytest.raises(CouponInapplicable) as excinfo:
        check_coupon(
            replace(coupon, **changes),
            lines,
            Money.parse("1000"),
            as_of=as_of,
            user_uses=user_uses,
        )

    assert excinfo.value.reason == reason
    assert excinfo.value.code == "SAVE10"


def test_validity_window_is_inclusive(coupon, make_line) -> None:
    """The first and last instants of the window are both valid."""
    lines = _priced(make_line)

    check_coupon(coupon, lines, Money.parse("1000"), as_of=coupon.valid_from)
    check_coupon(coupon, lines, Money.parse("1000"), as_of=coupon.valid_until)


def test_normalize_coupon_code() -> None:
    """Codes are trimmed and upper-cased; blanks become None."""
    assert normalize_coupon_code("  save10 ") == "SAVE10"
    assert normalize_coupon_code("   ") is None
    assert normalize_coupon_code(None) is None
