"""Tests for GST line computation and aggregation."""

from decimal import Decimal
from fractions import Fraction
import math
import random

import pytest

from billing_core.domain.errors import InvalidLineItem, InvalidRate
from billing_core.domain.models import Money
from billing_core.domain.services.tax import (
    aggregate,
    compute_line,
    is_inter_state,
    price_line,
    split_tax,
)

COMMON_RATES = ["0", "0.25", "3", "5", "12", "18", "28"]


def test_intra_state_line_splits_evenly() -> None:
    """₹1000 x 2 at 18% within a state is ₹180 CGST and ₹180 SGST."""
    line = compute_line(Money.parse("1000"), 2, Money(0), Decimal("18"), False)

    assert line.taxable_amount == Money.parse("2000")
    assert line.tax_amount == Money.parse("360")
    assert line.split.cgst == Money.parse("180")
    assert line.split.sgst == Money.parse("180")
    assert line.split.igst == Money(0)
    assert line.line_total == Money.parse("2360")


def test_inter_state_line_is_all_igst() -> None:
    """The same line across states should be reported as IGST only."""
    line = compute_line(Money.parse("1000"), 2, Money(0), Decimal("18"), True)

    assert line.split.igst == Money.parse("360")
    assert line.split.cgst == Money(0)
    assert line.split.sgst == Money(0)


def test_tax_on_odd_amount_rounds_and_split_reconstructs() -> None:
    """Odd tax amounts put the extra paisa on CGST."""
    line = compute_line(Money.parse("999"), 1, Money(0), "18", False)
    assert line.tax_amount == Money(17982)
    assert line.split.cgst + line.split.sgst == line.tax_amount

    odd = compute_line(Money.parse("1000.05"), 1, Money(0), "18", False)
    assert odd.tax_amount == Money(18001)
    assert odd.split.cgst == Money(9001)
    assert odd.split.sgst == Money(9000)


def test_fully_discounted_line_adds_no_tax() -> None:
    """A line discounted to zero is legal and carries no GST."""
    line = compute_line(Money.parse("250"), 2, Money.parse("500"), "18", False)

    assert line.taxable_amount == Money(0)
    assert line.tax_amount == Money(0)


def test_non_gst_line_has_zero_tax() -> None:
    """gst_applicable=False should zero the tax but keep the amounts."""
    line = compute_line(
        Money.parse("100"),
        1,
        Money(0),
        "18",
        False,
        gst_applicable=False,
    )

    assert line.tax_amount == Money(0)
    assert line.line_total == Money.parse("100")


def test_coupon_share_is_taxed_after_discount() -> None:
    """GST is charged on the line amount left after its coupon share."""
    line = compute_line(
        Money.parse("1000"),
        2,
        Money.parse("100"),
        Decimal("18"),
        False,
        coupon_discount=Money.parse("400"),
    )

    assert line.taxable_amount == Money.parse("1500")
    assert line.tax_amount == Money.parse("270")
    assert line.coupon_discount == Money.parse("400")
    with pytest.raises(InvalidLineItem):
        compute_line(
            Money.parse("10"),
            1,
            Money(0),
            Decimal("18"),
            False,
            coupon_discount=Money.parse("10.01"),
        )


@pytest.mark.parametrize(
    ("unit_price", "quantity", "discount", "rate"),
    [
        ("100", 0, "0", "18"),
        ("100", True, "0", "18"),
        ("100", 1.0, "0", "18"),
        ("-1", 1, "0", "18"),
        ("100", 1, "100.01", "18"),
        ("100", 1, "-1", "18"),
        ("100", 1, "0", "100.01"),
        ("100", 1, "0", "-5"),
    ],
)
def test_compute_line_rejects_out_of_range_inputs(
    unit_price,
    quantity,
    discount,
    rate,
) -> None:
    """Quantity, price, discount, and rate bounds are enforced."""
    with pytest.raises(InvalidLineItem):
        compute_line(
            Money.parse(unit_price),
            quantity,
            Money.parse(discount),
            rate,
            False,
        )


def test_compute_line_rejects_sub_hundredth_rates() -> None:
    """Rates with three decimals cannot be applied exactly."""
    with pytest.raises(InvalidRate):
        compute_line(Money.parse("100"), 1, Money(0), "12.345", False)


def test_is_inter_state_ignores_case_and_whitespace() -> None:
    """State codes compare after trimming and case folding."""
    assert is_inter_state(" ka ", "KA") is False
    assert is_inter_state("MH", "KA") is True
    assert is_inter_state(None, "") is False


def test_tax_matches_exact_rational_rounding() -> None:
    """Line tax equals round-half-up of the exact rational product."""
    rng = random.Random(20250715)
    for _ in range(10_000):
        unit_price = Money(rng.randint(0, 5_000_000))
        quantity = rng.randint(1, 50)
        gross = unit_price.minor * quantity
        discount = Money(rng.randint(0, gross))
        if rng.random() < 0.5:
            rate = Decimal(rng.choice(COMMON_RATES))
        else:
            rate = Decimal(rng.randint(0, 10_000)).scaleb(-2)
        inter_state = rng.random() < 0.5

        line = compute_line(unit_price, quantity, discount, rate, inter_state)

        exact = Fraction(gross - discount.minor) * Fraction(rate) / 100
        expected = math.floor(exact + Fraction(1, 2))
        assert line.tax_amount.minor == expected
        assert line.split.total == line.tax_amount
        assert line.line_total == line.taxable_amount + line.tax_amount
        if inter_state:
            assert line.split.cgst == line.split.sgst == Money(0)
        else:
            assert line.split.cgst.minor - line.split.sgst.minor in (0, 1)


def test_split_is_deterministic() -> None:
    """Splitting the same amount twice gives the same parts."""
    assert split_tax(Money(101), False) == split_tax(Money(101), False)
    assert split_tax(Money(101), True).igst == Money(101)


def test_aggregate_is_order_independent(make_line) -> None:
    """Shuffling lines should not change any aggregated total."""
    rng = random.Random(7)
    items = [
        make_line(
            product_id=f"sku-{index}",
            unit_price=f"{rng.randint(1, 99999)}.{rng.randint(0, 99):02d}",
            quantity=rng.randint(1, 5),
            gst_rate=rng.choice(COMMON_RATES),
        )
        for index in range(40)
    ]
    lines = [price_line(item, False) for item in items]
    baseline = aggregate(lines)

    for _ in range(25):
        rng.shuffle(lines)
        assert aggregate(lines) == baseline

    assert baseline.total_gst == Money.total(line.tax_amount for line in lines)
    assert baseline.total_cgst + baseline.total_sgst == baseline.total_gst
    assert baseline.taxable_amount == baseline.subtotal - baseline.total_discount
