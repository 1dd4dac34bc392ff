"""Tests for the tax summary grouped by rate and HSN code."""

from datetime import datetime, timezone
from decimal import Decimal

from billing_core.domain.models import Coupon, DiscountType, Money, ShippingRule
from billing_core.domain.services.pricing import price_order
from billing_core.domain.services.tax_summary import summarize_tax


def test_summarize_tax_groups_lines_across_breakdowns(make_line) -> None:
    """Lines sharing rate and HSN code are merged into one row."""
    shipping = ShippingRule(Money(0))
    local = price_order(
        [
            make_line(product_id="a", unit_price="100", hsn_code="6109"),
            make_line(product_id="b", unit_price="50", gst_rate="5", hsn_code="4901"),
        ],
        buyer_state="KA",
        seller_state="KA",
        shipping_rule=shipping,
    )
    remote = price_order(
        [make_line(product_id="c", unit_price="200", hsn_code="6109")],
        buyer_state="MH",
        seller_state="KA",
        shipping_rule=shipping,
    )

    rows = summarize_tax([local, remote])

    assert [(row.gst_rate, row.hsn_code) for row in rows] == [
        (Decimal("5"), "4901"),
        (Decimal("18"), "6109"),
    ]
    books, tees = rows
    assert books.taxable_amount == Money.parse("50")
    assert books.total_gst == Money.parse("2.50")
    assert tees.line_count == 2
    assert tees.taxable_amount == Money.parse("300")
    assert tees.cgst == Money.parse("9")
    assert tees.sgst == Money.parse("9")
    assert tees.igst == Money.parse("36")
    assert tees.total_gst == Money.parse("54")


def test_summarize_tax_of_nothing_is_empty() -> None:
    """No documents means no rows."""
    assert summarize_tax([]) == []


def test_summary_of_coupon_order_matches_document_totals(make_line) -> None:
    """Coupon shares are reflected in the grouped taxable and GST columns."""
    coupon = Coupon(
        code="FLAT99",
        discount_type=DiscountType.FIXED,
        discount_value=Decimal("99"),
        valid_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        valid_until=datetime(2025, 12, 31, tzinfo=timezone.utc),
    )
    breakdown = price_order(
        [
            make_line(product_id="a", unit_price="100", hsn_code="6109"),
            make_line(product_id="b", unit_price="50", gst_rate="5", hsn_code="4901"),
        ],
        buyer_state="KA",
        seller_state="KA",
        shipping_rule=ShippingRule(Money(0)),
        coupon=coupon,
        as_of=datetime(2025, 7, 15, tzinfo=timezone.utc),
    )

    rows = summarize_tax([breakdown])

    assert Money.total(row.taxable_amount for row in rows) == Money.parse("51")
    assert Money.total(row.total_gst for row in rows) == breakdown.total_gst
