"""Tests for PriceOrderUseCase."""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from billing_core.application.use_cases.price_order import (
    PriceOrderRequest,
    PriceOrderUseCase,
)
from billing_core.domain.errors import CouponInapplicable, EmptyOrder
from billing_core.domain.models import (
    Money,
    TransactionCategory,
    TransactionDetails,
)


def _quote(uow, policy, clock, logger, request, drop=False):
    use_case = PriceOrderUseCase(
        uow,
        policy,
        drop_invalid_coupon=drop,
        clock=clock,
        logger=logger,
    )
    return use_case.execute(request)


def test_quote_without_extras(
    memory_uow,
    policy,
    clock,
    fake_logger,
    make_line,
) -> None:
    """A plain cart pays GST and shipping below the threshold."""
    request = PriceOrderRequest("u-1", (make_line(),), "KA")

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request)

    assert breakdown.taxable_amount == Money.parse("1000")
    assert breakdown.total_gst == Money.parse("180")
    assert breakdown.shipping_charges == Money.parse("99")
    assert breakdown.grand_total == Money.parse("1279")
    fake_logger.info.assert_called_once()


def test_quote_applies_stored_coupon(
    memory_uow,
    policy,
    clock,
    fake_logger,
    make_line,
    save10,
) -> None:
    """Coupon codes are normalized and looked up in the store."""
    memory_uow.store.coupons[save10.code] = save10
    request = PriceOrderRequest(
        "u-1",
        (make_line(unit_price="3000"),),
        "KA",
        coupon_code=" save10 ",
    )

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request)

    assert breakdown.coupon_code == "SAVE10"
    assert breakdown.coupon_discount == Money.parse("300")


def test_unknown_coupon(memory_uow, policy, clock, fake_logger, make_line) -> None:
    """Unknown codes are rejected unless the caller asks to drop them."""
    request = PriceOrderRequest("u-1", (make_line(),), "KA", coupon_code="NOPE")

    with pytest.raises(CouponInapplicable) as excinfo:
        _quote(memory_uow, policy, clock, fake_logger, request)
    assert excinfo.value.reason == "not_found"

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request, drop=True)
    assert breakdown.coupon_code is None
    assert breakdown.coupon_discount == Money(0)


def test_inapplicable_coupon_can_be_dropped(
    memory_uow,
    policy,
    clock,
    fake_logger,
    make_line,
    save10,
) -> None:
    """Expired coupons fail the quote or are dropped with a warning."""
    memory_uow.store.coupons[save10.code] = replace(
        save10,
        valid_until=datetime(2025, 6, 30, tzinfo=timezone.utc),
    )
    request = PriceOrderRequest("u-1", (make_line(),), "KA", coupon_code="SAVE10")

    with pytest.raises(CouponInapplicable) as excinfo:
        _quote(memory_uow, policy, clock, fake_logger, request)
    assert excinfo.value.reason == "expired"

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request, drop=True)
    assert breakdown.coupon_discount == Money(0)
    fake_logger.warning.assert_called()


def test_quote_reads_wallet_without_spending(
    memory_uow,
    policy,
    clock,
    fake_logger,
    make_line,
    ledger,
) -> None:
    """Quotes apply the wallet to the totals but leave the balance alone."""
    ledger.credit(
        "u-1",
        Money.parse("500"),
        TransactionDetails(category=TransactionCategory.CASHBACK),
    )
    request = PriceOrderRequest(
        "u-1",
        (make_line(),),
        "KA",
        wallet_amount=Money.parse("100"),
    )

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request)

    assert breakdown.wallet_amount_used == Money.parse("100")
    assert breakdown.grand_total == Money.parse("1179")
    assert ledger.get_wallet("u-1").balance == Money.parse("500")


def test_quote_without_wallet_ignores_request(
    memory_uow,
    policy,
    clock,
    fake_logger,
    make_line,
) -> None:
    """Users without a wallet simply get no wallet discount."""
    request = PriceOrderRequest(
        "u-2",
        (make_line(),),
        "KA",
        wallet_amount=Money.parse("100"),
    )

    breakdown = _quote(memory_uow, policy, clock, fake_logger, request)

    assert breakdown.wallet_amount_used == Money(0)


def test_empty_cart(memory_uow, policy, clock, fake_logger) -> None:
    """Empty carts cannot be quoted."""
    with pytest.raises(EmptyOrder):
        _quote(
            memory_uow,
            policy,
            clock,
            fake_logger,
            PriceOrderRequest("u-1", (), "KA"),
        )
