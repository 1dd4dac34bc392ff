"""CLI adapter printing the pricing breakdown of a cart file.

The cart is a JSON document::

    {
      "user_id": "u-1",
      "buyer_state": "MH",
      "coupon_code": "SAVE10",
      "wallet_amount": "150.00",
      "items": [
        {"product_id": "tee", "unit_price": "499.00", "quantity": 2,
         "discount": "0", "gst_rate": "12", "hsn_code": "6109"}
      ]
    }

Amounts are rupees; JSON numbers are read as decimals, never floats.
"""

import argparse
from datetime import datetime
from decimal import Decimal
import json
from pathlib import Path
from typing import Any

from billing_core.application.use_cases.price_order import PriceOrderRequest
from billing_core.domain.errors import BillingError
from billing_core.domain.models import (
    LineItem,
    Money,
    PricingBreakdown,
    validate_rate,
)
from billing_core.infrastructure.container import (
    build_price_order_use_case,
    build_storage,
)
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.infrastructure.settings import BillingSettings


def parse_cart(payload: dict[str, Any]) -> PriceOrderRequest:
    """Build a quote request from a decoded cart document.

    Raises:
        KeyError: If a required field is missing.
        InvalidInput: If an amount or rate is malformed.
    """
    items = tuple(
        LineItem(
            product_id=str(item["product_id"]),
            unit_price=Money.parse(item["unit_price"]),
            quantity=item["quantity"],
            discount=Money.parse(item.get("discount", "0")),
            gst_rate=validate_rate(item.get("gst_rate", "0")),
            hsn_code=str(item.get("hsn_code", "")),
        )
        for item in payload["items"]
    )
    as_of = payload.get("as_of")
    return PriceOrderRequest(
        user_id=str(payload.get("user_id", "")),
        items=items,
        buyer_state=str(payload["buyer_state"]),
        coupon_code=payload.get("coupon_code"),
        wallet_amount=Money.parse(payload.get("wallet_amount", "0")),
        as_of=datetime.fromisoformat(as_of) if as_of else None,
    )


def format_breakdown(breakdown: PricingBreakdown) -> dict[str, Any]:
    """Render a breakdown with rupee strings for display."""
    return {
        "lines": [
            {
                "product_id": line.item.product_id,
                "hsn_code": line.item.hsn_code,
                "quantity": line.item.quantity,
                "unit_price": str(line.item.unit_price),
                "discount": str(line.item.discount),
                "gst_rate": str(line.item.gst_rate),
                "taxable_amount": str(line.taxable_amount),
                "cgst": str(line.split.cgst),
                "sgst": str(line.split.sgst),
                "igst": str(line.split.igst),
                "line_total": str(line.line_total),
            }
            for line in breakdown.lines
        ],
        "is_inter_state": breakdown.is_inter_state,
        "coupon_code": breakdown.coupon_code,
        "subtotal": str(breakdown.subtotal),
        "line_discount": str(breakdown.line_discount),
        "coupon_discount": str(breakdown.coupon_discount),
        "total_discount": str(breakdown.total_discount),
        "taxable_amount": str(breakdown.taxable_amount),
        "total_cgst": str(breakdown.total_cgst),
        "total_sgst": str(breakdown.total_sgst),
        "total_igst": str(breakdown.total_igst),
        "total_gst": str(breakdown.total_gst),
        "shipping_charges": str(breakdown.shipping_charges),
        "wallet_amount_used": str(breakdown.wallet_amount_used),
        "round_off": str(breakdown.round_off),
        "grand_total": str(breakdown.grand_total),
    }


def main(argv: list[str] | None = None) -> int:
    """Price the cart file given on the command line."""
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("cart", type=Path, help="Path to the cart JSON file")
    parser.add_argument(
        "--drop-invalid-coupon",
        action="store_true",
        help="Price without the coupon when it does not apply",
    )
    args = parser.parse_args(argv)

    logger = get_app_logger()
    try:
        payload = json.loads(args.cart.read_text(encoding="utf-8"), parse_float=Decimal)
        request = parse_cart(payload)
    except (OSError, ValueError, KeyError, TypeError, BillingError) as exc:
        logger.error(f"Cannot read cart {args.cart}: {exc}")
        return 1

    settings = BillingSettings.from_env()
    use_case = build_price_order_use_case(
        build_storage(settings),
        settings,
        drop_invalid_coupon=args.drop_invalid_coupon,
    )
    try:
        breakdown = use_case.execute(request)
    except BillingError as exc:
        logger.error(f"Cannot price cart {args.cart}: {exc}")
        return 1

    print(json.dumps(format_breakdown(breakdown), indent=2))
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
