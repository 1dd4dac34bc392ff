"""SQLAlchemy-backed order repository."""

from decimal import Decimal

from sqlalchemy import text
from sqlalchemy.engine import Connection

from billing_core.application.ports.order_repository import OrderRepositoryPort
from billing_core.domain.models import LineItem, Money, Order
from billing_core.infrastructure.sql_codecs import (
    datetime_to_text,
    dump_breakdown,
    load_breakdown,
    text_to_datetime,
)

INSERT_ORDER_SQL = text(
    """
    INSERT INTO orders (
        id, order_number, user_id, buyer_state, seller_state, coupon_code,
        wallet_transaction_id, pricing, created_at
    )
    VALUES (
        :id, :order_number, :user_id, :buyer_state, :seller_state,
        :coupon_code, :wallet_transaction_id, :pricing, :created_at
    )
    """
)

INSERT_ORDER_LINE_SQL = text(
    """
    INSERT INTO order_lines (
        order_id, position, product_id, unit_price, quantity, discount,
        gst_rate, hsn_code
    )
    VALUES (
        :order_id, :position, :product_id, :unit_price, :quantity, :discount,
        :gst_rate, :hsn_code
    )
    """
)

SELECT_ORDER_SQL = text(
    """
    SELECT id, order_number, user_id, buyer_state, seller_state, coupon_code,
           wallet_transaction_id, pricing, created_at
    FROM orders
    WHERE id = :id
    """
)

SELECT_ORDER_LINES_SQL = text(
    """
    SELECT product_id, unit_price, quantity, discount, gst_rate, hsn_code
    FROM order_lines
    WHERE order_id = :order_id
    ORDER BY position
    """
)

COUNT_COUPON_USES_SQL = text(
    """
    SELECT COUNT(*)
    FROM orders
    WHERE user_id = :user_id AND coupon_code = :coupon_code
    """
)


class SqlAlchemyOrderRepository(OrderRepositoryPort):
    """Order repository bound to a unit-of-work connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def add(self, order: Order) -> None:
        self._conn.execute(
            INSERT_ORDER_SQL,
            {
                "id": order.id,
                "order_number": order.order_number,
                "user_id": order.user_id,
                "buyer_state": order.buyer_state,
                "seller_state": order.seller_state,
                "coupon_code": order.coupon_code,
                "wallet_transaction_id": order.wallet_transaction_id,
                "pricing": dump_breakdown(order.pricing),
                "created_at": datetime_to_text(order.created_at),
            },
        )
        if not order.lines:
            return
        self._conn.execute(
            INSERT_ORDER_LINE_SQL,
            [
                {
                    "order_id": order.id,
                    "position": position,
                    "product_id": line.product_id,
                    "unit_price": line.unit_price.minor,
                    "quantity": line.quantity,
                    "discount": line.discount.minor,
                    "gst_rate": str(line.gst_rate),
                    "hsn_code": line.hsn_code,
                }
                for position, line in enumerate(order.lines, start=1)
            ],
        )

    def get(self, order_id: str) -> Order | None:
        row = self._conn.execute(SELECT_ORDER_SQL, {"id": order_id}).first()
        if row is None:
            return None
        line_rows = self._conn.execute(
            SELECT_ORDER_LINES_SQL,
            {"order_id": order_id},
        ).all()
        lines = tuple(
            LineItem(
                product_id=line.product_id,
                unit_price=Money(int(line.unit_price)),
                quantity=int(line.quantity),
                discount=Money(int(line.discount)),
                gst_rate=Decimal(line.gst_rate),
                hsn_code=line.hsn_code,
            )
            for line in line_rows
        )
        return Order(
            id=row.id,
            order_number=row.order_number,
            user_id=row.user_id,
            lines=lines,
            buyer_state=row.buyer_state,
            seller_state=row.seller_state,
            pricing=load_breakdown(row.pricing),
            created_at=text_to_datetime(row.created_at),
            coupon_code=row.coupon_code,
            wallet_transaction_id=row.wallet_transaction_id,
        )

    def count_coupon_uses(self, user_id: str, coupon_code: str) -> int:
        value = self._conn.execute(
            COUNT_COUPON_USES_SQL,
            {"user_id": user_id, "coupon_code": coupon_code},
        ).scalar_one()
        return int(value)


__all__ = ["SqlAlchemyOrderRepository"]
