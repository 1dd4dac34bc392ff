"""SQLAlchemy-backed product stock levels."""

from sqlalchemy import text
from sqlalchemy.engine import Connection

from billing_core.application.ports.inventory import InventoryPort
from billing_core.domain.errors import (
    InsufficientStock,
    InvalidLineItem,
    ProductNotFound,
)

SELECT_STOCK_SQL = text(
    "SELECT quantity FROM product_stock WHERE product_id = :product_id"
)

UPDATE_STOCK_SQL = text(
    "UPDATE product_stock SET quantity = :quantity WHERE product_id = :product_id"
)

INSERT_STOCK_SQL = text(
    """
    INSERT INTO product_stock (product_id, quantity)
    VALUES (:product_id, :quantity)
    """
)

DECREMENT_STOCK_SQL = text(
    """
    UPDATE product_stock
    SET quantity = quantity - :quantity
    WHERE product_id = :product_id AND quantity >= :quantity
    """
)


class SqlAlchemyInventoryRepository(InventoryPort):
    """Stock repository bound to a unit-of-work connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def get_stock(self, product_id: str) -> int | None:
        value = self._conn.execute(
            SELECT_STOCK_SQL,
            {"product_id": product_id},
        ).scalar_one_or_none()
        return int(value) if value is not None else None

    def set_stock(self, product_id: str, quantity: int) -> None:
        params = {"product_id": product_id, "quantity": quantity}
        if self._conn.execute(UPDATE_STOCK_SQL, params).rowcount == 0:
            self._conn.execute(INSERT_STOCK_SQL, params)

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Decrement stock with a single guarded update.

        Raises:
            InvalidLineItem: If ``quantity`` is below 1.
            ProductNotFound: If the product has no stock record.
            InsufficientStock: If fewer than ``quantity`` units remain.
        """
        if quantity < 1:
            raise InvalidLineItem(f"Quantity must be >= 1, got {quantity}")
        params = {"product_id": product_id, "quantity": quantity}
        if self._conn.execute(DECREMENT_STOCK_SQL, params).rowcount == 1:
            return self.get_stock(product_id) or 0

        available = self.get_stock(product_id)
        if available is None:
            raise ProductNotFound(f"Product {product_id} has no stock record")
        raise InsufficientStock(
            f"Product {product_id} has {available} units, {quantity} requested"
        )


__all__ = ["SqlAlchemyInventoryRepository"]
