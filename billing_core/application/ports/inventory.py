"""Port for product stock levels."""

from typing import Protocol


class InventoryPort(Protocol):
    """Port exposing stock reads and guarded decrements."""

    def get_stock(self, product_id: str) -> int | None:
        """Return units in stock, or None for unknown products."""

    def set_stock(self, product_id: str, quantity: int) -> None:
        """Create or overwrite the stock level of a product."""

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        """Remove units from stock and return what is left.

        Raises:
            ProductNotFound: If the product has no stock record.
            InsufficientStock: If fewer than ``quantity`` units remain.
        """


__all__ = ["InventoryPort"]
