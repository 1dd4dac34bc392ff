"""Port for placed orders."""

from typing import Protocol

from billing_core.domain.models import Order


class OrderRepositoryPort(Protocol):
    """Port exposing order persistence."""

    def add(self, order: Order) -> None:
        """Persist an order together with its lines and breakdown."""

    def get(self, order_id: str) -> Order | None:
        """Return an order by id, if any."""

    def count_coupon_uses(self, user_id: str, coupon_code: str) -> int:
        """Return how many orders ``user_id`` placed with ``coupon_code``."""


__all__ = ["OrderRepositoryPort"]
