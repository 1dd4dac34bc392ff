"""Unit of work port.

A unit of work groups repository calls so that they commit together or not
at all. Use cases open one with ``begin()`` and reach the repositories
through the yielded session.
"""

from contextlib import AbstractContextManager
from typing import Protocol

from billing_core.application.ports.coupon_repository import CouponRepositoryPort
from billing_core.application.ports.document_repository import (
    DocumentRepositoryPort,
)
from billing_core.application.ports.inventory import InventoryPort
from billing_core.application.ports.order_repository import OrderRepositoryPort
from billing_core.application.ports.wallet_repository import WalletRepositoryPort


class BillingSession(Protocol):
    """Repositories bound to one open unit of work."""

    wallets: WalletRepositoryPort
    inventory: InventoryPort
    coupons: CouponRepositoryPort
    orders: OrderRepositoryPort
    documents: DocumentRepositoryPort


class UnitOfWorkPort(Protocol):
    """Port opening atomic units of work."""

    def begin(self) -> AbstractContextManager[BillingSession]:
        """Open a unit of work.

        The work commits when the ``with`` block exits normally and rolls
        back when it raises.
        """


__all__ = ["BillingSession", "UnitOfWorkPort"]
