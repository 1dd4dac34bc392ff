"""Application ports package."""

from .coupon_repository import CouponRepositoryPort
from .database import DatabaseEnginePort
from .document_repository import DocumentRepositoryPort
from .inventory import InventoryPort
from .order_repository import OrderRepositoryPort
from .sequence_repository import SequenceRepositoryPort
from .unit_of_work import BillingSession, UnitOfWorkPort
from .wallet_repository import WalletRepositoryPort

__all__ = [
    "BillingSession",
    "CouponRepositoryPort",
    "DatabaseEnginePort",
    "DocumentRepositoryPort",
    "InventoryPort",
    "OrderRepositoryPort",
    "SequenceRepositoryPort",
    "UnitOfWorkPort",
    "WalletRepositoryPort",
]
