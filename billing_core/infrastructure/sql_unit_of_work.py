"""SQLAlchemy unit of work.

Every repository of a session shares one connection inside a single
``engine.begin()`` transaction, committed on normal exit and rolled back on
any exception.
"""

from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Connection

from billing_core.application.ports.database import DatabaseEnginePort
from billing_core.application.ports.unit_of_work import UnitOfWorkPort
from billing_core.infrastructure.sql_coupon_repository import (
    SqlAlchemyCouponRepository,
)
from billing_core.infrastructure.sql_document_repository import (
    SqlAlchemyDocumentRepository,
)
from billing_core.infrastructure.sql_inventory_repository import (
    SqlAlchemyInventoryRepository,
)
from billing_core.infrastructure.sql_order_repository import (
    SqlAlchemyOrderRepository,
)
from billing_core.infrastructure.sql_wallet_repository import (
    SqlAlchemyWalletRepository,
)


class SqlAlchemyBillingSession:
    """Repositories sharing one transactional connection."""

    def __init__(self, conn: Connection) -> None:
        self.connection = conn
        self.wallets = SqlAlchemyWalletRepository(conn)
        self.inventory = SqlAlchemyInventoryRepository(conn)
        self.coupons = SqlAlchemyCouponRepository(conn)
        self.orders = SqlAlchemyOrderRepository(conn)
        self.documents = SqlAlchemyDocumentRepository(conn)


class SqlAlchemyUnitOfWork(UnitOfWorkPort):
    """UnitOfWorkPort implementation over a SQLAlchemy engine."""

    def __init__(self, db_port: DatabaseEnginePort) -> None:
        """Initialize the unit of work factory.

        Args:
            db_port: Port providing access to the billing engine.
        """
        self._db_port = db_port

    @contextmanager
    def begin(self) -> Iterator[SqlAlchemyBillingSession]:
        engine = self._db_port.get_engine()
        with engine.begin() as conn:
            yield SqlAlchemyBillingSession(conn)


__all__ = ["SqlAlchemyBillingSession", "SqlAlchemyUnitOfWork"]
