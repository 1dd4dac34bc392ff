"""In-memory implementations of the billing ports.

Used for tests and for ``BILLING_STORAGE=memory``. A unit of work holds the
store lock for its whole duration and restores a snapshot of the store when
it raises, so units of work are serialized and atomic.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
import threading

from billing_core.application.ports.coupon_repository import CouponRepositoryPort
from billing_core.application.ports.document_repository import (
    DocumentRepositoryPort,
)
from billing_core.application.ports.inventory import InventoryPort
from billing_core.application.ports.order_repository import OrderRepositoryPort
from billing_core.application.ports.sequence_repository import (
    SequenceRepositoryPort,
)
from billing_core.application.ports.unit_of_work import UnitOfWorkPort
from billing_core.application.ports.wallet_repository import WalletRepositoryPort
from billing_core.domain.errors import (
    ConcurrencyConflict,
    CouponInapplicable,
    InsufficientStock,
    InvalidLineItem,
    ProductNotFound,
)
from billing_core.domain.models import (
    BillingDocument,
    Coupon,
    DocumentType,
    LedgerTransaction,
    Order,
    TransactionFilter,
    WalletAccount,
)

_STATE_FIELDS = (
    "wallets",
    "wallet_ids_by_user",
    "transactions",
    "stock",
    "coupons",
    "coupon_uses",
    "orders",
    "documents",
)


class InMemoryBillingStore:
    """Process-local tables guarded by a single re-entrant lock."""

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.wallets: dict[str, WalletAccount] = {}
        self.wallet_ids_by_user: dict[str, str] = {}
        self.transactions: dict[str, LedgerTransaction] = {}
        self.stock: dict[str, int] = {}
        self.coupons: dict[str, Coupon] = {}
        self.coupon_uses: dict[tuple[str, str], int] = {}
        self.orders: dict[str, Order] = {}
        self.documents: dict[str, BillingDocument] = {}

    def snapshot(self) -> dict[str, dict]:
        # Stored values are frozen dataclasses, so copying the tables is enough.
        return {name: dict(getattr(self, name)) for name in _STATE_FIELDS}

    def restore(self, snapshot: dict[str, dict]) -> None:
        for name, table in snapshot.items():
            setattr(self, name, table)


class InMemoryWalletRepository(WalletRepositoryPort):
    def __init__(self, store: InMemoryBillingStore) -> None:
        self._store = store

    def find_by_user(self, user_id: str) -> WalletAccount | None:
        wallet_id = self._store.wallet_ids_by_user.get(user_id)
        if wallet_id is None:
            return None
        return self._store.wallets[wallet_id]

    def find_by_id(self, wallet_id: str) -> WalletAccount | None:
        return self._store.wallets.get(wallet_id)

    def add(self, wallet: WalletAccount) -> None:
        with self._store.lock:
            if wallet.user_id in self._store.wallet_ids_by_user:
                raise ConcurrencyConflict(
                    f"User {wallet.user_id} already has a wallet"
                )
            self._store.wallets[wallet.id] = wallet
            self._store.wallet_ids_by_user[wallet.user_id] = wallet.id

    def compare_and_swap(
        self,
        wallet: WalletAccount,
        expected_version: int,
    ) -> bool:
        with self._store.lock:
            current = self._store.wallets.get(wallet.id)
            if current is None or current.version != expected_version:
                return False
            self._store.wallets[wallet.id] = wallet
            return True

    def add_transaction(self, transaction: LedgerTransaction) -> None:
        with self._store.lock:
            if transaction.id in self._store.transactions:
                raise ConcurrencyConflict(
                    f"Transaction {transaction.id} already exists"
                )
            self._store.transactions[transaction.id] = transaction

    def update_transaction(self, transaction: LedgerTransaction) -> None:
        with self._store.lock:
            self._store.transactions[transaction.id] = transaction

    def get_transaction(self, transaction_id: str) -> LedgerTransaction | None:
        return self._store.transactions.get(transaction_id)

    def list_transactions(
        self,
        wallet_id: str,
        query: TransactionFilter | None = None,
    ) -> list[LedgerTransaction]:
        with self._store.lock:
            rows = [
                txn
                for txn in self._store.transactions.values()
                if txn.wallet_id == wallet_id
            ]
        rows.sort(
            key=lambda txn: (txn.created_at, txn.ledger_position or 0, txn.id),
            reverse=True,
        )
        if query is None:
            return rows
        rows = [txn for txn in rows if _matches(txn, query)]
        return rows[query.skip : query.skip + query.limit]


def _matches(txn: LedgerTransaction, query: TransactionFilter) -> bool:
    if query.type is not None and txn.type is not query.type:
        return False
    if query.category is not None and txn.category is not query.category:
        return False
    if query.status is not None and txn.status is not query.status:
        return False
    if query.date_from is not None and txn.created_at < query.date_from:
        return False
    if query.date_to is not None and txn.created_at > query.date_to:
        return False
    return True


class InMemoryInventory(InventoryPort):
    def __init__(self, store: InMemoryBillingStore) -> None:
        self._store = store

    def get_stock(self, product_id: str) -> int | None:
        return self._store.stock.get(product_id)

    def set_stock(self, product_id: str, quantity: int) -> None:
        with self._store.lock:
            self._store.stock[product_id] = quantity

    def decrement_stock(self, product_id: str, quantity: int) -> int:
        if quantity < 1:
            raise InvalidLineItem(f"Quantity must be >= 1, got {quantity}")
        with self._store.lock:
            available = self._store.stock.get(product_id)
            if available is None:
                raise ProductNotFound(f"Product {product_id} has no stock record")
            if available < quantity:
                raise InsufficientStock(
                    f"Product {product_id} has {available} units, "
                    f"{quantity} requested"
                )
            self._store.stock[product_id] = available - quantity
            return available - quantity


class InMemoryCouponRepository(CouponRepositoryPort):
    def __init__(self, store: InMemoryBillingStore) -> None:
        self._store = store

    def get_by_code(self, code: str) -> Coupon | None:
        return self._store.coupons.get(code)

    def add(self, coupon: Coupon) -> None:
        with self._store.lock:
            self._store.coupons[coupon.code] = coupon

    def record_usage(self, code: str) -> None:
        with self._store.lock:
            coupon = self._store.coupons.get(code)
            if coupon is None or (
                coupon.usage_limit is not None
                and coupon.used_count >= coupon.usage_limit
            ):
                raise CouponInapplicable(code, "usage_limit_reached")
            self._store.coupons[code] = replace(
                coupon,
                used_count=coupon.used_count + 1,
            )

    def record_user_usage(self, user_id: str, code: str, limit: int) -> None:
        with self._store.lock:
            used = self._store.coupon_uses.get((user_id, code), 0)
            if used >= limit:
                raise CouponInapplicable(code, "user_limit_reached")
            self._store.coupon_uses[(user_id, code)] = used + 1


class InMemoryOrderRepository(OrderRepositoryPort):
    def __init__(self, store: InMemoryBillingStore) -> None:
        self._store = store

    def add(self, order: Order) -> None:
        with self._store.lock:
            self._store.orders[order.id] = order

    def get(self, order_id: str) -> Order | None:
        return self._store.orders.get(order_id)

    def count_coupon_uses(self, user_id: str, coupon_code: str) -> int:
        with self._store.lock:
            return sum(
                1
                for order in self._store.orders.values()
                if order.user_id == user_id and order.coupon_code == coupon_code
            )


class InMemoryDocumentRepository(DocumentRepositoryPort):
    def __init__(self, store: InMemoryBillingStore) -> None:
        self._store = store

    def add(self, document: BillingDocument) -> None:
        with self._store.lock:
            if document.document_type is DocumentType.INVOICE and (
                self.find_for_order(document.order_id, DocumentType.INVOICE)
                is not None
            ):
                raise ConcurrencyConflict(
                    f"Order {document.order_id} already has an invoice"
                )
            self._store.documents[document.id] = document

    def find_for_order(
        self,
        order_id: str,
        document_type: DocumentType,
    ) -> BillingDocument | None:
        matches = self._select(
            lambda doc: doc.order_id == order_id
            and doc.document_type is document_type
        )
        return matches[0] if matches else None

    def list_issued(
        self,
        document_type: DocumentType,
        since: datetime,
        until: datetime,
    ) -> list[BillingDocument]:
        return self._select(
            lambda doc: doc.document_type is document_type
            and since <= doc.created_at <= until
        )

    def _select(self, predicate) -> list[BillingDocument]:
        with self._store.lock:
            matches = [doc for doc in self._store.documents.values() if predicate(doc)]
        return sorted(matches, key=lambda doc: (doc.created_at, doc.number))


class InMemoryBillingSession:
    """Repositories over a shared in-memory store."""

    def __init__(self, store: InMemoryBillingStore) -> None:
        self.wallets = InMemoryWalletRepository(store)
        self.inventory = InMemoryInventory(store)
        self.coupons = InMemoryCouponRepository(store)
        self.orders = InMemoryOrderRepository(store)
        self.documents = InMemoryDocumentRepository(store)


class InMemoryUnitOfWork(UnitOfWorkPort):
    """Serialized, snapshot-and-restore unit of work."""

    def __init__(self, store: InMemoryBillingStore | None = None) -> None:
        self.store = store or InMemoryBillingStore()

    @contextmanager
    def begin(self) -> Iterator[InMemoryBillingSession]:
        with self.store.lock:
            snapshot = self.store.snapshot()
            try:
                yield InMemoryBillingSession(self.store)
            except BaseException:
                self.store.restore(snapshot)
                raise


class InMemorySequenceRepository(SequenceRepositoryPort):
    """Counters incremented under a lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, str], int] = {}

    def increment(self, document_type: DocumentType, period_key: str) -> int:
        key = (document_type.value, period_key)
        with self._lock:
            value = self._counters.get(key, 0) + 1
            self._counters[key] = value
            return value

    def current(self, document_type: DocumentType, period_key: str) -> int:
        with self._lock:
            return self._counters.get((document_type.value, period_key), 0)


__all__ = [
    "InMemoryBillingStore",
    "InMemoryWalletRepository",
    "InMemoryInventory",
    "InMemoryCouponRepository",
    "InMemoryOrderRepository",
    "InMemoryDocumentRepository",
    "InMemoryBillingSession",
    "InMemoryUnitOfWork",
    "InMemorySequenceRepository",
]
