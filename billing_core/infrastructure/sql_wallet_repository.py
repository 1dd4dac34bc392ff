"""SQLAlchemy-backed wallet and ledger transaction repository.

The repository works on the connection of an open unit of work. Wallet
updates are compare-and-swap writes guarded by the ``version`` column.
"""

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from billing_core.application.ports.wallet_repository import WalletRepositoryPort
from billing_core.domain.errors import ConcurrencyConflict
from billing_core.domain.models import (
    LedgerTransaction,
    Money,
    PairingRole,
    PaymentMethod,
    TransactionCategory,
    TransactionFilter,
    TransactionPairing,
    TransactionStatus,
    TransactionType,
    WalletAccount,
)
from billing_core.infrastructure.sql_codecs import (
    datetime_to_text,
    dump_json,
    load_json,
    text_to_datetime,
)

WALLET_COLUMNS = """
    id, user_id, balance, total_credits, total_debits, transaction_count,
    is_active, is_blocked, blocked_reason, blocked_at, last_transaction_at,
    created_at, version
"""

TRANSACTION_COLUMNS = """
    id, number, wallet_id, user_id, type, amount, balance_after, category,
    status, description, payment_method, related_order, external_reference,
    metadata, is_reversible, pairing_role, pairing_counterpart_id,
    ledger_position, failure_reason, created_at, processed_at, reversed_at
"""

SELECT_WALLET_BY_USER_SQL = text(
    f"SELECT {WALLET_COLUMNS} FROM wallets WHERE user_id = :user_id"
)

SELECT_WALLET_BY_ID_SQL = text(
    f"SELECT {WALLET_COLUMNS} FROM wallets WHERE id = :id"
)

INSERT_WALLET_SQL = text(
    """
    INSERT INTO wallets (
        id, user_id, balance, total_credits, total_debits, transaction_count,
        is_active, is_blocked, blocked_reason, blocked_at, last_transaction_at,
        created_at, version
    )
    VALUES (
        :id, :user_id, :balance, :total_credits, :total_debits,
        :transaction_count, :is_active, :is_blocked, :blocked_reason,
        :blocked_at, :last_transaction_at, :created_at, :version
    )
    """
)

SWAP_WALLET_SQL = text(
    """
    UPDATE wallets
    SET balance = :balance,
        total_credits = :total_credits,
        total_debits = :total_debits,
        transaction_count = :transaction_count,
        is_active = :is_active,
        is_blocked = :is_blocked,
        blocked_reason = :blocked_reason,
        blocked_at = :blocked_at,
        last_transaction_at = :last_transaction_at,
        version = :version
    WHERE id = :id AND version = :expected_version
    """
)

INSERT_TRANSACTION_SQL = text(
    """
    INSERT INTO wallet_transactions (
        id, number, wallet_id, user_id, type, amount, balance_after, category,
        status, description, payment_method, related_order,
        external_reference, metadata, is_reversible, pairing_role,
        pairing_counterpart_id, ledger_position, failure_reason, created_at,
        processed_at, reversed_at
    )
    VALUES (
        :id, :number, :wallet_id, :user_id, :type, :amount, :balance_after,
        :category, :status, :description, :payment_method, :related_order,
        :external_reference, :metadata, :is_reversible, :pairing_role,
        :pairing_counterpart_id, :ledger_position, :failure_reason,
        :created_at, :processed_at, :reversed_at
    )
    """
)

UPDATE_TRANSACTION_SQL = text(
    """
    UPDATE wallet_transactions
    SET status = :status,
        balance_after = :balance_after,
        ledger_position = :ledger_position,
        pairing_role = :pairing_role,
        pairing_counterpart_id = :pairing_counterpart_id,
        failure_reason = :failure_reason,
        processed_at = :processed_at,
        reversed_at = :reversed_at
    WHERE id = :id
    """
)

SELECT_TRANSACTION_SQL = text(
    f"SELECT {TRANSACTION_COLUMNS} FROM wallet_transactions WHERE id = :id"
)


class SqlAlchemyWalletRepository(WalletRepositoryPort):
    """Wallet repository bound to a unit-of-work connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def find_by_user(self, user_id: str) -> WalletAccount | None:
        row = self._conn.execute(
            SELECT_WALLET_BY_USER_SQL,
            {"user_id": user_id},
        ).first()
        return _row_to_wallet(row) if row is not None else None

    def find_by_id(self, wallet_id: str) -> WalletAccount | None:
        row = self._conn.execute(SELECT_WALLET_BY_ID_SQL, {"id": wallet_id}).first()
        return _row_to_wallet(row) if row is not None else None

    def add(self, wallet: WalletAccount) -> None:
        """Insert a wallet; a duplicate user surfaces as a conflict."""
        try:
            self._conn.execute(INSERT_WALLET_SQL, _wallet_params(wallet))
        except IntegrityError as exc:
            raise ConcurrencyConflict(
                f"User {wallet.user_id} already has a wallet"
            ) from exc

    def compare_and_swap(
        self,
        wallet: WalletAccount,
        expected_version: int,
    ) -> bool:
        params = _wallet_params(wallet)
        params["expected_version"] = expected_version
        result = self._conn.execute(SWAP_WALLET_SQL, params)
        return result.rowcount == 1

    def add_transaction(self, transaction: LedgerTransaction) -> None:
        self._conn.execute(INSERT_TRANSACTION_SQL, _transaction_params(transaction))

    def update_transaction(self, transaction: LedgerTransaction) -> None:
        self._conn.execute(UPDATE_TRANSACTION_SQL, _transaction_params(transaction))

    def get_transaction(self, transaction_id: str) -> LedgerTransaction | None:
        row = self._conn.execute(
            SELECT_TRANSACTION_SQL,
            {"id": transaction_id},
        ).first()
        return _row_to_transaction(row) if row is not None else None

    def list_transactions(
        self,
        wallet_id: str,
        query: TransactionFilter | None = None,
    ) -> list[LedgerTransaction]:
        """Return transactions newest first, filtered and paged by ``query``."""
        clauses = ["wallet_id = :wallet_id"]
        params: dict = {"wallet_id": wallet_id}
        paging = ""
        if query is not None:
            if query.type is not None:
                clauses.append("type = :type")
                params["type"] = query.type.value
            if query.category is not None:
                clauses.append("category = :category")
                params["category"] = query.category.value
            if query.status is not None:
                clauses.append("status = :status")
                params["status"] = query.status.value
            if query.date_from is not None:
                clauses.append("created_at >= :date_from")
                params["date_from"] = datetime_to_text(query.date_from)
            if query.date_to is not None:
                clauses.append("created_at <= :date_to")
                params["date_to"] = datetime_to_text(query.date_to)
            paging = "LIMIT :limit OFFSET :skip"
            params["limit"] = query.limit
            params["skip"] = query.skip

        statement = text(
            f"""
            SELECT {TRANSACTION_COLUMNS}
            FROM wallet_transactions
            WHERE {" AND ".join(clauses)}
            ORDER BY created_at DESC, COALESCE(ledger_position, 0) DESC, id DESC
            {paging}
            """
        )
        rows = self._conn.execute(statement, params).all()
        return [_row_to_transaction(row) for row in rows]


def _wallet_params(wallet: WalletAccount) -> dict:
    return {
        "id": wallet.id,
        "user_id": wallet.user_id,
        "balance": wallet.balance.minor,
        "total_credits": wallet.total_credits.minor,
        "total_debits": wallet.total_debits.minor,
        "transaction_count": wallet.transaction_count,
        "is_active": wallet.is_active,
        "is_blocked": wallet.is_blocked,
        "blocked_reason": wallet.blocked_reason,
        "blocked_at": datetime_to_text(wallet.blocked_at),
        "last_transaction_at": datetime_to_text(wallet.last_transaction_at),
        "created_at": datetime_to_text(wallet.created_at),
        "version": wallet.version,
    }


def _row_to_wallet(row) -> WalletAccount:
    return WalletAccount(
        id=row.id,
        user_id=row.user_id,
        created_at=text_to_datetime(row.created_at),
        balance=Money(int(row.balance)),
        total_credits=Money(int(row.total_credits)),
        total_debits=Money(int(row.total_debits)),
        transaction_count=int(row.transaction_count),
        is_active=bool(row.is_active),
        is_blocked=bool(row.is_blocked),
        blocked_reason=row.blocked_reason,
        blocked_at=text_to_datetime(row.blocked_at),
        last_transaction_at=text_to_datetime(row.last_transaction_at),
        version=int(row.version),
    )


def _transaction_params(transaction: LedgerTransaction) -> dict:
    pairing = transaction.pairing
    balance_after = transaction.balance_after
    return {
        "id": transaction.id,
        "number": transaction.number,
        "wallet_id": transaction.wallet_id,
        "user_id": transaction.user_id,
        "type": transaction.type.value,
        "amount": transaction.amount.minor,
        "balance_after": balance_after.minor if balance_after is not None else None,
        "category": transaction.category.value,
        "status": transaction.status.value,
        "description": transaction.description,
        "payment_method": transaction.payment_method.value,
        "related_order": transaction.related_order,
        "external_reference": transaction.external_reference,
        "metadata": dump_json(transaction.metadata),
        "is_reversible": transaction.is_reversible,
        "pairing_role": pairing.role.value if pairing else None,
        "pairing_counterpart_id": pairing.counterpart_id if pairing else None,
        "ledger_position": transaction.ledger_position,
        "failure_reason": transaction.failure_reason,
        "created_at": datetime_to_text(transaction.created_at),
        "processed_at": datetime_to_text(transaction.processed_at),
        "reversed_at": datetime_to_text(transaction.reversed_at),
    }


def _row_to_transaction(row) -> LedgerTransaction:
    pairing = None
    if row.pairing_role is not None:
        pairing = TransactionPairing(
            role=PairingRole(row.pairing_role),
            counterpart_id=row.pairing_counterpart_id,
        )
    return LedgerTransaction(
        id=row.id,
        number=row.number,
        wallet_id=row.wallet_id,
        user_id=row.user_id,
        type=TransactionType(row.type),
        amount=Money(int(row.amount)),
        category=TransactionCategory(row.category),
        status=TransactionStatus(row.status),
        created_at=text_to_datetime(row.created_at),
        balance_after=(
            Money(int(row.balance_after)) if row.balance_after is not None else None
        ),
        description=row.description,
        payment_method=PaymentMethod(row.payment_method),
        related_order=row.related_order,
        external_reference=row.external_reference,
        metadata=load_json(row.metadata, default={}),
        is_reversible=bool(row.is_reversible),
        pairing=pairing,
        ledger_position=(
            int(row.ledger_position) if row.ledger_position is not None else None
        ),
        failure_reason=row.failure_reason,
        processed_at=text_to_datetime(row.processed_at),
        reversed_at=text_to_datetime(row.reversed_at),
    )


__all__ = ["SqlAlchemyWalletRepository"]
