"""Relational schema of the billing store.

The DDL sticks to portable SQL so the same statements run on SQLite and
PostgreSQL. Money is stored as BIGINT paise, rates as decimal strings,
timestamps as ISO-8601 text, and breakdowns as deterministic JSON.
"""

from sqlalchemy.engine import Engine

from billing_core.infrastructure.logging.logger import get_app_logger

CREATE_WALLETS_SQL = """
CREATE TABLE IF NOT EXISTS wallets (
    id TEXT PRIMARY KEY,
    user_id TEXT NOT NULL UNIQUE,
    balance BIGINT NOT NULL DEFAULT 0 CHECK (balance >= 0),
    total_credits BIGINT NOT NULL DEFAULT 0,
    total_debits BIGINT NOT NULL DEFAULT 0,
    transaction_count INTEGER NOT NULL DEFAULT 0,
    is_active BOOLEAN NOT NULL,
    is_blocked BOOLEAN NOT NULL,
    blocked_reason TEXT,
    blocked_at TEXT,
    last_transaction_at TEXT,
    created_at TEXT NOT NULL,
    version INTEGER NOT NULL DEFAULT 0
)
"""

CREATE_WALLET_TRANSACTIONS_SQL = """
CREATE TABLE IF NOT EXISTS wallet_transactions (
    id TEXT PRIMARY KEY,
    number TEXT NOT NULL UNIQUE,
    wallet_id TEXT NOT NULL REFERENCES wallets (id),
    user_id TEXT NOT NULL,
    type TEXT NOT NULL,
    amount BIGINT NOT NULL CHECK (amount > 0),
    balance_after BIGINT,
    category TEXT NOT NULL,
    status TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    payment_method TEXT NOT NULL,
    related_order TEXT,
    external_reference TEXT,
    metadata TEXT NOT NULL DEFAULT '{}',
    is_reversible BOOLEAN NOT NULL,
    pairing_role TEXT,
    pairing_counterpart_id TEXT,
    ledger_position INTEGER,
    failure_reason TEXT,
    created_at TEXT NOT NULL,
    processed_at TEXT,
    reversed_at TEXT,
    UNIQUE (wallet_id, ledger_position)
)
"""

CREATE_WALLET_TRANSACTIONS_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS ix_wallet_transactions_wallet_created
ON wallet_transactions (wallet_id, created_at)
"""

CREATE_SEQUENCE_COUNTERS_SQL = """
CREATE TABLE IF NOT EXISTS sequence_counters (
    document_type TEXT NOT NULL,
    period_key TEXT NOT NULL,
    last_issued BIGINT NOT NULL,
    PRIMARY KEY (document_type, period_key)
)
"""

CREATE_PRODUCT_STOCK_SQL = """
CREATE TABLE IF NOT EXISTS product_stock (
    product_id TEXT PRIMARY KEY,
    quantity INTEGER NOT NULL CHECK (quantity >= 0)
)
"""

CREATE_COUPONS_SQL = """
CREATE TABLE IF NOT EXISTS coupons (
    code TEXT PRIMARY KEY,
    discount_type TEXT NOT NULL,
    discount_value TEXT NOT NULL,
    valid_from TEXT NOT NULL,
    valid_until TEXT NOT NULL,
    minimum_order_amount BIGINT NOT NULL DEFAULT 0,
    maximum_discount_amount BIGINT,
    usage_limit INTEGER,
    used_count INTEGER NOT NULL DEFAULT 0,
    user_usage_limit INTEGER NOT NULL DEFAULT 1,
    applicable_products TEXT NOT NULL DEFAULT '[]',
    is_active BOOLEAN NOT NULL
)
"""

CREATE_COUPON_REDEMPTIONS_SQL = """
CREATE TABLE IF NOT EXISTS coupon_redemptions (
    user_id TEXT NOT NULL,
    code TEXT NOT NULL,
    used_count INTEGER NOT NULL CHECK (used_count >= 0),
    PRIMARY KEY (user_id, code)
)
"""

CREATE_ORDERS_SQL = """
CREATE TABLE IF NOT EXISTS orders (
    id TEXT PRIMARY KEY,
    order_number TEXT NOT NULL UNIQUE,
    user_id TEXT NOT NULL,
    buyer_state TEXT NOT NULL,
    seller_state TEXT NOT NULL,
    coupon_code TEXT,
    wallet_transaction_id TEXT,
    pricing TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

CREATE_ORDERS_COUPON_INDEX_SQL = """
CREATE INDEX IF NOT EXISTS ix_orders_user_coupon
ON orders (user_id, coupon_code)
"""

CREATE_ORDER_LINES_SQL = """
CREATE TABLE IF NOT EXISTS order_lines (
    order_id TEXT NOT NULL REFERENCES orders (id),
    position INTEGER NOT NULL,
    product_id TEXT NOT NULL,
    unit_price BIGINT NOT NULL,
    quantity INTEGER NOT NULL,
    discount BIGINT NOT NULL,
    gst_rate TEXT NOT NULL,
    hsn_code TEXT NOT NULL DEFAULT '',
    PRIMARY KEY (order_id, position)
)
"""

CREATE_BILLING_DOCUMENTS_SQL = """
CREATE TABLE IF NOT EXISTS billing_documents (
    id TEXT PRIMARY KEY,
    number TEXT NOT NULL UNIQUE,
    document_type TEXT NOT NULL,
    order_id TEXT NOT NULL REFERENCES orders (id),
    pricing TEXT NOT NULL,
    gst_applicable BOOLEAN NOT NULL,
    created_at TEXT NOT NULL
)
"""

CREATE_ONE_INVOICE_PER_ORDER_SQL = """
CREATE UNIQUE INDEX IF NOT EXISTS ux_billing_documents_invoice
ON billing_documents (order_id)
WHERE document_type = 'invoice'
"""

SCHEMA_STATEMENTS = (
    CREATE_WALLETS_SQL,
    CREATE_WALLET_TRANSACTIONS_SQL,
    CREATE_WALLET_TRANSACTIONS_INDEX_SQL,
    CREATE_SEQUENCE_COUNTERS_SQL,
    CREATE_PRODUCT_STOCK_SQL,
    CREATE_COUPONS_SQL,
    CREATE_COUPON_REDEMPTIONS_SQL,
    CREATE_ORDERS_SQL,
    CREATE_ORDERS_COUPON_INDEX_SQL,
    CREATE_ORDER_LINES_SQL,
    CREATE_BILLING_DOCUMENTS_SQL,
    CREATE_ONE_INVOICE_PER_ORDER_SQL,
)

TABLE_NAMES = (
    "wallets",
    "wallet_transactions",
    "sequence_counters",
    "product_stock",
    "coupons",
    "coupon_redemptions",
    "orders",
    "order_lines",
    "billing_documents",
)


def ensure_schema(engine: Engine, logger=None) -> None:
    """Create every billing table and index that does not exist yet.

    Args:
        engine: SQLAlchemy engine for the billing database.
        logger: Optional logger compatible with logging.Logger-like API.
    """
    logger = logger or get_app_logger()
    with engine.begin() as conn:
        for statement in SCHEMA_STATEMENTS:
            conn.exec_driver_sql(statement)
    logger.info(f"Billing schema ready ({len(TABLE_NAMES)} tables)")


__all__ = ["SCHEMA_STATEMENTS", "TABLE_NAMES", "ensure_schema"]
