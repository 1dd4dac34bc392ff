"""Tests for the SQLAlchemy repositories on a SQLite file."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from billing_core.application.use_cases.create_order import (
    CreateOrderUseCase,
    OrderRequest,
)
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.application.use_cases.generate_document import (
    GenerateDocumentUseCase,
)
from billing_core.application.use_cases.tax_report import TaxReportUseCase
from billing_core.application.use_cases.wallet_ledger import WalletLedger
from billing_core.domain.errors import (
    AlreadyReversed,
    ConcurrencyConflict,
    CouponInapplicable,
    InsufficientBalance,
    InsufficientStock,
    ProductNotFound,
)
from billing_core.domain.models import (
    BillingDocument,
    DocumentType,
    Money,
    TransactionCategory,
    TransactionDetails,
    TransactionFilter,
    TransactionStatus,
    TransactionType,
)
from billing_core.infrastructure.sql_sequence_repository import (
    SqlAlchemySequenceRepository,
)
from billing_core.infrastructure.sql_unit_of_work import SqlAlchemyUnitOfWork

TOPUP = TransactionDetails(
    category=TransactionCategory.WALLET_TOPUP,
    metadata={"gateway": "upi", "attempt": 1},
)
PAYMENT = TransactionDetails(category=TransactionCategory.ORDER_PAYMENT)


@pytest.fixture
def sql_uow(sqlite_db) -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(sqlite_db)


@pytest.fixture
def sql_numberer(sqlite_db, fake_logger) -> DocumentNumberer:
    return DocumentNumberer(SqlAlchemySequenceRepository(sqlite_db), logger=fake_logger)


@pytest.fixture
def sql_ledger(sql_uow, sql_numberer, clock, fake_logger) -> WalletLedger:
    return WalletLedger(
        sql_uow,
        sql_numberer,
        clock=clock,
        logger=fake_logger,
        audit_logger=MagicMock(),
    )


@pytest.fixture
def sql_create_order(sql_uow, sql_numberer, sql_ledger, policy, clock, fake_logger):
    return CreateOrderUseCase(
        sql_uow,
        sql_numberer,
        sql_ledger,
        policy,
        clock=clock,
        logger=fake_logger,
    )


def test_sequence_counts_per_period(sqlite_db) -> None:
    """Counters start at 1 and advance independently per period."""
    sequences = SqlAlchemySequenceRepository(sqlite_db)

    assert sequences.current(DocumentType.INVOICE, "202507") == 0
    assert [
        sequences.increment(DocumentType.INVOICE, "202507") for _ in range(3)
    ] == [1, 2, 3]
    assert sequences.increment(DocumentType.INVOICE, "202508") == 1
    assert sequences.current(DocumentType.INVOICE, "202507") == 3


def test_sequence_is_unique_across_threads(sqlite_db) -> None:
    """Racing increments on a shared file never hand out a value twice."""
    sequences = SqlAlchemySequenceRepository(sqlite_db)
    first = sequences.increment(DocumentType.ORDER, "250715")

    with ThreadPoolExecutor(max_workers=8) as pool:
        values = list(
            pool.map(
                lambda _: sequences.increment(DocumentType.ORDER, "250715"),
                range(39),
            )
        )

    assert sorted([first, *values]) == list(range(1, 41))


def test_ledger_round_trip(sql_ledger, clock) -> None:
    """Wallets and transactions survive the trip through SQL unchanged."""
    credit = sql_ledger.credit("u-1", Money.parse("500"), TOPUP).transaction
    clock.advance(minutes=5)
    sql_ledger.debit("u-1", Money.parse("120.25"), PAYMENT)

    wallet = sql_ledger.get_wallet("u-1")
    assert wallet.balance == Money.parse("379.75")
    assert wallet.version == 2
    assert wallet.created_at.tzinfo is not None

    history = sql_ledger.history("u-1")
    assert [txn.type for txn in history] == [
        TransactionType.DEBIT,
        TransactionType.CREDIT,
    ]
    assert history[1] == credit
    assert history[1].metadata == {"gateway": "upi", "attempt": 1}

    debits = sql_ledger.history(
        "u-1",
        TransactionFilter(
            type=TransactionType.DEBIT,
            date_from=clock.now - timedelta(minutes=1),
        ),
    )
    assert [txn.amount for txn in debits] == [Money.parse("120.25")]
    assert sql_ledger.audit("u-1").is_consistent


def test_ledger_rules_hold_on_sql(sql_ledger) -> None:
    """Overdrafts, reversals, and pending flows behave as in memory."""
    sql_ledger.credit("u-1", Money.parse("100"), TOPUP)
    with pytest.raises(InsufficientBalance):
        sql_ledger.debit("u-1", Money.parse("100.01"), PAYMENT)

    debit = sql_ledger.debit("u-1", Money.parse("40"), PAYMENT).transaction
    reversal = sql_ledger.reverse(debit.id, "order cancelled")
    assert reversal.wallet.balance == Money.parse("100")
    with pytest.raises(AlreadyReversed):
        sql_ledger.reverse(debit.id, "again")

    pending = sql_ledger.create_pending(
        "u-1",
        TransactionType.CREDIT,
        Money.parse("5"),
        TOPUP,
    )
    settled = sql_ledger.complete_pending(pending.id)
    assert settled.wallet.balance == Money.parse("105")
    assert settled.transaction.status is TransactionStatus.COMPLETED
    assert sql_ledger.audit("u-1").is_consistent


def test_compare_and_swap_rejects_stale_version(sql_uow, sql_ledger) -> None:
    """A write based on an old version changes nothing."""
    wallet = sql_ledger.credit("u-1", Money.parse("10"), TOPUP).wallet

    with sql_uow.begin() as session:
        stale = replace(wallet, balance=Money(0), version=wallet.version + 1)
        assert session.wallets.compare_and_swap(stale, wallet.version - 1) is False

    assert sql_ledger.get_wallet("u-1").balance == Money.parse("10")


def test_unit_of_work_rolls_back_on_error(sql_uow) -> None:
    """Nothing written inside a failed unit of work is kept."""
    with sql_uow.begin() as session:
        session.inventory.set_stock("sku", 2)

    with pytest.raises(InsufficientStock):
        with sql_uow.begin() as session:
            session.inventory.set_stock("other", 7)
            session.inventory.decrement_stock("sku", 1)
            session.inventory.decrement_stock("sku", 5)

    with sql_uow.begin() as session:
        assert session.inventory.get_stock("sku") == 2
        assert session.inventory.get_stock("other") is None
        with pytest.raises(ProductNotFound):
            session.inventory.decrement_stock("other", 1)


def test_coupon_round_trip_and_usage_limit(sql_uow, save10) -> None:
    """Coupons keep every field and their usage limit is enforced."""
    coupon = replace(
        save10,
        usage_limit=1,
        applicable_products=frozenset({"tee", "cap"}),
    )
    with sql_uow.begin() as session:
        session.coupons.add(coupon)

    with sql_uow.begin() as session:
        assert session.coupons.get_by_code("SAVE10") == coupon
        session.coupons.record_usage("SAVE10")
        with pytest.raises(CouponInapplicable):
            session.coupons.record_usage("SAVE10")
        assert session.coupons.get_by_code("SAVE10").used_count == 1
        assert session.coupons.get_by_code("NOPE") is None


def test_per_user_coupon_usage_is_guarded_on_sql(sql_uow, save10) -> None:
    """Each buyer has their own counter, capped by the per-user limit."""
    with sql_uow.begin() as session:
        session.coupons.add(save10)

    with sql_uow.begin() as session:
        session.coupons.record_user_usage("u-1", "SAVE10", 2)
        session.coupons.record_user_usage("u-1", "SAVE10", 2)
        with pytest.raises(CouponInapplicable) as excinfo:
            session.coupons.record_user_usage("u-1", "SAVE10", 2)
        session.coupons.record_user_usage("u-2", "SAVE10", 1)
        with pytest.raises(CouponInapplicable):
            session.coupons.record_user_usage("u-3", "SAVE10", 0)

    assert excinfo.value.reason == "user_limit_reached"
    with sql_uow.begin() as session:
        with pytest.raises(CouponInapplicable):
            session.coupons.record_user_usage("u-2", "SAVE10", 1)


def test_order_invoice_and_report_on_sql(
    sql_uow,
    sql_create_order,
    sql_ledger,
    sql_numberer,
    clock,
    fake_logger,
    save10,
    make_line,
) -> None:
    """The full order flow persists and re-derives through SQL."""
    with sql_uow.begin() as session:
        session.inventory.set_stock("tee", 5)
        session.coupons.add(save10)
    sql_ledger.credit("u-1", Money.parse("300"), TOPUP)

    result = sql_create_order.execute(
        OrderRequest(
            user_id="u-1",
            items=(make_line(product_id="tee", unit_price="1000", quantity=2),),
            buyer_state="MH",
            coupon_code="SAVE10",
            wallet_amount=Money.parse("300"),
        )
    )

    with sql_uow.begin() as session:
        assert session.orders.get(result.order.id) == result.order
        assert session.orders.count_coupon_uses("u-1", "SAVE10") == 1
        assert session.inventory.get_stock("tee") == 3
        assert session.coupons.get_by_code("SAVE10").used_count == 1
    assert sql_ledger.get_wallet("u-1").balance == Money(0)

    generate = GenerateDocumentUseCase(
        sql_uow,
        sql_numberer,
        clock=clock,
        logger=fake_logger,
    )
    invoice = generate.execute(result.order.id)
    assert invoice.pricing == result.order.pricing
    assert generate.execute(result.order.id) == invoice

    rows = TaxReportUseCase(sql_uow, logger=fake_logger).execute(
        clock.now - timedelta(hours=1),
        clock.now,
    )
    assert [(row.igst, row.line_count) for row in rows] == [
        (Money.parse("324"), 1)
    ]


def test_failed_order_rolls_back_on_sql(
    sql_uow,
    sql_create_order,
    sql_ledger,
    make_line,
) -> None:
    """A short line undoes every write of the order on SQL too."""
    with sql_uow.begin() as session:
        session.inventory.set_stock("tee", 5)
        session.inventory.set_stock("cap", 0)
    sql_ledger.credit("u-1", Money.parse("300"), TOPUP)

    with pytest.raises(InsufficientStock):
        sql_create_order.execute(
            OrderRequest(
                user_id="u-1",
                items=(
                    make_line(product_id="tee"),
                    make_line(product_id="cap", unit_price="200"),
                ),
                buyer_state="KA",
                wallet_amount=Money.parse("300"),
            )
        )

    with sql_uow.begin() as session:
        assert session.inventory.get_stock("tee") == 5
    assert sql_ledger.get_wallet("u-1").balance == Money.parse("300")
    assert len(sql_ledger.history("u-1")) == 1


def test_second_invoice_for_order_conflicts(
    sql_uow,
    sql_create_order,
    clock,
    make_line,
) -> None:
    """The database refuses two invoices for one order."""
    with sql_uow.begin() as session:
        session.inventory.set_stock("tee", 5)
    order = sql_create_order.execute(
        OrderRequest(
            user_id="u-1",
            items=(make_line(product_id="tee"),),
            buyer_state="KA",
        )
    ).order

    def invoice(document_id: str, number: str) -> BillingDocument:
        return BillingDocument(
            id=document_id,
            number=number,
            document_type=DocumentType.INVOICE,
            order_id=order.id,
            pricing=order.pricing,
            created_at=clock(),
        )

    with sql_uow.begin() as session:
        session.documents.add(invoice("doc-1", "2025070001"))
    with pytest.raises(ConcurrencyConflict):
        with sql_uow.begin() as session:
            session.documents.add(invoice("doc-2", "2025070002"))

    with sql_uow.begin() as session:
        found = session.documents.find_for_order(order.id, DocumentType.INVOICE)
        estimate = replace(
            invoice("doc-3", "EST2025000001"),
            document_type=DocumentType.ESTIMATE,
        )
        session.documents.add(estimate)
    assert found.id == "doc-1"
    assert found.pricing == order.pricing
