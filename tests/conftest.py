"""Shared fixtures for the billing core tests."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
from sqlalchemy import create_engine

from billing_core.application.use_cases.create_order import CreateOrderUseCase
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.application.use_cases.price_order import PricingPolicy
from billing_core.application.use_cases.wallet_ledger import WalletLedger
from billing_core.domain.models import (
    Coupon,
    DiscountType,
    LineItem,
    Money,
    ShippingRule,
)
from billing_core.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from billing_core.infrastructure.memory import (
    InMemorySequenceRepository,
    InMemoryUnitOfWork,
)
from billing_core.infrastructure.schema import ensure_schema


class FixedClock:
    """Deterministic clock that advances only when told to."""

    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now = self.now + timedelta(**delta)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2025, 7, 15, 10, 30, tzinfo=timezone.utc))


@pytest.fixture
def fake_logger() -> MagicMock:
    return MagicMock()


@pytest.fixture
def make_line():
    """Factory for line items with rupee strings."""

    def _make(
        product_id: str = "sku-1",
        unit_price: str = "1000.00",
        quantity: int = 1,
        discount: str = "0",
        gst_rate: str = "18",
        hsn_code: str = "6109",
    ) -> LineItem:
        return LineItem(
            product_id=product_id,
            unit_price=Money.parse(unit_price),
            quantity=quantity,
            discount=Money.parse(discount),
            gst_rate=Decimal(gst_rate),
            hsn_code=hsn_code,
        )

    return _make


@pytest.fixture
def memory_uow() -> InMemoryUnitOfWork:
    return InMemoryUnitOfWork()


@pytest.fixture
def numberer(fake_logger) -> DocumentNumberer:
    return DocumentNumberer(InMemorySequenceRepository(), logger=fake_logger)


@pytest.fixture
def ledger(memory_uow, numberer, clock, fake_logger) -> WalletLedger:
    return WalletLedger(
        memory_uow,
        numberer,
        clock=clock,
        logger=fake_logger,
        audit_logger=MagicMock(),
    )


@pytest.fixture
def policy() -> PricingPolicy:
    return PricingPolicy(
        seller_state="KA",
        shipping_rule=ShippingRule(Money.parse("99"), Money.parse("1999")),
    )


@pytest.fixture
def save10() -> Coupon:
    return Coupon(
        code="SAVE10",
        discount_type=DiscountType.PERCENTAGE,
        discount_value=Decimal("10"),
        valid_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        valid_until=datetime(2025, 12, 31, 23, 59, tzinfo=timezone.utc),
        maximum_discount_amount=Money.parse("500"),
    )


@pytest.fixture
def create_order(memory_uow, numberer, ledger, policy, clock, fake_logger):
    return CreateOrderUseCase(
        memory_uow,
        numberer,
        ledger,
        policy,
        clock=clock,
        logger=fake_logger,
    )


@pytest.fixture
def sqlite_db(tmp_path):
    """Database port over a migrated SQLite file shared by all threads."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'billing.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    ensure_schema(engine, logger=MagicMock())
    yield SqlAlchemyDatabaseEngineAdapter(engine)
    engine.dispose()
