"""Composition root for wiring infrastructure adapters."""

from dataclasses import dataclass

from billing_core.application.ports.database import DatabaseEnginePort
from billing_core.application.ports.sequence_repository import (
    SequenceRepositoryPort,
)
from billing_core.application.ports.unit_of_work import UnitOfWorkPort
from billing_core.application.use_cases.create_order import CreateOrderUseCase
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.application.use_cases.generate_document import (
    GenerateDocumentUseCase,
)
from billing_core.application.use_cases.price_order import (
    PriceOrderUseCase,
    PricingPolicy,
)
from billing_core.application.use_cases.tax_report import TaxReportUseCase
from billing_core.application.use_cases.wallet_ledger import WalletLedger
from billing_core.infrastructure.db import SqlAlchemyDatabaseEngineAdapter
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.infrastructure.memory import (
    InMemorySequenceRepository,
    InMemoryUnitOfWork,
)
from billing_core.infrastructure.settings import BillingSettings
from billing_core.infrastructure.sql_sequence_repository import (
    SqlAlchemySequenceRepository,
)
from billing_core.infrastructure.sql_unit_of_work import SqlAlchemyUnitOfWork


@dataclass(frozen=True)
class StorageBackend:
    """Unit of work and counters of one storage backend."""

    uow: UnitOfWorkPort
    sequences: SequenceRepositoryPort


def build_database_adapter() -> DatabaseEnginePort:
    """Return the database adapter instance."""
    return SqlAlchemyDatabaseEngineAdapter()


def build_storage(
    settings: BillingSettings | None = None,
    db_port: DatabaseEnginePort | None = None,
) -> StorageBackend:
    """Return the configured storage backend."""
    resolved = settings or BillingSettings.from_env()
    if resolved.storage == "memory":
        get_app_logger().warning(
            "Using in-memory storage; nothing will be persisted"
        )
        return StorageBackend(
            uow=InMemoryUnitOfWork(),
            sequences=InMemorySequenceRepository(),
        )
    resolved_db = db_port or build_database_adapter()
    return StorageBackend(
        uow=SqlAlchemyUnitOfWork(resolved_db),
        sequences=SqlAlchemySequenceRepository(resolved_db),
    )


def build_pricing_policy(settings: BillingSettings | None = None) -> PricingPolicy:
    """Return the store pricing policy from settings."""
    resolved = settings or BillingSettings.from_env()
    return PricingPolicy(
        seller_state=resolved.seller_state,
        shipping_rule=resolved.shipping_rule,
        rounding=resolved.rounding,
    )


def build_document_numberer(
    storage: StorageBackend,
    settings: BillingSettings | None = None,
) -> DocumentNumberer:
    resolved = settings or BillingSettings.from_env()
    return DocumentNumberer(
        storage.sequences,
        max_retries=resolved.sequence_max_retries,
        logger=get_app_logger(),
    )


def build_wallet_ledger(
    storage: StorageBackend,
    settings: BillingSettings | None = None,
) -> WalletLedger:
    resolved = settings or BillingSettings.from_env()
    return WalletLedger(
        storage.uow,
        build_document_numberer(storage, resolved),
        max_retries=resolved.ledger_max_retries,
        logger=get_app_logger(),
    )


def build_price_order_use_case(
    storage: StorageBackend,
    settings: BillingSettings | None = None,
    drop_invalid_coupon: bool = False,
) -> PriceOrderUseCase:
    resolved = settings or BillingSettings.from_env()
    return PriceOrderUseCase(
        storage.uow,
        build_pricing_policy(resolved),
        drop_invalid_coupon=drop_invalid_coupon,
        logger=get_app_logger(),
    )


def build_create_order_use_case(
    storage: StorageBackend,
    settings: BillingSettings | None = None,
) -> CreateOrderUseCase:
    resolved = settings or BillingSettings.from_env()
    return CreateOrderUseCase(
        storage.uow,
        build_document_numberer(storage, resolved),
        build_wallet_ledger(storage, resolved),
        build_pricing_policy(resolved),
        logger=get_app_logger(),
    )


def build_generate_document_use_case(
    storage: StorageBackend,
    settings: BillingSettings | None = None,
) -> GenerateDocumentUseCase:
    resolved = settings or BillingSettings.from_env()
    return GenerateDocumentUseCase(
        storage.uow,
        build_document_numberer(storage, resolved),
        logger=get_app_logger(),
        rounding=resolved.rounding,
    )


def build_tax_report_use_case(storage: StorageBackend) -> TaxReportUseCase:
    return TaxReportUseCase(storage.uow, logger=get_app_logger())


__all__ = [
    "StorageBackend",
    "build_database_adapter",
    "build_storage",
    "build_pricing_policy",
    "build_document_numberer",
    "build_wallet_ledger",
    "build_price_order_use_case",
    "build_create_order_use_case",
    "build_generate_document_use_case",
    "build_tax_report_use_case",
]
