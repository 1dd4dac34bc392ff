"""Application use cases package."""

from .create_order import CreateOrderUseCase, OrderRequest, OrderResult
from .document_numberer import DocumentNumberer
from .generate_document import GenerateDocumentUseCase
from .price_order import PriceOrderRequest, PriceOrderUseCase, PricingPolicy
from .tax_report import TaxReportUseCase
from .wallet_ledger import WalletLedger

__all__ = [
    "CreateOrderUseCase",
    "OrderRequest",
    "OrderResult",
    "DocumentNumberer",
    "GenerateDocumentUseCase",
    "PriceOrderRequest",
    "PriceOrderUseCase",
    "PricingPolicy",
    "TaxReportUseCase",
    "WalletLedger",
]
