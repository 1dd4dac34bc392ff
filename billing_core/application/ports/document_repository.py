"""Port for invoices and estimates."""

from datetime import datetime
from typing import Protocol

from billing_core.domain.models import BillingDocument, DocumentType


class DocumentRepositoryPort(Protocol):
    """Port exposing billing document persistence."""

    def add(self, document: BillingDocument) -> None:
        """Persist a document.

        Raises:
            ConcurrencyConflict: If an invoice already exists for the order.
        """

    def find_for_order(
        self,
        order_id: str,
        document_type: DocumentType,
    ) -> BillingDocument | None:
        """Return the first document of a type issued for an order."""

    def list_issued(
        self,
        document_type: DocumentType,
        since: datetime,
        until: datetime,
    ) -> list[BillingDocument]:
        """Return documents created within ``[since, until]``, oldest first."""


__all__ = ["DocumentRepositoryPort"]
