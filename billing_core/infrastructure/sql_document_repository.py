"""SQLAlchemy-backed invoice and estimate repository."""

from datetime import datetime

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import IntegrityError

from billing_core.application.ports.document_repository import (
    DocumentRepositoryPort,
)
from billing_core.domain.errors import ConcurrencyConflict
from billing_core.domain.models import BillingDocument, DocumentType
from billing_core.infrastructure.sql_codecs import (
    datetime_to_text,
    dump_breakdown,
    load_breakdown,
    text_to_datetime,
)

DOCUMENT_COLUMNS = """
    id, number, document_type, order_id, pricing, gst_applicable, created_at
"""

INSERT_DOCUMENT_SQL = text(
    f"""
    INSERT INTO billing_documents ({DOCUMENT_COLUMNS})
    VALUES (
        :id, :number, :document_type, :order_id, :pricing, :gst_applicable,
        :created_at
    )
    """
)

SELECT_DOCUMENT_FOR_ORDER_SQL = text(
    f"""
    SELECT {DOCUMENT_COLUMNS}
    FROM billing_documents
    WHERE order_id = :order_id AND document_type = :document_type
    ORDER BY created_at, number
    """
)

SELECT_ISSUED_DOCUMENTS_SQL = text(
    f"""
    SELECT {DOCUMENT_COLUMNS}
    FROM billing_documents
    WHERE document_type = :document_type
      AND created_at >= :since
      AND created_at <= :until
    ORDER BY created_at, number
    """
)


class SqlAlchemyDocumentRepository(DocumentRepositoryPort):
    """Document repository bound to a unit-of-work connection."""

    def __init__(self, conn: Connection) -> None:
        self._conn = conn

    def add(self, document: BillingDocument) -> None:
        """Insert a document; a second invoice for an order is a conflict."""
        try:
            self._conn.execute(
                INSERT_DOCUMENT_SQL,
                {
                    "id": document.id,
                    "number": document.number,
                    "document_type": document.document_type.value,
                    "order_id": document.order_id,
                    "pricing": dump_breakdown(document.pricing),
                    "gst_applicable": document.gst_applicable,
                    "created_at": datetime_to_text(document.created_at),
                },
            )
        except IntegrityError as exc:
            raise ConcurrencyConflict(
                f"Document {document.number} conflicts with an existing "
                f"{document.document_type.value} for order {document.order_id}"
            ) from exc

    def find_for_order(
        self,
        order_id: str,
        document_type: DocumentType,
    ) -> BillingDocument | None:
        row = self._conn.execute(
            SELECT_DOCUMENT_FOR_ORDER_SQL,
            {"order_id": order_id, "document_type": document_type.value},
        ).first()
        return _row_to_document(row) if row is not None else None

    def list_issued(
        self,
        document_type: DocumentType,
        since: datetime,
        until: datetime,
    ) -> list[BillingDocument]:
        rows = self._conn.execute(
            SELECT_ISSUED_DOCUMENTS_SQL,
            {
                "document_type": document_type.value,
                "since": datetime_to_text(since),
                "until": datetime_to_text(until),
            },
        ).all()
        return [_row_to_document(row) for row in rows]


def _row_to_document(row) -> BillingDocument:
    return BillingDocument(
        id=row.id,
        number=row.number,
        document_type=DocumentType(row.document_type),
        order_id=row.order_id,
        pricing=load_breakdown(row.pricing),
        created_at=text_to_datetime(row.created_at),
        gst_applicable=bool(row.gst_applicable),
    )


__all__ = ["SqlAlchemyDocumentRepository"]
