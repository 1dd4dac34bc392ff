"""Use case summarizing GST collected on issued documents."""

from datetime import datetime

from billing_core.application.ports.unit_of_work import UnitOfWorkPort
from billing_core.domain.models import DocumentType, TaxRateSummary
from billing_core.domain.services.tax_summary import summarize_tax
from billing_core.infrastructure.logging.logger import get_app_logger


class TaxReportUseCase:
    """Group taxes of documents issued in a window by rate and HSN code."""

    def __init__(self, uow: UnitOfWorkPort, logger=None) -> None:
        self._uow = uow
        self._logger = logger or get_app_logger()

    def execute(
        self,
        since: datetime,
        until: datetime,
        document_type: DocumentType = DocumentType.INVOICE,
    ) -> list[TaxRateSummary]:
        """Return one row per ``(gst_rate, hsn_code)``.

        Args:
            since: Start of the window (inclusive).
            until: End of the window (inclusive).
            document_type: Documents to include; invoices by default.
        """
        with self._uow.begin() as session:
            documents = session.documents.list_issued(document_type, since, until)
        rows = summarize_tax(document.pricing for document in documents)
        self._logger.info(
            f"Tax report over {len(documents)} {document_type.value} documents "
            f"produced {len(rows)} rows"
        )
        return rows


__all__ = ["TaxReportUseCase"]
