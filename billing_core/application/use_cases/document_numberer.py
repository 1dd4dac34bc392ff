"""Use case issuing collision-free document numbers.

Numbers come from an atomic per-period counter behind the sequence port.
Racing first uses of a period surface as ConcurrencyConflict and are
retried a bounded number of times.
"""

from datetime import datetime

from billing_core.application.ports.sequence_repository import (
    SequenceRepositoryPort,
)
from billing_core.domain.constants import DEFAULT_SEQUENCE_MAX_RETRIES
from billing_core.domain.errors import ConcurrencyConflict, ConcurrencyExhausted
from billing_core.domain.models import DocumentType
from billing_core.domain.services.numbering import (
    format_document_number,
    period_key_for,
)
from billing_core.infrastructure.logging.logger import get_app_logger


class DocumentNumberer:
    """Issue formatted document numbers from atomic counters."""

    def __init__(
        self,
        sequences: SequenceRepositoryPort,
        max_retries: int = DEFAULT_SEQUENCE_MAX_RETRIES,
        logger=None,
    ) -> None:
        """Initialize the numberer.

        Args:
            sequences: Port performing atomic counter increments.
            max_retries: Attempts before giving up on repeated conflicts.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._sequences = sequences
        self._max_retries = max(1, max_retries)
        self._logger = logger or get_app_logger()

    def next(self, document_type: DocumentType, period_key: str) -> str:
        """Issue the next number for a document type and period.

        Args:
            document_type: Kind of document being numbered.
            period_key: Counter partition, e.g. ``"202507"`` for invoices.

        Returns:
            str: The formatted, never previously issued number.

        Raises:
            ConcurrencyExhausted: If every attempt hit a conflict.
        """
        for attempt in range(1, self._max_retries + 1):
            try:
                sequence = self._sequences.increment(document_type, period_key)
            except ConcurrencyConflict as exc:
                self._logger.warning(
                    f"Sequence conflict for {document_type.value}/{period_key} "
                    f"(attempt {attempt}/{self._max_retries}): {exc}"
                )
                continue
            return format_document_number(document_type, period_key, sequence)

        self._logger.error(
            f"Giving up on {document_type.value}/{period_key} after "
            f"{self._max_retries} attempts"
        )
        raise ConcurrencyExhausted(
            f"Could not issue a {document_type.value} number for {period_key}"
        )

    def next_for(self, document_type: DocumentType, at: datetime) -> str:
        """Issue the next number for the period containing ``at``."""
        return self.next(document_type, period_key_for(document_type, at))


__all__ = ["DocumentNumberer"]
