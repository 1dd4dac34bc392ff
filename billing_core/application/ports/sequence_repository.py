"""Port for document number counters."""

from typing import Protocol

from billing_core.domain.models import DocumentType


class SequenceRepositoryPort(Protocol):
    """Port exposing atomic per-period counters."""

    def increment(self, document_type: DocumentType, period_key: str) -> int:
        """Atomically bump and return the counter for a period.

        The first call for a period returns 1. Implementations must commit
        the increment on their own, outside any open unit of work.

        Raises:
            ConcurrencyConflict: If a racing first use could not be resolved.
        """


__all__ = ["SequenceRepositoryPort"]
