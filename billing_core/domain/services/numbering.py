"""Document number formatting.

Numbers are ``prefix + period_key + zero-padded sequence`` where the period
key comes from the document type's strftime pattern. Sequences restart at 1
for every new period key.
"""

from datetime import datetime

from billing_core.domain.errors import InvalidInput
from billing_core.domain.models import DocumentType


def period_key_for(document_type: DocumentType, at: datetime) -> str:
    """Return the counter partition for a document issued at ``at``."""
    return at.strftime(document_type.period_format)


def format_document_number(
    document_type: DocumentType,
    period_key: str,
    sequence: int,
) -> str:
    """Render a document number.

    Sequences wider than the configured width are rendered in full rather
    than truncated, so numbers stay unique.

    Raises:
        InvalidInput: If ``sequence`` is not a positive integer.
    """
    if isinstance(sequence, bool) or not isinstance(sequence, int) or sequence < 1:
        raise InvalidInput(f"Sequence must be a positive integer, got {sequence!r}")
    padded = str(sequence).zfill(document_type.width)
    return f"{document_type.prefix}{period_key}{padded}"


__all__ = ["period_key_for", "format_document_number"]
