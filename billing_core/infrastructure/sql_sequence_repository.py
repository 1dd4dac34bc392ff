"""SQLAlchemy-backed document number counters.

Each increment runs in its own short transaction: a single
``UPDATE ... SET last_issued = last_issued + 1`` bumps an existing counter,
and the first use of a period inserts it at 1. Two racing first uses hit
the primary key and the loser reports a ConcurrencyConflict.
"""

from sqlalchemy import text
from sqlalchemy.exc import IntegrityError

from billing_core.application.ports.database import DatabaseEnginePort
from billing_core.application.ports.sequence_repository import (
    SequenceRepositoryPort,
)
from billing_core.domain.errors import ConcurrencyConflict
from billing_core.domain.models import DocumentType

INCREMENT_SEQUENCE_SQL = text(
    """
    UPDATE sequence_counters
    SET last_issued = last_issued + 1
    WHERE document_type = :document_type AND period_key = :period_key
    """
)

INSERT_SEQUENCE_SQL = text(
    """
    INSERT INTO sequence_counters (document_type, period_key, last_issued)
    VALUES (:document_type, :period_key, 1)
    """
)

SELECT_SEQUENCE_SQL = text(
    """
    SELECT last_issued
    FROM sequence_counters
    WHERE document_type = :document_type AND period_key = :period_key
    """
)


class SqlAlchemySequenceRepository(SequenceRepositoryPort):
    """Atomic counters stored in the ``sequence_counters`` table."""

    def __init__(self, db_port: DatabaseEnginePort) -> None:
        """Initialize the repository.

        Args:
            db_port: Port providing access to the billing engine.
        """
        self._db_port = db_port

    def increment(self, document_type: DocumentType, period_key: str) -> int:
        """Bump the counter and return the issued value.

        Raises:
            ConcurrencyConflict: If a concurrent first use inserted the row.
        """
        params = {"document_type": document_type.value, "period_key": period_key}
        engine = self._db_port.get_engine()
        try:
            with engine.begin() as conn:
                updated = conn.execute(INCREMENT_SEQUENCE_SQL, params)
                if updated.rowcount == 0:
                    conn.execute(INSERT_SEQUENCE_SQL, params)
                    return 1
                return int(conn.execute(SELECT_SEQUENCE_SQL, params).scalar_one())
        except IntegrityError as exc:
            raise ConcurrencyConflict(
                f"Counter {document_type.value}/{period_key} was created "
                f"concurrently"
            ) from exc

    def current(self, document_type: DocumentType, period_key: str) -> int:
        """Return the last issued value, or 0 for an unused period."""
        params = {"document_type": document_type.value, "period_key": period_key}
        with self._db_port.get_engine().connect() as conn:
            value = conn.execute(SELECT_SEQUENCE_SQL, params).scalar_one_or_none()
        return int(value or 0)


__all__ = ["SqlAlchemySequenceRepository"]
