"""CLI adapter creating the billing schema.

The statements are idempotent, so running the command against an existing
database only adds what is missing.
"""

from billing_core.infrastructure.container import build_database_adapter
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.infrastructure.schema import TABLE_NAMES, ensure_schema


def main() -> None:
    """Create the billing tables in ``BILLING_DB_URL``."""
    logger = get_app_logger()
    engine = build_database_adapter().get_engine()
    ensure_schema(engine, logger=logger)
    print(f"Billing schema ready: {', '.join(TABLE_NAMES)}")


if __name__ == "__main__":  # pragma: no cover
    main()
