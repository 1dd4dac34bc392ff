"""Simple CLI to validate the billing database connection.

This adapter is meant for local operations: it instantiates the concrete
database adapter from the infrastructure layer and runs a basic health
check against the billing database.
"""

from billing_core.infrastructure.container import build_database_adapter
from billing_core.infrastructure.logging.logger import get_app_logger


def main() -> None:
    """Run a basic connectivity check against the configured database."""
    adapter = build_database_adapter()
    logger = get_app_logger()

    engine = adapter.get_engine()
    logger.info(f"Billing DB: {engine.url}")

    with engine.connect() as conn:
        conn.exec_driver_sql("SELECT 1")

    logger.info("Billing database connection is working.")


if __name__ == "__main__":  # pragma: no cover
    main()
