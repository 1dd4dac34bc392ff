"""CLI adapter replaying a wallet ledger against its stored balance."""

import argparse

from billing_core.domain.errors import BillingError
from billing_core.infrastructure.container import build_storage, build_wallet_ledger
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.infrastructure.settings import BillingSettings


def main(argv: list[str] | None = None) -> int:
    """Audit the wallet of the user given on the command line.

    Returns:
        int: 0 when the ledger is consistent, 1 otherwise.
    """
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("user_id", help="Owner of the wallet to audit")
    args = parser.parse_args(argv)

    logger = get_app_logger()
    settings = BillingSettings.from_env()
    ledger = build_wallet_ledger(build_storage(settings), settings)
    try:
        report = ledger.audit(args.user_id)
    except BillingError as exc:
        logger.error(f"Cannot audit wallet of {args.user_id}: {exc}")
        return 1

    status = "consistent" if report.is_consistent else "INCONSISTENT"
    print(
        f"Wallet {report.wallet_id}: {status}; balance={report.balance}, "
        f"replayed={report.replayed_balance}, "
        f"applied transactions={report.applied_count}"
    )
    if report.mismatched_positions:
        positions = ", ".join(str(p) for p in report.mismatched_positions)
        print(f"Mismatched ledger positions: {positions}")
    return 0 if report.is_consistent else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
