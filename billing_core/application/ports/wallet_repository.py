"""Port for wallet and ledger transaction persistence."""

from typing import Protocol

from billing_core.domain.models import (
    LedgerTransaction,
    TransactionFilter,
    WalletAccount,
)


class WalletRepositoryPort(Protocol):
    """Port exposing wallets and their ledger transactions."""

    def find_by_user(self, user_id: str) -> WalletAccount | None:
        """Return the wallet owned by ``user_id``, if any."""

    def find_by_id(self, wallet_id: str) -> WalletAccount | None:
        """Return the wallet with ``wallet_id``, if any."""

    def add(self, wallet: WalletAccount) -> None:
        """Insert a new wallet.

        Raises:
            ConcurrencyConflict: If the user already owns a wallet.
        """

    def compare_and_swap(
        self,
        wallet: WalletAccount,
        expected_version: int,
    ) -> bool:
        """Replace the stored wallet when its version still matches.

        Args:
            wallet: New wallet state, carrying the bumped version.
            expected_version: Version the caller read before changing it.

        Returns:
            bool: False when another writer got there first.
        """

    def add_transaction(self, transaction: LedgerTransaction) -> None:
        """Append a ledger transaction."""

    def update_transaction(self, transaction: LedgerTransaction) -> None:
        """Persist a status transition of an existing transaction."""

    def get_transaction(self, transaction_id: str) -> LedgerTransaction | None:
        """Return a transaction by id, if any."""

    def list_transactions(
        self,
        wallet_id: str,
        query: TransactionFilter | None = None,
    ) -> list[LedgerTransaction]:
        """Return transactions newest first.

        Without a filter every transaction of the wallet is returned.
        """


__all__ = ["WalletRepositoryPort"]
