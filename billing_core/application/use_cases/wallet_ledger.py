"""Use case maintaining wallet balances through an append-only ledger.

Every mutation reads the wallet, computes the next state with the pure
ledger rules, and writes it back with a version-guarded compare-and-swap in
the same unit of work as the ledger transaction. Lost races are reloaded
and retried a bounded number of times.
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import TypeVar

from billing_core.application.ports.unit_of_work import (
    BillingSession,
    UnitOfWorkPort,
)
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.domain.constants import DEFAULT_LEDGER_MAX_RETRIES
from billing_core.domain.errors import (
    BusinessRuleViolation,
    ConcurrencyConflict,
    ConcurrencyExhausted,
    InvalidAmount,
    InvalidInput,
    LedgerInconsistency,
    LedgerWorkflowError,
    PaymentRejected,
    TransactionNotFound,
    WalletNotFound,
)
from billing_core.domain.models import (
    DocumentType,
    LedgerAudit,
    LedgerResult,
    LedgerTransaction,
    Money,
    TransactionDetails,
    TransactionFilter,
    TransactionSummary,
    TransactionType,
    WalletAccount,
)
from billing_core.domain.services import ledger as rules
from billing_core.infrastructure.logging.logger import (
    get_app_logger,
    get_audit_logger,
)
from billing_core.utils.utils import new_id, utc_now

T = TypeVar("T")


class WalletLedger:
    """Credit, debit, reverse, and audit user wallets."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        numberer: DocumentNumberer,
        max_retries: int = DEFAULT_LEDGER_MAX_RETRIES,
        clock: Callable[[], datetime] | None = None,
        logger=None,
        audit_logger=None,
    ) -> None:
        """Initialize the ledger.

        Args:
            uow: Port opening units of work over the wallet repository.
            numberer: Issues ``TXN`` numbers for new transactions.
            max_retries: Attempts before a version conflict is surfaced.
            clock: Callable returning the current time.
            logger: Optional logger compatible with logging.Logger-like API.
            audit_logger: Optional logger receiving one line per movement.
        """
        self._uow = uow
        self._numberer = numberer
        self._max_retries = max(1, max_retries)
        self._clock = clock or utc_now
        self._logger = logger or get_app_logger()
        self._audit = audit_logger or get_audit_logger()

    def get_or_create_wallet(self, user_id: str) -> WalletAccount:
        """Return the user's wallet, creating an empty one on first use."""
        return self._run(
            lambda session: self._load_wallet(session, user_id, create=True),
            None,
            f"wallet lookup for user {user_id}",
        )

    def get_wallet(self, user_id: str) -> WalletAccount:
        """Return the user's wallet.

        Raises:
            WalletNotFound: If the user has no wallet.
        """
        with self._uow.begin() as session:
            return self._load_wallet(session, user_id)

    def credit(
        self,
        user_id: str,
        amount: Money,
        details: TransactionDetails,
        session: BillingSession | None = None,
    ) -> LedgerResult:
        """Add money to a wallet.

        Args:
            user_id: Wallet owner; the wallet is created if missing.
            amount: Positive amount to credit.
            details: Category, description, and references for the entry.
            session: Open unit of work to join instead of opening one.

        Returns:
            LedgerResult: Updated wallet and the completed transaction.

        Raises:
            InvalidAmount: If ``amount`` is not positive.
            WalletBlocked: If the wallet is blocked.
            ConcurrencyExhausted: If version conflicts persist.
        """
        return self._move(TransactionType.CREDIT, user_id, amount, details, session)

    def debit(
        self,
        user_id: str,
        amount: Money,
        details: TransactionDetails,
        session: BillingSession | None = None,
    ) -> LedgerResult:
        """Take money out of a wallet.

        The balance check runs against the state that the compare-and-swap
        guards, so two concurrent debits can never both overdraw it.

        Raises:
            InvalidAmount: If ``amount`` is not positive.
            WalletBlocked: If the wallet is blocked.
            InsufficientBalance: If the balance does not cover ``amount``.
            ConcurrencyExhausted: If version conflicts persist.
        """
        return self._move(TransactionType.DEBIT, user_id, amount, details, session)

    def reverse(
        self,
        transaction_id: str,
        reason: str,
        session: BillingSession | None = None,
    ) -> LedgerResult:
        """Cancel a completed transaction with an opposite movement.

        Returns:
            LedgerResult: Updated wallet and the new reversal transaction.

        Raises:
            TransactionNotFound: If no transaction has ``transaction_id``.
            AlreadyReversed: If the transaction was reversed before.
            NotReversible: If the transaction is flagged non-reversible.
            NotCompleted: If the transaction is not completed.
            InsufficientBalance: If reversing a credit would overdraw.
        """
        number = self._issue_number()

        def action(active: BillingSession) -> LedgerResult:
            original = self._load_transaction(active, transaction_id)
            wallet = self._load_wallet_by_id(active, original.wallet_id)
            updated, reversal, reversed_original = rules.plan_reversal(
                original,
                wallet,
                reason,
                transaction_id=new_id(),
                transaction_number=number,
                at=self._clock(),
            )
            self._swap(active, wallet, updated)
            active.wallets.add_transaction(reversal)
            active.wallets.update_transaction(reversed_original)
            return LedgerResult(wallet=updated, transaction=reversal)

        result = self._run(action, session, f"reversal of {transaction_id}")
        self._audit.info(
            f"REVERSAL wallet={result.wallet.id} txn={result.transaction.number} "
            f"of={transaction_id} type={result.transaction.type.value} "
            f"amount={result.transaction.amount} "
            f"balance_after={result.wallet.balance} reason={reason}"
        )
        return result

    def create_pending(
        self,
        user_id: str,
        transaction_type: TransactionType,
        amount: Money,
        details: TransactionDetails,
    ) -> LedgerTransaction:
        """Record a movement awaiting external confirmation.

        Pending transactions never change the balance until completed.
        """
        self._require_positive(amount)
        number = details.transaction_number or self._issue_number()

        def action(active: BillingSession) -> LedgerTransaction:
            wallet = self._load_wallet(active, user_id, create=True)
            pending = rules.open_pending(
                wallet,
                transaction_type,
                amount,
                details,
                transaction_id=new_id(),
                transaction_number=number,
                at=self._clock(),
            )
            active.wallets.add_transaction(pending)
            return pending

        pending = self._run(
            action,
            None,
            f"pending {transaction_type.value} for {user_id}",
        )
        self._logger.info(
            f"Opened pending {transaction_type.value} {pending.number} "
            f"of {amount} for user {user_id}"
        )
        return pending

    def complete_pending(self, transaction_id: str) -> LedgerResult:
        """Apply a pending transaction to its wallet.

        Raises:
            NotPending: If the transaction is no longer pending.
            InsufficientBalance: If a pending debit cannot be covered.
        """

        def action(active: BillingSession) -> LedgerResult:
            pending = self._load_transaction(active, transaction_id)
            wallet = self._load_wallet_by_id(active, pending.wallet_id)
            updated, settled = rules.settle_pending(wallet, pending, at=self._clock())
            self._swap(active, wallet, updated)
            active.wallets.update_transaction(settled)
            return LedgerResult(wallet=updated, transaction=settled)

        result = self._run(action, None, f"completion of {transaction_id}")
        self._audit.info(
            f"{result.transaction.type.value.upper()} wallet={result.wallet.id} "
            f"txn={result.transaction.number} amount={result.transaction.amount} "
            f"balance_after={result.wallet.balance} settled=pending"
        )
        return result

    def fail_pending(self, transaction_id: str, reason: str) -> LedgerTransaction:
        """Mark a pending transaction as failed without moving money."""

        def action(active: BillingSession) -> LedgerTransaction:
            pending = self._load_transaction(active, transaction_id)
            wallet = self._load_wallet_by_id(active, pending.wallet_id)
            failed = rules.fail_pending(pending, reason, at=self._clock())
            # Bump the version so a concurrent completion of the same
            # transaction loses the race.
            self._swap(active, wallet, replace(wallet, version=wallet.version + 1))
            active.wallets.update_transaction(failed)
            return failed

        failed = self._run(action, None, f"failure of {transaction_id}")
        self._logger.info(f"Pending transaction {failed.number} failed: {reason}")
        return failed

    def block_wallet(self, user_id: str, reason: str) -> WalletAccount:
        """Block a wallet; it accepts no movements until unblocked."""

        def action(active: BillingSession) -> WalletAccount:
            wallet = self._load_wallet(active, user_id)
            updated = rules.block(wallet, reason, at=self._clock())
            self._swap(active, wallet, updated)
            return updated

        wallet = self._run(action, None, f"block of wallet for {user_id}")
        self._logger.warning(f"Blocked wallet {wallet.id} of user {user_id}: {reason}")
        return wallet

    def unblock_wallet(self, user_id: str) -> WalletAccount:
        def action(active: BillingSession) -> WalletAccount:
            wallet = self._load_wallet(active, user_id)
            updated = rules.unblock(wallet)
            self._swap(active, wallet, updated)
            return updated

        wallet = self._run(action, None, f"unblock of wallet for {user_id}")
        self._logger.info(f"Unblocked wallet {wallet.id} of user {user_id}")
        return wallet

    def history(
        self,
        user_id: str,
        query: TransactionFilter | None = None,
    ) -> list[LedgerTransaction]:
        """Return the user's transactions newest first, filtered and paged."""
        with self._uow.begin() as session:
            wallet = self._load_wallet(session, user_id)
            return session.wallets.list_transactions(
                wallet.id,
                query or TransactionFilter(),
            )

    def summary(
        self,
        user_id: str,
        since: datetime | None = None,
        until: datetime | None = None,
        period: str | None = None,
    ) -> TransactionSummary:
        """Total completed credits and debits over a period.

        Args:
            user_id: Wallet owner.
            since: Start of the window; defaults to the wallet creation time.
            until: End of the window; defaults to now.
            period: One of ``day``, ``week``, ``month``, ``year``; overrides
                ``since`` with the start of that period.
        """
        now = self._clock()
        with self._uow.begin() as session:
            wallet = self._load_wallet(session, user_id)
            transactions = session.wallets.list_transactions(wallet.id)
        until = until or now
        if period is not None:
            since = rules.period_start(period, until)
        return rules.summarize_transactions(
            transactions,
            since=since or wallet.created_at,
            until=until,
        )

    def audit(self, user_id: str, raise_on_mismatch: bool = False) -> LedgerAudit:
        """Replay the wallet's ledger and compare it with the balance.

        Raises:
            LedgerInconsistency: If ``raise_on_mismatch`` and the replay
                disagrees with the stored balance.
        """
        with self._uow.begin() as session:
            wallet = self._load_wallet(session, user_id)
            transactions = session.wallets.list_transactions(wallet.id)
        report = rules.replay_ledger(wallet, transactions)
        if report.is_consistent:
            self._logger.info(
                f"Ledger of wallet {wallet.id} is consistent "
                f"({report.applied_count} applied transactions)"
            )
            return report

        message = (
            f"Ledger of wallet {wallet.id} is inconsistent: balance "
            f"{report.balance}, replayed {report.replayed_balance}, "
            f"mismatched positions {list(report.mismatched_positions)}"
        )
        self._logger.error(message)
        if raise_on_mismatch:
            raise LedgerInconsistency(message)
        return report

    def _move(
        self,
        transaction_type: TransactionType,
        user_id: str,
        amount: Money,
        details: TransactionDetails,
        session: BillingSession | None,
    ) -> LedgerResult:
        self._require_positive(amount)
        number = details.transaction_number or self._issue_number()
        apply = (
            rules.apply_credit
            if transaction_type is TransactionType.CREDIT
            else rules.apply_debit
        )

        def action(active: BillingSession) -> LedgerResult:
            wallet = self._load_wallet(active, user_id, create=True)
            updated, transaction = apply(
                wallet,
                amount,
                details,
                transaction_id=new_id(),
                transaction_number=number,
                at=self._clock(),
            )
            self._swap(active, wallet, updated)
            active.wallets.add_transaction(transaction)
            return LedgerResult(wallet=updated, transaction=transaction)

        result = self._run(
            action,
            session,
            f"{transaction_type.value} for user {user_id}",
        )
        self._audit.info(
            f"{transaction_type.value.upper()} wallet={result.wallet.id} "
            f"txn={result.transaction.number} amount={amount} "
            f"category={details.category.value} "
            f"balance_after={result.wallet.balance}"
        )
        return result

    def _run(
        self,
        action: Callable[[BillingSession], T],
        session: BillingSession | None,
        description: str,
    ) -> T:
        for attempt in range(1, self._max_retries + 1):
            try:
                if session is not None:
                    return action(session)
                with self._uow.begin() as own_session:
                    return action(own_session)
            except ConcurrencyConflict as exc:
                self._logger.warning(
                    f"Conflict during {description} "
                    f"(attempt {attempt}/{self._max_retries}): {exc}"
                )
            except (InvalidInput, PaymentRejected, BusinessRuleViolation) as exc:
                self._logger.warning(f"Rejected {description}: {exc}")
                raise
            except LedgerWorkflowError as exc:
                self._logger.error(f"Failed {description}: {exc}")
                raise

        self._logger.error(
            f"Giving up on {description} after {self._max_retries} attempts"
        )
        raise ConcurrencyExhausted(
            f"{description} kept conflicting after {self._max_retries} attempts"
        )

    def _load_wallet(
        self,
        session: BillingSession,
        user_id: str,
        create: bool = False,
    ) -> WalletAccount:
        wallet = session.wallets.find_by_user(user_id)
        if wallet is not None:
            return wallet
        if not create:
            raise WalletNotFound(f"No wallet for user {user_id}")
        wallet = WalletAccount(id=new_id(), user_id=user_id, created_at=self._clock())
        session.wallets.add(wallet)
        self._logger.info(f"Created wallet {wallet.id} for user {user_id}")
        return wallet

    @staticmethod
    def _load_wallet_by_id(session: BillingSession, wallet_id: str) -> WalletAccount:
        wallet = session.wallets.find_by_id(wallet_id)
        if wallet is None:
            raise WalletNotFound(f"No wallet with id {wallet_id}")
        return wallet

    @staticmethod
    def _load_transaction(
        session: BillingSession,
        transaction_id: str,
    ) -> LedgerTransaction:
        transaction = session.wallets.get_transaction(transaction_id)
        if transaction is None:
            raise TransactionNotFound(f"No transaction with id {transaction_id}")
        return transaction

    @staticmethod
    def _swap(
        session: BillingSession,
        before: WalletAccount,
        after: WalletAccount,
    ) -> None:
        if not session.wallets.compare_and_swap(after, before.version):
            raise ConcurrencyConflict(
                f"Wallet {before.id} changed since version {before.version}"
            )

    def _require_positive(self, amount: Money) -> None:
        if not isinstance(amount, Money) or amount.minor <= 0:
            self._logger.warning(f"Rejected non-positive ledger amount {amount}")
            raise InvalidAmount(f"Ledger amounts must be positive, got {amount}")

    def _issue_number(self) -> str:
        return self._numberer.next_for(DocumentType.WALLET_TRANSACTION, self._clock())


__all__ = ["WalletLedger"]
