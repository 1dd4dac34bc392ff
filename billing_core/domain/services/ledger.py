"""Pure wallet ledger rules.

Functions here take the current wallet state and return the next state
together with the ledger transaction that explains it. Persistence and
concurrency control live in the application layer.
"""

from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from billing_core.domain.errors import (
    AlreadyReversed,
    InsufficientBalance,
    InvalidAmount,
    InvalidInput,
    NotCompleted,
    NotPending,
    NotReversible,
    WalletBlocked,
)
from billing_core.domain.models import (
    LedgerAudit,
    LedgerTransaction,
    Money,
    PairingRole,
    PaymentMethod,
    TransactionCategory,
    TransactionDetails,
    TransactionPairing,
    TransactionStatus,
    TransactionSummary,
    TransactionType,
    WalletAccount,
)

SUMMARY_PERIODS = ("day", "week", "month", "year")


def apply_credit(
    wallet: WalletAccount,
    amount: Money,
    details: TransactionDetails,
    *,
    transaction_id: str,
    transaction_number: str,
    at: datetime,
) -> tuple[WalletAccount, LedgerTransaction]:
    """Credit the wallet and return the new state with its transaction."""
    return _apply(
        wallet,
        TransactionType.CREDIT,
        amount,
        details,
        transaction_id=transaction_id,
        transaction_number=transaction_number,
        at=at,
    )


def apply_debit(
    wallet: WalletAccount,
    amount: Money,
    details: TransactionDetails,
    *,
    transaction_id: str,
    transaction_number: str,
    at: datetime,
) -> tuple[WalletAccount, LedgerTransaction]:
    """Debit the wallet and return the new state with its transaction."""
    return _apply(
        wallet,
        TransactionType.DEBIT,
        amount,
        details,
        transaction_id=transaction_id,
        transaction_number=transaction_number,
        at=at,
    )


def open_pending(
    wallet: WalletAccount,
    transaction_type: TransactionType,
    amount: Money,
    details: TransactionDetails,
    *,
    transaction_id: str,
    transaction_number: str,
    at: datetime,
) -> LedgerTransaction:
    """Record a movement awaiting confirmation; the balance is untouched."""
    _require_positive(amount)
    _require_open(wallet)
    return _build_transaction(
        wallet,
        transaction_type,
        amount,
        details,
        transaction_id=transaction_id,
        transaction_number=transaction_number,
        status=TransactionStatus.PENDING,
        at=at,
    )


def settle_pending(
    wallet: WalletAccount,
    transaction: LedgerTransaction,
    *,
    at: datetime,
) -> tuple[WalletAccount, LedgerTransaction]:
    """Apply a pending transaction to the wallet and mark it completed."""
    if transaction.status is not TransactionStatus.PENDING:
        raise NotPending(
            f"Transaction {transaction.number} is {transaction.status.value}"
        )
    updated = _move(wallet, transaction.type, transaction.amount, at)
    settled = replace(
        transaction,
        status=TransactionStatus.COMPLETED,
        balance_after=updated.balance,
        ledger_position=updated.transaction_count,
        processed_at=at,
    )
    return updated, settled


def fail_pending(
    transaction: LedgerTransaction,
    reason: str,
    *,
    at: datetime,
) -> LedgerTransaction:
    """Mark a pending transaction as failed."""
    if transaction.status is not TransactionStatus.PENDING:
        raise NotPending(
            f"Transaction {transaction.number} is {transaction.status.value}"
        )
    return replace(
        transaction,
        status=TransactionStatus.FAILED,
        failure_reason=reason,
        processed_at=at,
    )


def plan_reversal(
    original: LedgerTransaction,
    wallet: WalletAccount,
    reason: str,
    *,
    transaction_id: str,
    transaction_number: str,
    at: datetime,
) -> tuple[WalletAccount, LedgerTransaction, LedgerTransaction]:
    """Build the reversal of a completed transaction.

    The reversal moves the same amount in the opposite direction through the
    normal credit/debit rules, so reversing a credit can still fail with
    InsufficientBalance.

    Returns:
        tuple: Updated wallet, the reversal transaction, and the original
        transaction marked as reversed. Both transactions point at each other.
    """
    if original.status is TransactionStatus.REVERSED or (
        original.pairing is not None
        and original.pairing.role is PairingRole.REVERSED_BY
    ):
        raise AlreadyReversed(f"Transaction {original.number} is already reversed")
    if not original.is_reversible:
        raise NotReversible(f"Transaction {original.number} is not reversible")
    if original.status is not TransactionStatus.COMPLETED:
        raise NotCompleted(
            f"Only completed transactions can be reversed; "
            f"{original.number} is {original.status.value}"
        )

    details = TransactionDetails(
        category=TransactionCategory.ADMIN_ADJUSTMENT,
        description=f"Reversal of transaction {original.number} - {reason}",
        payment_method=PaymentMethod.SYSTEM,
        related_order=original.related_order,
        is_reversible=False,
        metadata={
            "original_transaction": original.number,
            "reversal_reason": reason,
        },
    )
    updated, reversal = _apply(
        wallet,
        original.type.opposite,
        original.amount,
        details,
        transaction_id=transaction_id,
        transaction_number=transaction_number,
        at=at,
    )
    reversal = replace(
        reversal,
        pairing=TransactionPairing(PairingRole.REVERSAL_OF, original.id),
    )
    reversed_original = replace(
        original,
        status=TransactionStatus.REVERSED,
        reversed_at=at,
        pairing=TransactionPairing(PairingRole.REVERSED_BY, reversal.id),
    )
    return updated, reversal, reversed_original


def block(wallet: WalletAccount, reason: str, *, at: datetime) -> WalletAccount:
    return replace(
        wallet,
        is_blocked=True,
        blocked_reason=reason,
        blocked_at=at,
        version=wallet.version + 1,
    )


def unblock(wallet: WalletAccount) -> WalletAccount:
    return replace(
        wallet,
        is_blocked=False,
        blocked_reason=None,
        blocked_at=None,
        version=wallet.version + 1,
    )


def replay_ledger(
    wallet: WalletAccount,
    transactions: Iterable[LedgerTransaction],
) -> LedgerAudit:
    """Replay applied transactions and compare with the stored balance.

    Transactions are folded in ledger-position order. Every applied
    transaction's ``balance_after`` must equal the running balance, which
    must never go negative and must end at ``wallet.balance``.
    """
    applied = sorted(
        (txn for txn in transactions if txn.is_applied),
        key=lambda txn: txn.ledger_position or 0,
    )
    running = Money.zero()
    mismatched: list[int] = []
    for txn in applied:
        running = running + txn.signed_amount
        if running.is_negative() or txn.balance_after != running:
            mismatched.append(txn.ledger_position or 0)
    return LedgerAudit(
        wallet_id=wallet.id,
        balance=wallet.balance,
        replayed_balance=running,
        applied_count=len(applied),
        mismatched_positions=tuple(mismatched),
    )


def summarize_transactions(
    transactions: Iterable[LedgerTransaction],
    *,
    since: datetime,
    until: datetime,
) -> TransactionSummary:
    """Total completed credits and debits created within ``[since, until]``."""
    credits = 0
    debits = 0
    credit_count = 0
    debit_count = 0
    for txn in transactions:
        if txn.status is not TransactionStatus.COMPLETED:
            continue
        if txn.created_at < since or txn.created_at > until:
            continue
        if txn.type is TransactionType.CREDIT:
            credits += txn.amount.minor
            credit_count += 1
        else:
            debits += txn.amount.minor
            debit_count += 1
    return TransactionSummary(
        since=since,
        until=until,
        total_credits=Money(credits),
        total_debits=Money(debits),
        credit_count=credit_count,
        debit_count=debit_count,
    )


def period_start(period: str, now: datetime) -> datetime:
    """Return the start of a summary period ending at ``now``."""
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if period == "day":
        return midnight
    if period == "week":
        return now - timedelta(days=7)
    if period == "month":
        return midnight.replace(day=1)
    if period == "year":
        return midnight.replace(month=1, day=1)
    raise InvalidInput(
        f"Unknown summary period {period!r}; expected one of {SUMMARY_PERIODS}"
    )


def _apply(
    wallet: WalletAccount,
    transaction_type: TransactionType,
    amount: Money,
    details: TransactionDetails,
    *,
    transaction_id: str,
    transaction_number: str,
    at: datetime,
) -> tuple[WalletAccount, LedgerTransaction]:
    _require_positive(amount)
    updated = _move(wallet, transaction_type, amount, at)
    transaction = _build_transaction(
        wallet,
        transaction_type,
        amount,
        details,
        transaction_id=transaction_id,
        transaction_number=transaction_number,
        status=TransactionStatus.COMPLETED,
        at=at,
    )
    transaction = replace(
        transaction,
        balance_after=updated.balance,
        ledger_position=updated.transaction_count,
        processed_at=at,
    )
    return updated, transaction


def _move(
    wallet: WalletAccount,
    transaction_type: TransactionType,
    amount: Money,
    at: datetime,
) -> WalletAccount:
    _require_open(wallet)
    if transaction_type is TransactionType.CREDIT:
        return replace(
            wallet,
            balance=wallet.balance + amount,
            total_credits=wallet.total_credits + amount,
            transaction_count=wallet.transaction_count + 1,
            last_transaction_at=at,
            version=wallet.version + 1,
        )
    if amount > wallet.balance:
        raise InsufficientBalance(
            f"Wallet {wallet.id} balance {wallet.balance} is below {amount}"
        )
    return replace(
        wallet,
        balance=wallet.balance - amount,
        total_debits=wallet.total_debits + amount,
        transaction_count=wallet.transaction_count + 1,
        last_transaction_at=at,
        version=wallet.version + 1,
    )


def _build_transaction(
    wallet: WalletAccount,
    transaction_type: TransactionType,
    amount: Money,
    details: TransactionDetails,
    *,
    transaction_id: str,
    transaction_number: str,
    status: TransactionStatus,
    at: datetime,
) -> LedgerTransaction:
    return LedgerTransaction(
        id=transaction_id,
        number=transaction_number,
        wallet_id=wallet.id,
        user_id=wallet.user_id,
        type=transaction_type,
        amount=amount,
        category=details.category,
        status=status,
        created_at=at,
        description=details.description,
        payment_method=details.payment_method,
        related_order=details.related_order,
        external_reference=details.external_reference,
        metadata=dict(details.metadata),
        is_reversible=details.is_reversible,
    )


def _require_positive(amount: Money) -> None:
    if not isinstance(amount, Money) or amount.minor <= 0:
        raise InvalidAmount(f"Ledger amounts must be positive, got {amount}")


def _require_open(wallet: WalletAccount) -> None:
    if wallet.is_blocked:
        raise WalletBlocked(
            f"Wallet {wallet.id} is blocked: {wallet.blocked_reason or 'no reason'}"
        )
    if not wallet.is_active:
        raise WalletBlocked(f"Wallet {wallet.id} is inactive")


__all__ = [
    "SUMMARY_PERIODS",
    "apply_credit",
    "apply_debit",
    "open_pending",
    "settle_pending",
    "fail_pending",
    "plan_reversal",
    "block",
    "unblock",
    "replay_ledger",
    "summarize_transactions",
    "period_start",
]
