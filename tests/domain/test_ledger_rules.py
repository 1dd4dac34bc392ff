"""Tests for the pure wallet ledger rules."""

from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

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
    Money,
    PairingRole,
    PaymentMethod,
    TransactionCategory,
    TransactionDetails,
    TransactionStatus,
    TransactionType,
    WalletAccount,
)
from billing_core.domain.services import ledger

AT = datetime(2025, 7, 15, 10, 30, tzinfo=timezone.utc)
TOPUP = TransactionDetails(category=TransactionCategory.WALLET_TOPUP)
PAYMENT = TransactionDetails(category=TransactionCategory.ORDER_PAYMENT)


def _wallet(balance: str = "0") -> WalletAccount:
    return WalletAccount(
        id="w-1",
        user_id="u-1",
        created_at=AT,
        balance=Money.parse(balance),
    )


def _credit(wallet, amount, number="TXN1"):
    return ledger.apply_credit(
        wallet,
        Money.parse(amount),
        TOPUP,
        transaction_id=f"id-{number}",
        transaction_number=number,
        at=AT,
    )


def _debit(wallet, amount, number="TXN2"):
    return ledger.apply_debit(
        wallet,
        Money.parse(amount),
        PAYMENT,
        transaction_id=f"id-{number}",
        transaction_number=number,
        at=AT,
    )


def test_credit_then_debit_updates_running_totals() -> None:
    """Each movement bumps the version and records the balance after it."""
    wallet, credit = _credit(_wallet(), "500")
    wallet, debit = _debit(wallet, "120.50")

    assert wallet.balance == Money.parse("379.50")
    assert wallet.total_credits == Money.parse("500")
    assert wallet.total_debits == Money.parse("120.50")
    assert wallet.transaction_count == 2
    assert wallet.version == 2
    assert wallet.last_transaction_at == AT
    assert credit.balance_after == Money.parse("500")
    assert credit.ledger_position == 1
    assert debit.balance_after == Money.parse("379.50")
    assert debit.status is TransactionStatus.COMPLETED


def test_debit_cannot_overdraw() -> None:
    """Debiting more than the balance raises InsufficientBalance."""
    wallet, _ = _debit(_wallet("500"), "500")
    assert wallet.balance == Money(0)

    with pytest.raises(InsufficientBalance):
        _debit(wallet, "0.01", number="TXN3")


@pytest.mark.parametrize("amount", ["0", "-1"])
def test_non_positive_amounts_are_rejected(amount) -> None:
    """Ledger amounts must be strictly positive."""
    with pytest.raises(InvalidAmount):
        _credit(_wallet(), amount)


def test_blocked_and_inactive_wallets_refuse_movements() -> None:
    """Blocked or inactive wallets reject credits and debits."""
    blocked = ledger.block(_wallet("100"), "fraud review", at=AT)
    assert blocked.version == 1
    with pytest.raises(WalletBlocked):
        _credit(blocked, "1")

    with pytest.raises(WalletBlocked):
        _debit(replace(_wallet("100"), is_active=False), "1")

    unblocked = ledger.unblock(blocked)
    assert unblocked.is_blocked is False
    assert unblocked.blocked_reason is None
    assert unblocked.version == 2


def test_plan_reversal_pairs_both_transactions() -> None:
    """A reversal moves the amount back and links to the original."""
    wallet, credit = _credit(_wallet(), "300")

    wallet, reversal, original = ledger.plan_reversal(
        credit,
        wallet,
        "duplicate top-up",
        transaction_id="rev-1",
        transaction_number="TXN9",
        at=AT,
    )

    assert wallet.balance == Money(0)
    assert reversal.type is TransactionType.DEBIT
    assert reversal.category is TransactionCategory.ADMIN_ADJUSTMENT
    assert reversal.payment_method is PaymentMethod.SYSTEM
    assert reversal.is_reversible is False
    assert reversal.description == "Reversal of transaction TXN1 - duplicate top-up"
    assert reversal.metadata == {
        "original_transaction": "TXN1",
        "reversal_reason": "duplicate top-up",
    }
    assert reversal.pairing.role is PairingRole.REVERSAL_OF
    assert reversal.pairing.counterpart_id == credit.id
    assert original.status is TransactionStatus.REVERSED
    assert original.pairing.role is PairingRole.REVERSED_BY
    assert original.pairing.counterpart_id == "rev-1"
    assert original.reversed_at == AT

    with pytest.raises(AlreadyReversed):
        ledger.plan_reversal(
            original,
            wallet,
            "again",
            transaction_id="rev-2",
            transaction_number="TXN10",
            at=AT,
        )
    with pytest.raises(NotReversible):
        ledger.plan_reversal(
            reversal,
            wallet,
            "undo the undo",
            transaction_id="rev-3",
            transaction_number="TXN11",
            at=AT,
        )


def test_reversing_spent_credit_fails() -> None:
    """Reversing a credit whose money is gone raises InsufficientBalance."""
    wallet, credit = _credit(_wallet(), "300")
    wallet, _ = _debit(wallet, "250")

    with pytest.raises(InsufficientBalance):
        ledger.plan_reversal(
            credit,
            wallet,
            "chargeback",
            transaction_id="rev-1",
            transaction_number="TXN9",
            at=AT,
        )


def test_pending_lifecycle() -> None:
    """Pending movements leave the balance alone until settled."""
    wallet = _wallet("50")
    pending = ledger.open_pending(
        wallet,
        TransactionType.CREDIT,
        Money.parse("25"),
        TOPUP,
        transaction_id="p-1",
        transaction_number="TXN5",
        at=AT,
    )
    assert pending.status is TransactionStatus.PENDING
    assert pending.balance_after is None

    with pytest.raises(NotCompleted):
        ledger.plan_reversal(
            pending,
            wallet,
            "too early",
            transaction_id="rev-1",
            transaction_number="TXN6",
            at=AT,
        )

    settled_wallet, settled = ledger.settle_pending(wallet, pending, at=AT)
    assert settled_wallet.balance == Money.parse("75")
    assert settled.status is TransactionStatus.COMPLETED
    assert settled.balance_after == Money.parse("75")
    assert settled.processed_at == AT

    with pytest.raises(NotPending):
        ledger.settle_pending(settled_wallet, settled, at=AT)
    with pytest.raises(NotPending):
        ledger.fail_pending(settled, "late", at=AT)

    failed = ledger.fail_pending(pending, "gateway timeout", at=AT)
    assert failed.status is TransactionStatus.FAILED
    assert failed.failure_reason == "gateway timeout"


def test_replay_ledger_detects_tampering() -> None:
    """Replaying applied movements must land on the stored balance."""
    wallet, credit = _credit(_wallet(), "500")
    wallet, debit = _debit(wallet, "200")

    audit = ledger.replay_ledger(wallet, [debit, credit])
    assert audit.is_consistent
    assert audit.replayed_balance == Money.parse("300")
    assert audit.applied_count == 2

    tampered = ledger.replay_ledger(
        replace(wallet, balance=Money.parse("400")),
        [credit, debit],
    )
    assert not tampered.is_consistent

    broken = replace(debit, balance_after=Money.parse("250"))
    audit = ledger.replay_ledger(wallet, [credit, broken])
    assert audit.mismatched_positions == (2,)


def test_summarize_transactions_counts_completed_in_window() -> None:
    """Only completed movements inside the window are totalled."""
    wallet, credit = _credit(_wallet(), "500")
    wallet, debit = _debit(wallet, "200")
    old = replace(credit, id="old", created_at=AT - timedelta(days=40))
    failed = replace(debit, id="failed", status=TransactionStatus.FAILED)

    summary = ledger.summarize_transactions(
        [credit, debit, old, failed],
        since=AT - timedelta(days=1),
        until=AT,
    )

    assert summary.total_credits == Money.parse("500")
    assert summary.total_debits == Money.parse("200")
    assert summary.credit_count == 1
    assert summary.debit_count == 1
    assert summary.net_amount == Money.parse("300")


def test_period_start() -> None:
    """Named periods map onto calendar boundaries."""
    midnight = datetime(2025, 7, 15, tzinfo=timezone.utc)

    assert ledger.period_start("day", AT) == midnight
    assert ledger.period_start("week", AT) == AT - timedelta(days=7)
    assert ledger.period_start("month", AT) == datetime(2025, 7, 1, tzinfo=timezone.utc)
    assert ledger.period_start("year", AT) == datetime(2025, 1, 1, tzinfo=timezone.utc)
    with pytest.raises(InvalidInput):
        ledger.period_start("fortnight", AT)
