"""Domain models for wallets and their ledger transactions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from billing_core.domain.models.money import Money


class TransactionType(str, Enum):
    CREDIT = "credit"
    DEBIT = "debit"

    @property
    def opposite(self) -> "TransactionType":
        if self is TransactionType.CREDIT:
            return TransactionType.DEBIT
        return TransactionType.CREDIT


class TransactionStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REVERSED = "reversed"


class TransactionCategory(str, Enum):
    ORDER_PAYMENT = "order_payment"
    ORDER_REFUND = "order_refund"
    WALLET_TOPUP = "wallet_topup"
    CASHBACK = "cashback"
    REFERRAL_BONUS = "referral_bonus"
    LOYALTY_REWARD = "loyalty_reward"
    ADMIN_ADJUSTMENT = "admin_adjustment"
    PENALTY = "penalty"
    WITHDRAWAL = "withdrawal"
    OTHER = "other"


class PaymentMethod(str, Enum):
    WALLET = "wallet"
    UPI = "upi"
    CARD = "card"
    NETBANKING = "netbanking"
    CASH = "cash"
    ADMIN = "admin"
    SYSTEM = "system"


class PairingRole(str, Enum):
    """Which side of a reversal pair a transaction is on."""

    REVERSED_BY = "reversed_by"
    REVERSAL_OF = "reversal_of"


@dataclass(frozen=True)
class TransactionPairing:
    """Link between an original transaction and its single reversal."""

    role: PairingRole
    counterpart_id: str


@dataclass(frozen=True)
class WalletAccount:
    """Per-user wallet state.

    Attributes:
        id: Wallet identifier.
        user_id: Owning user; one wallet per user.
        balance: Current balance, never negative.
        total_credits: Running sum of applied credits.
        total_debits: Running sum of applied debits.
        transaction_count: Number of applied transactions.
        version: Optimistic-concurrency token bumped on every write.
    """

    id: str
    user_id: str
    created_at: datetime
    balance: Money = Money(0)
    total_credits: Money = Money(0)
    total_debits: Money = Money(0)
    transaction_count: int = 0
    is_active: bool = True
    is_blocked: bool = False
    blocked_reason: str | None = None
    blocked_at: datetime | None = None
    last_transaction_at: datetime | None = None
    version: int = 0

    @property
    def status(self) -> str:
        if self.is_blocked:
            return "blocked"
        if not self.is_active:
            return "inactive"
        return "active"

    @property
    def spendable_balance(self) -> Money:
        if self.status != "active":
            return Money.zero()
        return self.balance

    def has_sufficient_balance(self, amount: Money) -> bool:
        return self.spendable_balance >= amount


@dataclass(frozen=True)
class TransactionDetails:
    """Caller-supplied descriptive data for a ledger movement."""

    category: TransactionCategory
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.WALLET
    related_order: str | None = None
    external_reference: str | None = None
    is_reversible: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)
    transaction_number: str | None = None


@dataclass(frozen=True)
class LedgerTransaction:
    """One wallet movement; immutable apart from status transitions."""

    id: str
    number: str
    wallet_id: str
    user_id: str
    type: TransactionType
    amount: Money
    category: TransactionCategory
    status: TransactionStatus
    created_at: datetime
    balance_after: Money | None = None
    description: str = ""
    payment_method: PaymentMethod = PaymentMethod.WALLET
    related_order: str | None = None
    external_reference: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    is_reversible: bool = True
    pairing: TransactionPairing | None = None
    ledger_position: int | None = None
    failure_reason: str | None = None
    processed_at: datetime | None = None
    reversed_at: datetime | None = None

    @property
    def signed_amount(self) -> Money:
        if self.type is TransactionType.CREDIT:
            return self.amount
        return -self.amount

    @property
    def is_applied(self) -> bool:
        """Whether the movement has changed the wallet balance."""
        return self.status in (
            TransactionStatus.COMPLETED,
            TransactionStatus.REVERSED,
        )


@dataclass(frozen=True)
class LedgerResult:
    """Wallet state and transaction produced by a ledger operation."""

    wallet: WalletAccount
    transaction: LedgerTransaction


@dataclass(frozen=True)
class TransactionFilter:
    """Query options for wallet transaction history."""

    type: TransactionType | None = None
    category: TransactionCategory | None = None
    status: TransactionStatus | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int = 50
    skip: int = 0


@dataclass(frozen=True)
class TransactionSummary:
    """Completed credit and debit totals over a period."""

    since: datetime
    until: datetime
    total_credits: Money
    total_debits: Money
    credit_count: int
    debit_count: int

    @property
    def net_amount(self) -> Money:
        return self.total_credits - self.total_debits


@dataclass(frozen=True)
class LedgerAudit:
    """Outcome of replaying a wallet's ledger against its balance."""

    wallet_id: str
    balance: Money
    replayed_balance: Money
    applied_count: int
    mismatched_positions: tuple[int, ...] = ()

    @property
    def is_consistent(self) -> bool:
        return self.balance == self.replayed_balance and not self.mismatched_positions


__all__ = [
    "TransactionType",
    "TransactionStatus",
    "TransactionCategory",
    "PaymentMethod",
    "PairingRole",
    "TransactionPairing",
    "WalletAccount",
    "TransactionDetails",
    "LedgerTransaction",
    "LedgerResult",
    "TransactionFilter",
    "TransactionSummary",
    "LedgerAudit",
]
