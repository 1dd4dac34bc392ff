"""Error taxonomy for pricing, tax, ledger, and numbering operations."""


class BillingError(Exception):
    """Base class for every error raised by the billing core."""


class InvalidInput(BillingError):
    """Malformed input supplied by the caller; never retried."""


class InvalidLineItem(InvalidInput):
    """A line item violates quantity, discount, price, or rate bounds."""


class InvalidAmount(InvalidInput):
    """A monetary amount is malformed or outside its allowed range."""


class InvalidRate(InvalidInput):
    """A percentage rate is malformed or carries too much precision."""


class NegativeResult(InvalidInput):
    """A subtraction would go below zero where the caller disallows it."""


class BusinessRuleViolation(BillingError):
    """A well-formed request rejected by a business rule."""


class EmptyOrder(BusinessRuleViolation):
    """An order or quote was requested with no line items."""


class CouponInapplicable(BusinessRuleViolation):
    """A coupon cannot be applied to the order.

    Attributes:
        code: Coupon code that was rejected.
        reason: Short machine-friendly reason string.
    """

    def __init__(self, code: str, reason: str) -> None:
        super().__init__(f"Coupon {code} cannot be applied: {reason}")
        self.code = code
        self.reason = reason


class InsufficientStock(BusinessRuleViolation):
    """A product does not have enough stock for the requested quantity."""


class ProductNotFound(BusinessRuleViolation):
    """A product referenced by an order line has no stock record."""


class PaymentRejected(BillingError):
    """A wallet payment cannot proceed; the user must take corrective action."""


class InsufficientBalance(PaymentRejected):
    """The wallet balance does not cover the requested debit."""


class WalletBlocked(PaymentRejected):
    """The wallet is blocked and accepts no movements."""


class LedgerWorkflowError(BillingError):
    """An operation was attempted on a ledger entity in the wrong state."""


class NotReversible(LedgerWorkflowError):
    """The transaction is flagged as non-reversible."""


class AlreadyReversed(LedgerWorkflowError):
    """The transaction has already been reversed."""


class NotCompleted(LedgerWorkflowError):
    """Only completed transactions can be reversed."""


class NotPending(LedgerWorkflowError):
    """Only pending transactions can be completed or failed."""


class TransactionNotFound(LedgerWorkflowError):
    """No ledger transaction exists with the given identifier."""


class WalletNotFound(LedgerWorkflowError):
    """No wallet exists for the given user or identifier."""


class OrderNotFound(LedgerWorkflowError):
    """No order exists with the given identifier."""


class IntegrityFault(BillingError):
    """Persisted data disagrees with a recomputation from its inputs."""


class LedgerInconsistency(IntegrityFault):
    """A wallet balance does not match the replay of its transactions."""


class BreakdownMismatch(IntegrityFault):
    """A re-derived pricing breakdown differs from the persisted one."""


class ConcurrencyConflict(BillingError):
    """A version check or racing insert lost to a concurrent writer."""


class ConcurrencyExhausted(BillingError):
    """Concurrent conflicts persisted past the bounded retry budget."""


__all__ = [
    "BillingError",
    "InvalidInput",
    "InvalidLineItem",
    "InvalidAmount",
    "InvalidRate",
    "NegativeResult",
    "BusinessRuleViolation",
    "EmptyOrder",
    "CouponInapplicable",
    "InsufficientStock",
    "ProductNotFound",
    "PaymentRejected",
    "InsufficientBalance",
    "WalletBlocked",
    "LedgerWorkflowError",
    "NotReversible",
    "AlreadyReversed",
    "NotCompleted",
    "NotPending",
    "TransactionNotFound",
    "WalletNotFound",
    "OrderNotFound",
    "IntegrityFault",
    "LedgerInconsistency",
    "BreakdownMismatch",
    "ConcurrencyConflict",
    "ConcurrencyExhausted",
]
