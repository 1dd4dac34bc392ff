"""Use case placing an order atomically.

Pricing, stock decrements, coupon usage, the wallet debit, and the order
row are written in one unit of work: either all of them happen or none do.
Document numbers are issued beforehand in their own transactions, so a
failed order can leave a gap in the numbering but never a duplicate.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from billing_core.application.ports.unit_of_work import (
    BillingSession,
    UnitOfWorkPort,
)
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.application.use_cases.price_order import PricingPolicy
from billing_core.application.use_cases.wallet_ledger import WalletLedger
from billing_core.domain.errors import (
    BillingError,
    BusinessRuleViolation,
    CouponInapplicable,
    EmptyOrder,
    InvalidInput,
    PaymentRejected,
)
from billing_core.domain.models import (
    Coupon,
    DocumentType,
    LedgerTransaction,
    LineItem,
    Money,
    Order,
    PaymentMethod,
    PricingBreakdown,
    TransactionCategory,
    TransactionDetails,
)
from billing_core.domain.policies.coupons import normalize_coupon_code
from billing_core.domain.services.pricing import price_order
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.utils.utils import new_id, utc_now


@dataclass(frozen=True)
class OrderRequest:
    """Order to place.

    Attributes:
        user_id: Buyer.
        items: Lines with snapshotted prices and GST rates.
        buyer_state: Place-of-supply state code.
        coupon_code: Optional coupon code as typed by the buyer.
        wallet_amount: Wallet money the buyer wants to spend.
    """

    user_id: str
    items: tuple[LineItem, ...]
    buyer_state: str
    coupon_code: str | None = None
    wallet_amount: Money = Money(0)


@dataclass(frozen=True)
class OrderResult:
    """Placed order and the wallet payment, if any."""

    order: Order
    wallet_transaction: LedgerTransaction | None = None

    @property
    def pricing(self) -> PricingBreakdown:
        return self.order.pricing


class CreateOrderUseCase:
    """Price and persist an order in a single unit of work."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        numberer: DocumentNumberer,
        ledger: WalletLedger,
        policy: PricingPolicy,
        clock: Callable[[], datetime] | None = None,
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Port opening the order's unit of work.
            numberer: Issues order and wallet transaction numbers.
            ledger: Wallet ledger used for the payment debit.
            policy: Seller state, shipping, and rounding configuration.
            clock: Callable returning the current time.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._numberer = numberer
        self._ledger = ledger
        self._policy = policy
        self._clock = clock or utc_now
        self._logger = logger or get_app_logger()

    def execute(self, request: OrderRequest) -> OrderResult:
        """Place the order.

        Returns:
            OrderResult: The persisted order.

        Raises:
            EmptyOrder: If the request has no items.
            CouponInapplicable: If the coupon does not apply.
            InsufficientStock: If a product lacks stock.
            ProductNotFound: If a product has no stock record.
            InsufficientBalance: If the wallet cannot cover the debit.
            WalletBlocked: If the buyer's wallet is blocked.
            ConcurrencyConflict: If a racing order redeemed the same coupon
                for the same buyer first.
        """
        if not request.items:
            self._logger.warning(f"Rejected empty order from {request.user_id}")
            raise EmptyOrder("An order needs at least one line item")
        if request.wallet_amount.is_negative():
            raise InvalidInput(
                f"Wallet amount cannot be negative: {request.wallet_amount}"
            )

        now = self._clock()
        order_id = new_id()
        order_number = self._numberer.next_for(DocumentType.ORDER, now)
        transaction_number = None
        if request.wallet_amount.minor > 0:
            self._ledger.get_or_create_wallet(request.user_id)
            transaction_number = self._numberer.next_for(
                DocumentType.WALLET_TRANSACTION,
                now,
            )

        try:
            with self._uow.begin() as session:
                result = self._place(
                    session,
                    request,
                    order_id=order_id,
                    order_number=order_number,
                    transaction_number=transaction_number,
                    now=now,
                )
        except (BusinessRuleViolation, PaymentRejected, InvalidInput) as exc:
            self._logger.warning(f"Order {order_number} rejected: {exc}")
            raise
        except BillingError as exc:
            self._logger.error(f"Order {order_number} failed: {exc}")
            raise

        self._logger.info(
            f"Placed order {order_number} for user {request.user_id}: "
            f"grand total {result.order.pricing.grand_total}, "
            f"wallet {result.order.pricing.wallet_amount_used}"
        )
        return result

    def _place(
        self,
        session: BillingSession,
        request: OrderRequest,
        *,
        order_id: str,
        order_number: str,
        transaction_number: str | None,
        now: datetime,
    ) -> OrderResult:
        coupon, user_uses = self._load_coupon(session, request)
        wallet = None
        if request.wallet_amount.minor > 0:
            wallet = session.wallets.find_by_user(request.user_id)

        breakdown = price_order(
            request.items,
            buyer_state=request.buyer_state,
            seller_state=self._policy.seller_state,
            shipping_rule=self._policy.shipping_rule,
            coupon=coupon,
            as_of=now,
            coupon_user_uses=user_uses,
            wallet_requested=request.wallet_amount,
            wallet=wallet,
            rounding=self._policy.rounding,
        )

        for item in request.items:
            session.inventory.decrement_stock(item.product_id, item.quantity)
        if coupon is not None:
            session.coupons.record_usage(coupon.code)
            session.coupons.record_user_usage(
                request.user_id, coupon.code, coupon.user_usage_limit
            )

        payment = None
        if breakdown.wallet_amount_used.minor > 0:
            payment = self._ledger.debit(
                request.user_id,
                breakdown.wallet_amount_used,
                TransactionDetails(
                    category=TransactionCategory.ORDER_PAYMENT,
                    description=f"Payment for order {order_number}",
                    payment_method=PaymentMethod.WALLET,
                    related_order=order_id,
                    transaction_number=transaction_number,
                ),
                session=session,
            ).transaction

        order = Order(
            id=order_id,
            order_number=order_number,
            user_id=request.user_id,
            lines=tuple(request.items),
            buyer_state=request.buyer_state,
            seller_state=self._policy.seller_state,
            pricing=breakdown,
            created_at=now,
            coupon_code=breakdown.coupon_code,
            wallet_transaction_id=payment.id if payment else None,
        )
        session.orders.add(order)
        return OrderResult(order=order, wallet_transaction=payment)

    @staticmethod
    def _load_coupon(
        session: BillingSession,
        request: OrderRequest,
    ) -> tuple[Coupon | None, int]:
        code = normalize_coupon_code(request.coupon_code)
        if code is None:
            return None, 0
        coupon = session.coupons.get_by_code(code)
        if coupon is None:
            raise CouponInapplicable(code, "not_found")
        return coupon, session.orders.count_coupon_uses(request.user_id, code)


__all__ = ["OrderRequest", "OrderResult", "CreateOrderUseCase"]
