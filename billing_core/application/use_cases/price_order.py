"""Use case producing a pricing quote for a cart.

The quote loads the coupon and the buyer's wallet through the unit of work
but changes nothing; placing the order is handled by CreateOrderUseCase.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from billing_core.application.ports.unit_of_work import (
    BillingSession,
    UnitOfWorkPort,
)
from billing_core.domain.errors import CouponInapplicable
from billing_core.domain.models import (
    Coupon,
    LineItem,
    Money,
    PricingBreakdown,
    RoundingConvention,
    ShippingRule,
)
from billing_core.domain.policies.coupons import normalize_coupon_code
from billing_core.domain.services.pricing import price_order
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.utils.utils import utc_now


@dataclass(frozen=True)
class PricingPolicy:
    """Store-wide pricing configuration.

    Attributes:
        seller_state: State code the goods ship from.
        shipping_rule: Shipping fee and free-shipping threshold.
        rounding: Round-off convention for the payable amount.
    """

    seller_state: str
    shipping_rule: ShippingRule
    rounding: RoundingConvention = RoundingConvention.NONE


@dataclass(frozen=True)
class PriceOrderRequest:
    """Cart to quote.

    Attributes:
        user_id: Buyer, used for per-user coupon limits and the wallet.
        items: Lines with snapshotted prices and GST rates.
        buyer_state: Place-of-supply state code.
        coupon_code: Optional coupon code as typed by the buyer.
        wallet_amount: Wallet money the buyer wants to spend.
        as_of: Pricing instant; defaults to now.
    """

    user_id: str
    items: tuple[LineItem, ...]
    buyer_state: str
    coupon_code: str | None = None
    wallet_amount: Money = Money(0)
    as_of: datetime | None = None


class PriceOrderUseCase:
    """Quote a cart without persisting anything."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        policy: PricingPolicy,
        drop_invalid_coupon: bool = False,
        clock: Callable[[], datetime] | None = None,
        logger=None,
    ) -> None:
        """Initialize the use case.

        Args:
            uow: Port opening read units of work.
            policy: Seller state, shipping, and rounding configuration.
            drop_invalid_coupon: Re-price without the coupon instead of
                raising when it does not apply.
            clock: Callable returning the current time.
            logger: Optional logger compatible with logging.Logger-like API.
        """
        self._uow = uow
        self._policy = policy
        self._drop_invalid_coupon = drop_invalid_coupon
        self._clock = clock or utc_now
        self._logger = logger or get_app_logger()

    def execute(self, request: PriceOrderRequest) -> PricingBreakdown:
        """Price the cart.

        Returns:
            PricingBreakdown: The quote.

        Raises:
            EmptyOrder: If the cart is empty.
            CouponInapplicable: If the coupon does not apply and
                ``drop_invalid_coupon`` is False.
        """
        as_of = request.as_of or self._clock()
        with self._uow.begin() as session:
            coupon, user_uses = self._load_coupon(session, request)
            wallet = None
            if request.wallet_amount.minor > 0:
                wallet = session.wallets.find_by_user(request.user_id)

        def quote(selected: Coupon | None) -> PricingBreakdown:
            return price_order(
                request.items,
                buyer_state=request.buyer_state,
                seller_state=self._policy.seller_state,
                shipping_rule=self._policy.shipping_rule,
                coupon=selected,
                as_of=as_of,
                coupon_user_uses=user_uses,
                wallet_requested=request.wallet_amount,
                wallet=wallet,
                rounding=self._policy.rounding,
            )

        try:
            breakdown = quote(coupon)
        except CouponInapplicable as exc:
            if not self._drop_invalid_coupon:
                self._logger.warning(f"Quote rejected: {exc}")
                raise
            self._logger.warning(f"Dropping coupon from quote: {exc}")
            breakdown = quote(None)

        self._logger.info(
            f"Quoted {len(request.items)} lines for user {request.user_id}: "
            f"grand total {breakdown.grand_total}"
        )
        return breakdown

    def _load_coupon(
        self,
        session: BillingSession,
        request: PriceOrderRequest,
    ) -> tuple[Coupon | None, int]:
        code = normalize_coupon_code(request.coupon_code)
        if code is None:
            return None, 0
        coupon = session.coupons.get_by_code(code)
        if coupon is None:
            if self._drop_invalid_coupon:
                self._logger.warning(f"Unknown coupon {code} dropped from quote")
                return None, 0
            self._logger.warning(f"Unknown coupon {code}")
            raise CouponInapplicable(code, "not_found")
        return coupon, session.orders.count_coupon_uses(request.user_id, code)


__all__ = ["PricingPolicy", "PriceOrderRequest", "PriceOrderUseCase"]
