"""Use case issuing invoices and estimates for placed orders.

Invoices re-derive the breakdown from the order's snapshotted lines and
refuse to issue when it disagrees with the persisted one. An order has at
most one invoice; asking again returns the existing document.
"""

from collections.abc import Callable
from datetime import datetime

from billing_core.application.ports.unit_of_work import UnitOfWorkPort
from billing_core.application.use_cases.document_numberer import DocumentNumberer
from billing_core.domain.errors import (
    BreakdownMismatch,
    ConcurrencyConflict,
    InvalidInput,
    OrderNotFound,
)
from billing_core.domain.models import (
    BillingDocument,
    DocumentType,
    Order,
    PricingBreakdown,
    RoundingConvention,
)
from billing_core.domain.services.pricing import compute_round_off, rebuild_breakdown
from billing_core.infrastructure.logging.logger import get_app_logger
from billing_core.utils.utils import new_id, utc_now

_DOCUMENT_TYPES = (DocumentType.INVOICE, DocumentType.ESTIMATE)


class GenerateDocumentUseCase:
    """Issue a numbered invoice or estimate from an order."""

    def __init__(
        self,
        uow: UnitOfWorkPort,
        numberer: DocumentNumberer,
        clock: Callable[[], datetime] | None = None,
        logger=None,
        rounding: RoundingConvention = RoundingConvention.NONE,
    ) -> None:
        self._uow = uow
        self._numberer = numberer
        self._rounding = rounding
        self._clock = clock or utc_now
        self._logger = logger or get_app_logger()

    def execute(
        self,
        order_id: str,
        document_type: DocumentType = DocumentType.INVOICE,
        at: datetime | None = None,
        gst_applicable: bool = True,
    ) -> BillingDocument:
        """Issue the document.

        Args:
            order_id: Order to bill.
            document_type: ``INVOICE`` or ``ESTIMATE``.
            at: Issue time; defaults to now and selects the number period.
            gst_applicable: False for non-GST estimates; taxes are zeroed.

        Returns:
            BillingDocument: The new document, or the order's existing
            invoice.

        Raises:
            OrderNotFound: If the order does not exist.
            BreakdownMismatch: If the re-derived pricing differs.
            InvalidInput: For other document types, or a non-GST invoice.
        """
        if document_type not in _DOCUMENT_TYPES:
            raise InvalidInput(f"Cannot bill an order as {document_type.value}")
        if document_type is DocumentType.INVOICE and not gst_applicable:
            raise InvalidInput("Invoices always carry GST")

        issued_at = at or self._clock()
        with self._uow.begin() as session:
            order = session.orders.get(order_id)
            if order is None:
                self._logger.error(f"Cannot bill unknown order {order_id}")
                raise OrderNotFound(f"No order with id {order_id}")
            if document_type is DocumentType.INVOICE:
                existing = session.documents.find_for_order(order_id, document_type)
                if existing is not None:
                    self._logger.info(
                        f"Order {order.order_number} already has invoice "
                        f"{existing.number}"
                    )
                    return existing

        pricing = self._derive_pricing(order, gst_applicable)
        number = self._numberer.next_for(document_type, issued_at)
        document = BillingDocument(
            id=new_id(),
            number=number,
            document_type=document_type,
            order_id=order.id,
            pricing=pricing,
            created_at=issued_at,
            gst_applicable=gst_applicable,
        )
        try:
            with self._uow.begin() as session:
                session.documents.add(document)
        except ConcurrencyConflict:
            with self._uow.begin() as session:
                existing = session.documents.find_for_order(order_id, document_type)
            if existing is None:
                raise
            self._logger.warning(
                f"Invoice for order {order.order_number} was issued "
                f"concurrently; returning {existing.number}"
            )
            return existing

        self._logger.info(
            f"Issued {document_type.value} {number} for order "
            f"{order.order_number}: grand total {pricing.grand_total}"
        )
        return document

    def _derive_pricing(self, order: Order, gst_applicable: bool) -> PricingBreakdown:
        persisted = order.pricing
        adjustments = {
            "inter_state": persisted.is_inter_state,
            "coupon_discount": persisted.coupon_discount,
            "coupon_code": persisted.coupon_code,
            "shipping_charges": persisted.shipping_charges,
            "coupon_allocation": [line.coupon_discount for line in persisted.lines],
        }
        if not gst_applicable:
            return self._derive_without_gst(order, adjustments)

        rebuilt = rebuild_breakdown(
            order.lines,
            wallet_amount_used=persisted.wallet_amount_used,
            round_off=persisted.round_off,
            **adjustments,
        )
        if rebuilt != persisted:
            self._logger.error(
                f"Re-derived pricing for order {order.order_number} differs: "
                f"persisted grand total {persisted.grand_total}, "
                f"re-derived {rebuilt.grand_total}"
            )
            raise BreakdownMismatch(
                f"Pricing of order {order.order_number} cannot be reproduced"
            )
        return rebuilt

    def _derive_without_gst(self, order: Order, adjustments: dict) -> PricingBreakdown:
        # Wallet spend is capped at the tax-free payable and rounding re-applied.
        untaxed = rebuild_breakdown(order.lines, gst_applicable=False, **adjustments)
        payable = untaxed.grand_total
        wallet_used = min(order.pricing.wallet_amount_used, payable)
        if wallet_used != order.pricing.wallet_amount_used:
            self._logger.info(
                f"Estimate for order {order.order_number} applies wallet "
                f"{wallet_used} of {order.pricing.wallet_amount_used} spent"
            )
        return rebuild_breakdown(
            order.lines,
            gst_applicable=False,
            wallet_amount_used=wallet_used,
            round_off=compute_round_off(payable - wallet_used, self._rounding),
            **adjustments,
        )


__all__ = ["GenerateDocumentUseCase"]
