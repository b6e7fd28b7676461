"""Checkout provider webhooks: payment outcome for an order.

``SUCCESS`` confirms a pending order and settles prepaid payment; cash on
delivery stays pending until delivery. ``FAILED`` marks the payment failed.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.fulfillment.outcome import ReconcileOutcome
from storefront.order.order import Order, OrderStatus, find_order_by
from storefront.order.payment import PaymentStatus, settles_on_delivery
from storefront.utils.money import round_money

logger = structlog.get_logger(__name__)

_SUCCESS = {"SUCCESS", "PAID", "CAPTURED"}
_FAILURE = {"FAILED", "FAILURE", "DECLINED"}


@storefront.command(part_of="Order")
class ApplyCheckoutEvent:
    order_reference = String(required=True, max_length=100)
    status = String(required=True, max_length=50)
    payment_type = String(max_length=50)
    total_amount_payable = Float()
    transaction_id = String(max_length=255)
    event_id = String(max_length=255)


def find_checkout_order(reference):
    order = find_order_by(remote_order_id=str(reference)) or find_order_by(order_number=str(reference))
    if order is None:
        raise NotFound("order", str(reference))
    return order


@storefront.command_handler(part_of=Order)
class CheckoutEventHandler:
    @handle(ApplyCheckoutEvent)
    def apply_checkout_event(self, command):
        order = find_checkout_order(command.order_reference)
        log = logger.bind(order_number=order.order_number, checkout_status=command.status)

        if order.has_processed(command.event_id):
            log.info("checkout_event_duplicate", event_id=command.event_id)
            return ReconcileOutcome.DUPLICATE.value

        if command.total_amount_payable is not None and round_money(command.total_amount_payable) != round_money(
            order.pricing.total
        ):
            log.warning(
                "checkout_amount_mismatch",
                expected=order.pricing.total,
                received=command.total_amount_payable,
            )

        status = (command.status or "").strip().upper()
        if status in _SUCCESS:
            outcome = self._settle(order, command, log)
        elif status in _FAILURE:
            outcome = self._fail(order, command, log)
        else:
            log.warning("checkout_status_unknown", payment_type=command.payment_type)
            outcome = ReconcileOutcome.UNKNOWN_STATUS

        order.mark_processed(command.event_id)
        current_domain.repository_for(Order).add(order)
        return outcome.value

    def _settle(self, order, command, log):
        if order.status == OrderStatus.CANCELLED.value:
            log.warning("checkout_success_for_cancelled_order")
            return ReconcileOutcome.REJECTED

        changed = False
        if order.status == OrderStatus.PENDING.value:
            order.confirm()
            changed = True
        if not settles_on_delivery(order.payment) and order.payment_status != PaymentStatus.PAID.value:
            order.mark_paid(command.transaction_id)
            changed = True

        if not changed:
            return ReconcileOutcome.UNCHANGED
        log.info("checkout_settled", payment_type=command.payment_type, payment_status=order.payment_status)
        return ReconcileOutcome.APPLIED

    def _fail(self, order, command, log):
        if order.payment_status == PaymentStatus.FAILED.value:
            return ReconcileOutcome.UNCHANGED
        if order.payment_status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            log.warning("checkout_failure_after_settlement", payment_status=order.payment_status)
            return ReconcileOutcome.REJECTED
        order.mark_payment_failed(command.transaction_id)
        log.info("checkout_payment_failed", payment_type=command.payment_type)
        return ReconcileOutcome.APPLIED


def apply_checkout_event(payload: dict) -> str:
    """Apply a checkout webhook payload. Returns the ``ReconcileOutcome`` value."""
    reference = payload.get("order_id")
    if not reference:
        raise ValidationError({"order_id": ["order_id is required"]})

    amount = payload.get("total_amount_payable")
    command = ApplyCheckoutEvent(
        order_reference=str(reference),
        status=str(payload.get("status") or ""),
        payment_type=payload.get("payment_type"),
        total_amount_payable=float(amount) if amount not in (None, "") else None,
        transaction_id=payload.get("transaction_id"),
        event_id=payload.get("event_id"),
    )
    return current_domain.process(command, asynchronous=False)
