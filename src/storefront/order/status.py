"""Admin status updates.

Every change goes through the order's own transitions, so an admin cannot
move an order anywhere a provider event could not. Cancelling here restores
stock exactly like a customer cancellation does.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.catalog.stock import restore_items
from storefront.domain import storefront
from storefront.errors import InvalidState
from storefront.fulfillment.remote import cancel_remote_order
from storefront.order.order import Order, OrderStatus, get_order
from storefront.order.payment import PaymentStatus

logger = structlog.get_logger(__name__)

ADMIN_CANCEL_REASON = "Cancelled by admin"


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(choices=OrderStatus)
    payment_status = String(choices=PaymentStatus)
    reason = String(max_length=500)


@storefront.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if command.status and command.status != order.status:
            target = OrderStatus(command.status)
            if target == OrderStatus.CANCELLED:
                order.cancel(command.reason or ADMIN_CANCEL_REASON)
                restore_items(order.items, order.order_number)
            else:
                order.advance_to(target)

        if command.payment_status and command.payment_status != order.payment_status:
            _apply_payment_status(order, PaymentStatus(command.payment_status))

        repo.add(order)


def _apply_payment_status(order, status: PaymentStatus):
    if status == PaymentStatus.PAID:
        order.mark_paid()
    elif status == PaymentStatus.FAILED:
        order.mark_payment_failed()
    else:
        raise InvalidState(f"Payment status cannot be set to {status.value} directly", field="payment_status")


def update_order_status(order_id, status=None, payment_status=None, reason=None) -> Order:
    """Move an order to ``status`` and/or ``payment_status`` on an admin's say-so.

    Raises ``InvalidState`` for transitions the order does not allow, such as
    reopening a cancelled order or cancelling a shipped one.
    """
    before = get_order(order_id)
    current_domain.process(
        UpdateOrderStatus(
            order_id=str(before.id),
            status=status,
            payment_status=payment_status,
            reason=reason,
        ),
        asynchronous=False,
    )

    order = get_order(before.id)
    logger.info(
        "order_status_updated",
        order_number=order.order_number,
        from_status=before.status,
        to_status=order.status,
        payment_status=order.payment_status,
    )
    if order.status == OrderStatus.CANCELLED.value and before.status != order.status:
        cancel_remote_order(order)
    return order
