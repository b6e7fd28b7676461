"""Order cancellation: command, handler and the compensating stock restore."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from storefront.catalog.stock import restore_items
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.fulfillment.remote import cancel_remote_order
from storefront.order.order import Order, get_order

logger = structlog.get_logger(__name__)

DEFAULT_REASON = "Cancelled by customer"


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    customer_id = Identifier()  # When set, the order must belong to this customer


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = get_order(command.order_id)
        if command.customer_id and str(order.customer_id) != str(command.customer_id):
            raise NotFound("order", str(command.order_id))

        order.cancel(command.reason or DEFAULT_REASON)
        restore_items(order.items, order.order_number)
        repo.add(order)


def cancel_order(order_id, reason=None, customer_id=None) -> Order:
    """Cancel an unshipped order, restore its stock and cancel the remote order.

    Raises ``InvalidState`` for cancelled, shipped or delivered orders.
    """
    order = get_order(order_id)
    current_domain.process(
        CancelOrder(order_id=str(order.id), reason=reason, customer_id=customer_id),
        asynchronous=False,
    )

    order = get_order(order.id)
    logger.info("order_cancelled", order_number=order.order_number, reason=order.cancellation_reason)
    cancel_remote_order(order)
    return order
