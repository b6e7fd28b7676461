"""Moving exchange and return requests through their lifecycle.

Closing a request (rejected, cancelled, completed) reopens the item for a
new request of the same type. Completion moves stock: a return puts the
item back, an exchange puts the original back and takes the replacement.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.product import Product
from storefront.catalog.stock import get_product, restore_items
from storefront.domain import storefront
from storefront.errors import NotFound
from storefront.order.order import Order, get_order
from storefront.returns.request import ServiceRequest

logger = structlog.get_logger(__name__)


@storefront.command(part_of="ServiceRequest")
class ApproveServiceRequest:
    request_id = Identifier(required=True)
    admin_notes = Text()


@storefront.command(part_of="ServiceRequest")
class RejectServiceRequest:
    request_id = Identifier(required=True)
    admin_notes = Text()


@storefront.command(part_of="ServiceRequest")
class StartProcessingServiceRequest:
    request_id = Identifier(required=True)
    admin_notes = Text()


@storefront.command(part_of="ServiceRequest")
class CompleteServiceRequest:
    request_id = Identifier(required=True)
    admin_notes = Text()


@storefront.command(part_of="ServiceRequest")
class CancelServiceRequest:
    request_id = Identifier(required=True)
    customer_id = Identifier()


def get_request(request_id) -> ServiceRequest:
    try:
        return current_domain.repository_for(ServiceRequest).get(request_id)
    except ObjectNotFoundError:
        raise NotFound("request", str(request_id)) from None


@storefront.command_handler(part_of=ServiceRequest)
class ServiceRequestResolutionHandler:
    @handle(ApproveServiceRequest)
    def approve(self, command):
        request = get_request(command.request_id)
        request.approve(command.admin_notes)
        current_domain.repository_for(ServiceRequest).add(request)

    @handle(StartProcessingServiceRequest)
    def start_processing(self, command):
        request = get_request(command.request_id)
        request.start_processing(command.admin_notes)
        current_domain.repository_for(ServiceRequest).add(request)

    @handle(RejectServiceRequest)
    def reject(self, command):
        request = get_request(command.request_id)
        request.reject(command.admin_notes)
        self._close(request)

    @handle(CancelServiceRequest)
    def cancel(self, command):
        request = get_request(command.request_id)
        if command.customer_id and str(request.customer_id) != str(command.customer_id):
            raise NotFound("request", str(command.request_id))
        request.cancel()
        self._close(request)

    @handle(CompleteServiceRequest)
    def complete(self, command):
        request = get_request(command.request_id)
        request.complete(command.admin_notes)

        if request.is_exchange:
            product = get_product(request.product_id)
            if not product.restore_stock(request.quantity, request.color, request.size):
                logger.warning("stock_restore_skipped", reference=request.request_number, product_id=str(product.id))
            product.decrement_stock(request.quantity, request.exchange_color, request.exchange_size)
            current_domain.repository_for(Product).add(product)
        else:
            restore_items([request], request.request_number)

        self._close(request)

    def _close(self, request):
        order = get_order(request.order_id)
        item = order.find_item(request.product_id, request.color, request.size)
        if item is not None:
            order.flag_request(item, request.request_type, False)
            current_domain.repository_for(Order).add(order)
        current_domain.repository_for(ServiceRequest).add(request)


def resolve(command) -> ServiceRequest:
    """Process a lifecycle command and return the updated request."""
    current_domain.process(command, asynchronous=False)

    request = get_request(command.request_id)
    logger.info("service_request_updated", request_number=request.request_number, status=request.status)
    return request
