"""Submitting exchange and return requests against delivered orders."""

from datetime import UTC, datetime
from uuid import uuid4

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from storefront.catalog.stock import get_product
from storefront.domain import storefront
from storefront.errors import InsufficientStock, InvalidState, NotFound
from storefront.order.order import Order, get_order
from storefront.returns.events import ServiceRequestSubmitted
from storefront.returns.request import RefundMethod, RequestType, ServiceRequest
from storefront.returns.window import check_window
from storefront.utils.money import round_money

logger = structlog.get_logger(__name__)

_PREFIXES = {RequestType.EXCHANGE: "EX", RequestType.RETURN: "RT"}


@storefront.command(part_of="ServiceRequest")
class SubmitServiceRequest:
    request_type = String(required=True, choices=RequestType)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    color = String(max_length=50)
    size = String(max_length=20)
    quantity = Integer(min_value=1)
    reason = String(required=True, max_length=255)
    description = Text()
    exchange_color = String(max_length=50)
    exchange_size = String(max_length=20)
    refund_method = String(choices=RefundMethod)


def _request_number(request_type: RequestType) -> str:
    return f"{_PREFIXES[request_type]}-{uuid4().hex[:10].upper()}"


@storefront.command_handler(part_of=ServiceRequest)
class SubmitServiceRequestHandler:
    @handle(SubmitServiceRequest)
    def submit(self, command):
        request_type = RequestType(command.request_type)
        order = get_order(command.order_id)
        if str(order.customer_id) != str(command.customer_id):
            raise NotFound("order", str(command.order_id))

        check_window(order)

        item = order.find_item(command.product_id, command.color, command.size)
        if item is None:
            raise InvalidState("Product is not part of this order", field="product_id")

        already_open = item.exchange_requested if request_type == RequestType.EXCHANGE else item.return_requested
        if already_open:
            raise InvalidState(
                f"An open {request_type.value} request already exists for this item",
                field="product_id",
            )

        quantity = command.quantity or item.quantity
        if quantity > item.quantity:
            raise InvalidState(f"Only {item.quantity} units of this item were ordered", field="quantity")

        exchange_color = exchange_size = None
        if request_type == RequestType.EXCHANGE:
            exchange_color = command.exchange_color or item.color
            exchange_size = command.exchange_size or item.size
            product = get_product(command.product_id)
            available = product.available_stock(exchange_color, exchange_size)
            if available < 1:
                raise InsufficientStock(f"{product.name} {exchange_color}/{exchange_size}", available)

        now = datetime.now(UTC)
        request = ServiceRequest(
            request_number=_request_number(request_type),
            request_type=request_type.value,
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=command.customer_id,
            product_id=command.product_id,
            product_name=item.product_name,
            color=item.color,
            size=item.size,
            quantity=quantity,
            reason=command.reason,
            description=command.description,
            exchange_color=exchange_color,
            exchange_size=exchange_size,
            refund_amount=round_money(item.unit_price * quantity) if request_type == RequestType.RETURN else None,
            refund_method=(command.refund_method or RefundMethod.ORIGINAL_PAYMENT.value)
            if request_type == RequestType.RETURN
            else None,
            created_at=now,
            updated_at=now,
        )
        request.raise_(
            ServiceRequestSubmitted(
                request_id=str(request.id),
                request_number=request.request_number,
                request_type=request.request_type,
                order_id=str(order.id),
                product_id=str(command.product_id),
            )
        )

        order.flag_request(item, request_type.value, True)
        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(ServiceRequest).add(request)
        return str(request.id)


def submit_request(request_type, order_id, customer_id, product_id, reason, **details) -> ServiceRequest:
    """Raise an exchange or return. ``details`` carries color, size, quantity and the exchange target."""
    request_id = current_domain.process(
        SubmitServiceRequest(
            request_type=request_type,
            order_id=str(order_id),
            customer_id=str(customer_id),
            product_id=str(product_id),
            reason=reason,
            **details,
        ),
        asynchronous=False,
    )
    request = current_domain.repository_for(ServiceRequest).get(request_id)
    logger.info(
        "service_request_submitted",
        request_number=request.request_number,
        request_type=request.request_type,
        order_number=request.order_number,
    )
    return request


def request_exchange(order_id, customer_id, product_id, reason, **details) -> ServiceRequest:
    return submit_request(RequestType.EXCHANGE.value, order_id, customer_id, product_id, reason, **details)


def request_return(order_id, customer_id, product_id, reason, **details) -> ServiceRequest:
    return submit_request(RequestType.RETURN.value, order_id, customer_id, product_id, reason, **details)
