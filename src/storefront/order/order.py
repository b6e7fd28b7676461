"""Order aggregate: priced item snapshots, status machine, shipment tracking.

State machine:
    pending → confirmed → processing → shipped → delivered
    pending | confirmed | processing → cancelled

Provider events may skip forward (pending → shipped) but never move an
order backwards. ``delivered`` and ``cancelled`` are terminal. Payment
status is tracked separately: pending → paid | failed | refunded.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.errors import InvalidState, NotFound
from storefront.order.events import (
    OrderCancelled,
    OrderDelivered,
    OrderPlaced,
    OrderStatusChanged,
    PaymentStatusChanged,
    RemoteOrderLinked,
)
from storefront.order.payment import (
    PaymentMethod,
    PaymentMethodKind,
    PaymentStatus,
    describe,
    detail_of,
    kind_of,
    restore,
    settles_on_delivery,
)
from storefront.utils.money import round_money


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.CONFIRMED: {
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

# Position along the fulfillment path; used to spot stale provider events
_PROGRESS = {
    OrderStatus.PENDING: 0,
    OrderStatus.CONFIRMED: 1,
    OrderStatus.PROCESSING: 2,
    OrderStatus.SHIPPED: 3,
    OrderStatus.DELIVERED: 4,
}

# Webhook event ids remembered per order for duplicate detection. Providers
# redeliver recent events, so only the newest ids are kept.
MAX_TRACKED_EVENT_IDS = 50


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class Address:
    """Shipping or billing address captured at checkout, never updated afterwards."""

    first_name = String(required=True, max_length=100)
    last_name = String(max_length=100)
    email = String(max_length=255)
    phone = String(max_length=20)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.value_object(part_of="Order")
class Pricing:
    subtotal = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    tax = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="INR")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    """Frozen snapshot of what was bought and at which price."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    color = String(max_length=50)
    size = String(max_length=20)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)
    exchange_requested = Boolean(default=False)
    return_requested = Boolean(default=False)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    order_number = String(required=True, unique=True, max_length=20)
    customer_id = Identifier(required=True)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(Address)
    billing_address = ValueObject(Address)
    pricing = ValueObject(Pricing)
    coupon_code = String(max_length=20)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    current_status = String(max_length=100)  # Provider status, stored verbatim
    status_code = String(max_length=20)
    payment_method = String(choices=PaymentMethodKind, required=True)
    payment_detail = String(max_length=255)
    payment_display = String(max_length=100)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    courier_company_id = String(max_length=50)
    courier_name = String(max_length=100)
    awb_code = String(max_length=100)
    shipment_id = String(max_length=100)
    remote_order_id = String(max_length=100)
    tracking_url = String(max_length=500)
    pickup_scheduled_date = String(max_length=50)
    expected_delivery_date = String(max_length=50)
    processed_event_ids = Text()  # JSON array of webhook event ids
    notes = Text()
    from_cart = Boolean(default=False)
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    cancelled_at = DateTime()
    delivered_at = DateTime()

    @invariant.post
    def line_totals_must_add_up_to_subtotal(self):
        if not self.pricing or not self.items:
            return
        line_sum = round_money(sum(item.line_total for item in self.items))
        if line_sum != round_money(self.pricing.subtotal):
            raise ValidationError({"pricing": ["Subtotal must equal the sum of line totals"]})

    @invariant.post
    def total_must_match_components(self):
        if not self.pricing:
            return
        p = self.pricing
        if round_money(p.subtotal + p.shipping_cost + p.tax - p.discount) != round_money(p.total):
            raise ValidationError({"pricing": ["Total must equal subtotal + shipping + tax - discount"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number,
        customer_id,
        items,
        shipping_address,
        billing_address,
        pricing,
        payment: PaymentMethod,
        coupon_code=None,
        courier_company_id=None,
        courier_name=None,
        notes=None,
        from_cart=False,
    ):
        """Create a pending order.

        Args:
            items: List of dicts with product_id, product_name, color, size,
                   quantity, unit_price (already re-read from the catalog).
            shipping_address / billing_address: Address value objects or dicts.
            pricing: Pricing value object.
        """
        now = datetime.now(UTC)

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            items=[
                OrderItem(
                    product_id=item["product_id"],
                    product_name=item["product_name"],
                    color=item.get("color"),
                    size=item.get("size"),
                    quantity=item["quantity"],
                    unit_price=item["unit_price"],
                    line_total=round_money(item["unit_price"] * item["quantity"]),
                )
                for item in items
            ],
            shipping_address=_as_address(shipping_address),
            billing_address=_as_address(billing_address or shipping_address),
            pricing=pricing,
            coupon_code=coupon_code,
            status=OrderStatus.PENDING.value,
            payment_method=kind_of(payment).value,
            payment_detail=detail_of(payment),
            payment_display=describe(payment),
            payment_status=PaymentStatus.PENDING.value,
            courier_company_id=courier_company_id,
            courier_name=courier_name,
            processed_event_ids=json.dumps([]),
            notes=notes,
            from_cart=from_cart,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                item_count=len(items),
                total=pricing.total,
                payment_method=order.payment_method,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def payment(self) -> PaymentMethod:
        return restore(self.payment_method, self.payment_detail)

    @property
    def is_cancellable(self) -> bool:
        return OrderStatus.CANCELLED in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def find_item(self, product_id, color=None, size=None):
        return next(
            (
                item
                for item in self.items
                if str(item.product_id) == str(product_id)
                and (color is None or item.color == color)
                and (size is None or item.size == size)
            ),
            None,
        )

    def has_processed(self, event_id) -> bool:
        return bool(event_id) and event_id in json.loads(self.processed_event_ids or "[]")

    def is_behind(self, target: OrderStatus) -> bool:
        """True when ``target`` lies ahead of the current status on the fulfillment path."""
        current = OrderStatus(self.status)
        if current not in _PROGRESS or target not in _PROGRESS:
            return False
        return _PROGRESS[target] > _PROGRESS[current]

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    def can_transition(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def _assert_can_transition(self, target: OrderStatus):
        current = OrderStatus(self.status)
        if not self.can_transition(target):
            raise InvalidState(f"Cannot transition order from {current.value} to {target.value}")

    # -------------------------------------------------------------------
    # Status changes
    # -------------------------------------------------------------------
    def advance_to(self, target: OrderStatus):
        """Move forward along the fulfillment path (provider-driven)."""
        if target == OrderStatus.CANCELLED:
            raise ValueError("Use cancel() to cancel an order")
        self._assert_can_transition(target)

        previous = self.status
        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                from_status=previous,
                to_status=target.value,
            )
        )

        if target == OrderStatus.DELIVERED:
            self._mark_delivered(now)

    def _mark_delivered(self, now):
        if self.delivered_at is None:
            self.delivered_at = now
            self.raise_(OrderDelivered(order_id=str(self.id), order_number=self.order_number, delivered_at=now))
        if settles_on_delivery(self.payment) and self.payment_status == PaymentStatus.PENDING.value:
            self._set_payment_status(PaymentStatus.PAID)

    def confirm(self):
        if self.status == OrderStatus.CONFIRMED.value:
            return
        self.advance_to(OrderStatus.CONFIRMED)

    def cancel(self, reason):
        if self.status == OrderStatus.CANCELLED.value:
            raise InvalidState("Order is already cancelled")
        self._assert_can_transition(OrderStatus.CANCELLED)

        now = datetime.now(UTC)
        self.status = OrderStatus.CANCELLED.value
        self.cancelled_at = now
        self.cancellation_reason = reason
        self.updated_at = now
        if self.payment_status == PaymentStatus.PAID.value:
            self._set_payment_status(PaymentStatus.REFUNDED)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                reason=reason,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def _set_payment_status(self, status: PaymentStatus, reference=None):
        previous = self.payment_status
        self.payment_status = status.value
        if reference:
            self.payment_reference = reference
        self.updated_at = datetime.now(UTC)
        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                from_status=previous,
                to_status=status.value,
            )
        )

    def mark_paid(self, reference=None):
        if self.payment_status == PaymentStatus.PAID.value:
            return
        if self.payment_status == PaymentStatus.REFUNDED.value:
            raise InvalidState("Refunded orders cannot be marked paid", field="payment_status")
        self._set_payment_status(PaymentStatus.PAID, reference)

    def mark_payment_failed(self, reference=None):
        if self.payment_status in (PaymentStatus.PAID.value, PaymentStatus.REFUNDED.value):
            raise InvalidState(
                f"Cannot mark a {self.payment_status} order as failed",
                field="payment_status",
            )
        if self.payment_status == PaymentStatus.FAILED.value:
            return
        self._set_payment_status(PaymentStatus.FAILED, reference)

    # -------------------------------------------------------------------
    # Provider bookkeeping
    # -------------------------------------------------------------------
    def record_provider_status(self, current_status, status_code=None):
        self.current_status = current_status
        if status_code is not None:
            self.status_code = str(status_code)
        self.updated_at = datetime.now(UTC)

    def record_shipment_details(
        self,
        awb_code=None,
        shipment_id=None,
        courier_name=None,
        pickup_scheduled_date=None,
        expected_delivery_date=None,
        tracking_url=None,
    ):
        details = {
            "awb_code": awb_code,
            "shipment_id": shipment_id,
            "courier_name": courier_name,
            "pickup_scheduled_date": pickup_scheduled_date,
            "expected_delivery_date": expected_delivery_date,
            "tracking_url": tracking_url,
        }
        for name, value in details.items():
            if value:
                setattr(self, name, str(value))
        self.updated_at = datetime.now(UTC)

    def link_remote_order(self, remote_order_id, shipment_id=None):
        self.remote_order_id = str(remote_order_id)
        if shipment_id:
            self.shipment_id = str(shipment_id)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            RemoteOrderLinked(
                order_id=str(self.id),
                remote_order_id=self.remote_order_id,
                shipment_id=self.shipment_id,
            )
        )

    def mark_processed(self, event_id):
        if not event_id:
            return
        seen = json.loads(self.processed_event_ids or "[]")
        if event_id not in seen:
            seen.append(event_id)
            self.processed_event_ids = json.dumps(seen[-MAX_TRACKED_EVENT_IDS:])

    # -------------------------------------------------------------------
    # Service request flags
    # -------------------------------------------------------------------
    def flag_request(self, item, request_type, open_):
        if request_type == "exchange":
            item.exchange_requested = open_
        else:
            item.return_requested = open_
        self.updated_at = datetime.now(UTC)


def _as_address(value):
    if value is None or isinstance(value, Address):
        return value
    return Address(**value)


def find_order_by(**filters):
    """First order matching ``filters``, or None."""
    matches = current_domain.repository_for(Order)._dao.query.filter(**filters).all().items
    return matches[0] if matches else None


def count_orders_for(customer_id) -> int:
    """Non-cancelled orders placed by ``customer_id``."""
    orders = current_domain.repository_for(Order)._dao.query.filter(customer_id=str(customer_id)).all().items
    return sum(1 for o in orders if o.status != OrderStatus.CANCELLED.value)


def get_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise NotFound("order", str(order_id)) from None
