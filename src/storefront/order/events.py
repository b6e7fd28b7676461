"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Order")
class OrderPlaced:
    """A priced order was persisted and its stock decremented."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)


@storefront.event(part_of="Order")
class OrderDelivered:
    """Start of the return and exchange window."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    delivered_at = DateTime(required=True)


@storefront.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@storefront.event(part_of="Order")
class PaymentStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    from_status = String(required=True)
    to_status = String(required=True)


@storefront.event(part_of="Order")
class RemoteOrderLinked:
    """The shipping provider accepted the order and returned its identifiers."""

    __version__ = 1

    order_id = Identifier(required=True)
    remote_order_id = String(required=True)
    shipment_id = String()
