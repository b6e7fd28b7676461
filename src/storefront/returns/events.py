"""Domain events for exchange and return requests."""

from protean.fields import Identifier, String

from storefront.domain import storefront


@storefront.event(part_of="ServiceRequest")
class ServiceRequestSubmitted:
    __version__ = 1

    request_id = Identifier(required=True)
    request_number = String(required=True)
    request_type = String(required=True)
    order_id = Identifier(required=True)
    product_id = Identifier(required=True)


@storefront.event(part_of="ServiceRequest")
class ServiceRequestStatusChanged:
    __version__ = 1

    request_id = Identifier(required=True)
    request_number = String(required=True)
    from_status = String(required=True)
    to_status = String(required=True)
