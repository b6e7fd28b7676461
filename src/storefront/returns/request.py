"""ServiceRequest aggregate: an exchange or return raised against a delivered order.

Lifecycle:
    pending → approved → processing → completed
    pending | approved → rejected
    pending → cancelled (by the customer)
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.errors import InvalidState


class RequestType(Enum):
    EXCHANGE = "exchange"
    RETURN = "return"


class RequestStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RefundMethod(Enum):
    ORIGINAL_PAYMENT = "original_payment"
    STORE_CREDIT = "store_credit"
    WALLET = "wallet"


OPEN_STATUSES = {RequestStatus.PENDING, RequestStatus.APPROVED, RequestStatus.PROCESSING}

_VALID_TRANSITIONS = {
    RequestStatus.PENDING: {RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED},
    RequestStatus.APPROVED: {RequestStatus.PROCESSING, RequestStatus.COMPLETED, RequestStatus.REJECTED},
    RequestStatus.PROCESSING: {RequestStatus.COMPLETED},
    RequestStatus.REJECTED: set(),
    RequestStatus.COMPLETED: set(),
    RequestStatus.CANCELLED: set(),
}


@storefront.aggregate
class ServiceRequest:
    request_number = String(required=True, max_length=20)
    request_type = String(choices=RequestType, required=True)
    order_id = Identifier(required=True)
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    product_name = String(max_length=255)
    color = String(max_length=50)
    size = String(max_length=20)
    quantity = Integer(required=True, min_value=1)
    reason = String(required=True, max_length=255)
    description = Text()
    exchange_color = String(max_length=50)
    exchange_size = String(max_length=20)
    refund_amount = Float(min_value=0.0)
    refund_method = String(choices=RefundMethod)
    status = String(choices=RequestStatus, default=RequestStatus.PENDING.value)
    admin_notes = Text()
    created_at = DateTime()
    updated_at = DateTime()
    resolved_at = DateTime()

    @property
    def is_open(self) -> bool:
        return RequestStatus(self.status) in OPEN_STATUSES

    @property
    def is_exchange(self) -> bool:
        return self.request_type == RequestType.EXCHANGE.value

    def _transition(self, target: RequestStatus, admin_notes=None):
        from storefront.returns.events import ServiceRequestStatusChanged

        current = RequestStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidState(f"Cannot move a {current.value} request to {target.value}")

        now = datetime.now(UTC)
        self.status = target.value
        if admin_notes:
            self.admin_notes = admin_notes
        self.updated_at = now
        if not self.is_open:
            self.resolved_at = now

        self.raise_(
            ServiceRequestStatusChanged(
                request_id=str(self.id),
                request_number=self.request_number,
                from_status=current.value,
                to_status=target.value,
            )
        )

    def approve(self, admin_notes=None):
        self._transition(RequestStatus.APPROVED, admin_notes)

    def reject(self, admin_notes=None):
        self._transition(RequestStatus.REJECTED, admin_notes)

    def start_processing(self, admin_notes=None):
        self._transition(RequestStatus.PROCESSING, admin_notes)

    def complete(self, admin_notes=None):
        self._transition(RequestStatus.COMPLETED, admin_notes)

    def cancel(self):
        if self.status != RequestStatus.PENDING.value:
            raise InvalidState("Only pending requests can be cancelled")
        self._transition(RequestStatus.CANCELLED)
