"""Pydantic request/response schemas for the storefront API.

These are external contracts, kept separate from the internal Protean
commands and aggregates.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    first_name: str
    last_name: str | None = None
    email: str | None = None
    phone: str | None = None
    street: str
    city: str
    state: str
    zip_code: str
    country: str = "India"


class LineItemSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)
    color: str | None = None
    size: str | None = None
    # Accepted for client convenience, never used for pricing
    price: float | None = None


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------
class CreateProductRequest(BaseModel):
    name: str
    sku: str
    price: float = Field(gt=0)
    category: str | None = None
    description: str | None = None
    stock: int = Field(default=0, ge=0)


class AddVariantRequest(BaseModel):
    color: str
    size: str
    stock: int = Field(default=0, ge=0)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)
    color: str | None = None
    size: str | None = None


class ProductIdResponse(BaseModel):
    product_id: str


# ---------------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------------
class CreateCouponRequest(BaseModel):
    code: str
    description: str | None = None
    discount_type: str
    discount_value: float
    minimum_purchase: float = 0.0
    maximum_discount: float | None = None
    usage_limit: int | None = None
    per_user_limit: int | None = None
    start_date: datetime
    end_date: datetime
    is_active: bool = True
    applicable_products: list[str] = []
    applicable_categories: list[str] = []
    excluded_products: list[str] = []
    first_time_user_only: bool = False
    free_shipping: bool = False

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "SAVE20",
                    "discount_type": "percentage",
                    "discount_value": 20,
                    "minimum_purchase": 500,
                    "maximum_discount": 1000,
                    "start_date": "2026-01-01T00:00:00Z",
                    "end_date": "2026-12-31T23:59:59Z",
                }
            ]
        }
    }


class UpdateCouponRequest(BaseModel):
    description: str | None = None
    discount_value: float | None = None
    minimum_purchase: float | None = None
    maximum_discount: float | None = None
    usage_limit: int | None = None
    per_user_limit: int | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    applicable_products: list[str] | None = None
    applicable_categories: list[str] | None = None
    excluded_products: list[str] | None = None
    first_time_user_only: bool | None = None
    free_shipping: bool | None = None


class CouponIdResponse(BaseModel):
    coupon_id: str


class ToggleCouponResponse(BaseModel):
    is_active: bool


class ValidateCouponRequest(BaseModel):
    code: str
    order_amount: float = Field(ge=0)
    customer_id: str | None = None
    product_ids: list[str] = []


class CouponPreviewResponse(BaseModel):
    code: str
    description: str | None
    discount_type: str
    discount_value: float
    discount_amount: float
    final_amount: float
    free_shipping: bool


class ActiveCouponResponse(BaseModel):
    coupon_id: str
    code: str
    title: str
    description: str
    discount_type: str
    discount_value: float
    minimum_purchase: float
    maximum_discount: float | None
    end_date: datetime
    terms: list[str]


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    customer_id: str
    items: list[LineItemSchema] = Field(min_length=1)
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str = "cash_on_delivery"
    card_last4: str | None = None
    upi_handle: str | None = None
    coupon_code: str | None = None
    courier_company_id: str | None = None
    notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [{"product_id": "prod-001", "quantity": 2, "color": "Black", "size": "M"}],
                    "shipping_address": {
                        "first_name": "Asha",
                        "last_name": "Rao",
                        "street": "12 MG Road",
                        "city": "Bengaluru",
                        "state": "Karnataka",
                        "zip_code": "560001",
                        "country": "India",
                    },
                    "payment_method": "upi",
                    "upi_handle": "asha@okbank",
                    "coupon_code": "SAVE20",
                }
            ]
        }
    }


class CheckoutCartRequest(BaseModel):
    customer_id: str
    shipping_address: AddressSchema
    billing_address: AddressSchema | None = None
    payment_method: str = "cash_on_delivery"
    card_last4: str | None = None
    upi_handle: str | None = None
    coupon_code: str | None = None
    courier_company_id: str | None = None
    notes: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None
    customer_id: str | None = None


class UpdateOrderStatusRequest(BaseModel):
    status: str | None = None
    payment_status: str | None = None
    reason: str | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    color: str | None
    size: str | None
    quantity: int
    unit_price: float
    line_total: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    customer_id: str
    status: str
    current_status: str | None
    payment_method: str
    payment_display: str | None
    payment_status: str
    items: list[OrderItemResponse]
    subtotal: float
    shipping_cost: float
    tax: float
    discount: float
    total: float
    currency: str
    coupon_code: str | None
    courier_name: str | None
    awb_code: str | None
    shipment_id: str | None
    remote_order_id: str | None
    created_at: datetime | None
    cancelled_at: datetime | None
    delivered_at: datetime | None
    cancellation_reason: str | None


class TrackingEventResponse(BaseModel):
    status: str
    location: str | None
    description: str | None
    occurred_at: str | None


class TrackingResponse(BaseModel):
    order_number: str
    status: str
    current_status: str | None
    courier_name: str | None
    awb_code: str | None
    shipment_id: str | None
    tracking_url: str | None
    expected_delivery_date: str | None
    delivered_at: str | None
    live: bool
    events: list[TrackingEventResponse]


# ---------------------------------------------------------------------------
# Shipping
# ---------------------------------------------------------------------------
class RateItemSchema(BaseModel):
    quantity: int = Field(ge=1)
    price: float = Field(default=0.0, ge=0)


class ShippingRatesRequest(BaseModel):
    delivery_postcode: str
    items: list[RateItemSchema] = Field(min_length=1)
    cod: bool = False


class CourierRateResponse(BaseModel):
    courier_company_id: str
    courier_name: str
    rate: float
    estimated_delivery_days: int | None


class ShippingOptionsResponse(BaseModel):
    delivery_postcode: str
    weight: float
    declared_value: float | None
    serviceable: bool
    live: bool
    rates: list[CourierRateResponse]


# ---------------------------------------------------------------------------
# Webhooks
# ---------------------------------------------------------------------------
class WebhookResponse(BaseModel):
    outcome: str


# ---------------------------------------------------------------------------
# Cart & Wishlist
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    color: str | None = None
    size: str | None = None


class UpdateCartItemRequest(BaseModel):
    quantity: int = Field(ge=1)


class CartItemResponse(BaseModel):
    item_id: str
    product_id: str
    product_name: str
    color: str | None
    size: str | None
    quantity: int
    unit_price: float


class CartResponse(BaseModel):
    customer_id: str
    items: list[CartItemResponse]
    total_items: int
    total_amount: float


class AddToWishlistRequest(BaseModel):
    product_id: str


class MoveToCartRequest(BaseModel):
    quantity: int = Field(default=1, ge=1)
    color: str | None = None
    size: str | None = None


class WishlistResponse(BaseModel):
    customer_id: str
    product_ids: list[str]


# ---------------------------------------------------------------------------
# Exchanges & Returns
# ---------------------------------------------------------------------------
class ServiceRequestCreate(BaseModel):
    request_type: str
    order_id: str
    customer_id: str
    product_id: str
    color: str | None = None
    size: str | None = None
    quantity: int | None = Field(default=None, ge=1)
    reason: str
    description: str | None = None
    exchange_color: str | None = None
    exchange_size: str | None = None
    refund_method: str | None = None


class ServiceRequestAction(BaseModel):
    admin_notes: str | None = None


class CancelServiceRequestBody(BaseModel):
    customer_id: str | None = None


class ServiceRequestResponse(BaseModel):
    request_id: str
    request_number: str
    request_type: str
    order_number: str
    product_id: str
    status: str
    reason: str
    exchange_color: str | None
    exchange_size: str | None
    refund_amount: float | None
