"""FastAPI routes for the storefront: catalog, coupons, orders, shipping, webhooks, carts, returns."""

import json

from fastapi import APIRouter, HTTPException, Request
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.api.schemas import (
    ActiveCouponResponse,
    AddToCartRequest,
    AddToWishlistRequest,
    AddVariantRequest,
    CancelOrderRequest,
    CancelServiceRequestBody,
    CartItemResponse,
    CartResponse,
    CheckoutCartRequest,
    CourierRateResponse,
    CouponIdResponse,
    CouponPreviewResponse,
    CreateCouponRequest,
    CreateOrderRequest,
    CreateProductRequest,
    MoveToCartRequest,
    OrderItemResponse,
    OrderResponse,
    ProductIdResponse,
    RestockRequest,
    ServiceRequestAction,
    ServiceRequestCreate,
    ServiceRequestResponse,
    ShippingOptionsResponse,
    ShippingRatesRequest,
    StatusResponse,
    ToggleCouponResponse,
    TrackingEventResponse,
    TrackingResponse,
    UpdateCartItemRequest,
    UpdateCouponRequest,
    UpdateOrderStatusRequest,
    ValidateCouponRequest,
    WebhookResponse,
    WishlistResponse,
)
from storefront.cart.items import AddToCart, ClearCart, RemoveFromCart, UpdateCartItem, process_cart_command
from storefront.cart.view import view_cart
from storefront.catalog.management import ActivateProduct, AddVariant, CreateProduct, restock
from storefront.coupon.management import CreateCoupon, delete_coupon, toggle_coupon, update_coupon
from storefront.coupon.preview import list_active_coupons, validate_coupon
from storefront.fulfillment.carrier import get_carrier
from storefront.fulfillment.checkout_events import apply_checkout_event
from storefront.fulfillment.rates import quote_items, shipping_options
from storefront.fulfillment.shipment_events import apply_shipment_event
from storefront.fulfillment.tracking import track_order
from storefront.order.cancellation import cancel_order
from storefront.order.checkout import checkout_cart, create_order
from storefront.order.order import get_order
from storefront.order.status import update_order_status
from storefront.returns.resolution import (
    ApproveServiceRequest,
    CancelServiceRequest,
    CompleteServiceRequest,
    RejectServiceRequest,
    StartProcessingServiceRequest,
    get_request,
    resolve,
)
from storefront.returns.submission import submit_request
from storefront.wishlist.management import (
    AddToWishlist,
    MoveToCart,
    RemoveFromWishlist,
    process_wishlist_command,
    view_wishlist,
)

SIGNATURE_HEADER = "X-Api-HMAC-SHA256"


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        status=order.status,
        current_status=order.current_status,
        payment_method=order.payment_method,
        payment_display=order.payment_display,
        payment_status=order.payment_status,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                color=item.color,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
                line_total=item.line_total,
            )
            for item in order.items
        ],
        subtotal=order.pricing.subtotal,
        shipping_cost=order.pricing.shipping_cost,
        tax=order.pricing.tax,
        discount=order.pricing.discount,
        total=order.pricing.total,
        currency=order.pricing.currency,
        coupon_code=order.coupon_code,
        courier_name=order.courier_name,
        awb_code=order.awb_code,
        shipment_id=order.shipment_id,
        remote_order_id=order.remote_order_id,
        created_at=order.created_at,
        cancelled_at=order.cancelled_at,
        delivered_at=order.delivered_at,
        cancellation_reason=order.cancellation_reason,
    )


def _cart_response(cart) -> CartResponse:
    return CartResponse(
        customer_id=str(cart.customer_id),
        items=[
            CartItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                product_name=item.product_name,
                color=item.color,
                size=item.size,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in cart.items
        ],
        total_items=cart.total_items or 0,
        total_amount=cart.total_amount or 0.0,
    )


def _service_request_response(request) -> ServiceRequestResponse:
    return ServiceRequestResponse(
        request_id=str(request.id),
        request_number=request.request_number,
        request_type=request.request_type,
        order_number=request.order_number,
        product_id=str(request.product_id),
        status=request.status,
        reason=request.reason,
        exchange_color=request.exchange_color,
        exchange_size=request.exchange_size,
        refund_amount=request.refund_amount,
    )


# ---------------------------------------------------------------------------
# Catalog Router
# ---------------------------------------------------------------------------
catalog_router = APIRouter(prefix="/products", tags=["catalog"])


@catalog_router.post("", status_code=201, response_model=ProductIdResponse)
async def create_product(body: CreateProductRequest) -> ProductIdResponse:
    command = CreateProduct(**body.model_dump())
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@catalog_router.post("/{product_id}/variants", status_code=201, response_model=StatusResponse)
async def add_variant(product_id: str, body: AddVariantRequest) -> StatusResponse:
    current_domain.process(AddVariant(product_id=product_id, **body.model_dump()), asynchronous=False)
    return StatusResponse()


@catalog_router.post("/{product_id}/activate", response_model=StatusResponse)
async def activate_product(product_id: str) -> StatusResponse:
    current_domain.process(ActivateProduct(product_id=product_id), asynchronous=False)
    return StatusResponse()


@catalog_router.post("/{product_id}/restock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockRequest) -> StatusResponse:
    restock(product_id, body.quantity, body.color, body.size)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Coupon Router
# ---------------------------------------------------------------------------
coupon_router = APIRouter(prefix="/coupons", tags=["coupons"])


@coupon_router.post("", status_code=201, response_model=CouponIdResponse)
async def create_coupon(body: CreateCouponRequest) -> CouponIdResponse:
    data = body.model_dump()
    for name in ("applicable_products", "applicable_categories", "excluded_products"):
        data[name] = json.dumps(data[name])
    result = current_domain.process(CreateCoupon(**data), asynchronous=False)
    return CouponIdResponse(coupon_id=result)


@coupon_router.patch("/{coupon_id}", response_model=StatusResponse)
async def update(coupon_id: str, body: UpdateCouponRequest) -> StatusResponse:
    changes = body.model_dump(exclude_none=True)
    for name in ("applicable_products", "applicable_categories", "excluded_products"):
        if name in changes:
            changes[name] = json.dumps(changes[name])
    update_coupon(coupon_id, **changes)
    return StatusResponse()


@coupon_router.post("/{coupon_id}/toggle", response_model=ToggleCouponResponse)
async def toggle(coupon_id: str) -> ToggleCouponResponse:
    return ToggleCouponResponse(is_active=toggle_coupon(coupon_id))


@coupon_router.get("/active", response_model=list[ActiveCouponResponse])
async def active_coupons() -> list[ActiveCouponResponse]:
    return [ActiveCouponResponse(**offer.__dict__) for offer in list_active_coupons()]


@coupon_router.post("/validate", response_model=CouponPreviewResponse)
async def validate(body: ValidateCouponRequest) -> CouponPreviewResponse:
    preview = validate_coupon(body.code, body.order_amount, body.customer_id, body.product_ids)
    return CouponPreviewResponse(**preview.__dict__)


@coupon_router.delete("/{coupon_id}", response_model=StatusResponse)
async def delete(coupon_id: str) -> StatusResponse:
    delete_coupon(coupon_id)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
async def place_order(body: CreateOrderRequest) -> OrderResponse:
    order = create_order(
        customer_id=body.customer_id,
        line_items=[item.model_dump(exclude={"price"}) for item in body.items],
        shipping_address=body.shipping_address.model_dump(),
        billing_address=body.billing_address.model_dump() if body.billing_address else None,
        payment_method=body.payment_method,
        card_last4=body.card_last4,
        upi_handle=body.upi_handle,
        coupon_code=body.coupon_code,
        courier_company_id=body.courier_company_id,
        notes=body.notes,
    )
    return _order_response(order)


@order_router.post("/checkout", status_code=201, response_model=OrderResponse)
async def checkout(body: CheckoutCartRequest) -> OrderResponse:
    order = checkout_cart(
        body.customer_id,
        body.shipping_address.model_dump(),
        billing_address=body.billing_address.model_dump() if body.billing_address else None,
        payment_method=body.payment_method,
        card_last4=body.card_last4,
        upi_handle=body.upi_handle,
        coupon_code=body.coupon_code,
        courier_company_id=body.courier_company_id,
        notes=body.notes,
    )
    return _order_response(order)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order_detail(order_id: str) -> OrderResponse:
    return _order_response(get_order(order_id))


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
async def cancel(order_id: str, body: CancelOrderRequest) -> OrderResponse:
    order = cancel_order(order_id, reason=body.reason, customer_id=body.customer_id)
    return _order_response(order)


@order_router.patch("/{order_id}/status", response_model=OrderResponse)
async def update_status(order_id: str, body: UpdateOrderStatusRequest) -> OrderResponse:
    if body.status is None and body.payment_status is None:
        raise ValidationError({"status": ["Provide a status or a payment_status"]})
    order = update_order_status(order_id, body.status, body.payment_status, body.reason)
    return _order_response(order)


@order_router.get("/{order_id}/tracking", response_model=TrackingResponse)
async def tracking(order_id: str, customer_id: str | None = None) -> TrackingResponse:
    info = track_order(order_id, customer_id)
    return TrackingResponse(
        order_number=info.order_number,
        status=info.status,
        current_status=info.current_status,
        courier_name=info.courier_name,
        awb_code=info.awb_code,
        shipment_id=info.shipment_id,
        tracking_url=info.tracking_url,
        expected_delivery_date=info.expected_delivery_date,
        delivered_at=info.delivered_at,
        live=info.live,
        events=[TrackingEventResponse(**event.__dict__) for event in info.events],
    )


# ---------------------------------------------------------------------------
# Shipping Router
# ---------------------------------------------------------------------------
shipping_router = APIRouter(prefix="/shipping", tags=["shipping"])


def _shipping_response(options) -> ShippingOptionsResponse:
    return ShippingOptionsResponse(
        delivery_postcode=options.delivery_postcode,
        weight=options.weight,
        declared_value=options.declared_value,
        serviceable=options.serviceable,
        live=options.live,
        rates=[CourierRateResponse(**rate.__dict__) for rate in options.rates],
    )


@shipping_router.post("/rates", response_model=ShippingOptionsResponse)
async def rates(body: ShippingRatesRequest) -> ShippingOptionsResponse:
    items = [item.model_dump() for item in body.items]
    return _shipping_response(quote_items(body.delivery_postcode, items, cod=body.cod))


@shipping_router.get("/serviceability/{postcode}", response_model=ShippingOptionsResponse)
async def serviceability(postcode: str, weight: float = 1.0, cod: bool = False) -> ShippingOptionsResponse:
    return _shipping_response(shipping_options(postcode, weight, cod=cod))


# ---------------------------------------------------------------------------
# Webhook Router
# ---------------------------------------------------------------------------
webhook_router = APIRouter(prefix="/webhooks", tags=["webhooks"])


async def _verified_payload(request: Request) -> dict:
    body = await request.body()
    if not get_carrier().verify_webhook_signature(body, request.headers.get(SIGNATURE_HEADER)):
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    try:
        payload = json.loads(body or b"{}")
    except json.JSONDecodeError:
        raise ValidationError({"body": ["Webhook body must be valid JSON"]}) from None
    if not isinstance(payload, dict):
        raise ValidationError({"body": ["Webhook body must be a JSON object"]})
    return payload


@webhook_router.post("/shipment", response_model=WebhookResponse)
async def shipment_webhook(request: Request) -> WebhookResponse:
    payload = await _verified_payload(request)
    return WebhookResponse(outcome=apply_shipment_event(payload))


@webhook_router.post("/checkout", response_model=WebhookResponse)
async def checkout_webhook(request: Request) -> WebhookResponse:
    payload = await _verified_payload(request)
    return WebhookResponse(outcome=apply_checkout_event(payload))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.get("/{customer_id}", response_model=CartResponse)
async def get_cart(customer_id: str) -> CartResponse:
    return _cart_response(view_cart(customer_id))


@cart_router.post("/{customer_id}/items", status_code=201, response_model=CartResponse)
async def add_cart_item(customer_id: str, body: AddToCartRequest) -> CartResponse:
    process_cart_command(AddToCart(customer_id=customer_id, **body.model_dump()))
    return _cart_response(view_cart(customer_id))


@cart_router.put("/{customer_id}/items/{item_id}", response_model=CartResponse)
async def update_cart_item(customer_id: str, item_id: str, body: UpdateCartItemRequest) -> CartResponse:
    process_cart_command(UpdateCartItem(customer_id=customer_id, item_id=item_id, quantity=body.quantity))
    return _cart_response(view_cart(customer_id))


@cart_router.delete("/{customer_id}/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(customer_id: str, item_id: str) -> CartResponse:
    process_cart_command(RemoveFromCart(customer_id=customer_id, item_id=item_id))
    return _cart_response(view_cart(customer_id))


@cart_router.delete("/{customer_id}", response_model=CartResponse)
async def clear_cart(customer_id: str) -> CartResponse:
    process_cart_command(ClearCart(customer_id=customer_id))
    return _cart_response(view_cart(customer_id))


# ---------------------------------------------------------------------------
# Wishlist Router
# ---------------------------------------------------------------------------
wishlist_router = APIRouter(prefix="/wishlists", tags=["wishlists"])


def _wishlist_response(customer_id) -> WishlistResponse:
    wishlist = view_wishlist(customer_id)
    return WishlistResponse(customer_id=customer_id, product_ids=[str(i.product_id) for i in wishlist.items])


@wishlist_router.get("/{customer_id}", response_model=WishlistResponse)
async def get_wishlist(customer_id: str) -> WishlistResponse:
    return _wishlist_response(customer_id)


@wishlist_router.post("/{customer_id}/items", status_code=201, response_model=WishlistResponse)
async def add_wishlist_item(customer_id: str, body: AddToWishlistRequest) -> WishlistResponse:
    process_wishlist_command(AddToWishlist(customer_id=customer_id, product_id=body.product_id))
    return _wishlist_response(customer_id)


@wishlist_router.delete("/{customer_id}/items/{product_id}", response_model=WishlistResponse)
async def remove_wishlist_item(customer_id: str, product_id: str) -> WishlistResponse:
    process_wishlist_command(RemoveFromWishlist(customer_id=customer_id, product_id=product_id))
    return _wishlist_response(customer_id)


@wishlist_router.post("/{customer_id}/items/{product_id}/move-to-cart", response_model=CartResponse)
async def move_to_cart(customer_id: str, product_id: str, body: MoveToCartRequest) -> CartResponse:
    process_wishlist_command(MoveToCart(customer_id=customer_id, product_id=product_id, **body.model_dump()))
    return _cart_response(view_cart(customer_id))


# ---------------------------------------------------------------------------
# Exchange & Return Router
# ---------------------------------------------------------------------------
service_request_router = APIRouter(prefix="/service-requests", tags=["returns"])


@service_request_router.post("", status_code=201, response_model=ServiceRequestResponse)
async def submit(body: ServiceRequestCreate) -> ServiceRequestResponse:
    details = body.model_dump(exclude={"request_type", "order_id", "customer_id", "product_id", "reason"})
    request = submit_request(
        body.request_type,
        body.order_id,
        body.customer_id,
        body.product_id,
        body.reason,
        **{k: v for k, v in details.items() if v is not None},
    )
    return _service_request_response(request)


@service_request_router.get("/{request_id}", response_model=ServiceRequestResponse)
async def get_service_request(request_id: str) -> ServiceRequestResponse:
    return _service_request_response(get_request(request_id))


@service_request_router.post("/{request_id}/cancel", response_model=ServiceRequestResponse)
async def cancel_service_request(request_id: str, body: CancelServiceRequestBody) -> ServiceRequestResponse:
    return _service_request_response(resolve(CancelServiceRequest(request_id=request_id, customer_id=body.customer_id)))


_ACTIONS = {
    "approve": ApproveServiceRequest,
    "reject": RejectServiceRequest,
    "process": StartProcessingServiceRequest,
    "complete": CompleteServiceRequest,
}


@service_request_router.post("/{request_id}/{action}", response_model=ServiceRequestResponse)
async def resolve_service_request(request_id: str, action: str, body: ServiceRequestAction) -> ServiceRequestResponse:
    command_cls = _ACTIONS.get(action)
    if command_cls is None:
        raise HTTPException(status_code=404, detail=f"Unknown action: {action}")
    return _service_request_response(resolve(command_cls(request_id=request_id, admin_notes=body.admin_notes)))
