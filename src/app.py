"""Storefront FastAPI application.

Web server that processes commands synchronously via HTTP. Every request
runs inside the storefront domain context.

Usage:
    uvicorn app:app --app-dir src --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError
from protean.integrations.fastapi import register_exception_handlers

from storefront.domain import storefront
from storefront.utils.logging import configure_logging

configure_logging()
storefront.init()


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Storefront API",
    description="Retail order fulfillment: catalog, coupons, orders, shipments and returns",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)


@app.exception_handler(ExpectedVersionError)
async def version_conflict_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    """Concurrent writers outlasted the handler retries; the client may retry."""
    return JSONResponse(status_code=409, content={"error": "Concurrent update, please retry"})


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the storefront domain context for each request."""
    with storefront.domain_context():
        response = await call_next(request)
    return response


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from storefront.api import (  # noqa: E402
    cart_router,
    catalog_router,
    coupon_router,
    order_router,
    service_request_router,
    shipping_router,
    webhook_router,
    wishlist_router,
)

app.include_router(catalog_router)
app.include_router(coupon_router)
app.include_router(order_router)
app.include_router(shipping_router)
app.include_router(webhook_router)
app.include_router(cart_router)
app.include_router(wishlist_router)
app.include_router(service_request_router)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": storefront.name})
