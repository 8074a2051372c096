"""FastAPI routes for the LeadCollect connector.

Thin adapters around the domain: polling, health and the two restore links.
No business logic — just request→domain call→response translation.
"""

import hmac
from datetime import UTC, datetime
from uuid import uuid4

import structlog
from fastapi import APIRouter, Header, Query
from fastapi.responses import JSONResponse, RedirectResponse

from leadcollect.abandoned_cart.detection import DEFAULT_LIMIT, DEFAULT_MIN_AGE_SECONDS, MAX_LIMIT, collect_idle_carts
from leadcollect.abandoned_cart.restore import restore_from_code, restore_from_skus, restore_from_token
from leadcollect.api.schemas import (
    AddressResponse,
    CartListResponse,
    CartResponse,
    CustomerResponse,
    ErrorResponse,
    HealthResponse,
    LineItemResponse,
)
from leadcollect.cart.canonical import CanonicalCart, CustomerSnapshot
from leadcollect.config import get_settings_store
from leadcollect.domain import __version__

logger = structlog.get_logger(__name__)

PLUGIN_NAME = "MailCampaignsAbandonedCart"

api_router = APIRouter(prefix="/api/leadcollect", tags=["leadcollect"])
restore_router = APIRouter(tags=["leadcollect-restore"])


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------
@api_router.get(
    "/carts",
    response_model=CartListResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)
async def list_idle_carts(
    min_age: int = Query(DEFAULT_MIN_AGE_SECONDS, ge=0),
    limit: int = Query(DEFAULT_LIMIT, ge=1),
    secret: str | None = Query(None),
    x_leadcollect_secret: str | None = Header(None),
):
    """Idle host carts for LeadCollect's own polling schedule."""
    if not _secret_matches(secret or x_leadcollect_secret):
        logger.warning("Rejected LeadCollect poll with invalid secret")
        return JSONResponse(status_code=401, content={"success": False, "error": "Invalid secret"})

    limit = min(limit, MAX_LIMIT)
    logger.info("Fetching idle carts for LeadCollect", min_age_seconds=min_age, limit=limit)

    try:
        carts = collect_idle_carts(min_age_seconds=min_age, limit=limit)
    except Exception as exc:
        logger.exception("Error fetching idle carts")
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    payload = [_cart_response(cart) for cart in carts]
    return CartListResponse(
        success=True,
        count=len(payload),
        carts=payload,
        queried_at=datetime.now(UTC).isoformat(),
        min_age_seconds=min_age,
    )


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------
@api_router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(
        status="ok",
        plugin=PLUGIN_NAME,
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
    )


# ---------------------------------------------------------------------------
# Restore
# ---------------------------------------------------------------------------
@restore_router.get("/leadcollect-restore")
async def restore_cart(
    token: str | None = Query(None),
    coupon: str | None = Query(None),
    lc_restore: str | None = Query(None),
    sw_context_token: str | None = Header(None),
):
    """Restore an abandoned cart from an email link and apply its coupon.

    ``lc_restore`` takes a recovery code (or a cart token) instead of ``token``.
    """
    context_token = sw_context_token or uuid4().hex
    try:
        if lc_restore:
            restore_from_code(context_token, lc_restore)
        else:
            restore_from_token(context_token, token, coupon)
    except Exception:
        # The shopper lands on the cart page either way
        logger.exception("Cart restore failed", cart_token=token, restore_code=lc_restore)
    return _redirect_to_cart(context_token)


@restore_router.get("/leadcollect/restore")
async def restore_cart_by_sku(
    sku: str = Query(""),
    q: str = Query(""),
    c: str | None = Query(None),
    sales_channel_id: str | None = Query(None),
    sw_context_token: str | None = Header(None),
):
    """Restore products from a postcard QR code (``?sku=A,B&q=1,2&c=CODE``)."""
    context_token = sw_context_token or uuid4().hex
    try:
        restore_from_skus(context_token, sku, q, c, sales_channel_id=sales_channel_id)
    except Exception:
        logger.exception("SKU-based cart restore failed", skus=sku)
    return _redirect_to_cart(context_token)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _secret_matches(provided: str | None) -> bool:
    expected = get_settings_store().defaults.webhook_secret
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


def _redirect_to_cart(context_token: str) -> RedirectResponse:
    url = get_settings_store().defaults.storefront_cart_url
    response = RedirectResponse(url=url, status_code=302)
    response.headers["sw-context-token"] = context_token
    return response


def _cart_response(cart: CanonicalCart) -> CartResponse:
    customer = cart.customer or CustomerSnapshot()
    address = customer.address.to_dict()
    return CartResponse(
        cart_token=cart.cart_token,
        cart_total=float(cart.total_price),
        line_item_count=cart.line_item_count,
        created_at=cart.created_at.isoformat() if cart.created_at else None,
        updated_at=cart.updated_at.isoformat() if cart.updated_at else None,
        sales_channel_id=cart.sales_channel_id,
        customer=CustomerResponse(
            id=cart.customer_id,
            first_name=customer.first_name,
            last_name=customer.last_name,
            email=customer.email,
            address=AddressResponse(**address),
        ),
        line_items=[
            LineItemResponse(
                name=item.name,
                sku=item.sku,
                product_id=item.product_id,
                quantity=item.quantity,
                price=float(item.unit_price),
                image_url=item.image_url,
            )
            for item in cart.line_items
        ],
    )
