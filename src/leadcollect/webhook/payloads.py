"""Outbound webhook events and their payload shapes.

Three event types are sent to LeadCollect:

    cart_abandoned   — customer, address, cart contents and the recovery coupon
    order_placed     — order value plus the recovery code if one was used
    coupon_redeemed  — a recovery code came back in an order
"""

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from leadcollect.cart.canonical import DEFAULT_FIRST_NAME, Address, CanonicalCart
from leadcollect.coupon.port import CouponGrant


class EventType(Enum):
    CART_ABANDONED = "cart_abandoned"
    COUPON_REDEEMED = "coupon_redeemed"
    ORDER_PLACED = "order_placed"


@dataclass
class WebhookEvent:
    """One unit of outbound delivery. Discarded once delivery finishes."""

    event_type: EventType
    payload: dict = field(default_factory=dict)
    sales_channel_id: str | None = None

    def to_body(self) -> dict:
        """The JSON document posted to LeadCollect, ``eventType`` first."""
        return {"eventType": self.event_type.value, **self.payload}

    def to_json(self) -> bytes:
        return json.dumps(self.to_body(), default=_json_default).encode("utf-8")


@dataclass(frozen=True)
class PlacedOrder:
    """What the router needs to know about a freshly placed order."""

    order_id: str
    order_value: Decimal
    customer_id: str | None = None
    customer_email: str | None = None
    sales_channel_id: str | None = None
    cart_token: str | None = None
    line_items: tuple[dict, ...] = ()


def build_cart_abandoned_event(cart: CanonicalCart, coupon: CouponGrant | None = None) -> WebhookEvent:
    """Build the ``cart_abandoned`` event; the coupon block only appears when a code was issued."""
    customer = cart.customer
    address = customer.address if customer else Address()

    payload = {
        "externalCartId": cart.cart_token,
        "externalCustomerId": cart.customer_id,
        "abandonedAt": datetime.now(UTC).isoformat(),
        "customer": {
            "firstName": (customer.first_name if customer else None) or DEFAULT_FIRST_NAME,
            "lastName": (customer.last_name if customer else None) or "",
            "email": customer.email if customer else None,
            "address": address.to_dict(),
        },
        "cart": {
            "totalPrice": float(cart.total_price),
            "currency": cart.currency,
            "lineItems": [
                {
                    "name": item.name,
                    "sku": item.sku or item.product_id,
                    "price": float(item.unit_price),
                    "quantity": item.quantity,
                    "imageUrl": item.image_url,
                }
                for item in cart.line_items
            ],
        },
    }
    if coupon is not None:
        payload["coupon"] = coupon.to_payload()

    return WebhookEvent(
        event_type=EventType.CART_ABANDONED,
        payload=payload,
        sales_channel_id=cart.sales_channel_id,
    )


def build_order_placed_event(order: PlacedOrder, coupon_code: str | None = None) -> WebhookEvent:
    return WebhookEvent(
        event_type=EventType.ORDER_PLACED,
        payload={
            "orderId": order.order_id,
            "orderValue": float(order.order_value),
            "couponCode": coupon_code,
            "customerId": order.customer_id,
            "customerEmail": order.customer_email,
        },
        sales_channel_id=order.sales_channel_id,
    )


def build_coupon_redeemed_event(order: PlacedOrder, coupon_code: str) -> WebhookEvent:
    return WebhookEvent(
        event_type=EventType.COUPON_REDEEMED,
        payload={
            "couponCode": coupon_code,
            "orderId": order.order_id,
            "orderValue": float(order.order_value),
            "customerId": order.customer_id,
        },
        sales_channel_id=order.sales_channel_id,
    )


def _json_default(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")
