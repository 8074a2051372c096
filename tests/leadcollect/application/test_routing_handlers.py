"""Application tests for the routing event handlers.

Covers:
- AbandonedCartMarked: exactly one cart_abandoned webhook per cart token
- AbandonedCartMarked for a cart that no longer exists: nothing sent
- AbandonedCartUpdated: nothing sent
- CheckoutOrderPlaced: order_placed sent, abandoned carts of the customer removed
- Router failures never escape a handler
"""

import json
from datetime import UTC, datetime
from decimal import Decimal
from unittest.mock import patch

from protean import current_domain
from shared.events.shopware import CheckoutOrderPlaced

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart, find_by_cart_token
from leadcollect.abandoned_cart.events import AbandonedCartMarked, AbandonedCartUpdated
from leadcollect.cart.canonical import Address, CanonicalCart, CartLineItem, CustomerSnapshot
from leadcollect.routing.handlers import (
    AbandonedCartEventsHandler,
    ShopwareOrderEventsHandler,
    placed_order_from_event,
)


def _cart(cart_token, customer_id="C1"):
    return CanonicalCart(
        cart_token=cart_token,
        customer_id=customer_id,
        sales_channel_id="sc-1",
        total_price=Decimal("25.00"),
        line_items=(CartLineItem(product_id="P1", quantity=1, unit_price=Decimal("25.00"), sku="SW-1"),),
        customer=CustomerSnapshot(
            first_name="Erika",
            email="erika@example.com",
            address=Address(street="Hauptstr. 1", city="Berlin"),
        ),
    )


def _persist_marked(cart_token, customer_id="C1"):
    """Persist a freshly marked cart and return its AbandonedCartMarked event."""
    abandoned = AbandonedCart.mark(_cart(cart_token, customer_id))
    event = abandoned._events[0]
    current_domain.repository_for(AbandonedCart).add(abandoned)
    return event


def _order_event(**overrides):
    values = {
        "order_id": "O1",
        "order_value": 120.0,
        "customer_id": "C1",
        "customer_email": "erika@example.com",
        "sales_channel_id": "sc-1",
        "cart_token": "tok-order",
        "line_items": json.dumps([{"type": "promotion", "referencedId": "COMEBACK-XYZ789"}]),
        "placed_at": datetime.now(UTC),
    }
    values.update(overrides)
    return CheckoutOrderPlaced(**values)


class TestAbandonedCartMarkedHandler:
    def test_sends_exactly_one_webhook_per_cart_token(self, transport):
        event = _persist_marked("tok-h1")

        handler = AbandonedCartEventsHandler()
        handler.on_abandoned_cart_marked(event)
        handler.on_abandoned_cart_marked(event)

        bodies = transport.sent_events("cart_abandoned")
        assert len(bodies) == 1
        assert bodies[0]["externalCartId"] == "tok-h1"
        assert bodies[0]["coupon"]["code"].startswith("COMEBACK-")

    def test_missing_cart_sends_nothing(self, transport):
        event = AbandonedCartMarked(
            abandoned_cart_id="does-not-exist",
            cart_token="tok-gone",
            customer_id="C1",
            marked_at=datetime.now(UTC),
        )

        AbandonedCartEventsHandler().on_abandoned_cart_marked(event)

        assert transport.requests == []

    def test_router_failure_does_not_escape(self, transport):
        event = _persist_marked("tok-h2")
        transport.reset()

        with patch("leadcollect.routing.handlers.build_event_router", side_effect=RuntimeError("boom")):
            AbandonedCartEventsHandler().on_abandoned_cart_marked(event)

        assert transport.requests == []


class TestAbandonedCartUpdatedHandler:
    def test_sends_nothing(self, transport):
        abandoned = AbandonedCart.mark(_cart("tok-h3"))
        current_domain.repository_for(AbandonedCart).add(abandoned)
        transport.reset()

        AbandonedCartEventsHandler().on_abandoned_cart_updated(
            AbandonedCartUpdated(
                abandoned_cart_id=str(abandoned.id),
                cart_token="tok-h3",
                updated_at=datetime.now(UTC),
            )
        )

        assert transport.requests == []


class TestCheckoutOrderPlacedHandler:
    def test_reports_order_and_removes_abandoned_carts(self, transport):
        _persist_marked("tok-h4")

        ShopwareOrderEventsHandler().on_checkout_order_placed(_order_event())

        [body] = transport.sent_events("order_placed")
        assert body["orderId"] == "O1"
        assert body["couponCode"] == "COMEBACK-XYZ789"
        assert len(transport.sent_events("coupon_redeemed")) == 1
        assert find_by_cart_token("tok-h4") is None

    def test_guest_order_sends_nothing(self, transport):
        ShopwareOrderEventsHandler().on_checkout_order_placed(_order_event(customer_id=None))

        assert transport.sent_events("order_placed") == []

    def test_router_failure_does_not_escape(self, transport):
        with patch("leadcollect.routing.handlers.build_event_router", side_effect=RuntimeError("boom")):
            ShopwareOrderEventsHandler().on_checkout_order_placed(_order_event())

        assert transport.requests == []


class TestPlacedOrderFromEvent:
    def test_maps_fields(self):
        order = placed_order_from_event(_order_event())

        assert order.order_id == "O1"
        assert order.order_value == Decimal("120.0")
        assert order.customer_id == "C1"
        assert order.cart_token == "tok-order"
        assert order.line_items[0]["referencedId"] == "COMEBACK-XYZ789"

    def test_empty_line_items_and_guest(self):
        order = placed_order_from_event(_order_event(line_items=None, customer_id=""))

        assert order.line_items == ()
        assert order.customer_id is None
