"""Lifecycle event handlers — feed host and aggregate events into the router.

Listens for:
    AbandonedCartMarked    — issue a coupon and send ``cart_abandoned``
    AbandonedCartUpdated   — nothing (see EventRouter.on_abandoned_cart_updated)
    CheckoutOrderPlaced    — send ``order_placed`` and clean up abandoned carts

Handlers never raise: the host transaction that triggered the event must
complete whatever happens to the side effects.
"""

import json
from decimal import Decimal

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle
from shared.events.shopware import CheckoutOrderPlaced

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart
from leadcollect.abandoned_cart.events import AbandonedCartMarked, AbandonedCartUpdated
from leadcollect.domain import leadcollect
from leadcollect.routing.router import build_event_router
from leadcollect.utils.logging import add_context, clear_context
from leadcollect.webhook.payloads import PlacedOrder

logger = structlog.get_logger(__name__)

leadcollect.register_external_event(CheckoutOrderPlaced, "Shopware.CheckoutOrderPlaced.v1")


@leadcollect.event_handler(part_of=AbandonedCart)
class AbandonedCartEventsHandler:
    """Reacts to the connector's own AbandonedCart events."""

    @handle(AbandonedCartMarked)
    def on_abandoned_cart_marked(self, event: AbandonedCartMarked) -> None:
        add_context(cart_token=event.cart_token, event_type="cart_abandoned")
        try:
            abandoned = current_domain.repository_for(AbandonedCart).get(event.abandoned_cart_id)
        except ObjectNotFoundError:
            logger.warning("Abandoned cart vanished before routing", abandoned_cart_id=str(event.abandoned_cart_id))
            clear_context()
            return

        try:
            outcome = build_event_router().on_cart_abandoned(abandoned.to_canonical())
            logger.info("Cart abandonment routed", skipped=outcome.skipped, succeeded=outcome.succeeded)
        except Exception:
            logger.exception("Cart abandonment routing failed")
        finally:
            clear_context()

    @handle(AbandonedCartUpdated)
    def on_abandoned_cart_updated(self, event: AbandonedCartUpdated) -> None:
        try:
            abandoned = current_domain.repository_for(AbandonedCart).get(event.abandoned_cart_id)
        except ObjectNotFoundError:
            return
        build_event_router().on_abandoned_cart_updated(abandoned.to_canonical())


@leadcollect.event_handler(part_of=AbandonedCart, stream_category="shopware::order")
class ShopwareOrderEventsHandler:
    """Reacts to orders placed in the host shop."""

    @handle(CheckoutOrderPlaced)
    def on_checkout_order_placed(self, event: CheckoutOrderPlaced) -> None:
        add_context(order_id=str(event.order_id), event_type="order_placed")
        try:
            outcome = build_event_router().on_order_placed(placed_order_from_event(event))
            logger.info(
                "Order routed",
                skipped=outcome.skipped,
                reason=outcome.reason,
                succeeded=outcome.succeeded,
            )
        except Exception:
            logger.exception("Order routing failed")
        finally:
            clear_context()


def placed_order_from_event(event: CheckoutOrderPlaced) -> PlacedOrder:
    line_items = json.loads(event.line_items) if event.line_items else []
    return PlacedOrder(
        order_id=str(event.order_id),
        order_value=Decimal(str(event.order_value or 0)),
        customer_id=event.customer_id or None,
        customer_email=event.customer_email,
        sales_channel_id=event.sales_channel_id,
        cart_token=event.cart_token,
        line_items=tuple(line_items),
    )
