"""Event router — turns host lifecycle events into side effects.

Each side effect (coupon issuance, webhook dispatch, cleanup) runs as its
own step and reports a ``StepResult``. A failed step is logged and the
router moves on, so a coupon failure never blocks the webhook and nothing
ever propagates into the host transaction.

Ordering within one event is fixed: the coupon step finishes before the
webhook payload is built, so the payload always reflects the final coupon
state.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

import structlog

from leadcollect.abandoned_cart.cleanup import remove_abandoned_carts_for_customer
from leadcollect.abandoned_cart.processed_event import claim_event
from leadcollect.cart.canonical import GUEST_CUSTOMER_ID, CanonicalCart
from leadcollect.coupon import get_coupon_gateway
from leadcollect.coupon.codes import is_recovery_code
from leadcollect.coupon.port import CouponGateway, CouponGrant
from leadcollect.errors import ReferenceNotFound
from leadcollect.webhook.delivery import DeliveryResult, WebhookDeliveryEngine
from leadcollect.webhook.payloads import (
    EventType,
    PlacedOrder,
    build_cart_abandoned_event,
    build_coupon_redeemed_event,
    build_order_placed_event,
)

logger = structlog.get_logger(__name__)

PROMOTION_LINE_ITEM = "promotion"


@dataclass(frozen=True)
class StepResult:
    step: str
    success: bool
    detail: Any = None
    error: str | None = None


@dataclass
class RoutingOutcome:
    event_type: str
    skipped: bool = False
    reason: str | None = None
    steps: list[StepResult] = field(default_factory=list)

    def step(self, name: str) -> StepResult | None:
        return next((s for s in self.steps if s.step == name), None)

    @property
    def succeeded(self) -> bool:
        return not self.skipped and all(s.success for s in self.steps)


class EventRouter:
    """Routes lifecycle events to coupon, webhook and cleanup steps."""

    def __init__(
        self,
        engine: WebhookDeliveryEngine,
        coupons: CouponGateway,
        claim: Callable[[str, str], bool],
        cleanup: Callable[[str], int],
    ):
        self.engine = engine
        self.coupons = coupons
        self.claim = claim
        self.cleanup = cleanup

    # -------------------------------------------------------------------
    # Cart abandoned
    # -------------------------------------------------------------------
    def on_cart_abandoned(self, cart: CanonicalCart) -> RoutingOutcome:
        event_type = EventType.CART_ABANDONED.value
        outcome = RoutingOutcome(event_type=event_type)

        if not self.claim(cart.cart_token, event_type):
            logger.info("Cart abandonment already processed, skipping", cart_token=cart.cart_token)
            outcome.skipped, outcome.reason = True, "duplicate"
            return outcome

        coupon_step = self._issue_coupon(cart)
        outcome.steps.append(coupon_step)

        grant = coupon_step.detail if coupon_step.success else None
        outcome.steps.append(self._dispatch(build_cart_abandoned_event(cart, grant), cart.cart_token))
        return outcome

    def on_abandoned_cart_updated(self, cart: CanonicalCart) -> RoutingOutcome:
        # Incremental cart edits would otherwise flood LeadCollect with webhooks
        logger.debug("Abandoned cart updated, no webhook sent", cart_token=cart.cart_token)
        return RoutingOutcome(event_type="abandoned_cart_updated", skipped=True, reason="no-op")

    # -------------------------------------------------------------------
    # Order placed
    # -------------------------------------------------------------------
    def on_order_placed(self, order: PlacedOrder) -> RoutingOutcome:
        event_type = EventType.ORDER_PLACED.value
        outcome = RoutingOutcome(event_type=event_type)

        if not order.customer_id or order.customer_id == GUEST_CUSTOMER_ID:
            logger.info("Guest order, skipping LeadCollect tracking", order_id=order.order_id)
            outcome.skipped, outcome.reason = True, "guest"
            return outcome

        if not self.claim(order.cart_token or order.order_id, event_type):
            logger.info("Order already processed, skipping", order_id=order.order_id)
            outcome.skipped, outcome.reason = True, "duplicate"
            return outcome

        token = order.cart_token or order.order_id
        coupon_code = self._find_recovery_coupon(order, token)

        outcome.steps.append(self._dispatch(build_order_placed_event(order, coupon_code), token))
        if coupon_code:
            outcome.steps.append(self._dispatch(build_coupon_redeemed_event(order, coupon_code), token))
        outcome.steps.append(self._cleanup(order.customer_id, token))
        return outcome

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    def _issue_coupon(self, cart: CanonicalCart) -> StepResult:
        try:
            grant: CouponGrant = self.coupons.issue(cart.customer_id, cart.cart_token, cart.sales_channel_id)
        except Exception as exc:
            logger.warning(
                "Coupon issuance failed, sending webhook without coupon",
                event_type=EventType.CART_ABANDONED.value,
                cart_token=cart.cart_token,
                error=str(exc),
            )
            return StepResult(step="coupon", success=False, error=str(exc))

        logger.info("Recovery coupon issued", cart_token=cart.cart_token, code=grant.code)
        return StepResult(step="coupon", success=True, detail=grant)

    def _find_recovery_coupon(self, order: PlacedOrder, token: str) -> str | None:
        try:
            return extract_recovery_coupon(order.line_items, self.coupons)
        except Exception as exc:
            logger.warning(
                "Recovery code lookup failed, reporting order without code",
                event_type=EventType.ORDER_PLACED.value,
                cart_token=token,
                error=str(exc),
            )
            return None

    def _dispatch(self, event, token: str) -> StepResult:
        step = f"webhook:{event.event_type.value}"
        try:
            result: DeliveryResult = self.engine.deliver(event)
        except Exception as exc:
            logger.error(
                "Webhook dispatch failed",
                event_type=event.event_type.value,
                cart_token=token,
                error=str(exc),
            )
            return StepResult(step=step, success=False, error=str(exc))

        if not result.success:
            logger.warning(
                "Webhook not delivered",
                event_type=event.event_type.value,
                cart_token=token,
                status=result.status.value,
                attempts=result.attempts,
            )
        return StepResult(step=step, success=result.success, detail=result, error=result.failure_reason)

    def _cleanup(self, customer_id: str, token: str) -> StepResult:
        try:
            removed = self.cleanup(customer_id)
        except Exception as exc:
            logger.error(
                "Abandoned cart cleanup failed",
                event_type=EventType.ORDER_PLACED.value,
                cart_token=token,
                customer_id=customer_id,
                error=str(exc),
            )
            return StepResult(step="cleanup", success=False, error=str(exc))
        return StepResult(step="cleanup", success=True, detail=removed)


def extract_recovery_coupon(line_items, coupons: CouponGateway | None = None) -> str | None:
    """Find the recovery code used in an order, if any.

    Promotion line items carry the code directly (as the referenced id or in
    the payload) or only a reference to the individual code, which is then
    resolved through the coupon gateway. Unknown references are ignored.
    """
    for item in line_items or ():
        if not isinstance(item, dict) or item.get("type") != PROMOTION_LINE_ITEM:
            continue

        payload = item.get("payload") or {}
        for candidate in (item.get("referencedId"), payload.get("code")):
            if is_recovery_code(candidate):
                return candidate

        if coupons is None:
            continue
        for ref in (payload.get("promotionCodeId"), payload.get("promotionId")):
            if not ref:
                continue
            try:
                code = coupons.resolve_code(ref)
            except ReferenceNotFound:
                logger.debug("Promotion reference not found", promotion_ref=ref)
                continue
            if is_recovery_code(code):
                return code
    return None


def build_event_router() -> EventRouter:
    """Router wired to the active adapters and the durable idempotency markers."""
    return EventRouter(
        engine=WebhookDeliveryEngine(),
        coupons=get_coupon_gateway(),
        claim=claim_event,
        cleanup=remove_abandoned_carts_for_customer,
    )
