"""Application tests for EventRouter — cart abandonment and order placement."""

from decimal import Decimal
from unittest.mock import patch

import httpx
import pytest
from protean import current_domain

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart, find_by_cart_token
from leadcollect.abandoned_cart.cleanup import remove_abandoned_carts_for_customer
from leadcollect.abandoned_cart.processed_event import claim_event, is_processed
from leadcollect.cart.canonical import Address, CanonicalCart, CartLineItem, CustomerSnapshot
from leadcollect.routing.router import EventRouter, build_event_router, extract_recovery_coupon
from leadcollect.webhook.delivery import DeliveryStatus, WebhookDeliveryEngine
from leadcollect.webhook.payloads import PlacedOrder
from leadcollect.webhook.transport.httpx_adapter import HttpxWebhookTransport


@pytest.fixture()
def router(transport, settings, coupons):
    engine = WebhookDeliveryEngine(transport=transport, settings=settings, sleep=lambda _: None)
    return EventRouter(
        engine=engine,
        coupons=coupons,
        claim=claim_event,
        cleanup=remove_abandoned_carts_for_customer,
    )


def _cart(cart_token="tok-1", customer_id="C1", **overrides):
    values = {
        "cart_token": cart_token,
        "customer_id": customer_id,
        "sales_channel_id": "sc-1",
        "total_price": Decimal("59.80"),
        "line_items": (
            CartLineItem(product_id="P1", quantity=2, unit_price=Decimal("29.90"), sku="SW-10001", name="Trinkflasche"),
        ),
        "customer": CustomerSnapshot(
            first_name="Erika",
            last_name="Mustermann",
            email="erika@example.com",
            address=Address(street="Hauptstr. 1", zipcode="10115", city="Berlin", country_iso="DE"),
        ),
    }
    values.update(overrides)
    return CanonicalCart(**values)


def _order(order_id="O1", customer_id="C1", cart_token="tok-1", line_items=()):
    return PlacedOrder(
        order_id=order_id,
        order_value=Decimal("120.00"),
        customer_id=customer_id,
        customer_email="erika@example.com",
        sales_channel_id="sc-1",
        cart_token=cart_token,
        line_items=tuple(line_items),
    )


class TestCartAbandoned:
    def test_issues_coupon_and_embeds_it_in_webhook(self, router, transport, coupons):
        outcome = router.on_cart_abandoned(_cart())

        assert outcome.succeeded
        assert [step.step for step in outcome.steps] == ["coupon", "webhook:cart_abandoned"]

        grant = outcome.step("coupon").detail
        assert grant.code.startswith("COMEBACK-")
        assert len(coupons.codes) == 1

        [body] = transport.sent_events("cart_abandoned")
        assert body["externalCartId"] == "tok-1"
        assert body["externalCustomerId"] == "C1"
        assert body["coupon"]["code"] == grant.code
        assert body["customer"]["address"]["street"] == "Hauptstr. 1"
        assert body["cart"]["lineItems"][0]["sku"] == "SW-10001"

    def test_coupon_failure_still_sends_webhook_without_coupon(self, router, transport, coupons):
        coupons.configure(should_succeed=False)

        outcome = router.on_cart_abandoned(_cart())

        assert outcome.step("coupon").success is False
        assert outcome.step("webhook:cart_abandoned").success is True
        [body] = transport.sent_events("cart_abandoned")
        assert "coupon" not in body

    def test_unexpected_coupon_error_still_sends_webhook(self, router, transport, coupons):
        with patch.object(coupons, "issue", side_effect=RuntimeError("db down")):
            outcome = router.on_cart_abandoned(_cart())

        assert outcome.step("coupon").success is False
        assert outcome.step("coupon").error == "db down"
        assert outcome.step("webhook:cart_abandoned").success is True
        [body] = transport.sent_events("cart_abandoned")
        assert "coupon" not in body

    def test_unexpected_engine_error_is_reported_as_failed_step(self, router, transport):
        with patch.object(router.engine, "deliver", side_effect=RuntimeError("boom")):
            outcome = router.on_cart_abandoned(_cart())

        assert outcome.step("coupon").success is True
        assert outcome.step("webhook:cart_abandoned").success is False
        assert outcome.step("webhook:cart_abandoned").error == "boom"
        assert transport.requests == []

    def test_second_event_for_same_token_is_skipped(self, router, transport, coupons):
        router.on_cart_abandoned(_cart())
        duplicate = router.on_cart_abandoned(_cart())

        assert duplicate.skipped is True
        assert duplicate.reason == "duplicate"
        assert len(transport.sent_events("cart_abandoned")) == 1
        assert len(coupons.codes) == 1

    def test_distinct_tokens_each_send_once(self, router, transport):
        router.on_cart_abandoned(_cart("tok-a"))
        router.on_cart_abandoned(_cart("tok-b"))

        assert [body["externalCartId"] for body in transport.sent_events("cart_abandoned")] == ["tok-a", "tok-b"]

    def test_marker_is_kept_when_delivery_fails(self, router, transport):
        transport.configure(default_status=500)

        outcome = router.on_cart_abandoned(_cart())

        assert outcome.step("webhook:cart_abandoned").success is False
        assert is_processed("tok-1", "cart_abandoned")
        assert router.on_cart_abandoned(_cart()).skipped is True

    def test_disabled_webhook_claims_without_calls(self, router, transport, settings):
        settings.set_override("sc-1", webhook_enabled=False)

        outcome = router.on_cart_abandoned(_cart())

        assert outcome.step("webhook:cart_abandoned").detail.status == DeliveryStatus.NOT_ENABLED
        assert transport.requests == []


class TestCartUpdated:
    def test_is_a_no_op(self, router, transport, coupons):
        outcome = router.on_abandoned_cart_updated(_cart())

        assert outcome.skipped is True
        assert outcome.reason == "no-op"
        assert transport.requests == []
        assert coupons.calls == []


class TestOrderPlaced:
    def test_order_with_recovery_code_reports_code_and_cleans_up(self, router, transport):
        current_domain.repository_for(AbandonedCart).add(AbandonedCart.mark(_cart("tok-c1")))
        transport.reset()

        outcome = router.on_order_placed(
            _order(
                cart_token="tok-order",
                line_items=[{"type": "promotion", "referencedId": "COMEBACK-XYZ789", "label": "Comeback"}],
            )
        )

        assert outcome.succeeded
        [body] = transport.sent_events("order_placed")
        assert body["couponCode"] == "COMEBACK-XYZ789"
        assert body["orderValue"] == 120.0
        assert body["customerId"] == "C1"

        [redeemed] = transport.sent_events("coupon_redeemed")
        assert redeemed["couponCode"] == "COMEBACK-XYZ789"
        assert redeemed["orderId"] == "O1"

        assert outcome.step("cleanup").detail == 1
        assert find_by_cart_token("tok-c1") is None

    def test_order_without_recovery_code(self, router, transport):
        outcome = router.on_order_placed(
            _order(
                line_items=[
                    {"type": "product", "referencedId": "P1"},
                    {"type": "promotion", "referencedId": "SUMMER10"},
                ]
            )
        )

        [body] = transport.sent_events("order_placed")
        assert body["couponCode"] is None
        assert transport.sent_events("coupon_redeemed") == []
        assert outcome.step("cleanup").detail == 0

    def test_guest_order_is_skipped(self, router, transport):
        outcome = router.on_order_placed(_order(customer_id=None))

        assert outcome.skipped is True
        assert outcome.reason == "guest"
        assert transport.requests == []

    def test_duplicate_order_event_is_skipped(self, router, transport):
        router.on_order_placed(_order())
        duplicate = router.on_order_placed(_order())

        assert duplicate.reason == "duplicate"
        assert len(transport.sent_events("order_placed")) == 1

    def test_cleanup_runs_even_when_webhook_fails(self, router, transport):
        current_domain.repository_for(AbandonedCart).add(AbandonedCart.mark(_cart("tok-c1")))
        transport.configure(default_status=503)

        outcome = router.on_order_placed(_order(cart_token="tok-order"))

        assert outcome.step("webhook:order_placed").success is False
        assert outcome.step("cleanup").success is True
        assert find_by_cart_token("tok-c1") is None

    def test_cleanup_runs_even_when_engine_raises(self, router, transport):
        current_domain.repository_for(AbandonedCart).add(AbandonedCart.mark(_cart("tok-c1")))

        with patch.object(router.engine, "deliver", side_effect=RuntimeError("boom")):
            outcome = router.on_order_placed(_order(cart_token="tok-order"))

        assert outcome.step("webhook:order_placed").success is False
        assert outcome.step("cleanup").success is True
        assert find_by_cart_token("tok-c1") is None

    def test_cleanup_error_is_reported_not_raised(self, transport, settings, coupons):
        def failing_cleanup(customer_id):
            raise RuntimeError("db down")

        router = EventRouter(
            engine=WebhookDeliveryEngine(transport=transport, settings=settings, sleep=lambda _: None),
            coupons=coupons,
            claim=claim_event,
            cleanup=failing_cleanup,
        )

        outcome = router.on_order_placed(_order())

        assert outcome.step("webhook:order_placed").success is True
        assert outcome.step("cleanup").success is False
        assert outcome.step("cleanup").error == "db down"

    def test_code_lookup_error_still_sends_order_webhook(self, router, transport, coupons):
        items = [{"type": "promotion", "payload": {"promotionCodeId": "code-1"}}]

        with patch.object(coupons, "resolve_code", side_effect=RuntimeError("db down")):
            outcome = router.on_order_placed(_order(line_items=items))

        [body] = transport.sent_events("order_placed")
        assert body["couponCode"] is None
        assert outcome.step("cleanup").success is True

    def test_secret_with_control_character_does_not_break_order_handling(self, settings, coupons):
        current_domain.repository_for(AbandonedCart).add(AbandonedCart.mark(_cart("tok-c1")))
        settings.set_override("sc-1", webhook_secret="s3cr3t\n")
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        router = EventRouter(
            engine=WebhookDeliveryEngine(
                transport=HttpxWebhookTransport(client=client), settings=settings, sleep=lambda _: None
            ),
            coupons=coupons,
            claim=claim_event,
            cleanup=remove_abandoned_carts_for_customer,
        )

        outcome = router.on_order_placed(_order(cart_token="tok-order"))

        assert outcome.step("webhook:order_placed").success is False
        assert outcome.step("cleanup").detail == 1
        assert find_by_cart_token("tok-c1") is None

    def test_other_customers_carts_are_kept(self, router):
        current_domain.repository_for(AbandonedCart).add(AbandonedCart.mark(_cart("tok-c2", customer_id="C2")))

        router.on_order_placed(_order(cart_token="tok-order"))

        assert find_by_cart_token("tok-c2") is not None


class TestExtractRecoveryCoupon:
    def test_code_in_payload(self):
        items = [{"type": "promotion", "referencedId": "promo-1", "payload": {"code": "comeback-abc234"}}]
        assert extract_recovery_coupon(items) == "comeback-abc234"

    def test_resolves_individual_code_reference(self, coupons):
        grant = coupons.issue("C1", "tok-1")
        items = [{"type": "promotion", "payload": {"promotionCodeId": grant.code_id}}]

        assert extract_recovery_coupon(items, coupons) == grant.code

    def test_unknown_reference_is_dropped(self, coupons):
        items = [{"type": "promotion", "payload": {"promotionCodeId": "missing", "promotionId": "also-missing"}}]
        assert extract_recovery_coupon(items, coupons) is None

    def test_ignores_non_promotion_items(self):
        items = [{"type": "product", "referencedId": "COMEBACK-XYZ789"}, "garbage", None]
        assert extract_recovery_coupon(items) is None

    def test_no_line_items(self):
        assert extract_recovery_coupon(None) is None


def test_build_event_router_uses_active_adapters(transport, coupons):
    router = build_event_router()

    router.on_cart_abandoned(_cart("tok-wired"))

    assert len(coupons.calls) == 1
    assert len(transport.sent_events("cart_abandoned")) == 1
