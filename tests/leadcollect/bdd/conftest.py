"""Shared BDD fixtures and step definitions for the LeadCollect connector."""

from decimal import Decimal

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, then

from leadcollect.abandoned_cart.abandoned_cart import AbandonedCart
from leadcollect.cart.canonical import Address, CanonicalCart, CartLineItem, CustomerSnapshot


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def marked_events():
    """AbandonedCartMarked events raised in Given steps, keyed by cart token."""
    return {}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("the LeadCollect webhook is enabled")
def webhook_enabled(settings):
    settings.defaults = settings.defaults.model_copy(update={"webhook_enabled": True})


@given("the LeadCollect webhook is disabled")
def webhook_disabled(settings):
    settings.defaults = settings.defaults.model_copy(update={"webhook_enabled": False})


@given(parsers.cfparse('customer "{customer_id}" has an abandoned cart "{cart_token}"'))
def abandoned_cart_exists(customer_id, cart_token, marked_events):
    cart = CanonicalCart(
        cart_token=cart_token,
        customer_id=customer_id,
        total_price=Decimal("59.80"),
        line_items=(CartLineItem(product_id="P1", quantity=2, unit_price=Decimal("29.90"), sku="SW-10001"),),
        customer=CustomerSnapshot(
            first_name="Erika",
            email="erika@example.com",
            address=Address(street="Hauptstr. 1", zipcode="10115", city="Berlin"),
        ),
    )
    abandoned = AbandonedCart.mark(cart)
    marked_events[cart_token] = abandoned._events[0]
    current_domain.repository_for(AbandonedCart).add(abandoned)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the endpoint received {count:d} requests"))
def endpoint_received(transport, count):
    assert len(transport.requests) == count


@then(parsers.cfparse('customer "{customer_id}" has no abandoned carts'))
def no_abandoned_carts(customer_id):
    records = current_domain.repository_for(AbandonedCart)._dao.query.filter(customer_id=customer_id).all().items
    assert records == []
