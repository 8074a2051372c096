"""AbandonedCart aggregate — a snapshot of one host cart judged abandoned.

Lifecycle:
    marked     — first idle check that sees the cart (AbandonedCartMarked)
    refreshed  — later idle checks update the snapshot (AbandonedCartUpdated)
    restored   — a shopper used a recovery link (AbandonedCartRestored)
    removed    — an order was placed by the same customer

Line items and the customer snapshot are kept as JSON in canonical form.
"""

import json
from datetime import UTC, datetime
from decimal import Decimal

from protean.fields import DateTime, Float, String, Text
from protean.utils.globals import current_domain

from leadcollect.abandoned_cart.events import AbandonedCartMarked, AbandonedCartRestored, AbandonedCartUpdated
from leadcollect.cart.canonical import (
    DEFAULT_CURRENCY,
    GUEST_CUSTOMER_ID,
    CanonicalCart,
    CartLineItem,
    CustomerSnapshot,
)
from leadcollect.domain import leadcollect


@leadcollect.aggregate
class AbandonedCart:
    """An abandoned host cart, kept until the customer places an order."""

    cart_token: String(required=True, max_length=255)
    customer_id: String(max_length=255, default=GUEST_CUSTOMER_ID)
    sales_channel_id: String(max_length=255)

    total_price: Float(default=0.0)
    currency: String(max_length=3, default=DEFAULT_CURRENCY)
    line_items: Text()  # JSON list of canonical line items
    customer: Text()  # JSON customer snapshot

    last_restored_at: DateTime()
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def mark(cls, cart: CanonicalCart):
        """Record ``cart`` as abandoned."""
        now = datetime.now(UTC)

        abandoned = cls(
            cart_token=cart.cart_token,
            customer_id=cart.customer_id,
            sales_channel_id=cart.sales_channel_id,
            total_price=float(cart.total_price),
            currency=cart.currency,
            line_items=_line_items_json(cart),
            customer=_customer_json(cart),
            created_at=now,
            updated_at=now,
        )

        abandoned.raise_(
            AbandonedCartMarked(
                abandoned_cart_id=str(abandoned.id),
                cart_token=cart.cart_token,
                customer_id=cart.customer_id,
                sales_channel_id=cart.sales_channel_id,
                total_price=float(cart.total_price),
                line_item_count=cart.line_item_count,
                marked_at=now,
            )
        )

        return abandoned

    # -------------------------------------------------------------------
    # Behavior
    # -------------------------------------------------------------------
    def refresh(self, cart: CanonicalCart):
        """Replace the snapshot with what the latest idle check saw."""
        now = datetime.now(UTC)

        self.customer_id = cart.customer_id
        self.sales_channel_id = cart.sales_channel_id or self.sales_channel_id
        self.total_price = float(cart.total_price)
        self.currency = cart.currency
        self.line_items = _line_items_json(cart)
        self.customer = _customer_json(cart)
        self.updated_at = now

        self.raise_(
            AbandonedCartUpdated(
                abandoned_cart_id=str(self.id),
                cart_token=self.cart_token,
                total_price=self.total_price,
                line_item_count=cart.line_item_count,
                updated_at=now,
            )
        )

    def record_restore(self, coupon_code=None):
        """Touch the cart after a shopper came back through a recovery link."""
        now = datetime.now(UTC)

        self.last_restored_at = now
        self.updated_at = now

        self.raise_(
            AbandonedCartRestored(
                abandoned_cart_id=str(self.id),
                cart_token=self.cart_token,
                coupon_code=coupon_code,
                restored_at=now,
            )
        )

    def to_canonical(self) -> CanonicalCart:
        """Rebuild the canonical cart from the stored snapshot."""
        items = json.loads(self.line_items) if self.line_items else []
        customer = json.loads(self.customer) if self.customer else None

        return CanonicalCart(
            cart_token=self.cart_token,
            customer_id=self.customer_id or GUEST_CUSTOMER_ID,
            sales_channel_id=self.sales_channel_id,
            total_price=Decimal(str(self.total_price or 0)),
            currency=self.currency or DEFAULT_CURRENCY,
            line_items=tuple(CartLineItem.from_dict(item) for item in items),
            customer=CustomerSnapshot.from_dict(customer) if customer else None,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


def _line_items_json(cart: CanonicalCart) -> str:
    return json.dumps([item.to_dict() for item in cart.line_items])


def _customer_json(cart: CanonicalCart) -> str | None:
    return json.dumps(cart.customer.to_dict()) if cart.customer else None


def find_by_cart_token(cart_token: str) -> AbandonedCart | None:
    """Most recent abandoned cart recorded for ``cart_token``."""
    records = current_domain.repository_for(AbandonedCart)._dao.query.filter(cart_token=cart_token).all().items
    if not records:
        return None
    return max(records, key=lambda record: record.created_at or datetime.min.replace(tzinfo=UTC))
