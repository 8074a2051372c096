"""Domain events for the AbandonedCart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from leadcollect.domain import leadcollect


@leadcollect.event(part_of="AbandonedCart")
class AbandonedCartMarked:
    """An idle host cart was recorded as abandoned for the first time."""

    __version__ = 1

    abandoned_cart_id: Identifier(required=True)
    cart_token: String(required=True)
    customer_id: String(required=True)
    sales_channel_id: String()
    total_price: Float()
    line_item_count: Integer()
    marked_at: DateTime(required=True)


@leadcollect.event(part_of="AbandonedCart")
class AbandonedCartUpdated:
    """A later idle check saw the cart again and refreshed its snapshot."""

    __version__ = 1

    abandoned_cart_id: Identifier(required=True)
    cart_token: String(required=True)
    total_price: Float()
    line_item_count: Integer()
    updated_at: DateTime(required=True)


@leadcollect.event(part_of="AbandonedCart")
class AbandonedCartRestored:
    """A shopper followed a recovery link back to the cart."""

    __version__ = 1

    abandoned_cart_id: Identifier(required=True)
    cart_token: String(required=True)
    coupon_code: String()
    restored_at: DateTime(required=True)
