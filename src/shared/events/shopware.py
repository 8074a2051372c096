"""Cross-domain event contracts for host shop (Shopware) checkout events.

The host publishes a CheckoutOrderPlaced event when a customer completes
checkout. It is registered as an external event via
domain.register_external_event() with a matching __type__ string so
Protean's stream deserialization works correctly.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, String, Text


class CheckoutOrderPlaced(BaseEvent):
    """A customer placed an order in the host shop.

    Consumed by the LeadCollect connector to report recoveries and clean up
    abandoned carts.
    """

    __version__ = 1

    order_id = Identifier(required=True)
    order_value = Float(required=True)
    customer_id = String()  # Empty for guest checkouts
    customer_email = String()
    sales_channel_id = String()
    cart_token = String()
    line_items = Text()  # JSON list of line item dicts (type, referencedId, payload)
    placed_at = DateTime(required=True)
