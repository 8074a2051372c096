"""Host cart source port (abstract interface).

A cart source reads idle carts straight from the host's cart storage. Rows
use the column names of the polling query (``cart_token``, ``cart_total``,
``line_item_count``, ``cart_created_at``, ``cart_updated_at``, the variant's
payload column, ``customer_id``, ``first_name``, ``last_name``, ``email``,
``street``, ``zipcode``, ``city``, ``country_iso``, ``sales_channel_id``).
"""

from abc import ABC, abstractmethod
from datetime import datetime

from leadcollect.cart.schema import SchemaVariant


class CartSource(ABC):
    """Abstract interface for host cart storage."""

    variant: SchemaVariant

    @abstractmethod
    def fetch_idle_carts(self, created_before: datetime, limit: int) -> list[dict]:
        """Return carts created before ``created_before``, newest first.

        Only carts with at least one line item, a customer with a billing
        street, and no order placed from the same cart token are returned.
        """
        ...
